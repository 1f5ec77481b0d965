class LabDataError(Exception):
    status_code = 400

    def __init__(self, message: str, errors: list = None):
        self.message = message
        self.errors = errors or []
        super().__init__(message)


class ValidationFailed(LabDataError):
    def __init__(self, errors: list):
        super().__init__("Validation failed", errors)


class BusinessRuleViolation(LabDataError):
    pass


class NotFoundError(LabDataError):
    status_code = 404


class PermissionDenied(LabDataError):
    status_code = 403


class AuthenticationFailed(LabDataError):
    status_code = 401


def field_error(field: str, message: str) -> ValidationFailed:
    return ValidationFailed([{"field": field, "message": message}])
