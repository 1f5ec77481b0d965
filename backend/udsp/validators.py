"""
Storage-independent data checks run before every mutating call.

Each check raises ValueError with a user-facing message; pydantic turns these
into field errors for request bodies, and services call them through `check()`
so the same rules hold for writes that do not come from a request body.
"""

import re
from dataclasses import dataclass
from datetime import date
from typing import Optional
from udsp.exceptions import NotFoundError, ValidationFailed, field_error

ROLES = ("admin", "staff")
DEFAULT_ROLE = "staff"

LAB_TEST_NAME_MIN = 2
LAB_TEST_NAME_MAX = 100
USERNAME_MIN = 3
PASSWORD_MIN = 6

# Largest value an Integer column holds on every supported database
MAX_ID = 2**31 - 1
MAX_COUNT = 2**31 - 1

MOBILE_RE = re.compile(r"^\d{10}$")
EMAIL_RE = re.compile(r"^\w+([.-]?\w+)*@\w+([.-]?\w+)*(\.\w{2,3})+$")
ISO_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


@dataclass(frozen=True)
class DateRange:
    start: date
    end: date

    def as_dict(self) -> dict:
        return {"startDate": self.start.isoformat(), "endDate": self.end.isoformat()}


def check(field: str, func, *args):
    """Run a validator and re-raise its ValueError as a field-level ValidationFailed."""
    try:
        return func(*args)
    except ValueError as e:
        raise field_error(field, str(e))


def validate_count(value: int, label: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"Number of {label} samples must be an integer")
    if value < 0:
        raise ValueError(f"Number of {label} samples cannot be negative")
    if value > MAX_COUNT:
        raise ValueError(f"Number of {label} samples is too large")
    return value


def validate_sample_counts(sample_taken: int, sample_positive: int) -> None:
    validate_count(sample_taken, "taken")
    validate_count(sample_positive, "positive")
    if sample_positive > sample_taken:
        raise ValueError("Number of positive samples cannot exceed number of samples taken")


def normalize_lab_test_name(name: str) -> str:
    name = (name or "").strip()
    if not name:
        raise ValueError("Lab test name is required")
    if not LAB_TEST_NAME_MIN <= len(name) <= LAB_TEST_NAME_MAX:
        raise ValueError(
            f"Lab test name must be between {LAB_TEST_NAME_MIN} and {LAB_TEST_NAME_MAX} characters"
        )
    return name


def normalize_username(username: str) -> str:
    username = (username or "").strip()
    if len(username) < USERNAME_MIN:
        raise ValueError(f"Username must be at least {USERNAME_MIN} characters long")
    return username


def validate_mobile(mobile: str) -> str:
    mobile = (mobile or "").strip()
    if not MOBILE_RE.match(mobile):
        raise ValueError("Please enter a valid 10-digit mobile number")
    return mobile


def normalize_email(email: Optional[str]) -> Optional[str]:
    email = (email or "").strip().lower()
    if not email:
        return None
    if not EMAIL_RE.match(email):
        raise ValueError("Please enter a valid email")
    return email


def validate_password_strength(password: str) -> str:
    password = password or ""
    if len(password) < PASSWORD_MIN:
        raise ValueError(f"Password must be at least {PASSWORD_MIN} characters long")
    if not (
        re.search(r"[a-z]", password)
        and re.search(r"[A-Z]", password)
        and re.search(r"\d", password)
    ):
        raise ValueError(
            "Password must contain at least one lowercase letter, one uppercase letter, and one number"
        )
    return password


def validate_role(role: str) -> str:
    if role not in ROLES:
        raise ValueError(f"Invalid role. Must be {' or '.join(ROLES)}")
    return role


def _parse_iso_date(value: Optional[str], label: str, errors: list, field: str) -> Optional[date]:
    if not value:
        errors.append({"field": field, "message": f"{label} is required"})
        return None
    try:
        if not ISO_DATE_RE.match(value):
            raise ValueError(value)
        return date.fromisoformat(value)
    except ValueError:
        errors.append({"field": field, "message": f"{label} must be in valid ISO format"})
        return None


def parse_date_range(start: Optional[str], end: Optional[str]) -> DateRange:
    errors: list = []
    start_date = _parse_iso_date(start, "Start date", errors, "startDate")
    end_date = _parse_iso_date(end, "End date", errors, "endDate")
    if start_date and end_date and end_date < start_date:
        errors.append({"field": "endDate", "message": "End date must be after start date"})
    if errors:
        raise ValidationFailed(errors)
    return DateRange(start_date, end_date)


def parse_id(raw: str, resource: str) -> int:
    """Path ids are integers; anything else is reported as a missing resource."""
    try:
        value = int(raw)
    except (TypeError, ValueError):
        raise NotFoundError(f"{resource} not found")
    if not 1 <= value <= MAX_ID:
        raise NotFoundError(f"{resource} not found")
    return value
