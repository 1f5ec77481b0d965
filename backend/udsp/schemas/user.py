from datetime import datetime
from typing import Optional
from pydantic import field_validator
from udsp.schemas.base import CamelModel
from udsp import validators


class LoginRequest(CamelModel):
    username: str
    password: str


class UserCreate(CamelModel):
    username: str
    password: str
    first_name: str
    last_name: Optional[str] = None
    email: Optional[str] = None
    mobile: str
    role: str = validators.DEFAULT_ROLE

    @field_validator("username")
    @classmethod
    def _username(cls, v: str) -> str:
        return validators.normalize_username(v)

    @field_validator("password")
    @classmethod
    def _password(cls, v: str) -> str:
        return validators.validate_password_strength(v)

    @field_validator("mobile")
    @classmethod
    def _mobile(cls, v: str) -> str:
        return validators.validate_mobile(v)

    @field_validator("email")
    @classmethod
    def _email(cls, v: Optional[str]) -> Optional[str]:
        return validators.normalize_email(v)

    @field_validator("role")
    @classmethod
    def _role(cls, v: str) -> str:
        return validators.validate_role(v)

    @field_validator("first_name")
    @classmethod
    def _first_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("First name is required")
        return v

    @field_validator("last_name")
    @classmethod
    def _last_name(cls, v: Optional[str]) -> Optional[str]:
        return v.strip() if v else None


class ProfileUpdate(CamelModel):
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    mobile: Optional[str] = None
    email: Optional[str] = None

    @field_validator("mobile")
    @classmethod
    def _mobile(cls, v: Optional[str]) -> Optional[str]:
        return validators.validate_mobile(v) if v else None

    @field_validator("email")
    @classmethod
    def _email(cls, v: Optional[str]) -> Optional[str]:
        return validators.normalize_email(v)

    @field_validator("first_name", "last_name")
    @classmethod
    def _strip(cls, v: Optional[str]) -> Optional[str]:
        return v.strip() if v else None


class AdminUserUpdate(ProfileUpdate):
    role: Optional[str] = None

    @field_validator("role")
    @classmethod
    def _role(cls, v: Optional[str]) -> Optional[str]:
        return validators.validate_role(v) if v else None


class PasswordChange(CamelModel):
    current_password: str
    new_password: str

    @field_validator("new_password")
    @classmethod
    def _strength(cls, v: str) -> str:
        return validators.validate_password_strength(v)


class PasswordReset(CamelModel):
    new_password: str

    @field_validator("new_password")
    @classmethod
    def _strength(cls, v: str) -> str:
        return validators.validate_password_strength(v)


class UserResponse(CamelModel):
    id: int
    username: str
    email: Optional[str] = None
    role: str
    first_name: str
    last_name: Optional[str] = None
    display_name: str
    mobile: str
    is_active: bool
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
