"""Pydantic schemas for user and session endpoints."""

from datetime import datetime

from pydantic import EmailStr, Field, field_validator, model_validator

from taskflow.schemas.base import CamelModel


class SignupRequest(CamelModel):
    first_name: str = Field(min_length=3)
    last_name: str = Field(min_length=3)
    email: EmailStr
    password: str = Field(min_length=8)
    username: str = Field(min_length=3, max_length=64)

    @field_validator("first_name", "last_name", "username")
    @classmethod
    def _strip(cls, value: str) -> str:
        return value.strip()

    @field_validator("email", "username")
    @classmethod
    def _lowercase(cls, value: str) -> str:
        return value.lower()


class LoginRequest(CamelModel):
    email: EmailStr
    password: str = Field(min_length=8)
    remember_me: bool = False

    @field_validator("email")
    @classmethod
    def _lowercase(cls, value: str) -> str:
        return value.lower()


class UpdateProfileRequest(CamelModel):
    first_name: str | None = Field(default=None, min_length=3)
    last_name: str | None = Field(default=None, min_length=3)
    username: str | None = Field(default=None, min_length=3, max_length=64)
    current_password: str | None = None
    new_password: str | None = None

    @field_validator("new_password")
    @classmethod
    def _new_password_length(cls, value: str | None) -> str | None:
        # Empty string means "leave the password alone"
        if value and value.strip() and len(value) < 8:
            raise ValueError("New password must be 8+ characters")
        return value

    @model_validator(mode="after")
    def _current_password_required(self) -> "UpdateProfileRequest":
        if self.wants_password_change and not self.current_password:
            raise ValueError("Current password is required to set a new password")
        return self

    @property
    def wants_password_change(self) -> bool:
        return bool(self.new_password and self.new_password.strip())


class ForgotPasswordRequest(CamelModel):
    email: EmailStr

    @field_validator("email")
    @classmethod
    def _lowercase(cls, value: str) -> str:
        return value.lower()


class ResetPasswordRequest(CamelModel):
    password: str = Field(min_length=8)
    confirm_password: str

    @model_validator(mode="after")
    def _passwords_match(self) -> "ResetPasswordRequest":
        if self.password != self.confirm_password:
            raise ValueError("Passwords do not match")
        return self


class UserResponse(CamelModel):
    """Sanitized user projection; never carries hashes or tokens."""

    id: int
    first_name: str
    last_name: str
    username: str
    email: str
    created_at: datetime
    updated_at: datetime


class LoginResponse(CamelModel):
    message: str
    user: UserResponse


class ProfileUpdateResponse(CamelModel):
    message: str
    user: UserResponse
