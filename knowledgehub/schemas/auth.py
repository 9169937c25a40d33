"""Request/response schemas for auth and admin endpoints."""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, EmailStr, Field, field_validator, model_validator

from knowledgehub.core.security import (
    NAME_MAX_LEN,
    NAME_MIN_LEN,
    PASSWORD_MAX_LEN,
    PASSWORD_MIN_LEN,
)

Role = Literal["admin", "editor", "viewer"]


def _lower_email(value: str) -> str:
    return value.strip().lower()


class RegisterRequest(BaseModel):
    """New account. confirmPassword must equal password."""

    model_config = {"populate_by_name": True}

    name: str = Field(..., min_length=NAME_MIN_LEN, max_length=NAME_MAX_LEN)
    email: EmailStr
    password: str = Field(..., min_length=PASSWORD_MIN_LEN, max_length=PASSWORD_MAX_LEN)
    confirm_password: str = Field(..., alias="confirmPassword")

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        v = v.strip()
        if len(v) < NAME_MIN_LEN:
            raise ValueError(f"name must be at least {NAME_MIN_LEN} characters")
        return v

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return _lower_email(v)

    @model_validator(mode="after")
    def passwords_match(self) -> "RegisterRequest":
        if self.password != self.confirm_password:
            raise ValueError("Passwords must match")
        return self


class LoginRequest(BaseModel):
    """Credentials for login."""

    email: EmailStr
    password: str = Field(..., min_length=1, max_length=PASSWORD_MAX_LEN)

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return _lower_email(v)


class ProfileUpdateRequest(BaseModel):
    name: str = Field(..., max_length=NAME_MAX_LEN)

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        v = v.strip()
        if len(v) < NAME_MIN_LEN:
            raise ValueError("Name must be at least 2 characters long")
        return v


class CurrentUser(BaseModel):
    """Authenticated principal attached to a request by the auth dependencies."""

    model_config = {"from_attributes": True}

    id: int
    email: str
    name: str
    role: Role
    can_create_notes: bool


class UserProfile(CurrentUser):
    created_at: datetime | None = None
    updated_at: datetime | None = None


class AuthData(BaseModel):
    """Token returned after register/login; send as Authorization: Bearer <token>."""

    token: str
    user: CurrentUser


class UserData(BaseModel):
    user: UserProfile


class PermissionsUpdateRequest(BaseModel):
    """Admin change of a user's role and/or note-creation capability (at least one field)."""

    can_create_notes: bool | None = None
    role: Role | None = None


class UsersData(BaseModel):
    """Response for GET /admin/users (admin only)."""

    users: list[UserProfile]
