"""Pydantic schemas for accounts, sessions and profiles.

Learn: the password policy lives in one validator shared by sign-up,
reset-password and profile updates, so the three can never drift apart.
"""

import re
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, EmailStr, Field, field_validator

from tasksync.domain.users import User

_PASSWORD_RULES = [
    (re.compile(r"[A-Z]"), "an uppercase letter"),
    (re.compile(r"[a-z]"), "a lowercase letter"),
    (re.compile(r"\d"), "a digit"),
    (re.compile(r"[^A-Za-z0-9]"), "a special character"),
]


def validate_password(value: str) -> str:
    """At least 8 chars with upper, lower, digit and special character."""
    if len(value) < 8:
        raise ValueError("Password must be at least 8 characters long")
    missing = [label for pattern, label in _PASSWORD_RULES if not pattern.search(value)]
    if missing:
        raise ValueError("Password must contain " + ", ".join(missing))
    return value


# ─── Sessions ────────────────────────────────────────────


class SessionCreate(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1)


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"


# ─── Accounts ────────────────────────────────────────────


class SignUpRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    email: EmailStr
    password: str

    @field_validator("password")
    @classmethod
    def check_password(cls, value: str) -> str:
        return validate_password(value)


class ForgotPasswordRequest(BaseModel):
    email: EmailStr


class ResetPasswordRequest(BaseModel):
    token: str = Field(..., min_length=1)
    new_password: str

    @field_validator("new_password")
    @classmethod
    def check_password(cls, value: str) -> str:
        return validate_password(value)


# ─── Profile ─────────────────────────────────────────────


class ProfileUpdate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    email: EmailStr
    new_password: Optional[str] = None

    @field_validator("new_password")
    @classmethod
    def check_password(cls, value: Optional[str]) -> Optional[str]:
        return validate_password(value) if value is not None else value


class AvatarUrlRead(BaseModel):
    url: str
    expires_at: datetime


class UserRead(BaseModel):
    """Public view of a user. Never includes the password hash."""

    id: str
    name: str
    email: str
    avatar_url: Optional[str] = None
    email_verified: bool
    created_at: datetime

    @classmethod
    def from_entity(cls, user: User) -> "UserRead":
        return cls(
            id=user.id.value,
            name=user.name,
            email=user.email,
            avatar_url=user.avatar_url,
            email_verified=user.email_verified,
            created_at=user.created_at,
        )


class MessageResponse(BaseModel):
    message: str
