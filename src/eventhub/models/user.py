"""User request and response models."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

# bcrypt only looks at the first 72 bytes of a password
MAX_PASSWORD_BYTES = 72


class RegisterRequest(BaseModel):
    """Registration payload."""

    username: str = Field(..., min_length=3, max_length=50)
    email: EmailStr
    password: str = Field(..., min_length=6)

    @field_validator("password")
    @classmethod
    def password_fits_bcrypt(cls, v: str) -> str:
        if len(v.encode("utf-8")) > MAX_PASSWORD_BYTES:
            raise ValueError(f"Password cannot exceed {MAX_PASSWORD_BYTES} bytes")
        return v


class LoginRequest(BaseModel):
    """Login payload."""

    email: EmailStr
    password: str = Field(..., min_length=1)


class UserSummary(BaseModel):
    """Minimal user info returned by login and registration."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    username: str
    avatar: str | None = None


class UserPublic(UserSummary):
    """User profile without credential fields."""

    email: str
    created_at: datetime | None = None
