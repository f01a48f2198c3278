"""
Authentication schemas.

Fields the flows treat as "required" are Optional here so that a missing
value reaches the auth service and gets its specific message.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator


def _check_password_strength(v: Optional[str]) -> Optional[str]:
    if not v:
        return v
    if len(v) < 8:
        raise ValueError("Password must be at least 8 characters")
    if not any(c.isupper() for c in v):
        raise ValueError("Password must contain at least one uppercase letter")
    if not any(c.islower() for c in v):
        raise ValueError("Password must contain at least one lowercase letter")
    if not any(c.isdigit() for c in v):
        raise ValueError("Password must contain at least one digit")
    return v


class LoginRequest(BaseModel):
    """User login request."""

    email: Optional[str] = Field(None, max_length=255)
    password: Optional[str] = Field(None, max_length=128)


class ForgotPasswordRequest(BaseModel):
    """Password recovery request."""

    email: Optional[str] = Field(None, max_length=255)


class ResetPasswordRequest(BaseModel):
    """New password submitted with a reset token."""

    password: Optional[str] = Field(None, max_length=128)

    @field_validator("password")
    @classmethod
    def validate_password(cls, v: Optional[str]) -> Optional[str]:
        return _check_password_strength(v)


class EmailChangeRequest(BaseModel):
    """Request to move the account to a new email address."""

    new_email: EmailStr


class AccessTokenResponse(BaseModel):
    """Access token returned in the body; the refresh token travels as a cookie."""

    model_config = ConfigDict(populate_by_name=True)

    access_token: str = Field(..., serialization_alias="accessToken")
