"""
Pydantic schemas for API request/response validation.
"""

from authflow.schemas.auth import (
    AccessTokenResponse,
    EmailChangeRequest,
    ForgotPasswordRequest,
    LoginRequest,
    ResetPasswordRequest,
)
from authflow.schemas.common import HealthResponse, MessageResponse

__all__ = [
    "AccessTokenResponse",
    "EmailChangeRequest",
    "ForgotPasswordRequest",
    "LoginRequest",
    "ResetPasswordRequest",
    "HealthResponse",
    "MessageResponse",
]
