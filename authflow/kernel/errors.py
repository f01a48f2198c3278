"""
Error taxonomy for the credential flows.

Every error carries the user-facing message and the HTTP status class the
API layer answers with. Messages stay generic wherever a more precise one
would reveal whether an account exists or why a token failed.
"""

from typing import Any, Optional


class AuthError(Exception):
    """Base exception for all credential-flow errors."""

    status_code: int = 400
    default_message: str = "Bad request"

    def __init__(self, message: Optional[str] = None, details: Optional[dict[str, Any]] = None) -> None:
        self.message = message or self.default_message
        self.details = details or {}
        super().__init__(self.message)


# ============================================================================
# Client errors (4xx, never retried)
# ============================================================================


class ValidationError(AuthError):
    """Raised when a required field is missing or malformed."""

    default_message = "All fields are required"


class InvalidCredentials(AuthError):
    """Unknown email or wrong password. Both cases share one message."""

    default_message = "Wrong email or password"


class UnverifiedAccount(AuthError):
    """Password matched but the account email has not been verified yet."""

    default_message = "Please verify your email first. We sent a link to your email"


class VerificationFailed(AuthError):
    """Email verification token unknown or already consumed."""

    default_message = "Email could not be verified. Please contact support"


class ResetFailed(AuthError):
    """Reset token unknown, expired or already consumed."""

    default_message = "Password could not be reset"


class EmailNotSent(AuthError):
    """Unknown recipient or undelivered mail. Both cases share one message."""

    default_message = "Email could not be sent"


class Forbidden(AuthError):
    """Missing, malformed, expired or orphaned bearer token."""

    status_code = 403
    default_message = "Forbidden"


# ============================================================================
# Infrastructure errors (5xx)
# ============================================================================


class StoreError(AuthError):
    """Raised when the credential store cannot complete an operation."""

    status_code = 500
    default_message = "Internal server error"


class NotFound(StoreError):
    """No user row matched the id (and guard columns) of an update."""

    default_message = "Record not found"


class MailError(AuthError):
    """Raised when the mail dispatcher is not usable at all (e.g. unconfigured)."""

    status_code = 500
    default_message = "Internal server error"


__all__ = [
    "AuthError",
    "ValidationError",
    "InvalidCredentials",
    "UnverifiedAccount",
    "VerificationFailed",
    "ResetFailed",
    "EmailNotSent",
    "Forbidden",
    "StoreError",
    "NotFound",
    "MailError",
]
