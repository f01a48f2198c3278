"""
Identity Core - password hashing, token issuance and the auth flows.
"""

from authflow.kernel.identity.password import (
    PasswordHasher,
    fingerprint_token,
    hash_password,
    verify_password,
)
from authflow.kernel.identity.jwt import (
    IssuedToken,
    TokenContext,
    TokenIssuer,
    TokenPayload,
    get_token_issuer,
)
from authflow.kernel.identity.auth_service import AuthService, LoginResult, SsoResult

__all__ = [
    "PasswordHasher",
    "fingerprint_token",
    "hash_password",
    "verify_password",
    "IssuedToken",
    "TokenContext",
    "TokenIssuer",
    "TokenPayload",
    "get_token_issuer",
    "AuthService",
    "LoginResult",
    "SsoResult",
]
