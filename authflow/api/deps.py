"""
FastAPI dependencies for database sessions, the auth service and the caller.
"""

from typing import Annotated, Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from authflow.config import get_settings
from authflow.database import get_db
from authflow.kernel.identity.auth_service import AuthService
from authflow.kernel.identity.jwt import TokenIssuer, get_token_issuer
from authflow.kernel.identity.password import PasswordHasher
from authflow.kernel.mail.dispatcher import MailDispatcher, SmtpMailDispatcher
from authflow.kernel.models.user import User
from authflow.kernel.store.user_store import SqlAlchemyUserStore

# Security scheme
security = HTTPBearer(auto_error=False)

DbSession = Annotated[AsyncSession, Depends(get_db)]

_password_hasher: Optional[PasswordHasher] = None


def get_password_hasher() -> PasswordHasher:
    """Shared hasher configured with the bcrypt cost from settings."""
    global _password_hasher
    if _password_hasher is None:
        _password_hasher = PasswordHasher(rounds=get_settings().bcrypt_rounds)
    return _password_hasher


def get_mail_dispatcher() -> MailDispatcher:
    return SmtpMailDispatcher.from_settings()


def get_issuer() -> TokenIssuer:
    return get_token_issuer()


async def get_auth_service(
    db: DbSession,
    mailer: Annotated[MailDispatcher, Depends(get_mail_dispatcher)],
    issuer: Annotated[TokenIssuer, Depends(get_issuer)],
    hasher: Annotated[PasswordHasher, Depends(get_password_hasher)],
) -> AuthService:
    """A request-scoped AuthService bound to this request's session."""
    return AuthService.from_settings(
        store=SqlAlchemyUserStore(db),
        mailer=mailer,
        issuer=issuer,
        hasher=hasher,
    )


AuthServiceDep = Annotated[AuthService, Depends(get_auth_service)]


async def get_current_user(
    credentials: Annotated[Optional[HTTPAuthorizationCredentials], Depends(security)],
    auth_service: AuthServiceDep,
) -> User:
    """Resolve the bearer access token; any failure is Forbidden."""
    token = credentials.credentials if credentials else None
    return await auth_service.get_user_from_access_token(token)


CurrentUser = Annotated[User, Depends(get_current_user)]
