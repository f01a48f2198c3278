"""
JWT token management for authentication.

Two signing contexts: access (minutes) and refresh (weeks). Each has its
own secret, so a leaked access secret cannot mint refresh tokens and vice
versa. Tokens are stateless; nothing is stored server-side.
"""

import uuid
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Callable, Optional, Union

from jose import JWTError, jwt
from pydantic import BaseModel

from authflow.config import Settings, get_settings
from authflow.logging_config import get_logger

logger = get_logger(__name__)

Clock = Callable[[], datetime]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TokenContext(str, Enum):
    """Signing context of a bearer token."""
    ACCESS = "access"
    REFRESH = "refresh"


class IssuedToken(BaseModel):
    """A signed token together with its expiry."""

    token: str
    expires_at: datetime
    max_age: int  # Seconds from issuance to expiry, used for cookie max-age


class TokenPayload(BaseModel):
    """Decoded claims of a verified token."""

    sub: str  # User ID
    exp: datetime
    iat: datetime
    jti: str
    type: TokenContext


class TokenIssuer:
    """
    JWT token creation and verification.

    Expiry policy: a token is accepted while ``now <= exp`` (whole seconds)
    and rejected from ``exp + 1s`` on. ``now`` comes from the injected clock.
    """

    def __init__(
        self,
        access_secret: str,
        refresh_secret: str,
        algorithm: str = "HS256",
        access_token_expire_minutes: int = 15,
        refresh_token_expire_days: int = 31,
        clock: Clock = utcnow,
    ):
        if access_secret == refresh_secret:
            raise ValueError("Access and refresh tokens must be signed with different secrets")
        self._secrets = {
            TokenContext.ACCESS: access_secret,
            TokenContext.REFRESH: refresh_secret,
        }
        self._lifetimes = {
            TokenContext.ACCESS: timedelta(minutes=access_token_expire_minutes),
            TokenContext.REFRESH: timedelta(days=refresh_token_expire_days),
        }
        self.algorithm = algorithm
        self.clock = clock

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None, clock: Clock = utcnow) -> "TokenIssuer":
        settings = settings or get_settings()
        return cls(
            access_secret=settings.access_token_secret,
            refresh_secret=settings.refresh_token_secret,
            algorithm=settings.algorithm,
            access_token_expire_minutes=settings.access_token_expire_minutes,
            refresh_token_expire_days=settings.refresh_token_expire_days,
            clock=clock,
        )

    def lifetime(self, context: TokenContext) -> timedelta:
        """How long a token of this context stays valid after issuance."""
        return self._lifetimes[context]

    def _issue(self, user_id: Union[uuid.UUID, str], context: TokenContext) -> IssuedToken:
        # Whole seconds so the expiry check matches the encoded claim exactly
        now = self.clock().replace(microsecond=0)
        lifetime = self.lifetime(context)
        expire = now + lifetime

        payload = {
            "sub": str(user_id),
            "iat": int(now.timestamp()),
            "exp": int(expire.timestamp()),
            "jti": str(uuid.uuid4()),
            "type": context.value,
        }

        token = jwt.encode(payload, self._secrets[context], algorithm=self.algorithm)
        return IssuedToken(
            token=token,
            expires_at=expire,
            max_age=int(lifetime.total_seconds()),
        )

    def issue_access(self, user_id: Union[uuid.UUID, str]) -> IssuedToken:
        """Create a short-lived access token for the user."""
        return self._issue(user_id, TokenContext.ACCESS)

    def issue_refresh(self, user_id: Union[uuid.UUID, str]) -> IssuedToken:
        """Create a long-lived refresh token for the user."""
        return self._issue(user_id, TokenContext.REFRESH)

    def decode(self, token: str, context: TokenContext) -> Optional[TokenPayload]:
        """
        Verify signature, context and expiry of a token.

        Returns:
            TokenPayload if valid, None for any failure
        """
        if not token:
            return None
        try:
            # Expiry is enforced below against our own clock
            payload = jwt.decode(
                token,
                self._secrets[context],
                algorithms=[self.algorithm],
                options={"verify_exp": False},
            )
        except JWTError:
            return None

        if payload.get("type") != context.value:
            return None

        exp = payload.get("exp")
        sub = payload.get("sub")
        if not isinstance(exp, int) or not sub:
            return None

        if int(self.clock().timestamp()) > exp:
            logger.debug("Rejected expired %s token", context.value)
            return None

        return TokenPayload(
            sub=sub,
            exp=datetime.fromtimestamp(exp, tz=timezone.utc),
            iat=datetime.fromtimestamp(payload.get("iat", exp), tz=timezone.utc),
            jti=payload.get("jti", ""),
            type=context,
        )

    def verify(self, token: str, context: TokenContext) -> Optional[str]:
        """Return the user id a valid token was issued for, else None."""
        payload = self.decode(token, context)
        return payload.sub if payload else None


# Default issuer instance
_token_issuer: Optional[TokenIssuer] = None


def get_token_issuer() -> TokenIssuer:
    """Get or create the default token issuer."""
    global _token_issuer
    if _token_issuer is None:
        _token_issuer = TokenIssuer.from_settings()
    return _token_issuer
