"""
Auth flow controller: login, session refresh, logout and credential recovery.
"""

import asyncio
import uuid
from datetime import timedelta
from typing import Optional

from pydantic import BaseModel

from authflow.config import Settings, get_settings
from authflow.kernel.errors import (
    EmailNotSent,
    Forbidden,
    InvalidCredentials,
    NotFound,
    ResetFailed,
    UnverifiedAccount,
    ValidationError,
    VerificationFailed,
)
from authflow.kernel.identity.jwt import Clock, IssuedToken, TokenContext, TokenIssuer, utcnow
from authflow.kernel.identity.password import PasswordHasher
from authflow.kernel.mail.dispatcher import MailDispatcher
from authflow.kernel.mail.templates import build_link, reset_password_email, verify_email_email
from authflow.kernel.models.user import User
from authflow.kernel.store.user_store import UserStore, normalize_email
from authflow.logging_config import get_logger

logger = get_logger(__name__)


class LoginResult(BaseModel):
    """Tokens minted for a freshly authenticated user."""

    user_id: uuid.UUID
    access: IssuedToken
    refresh: IssuedToken


class SsoResult(LoginResult):
    """LoginResult plus where to send the browser afterwards."""

    redirect_url: str


def _parse_user_id(value: Optional[str]) -> Optional[uuid.UUID]:
    try:
        return uuid.UUID(value) if value else None
    except ValueError:
        return None


class AuthService:
    """
    Orchestrates the user-facing credential operations.

    One instance per request. The only state that outlives a call is what
    gets written through the store. Every failure is raised as an
    ``AuthError`` subclass; the API layer turns it into a response.

    Known limitations:
    - ``refresh`` mints a new access token but does not rotate the refresh
      token, so a refresh token stays usable for its whole lifetime.
    - ``reset_password`` does not revoke tokens issued before the reset;
      there is no server-side revocation list.
    """

    def __init__(
        self,
        store: UserStore,
        issuer: TokenIssuer,
        hasher: PasswordHasher,
        mailer: MailDispatcher,
        *,
        reset_password_url: str,
        verify_email_url: str,
        oauth_success_redirect_url: str,
        reset_token_expire_hours: int = 24,
        clock: Clock = utcnow,
    ):
        self.store = store
        self.issuer = issuer
        self.hasher = hasher
        self.mailer = mailer
        self.reset_password_url = reset_password_url
        self.verify_email_url = verify_email_url
        self.oauth_success_redirect_url = oauth_success_redirect_url
        self.reset_token_expire_hours = reset_token_expire_hours
        self.clock = clock

    @classmethod
    def from_settings(
        cls,
        store: UserStore,
        issuer: TokenIssuer,
        hasher: PasswordHasher,
        mailer: MailDispatcher,
        settings: Optional[Settings] = None,
    ) -> "AuthService":
        settings = settings or get_settings()
        return cls(
            store,
            issuer,
            hasher,
            mailer,
            reset_password_url=settings.reset_password_url,
            verify_email_url=settings.verify_email_url,
            oauth_success_redirect_url=settings.oauth_success_redirect_url,
            reset_token_expire_hours=settings.reset_token_expire_hours,
            clock=issuer.clock,
        )

    def _issue_session(self, user_id: uuid.UUID) -> LoginResult:
        return LoginResult(
            user_id=user_id,
            access=self.issuer.issue_access(user_id),
            refresh=self.issuer.issue_refresh(user_id),
        )

    async def _send(self, message) -> bool:
        return await asyncio.to_thread(self.mailer.send, message)

    # ------------------------------------------------------------------
    # Sessions
    # ------------------------------------------------------------------

    async def login(self, email: Optional[str], password: Optional[str]) -> LoginResult:
        """
        Authenticate with email and password.

        Args:
            email: Login email
            password: Plain text password

        Returns:
            LoginResult with an access token and a refresh token

        Raises:
            ValidationError: A field is missing
            InvalidCredentials: Unknown email or wrong password (same message)
            UnverifiedAccount: Email not verified yet, checked before the password
        """
        if not email or not password:
            raise ValidationError("All fields are required")

        user = await self.store.find_by_email(email)
        if user is None:
            # Unknown emails still pay for one bcrypt check
            await asyncio.to_thread(self.hasher.compare_dummy, password)
            logger.info("Login rejected: unknown email")
            raise InvalidCredentials()

        if not user.is_verified:
            logger.info("Login rejected: email not verified", extra={"user_id": str(user.id)})
            raise UnverifiedAccount()

        if not await asyncio.to_thread(self.hasher.compare, password, user.password_hash):
            logger.info("Login rejected: wrong password", extra={"user_id": str(user.id)})
            raise InvalidCredentials()

        if self.hasher.needs_rehash(user.password_hash):
            await self._upgrade_password_hash(user, password)

        logger.info("Login succeeded", extra={"user_id": str(user.id)})
        return self._issue_session(user.id)

    async def _upgrade_password_hash(self, user: User, password: str) -> None:
        new_hash = await asyncio.to_thread(self.hasher.hash, password)
        try:
            await self.store.update(
                user.id,
                {"password_hash": new_hash},
                expected={"password_hash": user.password_hash},
            )
        except NotFound:
            # Password changed concurrently; the newer hash wins
            logger.info("Skipped password rehash", extra={"user_id": str(user.id)})

    async def refresh(self, refresh_cookie: Optional[str]) -> IssuedToken:
        """
        Mint a new access token from the refresh cookie.

        Every failure (no cookie, bad signature, expired, unknown user) is the
        same Forbidden.
        """
        if not refresh_cookie:
            raise Forbidden()

        user_id = _parse_user_id(self.issuer.verify(refresh_cookie, TokenContext.REFRESH))
        if user_id is None:
            raise Forbidden()

        user = await self.store.find_by_id(user_id)
        if user is None:
            raise Forbidden()

        return self.issuer.issue_access(user.id)

    async def logout(self, refresh_cookie: Optional[str]) -> None:
        """End the session. Idempotent: no cookie is not an error."""
        if refresh_cookie:
            logger.debug("Refresh cookie cleared")

    async def sso_success(self, user_id: uuid.UUID) -> SsoResult:
        """
        Issue a session for a user an external SSO provider already vouched for.

        Returns:
            SsoResult; the caller sets the refresh cookie and redirects
        """
        user = await self.store.find_by_id(user_id)
        if user is None:
            raise Forbidden()

        session = self._issue_session(user.id)
        logger.info("SSO login succeeded", extra={"user_id": str(user.id)})
        return SsoResult(
            **session.model_dump(),
            redirect_url=f"{self.oauth_success_redirect_url.rstrip('/')}/?authenticated=true",
        )

    async def get_user_from_access_token(self, access_token: Optional[str]) -> User:
        """Resolve a bearer access token to its user or raise Forbidden."""
        user_id = _parse_user_id(self.issuer.verify(access_token or "", TokenContext.ACCESS))
        if user_id is None:
            raise Forbidden()

        user = await self.store.find_by_id(user_id)
        if user is None:
            raise Forbidden()
        return user

    # ------------------------------------------------------------------
    # Email verification
    # ------------------------------------------------------------------

    async def start_email_verification(
        self,
        user_id: uuid.UUID,
        new_email: Optional[str] = None,
    ) -> None:
        """
        Send a verification link and remember its fingerprint.

        Without ``new_email`` this confirms the current address (used after
        registration) and discards any address parked by an earlier request. With it, the address is parked in ``new_email`` and
        only becomes the login email once the link is followed.

        Raises:
            NotFound: No such user
            ValidationError: new_email is the current address or taken
            EmailNotSent: The dispatcher did not accept the message; nothing
                is persisted in that case
        """
        user = await self.store.find_by_id(user_id)
        if user is None:
            raise NotFound(details={"user_id": str(user_id)})

        # A plain re-verification drops any address parked by an earlier change request
        fields = {"new_email": None}
        recipient = user.email
        if new_email:
            new_email = normalize_email(new_email)
            if new_email == user.email:
                raise ValidationError("New email must differ from the current one")
            existing = await self.store.find_by_email(new_email)
            if existing is not None and existing.id != user.id:
                raise ValidationError("Email already in use")
            fields["new_email"] = new_email
            recipient = new_email

        token = self.hasher.generate_token()
        fields["verify_email_token_hash"] = self.hasher.fingerprint(token)

        message = verify_email_email(
            to=recipient,
            name=user.display_name,
            link=build_link(self.verify_email_url, token),
        )
        if not await self._send(message):
            raise EmailNotSent()

        await self.store.update(user.id, fields)
        logger.info("Verification email sent", extra={"user_id": str(user.id)})

    async def verify_email(self, verify_token: Optional[str]) -> None:
        """
        Consume an email-verification token.

        Marks the user verified, clears the token hash and promotes a pending
        ``new_email``. At most once per token: the update is guarded on the
        token hash, so a replay or a concurrent duplicate fails.

        Raises:
            VerificationFailed: Unknown or already-consumed token
        """
        if not verify_token:
            raise VerificationFailed()

        token_hash = self.hasher.fingerprint(verify_token)
        user = await self.store.find_by_verify_token_hash(token_hash)
        if user is None:
            raise VerificationFailed()

        fields = {"is_verified": True, "verify_email_token_hash": None}
        if user.new_email:
            existing = await self.store.find_by_email(user.new_email)
            if existing is not None and existing.id != user.id:
                raise VerificationFailed()
            fields["email"] = normalize_email(user.new_email)
            fields["new_email"] = None

        try:
            await self.store.update(
                user.id,
                fields,
                expected={"verify_email_token_hash": token_hash},
            )
        except NotFound:
            raise VerificationFailed()

        logger.info("Email verified", extra={"user_id": str(user.id)})

    # ------------------------------------------------------------------
    # Password recovery
    # ------------------------------------------------------------------

    async def forgot_password(self, email: Optional[str]) -> None:
        """
        Email a password-reset link.

        The token fingerprint and expiry are persisted only after the
        dispatcher accepted the message, so a failed send never leaves a
        token the user cannot receive.

        Raises:
            ValidationError: Email missing
            EmailNotSent: Unknown email or failed delivery (same message)
        """
        if not email:
            raise ValidationError("Email required")

        user = await self.store.find_by_email(email)
        if user is None:
            logger.info("Password reset requested for unknown email")
            raise EmailNotSent()

        token = self.hasher.generate_token()
        token_hash = self.hasher.fingerprint(token)
        expires_at = self.clock() + timedelta(hours=self.reset_token_expire_hours)

        message = reset_password_email(
            to=user.email,
            name=user.display_name,
            link=build_link(self.reset_password_url, token),
            expires_hours=self.reset_token_expire_hours,
        )
        if not await self._send(message):
            raise EmailNotSent()

        await self.store.update(
            user.id,
            {
                "reset_password_token_hash": token_hash,
                "reset_password_expires_at": expires_at,
            },
        )
        logger.info("Password reset email sent", extra={"user_id": str(user.id)})

    async def reset_password(self, reset_token: Optional[str], new_password: Optional[str]) -> None:
        """
        Set a new password using a reset token.

        A token is accepted up to and including its expiry instant. Unknown,
        expired and already-used tokens all raise the same ResetFailed.
        The token is cleared in the same guarded update that writes the new
        password hash.

        Raises:
            ValidationError: Password missing
            ResetFailed: Token unknown, expired or consumed
        """
        if not new_password:
            raise ValidationError("Password required")
        if not reset_token:
            raise ResetFailed()

        token_hash = self.hasher.fingerprint(reset_token)
        user = await self.store.find_by_reset_token_hash(token_hash)
        if user is None:
            raise ResetFailed()

        expires_at = user.reset_password_expires_at
        if expires_at is None or expires_at < self.clock():
            logger.info("Expired reset token presented", extra={"user_id": str(user.id)})
            raise ResetFailed()

        password_hash = await asyncio.to_thread(self.hasher.hash, new_password)
        try:
            await self.store.update(
                user.id,
                {
                    "password_hash": password_hash,
                    "reset_password_token_hash": None,
                    "reset_password_expires_at": None,
                },
                expected={"reset_password_token_hash": token_hash},
            )
        except NotFound:
            raise ResetFailed()

        logger.info("Password reset", extra={"user_id": str(user.id)})
