"""
Pytest fixtures for authflow tests.
"""

import os

# Configure before anything imports authflow.config
os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["ACCESS_TOKEN_SECRET"] = "test-access-secret-for-testing-only"
os.environ["REFRESH_TOKEN_SECRET"] = "test-refresh-secret-for-testing-only"
os.environ["RESET_PASSWORD_URL"] = "https://app.example.com/reset"
os.environ["VERIFY_EMAIL_URL"] = "https://app.example.com/verify"
os.environ["OAUTH_SUCCESS_REDIRECT_URL"] = "https://app.example.com"

import re
import uuid
from datetime import datetime, timedelta, timezone
from typing import AsyncGenerator, List, Optional

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession

from authflow.config import get_settings

get_settings.cache_clear()

from authflow.database import build_engine, build_session_maker
from authflow.kernel.identity.auth_service import AuthService
from authflow.kernel.identity.jwt import TokenIssuer
from authflow.kernel.identity.password import PasswordHasher
from authflow.kernel.mail.dispatcher import MailMessage
from authflow.kernel.models.base import Base
from authflow.kernel.models.user import User
from authflow.kernel.store.user_store import SqlAlchemyUserStore

TEST_PASSWORD = "TestPassword123"
RESET_URL = "https://app.example.com/reset"
VERIFY_URL = "https://app.example.com/verify"


class FrozenClock:
    """Callable clock that only moves when told to."""

    def __init__(self, now: Optional[datetime] = None):
        self.now = now or datetime(2026, 1, 15, 12, 0, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)

    def set(self, when: datetime) -> None:
        self.now = when


class RecordingMailer:
    """MailDispatcher that keeps messages instead of sending them."""

    def __init__(self, deliver: bool = True):
        self.deliver = deliver
        self.sent: List[MailMessage] = []

    def send(self, message: MailMessage) -> bool:
        self.sent.append(message)
        return self.deliver

    def last_token(self, base_url: str) -> str:
        """Pull the plaintext token out of the link in the latest message."""
        match = re.search(re.escape(base_url) + r"/([A-Za-z0-9_\-]+)", self.sent[-1].body)
        assert match, "no link in message"
        return match.group(1)


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock()


@pytest.fixture
def hasher() -> PasswordHasher:
    # Minimum bcrypt cost keeps the suite fast
    return PasswordHasher(rounds=4)


@pytest.fixture
def issuer(clock: FrozenClock) -> TokenIssuer:
    return TokenIssuer(
        access_secret="test-access-secret-for-testing-only",
        refresh_secret="test-refresh-secret-for-testing-only",
        access_token_expire_minutes=15,
        refresh_token_expire_days=31,
        clock=clock,
    )


@pytest.fixture
def mailer() -> RecordingMailer:
    return RecordingMailer()


@pytest.fixture
def failing_mailer() -> RecordingMailer:
    """Mailer whose relay refuses every message."""
    return RecordingMailer(deliver=False)


@pytest_asyncio.fixture
async def db_engine():
    """Fresh in-memory database per test."""
    engine = build_engine("sqlite+aiosqlite://")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(db_engine) -> AsyncGenerator[AsyncSession, None]:
    session_maker = build_session_maker(db_engine)
    async with session_maker() as session:
        yield session
        await session.rollback()


@pytest.fixture
def store(db_session: AsyncSession) -> SqlAlchemyUserStore:
    return SqlAlchemyUserStore(db_session)


@pytest.fixture
def auth_service(store, issuer, hasher, mailer, clock) -> AuthService:
    return AuthService(
        store,
        issuer,
        hasher,
        mailer,
        reset_password_url=RESET_URL,
        verify_email_url=VERIFY_URL,
        oauth_success_redirect_url="https://app.example.com",
        reset_token_expire_hours=24,
        clock=clock,
    )


@pytest.fixture
def make_user(db_session: AsyncSession, hasher: PasswordHasher):
    """Factory that inserts a user the way the registration service would."""

    async def _make_user(
        email: str = "testuser@example.com",
        password: str = TEST_PASSWORD,
        is_verified: bool = True,
        **fields,
    ) -> User:
        user = User(
            id=uuid.uuid4(),
            email=email,
            password_hash=hasher.hash(password),
            is_verified=is_verified,
            **fields,
        )
        db_session.add(user)
        await db_session.commit()
        await db_session.refresh(user)
        return user

    return _make_user


@pytest_asyncio.fixture
async def test_user(make_user) -> User:
    """A verified user."""
    return await make_user()
