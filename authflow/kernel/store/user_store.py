"""
Credential store: lookup and guarded update of User records.
"""

import uuid
from typing import Any, Mapping, Optional, Protocol

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from authflow.kernel.errors import NotFound, StoreError
from authflow.kernel.models.user import User
from authflow.logging_config import get_logger

logger = get_logger(__name__)

_USER_COLUMNS = frozenset(User.__table__.columns.keys())


def normalize_email(email: str) -> str:
    return email.lower().strip()


class UserStore(Protocol):
    """Boundary the auth flows use to read and write User records."""

    async def find_by_email(self, email: str) -> Optional[User]: ...

    async def find_by_id(self, user_id: uuid.UUID) -> Optional[User]: ...

    async def find_by_verify_token_hash(self, token_hash: str) -> Optional[User]: ...

    async def find_by_reset_token_hash(self, token_hash: str) -> Optional[User]: ...

    async def update(
        self,
        user_id: uuid.UUID,
        fields: Mapping[str, Any],
        expected: Optional[Mapping[str, Any]] = None,
    ) -> User: ...


class SqlAlchemyUserStore:
    """
    UserStore backed by an AsyncSession.

    The session's transaction is owned by the caller (the request
    dependency commits or rolls back); this class only flushes.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def _scalar(self, query) -> Optional[User]:
        try:
            result = await self.session.execute(query)
        except SQLAlchemyError as exc:
            logger.exception("User lookup failed")
            raise StoreError() from exc
        return result.scalar_one_or_none()

    async def find_by_email(self, email: str) -> Optional[User]:
        """Get a user by email."""
        return await self._scalar(select(User).where(User.email == normalize_email(email)))

    async def find_by_id(self, user_id: uuid.UUID) -> Optional[User]:
        """Get a user by ID."""
        return await self._scalar(select(User).where(User.id == user_id))

    async def find_by_verify_token_hash(self, token_hash: str) -> Optional[User]:
        """Get the user holding this email-verification fingerprint."""
        return await self._scalar(select(User).where(User.verify_email_token_hash == token_hash))

    async def find_by_reset_token_hash(self, token_hash: str) -> Optional[User]:
        """Get the user holding this password-reset fingerprint."""
        return await self._scalar(select(User).where(User.reset_password_token_hash == token_hash))

    async def update(
        self,
        user_id: uuid.UUID,
        fields: Mapping[str, Any],
        expected: Optional[Mapping[str, Any]] = None,
    ) -> User:
        """
        Atomically write ``fields`` to one user row.

        Args:
            user_id: The user's ID
            fields: Column name -> new value
            expected: Column name -> value the row must still hold. The write
                happens in a single UPDATE ... WHERE, so of two concurrent
                callers guarding on the same token hash only one matches.

        Returns:
            The refreshed User

        Raises:
            NotFound: No row matched the id and the guard columns
            StoreError: The database rejected the statement
        """
        unknown = (set(fields) | set(expected or {})) - _USER_COLUMNS
        if unknown:
            raise ValueError(f"Unknown user fields: {sorted(unknown)}")
        if not fields:
            raise ValueError("Nothing to update")

        stmt = update(User).where(User.id == user_id)
        for name, value in (expected or {}).items():
            column = getattr(User, name)
            stmt = stmt.where(column.is_(None) if value is None else column == value)
        stmt = stmt.values(**fields).execution_options(synchronize_session=False)

        try:
            result = await self.session.execute(stmt)
        except SQLAlchemyError as exc:
            logger.exception("User update failed", extra={"user_id": str(user_id)})
            raise StoreError() from exc

        if result.rowcount != 1:
            raise NotFound(details={"user_id": str(user_id)})

        user = await self.session.get(User, user_id, populate_existing=True)
        if user is None:
            raise NotFound(details={"user_id": str(user_id)})
        return user
