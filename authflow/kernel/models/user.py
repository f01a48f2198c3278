"""
User model for credential management.
"""

import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import Boolean, String
from sqlalchemy.orm import Mapped, mapped_column

from authflow.kernel.models.base import Base, TimestampMixin, generate_uuid


class User(Base, TimestampMixin):
    """
    User account record.

    Token hash columns hold SHA-256 fingerprints only; the plaintext tokens
    live in memory and in outbound mail. ``reset_password_token_hash`` and
    ``reset_password_expires_at`` are always written together.
    """

    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(
        primary_key=True,
        default=generate_uuid,
    )
    email: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        index=True,
        nullable=False,
    )
    new_email: Mapped[Optional[str]] = mapped_column(
        String(255),
        nullable=True,
    )
    username: Mapped[Optional[str]] = mapped_column(
        String(255),
        nullable=True,
    )
    password_hash: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )
    is_verified: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        nullable=False,
    )

    # Email verification
    verify_email_token_hash: Mapped[Optional[str]] = mapped_column(
        String(64),
        unique=True,
        index=True,
        nullable=True,
    )

    # Password reset
    reset_password_token_hash: Mapped[Optional[str]] = mapped_column(
        String(64),
        unique=True,
        index=True,
        nullable=True,
    )
    reset_password_expires_at: Mapped[Optional[datetime]] = mapped_column(nullable=True)

    @property
    def display_name(self) -> str:
        return self.username or self.email.split("@", 1)[0]

    def __repr__(self) -> str:
        return f"<User {self.email}>"
