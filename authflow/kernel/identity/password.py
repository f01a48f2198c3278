"""
Password hashing and token fingerprinting.

Passwords go through bcrypt (slow, salted). Verification and reset tokens
are looked up by a SHA-256 fingerprint (fast, deterministic) because only
the fingerprint is ever stored.
"""

import hashlib
import secrets
from typing import Optional

import bcrypt

# Number of rounds for bcrypt hashing (12 is secure default)
BCRYPT_ROUNDS = 12

# Random bytes behind each verification/reset token
TOKEN_BYTES = 32


class PasswordHasher:
    """Password hashing service."""

    def __init__(self, rounds: int = BCRYPT_ROUNDS):
        self.rounds = rounds
        self._dummy_digest: Optional[str] = None

    @staticmethod
    def _truncate_password(password: str) -> bytes:
        """
        Truncate password to 72 bytes (bcrypt limit) and encode.

        bcrypt only uses the first 72 bytes of a password.
        """
        return password.encode("utf-8")[:72]

    def hash(self, password: str) -> str:
        """
        Hash a password using bcrypt.

        Args:
            password: Plain text password

        Returns:
            Hashed password string
        """
        pwd_bytes = self._truncate_password(password)
        salt = bcrypt.gensalt(rounds=self.rounds)
        return bcrypt.hashpw(pwd_bytes, salt).decode("utf-8")

    def compare(self, plain_password: str, hashed_password: Optional[str]) -> bool:
        """
        Check a password against its stored digest.

        bcrypt.checkpw compares in constant time. Malformed or empty
        digests yield False instead of raising.
        """
        if not plain_password or not hashed_password:
            return False
        try:
            pwd_bytes = self._truncate_password(plain_password)
            return bcrypt.checkpw(pwd_bytes, hashed_password.encode("utf-8"))
        except (ValueError, TypeError):
            return False

    def compare_dummy(self, plain_password: str) -> bool:
        """
        Burn one bcrypt check against a throwaway digest. Always False.

        Lets a login for an unknown email take as long as one for a known one.
        """
        if self._dummy_digest is None:
            self._dummy_digest = self.hash(secrets.token_hex(16))
        self.compare(plain_password or "x", self._dummy_digest)
        return False

    def needs_rehash(self, hashed_password: str) -> bool:
        """
        Check if a password hash was produced with a different cost factor.

        bcrypt digests look like ``$2b$12$...``; the second field is the cost.
        """
        try:
            parts = hashed_password.split("$")
            if len(parts) >= 3:
                return int(parts[2]) != self.rounds
            return True
        except (ValueError, AttributeError):
            return True

    @staticmethod
    def fingerprint(token: str) -> str:
        """SHA-256 hex digest of a random token, used as its lookup key."""
        return hashlib.sha256(token.encode("utf-8")).hexdigest()

    @staticmethod
    def generate_token() -> str:
        """A fresh URL-safe random token for verification/reset links."""
        return secrets.token_urlsafe(TOKEN_BYTES)


_default_hasher = PasswordHasher()


# Convenience functions
def hash_password(password: str) -> str:
    """Hash a password."""
    return _default_hasher.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a password."""
    return _default_hasher.compare(plain_password, hashed_password)


def fingerprint_token(token: str) -> str:
    """Fingerprint a verification/reset token."""
    return PasswordHasher.fingerprint(token)
