"""
Credential store boundary and its SQLAlchemy implementation.
"""

from authflow.kernel.store.user_store import SqlAlchemyUserStore, UserStore, normalize_email

__all__ = [
    "UserStore",
    "SqlAlchemyUserStore",
    "normalize_email",
]
