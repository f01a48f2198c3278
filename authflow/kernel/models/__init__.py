"""
Kernel Data Models

The User record is the only table this service reads and mutates.
"""

from authflow.kernel.models.base import Base, TimestampMixin, generate_uuid
from authflow.kernel.models.user import User

__all__ = [
    "Base",
    "TimestampMixin",
    "generate_uuid",
    "User",
]
