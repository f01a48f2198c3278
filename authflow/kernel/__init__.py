"""
Credential kernel.

- Identity Core (password hashing, token issuance, auth flows)
- Credential store (User record lookup and guarded updates)
- Transactional mail

Invariants:
- Only fingerprints of verification/reset tokens are persisted
- A verification or reset token is consumed by at most one request
- is_verified never goes back to false
"""

from authflow.kernel.errors import AuthError
from authflow.kernel.models import User

__all__ = [
    "AuthError",
    "User",
]
