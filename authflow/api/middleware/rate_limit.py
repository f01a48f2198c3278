"""
Per-IP rate limiting for credential endpoints.

Login, forgot-password, reset and verify are the endpoints worth guessing
against, so every POST/PATCH under the auth prefix counts against the
caller's IP. Reads (refresh) are not limited here.
"""

import json
import time
from typing import Callable, Optional, Tuple

from fastapi import Request, Response, status
from starlette.middleware.base import BaseHTTPMiddleware

from authflow.config import get_settings
from authflow.logging_config import get_logger

logger = get_logger(__name__)

LIMITED_METHODS = frozenset({"POST", "PATCH"})


def get_client_ip(request: Request) -> str:
    """Get client IP from request (X-Forwarded-For or direct)."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


class InMemoryRateLimitStore:
    """Fixed-window in-memory store. Key -> (count, window_start_ts)."""

    def __init__(self):
        self._data: dict[str, Tuple[int, float]] = {}

    def check_and_incr(self, key: str, limit: int, window_seconds: int) -> bool:
        """Returns True if under limit (and increments). False if over limit (no increment)."""
        now = time.monotonic()
        count, start = self._data.get(key, (0, now))
        if now - start >= window_seconds:
            count, start = 0, now
        if count >= limit:
            return False
        self._data[key] = (count + 1, start)
        return True

    def cleanup_old(self, max_age_seconds: int = 3600) -> None:
        """Remove entries older than max_age_seconds to avoid unbounded growth."""
        now = time.monotonic()
        stale = [k for k, (_, start) in self._data.items() if now - start > max_age_seconds]
        for k in stale:
            self._data.pop(k, None)

    def reset(self) -> None:
        self._data.clear()


# Module-level store (single process)
_store: Optional[InMemoryRateLimitStore] = None


def get_store() -> InMemoryRateLimitStore:
    global _store
    if _store is None:
        _store = InMemoryRateLimitStore()
    return _store


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Limit credential mutations to N per minute per client IP."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        settings = get_settings()
        if not settings.rate_limit_enabled or request.method not in LIMITED_METHODS:
            return await call_next(request)

        path = request.url.path or ""
        if not path.startswith(f"{settings.api_v1_prefix}/auth"):
            return await call_next(request)

        store = get_store()
        store.cleanup_old(max_age_seconds=7200)

        client_ip = get_client_ip(request)
        if not store.check_and_incr(f"auth:{client_ip}", settings.rate_limit_auth_per_minute, 60):
            logger.warning("Rate limit exceeded", extra={"client_ip": client_ip, "path": path})
            return Response(
                content=json.dumps({"message": "Too many requests. Please try again later."}),
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                media_type="application/json",
            )
        return await call_next(request)
