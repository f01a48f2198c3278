"""
Refresh-token cookie helpers.

The refresh token is only ever sent as an HTTP-only, SameSite=None cookie
so a frontend on another origin can use it.
"""

from typing import Optional

from fastapi import Request
from fastapi.responses import Response

from authflow.config import get_settings
from authflow.kernel.identity.jwt import IssuedToken


def refresh_cookie_name() -> str:
    return get_settings().refresh_cookie_name


def read_refresh_cookie(request: Request) -> Optional[str]:
    return request.cookies.get(refresh_cookie_name())


def set_refresh_cookie(response: Response, refresh: IssuedToken) -> None:
    """Attach the refresh token; max-age matches the token's lifetime."""
    response.set_cookie(
        key=refresh_cookie_name(),
        value=refresh.token,
        max_age=refresh.max_age,
        httponly=True,
        secure=get_settings().cookie_secure,
        samesite="none",
    )


def clear_refresh_cookie(response: Response) -> None:
    """Expire the refresh cookie with the same attributes it was set with."""
    response.delete_cookie(
        key=refresh_cookie_name(),
        httponly=True,
        secure=get_settings().cookie_secure,
        samesite="none",
    )
