"""
Authentication endpoints.

Each handler parses the request, calls one AuthService operation and shapes
the response. AuthError subclasses raised by the service are rendered by the
application's exception handlers.
"""

from fastapi import APIRouter, Request, Response, status

from authflow.api.cookies import clear_refresh_cookie, read_refresh_cookie, set_refresh_cookie
from authflow.api.deps import AuthServiceDep, CurrentUser
from authflow.schemas.auth import (
    AccessTokenResponse,
    EmailChangeRequest,
    ForgotPasswordRequest,
    LoginRequest,
    ResetPasswordRequest,
)
from authflow.schemas.common import MessageResponse

router = APIRouter()


@router.post("", response_model=AccessTokenResponse)
async def login(
    data: LoginRequest,
    response: Response,
    auth_service: AuthServiceDep,
):
    """
    Authenticate with email and password.

    The access token is returned in the body; the refresh token is set as
    an HTTP-only cookie.
    """
    result = await auth_service.login(email=data.email, password=data.password)
    set_refresh_cookie(response, result.refresh)
    return AccessTokenResponse(access_token=result.access.token)


@router.get("/refresh", response_model=AccessTokenResponse)
async def refresh(request: Request, auth_service: AuthServiceDep):
    """Exchange the refresh cookie for a new access token."""
    access = await auth_service.refresh(read_refresh_cookie(request))
    return AccessTokenResponse(access_token=access.token)


@router.post("/logout", response_model=MessageResponse)
async def logout(
    request: Request,
    response: Response,
    auth_service: AuthServiceDep,
):
    """Clear the refresh cookie. Succeeds with or without an active session."""
    await auth_service.logout(read_refresh_cookie(request))
    clear_refresh_cookie(response)
    return MessageResponse(message="Logged out")


@router.patch(
    "/verify/{verify_token}",
    response_model=MessageResponse,
    status_code=status.HTTP_201_CREATED,
)
async def verify_email(verify_token: str, auth_service: AuthServiceDep):
    """Consume an email-verification link."""
    await auth_service.verify_email(verify_token)
    return MessageResponse(message="Email verified")


@router.patch("/forgot", response_model=MessageResponse)
async def forgot_password(data: ForgotPasswordRequest, auth_service: AuthServiceDep):
    """Email a password-reset link."""
    await auth_service.forgot_password(data.email)
    return MessageResponse(message="We've sent a password recovery link to your email")


@router.patch("/reset/{reset_token}", response_model=MessageResponse)
async def reset_password(
    reset_token: str,
    data: ResetPasswordRequest,
    auth_service: AuthServiceDep,
):
    """Set a new password with a reset link."""
    await auth_service.reset_password(reset_token, data.password)
    return MessageResponse(message="Password reset successfully. Please log in")


@router.post(
    "/email",
    response_model=MessageResponse,
    status_code=status.HTTP_202_ACCEPTED,
)
async def request_email_change(
    data: EmailChangeRequest,
    user: CurrentUser,
    auth_service: AuthServiceDep,
):
    """
    Start moving the account to a new email address.

    The change only takes effect once the link sent to the new address is
    followed.
    """
    await auth_service.start_email_verification(user.id, new_email=data.new_email)
    return MessageResponse(message="We've sent a verification link to your new email")
