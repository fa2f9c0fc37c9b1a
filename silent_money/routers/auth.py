"""
Authentication router.

Provides REST API endpoints for:
- Sign up and sign in (JWT bearer tokens)
- Sign out
- Password reset by e-mail link and password change
- The caller's own profile
"""

import structlog
from fastapi import APIRouter, Depends, Request, Response, status

from silent_money.dependencies import get_auth_service, get_current_active_user, get_client_ip
from silent_money.middleware.rate_limit import AUTH_LIMIT, limiter
from silent_money.models.auth import (
    CurrentUser, ErrorResponse, PasswordResetConfirm, PasswordResetIssued,
    PasswordResetRequest, PasswordUpdateRequest, ProfileResponse, SignInRequest,
    SignUpRequest, TokenResponse,
)
from silent_money.services.auth_service import AuthService

logger = structlog.get_logger(__name__)

router = APIRouter(
    prefix="/auth",
    tags=["Authentication"],
    responses={
        401: {"model": ErrorResponse, "description": "Unauthorized"},
        422: {"model": ErrorResponse, "description": "Validation Error"}
    }
)


@router.post(
    "/signup",
    response_model=TokenResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create an account",
    responses={409: {"model": ErrorResponse, "description": "E-mail already registered"}}
)
@limiter.limit(AUTH_LIMIT)
async def sign_up(
    request: Request,
    payload: SignUpRequest,
    auth_service: AuthService = Depends(get_auth_service),
) -> TokenResponse:
    return await auth_service.sign_up(payload)


@router.post(
    "/signin",
    response_model=TokenResponse,
    summary="Sign in",
    description="""
    Exchange e-mail and password for a bearer token.

    **Error Responses:**
    - 401: Invalid email or password
    - 403: Account suspended
    - 429: Too many attempts
    """,
    responses={403: {"model": ErrorResponse, "description": "Account suspended"}}
)
@limiter.limit(AUTH_LIMIT)
async def sign_in(
    request: Request,
    payload: SignInRequest,
    auth_service: AuthService = Depends(get_auth_service),
    client_ip: str = Depends(get_client_ip),
) -> TokenResponse:
    logger.info("sign_in_attempt", ip_address=client_ip)
    return await auth_service.sign_in(payload)


@router.post("/signout", status_code=status.HTTP_204_NO_CONTENT, summary="Sign out")
async def sign_out(current_user: CurrentUser = Depends(get_current_active_user)) -> Response:
    """Tokens are stateless; the client discards its copy."""
    logger.info("user_signed_out", user_id=str(current_user.id))
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post(
    "/password-reset",
    response_model=PasswordResetIssued,
    status_code=status.HTTP_202_ACCEPTED,
    summary="Request a password reset link",
    description="Always answers 202 so the response does not reveal whether the account exists."
)
@limiter.limit(AUTH_LIMIT)
async def request_password_reset(
    request: Request,
    payload: PasswordResetRequest,
    auth_service: AuthService = Depends(get_auth_service),
) -> PasswordResetIssued:
    return await auth_service.request_password_reset(payload.email)


@router.post(
    "/password-reset/confirm",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Set a new password with a reset token"
)
@limiter.limit(AUTH_LIMIT)
async def reset_password(
    request: Request,
    payload: PasswordResetConfirm,
    auth_service: AuthService = Depends(get_auth_service),
) -> Response:
    await auth_service.reset_password(payload.token, payload.new_password)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.put("/password", status_code=status.HTTP_204_NO_CONTENT, summary="Change password")
async def update_password(
    payload: PasswordUpdateRequest,
    current_user: CurrentUser = Depends(get_current_active_user),
    auth_service: AuthService = Depends(get_auth_service),
) -> Response:
    await auth_service.update_password(current_user, payload.current_password, payload.new_password)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/me", response_model=ProfileResponse, summary="Current profile")
async def me(
    current_user: CurrentUser = Depends(get_current_active_user),
    auth_service: AuthService = Depends(get_auth_service),
) -> ProfileResponse:
    return await auth_service.get_profile(current_user.id)
