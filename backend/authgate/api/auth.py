"""Authentication API endpoints."""

import logging

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status

from authgate.api.deps import get_auth_session_service, get_bearer_token, get_current_principal
from authgate.middleware.request_authorizer import AuthenticatedPrincipal
from authgate.schemas.auth import (
    AuthenticationRequest,
    ForgotPasswordRequest,
    MessageResponse,
    RegisterRequest,
    RegisterResponse,
    ResetPasswordRequest,
    TokenResponse,
)
from authgate.services.auth_session import AuthSessionService
from authgate.services.errors import (
    AccountDisabledError,
    AccountLockedError,
    EmailExistsError,
    InvalidCredentialsError,
    PasswordMismatchError,
    PrincipalNotFoundError,
    TokenError,
    UnauthorizedError,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/register", response_model=RegisterResponse)
async def register(
    request: RegisterRequest,
    auth_service: AuthSessionService = Depends(get_auth_session_service),
) -> RegisterResponse:
    """Create an account. It stays disabled until the emailed link is followed."""
    try:
        token = await auth_service.register(request)
    except PasswordMismatchError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from e
    except EmailExistsError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e)) from e

    return RegisterResponse(
        message="Registration successful, check your email to activate your account",
        token=token,
    )


@router.post("/authenticate", response_model=TokenResponse)
async def authenticate(
    request: AuthenticationRequest,
    response: Response,
    auth_service: AuthSessionService = Depends(get_auth_session_service),
) -> TokenResponse:
    """Log in with email and password.

    The access token is also returned in the Authorization response header.
    """
    try:
        tokens = await auth_service.authenticate(request.email, request.password)
    except InvalidCredentialsError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from e
    except AccountLockedError as e:
        raise HTTPException(status_code=status.HTTP_423_LOCKED, detail=str(e)) from e
    except AccountDisabledError as e:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(e)) from e

    response.headers["Authorization"] = f"Bearer {tokens.access_token}"
    return TokenResponse(access_token=tokens.access_token, refresh_token=tokens.refresh_token)


@router.post("/enable-user/{token}", response_model=MessageResponse)
async def enable_user(
    token: str,
    auth_service: AuthSessionService = Depends(get_auth_session_service),
) -> MessageResponse:
    """Activate an account from its emailed activation link."""
    try:
        await auth_service.enable_account(token)
    except TokenError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from e
    except PrincipalNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e)) from e

    return MessageResponse(message="Account activated")


@router.post("/refresh-token", response_model=TokenResponse)
async def refresh_token(
    http_request: Request,
    auth_service: AuthSessionService = Depends(get_auth_session_service),
) -> TokenResponse:
    """Exchange the refresh token in the Authorization header for a new access token."""
    try:
        tokens = await auth_service.refresh_token(http_request.headers.get("Authorization"))
    except UnauthorizedError as e:
        logger.info(f"Refresh rejected: {e.reason}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid refresh token",
            headers={"WWW-Authenticate": "Bearer"},
        ) from e

    return TokenResponse(access_token=tokens.access_token, refresh_token=tokens.refresh_token)


@router.post("/forgot-password", response_model=MessageResponse)
async def forgot_password(
    request: ForgotPasswordRequest,
    auth_service: AuthSessionService = Depends(get_auth_session_service),
) -> MessageResponse:
    """Email a password reset link."""
    try:
        await auth_service.request_password_reset(request.email)
    except PrincipalNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e)) from e

    return MessageResponse(message="Password reset link sent")


@router.post("/reset-password/{token}", response_model=MessageResponse)
async def reset_password(
    token: str,
    request: ResetPasswordRequest,
    auth_service: AuthSessionService = Depends(get_auth_session_service),
) -> MessageResponse:
    """Set a new password. Every existing session of the account ends."""
    try:
        await auth_service.update_password(token, request.password, request.password_confirm)
    except (TokenError, PasswordMismatchError) as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from e
    except PrincipalNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e)) from e

    return MessageResponse(message="Password updated")


@router.post("/logout", response_model=MessageResponse)
async def logout(
    principal: AuthenticatedPrincipal = Depends(get_current_principal),
    token: str = Depends(get_bearer_token),
    auth_service: AuthSessionService = Depends(get_auth_session_service),
) -> MessageResponse:
    """Revoke the access token used for this request."""
    await auth_service.logout(token)
    logger.info(f"Account {principal.id} logged out")
    return MessageResponse(message="Logged out successfully")
