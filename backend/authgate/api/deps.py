"""Shared FastAPI dependencies."""

from collections.abc import Awaitable, Callable

from fastapi import Depends, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from authgate.core import get_db
from authgate.middleware.request_authorizer import AuthenticatedPrincipal
from authgate.models.principal import Role
from authgate.services.auth_session import AuthSessionService, extract_bearer_token
from authgate.services.notifier import EmailNotifier, get_notifier
from authgate.services.principals import PrincipalService
from authgate.services.token_codec import TokenCodec, get_token_codec


def get_auth_session_service(
    db: AsyncSession = Depends(get_db),
    codec: TokenCodec = Depends(get_token_codec),
    notifier: EmailNotifier = Depends(get_notifier),
) -> AuthSessionService:
    """Dependency to get the auth session service."""
    return AuthSessionService(db, codec=codec, notifier=notifier)


def get_principal_service(db: AsyncSession = Depends(get_db)) -> PrincipalService:
    """Dependency to get the principal service."""
    return PrincipalService(db)


def get_current_principal(request: Request) -> AuthenticatedPrincipal:
    """The principal attached by RequestAuthorizerMiddleware."""
    principal = getattr(request.state, "principal", None)
    if principal is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return principal


def get_bearer_token(request: Request) -> str:
    """Raw access token of the current request."""
    token = extract_bearer_token(request.headers.get("Authorization"))
    if token is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return token


def require_role(*roles: Role) -> Callable[..., Awaitable[AuthenticatedPrincipal]]:
    """Dependency factory that only lets principals holding one of ``roles`` through."""
    allowed = {role.value for role in roles}

    async def checker(
        principal: AuthenticatedPrincipal = Depends(get_current_principal),
    ) -> AuthenticatedPrincipal:
        if principal.role not in allowed:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Insufficient permissions",
            )
        return principal

    return checker
