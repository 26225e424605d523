"""Administrative account management. ADMIN role only."""

import logging

from fastapi import APIRouter, Depends, HTTPException, Query, status

from authgate.api.deps import get_principal_service, require_role
from authgate.models.principal import Role
from authgate.schemas.auth import MessageResponse
from authgate.schemas.principal import PrincipalListResponse, PrincipalResponse
from authgate.services.errors import PrincipalNotFoundError
from authgate.services.principals import PrincipalService

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/admin/users",
    tags=["admin"],
    dependencies=[Depends(require_role(Role.ADMIN))],
)


@router.get("", response_model=PrincipalListResponse)
async def list_users(
    locked: bool | None = Query(None, description="Only locked (true) or unlocked (false) accounts"),
    service: PrincipalService = Depends(get_principal_service),
) -> PrincipalListResponse:
    """List accounts."""
    principals = await service.list_principals(locked=locked)
    return PrincipalListResponse(
        items=[PrincipalResponse.model_validate(p) for p in principals],
        total=len(principals),
    )


@router.post("/{email}/lock", response_model=PrincipalResponse)
async def lock_user(
    email: str,
    service: PrincipalService = Depends(get_principal_service),
) -> PrincipalResponse:
    """Lock an account and revoke its tokens."""
    try:
        principal = await service.lock(email)
    except PrincipalNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e)) from e
    return PrincipalResponse.model_validate(principal)


@router.post("/{email}/unlock", response_model=PrincipalResponse)
async def unlock_user(
    email: str,
    service: PrincipalService = Depends(get_principal_service),
) -> PrincipalResponse:
    """Unlock an account and reset its failed-login counter."""
    try:
        principal = await service.unlock(email)
    except PrincipalNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e)) from e
    return PrincipalResponse.model_validate(principal)


@router.delete("/{email}", response_model=MessageResponse)
async def delete_user(
    email: str,
    service: PrincipalService = Depends(get_principal_service),
) -> MessageResponse:
    """Delete an account and all of its tokens."""
    try:
        await service.delete(email)
    except PrincipalNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e)) from e
    return MessageResponse(message=f"User {email} deleted")
