"""Endpoints for the signed-in account."""

from fastapi import APIRouter, Depends, HTTPException, status

from authgate.api.deps import get_current_principal, get_principal_service
from authgate.middleware.request_authorizer import AuthenticatedPrincipal
from authgate.schemas.principal import PrincipalResponse
from authgate.services.principals import PrincipalService

router = APIRouter(prefix="/users", tags=["users"])


@router.get("/me", response_model=PrincipalResponse)
async def get_me(
    principal: AuthenticatedPrincipal = Depends(get_current_principal),
    service: PrincipalService = Depends(get_principal_service),
) -> PrincipalResponse:
    """Get the current account's information."""
    record = await service.get_by_id(principal.id)
    if record is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return PrincipalResponse.model_validate(record)
