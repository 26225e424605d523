# AuthGate Pydantic Schemas
from authgate.schemas.auth import (
    AuthenticationRequest,
    ForgotPasswordRequest,
    MessageResponse,
    RegisterRequest,
    RegisterResponse,
    ResetPasswordRequest,
    TokenResponse,
)
from authgate.schemas.principal import PrincipalListResponse, PrincipalResponse

__all__ = [
    "AuthenticationRequest",
    "ForgotPasswordRequest",
    "MessageResponse",
    "PrincipalListResponse",
    "PrincipalResponse",
    "RegisterRequest",
    "RegisterResponse",
    "ResetPasswordRequest",
    "TokenResponse",
]
