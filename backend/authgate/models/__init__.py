# AuthGate Models
from authgate.models.base import BaseModel
from authgate.models.issued_token import IssuedToken, TokenKind
from authgate.models.principal import Principal, Role

__all__ = [
    "BaseModel",
    "IssuedToken",
    "Principal",
    "Role",
    "TokenKind",
]
