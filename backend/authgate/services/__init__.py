# AuthGate Services
from authgate.services.auth_session import AuthSessionService, TokenPair
from authgate.services.credentials import CredentialValidator, hash_password, verify_password
from authgate.services.expiry_sweeper import ExpirySweeper, SweepResult
from authgate.services.notifier import EmailNotifier, NotificationOperation, get_notifier
from authgate.services.principals import PrincipalService
from authgate.services.token_codec import TokenCodec, get_token_codec
from authgate.services.token_store import TokenStore

__all__ = [
    "AuthSessionService",
    "CredentialValidator",
    "EmailNotifier",
    "ExpirySweeper",
    "NotificationOperation",
    "PrincipalService",
    "SweepResult",
    "TokenCodec",
    "TokenPair",
    "TokenStore",
    "get_notifier",
    "get_token_codec",
    "hash_password",
    "verify_password",
]
