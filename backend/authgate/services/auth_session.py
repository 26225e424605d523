"""Token lifecycle operations: register, activate, log in, refresh, reset, log out."""

import logging
from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession

from authgate.core.config import Settings, settings
from authgate.core.logging import token_fingerprint
from authgate.models.issued_token import TokenKind
from authgate.models.principal import Principal, Role
from authgate.schemas.auth import RegisterRequest
from authgate.services.credentials import CredentialValidator, hash_password
from authgate.services.errors import (
    EmailExistsError,
    NotifierError,
    PasswordMismatchError,
    PrincipalNotFoundError,
    TokenRevokedError,
    UnauthorizedError,
)
from authgate.services.notifier import EmailNotifier, NotificationOperation
from authgate.services.principals import PrincipalService
from authgate.services.token_codec import (
    TOKEN_TYPE_ACTIVATION,
    TOKEN_TYPE_PASSWORD_RESET,
    TOKEN_TYPE_REFRESH,
    TokenCodec,
    get_token_codec,
)
from authgate.services.token_store import TokenStore

logger = logging.getLogger(__name__)

BEARER_PREFIX = "Bearer "


@dataclass(frozen=True)
class TokenPair:
    access_token: str
    refresh_token: str


def extract_bearer_token(authorization_header: str | None) -> str | None:
    """Return the token from an ``Authorization: Bearer <token>`` value, or None."""
    if not authorization_header or not authorization_header.startswith(BEARER_PREFIX):
        return None
    token = authorization_header[len(BEARER_PREFIX) :].strip()
    return token or None


class AuthSessionService:
    """Orchestrates every operation that issues or invalidates tokens.

    Each public method is one transaction on the given session: it commits
    once all of its writes are staged, and nothing is committed when it
    raises (apart from the lockout bookkeeping in CredentialValidator).
    """

    def __init__(
        self,
        session: AsyncSession,
        codec: TokenCodec | None = None,
        notifier: EmailNotifier | None = None,
        config: Settings | None = None,
    ):
        self.session = session
        self.config = config or settings
        self.codec = codec or get_token_codec()
        self.notifier = notifier or EmailNotifier.from_settings(self.config)
        self.tokens = TokenStore(session)
        self.principals = PrincipalService(session)
        self.validator = CredentialValidator(session, self.config.max_failed_attempts)

    def _link(self, path: str, token: str) -> str:
        return f"{self.config.public_base_url.rstrip('/')}{path}/{token}"

    async def _notify(self, operation: NotificationOperation, recipient: str, link: str) -> None:
        try:
            await self.notifier.send(operation, recipient, link)
        except NotifierError as e:
            # The account change is already committed; the user can ask again
            logger.error(f"Could not send {operation.value} email: {e}")

    async def _rotate_access_token(self, principal: Principal) -> str:
        access_token = self.codec.mint_access_token(principal)
        await self.tokens.revoke_all_valid(principal.id)
        await self.tokens.save(principal.id, access_token, TokenKind.ACCESS)
        return access_token

    async def register(self, request: RegisterRequest) -> str:
        """Create a disabled account and email its activation link.

        Returns:
            The activation token
        """
        if request.password != request.confirm_password:
            raise PasswordMismatchError()

        if await self.principals.email_exists(request.email):
            raise EmailExistsError()

        role = request.role or Role.USER
        principal = Principal(
            email=request.email,
            password_hash=hash_password(request.password),
            first_name=request.first_name,
            last_name=request.last_name,
            role=role.value,
            enabled=False,
        )
        self.session.add(principal)
        await self.session.flush()

        token = self.codec.mint_activation_token(principal.email)
        await self.tokens.save(principal.id, token, TokenKind.ACTIVATION)
        await self.session.commit()
        logger.info(f"Registered account {principal.id} with role {principal.role}")

        await self._notify(
            NotificationOperation.ACTIVATION,
            principal.email,
            self._link("/auth/enable-user", token),
        )
        return token

    async def authenticate(self, email: str, password: str) -> TokenPair:
        """Validate credentials and start a new session.

        Every token previously valid for the principal is revoked, so only
        the most recent login holds a usable access token.
        """
        principal = await self.validator.validate(email, password)

        access_token = await self._rotate_access_token(principal)
        refresh_token = self.codec.mint_refresh_token(principal.email)
        await self.session.commit()

        logger.info(f"Account {principal.id} logged in")
        return TokenPair(access_token=access_token, refresh_token=refresh_token)

    async def refresh_token(self, authorization_header: str | None) -> TokenPair:
        """Issue a new access token for the refresh token in the Authorization header.

        Raises:
            UnauthorizedError: for any problem; ``reason`` says which, for logging
        """
        refresh_token = extract_bearer_token(authorization_header)
        if refresh_token is None:
            raise UnauthorizedError("missing_bearer_token")

        decoded = self.codec.inspect(refresh_token, expected_type=TOKEN_TYPE_REFRESH)
        if not decoded.ok:
            raise UnauthorizedError(f"refresh_token_{decoded.failure.value}")

        principal = await self.principals.get_by_email(decoded.token.subject)
        if principal is None:
            raise UnauthorizedError("unknown_subject")
        if not principal.account_non_locked or not principal.enabled:
            raise UnauthorizedError("account_inactive")
        if not self.codec.is_token_valid_for(refresh_token, principal.email):
            raise UnauthorizedError("subject_mismatch")

        access_token = await self._rotate_access_token(principal)
        await self.session.commit()

        logger.debug(f"Refreshed access token for account {principal.id}")
        return TokenPair(access_token=access_token, refresh_token=refresh_token)

    async def enable_account(self, token: str) -> Principal:
        """Activate the account named by an activation token.

        Raises:
            TokenError: the token does not decode as an activation token
            PrincipalNotFoundError: the account no longer exists
        """
        parsed = self.codec.parse(token, expected_type=TOKEN_TYPE_ACTIVATION)
        principal = await self.principals.get_by_email(parsed.subject)
        if principal is None:
            raise PrincipalNotFoundError(f"User {parsed.subject} not found")

        principal.enabled = True
        await self.tokens.revoke(token)
        await self.session.commit()

        logger.info(f"Activated account {principal.id}")
        return principal

    async def request_password_reset(self, email: str) -> str:
        """Issue a single-use reset token and email the reset link.

        Returns:
            The reset token
        """
        principal = await self.principals.get_by_email(email)
        if principal is None:
            raise PrincipalNotFoundError(f"User {email} not found")

        token = self.codec.mint_reset_token(principal.email)
        await self.tokens.save(principal.id, token, TokenKind.PASSWORD_RESET)
        await self.session.commit()
        logger.info(f"Password reset requested for account {principal.id}")

        await self._notify(
            NotificationOperation.PASSWORD_RESET,
            principal.email,
            self._link("/auth/reset-password", token),
        )
        return token

    async def update_password(self, token: str, password: str, password_confirm: str) -> None:
        """Set a new password using a reset token, then end every session.

        Raises:
            TokenError: the token does not decode as a reset token
            TokenRevokedError: the reset token was already used or superseded
            PrincipalNotFoundError: the account no longer exists
            PasswordMismatchError: password and confirmation differ
        """
        parsed = self.codec.parse(token, expected_type=TOKEN_TYPE_PASSWORD_RESET)
        principal = await self.principals.get_by_email(parsed.subject)
        if principal is None:
            raise PrincipalNotFoundError(f"User {parsed.subject} not found")

        if not await self.tokens.is_valid(token):
            raise TokenRevokedError("Reset token is no longer valid")

        if password != password_confirm:
            raise PasswordMismatchError()

        principal.password_hash = hash_password(password)
        # Includes the reset token itself
        revoked = await self.tokens.revoke_all_valid(principal.id)
        await self.session.commit()

        logger.info(f"Password updated for account {principal.id} ({revoked} tokens revoked)")

    async def logout(self, token: str) -> None:
        """Revoke the presented access token.

        Refresh tokens are not stored, so one issued alongside this access
        token keeps working until it expires.
        """
        await self.tokens.revoke(token)
        await self.session.commit()
        logger.info(f"Logged out token {token_fingerprint(token)}")
