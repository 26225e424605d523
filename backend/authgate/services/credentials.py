"""Password hashing and credential validation with failed-login lockout."""

import logging
from functools import lru_cache

from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerifyMismatchError
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from authgate.core.config import settings
from authgate.models.principal import Principal
from authgate.services.errors import (
    AccountDisabledError,
    AccountLockedError,
    InvalidCredentialsError,
)

logger = logging.getLogger(__name__)

# Argon2 password hasher with recommended parameters
# Memory: 64 MiB, Time: 3 iterations, Parallelism: 4
ph = PasswordHasher(
    time_cost=3,
    memory_cost=65536,
    parallelism=4,
    hash_len=32,
    salt_len=16,
)


def hash_password(password: str) -> str:
    """Hash a password using Argon2id."""
    return ph.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    """Verify a password against its hash using constant-time comparison."""
    try:
        ph.verify(password_hash, password)
        return True
    except (VerifyMismatchError, InvalidHashError):
        return False


@lru_cache
def _dummy_hash() -> str:
    return hash_password("authgate-dummy-password")


class CredentialValidator:
    """Check an email/password pair and maintain the lockout counter.

    Failure bookkeeping is committed immediately: the caller's transaction is
    rolled back when the resulting error reaches the HTTP boundary, and the
    counter must survive that.
    """

    def __init__(self, session: AsyncSession, max_failed_attempts: int | None = None):
        self.session = session
        self.max_failed_attempts = max_failed_attempts or settings.max_failed_attempts

    async def validate(self, email: str, password: str) -> Principal:
        """Return the principal whose credentials match.

        Raises:
            InvalidCredentialsError: unknown email or wrong password
            AccountLockedError: account was already locked, or this failure locked it
            AccountDisabledError: credentials match but the account is not activated
        """
        result = await self.session.execute(select(Principal).where(Principal.email == email))
        principal = result.scalar_one_or_none()

        if principal is None:
            # Perform a dummy verification to prevent timing attacks
            verify_password(password, _dummy_hash())
            raise InvalidCredentialsError()

        if not principal.account_non_locked:
            logger.info(f"Login attempt on locked account {principal.id}")
            raise AccountLockedError()

        if not verify_password(password, principal.password_hash):
            await self._record_failure(principal)

        if principal.failed_attempts:
            principal.failed_attempts = 0
            await self.session.commit()

        if not principal.enabled:
            raise AccountDisabledError()

        return principal

    async def _record_failure(self, principal: Principal) -> None:
        principal.failed_attempts += 1
        if principal.failed_attempts >= self.max_failed_attempts:
            principal.account_non_locked = False
            await self.session.commit()
            logger.warning(
                f"Account {principal.id} locked after {principal.failed_attempts} failed logins"
            )
            raise AccountLockedError()

        await self.session.commit()
        logger.info(
            f"Failed login for account {principal.id} "
            f"({principal.failed_attempts}/{self.max_failed_attempts})"
        )
        raise InvalidCredentialsError()
