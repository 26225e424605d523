"""Principal lookups and administrative account operations."""

import logging
from datetime import datetime

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from authgate.models.issued_token import IssuedToken
from authgate.models.principal import Principal, Role
from authgate.services.credentials import hash_password
from authgate.services.errors import PrincipalNotFoundError
from authgate.services.token_store import TokenStore

logger = logging.getLogger(__name__)


class PrincipalService:
    """Service for principal lookups and admin operations."""

    def __init__(self, session: AsyncSession):
        self.session = session
        self.tokens = TokenStore(session)

    async def get_by_email(self, email: str) -> Principal | None:
        result = await self.session.execute(select(Principal).where(Principal.email == email))
        return result.scalar_one_or_none()

    async def get_by_id(self, principal_id: int) -> Principal | None:
        result = await self.session.execute(select(Principal).where(Principal.id == principal_id))
        return result.scalar_one_or_none()

    async def email_exists(self, email: str) -> bool:
        result = await self.session.execute(
            select(func.count(Principal.id)).where(Principal.email == email)
        )
        return (result.scalar() or 0) > 0

    async def _require(self, email: str) -> Principal:
        principal = await self.get_by_email(email)
        if principal is None:
            raise PrincipalNotFoundError(f"User {email} not found")
        return principal

    async def list_principals(self, locked: bool | None = None) -> list[Principal]:
        """List principals, optionally only locked (True) or only unlocked (False) ones."""
        query = select(Principal).order_by(Principal.id)
        if locked is not None:
            query = query.where(Principal.account_non_locked.is_(not locked))
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def lock(self, email: str) -> Principal:
        """Lock an account and revoke its outstanding tokens."""
        principal = await self._require(email)
        principal.account_non_locked = False
        revoked = await self.tokens.revoke_all_valid(principal.id)
        await self.session.commit()
        logger.info(f"Locked account {principal.id} ({revoked} tokens revoked)")
        return principal

    async def unlock(self, email: str) -> Principal:
        """Unlock an account and clear its failed-login counter."""
        principal = await self._require(email)
        principal.account_non_locked = True
        principal.failed_attempts = 0
        await self.session.commit()
        logger.info(f"Unlocked account {principal.id}")
        return principal

    async def delete(self, email: str) -> None:
        """Delete an account together with every token issued to it."""
        principal = await self._require(email)
        principal_id = principal.id
        await self.tokens.delete_for_principal(principal_id)
        await self.session.delete(principal)
        await self.session.commit()
        logger.info(f"Deleted account {principal_id}")

    async def delete_unconfirmed(self, created_before: datetime | None = None) -> int:
        """Delete accounts that were never activated, with their tokens.

        Args:
            created_before: Only delete accounts created before this instant.
                None deletes every unconfirmed account.

        Returns:
            Number of accounts deleted
        """
        query = select(Principal.id).where(Principal.enabled.is_(False))
        if created_before is not None:
            query = query.where(Principal.created_at < created_before)
        result = await self.session.execute(query)
        ids = list(result.scalars().all())
        if not ids:
            return 0

        await self.session.execute(
            delete(IssuedToken)
            .where(IssuedToken.principal_id.in_(ids))
            .execution_options(synchronize_session=False)
        )
        await self.session.execute(
            delete(Principal)
            .where(Principal.id.in_(ids))
            .execution_options(synchronize_session=False)
        )
        await self.session.commit()
        return len(ids)

    async def ensure_admin(self, email: str, password: str) -> Principal:
        """Create an enabled administrator unless the email is already registered."""
        existing = await self.get_by_email(email)
        if existing is not None:
            if existing.role != Role.ADMIN.value:
                logger.warning(f"Bootstrap admin email {email} belongs to a {existing.role} account")
            return existing

        principal = Principal(
            email=email,
            password_hash=hash_password(password),
            role=Role.ADMIN.value,
            enabled=True,
        )
        self.session.add(principal)
        await self.session.commit()
        await self.session.refresh(principal)

        logger.info(f"Created admin account: {email}")
        return principal
