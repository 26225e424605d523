"""Revocation tracking for issued access-class tokens."""

import logging
from typing import Any

from sqlalchemy import delete, or_, select
from sqlalchemy.engine import CursorResult
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from authgate.core.logging import token_fingerprint
from authgate.models.issued_token import IssuedToken, TokenKind
from authgate.models.principal import Principal

logger = logging.getLogger(__name__)


class TokenStore:
    """Persisted revoked/expired state of every issued access-class token.

    A lookup miss is a normal negative answer (``is_valid`` is False for
    unknown tokens, ``revoke`` ignores them). Database failures propagate.
    Methods only flush; committing is left to the calling service so that a
    multi-step operation stays in one transaction.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def _find(self, token: str) -> IssuedToken | None:
        result = await self.session.execute(select(IssuedToken).where(IssuedToken.token == token))
        return result.scalar_one_or_none()

    async def save(
        self,
        principal_id: int,
        token: str,
        kind: TokenKind = TokenKind.ACCESS,
    ) -> IssuedToken:
        """Record a newly issued token as valid."""
        issued = IssuedToken(
            principal_id=principal_id,
            token=token,
            kind=kind.value,
            revoked=False,
            expired=False,
        )
        self.session.add(issued)
        await self.session.flush()
        logger.debug(
            "Stored %s token %s for principal %s", kind.value, token_fingerprint(token), principal_id
        )
        return issued

    async def is_valid(self, token: str) -> bool:
        """True only if the token is on record and neither revoked nor expired."""
        result = await self.session.execute(
            select(IssuedToken.revoked, IssuedToken.expired).where(IssuedToken.token == token)
        )
        row = result.one_or_none()
        if row is None:
            return False
        return not row.revoked and not row.expired

    async def revoke(self, token: str) -> None:
        """Mark a token revoked and expired. Unknown tokens are ignored."""
        issued = await self._find(token)
        if issued is None:
            return
        issued.revoked = True
        issued.expired = True
        await self.session.flush()

    async def revoke_all_valid(self, principal_id: int) -> int:
        """Revoke every currently valid token of a principal. Returns the count."""
        result = await self.session.execute(
            select(IssuedToken).where(
                IssuedToken.principal_id == principal_id,
                IssuedToken.revoked.is_(False),
                IssuedToken.expired.is_(False),
            )
        )
        valid = list(result.scalars().all())
        for issued in valid:
            issued.revoked = True
            issued.expired = True
        await self.session.flush()
        return len(valid)

    async def purge_revoked_or_expired(self) -> int:
        """Delete every revoked or expired token. Returns the count.

        Each token is first removed from its owner's ``tokens`` collection so
        no loaded principal keeps a reference to a deleted row.
        """
        result = await self.session.execute(
            select(IssuedToken)
            .where(or_(IssuedToken.revoked.is_(True), IssuedToken.expired.is_(True)))
            .options(selectinload(IssuedToken.principal).selectinload(Principal.tokens))
        )
        stale = list(result.scalars().all())
        for issued in stale:
            owner = issued.principal
            if owner is not None and issued in owner.tokens:
                owner.tokens.remove(issued)
            await self.session.delete(issued)
        await self.session.flush()
        return len(stale)

    async def delete_for_principal(self, principal_id: int) -> int:
        """Delete every token of a principal, valid or not. Returns the count."""
        result: CursorResult[Any] = await self.session.execute(  # type: ignore[assignment]
            delete(IssuedToken)
            .where(IssuedToken.principal_id == principal_id)
        )
        return result.rowcount
