"""Expiry sweeper - periodically removes unconfirmed accounts and dead tokens."""

import asyncio
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from authgate.core import async_session_maker
from authgate.core.config import settings
from authgate.core.logging import get_logger
from authgate.services.principals import PrincipalService
from authgate.services.token_store import TokenStore

logger = get_logger("expiry_sweeper")


@dataclass(frozen=True)
class SweepResult:
    accounts_deleted: int
    tokens_purged: int


class ExpirySweeper:
    """Background service with two independent cleanup loops.

    One deletes accounts that were never activated (older than the grace
    window), the other deletes revoked or expired token records. Each run
    uses its own session; a failing run is logged and the loop carries on.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession] | None = None,
        interval_seconds: float | None = None,
        initial_delay_seconds: float | None = None,
        grace_hours: float | None = None,
    ):
        self._session_factory = session_factory or async_session_maker
        self._interval = (
            interval_seconds if interval_seconds is not None else settings.sweep_interval_seconds
        )
        self._initial_delay = (
            initial_delay_seconds
            if initial_delay_seconds is not None
            else settings.sweep_initial_delay_seconds
        )
        self._grace_hours = (
            grace_hours if grace_hours is not None else settings.unconfirmed_account_grace_hours
        )
        self._running = False
        self._tasks: list[asyncio.Task] = []

    @property
    def is_running(self) -> bool:
        return self._running

    def unconfirmed_cutoff(self, now: datetime | None = None) -> datetime | None:
        """Creation time before which unconfirmed accounts are deleted (None means all)."""
        if self._grace_hours <= 0:
            return None
        return (now or datetime.now(UTC)) - timedelta(hours=self._grace_hours)

    async def start(self) -> None:
        """Start both background loops."""
        if self._running:
            logger.warning("Expiry sweeper is already running")
            return

        self._running = True
        self._tasks = [
            asyncio.create_task(self._loop("unconfirmed accounts", self.sweep_unconfirmed_accounts)),
            asyncio.create_task(self._loop("revoked tokens", self.purge_tokens)),
        ]
        logger.info(
            f"Expiry sweeper started (interval: {self._interval}s, "
            f"grace: {self._grace_hours}h)"
        )

    async def stop(self) -> None:
        """Stop both background loops."""
        self._running = False
        for task in self._tasks:
            task.cancel()
        for task in self._tasks:
            try:
                await task
            except asyncio.CancelledError:
                pass
        self._tasks = []
        logger.info("Expiry sweeper stopped")

    async def _loop(self, name: str, job) -> None:
        # Let the app finish starting before the first run
        await asyncio.sleep(self._initial_delay)

        while self._running:
            try:
                await job()
            except Exception as e:
                logger.exception(f"Error sweeping {name}: {e}")

            await asyncio.sleep(self._interval)

    async def sweep_unconfirmed_accounts(self) -> int:
        """Delete never-activated accounts past the grace window, with their tokens."""
        async with self._session_factory() as db:
            try:
                deleted = await PrincipalService(db).delete_unconfirmed(self.unconfirmed_cutoff())
            except Exception:
                await db.rollback()
                raise

        if deleted > 0:
            logger.info(f"Expiry sweep: deleted {deleted} unconfirmed accounts")
        return deleted

    async def purge_tokens(self) -> int:
        """Delete every revoked or expired token record."""
        async with self._session_factory() as db:
            try:
                purged = await TokenStore(db).purge_revoked_or_expired()
                await db.commit()
            except Exception:
                await db.rollback()
                raise

        if purged > 0:
            logger.info(f"Expiry sweep: purged {purged} revoked or expired tokens")
        return purged

    async def run_now(self) -> SweepResult:
        """Run both jobs once.

        Returns:
            Counts of deleted accounts and purged tokens
        """
        accounts = await self.sweep_unconfirmed_accounts()
        tokens = await self.purge_tokens()
        return SweepResult(accounts_deleted=accounts, tokens_purged=tokens)

