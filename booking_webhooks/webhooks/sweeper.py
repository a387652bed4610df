"""Background sweep of delivery log entries stuck in ``pending``."""

from __future__ import annotations

import asyncio
import logging
from datetime import UTC, datetime, timedelta

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from booking_webhooks.webhooks.config import WebhookConfigLoader
from booking_webhooks.webhooks.repository import SqlDeliveryLogStore

logger = logging.getLogger(__name__)

STALE_PENDING_MESSAGE = "Delivery did not complete"


class PendingLogSweeper:
    """Marks log entries left pending by an interrupted delivery as failed."""

    def __init__(self, db_session_factory: async_sessionmaker[AsyncSession]):
        """
        Initialize the sweeper.

        Args:
            db_session_factory: Async session factory for database operations
        """
        self._running = False
        self._task: asyncio.Task | None = None
        self._db_session_factory = db_session_factory

    async def start(self) -> None:
        """Start sweeping."""
        if self._running:
            logger.warning("PendingLogSweeper is already running")
            return

        self._running = True
        self._task = asyncio.create_task(self._sweep_loop())
        logger.info("PendingLogSweeper started")

    async def stop(self) -> None:
        """Stop sweeping."""
        self._running = False
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        logger.info("PendingLogSweeper stopped")

    async def sweep(self, now: datetime | None = None) -> int:
        """Fail entries pending for longer than ``pending_timeout_minutes``."""
        settings = WebhookConfigLoader.get_config()
        now = now or datetime.now(UTC)
        cutoff = now - timedelta(minutes=settings.pending_timeout_minutes)

        async with self._db_session_factory() as session:
            swept = await SqlDeliveryLogStore(session).fail_stale_pending(
                cutoff, STALE_PENDING_MESSAGE
            )

        if swept:
            logger.warning("Marked %d stale pending webhook log(s) as failed", swept)
        return swept

    async def _sweep_loop(self) -> None:
        """Main sweeping loop."""
        while self._running:
            try:
                await self.sweep()
            except asyncio.CancelledError:
                break
            except Exception as e:
                logger.error("Error in pending log sweeper: %s", e)
            await asyncio.sleep(WebhookConfigLoader.get_config().sweep_interval_seconds)
