"""
Background loop that runs the auto-cancel sweep on a fixed interval.

Usage:
    scheduler = SweepScheduler(session_factory, broadcaster, interval_seconds=3600)
    task = asyncio.create_task(scheduler.run())   # background loop
    scheduler.stop()
"""
import asyncio
import logging
from datetime import timedelta

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from servicebay.core.broadcast import Broadcaster
from servicebay.core.lifecycle import AUTO_CANCEL_AFTER, StatusTransitionEngine
from servicebay.core.records import ServiceRecordStore

logger = logging.getLogger("servicebay.scheduler")


class SweepScheduler:
    """
    Args:
        session_factory:   Opens a fresh session for each sweep.
        broadcaster:       Receives every record the sweep cancels.
        interval_seconds:  Seconds between sweeps.
        auto_cancel_after: Age at which a pending job is cancelled.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        broadcaster: Broadcaster,
        interval_seconds: float = 3600,
        auto_cancel_after: timedelta = AUTO_CANCEL_AFTER,
    ):
        self._session_factory = session_factory
        self._broadcaster = broadcaster
        self._interval = interval_seconds
        self._auto_cancel_after = auto_cancel_after
        self._running = False

    @property
    def running(self) -> bool:
        return self._running

    async def run_once(self) -> int:
        """Run a single sweep and return how many records it cancelled."""
        async with self._session_factory() as session:
            engine = StatusTransitionEngine(ServiceRecordStore(session), self._broadcaster, self._auto_cancel_after)
            cancelled = await engine.auto_cancel_sweep()
        return len(cancelled)

    async def run(self) -> None:
        """Background loop: sweep every interval until stopped."""
        self._running = True
        logger.info("Auto-cancel scheduler started (every %ss)", self._interval)

        while self._running:
            await asyncio.sleep(self._interval)
            if not self._running:
                break
            try:
                await self.run_once()
            except Exception:
                # Unswept records stay pending, so the next tick picks them up
                logger.exception("Auto-cancel sweep failed")

    def stop(self) -> None:
        """Signal the background loop to exit."""
        self._running = False
        logger.info("Auto-cancel scheduler stopped")
