"""Periodic execution of the scheduled jobs."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from nostr_rank.services.ranking_service import RankingService

logger = logging.getLogger(__name__)


class PeriodicScheduler:
    """Runs ``RankingService.run_scheduled_jobs`` every ``interval_seconds``."""

    def __init__(self, service: RankingService, interval_seconds: float) -> None:
        """Initialize the scheduler.

        Args:
            service: Service whose scheduled jobs are run
            interval_seconds: Seconds between the start of consecutive ticks
        """
        self._service = service
        self.interval_seconds = interval_seconds
        self._task: asyncio.Task[None] | None = None
        self._stop = asyncio.Event()
        self.ticks = 0

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.is_running:
            return
        self._stop.clear()
        self._task = asyncio.create_task(self._loop(), name="periodic-scheduler")

    async def stop(self) -> None:
        if self._task is None:
            return
        self._stop.set()
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None

    async def _loop(self) -> None:
        while not self._stop.is_set():
            self.ticks += 1
            try:
                await self._service.run_scheduled_jobs()
            except Exception:
                logger.exception("Scheduled tick %d failed", self.ticks)

            try:
                await asyncio.wait_for(self._stop.wait(), timeout=self.interval_seconds)
                break
            except TimeoutError:
                continue
