"""Periodic auto-update for repositories with an update interval."""

from __future__ import annotations

import asyncio
import logging
import sys
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from git_sync.repository import Repository

logger = logging.getLogger(__name__)

# Configure logging to stderr
if not logger.handlers:
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s"))
    logger.addHandler(handler)
    logger.setLevel(logging.INFO)


class RepoScheduler:
    """Calls ``Repository.update`` every ``interval`` seconds.

    A failed tick is logged and the timer keeps running.
    """

    def __init__(self, repository: Repository, interval: float | None = None) -> None:
        """Initialize scheduler.

        Args:
            repository: Repository to keep updated.
            interval: Seconds between ticks, defaults to the repository's update_interval.
        """
        self._repository = repository
        self._interval = interval if interval is not None else repository.config.update_interval
        self._running = False
        self._task: asyncio.Task[None] | None = None
        self.ticks = 0

    @property
    def running(self) -> bool:
        return self._running

    async def _tick(self) -> None:
        name = self._repository.name
        try:
            if await self._repository.update():
                logger.debug("Auto-updated repo %s", name)
        except Exception:
            logger.exception("Failed auto-updating repo %s", name)
        finally:
            self.ticks += 1

    async def _loop(self) -> None:
        while self._running:
            await asyncio.sleep(self._interval)
            await self._tick()

    async def start(self) -> None:
        """Start the timer. The first tick fires after one interval."""
        if self._running:
            return
        if self._interval <= 0:
            raise ValueError(f"update interval must be positive, got {self._interval}")

        self._running = True
        self._task = asyncio.create_task(self._loop(), name=f"git-sync-{self._repository.name}")
        logger.info("Auto-update enabled for %s (interval: %s seconds)", self._repository.name, self._interval)

    async def stop(self) -> None:
        """Stop the timer."""
        self._running = False
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        logger.info("Auto-update stopped for %s", self._repository.name)
