"""
Connection Health Monitor
Periodically evicts notification channels that have been idle too long.
"""

import asyncio
import logging
from datetime import datetime, timedelta
from typing import Optional

from .registry import Connection, ConnectionRegistry

logger = logging.getLogger(__name__)

INACTIVE_CLOSE_CODE = 1000


class HealthMonitor:
    """Fixed-period sweep over the connection registry"""

    def __init__(
        self,
        registry: ConnectionRegistry,
        interval_seconds: float = 3600,
        inactivity_threshold_seconds: float = 1800,
    ):
        self.registry = registry
        self.interval_seconds = interval_seconds
        self.inactivity_threshold = timedelta(seconds=inactivity_threshold_seconds)
        self._task: Optional[asyncio.Task] = None

    async def sweep(self, now: Optional[datetime] = None) -> list[Connection]:
        """
        Remove idle connections from every container in one step, then close
        their channels. Returns the evicted connections.
        """
        evicted = self.registry.evict_idle(self.inactivity_threshold, now=now)
        for connection in evicted:
            await connection.close(code=INACTIVE_CLOSE_CODE, reason="Inactive connection")

        if evicted:
            logger.info(
                f"🧹 Evicted {len(evicted)} idle notification channels "
                f"(active now: {self.registry.active_connections})"
            )
        return evicted

    async def run(self) -> None:
        """Sweep loop - runs until cancelled"""
        logger.info(
            f"🩺 Connection health monitor started: every {self.interval_seconds}s, "
            f"threshold {int(self.inactivity_threshold.total_seconds())}s"
        )
        while True:
            await asyncio.sleep(self.interval_seconds)
            try:
                await self.sweep()
                logger.debug(f"📊 Connection stats: {self.registry.stats()}")
            except Exception as e:
                logger.error(f"❌ Error in connection health sweep: {e}")

    def start(self) -> asyncio.Task:
        if self._task is None or self._task.done():
            self._task = asyncio.create_task(self.run())
        return self._task

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("🩺 Connection health monitor stopped")
