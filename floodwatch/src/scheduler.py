"""
Periodic task runner with skip-if-busy and cooperative cancellation.

Each PeriodicTask wraps one async body (device poll, forecast refresh). A
tick that arrives while the previous run is still in flight is skipped, not
queued. The loop stops when the shared shutdown event is set; the body that
is running at that moment is allowed to finish.

CHANGELOG:
- 2026-10-17: Initial creation (FW-010)

TODO:
- None
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Awaitable, Callable
from typing import Any

logger = logging.getLogger(__name__)


class PeriodicTask:
    """Runs an async callable on a fixed interval.

    Args:
        name: Label used in log messages.
        interval_s: Seconds to wait after each run before the next one.
        body: Zero-argument coroutine function executed on each tick.
    """

    def __init__(
        self,
        name: str,
        interval_s: float,
        body: Callable[[], Awaitable[Any]],
    ) -> None:
        if interval_s <= 0:
            raise ValueError(f"interval_s must be > 0 (got {interval_s})")
        self.name = name
        self.interval_s = interval_s
        self._body = body
        self._busy = False
        self.runs: int = 0
        self.skipped: int = 0

    @property
    def busy(self) -> bool:
        """True while a run of the body is in flight."""
        return self._busy

    async def tick(self) -> bool:
        """Run the body once unless a previous run is still in flight.

        Exceptions from the body are logged and swallowed so the caller's
        loop is never broken.

        Returns:
            ``True`` if the body ran, ``False`` if the tick was skipped.
        """
        if self._busy:
            self.skipped += 1
            logger.debug("Task '%s' still running, tick skipped", self.name)
            return False

        self._busy = True
        try:
            await self._body()
        except Exception:
            logger.error("Task '%s' iteration failed", self.name, exc_info=True)
        finally:
            self._busy = False
            self.runs += 1
        return True

    async def run(self, shutdown_event: asyncio.Event) -> None:
        """Tick repeatedly until *shutdown_event* is set.

        Args:
            shutdown_event: Cancellation token shared by all loops.
        """
        logger.info("Task '%s' started (interval=%ss)", self.name, self.interval_s)
        while not shutdown_event.is_set():
            await self.tick()
            # Use wait with timeout so we can check shutdown between sleeps
            with contextlib.suppress(TimeoutError):
                await asyncio.wait_for(shutdown_event.wait(), timeout=self.interval_s)
        logger.info("Task '%s' stopped", self.name)
