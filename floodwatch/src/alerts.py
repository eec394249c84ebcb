"""
Hysteresis gate that turns a water level stream into discrete SMS alerts.

Two states, ARMED (initial) and FIRED:

- ARMED -> FIRED when level >= threshold: dispatch exactly one notification.
- FIRED -> ARMED when level < threshold: re-arm, no side effect.
- Anything else: no-op.

A level oscillating exactly across the threshold produces one notification
per upward crossing. Only the warning threshold latches; critical-level
crossings do not notify.

Dispatch is fire-and-forget: the send runs as a background task so a slow
or failing gateway never holds up the poll cycle. In-flight sends are
tracked until they finish and can be awaited with ``drain()`` on shutdown.

CHANGELOG:
- 2026-10-17: Run dispatch as a background task, add drain() (FW-014)
- 2026-10-17: Replace module-level sent flag with per-instance state (FW-006)
- 2026-10-17: Initial creation (FW-006)

TODO:
- None
"""

from __future__ import annotations

import asyncio
import logging
from typing import Protocol

from floodwatch.src.models import AlertNotification, AlertState

logger = logging.getLogger(__name__)


class Notifier(Protocol):
    """Anything that can deliver an AlertNotification."""

    async def send(self, notification: AlertNotification) -> bool: ...


def format_alert_message(level_m: float, sample_time: str) -> str:
    """Build the SMS text for a threshold crossing."""
    return f"Flood Alert: Water level {level_m:.3f} m at {sample_time}"


class AlertStateMachine:
    """Per-device alert latch with explicit state and reset.

    Args:
        destination: Phone number (or other gateway address) to alert.
        notifier: Delivery channel. When ``None`` the latch still operates
            but crossings are only logged.
    """

    def __init__(self, destination: str, notifier: Notifier | None = None) -> None:
        self._destination = destination
        self._notifier = notifier
        self._state = AlertState.ARMED
        self._pending: set[asyncio.Task[None]] = set()

    @property
    def state(self) -> AlertState:
        return self._state

    @property
    def pending_dispatches(self) -> int:
        """Number of notifications still being sent."""
        return len(self._pending)

    def reset(self) -> None:
        """Force the latch back to ARMED."""
        self._state = AlertState.ARMED

    async def evaluate(
        self,
        level_m: float,
        *,
        threshold_m: float,
        sample_time: str,
    ) -> bool:
        """Apply one poll cycle's water level to the latch.

        The notification for an upward crossing is started in the background
        and this call returns without waiting for it. Delivery failures are
        logged; the latch moves to FIRED regardless so a failing gateway is
        not hammered every cycle.

        Args:
            level_m: Current water level in metres.
            threshold_m: Warning threshold in effect for this cycle.
            sample_time: Device timestamp, included in the message.

        Returns:
            ``True`` if this call performed the ARMED -> FIRED transition.
        """
        if self._state is AlertState.ARMED and level_m >= threshold_m:
            self._state = AlertState.FIRED
            logger.warning(
                "Water level %.3f m reached warning threshold %.3f m at %s",
                level_m,
                threshold_m,
                sample_time,
            )
            self._start_dispatch(
                AlertNotification(
                    destination=self._destination,
                    message=format_alert_message(level_m, sample_time),
                )
            )
            return True

        if self._state is AlertState.FIRED and level_m < threshold_m:
            self._state = AlertState.ARMED
            logger.info(
                "Water level %.3f m back below %.3f m, alert re-armed",
                level_m,
                threshold_m,
            )

        return False

    async def drain(self) -> None:
        """Wait until every in-flight notification has finished."""
        if self._pending:
            logger.info("Waiting for %d pending alert dispatch(es)", len(self._pending))
            await asyncio.gather(*self._pending, return_exceptions=True)

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------

    def _start_dispatch(self, notification: AlertNotification) -> None:
        if self._notifier is None:
            logger.warning("No SMS gateway configured, alert not sent")
            return
        if not self._destination:
            logger.warning("No alert destination configured, alert not sent")
            return
        task = asyncio.create_task(
            self._send(self._notifier, notification), name="alert-dispatch"
        )
        # The set holds a strong reference until the task is done.
        self._pending.add(task)
        task.add_done_callback(self._on_dispatch_done)

    async def _send(self, notifier: Notifier, notification: AlertNotification) -> None:
        delivered = await notifier.send(notification)
        if not delivered:
            logger.warning("Alert dispatch to %s was not delivered", self._destination)

    def _on_dispatch_done(self, task: asyncio.Task[None]) -> None:
        self._pending.discard(task)
        if task.cancelled():
            logger.warning("Alert dispatch to %s was cancelled", self._destination)
            return
        exc = task.exception()
        if exc is not None:
            logger.error("Alert dispatch raised", exc_info=exc)
