"""
Fixed-capacity rolling history of water level samples.

Points are keyed by a 3-hour time-bucket label so they line up with the
3-hourly rainfall forecast when charted together. Several samples usually
share a bucket; the buffer keeps them all in arrival order.

CHANGELOG:
- 2026-10-17: Initial creation (FW-005)

TODO:
- None
"""

from __future__ import annotations

import logging
from collections import deque
from datetime import datetime

from floodwatch.src.models import HistoryPoint, Trend

logger = logging.getLogger(__name__)

DEFAULT_CAPACITY: int = 48
"""Number of points kept for charting."""

BUCKET_HOURS: int = 3
"""Width of a time bucket, matching the forecast API granularity."""

BUCKET_LABEL_FORMAT = "%Y-%m-%d %H:00"


def time_bucket(ts: str) -> str:
    """Floor a timestamp string to its 3-hour bucket label.

    Accepts the device format ``"2024-06-01 10:00:00"`` as well as ISO 8601
    (``T`` separator, optional offset or ``Z``). Aware timestamps are floored
    in their own offset.

    Args:
        ts: Timestamp string.

    Returns:
        ``"YYYY-MM-DD HH:00"`` with HH in {00, 03, ..., 21}, or *ts*
        unchanged when it cannot be parsed.
    """
    try:
        parsed = datetime.fromisoformat(ts.strip())
    except (ValueError, AttributeError):
        logger.debug("Unparseable timestamp %r used as its own bucket label", ts)
        return ts

    floored = parsed.replace(
        hour=parsed.hour - parsed.hour % BUCKET_HOURS,
        minute=0,
        second=0,
        microsecond=0,
    )
    return floored.strftime(BUCKET_LABEL_FORMAT)


class HistoryBuffer:
    """Append-only FIFO of HistoryPoint with a hard capacity.

    Once full, each append evicts the oldest point. Order is arrival order,
    not bucket order.

    Args:
        capacity: Maximum number of points retained (>= 2, default 48).

    Raises:
        ValueError: If *capacity* is below 2 (a trend needs two points).
    """

    def __init__(self, capacity: int = DEFAULT_CAPACITY) -> None:
        if capacity < 2:
            raise ValueError(f"History capacity must be >= 2 (got {capacity})")
        self._capacity = capacity
        self._points: deque[HistoryPoint] = deque(maxlen=capacity)

    @property
    def capacity(self) -> int:
        return self._capacity

    def __len__(self) -> int:
        return len(self._points)

    def append(self, label: str, level_m: float) -> HistoryPoint:
        """Push a point to the end, evicting the oldest beyond capacity.

        Args:
            label: Time-bucket label (see :func:`time_bucket`).
            level_m: Water level in metres.

        Returns:
            The stored HistoryPoint.
        """
        point = HistoryPoint(time=label, value=level_m)
        self._points.append(point)
        return point

    def trend(self) -> Trend:
        """Compare the two newest points.

        Returns:
            ``rising`` if the newest is strictly greater than the one before,
            ``falling`` if strictly less, otherwise (or with fewer than two
            points) ``stable``.
        """
        if len(self._points) < 2:
            return Trend.STABLE
        previous, latest = self._points[-2].value, self._points[-1].value
        if latest > previous:
            return Trend.RISING
        if latest < previous:
            return Trend.FALLING
        return Trend.STABLE

    def snapshot(self) -> tuple[HistoryPoint, ...]:
        """Return an immutable copy of the points, oldest first."""
        return tuple(self._points)

    def clear(self) -> None:
        self._points.clear()
