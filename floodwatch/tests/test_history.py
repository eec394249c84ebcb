"""
Unit tests for the rolling history buffer and time bucketing.

Tests verify:
- time_bucket floors device and ISO timestamps to 3-hour boundaries.
- Unparseable timestamps are used as their own label.
- Capacity is never exceeded; eviction is FIFO in arrival order.
- Trend compares the two newest points (rising / falling / stable).
- snapshot() is a read-only copy.

CHANGELOG:
- 2026-10-17: Initial creation (FW-005)

TODO:
- None
"""

from __future__ import annotations

import pytest
from floodwatch.src.history import HistoryBuffer, time_bucket
from floodwatch.src.models import HistoryPoint, Trend

# ---------------------------------------------------------------------------
# time_bucket
# ---------------------------------------------------------------------------


class TestTimeBucket:
    """Timestamps floor to 00, 03, ..., 21 hours."""

    @pytest.mark.parametrize(
        ("ts", "expected"),
        [
            ("2024-06-01 10:00:00", "2024-06-01 09:00"),
            ("2024-06-01 09:00:00", "2024-06-01 09:00"),
            ("2024-06-01 11:59:59", "2024-06-01 09:00"),
            ("2024-06-01 00:15:00", "2024-06-01 00:00"),
            ("2024-06-01 23:30:00", "2024-06-01 21:00"),
            ("2024-06-01T14:45:00", "2024-06-01 12:00"),
            ("2024-06-01T14:45:00Z", "2024-06-01 12:00"),
            ("2024-06-01T02:10:00+05:30", "2024-06-01 00:00"),
        ],
    )
    def test_floors_to_three_hours(self, ts: str, expected: str) -> None:
        assert time_bucket(ts) == expected

    @pytest.mark.parametrize("ts", ["not a time", "", "25:99"])
    def test_unparseable_returns_raw_string(self, ts: str) -> None:
        assert time_bucket(ts) == ts

    def test_forecast_and_device_share_labels(self) -> None:
        """Forecast dt_txt and device time land in the same bucket."""
        assert time_bucket("2024-06-01 09:00:00") == time_bucket("2024-06-01 10:42:00")


# ---------------------------------------------------------------------------
# Capacity and ordering
# ---------------------------------------------------------------------------


class TestCapacity:
    """Length never exceeds capacity; oldest entries are evicted first."""

    def test_default_capacity_is_48(self) -> None:
        assert HistoryBuffer().capacity == 48

    def test_fifty_inserts_keep_most_recent_48(self) -> None:
        buffer = HistoryBuffer()

        for i in range(50):
            buffer.append(f"label-{i}", float(i))

        points = buffer.snapshot()
        assert len(points) == 48
        assert [p.value for p in points] == [float(i) for i in range(2, 50)]
        assert all(p.time not in ("label-0", "label-1") for p in points)

    def test_length_never_exceeds_capacity(self) -> None:
        buffer = HistoryBuffer(capacity=5)

        for i in range(20):
            buffer.append("b", float(i))
            assert len(buffer) <= 5

    def test_arrival_order_not_label_order(self) -> None:
        buffer = HistoryBuffer()
        buffer.append("2024-06-01 12:00", 0.1)
        buffer.append("2024-06-01 09:00", 0.2)

        assert [p.time for p in buffer.snapshot()] == [
            "2024-06-01 12:00",
            "2024-06-01 09:00",
        ]

    def test_capacity_below_two_rejected(self) -> None:
        with pytest.raises(ValueError, match="capacity"):
            HistoryBuffer(capacity=1)

    def test_clear(self) -> None:
        buffer = HistoryBuffer()
        buffer.append("b", 0.1)

        buffer.clear()

        assert len(buffer) == 0


# ---------------------------------------------------------------------------
# Trend
# ---------------------------------------------------------------------------


class TestTrend:
    """Trend from the last two values only."""

    def test_empty_is_stable(self) -> None:
        assert HistoryBuffer().trend() is Trend.STABLE

    def test_single_point_is_stable(self) -> None:
        buffer = HistoryBuffer()
        buffer.append("b", 0.5)

        assert buffer.trend() is Trend.STABLE

    @pytest.mark.parametrize(
        ("values", "expected"),
        [
            ([0.01, 0.02], Trend.RISING),
            ([0.02, 0.01], Trend.FALLING),
            ([0.02, 0.02], Trend.STABLE),
            ([0.05, 0.01, 0.02], Trend.RISING),
            ([0.01, 0.09, 0.03], Trend.FALLING),
        ],
    )
    def test_last_two_values(self, values: list[float], expected: Trend) -> None:
        buffer = HistoryBuffer()
        for v in values:
            buffer.append("b", v)

        assert buffer.trend() is expected


class TestSnapshot:
    def test_snapshot_is_detached_copy(self) -> None:
        buffer = HistoryBuffer()
        buffer.append("b", 0.1)

        snap = buffer.snapshot()
        buffer.append("b", 0.2)

        assert snap == (HistoryPoint(time="b", value=0.1),)
        assert len(buffer) == 2

    def test_append_returns_point(self) -> None:
        point = HistoryBuffer().append("2024-06-01 09:00", 0.045)

        assert point == HistoryPoint(time="2024-06-01 09:00", value=0.045)
