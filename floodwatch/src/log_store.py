"""
Append-only, day-partitioned JSONL store for raw telemetry records.

Each calendar day (UTC) gets one file ``<log_dir>/<YYYY-MM-DD>.jsonl``.
Records are written as one JSON object per line and never rewritten or
deleted. Rollover is implicit: the partition is chosen from the clock at
every call.

Operations:
- append(record): serialize and append one line, creating the partition.
- tail(n): last n records of today's partition, oldest first.
- count(): number of records in today's partition.

Blocking file I/O is exposed through ``append_async`` / ``tail_async`` which
run in a worker thread; a started write always completes even if the
awaiting task is cancelled.

CHANGELOG:
- 2026-10-17: Reject non-finite numbers, read lines as bytes (FW-014)
- 2026-10-17: Initial creation (FW-008)

TODO:
- None
"""

from __future__ import annotations

import asyncio
import json
import logging
import threading
from collections import deque
from collections.abc import Callable
from datetime import UTC, date, datetime
from pathlib import Path
from typing import Any

from floodwatch.src.errors import LogStoreError

logger = logging.getLogger(__name__)

DEFAULT_TAIL_SIZE: int = 10


def _utc_now() -> datetime:
    return datetime.now(tz=UTC)


class LogStore:
    """Daily JSONL log with atomic single-line appends.

    A process-wide lock serializes appends so lines from concurrent callers
    never interleave; each line is emitted with a single ``write`` on a file
    opened in append mode and flushed before the lock is released.

    Args:
        log_dir: Directory holding the daily partitions. Accepts ``str`` or
            ``pathlib.Path``; created on first append.
        clock: Returns the current time; the UTC date selects the partition.

    Usage::

        store = LogStore("logs")
        store.append({"time": "2024-06-01 10:00:00", "water_level_m": 0.045})
        latest = store.tail(10)
    """

    def __init__(
        self,
        log_dir: str | Path,
        *,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        self._log_dir = Path(log_dir)
        self._clock = clock
        self._lock = threading.Lock()

    @property
    def log_dir(self) -> Path:
        return self._log_dir

    def partition_path(self, day: date | None = None) -> Path:
        """Return the file path for *day* (default: today in UTC)."""
        if day is None:
            day = self._clock().astimezone(UTC).date()
        return self._log_dir / f"{day.isoformat()}.jsonl"

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def append(self, record: dict[str, Any]) -> Path:
        """Append *record* as one line to today's partition.

        Non-finite numbers (NaN, Infinity) are not valid JSON and are rejected.

        Args:
            record: JSON-serializable mapping.

        Returns:
            Path of the partition written to.

        Raises:
            LogStoreError: If the directory or file cannot be written.
            ValueError: If *record* contains a non-finite number.
            TypeError: If *record* is not JSON-serializable.
        """
        line = json.dumps(record, separators=(",", ":"), allow_nan=False) + "\n"
        with self._lock:
            path = self.partition_path()
            try:
                self._log_dir.mkdir(parents=True, exist_ok=True)
                with path.open("a", encoding="utf-8") as fh:
                    fh.write(line)
                    fh.flush()
            except OSError as exc:
                raise LogStoreError(f"Failed to append to {path}: {exc}") from exc
        return path

    def tail(self, n: int = DEFAULT_TAIL_SIZE) -> list[dict[str, Any]]:
        """Return the last *n* records of today's partition in arrival order.

        Lines that are not valid UTF-8 JSON objects, or that hold non-finite
        numbers, are skipped with a warning.

        Args:
            n: Maximum number of records to return.

        Returns:
            Up to *n* records, newest last. Empty list when the partition is
            missing or empty, or when n < 1.

        Raises:
            LogStoreError: If the partition exists but cannot be read.
        """
        if n < 1:
            return []
        path = self.partition_path()
        records: deque[dict[str, Any]] = deque(maxlen=n)
        try:
            with path.open("rb") as fh:
                for lineno, line in enumerate(fh, start=1):
                    record = _parse_line(line, path, lineno)
                    if record is not None:
                        records.append(record)
        except FileNotFoundError:
            return []
        except OSError as exc:
            raise LogStoreError(f"Failed to read {path}: {exc}") from exc
        return list(records)

    def count(self) -> int:
        """Number of non-blank lines in today's partition (0 if missing)."""
        path = self.partition_path()
        try:
            with path.open("rb") as fh:
                return sum(1 for line in fh if line.strip())
        except FileNotFoundError:
            return 0
        except OSError as exc:
            raise LogStoreError(f"Failed to read {path}: {exc}") from exc

    async def append_async(self, record: dict[str, Any]) -> Path:
        """Run :meth:`append` in a worker thread."""
        return await asyncio.to_thread(self.append, record)

    async def tail_async(self, n: int = DEFAULT_TAIL_SIZE) -> list[dict[str, Any]]:
        """Run :meth:`tail` in a worker thread."""
        return await asyncio.to_thread(self.tail, n)


def _reject_constant(name: str) -> Any:
    raise ValueError(f"non-finite number {name}")


def _parse_line(line: bytes, path: Path, lineno: int) -> dict[str, Any] | None:
    if not line.strip():
        return None
    try:
        record = json.loads(line.decode("utf-8"), parse_constant=_reject_constant)
    except UnicodeDecodeError:
        logger.warning("Skipping undecodable log line %s:%d", path.name, lineno)
        return None
    except ValueError:
        logger.warning("Skipping malformed log line %s:%d", path.name, lineno)
        return None
    if not isinstance(record, dict):
        logger.warning("Skipping non-object log line %s:%d", path.name, lineno)
        return None
    return record
