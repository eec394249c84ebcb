"""
Health file writer for the flood watch monitor.

Writes a JSON health file at a configurable path with four fields:
- last_poll_ts: ISO timestamp of the most recent poll attempt.
- last_success_ts: ISO timestamp of the most recent successful device fetch.
- consecutive_failures: Device fetches failed in a row.
- alert_state: Current alert latch state (armed / fired).

The file is replaced atomically (temp file + rename) on every update so a
Docker HEALTHCHECK never reads a half-written document.

CHANGELOG:
- 2026-10-17: Remove the temp file when the write fails (FW-014)
- 2026-10-17: Initial creation (FW-012)

TODO:
- None
"""

from __future__ import annotations

import json
import os
from datetime import UTC, datetime
from pathlib import Path


class HealthWriter:
    """Writes monitor health status to a JSON file.

    Args:
        path: Filesystem path for the health JSON file. Accepts str or Path.
    """

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        self._last_poll_ts: str | None = None
        self._last_success_ts: str | None = None
        self._consecutive_failures: int = 0
        self._alert_state: str | None = None

    def record_poll(
        self,
        *,
        success: bool,
        consecutive_failures: int,
        alert_state: str | None = None,
    ) -> None:
        """Record a poll attempt and write the health file.

        Args:
            success: Whether the device fetch succeeded.
            consecutive_failures: Current failure streak from the device client.
            alert_state: Alert latch state after the cycle, if known.
        """
        now = datetime.now(tz=UTC).isoformat()
        self._last_poll_ts = now
        if success:
            self._last_success_ts = now
        self._consecutive_failures = consecutive_failures
        if alert_state is not None:
            self._alert_state = alert_state
        self._write()

    def _write(self) -> None:
        data = {
            "last_poll_ts": self._last_poll_ts,
            "last_success_ts": self._last_success_ts,
            "consecutive_failures": self._consecutive_failures,
            "alert_state": self._alert_state,
        }
        tmp = self.path.with_name(self.path.name + ".tmp")
        try:
            tmp.write_text(json.dumps(data))
            os.replace(tmp, self.path)
        except OSError:
            tmp.unlink(missing_ok=True)
            raise
