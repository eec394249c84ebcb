"""
Flood watch monitor entrypoint and loop runner.

Runs up to two periodic tasks concurrently:
1. **Device poll**: fetch one sample, normalize, update history and alert
   latch, append to the daily log, publish a new StatusSnapshot.
2. **Forecast refresh**: fetch the 3-hourly rainfall forecast (only when an
   OpenWeatherMap key is configured).

Both tasks are resilient: an exception in one iteration is logged and does
not stop the task or affect the other one. Shutdown sets a shared
asyncio.Event; each task finishes its current iteration and exits.

By default the loops run inside the FastAPI app (see api.main) served by
uvicorn. With API_ENABLED=false the loops run headless and SIGTERM/SIGINT
trigger the shutdown event directly.

Structured JSON logging is used for all events.

CHANGELOG:
- 2026-10-17: Task names in JSON logs, mask alert destination, drain
  pending alert sends on shutdown (FW-014)
- 2026-10-17: Serve the HTTP API by default, keep a headless mode (FW-013)
- 2026-10-17: Initial creation (FW-010)

TODO:
- None
"""

from __future__ import annotations

import asyncio
import hashlib
import json
import logging
import signal
import sys
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from floodwatch.src.scheduler import PeriodicTask

if TYPE_CHECKING:
    from floodwatch.src.config import MonitorSettings
    from floodwatch.src.service import TelemetryMonitor

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Structured JSON logging setup
# ---------------------------------------------------------------------------


class JsonLogFormatter(logging.Formatter):
    """One JSON object per record.

    Records emitted from inside an asyncio task carry the task name
    (``device-poll``, ``forecast``, ``alert-dispatch``) so interleaved loop
    output can be told apart.
    """

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, str] = {
            "ts": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        task_name = getattr(record, "taskName", None)
        if task_name:
            entry["task"] = task_name
        if record.exc_info and record.exc_info[1] is not None:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry)


def configure_logging(level: int | str = logging.INFO) -> None:
    """Route all monitor logging through one JSON handler on stderr.

    Args:
        level: Root level, as a number or a name such as ``"DEBUG"``.
    """
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(JsonLogFormatter())
    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level.upper() if isinstance(level, str) else level)


def _masked_token(value: str | None) -> str:
    """Return a short non-reversible fingerprint of an API key."""
    if not value:
        return "empty"
    digest = hashlib.sha256(value.encode("utf-8")).hexdigest()[:10]
    return f"len={len(value)} sha256={digest}"


def _masked_destination(value: str) -> str:
    """Keep only the last four digits of the alert phone number."""
    if not value:
        return "unset"
    if len(value) <= 4:
        return "*" * len(value)
    return "*" * (len(value) - 4) + value[-4:]


# ---------------------------------------------------------------------------
# Startup config logging
# ---------------------------------------------------------------------------


def log_config_summary(settings: MonitorSettings) -> None:
    """Log a config summary at startup, excluding secrets.

    The SMS and forecast API keys are logged only as fingerprints and the
    alert phone number only by its last four digits.
    """
    logger.info(
        "Flood watch starting with config: "
        "device_url=%s, poll_interval_s=%s, request_timeout_s=%s, "
        "warning_level_m=%s, critical_level_m=%s, history_capacity=%s, "
        "alert_destination=%s, sms_gateway_url=%s, log_dir=%s, "
        "log_tail_size=%s, forecast_city=%s, forecast_interval_s=%s, "
        "api_enabled=%s, sms_key_masked=%s, openweather_key_masked=%s",
        settings.device_url,
        settings.poll_interval_s,
        settings.request_timeout_s,
        settings.warning_level_m,
        settings.critical_level_m,
        settings.history_capacity,
        _masked_destination(settings.alert_destination),
        settings.sms_gateway_url,
        settings.log_dir,
        settings.log_tail_size,
        settings.forecast_city,
        settings.forecast_interval_s,
        settings.api_enabled,
        _masked_token(settings.sms_api_key),
        _masked_token(settings.openweather_api_key),
    )


# ---------------------------------------------------------------------------
# Concurrent runner with graceful shutdown
# ---------------------------------------------------------------------------


def build_tasks(
    monitor: TelemetryMonitor,
    *,
    poll_interval_s: float,
    forecast_interval_s: float,
) -> list[PeriodicTask]:
    """Create the periodic tasks for *monitor*.

    The forecast task is only created when the monitor has a forecast client.
    """
    tasks = [PeriodicTask("device-poll", poll_interval_s, monitor.poll_once)]
    if monitor.forecast_client is not None:
        tasks.append(
            PeriodicTask("forecast", forecast_interval_s, monitor.refresh_forecast)
        )
    return tasks


async def run_loops(
    *,
    monitor: TelemetryMonitor,
    poll_interval_s: float,
    forecast_interval_s: float,
    shutdown_event: asyncio.Event,
) -> None:
    """Run all periodic tasks concurrently until shutdown.

    Args:
        monitor: The telemetry monitor to drive.
        poll_interval_s: Seconds between device polls.
        forecast_interval_s: Seconds between forecast refreshes.
        shutdown_event: Event to signal graceful shutdown.
    """
    tasks = build_tasks(
        monitor,
        poll_interval_s=poll_interval_s,
        forecast_interval_s=forecast_interval_s,
    )
    logger.info("Starting %d periodic task(s)", len(tasks))
    runners = [
        asyncio.create_task(task.run(shutdown_event), name=task.name) for task in tasks
    ]
    await asyncio.gather(*runners)
    logger.info("Shutdown complete")


# ---------------------------------------------------------------------------
# Entrypoint
# ---------------------------------------------------------------------------


async def async_main(settings: MonitorSettings) -> None:
    """Headless entrypoint: build the monitor and run loops until a signal.

    Sets up SIGTERM/SIGINT handlers to trigger graceful shutdown.
    """
    from floodwatch.src.health import HealthWriter
    from floodwatch.src.service import build_monitor

    shutdown_event = asyncio.Event()

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGTERM, signal.SIGINT):
        loop.add_signal_handler(
            sig,
            lambda: _handle_signal(shutdown_event),
        )

    monitor = build_monitor(settings, health=HealthWriter(settings.health_path))
    await run_loops(
        monitor=monitor,
        poll_interval_s=settings.poll_interval_s,
        forecast_interval_s=settings.forecast_interval_s,
        shutdown_event=shutdown_event,
    )
    await monitor.drain_dispatches()


def _handle_signal(shutdown_event: asyncio.Event) -> None:
    """Handle SIGTERM/SIGINT by setting the shutdown event.

    Args:
        shutdown_event: The event to set for graceful shutdown.
    """
    logger.info("Received shutdown signal, initiating graceful shutdown")
    shutdown_event.set()


def main() -> None:
    """Synchronous entrypoint for the monitor."""
    configure_logging()

    from floodwatch.src.config import MonitorSettings

    settings = MonitorSettings()
    log_config_summary(settings)

    if not settings.api_enabled:
        asyncio.run(async_main(settings))
        return

    import uvicorn

    from floodwatch.src.api.main import create_app

    uvicorn.run(
        create_app(settings),
        host=settings.api_host,
        port=settings.api_port,
        log_config=None,
    )


if __name__ == "__main__":
    main()
