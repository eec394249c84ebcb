"""
Telemetry monitor: runs one poll cycle and publishes the resulting state.

A cycle fetches one sample from the device and processes it in a fixed
order against that same sample:

1. normalize (units + flow dead band)
2. history append and trend
3. alert evaluation (may start one background SMS send)
4. log append and tail read

The new StatusSnapshot is then published with a single reference swap, so
readers see either the previous cycle's state or this one, never a mix.
A failed fetch publishes nothing; the previous snapshot stays available.
A failure in one step (log I/O, SMS dispatch) is logged and does not stop
the remaining steps.

CHANGELOG:
- 2026-10-17: Drain background alert sends on shutdown (FW-014)
- 2026-10-17: Add forecast refresh alongside the device cycle (FW-011)
- 2026-10-17: Initial creation (FW-010)

TODO:
- None
"""

from __future__ import annotations

import asyncio
import logging
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from floodwatch.src.alerts import AlertStateMachine
from floodwatch.src.device import DeviceClient
from floodwatch.src.errors import ConfigurationMissingError, TransientFetchError
from floodwatch.src.forecast import ForecastClient, summarize
from floodwatch.src.history import HistoryBuffer, time_bucket
from floodwatch.src.log_store import LogStore
from floodwatch.src.models import ForecastSnapshot, StatusSnapshot, TelemetrySample
from floodwatch.src.normalizer import normalize
from floodwatch.src.notifier import SmsNotifier

if TYPE_CHECKING:
    from floodwatch.src.config import MonitorSettings
    from floodwatch.src.health import HealthWriter

logger = logging.getLogger(__name__)


class TelemetryMonitor:
    """Single-device monitor owning history, alert latch and log store.

    Args:
        device: Client for the sensor device endpoint.
        log_store: Daily JSONL store for raw payloads.
        history: Rolling water level history.
        alerts: Alert hysteresis state machine.
        warning_level_m: Default warning threshold in metres.
        critical_level_m: Default critical level in metres.
        log_tail_size: Number of log records included in each snapshot.
        forecast: Rainfall forecast client, or ``None`` when not configured.
        health: Health file writer, or ``None`` to skip health writes.
    """

    def __init__(
        self,
        *,
        device: DeviceClient,
        log_store: LogStore,
        history: HistoryBuffer,
        alerts: AlertStateMachine,
        warning_level_m: float = 0.04,
        critical_level_m: float = 0.05,
        log_tail_size: int = 10,
        forecast: ForecastClient | None = None,
        health: HealthWriter | None = None,
    ) -> None:
        self.device = device
        self.log_store = log_store
        self.history = history
        self.alerts = alerts
        self.forecast_client = forecast
        self._health = health
        self._warning_level_m = warning_level_m
        self._critical_level_m = critical_level_m
        self._log_tail_size = log_tail_size
        self._cycle_lock = asyncio.Lock()

        self._status: StatusSnapshot | None = None
        self._latest_sample: TelemetrySample | None = None
        self._log_tail: tuple[dict[str, Any], ...] = ()
        self._forecast = ForecastSnapshot(
            summary="Loading..." if forecast is not None else "No API key"
        )

    # ------------------------------------------------------------------
    # Read-only views
    # ------------------------------------------------------------------

    @property
    def status(self) -> StatusSnapshot | None:
        """Latest fully-updated snapshot, or ``None`` before the first cycle."""
        return self._status

    @property
    def latest_sample(self) -> TelemetrySample | None:
        return self._latest_sample

    @property
    def forecast(self) -> ForecastSnapshot:
        return self._forecast

    @property
    def warning_level_m(self) -> float:
        return self._warning_level_m

    @property
    def critical_level_m(self) -> float:
        return self._critical_level_m

    # ------------------------------------------------------------------
    # Cycles
    # ------------------------------------------------------------------

    async def poll_once(self) -> StatusSnapshot | None:
        """Fetch one sample from the device and process it.

        Returns:
            The newly published snapshot, or ``None`` if the fetch failed
            (the previous snapshot is left in place).
        """
        sample = await self.device.fetch()
        if sample is None:
            self._record_health(success=False)
            return None

        snapshot = await self.ingest(sample)
        self._record_health(success=True)
        return snapshot

    async def ingest(self, sample: TelemetrySample) -> StatusSnapshot:
        """Run the processing steps for *sample* and publish the result.

        Cycles are serialized; two samples are never processed interleaved.

        Args:
            sample: A parsed device reading.

        Returns:
            The published StatusSnapshot.
        """
        async with self._cycle_lock:
            metrics = normalize(sample)
            self._apply_threshold_overrides(sample)

            self.history.append(time_bucket(sample.time), metrics.water_level_m)
            trend = self.history.trend()

            await self.alerts.evaluate(
                metrics.water_level_m,
                threshold_m=self._warning_level_m,
                sample_time=sample.time,
            )

            await self._append_log(sample)

            snapshot = StatusSnapshot(
                sample_time=sample.time,
                metrics=metrics,
                trend=trend,
                history=self.history.snapshot(),
                alert_state=self.alerts.state,
                warning_level_m=self._warning_level_m,
                critical_level_m=self._critical_level_m,
                tamper=sample.tamper,
                warning=sample.warning,
                critical=sample.critical,
                system=sample.system,
                log_tail=self._log_tail,
                updated_at=datetime.now(tz=UTC),
            )
            self._latest_sample = sample
            self._status = snapshot

        logger.info(
            "Cycle complete: level=%s m trend=%s alert=%s",
            metrics.water_level,
            trend.value,
            snapshot.alert_state.value,
        )
        return snapshot

    async def refresh_forecast(self) -> ForecastSnapshot:
        """Fetch the rainfall forecast and publish it.

        On failure the previous points are kept and the summary reports the
        failure. Without a forecast client this is a no-op.
        """
        if self.forecast_client is None:
            return self._forecast

        try:
            points = await self.forecast_client.fetch()
        except TransientFetchError as exc:
            logger.warning("%s", exc)
            self._forecast = ForecastSnapshot(
                points=self._forecast.points,
                summary="Weather fetch failed",
                updated_at=self._forecast.updated_at,
            )
            return self._forecast

        self._forecast = ForecastSnapshot(
            points=tuple(points),
            summary=summarize(points),
            updated_at=datetime.now(tz=UTC),
        )
        return self._forecast

    async def drain_dispatches(self) -> None:
        """Wait for alert notifications started by earlier cycles to finish."""
        await self.alerts.drain()

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _apply_threshold_overrides(self, sample: TelemetrySample) -> None:
        # Device-supplied levels stick until the device sends new ones.
        if sample.warning_level_m and sample.warning_level_m > 0:
            self._warning_level_m = sample.warning_level_m
        if sample.critical_level_m and sample.critical_level_m > 0:
            self._critical_level_m = sample.critical_level_m

    async def _append_log(self, sample: TelemetrySample) -> None:
        try:
            await self.log_store.append_async(sample.raw)
        except Exception:
            logger.error("Log append failed for sample at %s", sample.time, exc_info=True)

        try:
            self._log_tail = tuple(await self.log_store.tail_async(self._log_tail_size))
        except Exception:
            logger.error("Log tail read failed, keeping previous tail", exc_info=True)

    def _record_health(self, *, success: bool) -> None:
        if self._health is None:
            return
        try:
            self._health.record_poll(
                success=success,
                consecutive_failures=self.device.consecutive_failures,
                alert_state=self.alerts.state.value,
            )
        except Exception:
            logger.warning("Failed to write health file", exc_info=True)


# ---------------------------------------------------------------------------
# Factory
# ---------------------------------------------------------------------------


def build_monitor(
    settings: MonitorSettings,
    *,
    health: HealthWriter | None = None,
) -> TelemetryMonitor:
    """Wire a TelemetryMonitor from settings.

    SMS dispatch and the rainfall forecast degrade to disabled (with a
    warning) when their configuration is missing.
    """
    notifier: SmsNotifier | None = None
    if settings.sms_gateway_url:
        notifier = SmsNotifier(
            settings.sms_gateway_url,
            api_key=settings.sms_api_key,
            sender_id=settings.sms_sender_id,
            timeout_s=settings.request_timeout_s,
        )
    else:
        logger.warning("SMS_GATEWAY_URL not set, flood alerts will only be logged")

    forecast: ForecastClient | None = None
    try:
        forecast = ForecastClient(
            settings.openweather_api_key,
            city=settings.forecast_city,
            timeout_s=settings.request_timeout_s,
        )
    except ConfigurationMissingError as exc:
        logger.warning("Rainfall forecast disabled: %s", exc)

    return TelemetryMonitor(
        device=DeviceClient(settings.device_url, timeout_s=settings.request_timeout_s),
        log_store=LogStore(settings.log_dir),
        history=HistoryBuffer(settings.history_capacity),
        alerts=AlertStateMachine(settings.alert_destination, notifier),
        warning_level_m=settings.warning_level_m,
        critical_level_m=settings.critical_level_m,
        log_tail_size=settings.log_tail_size,
        forecast=forecast,
        health=health,
    )
