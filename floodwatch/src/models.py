"""
Pydantic models for water-level telemetry and derived monitor state.

TelemetrySample is the raw device reading (after the total, default-zero
parsing in normalizer.parse_sample). DerivedMetrics is the canonical SI view
recomputed from each sample. StatusSnapshot bundles everything a reader needs
so it can be published with a single reference swap.

CHANGELOG:
- 2026-10-17: Add ForecastSnapshot for the rainfall collaborator (FW-011)
- 2026-10-17: Initial creation (FW-003)

TODO:
- None
"""

from __future__ import annotations

from datetime import datetime
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------


class FlowDirection(StrEnum):
    """Direction of water flow after the dead-band filter."""

    INFLOW = "inflow"
    OUTFLOW = "outflow"
    STABLE = "stable"


class Trend(StrEnum):
    """Water level trend derived from the two newest history points."""

    RISING = "rising"
    FALLING = "falling"
    STABLE = "stable"


class AlertState(StrEnum):
    """Hysteresis latch state of the alert state machine."""

    ARMED = "armed"
    FIRED = "fired"


# ---------------------------------------------------------------------------
# Device telemetry
# ---------------------------------------------------------------------------


class SystemHealth(BaseModel):
    """Device self-test flags. ``None`` means the device did not report it."""

    model_config = ConfigDict(frozen=True)

    wifi: bool | None = None
    rtc_ok: bool | None = None
    sd_ok: bool | None = None
    mpu_ok: bool | None = None


class TelemetrySample(BaseModel):
    """A single reading from the water-level sensor device.

    Water level and flow rate may arrive in either of two units; at most one
    of each pair is treated as authoritative by the normalizer. The
    decoded payload is kept as received in ``raw`` so it can be logged verbatim.

    Attributes:
        time: Device-reported timestamp, e.g. ``"2024-06-01 10:00:00"``.
        water_level_cm: Water level in centimetres.
        water_level_m: Water level in metres (preferred when present).
        flow_rate_cm_per_min: Flow rate in centimetres per minute.
        flow_rate_m_per_s: Flow rate in metres per second (preferred).
        hb100_analog: HB100 motion sensor ADC reading, 0-4095.
        warning_level_m: Device-supplied warning threshold override.
        critical_level_m: Device-supplied critical threshold override.
        tamper: Enclosure tamper switch tripped.
        warning: Device-side warning flag.
        critical: Device-side critical flag.
        system: Nested self-test flags.
        raw: Payload exactly as received.
    """

    model_config = ConfigDict(frozen=True)

    time: str
    water_level_cm: float | None = None
    water_level_m: float | None = None
    flow_rate_cm_per_min: float | None = None
    flow_rate_m_per_s: float | None = None
    hb100_analog: float | None = None
    warning_level_m: float | None = None
    critical_level_m: float | None = None
    tamper: bool = False
    warning: bool = False
    critical: bool = False
    system: SystemHealth = Field(default_factory=SystemHealth)
    raw: dict[str, Any] = Field(default_factory=dict)


class DerivedMetrics(BaseModel):
    """Canonical engineering-unit view of one TelemetrySample.

    Attributes:
        water_level_m: Water level in metres.
        flow_rate_m_s: Flow magnitude in m/s after the dead band (>= 0).
        flow_direction: Inflow, outflow or stable.
        motion_speed_m_s: HB100-derived surface speed in m/s (0-10).
        water_level: Display string, 3 decimals (``"0.045"``).
        flow_rate: Display string (``"0.0001 m/s (Inflow)"``).
        motion_speed: Display string (``"2.50 m/s"``).
    """

    model_config = ConfigDict(frozen=True)

    water_level_m: float
    flow_rate_m_s: float
    flow_direction: FlowDirection
    motion_speed_m_s: float
    water_level: str
    flow_rate: str
    motion_speed: str


# ---------------------------------------------------------------------------
# Derived state
# ---------------------------------------------------------------------------


class HistoryPoint(BaseModel):
    """One rolling-history entry keyed by its 3-hour bucket label."""

    model_config = ConfigDict(frozen=True)

    time: str
    value: float


class AlertNotification(BaseModel):
    """Outbound alert message for the SMS gateway."""

    model_config = ConfigDict(frozen=True)

    destination: str
    message: str


class RainPoint(BaseModel):
    """Forecast rainfall for one 3-hour bucket."""

    model_config = ConfigDict(frozen=True)

    time: str
    rain_mm: float = 0.0


class StatusSnapshot(BaseModel):
    """Fully-updated monitor state published after each successful cycle."""

    model_config = ConfigDict(frozen=True)

    sample_time: str
    metrics: DerivedMetrics
    trend: Trend
    history: tuple[HistoryPoint, ...]
    alert_state: AlertState
    warning_level_m: float
    critical_level_m: float
    tamper: bool
    warning: bool
    critical: bool
    system: SystemHealth
    log_tail: tuple[dict[str, Any], ...]
    updated_at: datetime


class ForecastSnapshot(BaseModel):
    """Latest rainfall forecast with a one-line summary for display."""

    model_config = ConfigDict(frozen=True)

    points: tuple[RainPoint, ...] = ()
    summary: str = "Loading..."
    updated_at: datetime | None = None
