"""
Pure normalizer that converts device telemetry into canonical SI metrics.

Three steps, all side-effect free:

- parse_sample(payload): total mapping from any decoded JSON value to a
  TelemetrySample. Wrong types and missing fields become ``None`` (numbers)
  or ``False`` (flags); it never raises.
- normalize(sample): unit conversion into DerivedMetrics (metres, m/s).
- classify_flow(value): dead-band filter that suppresses flow noise and
  labels the direction as inflow, outflow or stable.

CHANGELOG:
- 2026-10-17: Replace optional-chaining fallbacks with explicit parse_sample (FW-004)
- 2026-10-17: Initial creation (FW-004)

TODO:
- None
"""

from __future__ import annotations

import logging
import math
from datetime import datetime
from typing import Any

from floodwatch.src.models import (
    DerivedMetrics,
    FlowDirection,
    SystemHealth,
    TelemetrySample,
)

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

DEAD_BAND_FLOW_M_S: float = 0.00005
"""Flow magnitudes strictly below this are treated as zero (noise)."""

CM_PER_MIN_TO_M_PER_S: float = 0.00016667
"""Conversion factor used by the device firmware for cm/min -> m/s."""

HB100_ADC_MAX: float = 4095.0
"""Full-scale reading of the 12-bit ADC the HB100 sensor is wired to."""

HB100_SPEED_RANGE_M_S: float = 10.0
"""Speed represented by a full-scale HB100 reading."""

DEVICE_TIME_FORMAT = "%Y-%m-%d %H:%M:%S"

_NUMERIC_FIELDS = (
    "water_level_cm",
    "water_level_m",
    "flow_rate_cm_per_min",
    "flow_rate_m_per_s",
    "hb100_analog",
    "warning_level_m",
    "critical_level_m",
)
_FLAG_FIELDS = ("tamper", "warning", "critical")
_SYSTEM_FIELDS = ("wifi", "rtc_ok", "sd_ok", "mpu_ok")


# ---------------------------------------------------------------------------
# Field coercion helpers
# ---------------------------------------------------------------------------


def float_or_none(value: Any) -> float | None:
    """Coerce a JSON scalar to a finite float, or ``None`` if impossible."""
    # bool is an int subclass; a flag is never a measurement.
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        result = float(value)
    elif isinstance(value, str):
        try:
            result = float(value.strip())
        except ValueError:
            return None
    else:
        return None
    if not math.isfinite(result):
        return None
    return result


def _flag_or_none(value: Any) -> bool | None:
    if value is None:
        return None
    return bool(value)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def parse_sample(payload: Any, *, now: datetime | None = None) -> TelemetrySample:
    """Map a decoded JSON payload onto a TelemetrySample.

    The mapping is total: numeric fields that are absent or not numeric
    become ``None``, flags use the truthiness of whatever was sent, and a
    non-object payload is treated as an empty object.

    Args:
        payload: Decoded JSON body from the device (any type).
        now: Fallback timestamp used when the payload carries no ``time``.
            Defaults to the current local time.

    Returns:
        A frozen TelemetrySample whose ``raw`` is the payload as received
        (or ``{}`` for non-object payloads).
    """
    if not isinstance(payload, dict):
        logger.warning(
            "Device payload is %s, not an object; using defaults",
            type(payload).__name__,
        )
        payload = {}

    time_value = payload.get("time")
    if not isinstance(time_value, str) or not time_value.strip():
        time_value = (now or datetime.now()).strftime(DEVICE_TIME_FORMAT)

    system_raw = payload.get("system")
    if not isinstance(system_raw, dict):
        system_raw = {}

    return TelemetrySample(
        time=time_value,
        **{name: float_or_none(payload.get(name)) for name in _NUMERIC_FIELDS},
        **{name: bool(payload.get(name)) for name in _FLAG_FIELDS},
        system=SystemHealth(
            **{name: _flag_or_none(system_raw.get(name)) for name in _SYSTEM_FIELDS}
        ),
        raw=dict(payload),
    )


def classify_flow(value: float) -> tuple[float, FlowDirection]:
    """Apply the flow dead band and classify direction.

    Args:
        value: Signed flow rate in m/s (positive = inflow).

    Returns:
        ``(magnitude, direction)`` where magnitude is ``abs(value)``, or
        exactly 0.0 with direction ``stable`` inside the dead band.
    """
    if abs(value) < DEAD_BAND_FLOW_M_S:
        return 0.0, FlowDirection.STABLE
    if value > 0:
        return abs(value), FlowDirection.INFLOW
    return abs(value), FlowDirection.OUTFLOW


def water_level_m(sample: TelemetrySample) -> float:
    """Water level in metres: metres field, else cm / 100, else 0."""
    if sample.water_level_m is not None:
        return sample.water_level_m
    if sample.water_level_cm is not None:
        return sample.water_level_cm / 100
    return 0.0


def flow_rate_m_s(sample: TelemetrySample) -> float:
    """Signed flow rate in m/s: m/s field, else cm/min converted, else 0."""
    if sample.flow_rate_m_per_s is not None:
        return sample.flow_rate_m_per_s
    if sample.flow_rate_cm_per_min:
        return sample.flow_rate_cm_per_min * CM_PER_MIN_TO_M_PER_S
    return 0.0


def motion_speed_m_s(sample: TelemetrySample) -> float:
    """HB100 analog reading scaled linearly onto 0-10 m/s."""
    if not sample.hb100_analog:
        return 0.0
    return sample.hb100_analog / HB100_ADC_MAX * HB100_SPEED_RANGE_M_S


def normalize(sample: TelemetrySample) -> DerivedMetrics:
    """Convert a TelemetrySample into DerivedMetrics.

    This is a **pure function**: no I/O, no clock, no state. Missing fields
    default to zero so it cannot fail.

    Args:
        sample: The parsed device reading.

    Returns:
        Freshly computed DerivedMetrics for this sample.
    """
    level = water_level_m(sample)
    magnitude, direction = classify_flow(flow_rate_m_s(sample))
    speed = motion_speed_m_s(sample)

    return DerivedMetrics(
        water_level_m=level,
        flow_rate_m_s=magnitude,
        flow_direction=direction,
        motion_speed_m_s=speed,
        water_level=f"{level:.3f}",
        flow_rate=f"{magnitude:.4f} m/s ({direction.value.capitalize()})",
        motion_speed=f"{speed:.2f} m/s",
    )
