"""
Unit tests for the telemetry normalizer.

Tests verify:
- parse_sample maps well-formed payloads field by field.
- parse_sample is total: wrong types, NaN and non-object payloads default
  instead of raising.
- Water level prefers metres, falls back to cm / 100, then 0.
- Flow rate prefers m/s, falls back to cm/min * 0.00016667, then 0.
- HB100 analog reading scales linearly onto 0-10 m/s.
- Dead band: |flow| < 0.00005 is stable with magnitude 0, for either sign.
- Display strings use 3 / 4 / 2 decimals.

CHANGELOG:
- 2026-10-17: Initial creation (FW-004)

TODO:
- None
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime
from typing import Any

import pytest
from floodwatch.src.models import FlowDirection, TelemetrySample
from floodwatch.src.normalizer import (
    DEAD_BAND_FLOW_M_S,
    classify_flow,
    normalize,
    parse_sample,
)
from pydantic import ValidationError

PayloadFactory = Callable[..., dict[str, Any]]


# ---------------------------------------------------------------------------
# parse_sample
# ---------------------------------------------------------------------------


class TestParseSample:
    """Explicit, total mapping from JSON payload to TelemetrySample."""

    def test_well_formed_payload(self, make_payload: PayloadFactory) -> None:
        payload = make_payload(
            warning_level_m=0.06, critical_level_m=0.09, tamper=True
        )

        sample = parse_sample(payload)

        assert sample.time == "2024-06-01 10:00:00"
        assert sample.water_level_m == 0.03
        assert sample.flow_rate_m_per_s == 0.0001
        assert sample.hb100_analog == 1024.0
        assert sample.warning_level_m == 0.06
        assert sample.critical_level_m == 0.09
        assert sample.tamper is True
        assert sample.warning is False
        assert sample.system.wifi is True
        assert sample.system.mpu_ok is True
        assert sample.raw == payload

    def test_missing_fields_default(self) -> None:
        sample = parse_sample({"time": "2024-06-01 10:00:00"})

        assert sample.water_level_m is None
        assert sample.water_level_cm is None
        assert sample.flow_rate_m_per_s is None
        assert sample.hb100_analog is None
        assert sample.tamper is False
        assert sample.system.wifi is None

    @pytest.mark.parametrize("bad", ["abc", [1, 2], {"v": 1}, True, float("nan"), float("inf")])
    def test_non_numeric_values_become_none(self, bad: Any) -> None:
        sample = parse_sample({"time": "t", "water_level_m": bad})

        assert sample.water_level_m is None

    def test_numeric_strings_are_accepted(self) -> None:
        sample = parse_sample({"time": "t", "water_level_cm": " 4.5 "})

        assert sample.water_level_cm == 4.5

    @pytest.mark.parametrize("payload", [None, [], "hello", 42])
    def test_non_object_payload_uses_defaults(self, payload: Any) -> None:
        now = datetime(2024, 6, 1, 12, 30, 0)

        sample = parse_sample(payload, now=now)

        assert sample.time == "2024-06-01 12:30:00"
        assert sample.raw == {}
        assert normalize(sample).water_level_m == 0.0

    def test_missing_time_uses_fallback_clock(self) -> None:
        sample = parse_sample({"water_level_m": 0.01}, now=datetime(2024, 1, 2, 3, 4, 5))

        assert sample.time == "2024-01-02 03:04:05"

    def test_non_object_system_block(self) -> None:
        sample = parse_sample({"time": "t", "system": "ok"})

        assert sample.system.wifi is None
        assert sample.system.sd_ok is None

    def test_sample_is_immutable(self) -> None:
        sample = parse_sample({"time": "t", "water_level_m": 0.01})

        with pytest.raises(ValidationError):
            sample.water_level_m = 0.02  # type: ignore[misc]


# ---------------------------------------------------------------------------
# normalize: unit conversions
# ---------------------------------------------------------------------------


class TestWaterLevel:
    """Metres preferred, then cm / 100, then 0."""

    @pytest.mark.parametrize("cm", [0.0, 1.0, 4.5, 12.34, 250.0, 999.99])
    def test_centimetres_only(self, cm: float) -> None:
        """With only a centimetre field, metres equals cm / 100 exactly."""
        sample = TelemetrySample(time="t", water_level_cm=cm)

        assert normalize(sample).water_level_m == cm / 100

    def test_metres_preferred_over_centimetres(self) -> None:
        sample = TelemetrySample(time="t", water_level_m=0.2, water_level_cm=50.0)

        assert normalize(sample).water_level_m == 0.2

    def test_zero_metres_is_still_preferred(self) -> None:
        """A present 0.0 metres value is authoritative (not a fallback)."""
        sample = TelemetrySample(time="t", water_level_m=0.0, water_level_cm=50.0)

        assert normalize(sample).water_level_m == 0.0

    def test_neither_field(self) -> None:
        assert normalize(TelemetrySample(time="t")).water_level_m == 0.0


class TestFlowRate:
    """m/s preferred, then cm/min converted, then 0."""

    def test_metres_per_second_preferred(self) -> None:
        sample = TelemetrySample(
            time="t", flow_rate_m_per_s=0.002, flow_rate_cm_per_min=100.0
        )

        metrics = normalize(sample)

        assert metrics.flow_rate_m_s == 0.002
        assert metrics.flow_direction is FlowDirection.INFLOW

    def test_centimetres_per_minute_converted(self) -> None:
        sample = TelemetrySample(time="t", flow_rate_cm_per_min=-6.0)

        metrics = normalize(sample)

        assert metrics.flow_rate_m_s == pytest.approx(6.0 * 0.00016667)
        assert metrics.flow_direction is FlowDirection.OUTFLOW

    def test_no_flow_fields(self) -> None:
        metrics = normalize(TelemetrySample(time="t"))

        assert metrics.flow_rate_m_s == 0.0
        assert metrics.flow_direction is FlowDirection.STABLE
        assert metrics.flow_rate == "0.0000 m/s (Stable)"


class TestMotionSpeed:
    """HB100 analog 0-4095 maps linearly onto 0-10 m/s."""

    @pytest.mark.parametrize(
        ("analog", "expected"),
        [(4095, 10.0), (0, 0.0), (None, 0.0), (1024, 1024 / 4095 * 10)],
    )
    def test_scaling(self, analog: float | None, expected: float) -> None:
        metrics = normalize(TelemetrySample(time="t", hb100_analog=analog))

        assert metrics.motion_speed_m_s == pytest.approx(expected)

    def test_display_string(self) -> None:
        metrics = normalize(TelemetrySample(time="t", hb100_analog=4095))

        assert metrics.motion_speed == "10.00 m/s"


# ---------------------------------------------------------------------------
# classify_flow: dead band
# ---------------------------------------------------------------------------


class TestDeadBand:
    """Flow noise below 0.00005 m/s is suppressed."""

    @pytest.mark.parametrize(
        "value", [0.0, 0.00001, -0.00001, 0.0000499, -0.0000499, -0.0]
    )
    def test_inside_dead_band_is_stable_zero(self, value: float) -> None:
        magnitude, direction = classify_flow(value)

        assert magnitude == 0.0
        assert direction is FlowDirection.STABLE

    def test_boundary_is_outside_dead_band(self) -> None:
        magnitude, direction = classify_flow(DEAD_BAND_FLOW_M_S)

        assert magnitude == DEAD_BAND_FLOW_M_S
        assert direction is FlowDirection.INFLOW

    def test_positive_is_inflow(self) -> None:
        assert classify_flow(0.0001) == (0.0001, FlowDirection.INFLOW)

    def test_negative_is_outflow_with_absolute_magnitude(self) -> None:
        assert classify_flow(-0.25) == (0.25, FlowDirection.OUTFLOW)


class TestDisplayStrings:
    def test_end_to_end_payload_formatting(self) -> None:
        sample = parse_sample(
            {
                "time": "2024-06-01 10:00:00",
                "water_level_m": 0.045,
                "flow_rate_m_per_s": 0.0001,
            }
        )

        metrics = normalize(sample)

        assert metrics.water_level == "0.045"
        assert metrics.flow_rate == "0.0001 m/s (Inflow)"
        assert metrics.motion_speed == "0.00 m/s"

    def test_outflow_string(self) -> None:
        metrics = normalize(TelemetrySample(time="t", flow_rate_m_per_s=-0.0123))

        assert metrics.flow_rate == "0.0123 m/s (Outflow)"
