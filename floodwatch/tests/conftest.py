"""
Shared test fixtures for flood watch tests.

Provides environment variable fixtures for MonitorSettings tests and small
builders for device payloads. All monitor env vars are cleaned before each
test to ensure isolation.

CHANGELOG:
- 2026-10-17: Initial creation (FW-001)

TODO:
- None
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

import pytest

# All MonitorSettings environment variable names, used for cleanup.
_ALL_MONITOR_ENV_VARS = (
    "DEVICE_URL",
    "POLL_INTERVAL_S",
    "REQUEST_TIMEOUT_S",
    "WARNING_LEVEL_M",
    "CRITICAL_LEVEL_M",
    "HISTORY_CAPACITY",
    "ALERT_DESTINATION",
    "SMS_GATEWAY_URL",
    "SMS_API_KEY",
    "SMS_SENDER_ID",
    "LOG_DIR",
    "LOG_TAIL_SIZE",
    "OPENWEATHER_API_KEY",
    "FORECAST_CITY",
    "FORECAST_INTERVAL_S",
    "HEALTH_PATH",
    "API_ENABLED",
    "API_HOST",
    "API_PORT",
)


@pytest.fixture(autouse=True)
def _clean_monitor_env(monkeypatch: pytest.MonkeyPatch, tmp_path: str) -> None:
    """Remove all monitor env vars and isolate from .env files before each test.

    Changes working directory to tmp_path so no .env file is accidentally
    loaded by Pydantic BaseSettings and relative log/health paths land in a
    scratch directory.
    """
    for var in _ALL_MONITOR_ENV_VARS:
        monkeypatch.delenv(var, raising=False)
    monkeypatch.chdir(tmp_path)


@pytest.fixture()
def env_vars_full(monkeypatch: pytest.MonkeyPatch) -> dict[str, str]:
    """Set every MonitorSettings environment variable.

    Returns the dict of env var names to values for assertion convenience.
    """
    env = {
        "DEVICE_URL": "http://10.10.148.62/data",
        "POLL_INTERVAL_S": "2.5",
        "REQUEST_TIMEOUT_S": "3",
        "WARNING_LEVEL_M": "0.06",
        "CRITICAL_LEVEL_M": "0.08",
        "HISTORY_CAPACITY": "24",
        "ALERT_DESTINATION": "9900000000",
        "SMS_GATEWAY_URL": "https://sms.example.com/send",
        "SMS_API_KEY": "sms-secret",
        "SMS_SENDER_ID": "FLDWCH",
        "LOG_DIR": "/tmp/floodwatch-logs",
        "LOG_TAIL_SIZE": "20",
        "OPENWEATHER_API_KEY": "owm-secret",
        "FORECAST_CITY": "Mumbai",
        "FORECAST_INTERVAL_S": "900",
        "HEALTH_PATH": "/tmp/floodwatch-health.json",
        "API_ENABLED": "false",
        "API_HOST": "127.0.0.1",
        "API_PORT": "9000",
    }
    for key, value in env.items():
        monkeypatch.setenv(key, value)
    return env


@pytest.fixture()
def env_vars_required_only(monkeypatch: pytest.MonkeyPatch) -> dict[str, str]:
    """Set only the required environment variable (DEVICE_URL)."""
    env = {"DEVICE_URL": "http://192.168.4.1/data"}
    for key, value in env.items():
        monkeypatch.setenv(key, value)
    return env


def _make_payload(**overrides: Any) -> dict[str, Any]:
    """Return a plausible device payload, with fields replaced by *overrides*.

    Pass ``field=None`` to drop a field entirely.
    """
    payload: dict[str, Any] = {
        "time": "2024-06-01 10:00:00",
        "water_level_m": 0.03,
        "flow_rate_m_per_s": 0.0001,
        "hb100_analog": 1024,
        "tamper": False,
        "warning": False,
        "critical": False,
        "system": {"wifi": True, "rtc_ok": True, "sd_ok": True, "mpu_ok": True},
    }
    payload.update(overrides)
    return {k: v for k, v in payload.items() if v is not None}


@pytest.fixture()
def make_payload() -> Callable[..., dict[str, Any]]:
    """Factory fixture for device payload dicts."""
    return _make_payload
