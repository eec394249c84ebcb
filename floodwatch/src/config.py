"""
Monitor configuration loaded from environment variables.

Uses Pydantic BaseSettings for automatic env var loading and validation.
Only DEVICE_URL is required; a missing device endpoint is the one
misconfiguration that stops startup. Optional features (SMS dispatch,
rainfall forecast) are disabled when their credentials are empty.

CHANGELOG:
- 2026-10-17: Initial creation (FW-001)

TODO:
- None
"""

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings


class MonitorSettings(BaseSettings):
    """Flood watch monitor configuration.

    Attributes:
        device_url: Device JSON endpoint (http or https).
        poll_interval_s: Seconds between device polls.
        request_timeout_s: Timeout for device, SMS and forecast requests.
        warning_level_m: Default alert threshold in metres. A truthy
            ``warning_level_m`` in a device payload replaces it until the
            device sends a new one.
        critical_level_m: Default critical level in metres (display only).
        history_capacity: Rolling history size.
        alert_destination: Phone number that receives flood alerts.
        sms_gateway_url: SMS gateway send endpoint; empty disables dispatch.
        sms_api_key: Gateway credential.
        sms_sender_id: Approved sender identifier.
        log_dir: Directory for the daily JSONL partitions.
        log_tail_size: Records returned by tail reads.
        openweather_api_key: Forecast API key; empty disables the forecast.
        forecast_city: City used for the rainfall forecast.
        forecast_interval_s: Seconds between forecast refreshes.
        health_path: Health JSON file path.
        api_enabled: Serve the HTTP API (otherwise run headless).
        api_host: Bind address for the HTTP API.
        api_port: Port for the HTTP API.
    """

    device_url: str
    poll_interval_s: float = 1.0
    request_timeout_s: float = 5.0
    warning_level_m: float = 0.04
    critical_level_m: float = 0.05
    history_capacity: int = 48
    alert_destination: str = ""
    sms_gateway_url: str = ""
    sms_api_key: str = ""
    sms_sender_id: str = ""
    log_dir: str = "logs"
    log_tail_size: int = 10
    openweather_api_key: str = ""
    forecast_city: str = "Pune"
    forecast_interval_s: float = 600.0
    health_path: str = "health.json"
    api_enabled: bool = True
    api_host: str = "0.0.0.0"
    api_port: int = 8000

    @field_validator("device_url")
    @classmethod
    def device_url_must_be_http(cls, v: str) -> str:
        """Validate that the device URL is an http(s) URL."""
        if not v.lower().startswith(("http://", "https://")):
            raise ValueError(f"DEVICE_URL must be an http(s) URL (got: '{v[:40]}')")
        return v

    @field_validator("sms_gateway_url")
    @classmethod
    def sms_gateway_url_must_be_http(cls, v: str) -> str:
        """Validate the gateway URL when one is configured."""
        if v and not v.lower().startswith(("http://", "https://")):
            raise ValueError("SMS_GATEWAY_URL must be an http(s) URL")
        return v

    @field_validator("poll_interval_s", "request_timeout_s", "warning_level_m")
    @classmethod
    def must_be_positive(cls, v: float) -> float:
        """Validate intervals, timeouts and thresholds are positive."""
        if v <= 0:
            raise ValueError("value must be > 0")
        return v

    @field_validator("forecast_interval_s")
    @classmethod
    def forecast_interval_must_respect_quota(cls, v: float) -> float:
        """Minimum 60 seconds between forecast calls (free API tier)."""
        if v < 60:
            raise ValueError("FORECAST_INTERVAL_S must be >= 60")
        return v

    @field_validator("history_capacity")
    @classmethod
    def history_capacity_must_allow_trend(cls, v: int) -> int:
        """A trend needs at least two points."""
        if v < 2:
            raise ValueError("HISTORY_CAPACITY must be >= 2")
        return v

    @field_validator("log_tail_size")
    @classmethod
    def log_tail_size_must_be_valid(cls, v: int) -> int:
        """Validate tail size is between 1 and 1000."""
        if v < 1 or v > 1000:
            raise ValueError("LOG_TAIL_SIZE must be >= 1 and <= 1000")
        return v

    @field_validator("api_port")
    @classmethod
    def api_port_must_be_valid(cls, v: int) -> int:
        """Validate TCP port is in valid range."""
        if v < 1 or v > 65535:
            raise ValueError("API_PORT must be between 1 and 65535")
        return v

    @model_validator(mode="after")
    def _critical_not_below_warning(self) -> "MonitorSettings":
        if self.critical_level_m < self.warning_level_m:
            raise ValueError("CRITICAL_LEVEL_M must be >= WARNING_LEVEL_M")
        return self

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}
