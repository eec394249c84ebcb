"""
OpenWeatherMap 3-hourly rainfall forecast client.

Rainfall points are keyed with the same 3-hour bucket labels as the water
level history so both series can be charted against one time axis. The
monitor does not depend on this feed: without an API key the client cannot
be built and the forecast loop is simply not started.

CHANGELOG:
- 2026-10-17: Initial creation (FW-011)
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from floodwatch.src.errors import ConfigurationMissingError, TransientFetchError
from floodwatch.src.history import time_bucket
from floodwatch.src.models import RainPoint
from floodwatch.src.normalizer import float_or_none

logger = logging.getLogger(__name__)

OPENWEATHER_FORECAST_URL = "https://api.openweathermap.org/data/2.5/forecast"


def summarize(points: list[RainPoint] | tuple[RainPoint, ...]) -> str:
    """One-line rainfall summary from the last forecast point."""
    last = points[-1].rain_mm if points else 0.0
    if last > 0:
        return f"{last:g} mm (last 3h)"
    return "No rain"


def parse_forecast(payload: Any) -> list[RainPoint]:
    """Extract bucketed rainfall from an OpenWeatherMap forecast body.

    Items without a ``dt_txt`` string are skipped; missing ``rain.3h``
    means 0 mm.
    """
    items = payload.get("list") if isinstance(payload, dict) else None
    if not isinstance(items, list):
        return []

    points: list[RainPoint] = []
    for item in items:
        if not isinstance(item, dict) or not isinstance(item.get("dt_txt"), str):
            continue
        rain = item.get("rain")
        rain_3h = float_or_none(rain.get("3h")) if isinstance(rain, dict) else None
        points.append(RainPoint(time=time_bucket(item["dt_txt"]), rain_mm=rain_3h or 0.0))
    return points


class ForecastClient:
    """Fetches the rainfall forecast for one city.

    Args:
        api_key: OpenWeatherMap API key.
        city: City name passed as ``q``.
        timeout_s: Request timeout in seconds.
        base_url: Forecast endpoint (overridable for tests).
        transport: Optional httpx transport (used by tests).

    Raises:
        ConfigurationMissingError: If *api_key* is empty.
    """

    def __init__(
        self,
        api_key: str,
        *,
        city: str = "Pune",
        timeout_s: float = 5.0,
        base_url: str = OPENWEATHER_FORECAST_URL,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        if not api_key:
            raise ConfigurationMissingError("OPENWEATHER_API_KEY is not set")
        self._api_key = api_key
        self._city = city
        self._timeout_s = timeout_s
        self._base_url = base_url
        self._transport = transport

    async def fetch(self) -> list[RainPoint]:
        """Fetch and parse the forecast.

        Raises:
            TransientFetchError: On network error, non-2xx or non-JSON body.
        """
        params = {"q": self._city, "appid": self._api_key, "units": "metric"}
        try:
            async with httpx.AsyncClient(
                timeout=self._timeout_s, transport=self._transport
            ) as client:
                response = await client.get(self._base_url, params=params)
            response.raise_for_status()
            payload = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            raise TransientFetchError(f"Forecast fetch failed: {exc}") from exc

        points = parse_forecast(payload)
        logger.info("Fetched %d forecast points for %s", len(points), self._city)
        return points
