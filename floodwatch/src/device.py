"""
HTTP client for the water-level sensor device.

Performs one GET against the device's JSON endpoint per call and parses the
body with the total, default-zero mapping from the normalizer. Designed to be
robust:

- A request timeout is always applied so a hung device cannot wedge the
  poll loop.
- Network errors, non-2xx responses and non-JSON bodies are logged and
  reported as ``None``; they never propagate to the poll loop.
- A consecutive-failure counter is kept for the health file and reset on
  the first success.

CHANGELOG:
- 2026-10-17: Initial creation (FW-009)

TODO:
- None
"""

from __future__ import annotations

import logging

import httpx

from floodwatch.src.errors import TransientFetchError
from floodwatch.src.models import TelemetrySample
from floodwatch.src.normalizer import parse_sample

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

DEVICE_TIMEOUT_S: float = 5.0
"""Default timeout per device request in seconds."""


class DeviceClient:
    """Fetches TelemetrySample objects from the device endpoint.

    Args:
        url: Full URL of the device data endpoint, e.g.
            ``http://10.10.148.62/data``.
        timeout_s: Request timeout in seconds.
        transport: Optional httpx transport (used by tests).
    """

    def __init__(
        self,
        url: str,
        *,
        timeout_s: float = DEVICE_TIMEOUT_S,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._url = url
        self._timeout_s = timeout_s
        self._transport = transport
        self._consecutive_failures: int = 0

    @property
    def url(self) -> str:
        return self._url

    @property
    def consecutive_failures(self) -> int:
        """Number of fetches that have failed in a row since the last success."""
        return self._consecutive_failures

    async def fetch_or_raise(self) -> TelemetrySample:
        """Fetch and parse one sample.

        Returns:
            The parsed TelemetrySample.

        Raises:
            TransientFetchError: On network error, timeout, non-2xx status
                or a body that is not JSON.
        """
        try:
            async with httpx.AsyncClient(
                timeout=self._timeout_s, transport=self._transport
            ) as client:
                response = await client.get(
                    self._url, headers={"Cache-Control": "no-store"}
                )
        except httpx.HTTPError as exc:
            raise TransientFetchError(f"Device request to {self._url} failed: {exc}") from exc

        if not response.is_success:
            raise TransientFetchError(
                f"Device at {self._url} answered HTTP {response.status_code}"
            )

        try:
            payload = response.json()
        except ValueError as exc:
            raise TransientFetchError(f"Device at {self._url} sent a non-JSON body") from exc

        return parse_sample(payload)

    async def fetch(self) -> TelemetrySample | None:
        """Fetch one sample, returning ``None`` instead of raising.

        Returns:
            The parsed TelemetrySample, or ``None`` on any fetch failure.
        """
        try:
            sample = await self.fetch_or_raise()
        except TransientFetchError as exc:
            self._consecutive_failures += 1
            logger.warning(
                "%s (consecutive failures: %d)", exc, self._consecutive_failures
            )
            return None

        self._consecutive_failures = 0
        return sample
