"""
SMS gateway client for flood alert notifications.

POSTs ``{"destination", "message", "sender_id"}`` as JSON to the configured
gateway URL with the API key in the ``Authorization`` header. Dispatch is
fire-and-forget from the caller's perspective: every failure mode (timeout,
connection error, non-2xx status) is logged and reported as ``False``; there
is no retry here.

Operations:
- send(notification): POST one alert, return True on a 2xx response.

CHANGELOG:
- 2026-10-17: Initial creation (FW-007)

TODO:
- None
"""

from __future__ import annotations

import logging

import httpx

from floodwatch.src.models import AlertNotification

logger = logging.getLogger(__name__)

_DEFAULT_TIMEOUT_S = 5.0


class SmsNotifier:
    """Sends AlertNotification objects to an SMS gateway over HTTP.

    Args:
        gateway_url: Full URL of the gateway's send endpoint.
        api_key: Gateway credential, sent verbatim as ``Authorization``.
            Omitted from the request when empty.
        sender_id: Approved sender identifier, passed through to the gateway.
        timeout_s: Per-request timeout in seconds.
        transport: Optional httpx transport (used by tests).

    Raises:
        ValueError: If *gateway_url* is not an http(s) URL.

    Usage::

        notifier = SmsNotifier("https://sms.example.com/send", api_key="k")
        ok = await notifier.send(
            AlertNotification(destination="9900000000", message="Flood Alert")
        )
    """

    def __init__(
        self,
        gateway_url: str,
        *,
        api_key: str = "",
        sender_id: str = "",
        timeout_s: float = _DEFAULT_TIMEOUT_S,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        if not gateway_url.lower().startswith(("http://", "https://")):
            raise ValueError(f"SMS gateway URL must be http(s) (got: '{gateway_url}')")
        self._gateway_url = gateway_url
        self._api_key = api_key
        self._sender_id = sender_id
        self._timeout_s = timeout_s
        self._transport = transport

    async def send(self, notification: AlertNotification) -> bool:
        """POST a single notification to the gateway.

        Args:
            notification: Destination and message text.

        Returns:
            ``True`` if the gateway answered with a 2xx status, ``False`` on
            any network error or non-2xx response.
        """
        headers = {"Authorization": self._api_key} if self._api_key else {}
        body = {
            "destination": notification.destination,
            "message": notification.message,
            "sender_id": self._sender_id,
        }

        try:
            async with httpx.AsyncClient(
                timeout=self._timeout_s, transport=self._transport
            ) as client:
                response = await client.post(
                    self._gateway_url, json=body, headers=headers
                )
        except httpx.HTTPError as exc:
            logger.warning("SMS dispatch failed (network error): %s", exc)
            return False

        if response.is_success:
            logger.info("SMS alert sent to %s", notification.destination)
            return True

        logger.warning(
            "SMS dispatch failed (HTTP %d): %s",
            response.status_code,
            response.text[:200],
        )
        return False
