"""SMS transports.

The notification dispatcher only needs ``send(phone, body)``. Two
implementations ship:

    - LoggingSmsTransport: writes the message to the log and returns. Default
      until a gateway is configured.
    - HttpSmsTransport: POSTs to an HTTP SMS gateway with httpx.

A transport signals failure by raising; the dispatcher records the attempt
either way.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

import httpx

from safe_escrow.config import Settings, get_settings
from safe_escrow.logging_config import get_logger

logger = get_logger(__name__)


@runtime_checkable
class SmsTransport(Protocol):
    """Anything that can hand a text message to a carrier."""

    async def send(self, phone: str, body: str) -> None:
        """Send ``body`` to ``phone``. Raise on failure."""
        ...


class LoggingSmsTransport:
    """Log-only transport used in development and until a gateway exists."""

    async def send(self, phone: str, body: str) -> None:
        logger.info("sms.sent", phone=phone, body=body, transport="log")


class HttpSmsTransport:
    """Send through an HTTP SMS gateway.

    The gateway receives ``{"to", "from", "text"}`` as JSON with a bearer key.
    """

    def __init__(
        self,
        api_url: str,
        api_key: str,
        sender: str,
        timeout_seconds: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._api_url = api_url
        self._api_key = api_key
        self._sender = sender
        self._timeout = timeout_seconds
        self._client = client

    async def send(self, phone: str, body: str) -> None:
        payload = {"to": phone, "from": self._sender, "text": body}
        headers = {"Authorization": f"Bearer {self._api_key}"}

        if self._client is not None:
            response = await self._client.post(self._api_url, json=payload, headers=headers)
        else:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                response = await client.post(self._api_url, json=payload, headers=headers)

        response.raise_for_status()
        logger.info("sms.sent", phone=phone, transport="http", status=response.status_code)


def build_sms_transport(settings: Settings | None = None) -> SmsTransport:
    """Return the transport selected by ``settings.sms_transport``."""
    settings = settings or get_settings()
    if settings.sms_transport == "http":
        if not settings.sms_api_url:
            raise ValueError("SMS_API_URL must be set when SMS_TRANSPORT=http")
        return HttpSmsTransport(
            api_url=settings.sms_api_url,
            api_key=settings.sms_api_key,
            sender=settings.sms_sender,
            timeout_seconds=settings.sms_timeout_seconds,
        )
    return LoggingSmsTransport()
