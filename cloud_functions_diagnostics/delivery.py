"""Deliver payloads to the diagnostics backend over HTTP."""

import logging
from datetime import datetime, timezone
from typing import Protocol

import httpx

from .config import ClientConfiguration

logger = logging.getLogger(__name__)

EVENT_PAYLOAD_VERSION = "4"
SESSION_PAYLOAD_VERSION = "1"


class Delivery(Protocol):
    """Sends serialized events and sessions."""

    async def send_event(self, payload: dict) -> None: ...

    async def send_session(self, payload: dict) -> None: ...


class HttpDelivery:
    """POST JSON payloads to the configured endpoints."""

    def __init__(self, config: ClientConfiguration):
        """Deliver using the given client configuration."""
        self.config = config

    async def send_event(self, payload: dict) -> None:
        """Send an event payload."""
        await self._post(
            str(self.config.endpoints.notify), payload, EVENT_PAYLOAD_VERSION
        )

    async def send_session(self, payload: dict) -> None:
        """Send a session payload."""
        await self._post(
            str(self.config.endpoints.sessions), payload, SESSION_PAYLOAD_VERSION
        )

    async def _post(self, url: str, payload: dict, payload_version: str) -> None:
        headers = {
            "Bugsnag-Api-Key": self.config.api_key,
            "Bugsnag-Payload-Version": payload_version,
            "Bugsnag-Sent-At": datetime.now(timezone.utc).isoformat(),
        }
        async with httpx.AsyncClient(timeout=self.config.delivery_timeout) as client:
            response = await client.post(url, json=payload, headers=headers)
            response.raise_for_status()
        logger.debug(f"Delivered payload to {url!r} ({response.status_code})")
