"""
Module: connectors.webhook

Posts reorder notifications as JSON to an automation webhook.
"""

import logging
from typing import Any

import httpx

from connectors.base import Notifier
from models.exceptions import NotificationError

logger = logging.getLogger(__name__)


class WebhookNotifier(Notifier):
    """Single-attempt JSON POST to a configured URL."""

    def __init__(
        self,
        url: str,
        timeout: float = 5.0,
        client: httpx.AsyncClient | None = None,
    ):
        if not url:
            raise ValueError("Webhook URL must not be empty")
        self.url = url
        self._client = client or httpx.AsyncClient(timeout=timeout)
        self._owns_client = client is None

    async def send(self, payload: dict[str, Any]) -> None:
        try:
            response = await self._client.post(self.url, json=payload)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise NotificationError(
                f"Webhook responded {exc.response.status_code}: {exc.response.reason_phrase}"
            ) from exc
        except httpx.HTTPError as exc:
            raise NotificationError(f"Webhook unreachable: {type(exc).__name__}: {exc}") from exc
        logger.info(f"Notification delivered to webhook ({response.status_code})")

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()
