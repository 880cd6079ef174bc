"""
Notification dispatcher: turns `replenishment.requested` events into a call to
the reorder webhook. Delivery is best-effort; failures are logged and dropped.
"""

import logging
from typing import Any

from connectors.base import Notifier
from models.enums import InventoryEventType
from models.events import InventoryEvent
from models.exceptions import NotificationError
from utils.event_bus import EventBus

logger = logging.getLogger(__name__)


def build_reorder_payload(event_payload: dict[str, Any]) -> dict[str, Any]:
    """Webhook body: ``{providerPhone, productName, quantity}``."""
    return {
        "providerPhone": event_payload.get("supplier_phone") or "",
        "productName": event_payload.get("product_name") or event_payload.get("product_id", ""),
        "quantity": event_payload["quantity"],
    }


class NotificationDispatcher:
    """Event-bus consumer that forwards new replenishment requests to a notifier."""

    def __init__(self, event_bus: EventBus, notifier: Notifier | None):
        self.event_bus = event_bus
        self.notifier = notifier
        self.delivered = 0
        self.failed = 0
        self.register_event_handlers()

    def register_event_handlers(self) -> None:
        self.event_bus.subscribe(
            InventoryEventType.REPLENISHMENT_REQUESTED.value, self.handle_replenishment_requested
        )

    async def handle_replenishment_requested(self, event: InventoryEvent) -> None:
        if self.notifier is None:
            logger.warning("Reorder webhook URL not configured; skipping notification")
            return
        payload = build_reorder_payload(event.payload)
        try:
            await self.notifier.send(payload)
        except NotificationError as exc:
            self.failed += 1
            logger.error(
                f"Failed to notify reorder for request {event.payload.get('request_id')}: {exc}"
            )
            return
        self.delivered += 1
        logger.info(f"Reorder notification sent for request {event.payload.get('request_id')}")
