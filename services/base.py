"""
Base class for inventory services.
"""

import logging
from typing import Any

from connectors.base import IdentityProvider, InventoryStore
from models.enums import InventoryEventType, ServiceType
from models.events import InventoryEvent
from models.exceptions import AuthError
from models.identity import AuthenticatedUser, Profile
from utils.event_bus import EventBus

logger_base = logging.getLogger(__name__)


class BaseService:
    """Shared plumbing: store, identity, event bus and event publishing."""

    service_type: ServiceType = ServiceType.SYSTEM

    def __init__(
        self,
        store: InventoryStore,
        identity: IdentityProvider,
        event_bus: EventBus | None = None,
    ):
        self.store = store
        self.identity = identity
        self.event_bus = event_bus

    async def require_user(self) -> AuthenticatedUser:
        user = await self.identity.get_user()
        if user is None:
            raise AuthError("User is not authenticated")
        return user

    async def require_profile(self) -> Profile:
        profile = await self.identity.get_profile()
        if profile is None:
            raise AuthError("No active profile for the current user")
        return profile

    def _build_event(self, event_type: InventoryEventType | str, payload: dict[str, Any]) -> InventoryEvent:
        name = event_type.value if isinstance(event_type, InventoryEventType) else event_type
        return InventoryEvent(event_type=name, payload=payload, source=self.service_type)

    async def publish_event(self, event_type: InventoryEventType | str, payload: dict[str, Any]) -> None:
        """Publish an event and wait for its subscribers."""
        if self.event_bus is None:
            logger_base.debug(f"{self.service_type.value} service has no event bus; dropping {event_type}")
            return
        await self.event_bus.publish(self._build_event(event_type, payload))

    def emit_event(self, event_type: InventoryEventType | str, payload: dict[str, Any]) -> None:
        """Publish an event without waiting for subscribers (fire-and-forget)."""
        if self.event_bus is None:
            logger_base.debug(f"{self.service_type.value} service has no event bus; dropping {event_type}")
            return
        self.event_bus.publish_nowait(self._build_event(event_type, payload))

    async def handle_exception(self, exception: Exception, context: dict[str, Any]) -> None:
        """Log an unexpected failure and announce it on the bus."""
        error_details = {
            "error_type": type(exception).__name__,
            "error_message": str(exception),
            "context": context,
            "service": self.service_type.value,
        }
        logger_base.error(
            f"Exception in {self.service_type.value} service: {exception}",
            exc_info=True,
        )
        await self.publish_event(InventoryEventType.SYSTEM_EXCEPTION, {"error_details": error_details})
