"""
Wires the store, identity provider, event bus, notifier and services into one
application object.
"""

import logging
from dataclasses import dataclass

from config.config import AppConfig
from connectors.base import IdentityProvider, InventoryStore, Notifier
from connectors.identity import RestIdentityProvider, StaticIdentityProvider
from connectors.memory_store import InMemoryStore
from connectors.rest_store import RestInventoryStore
from connectors.webhook import WebhookNotifier
from services.dashboard import DashboardController
from services.inventory import InventoryService
from services.notifications import NotificationDispatcher
from services.replenishment import ReplenishmentLifecycle
from services.reports import ReportService
from services.sales import SalesService
from utils.event_bus import EventBus

logger = logging.getLogger(__name__)


@dataclass
class InventoryApp:
    config: AppConfig
    store: InventoryStore
    identity: IdentityProvider
    event_bus: EventBus
    notifications: NotificationDispatcher
    inventory: InventoryService
    sales: SalesService
    replenishment: ReplenishmentLifecycle
    reports: ReportService
    dashboard: DashboardController

    async def aclose(self) -> None:
        """Wait for in-flight notifications, then release HTTP clients."""
        await self.event_bus.drain()
        for resource in (self.notifications.notifier, self.identity, self.store):
            close = getattr(resource, "aclose", None)
            if close is not None:
                await close()


def build_app(
    config: AppConfig | None = None,
    store: InventoryStore | None = None,
    identity: IdentityProvider | None = None,
    notifier: Notifier | None = None,
) -> InventoryApp:
    """
    Build the service graph.

    With a remote store configured (URL and API key) the REST store and REST
    identity provider are used; otherwise everything runs in memory with a
    signed-out static identity unless one is passed in.
    """
    config = config or AppConfig.from_env()

    if store is None:
        if config.store.is_remote:
            store = RestInventoryStore(
                config.store.url,
                config.store.api_key,
                access_token=config.store.access_token,
                timeout=config.store.timeout_seconds,
                increment_function=config.store.increment_function,
            )
        else:
            logger.warning("No remote store configured; using the in-memory store")
            store = InMemoryStore()

    if identity is None:
        if config.store.is_remote:
            identity = RestIdentityProvider(
                config.store.url,
                config.store.api_key,
                config.store.access_token,
                store,
                timeout=config.store.timeout_seconds,
            )
        else:
            identity = StaticIdentityProvider()

    if notifier is None and config.notification.webhook_url:
        notifier = WebhookNotifier(
            config.notification.webhook_url, timeout=config.notification.timeout_seconds
        )

    event_bus = EventBus()
    notifications = NotificationDispatcher(event_bus, notifier)
    inventory = InventoryService(store, identity, event_bus, config.replenishment)
    sales = SalesService(store, identity, event_bus)
    replenishment = ReplenishmentLifecycle(store, identity, event_bus, config.replenishment)
    reports = ReportService(inventory, sales)
    dashboard = DashboardController(inventory, sales, replenishment, reports)

    return InventoryApp(
        config=config,
        store=store,
        identity=identity,
        event_bus=event_bus,
        notifications=notifications,
        inventory=inventory,
        sales=sales,
        replenishment=replenishment,
        reports=reports,
        dashboard=dashboard,
    )
