from unittest.mock import AsyncMock

import pytest

from config.config import AppConfig, NotificationConfig, StoreConfig
from connectors.base import Notifier
from connectors.identity import RestIdentityProvider, StaticIdentityProvider
from connectors.memory_store import InMemoryStore
from connectors.rest_store import RestInventoryStore
from connectors.webhook import WebhookNotifier
from services.app import build_app


def test_build_app_defaults_to_memory_store():
    app = build_app(AppConfig())

    assert isinstance(app.store, InMemoryStore)
    assert isinstance(app.identity, StaticIdentityProvider)
    assert app.notifications.notifier is None
    assert app.replenishment.config.collapse_approval is True
    assert app.dashboard.inventory is app.inventory


@pytest.mark.asyncio
async def test_build_app_remote_wiring():
    config = AppConfig(
        store=StoreConfig(url="https://db.example.com", api_key="anon", access_token="jwt"),
        notification=NotificationConfig(webhook_url="https://hooks.example.com/reorder"),
    )

    app = build_app(config)

    assert isinstance(app.store, RestInventoryStore)
    assert isinstance(app.identity, RestIdentityProvider)
    assert isinstance(app.notifications.notifier, WebhookNotifier)
    await app.aclose()


@pytest.mark.asyncio
async def test_request_through_app_notifies(store, identity):
    notifier = AsyncMock(spec=Notifier)
    app = build_app(AppConfig(), store=store, identity=identity, notifier=notifier)

    await app.replenishment.request("p1", 20, "sup-1")
    await app.aclose()

    notifier.send.assert_called_once_with({"providerPhone": "+15550101", "productName": "Apples", "quantity": 20})
