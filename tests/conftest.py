import sys
from pathlib import Path

import pytest

# Ensure project root is on sys.path to allow `import services`, `import utils`, etc.
PROJECT_ROOT = Path(__file__).resolve().parent.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from config.config import ReplenishmentConfig  # noqa: E402
from connectors.base import PRODUCTS, PROFILES, SUPPLIERS  # noqa: E402
from connectors.identity import StaticIdentityProvider  # noqa: E402
from connectors.memory_store import InMemoryStore  # noqa: E402
from models.identity import AuthenticatedUser, Profile  # noqa: E402
from services.inventory import InventoryService  # noqa: E402
from services.replenishment import ReplenishmentLifecycle  # noqa: E402
from services.replenishment_store import ReplenishmentRequestStore  # noqa: E402
from services.sales import SalesService  # noqa: E402
from utils.event_bus import EventBus  # noqa: E402

PROFILE_ID = "profile-1"


def product_row(product_id: str, current_stock: int, min_stock: int, max_stock: int, **extra) -> dict:
    """Product row as the store would hold it."""
    row = {
        "id": product_id,
        "name": extra.pop("name", product_id.title()),
        "category": "General",
        "current_stock": current_stock,
        "min_stock": min_stock,
        "max_stock": max_stock,
        "unit_price": 2.0,
        "unit": "pieces",
        "supplier_id": "sup-1",
        "profile_id": PROFILE_ID,
    }
    row.update(extra)
    return row


@pytest.fixture
def user() -> AuthenticatedUser:
    return AuthenticatedUser(id="user-1", email="owner@example.com", username="owner")


@pytest.fixture
def profile(user: AuthenticatedUser) -> Profile:
    return Profile(id=PROFILE_ID, user_id=user.id, name="Corner shop")


@pytest.fixture
def identity(user: AuthenticatedUser, profile: Profile) -> StaticIdentityProvider:
    return StaticIdentityProvider(user, profile)


@pytest.fixture
def signed_out() -> StaticIdentityProvider:
    return StaticIdentityProvider()


@pytest.fixture
def store(profile: Profile) -> InMemoryStore:
    """In-memory store seeded with one supplier and three products."""
    store = InMemoryStore()
    store.seed(PROFILES, [profile.model_dump()])
    store.seed(
        SUPPLIERS,
        [{"id": "sup-1", "name": "Fresh Foods", "contact": "Maria", "phone": "+15550101", "profile_id": PROFILE_ID}],
    )
    store.seed(
        PRODUCTS,
        [
            product_row("p1", current_stock=5, min_stock=10, max_stock=50, name="Apples"),
            product_row("p2", current_stock=0, min_stock=4, max_stock=20, name="Bread"),
            product_row("p3", current_stock=30, min_stock=5, max_stock=40, name="Cheese", unit_price=6.5),
        ],
    )
    return store


@pytest.fixture
def event_bus() -> EventBus:
    return EventBus()


@pytest.fixture
def request_store(store, identity, event_bus) -> ReplenishmentRequestStore:
    return ReplenishmentRequestStore(store, identity, event_bus)


@pytest.fixture
def lifecycle(store, identity, event_bus) -> ReplenishmentLifecycle:
    return ReplenishmentLifecycle(store, identity, event_bus, ReplenishmentConfig())


@pytest.fixture
def split_lifecycle(store, identity, event_bus) -> ReplenishmentLifecycle:
    return ReplenishmentLifecycle(store, identity, event_bus, ReplenishmentConfig(collapse_approval=False))


@pytest.fixture
def inventory(store, identity, event_bus) -> InventoryService:
    return InventoryService(store, identity, event_bus)


@pytest.fixture
def sales(store, identity, event_bus) -> SalesService:
    return SalesService(store, identity, event_bus)


@pytest.fixture
def make_product_row():
    return product_row
