"""
Module: connectors.base

Abstract boundaries to the hosted backend: the table store, the identity
provider and the outbound notifier. Services only talk to these interfaces.
"""

from abc import ABC, abstractmethod
from typing import Any

from models.identity import AuthenticatedUser, Profile

PRODUCTS = "products"
SUPPLIERS = "suppliers"
REPLENISHMENT_REQUESTS = "replenishment_requests"
SALES = "sales"
DAY_CLOSINGS = "day_closings"
PROFILES = "profiles"

Row = dict[str, Any]


class InventoryStore(ABC):
    """
    Table-oriented store boundary.

    ``embed`` maps an alias to a related table, e.g.
    ``{"product": "products"}`` joins the row referenced by ``product_id``
    into the result under the ``product`` key.
    """

    @abstractmethod
    async def select(
        self,
        table: str,
        filters: dict[str, Any] | None = None,
        order_by: str | None = None,
        descending: bool = False,
        embed: dict[str, str] | None = None,
    ) -> list[Row]:
        """Return rows whose columns equal every value in ``filters``."""

    @abstractmethod
    async def get(
        self, table: str, record_id: str, embed: dict[str, str] | None = None
    ) -> Row | None:
        """Return one row by id, or None."""

    @abstractmethod
    async def insert(
        self, table: str, row: Row, embed: dict[str, str] | None = None
    ) -> Row:
        """Insert a row and return it as stored (with joins applied)."""

    @abstractmethod
    async def update(
        self,
        table: str,
        record_id: str,
        changes: Row,
        match: dict[str, Any] | None = None,
    ) -> Row | None:
        """
        Apply a partial update by id.

        When ``match`` is given the update only happens if the row's current
        values equal it; otherwise None is returned and nothing changes.
        """

    @abstractmethod
    async def delete(self, table: str, record_id: str) -> None:
        """Delete a row by id."""

    @abstractmethod
    async def increment(
        self, table: str, record_id: str, column: str, amount: int
    ) -> Row:
        """Atomically add ``amount`` to a numeric column and return the row."""


class IdentityProvider(ABC):
    """Resolves the signed-in user and the profile that scopes their data."""

    @abstractmethod
    async def get_user(self) -> AuthenticatedUser | None:
        """Return the authenticated user, or None when signed out."""

    @abstractmethod
    async def get_profile(self) -> Profile | None:
        """Return the active profile, or None when it cannot be resolved."""


class Notifier(ABC):
    """Outbound channel for reorder notifications."""

    @abstractmethod
    async def send(self, payload: dict[str, Any]) -> None:
        """Deliver ``payload``; raise NotificationError on failure."""
