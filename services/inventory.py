"""
Inventory catalogue service: products, suppliers, the default supplier and
derived stock alerts, all scoped to the active profile.
"""

import asyncio
import logging
from collections import defaultdict
from typing import Any

from config.config import ReplenishmentConfig
from connectors.base import PRODUCTS, SUPPLIERS, IdentityProvider, InventoryStore
from models.enums import InventoryEventType, ServiceType
from models.exceptions import RecordNotFoundError, ValidationError
from models.inventory import Product, ProductDraft, StockAlert, Supplier, SupplierDraft
from services.base import BaseService
from services.stock import build_alerts, needs_replenishment
from utils.event_bus import EventBus

logger = logging.getLogger(__name__)

PRODUCT_EMBED = {"supplier": SUPPLIERS}


class InventoryService(BaseService):
    """Product and supplier CRUD for the signed-in profile."""

    service_type = ServiceType.INVENTORY

    def __init__(
        self,
        store: InventoryStore,
        identity: IdentityProvider,
        event_bus: EventBus | None = None,
        config: ReplenishmentConfig | None = None,
    ):
        super().__init__(store, identity, event_bus)
        self.config = config or ReplenishmentConfig()
        self._default_supplier_locks: dict[str, asyncio.Lock] = defaultdict(asyncio.Lock)

    # --- Products --- #

    async def list_products(self) -> list[Product]:
        profile = await self.require_profile()
        rows = await self.store.select(
            PRODUCTS, filters={"profile_id": profile.id}, order_by="name", embed=PRODUCT_EMBED
        )
        return [Product.model_validate(r) for r in rows]

    async def get_product(self, product_id: str) -> Product:
        row = await self.store.get(PRODUCTS, product_id, embed=PRODUCT_EMBED)
        if row is None:
            raise RecordNotFoundError(f"Product {product_id} not found")
        return Product.model_validate(row)

    async def add_product(self, draft: ProductDraft) -> Product:
        profile = await self.require_profile()
        self._warn_on_inverted_bounds(draft)
        row = {**draft.model_dump(mode="json"), "profile_id": profile.id}
        stored = await self.store.insert(PRODUCTS, row, embed=PRODUCT_EMBED)
        product = Product.model_validate(stored)
        logger.info(f"Product '{product.name}' ({product.id}) added with stock {product.current_stock}")
        return product

    async def update_product(self, product_id: str, updates: dict[str, Any]) -> Product:
        """Apply a partial update; the merged product must still be a valid draft."""
        await self.require_profile()
        current = await self.get_product(product_id)
        merged = {**current.model_dump(include=set(ProductDraft.model_fields)), **updates}
        try:
            draft = ProductDraft.model_validate(merged)
        except ValueError as exc:
            raise ValidationError(f"Invalid product update: {exc}") from exc
        self._warn_on_inverted_bounds(draft)
        changes = draft.model_dump(mode="json", include=set(updates))
        await self.store.update(PRODUCTS, product_id, changes)
        return await self.get_product(product_id)

    async def delete_product(self, product_id: str) -> None:
        await self.require_user()
        await self.store.delete(PRODUCTS, product_id)
        logger.info(f"Product {product_id} deleted")

    @staticmethod
    def _warn_on_inverted_bounds(draft: ProductDraft) -> None:
        if draft.min_stock > draft.max_stock:
            logger.warning(
                f"Product '{draft.name}' has min_stock {draft.min_stock} above max_stock {draft.max_stock}"
            )

    # --- Suppliers --- #

    async def list_suppliers(self) -> list[Supplier]:
        profile = await self.require_profile()
        rows = await self.store.select(SUPPLIERS, filters={"profile_id": profile.id}, order_by="name")
        return [Supplier.model_validate(r) for r in rows]

    async def get_supplier(self, supplier_id: str) -> Supplier:
        row = await self.store.get(SUPPLIERS, supplier_id)
        if row is None:
            raise RecordNotFoundError(f"Supplier {supplier_id} not found")
        return Supplier.model_validate(row)

    async def add_supplier(self, draft: SupplierDraft) -> Supplier:
        profile = await self.require_profile()
        row = {**draft.model_dump(mode="json"), "profile_id": profile.id}
        supplier = Supplier.model_validate(await self.store.insert(SUPPLIERS, row))
        logger.info(f"Supplier '{supplier.name}' ({supplier.id}) added")
        self.emit_event(
            InventoryEventType.SUPPLIER_CREATED, {"supplier_id": supplier.id, "name": supplier.name}
        )
        return supplier

    async def update_supplier(self, supplier_id: str, updates: dict[str, Any]) -> Supplier:
        await self.require_profile()
        current = await self.get_supplier(supplier_id)
        merged = {**current.model_dump(include=set(SupplierDraft.model_fields)), **updates}
        try:
            draft = SupplierDraft.model_validate(merged)
        except ValueError as exc:
            raise ValidationError(f"Invalid supplier update: {exc}") from exc
        await self.store.update(SUPPLIERS, supplier_id, draft.model_dump(mode="json", include=set(updates)))
        return await self.get_supplier(supplier_id)

    async def delete_supplier(self, supplier_id: str) -> None:
        await self.require_user()
        await self.store.delete(SUPPLIERS, supplier_id)
        logger.info(f"Supplier {supplier_id} deleted")

    async def ensure_default_supplier(self) -> Supplier:
        """
        Return the profile's default supplier, creating it on first use.

        Concurrent callers for the same profile are serialized so the supplier
        is only created once.
        """
        user = await self.require_user()
        profile = await self.require_profile()
        name = self.config.default_supplier_name
        async with self._default_supplier_locks[profile.id]:
            rows = await self.store.select(SUPPLIERS, filters={"profile_id": profile.id, "name": name})
            if rows:
                return Supplier.model_validate(rows[0])
            logger.info(f"Creating default supplier '{name}' for profile {profile.id}")
            return await self.add_supplier(
                SupplierDraft(name=name, contact=user.username or user.email or "", email=user.email)
            )

    # --- Alerts --- #

    async def get_alerts(self) -> list[StockAlert]:
        return build_alerts(await self.list_products())

    async def low_stock_products(self) -> list[Product]:
        return [p for p in await self.list_products() if needs_replenishment(p)]

    async def products_by_supplier(self, supplier_id: str) -> list[Product]:
        return [p for p in await self.list_products() if p.supplier_id == supplier_id]
