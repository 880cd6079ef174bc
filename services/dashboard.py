"""
Dashboard controller.

Front-end facing facade over the inventory services. Every operation catches
`InventoryError`, keeps a human-readable message in ``error`` and returns a
neutral value (None, False or an empty list) instead of raising.
"""

import logging
from collections.abc import Awaitable
from datetime import date
from typing import Any, TypeVar

from models.enums import DashboardTab, ReplenishmentAction, ReplenishmentStatus
from models.exceptions import InventoryError
from models.inventory import (
    DayClosing,
    Product,
    ProductDraft,
    Sale,
    SaleLine,
    StockAlert,
    Supplier,
    SupplierDraft,
)
from models.replenishment import BatchSubmissionResult, ReplenishmentLine, ReplenishmentRequest
from services.inventory import InventoryService
from services.replenishment import ReplenishmentLifecycle
from services.reports import InventoryReport, ReportService
from services.sales import SalesService
from services.stock import build_alerts

logger = logging.getLogger(__name__)

T = TypeVar("T")

_STATUS_ACTIONS = {
    ReplenishmentStatus.APPROVED: ReplenishmentAction.APPROVE,
    ReplenishmentStatus.REJECTED: ReplenishmentAction.REJECT,
    ReplenishmentStatus.COMPLETED: ReplenishmentAction.COMPLETE,
}


class DashboardController:
    def __init__(
        self,
        inventory: InventoryService,
        sales: SalesService,
        replenishment: ReplenishmentLifecycle,
        reports: ReportService | None = None,
    ):
        self.inventory = inventory
        self.sales_service = sales
        self.replenishment = replenishment
        self.reports = reports or ReportService(inventory, sales)

        self.active_tab = DashboardTab.INVENTORY
        self.loading = False
        self.error: str | None = None
        self.products: list[Product] = []
        self.suppliers: list[Supplier] = []
        self.sales: list[Sale] = []
        self.alerts: list[StockAlert] = []
        self.requests: list[ReplenishmentRequest] = []

    async def _guard(self, action: str, call: Awaitable[T], fallback: Any = None) -> T | Any:
        try:
            return await call
        except InventoryError as exc:
            self.error = f"Error {action}: {exc}"
            logger.error(self.error)
            return fallback

    def clear_error(self) -> None:
        self.error = None

    def set_tab(self, tab: DashboardTab | str) -> None:
        try:
            self.active_tab = DashboardTab(tab)
        except ValueError:
            self.error = f"Error switching tab: unknown tab {tab!r}"

    async def load_data(self) -> bool:
        """Refresh products, suppliers, sales, alerts and requests."""
        self.loading = True
        self.error = None
        try:
            user = await self._guard("loading user", self.inventory.identity.get_user())
            if user is not None:
                await self._guard("creating default supplier", self.inventory.ensure_default_supplier())
            products = await self._guard("loading products", self.inventory.list_products())
            suppliers = await self._guard("loading suppliers", self.inventory.list_suppliers())
            sales = await self._guard("loading sales", self.sales_service.list_sales())
            requests = await self._guard("loading replenishment requests", self.replenishment.list_requests())
        finally:
            self.loading = False
        if products is not None:
            self.products = products
            self.alerts = build_alerts(products)
        if suppliers is not None:
            self.suppliers = suppliers
        if sales is not None:
            self.sales = sales
        if requests is not None:
            self.requests = requests
        return self.error is None

    # --- Replenishment --- #

    async def create_replenishment_request(
        self, product_id: str, quantity: int, supplier_id: str
    ) -> ReplenishmentRequest | None:
        created = await self._guard(
            "creating replenishment request",
            self.replenishment.request(product_id, quantity, supplier_id),
        )
        if created is not None:
            self.requests.insert(0, created)
        return created

    async def get_replenishment_requests(self) -> list[ReplenishmentRequest]:
        requests = await self._guard(
            "loading replenishment requests", self.replenishment.list_requests(), None
        )
        if requests is None:
            return []
        self.requests = requests
        return requests

    async def update_replenishment_status(
        self, request_id: str, status: ReplenishmentStatus | str, notes: str | None = None
    ) -> ReplenishmentRequest | None:
        try:
            status = ReplenishmentStatus(status)
        except ValueError:
            self.error = f"Error updating replenishment request: unknown status {status!r}"
            return None
        action = _STATUS_ACTIONS.get(status)
        if action is None:
            self.error = f"Error updating replenishment request: cannot move a request back to {status.value}"
            return None
        updated = await self._guard(
            "updating replenishment request", self.replenishment.apply(request_id, action, notes)
        )
        if updated is not None:
            self.requests = [updated if r.id == updated.id else r for r in self.requests]
            await self._refresh_products()
        return updated

    async def delete_replenishment_request(self, request_id: str) -> bool:
        result = await self._guard(
            "deleting replenishment request", self._deleted(self.replenishment.delete(request_id)), False
        )
        if result:
            self.requests = [r for r in self.requests if r.id != request_id]
        return result

    async def submit_multi_replenishment(
        self, supplier_id: str, lines: list[ReplenishmentLine]
    ) -> BatchSubmissionResult | None:
        result = await self._guard(
            "submitting replenishment", self.replenishment.submit_multi(supplier_id, lines)
        )
        if result is None:
            return None
        self.requests = result.created[::-1] + self.requests
        if not result.ok:
            self.error = (
                f"Error submitting replenishment: {len(result.created)} request(s) created, "
                f"stopped at product {result.failed_line.product_id}: {result.error}"
            )
        return result

    # --- Sales --- #

    async def record_sales(self, lines: list[SaleLine]) -> list[Sale]:
        recorded = await self._guard("recording sales", self.sales_service.record_sales(lines), [])
        if recorded:
            self.sales = recorded + self.sales
            await self._refresh_products()
        return recorded

    async def close_day(self, day: date | None = None) -> DayClosing | None:
        return await self._guard("closing the day", self.sales_service.close_day(day))

    # --- Catalogue --- #

    async def add_product(self, draft: ProductDraft) -> Product | None:
        product = await self._guard("adding product", self.inventory.add_product(draft))
        if product is not None:
            await self._refresh_products()
        return product

    async def update_product(self, product_id: str, updates: dict[str, Any]) -> Product | None:
        product = await self._guard("updating product", self.inventory.update_product(product_id, updates))
        if product is not None:
            await self._refresh_products()
        return product

    async def delete_product(self, product_id: str) -> bool:
        deleted = await self._guard(
            "deleting product", self._deleted(self.inventory.delete_product(product_id)), False
        )
        if deleted:
            await self._refresh_products()
        return deleted

    async def add_supplier(self, draft: SupplierDraft) -> Supplier | None:
        supplier = await self._guard("adding supplier", self.inventory.add_supplier(draft))
        if supplier is not None:
            self.suppliers.append(supplier)
        return supplier

    async def update_supplier(self, supplier_id: str, updates: dict[str, Any]) -> Supplier | None:
        supplier = await self._guard(
            "updating supplier", self.inventory.update_supplier(supplier_id, updates)
        )
        if supplier is not None:
            self.suppliers = [supplier if s.id == supplier.id else s for s in self.suppliers]
        return supplier

    async def delete_supplier(self, supplier_id: str) -> bool:
        deleted = await self._guard(
            "deleting supplier", self._deleted(self.inventory.delete_supplier(supplier_id)), False
        )
        if deleted:
            self.suppliers = [s for s in self.suppliers if s.id != supplier_id]
        return deleted

    async def build_report(self) -> InventoryReport | None:
        return await self._guard("building report", self.reports.build_report())

    # --- Internals --- #

    @staticmethod
    async def _deleted(call: Awaitable[None]) -> bool:
        await call
        return True

    async def _refresh_products(self) -> None:
        products = await self._guard("loading products", self.inventory.list_products())
        if products is not None:
            self.products = products
            self.alerts = build_alerts(products)
