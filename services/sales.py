"""
Sales recording and day closing.
"""

import logging
from datetime import date, datetime, timezone

from connectors.base import DAY_CLOSINGS, PRODUCTS, SALES
from models.enums import InventoryEventType, ServiceType
from models.exceptions import StoreError, ValidationError
from models.inventory import DayClosing, Product, Sale, SaleLine
from services.base import BaseService

logger = logging.getLogger(__name__)

SALE_EMBED = {"product": PRODUCTS}


class SalesService(BaseService):
    """Records sales against stock and summarizes them per day (UTC)."""

    service_type = ServiceType.SALES

    async def record_sales(self, lines: list[SaleLine]) -> list[Sale]:
        """
        Record the valid lines of a day-closing form.

        Lines with a non-positive quantity, an unknown product or more units
        than are in stock are skipped with a warning. Each kept line debits
        stock atomically before its sale row is written.

        Raises:
            ValidationError: no line is valid.
            StoreError: a debit or insert failed; lines recorded before it stay.
        """
        profile = await self.require_profile()
        products = {
            row["id"]: Product.model_validate(row)
            for row in await self.store.select(PRODUCTS, filters={"profile_id": profile.id})
        }

        remaining = {pid: p.current_stock for pid, p in products.items()}
        accepted: list[tuple[SaleLine, Product]] = []
        for line in lines:
            product = products.get(line.product_id)
            if line.quantity <= 0:
                logger.warning(f"Skipping sale of {line.quantity} x {line.product_id}: quantity must be positive")
                continue
            if product is None:
                logger.warning(f"Skipping sale of unknown product {line.product_id}")
                continue
            if line.quantity > remaining[product.id]:
                logger.warning(
                    f"Skipping sale of {line.quantity} x '{product.name}': only {remaining[product.id]} in stock"
                )
                continue
            remaining[product.id] -= line.quantity
            accepted.append((line, product))

        if not accepted:
            raise ValidationError("No valid sale lines to record")

        sold_at = datetime.now(timezone.utc).isoformat()
        recorded = []
        for line, product in accepted:
            await self.store.increment(PRODUCTS, product.id, "current_stock", -line.quantity)
            row = {
                "product_id": product.id,
                "quantity": line.quantity,
                "date": sold_at,
                "total_value": line.quantity * product.unit_price,
                "profile_id": profile.id,
            }
            try:
                stored = await self.store.insert(SALES, row, embed=SALE_EMBED)
            except StoreError:
                await self.store.increment(PRODUCTS, product.id, "current_stock", line.quantity)
                raise
            recorded.append(Sale.model_validate(stored))

        logger.info(f"Recorded {len(recorded)} sale(s) for profile {profile.id}")
        self.emit_event(
            InventoryEventType.SALE_RECORDED,
            {
                "sale_ids": [s.id for s in recorded],
                "total_units": sum(s.quantity for s in recorded),
                "total_value": sum(s.total_value for s in recorded),
            },
        )
        return recorded

    async def list_sales(self, day: date | None = None) -> list[Sale]:
        """Sales of the active profile, newest first, optionally for one UTC day."""
        profile = await self.require_profile()
        rows = await self.store.select(
            SALES, filters={"profile_id": profile.id}, order_by="date", descending=True, embed=SALE_EMBED
        )
        sales = [Sale.model_validate(r) for r in rows]
        if day is not None:
            sales = [s for s in sales if _utc_day(s.date) == day]
        return sales

    async def close_day(self, day: date | None = None) -> DayClosing:
        """Total up one day's sales (today by default) and persist the closing."""
        user = await self.require_user()
        day = day or datetime.now(timezone.utc).date()
        sales = await self.list_sales(day)
        closing = DayClosing(
            date=day,
            sales=sales,
            total_sales=sum(s.quantity for s in sales),
            total_value=sum(s.total_value for s in sales),
            closed_by=user.id,
            profile_id=(await self.require_profile()).id,
        )
        row = closing.model_dump(mode="json", exclude={"id", "created_at"})
        row["sales"] = [s.id for s in sales]
        stored = await self.store.insert(DAY_CLOSINGS, row)
        closing.id = stored["id"]
        if stored.get("created_at"):
            closing.created_at = datetime.fromisoformat(stored["created_at"])
        logger.info(f"Day {day.isoformat()} closed: {closing.total_sales} units, {closing.total_value:.2f} total")
        self.emit_event(
            InventoryEventType.DAY_CLOSED,
            {
                "closing_id": closing.id,
                "date": day.isoformat(),
                "total_sales": closing.total_sales,
                "total_value": closing.total_value,
            },
        )
        return closing


def _utc_day(moment: datetime) -> date:
    if moment.tzinfo is None:
        return moment.date()
    return moment.astimezone(timezone.utc).date()
