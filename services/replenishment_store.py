"""
Store adapter for replenishment requests.

Creates, lists, updates and deletes ``replenishment_requests`` rows scoped to
the active profile, and credits product stock through the store's atomic
increment.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any

from connectors.base import PRODUCTS, REPLENISHMENT_REQUESTS, SUPPLIERS
from models.enums import ReplenishmentStatus, ServiceType
from models.exceptions import (
    InvalidTransitionError,
    RecordNotFoundError,
    StoreError,
    ValidationError,
)
from models.replenishment import ReplenishmentRequest
from services.base import BaseService

logger = logging.getLogger(__name__)

REQUEST_EMBED = {"product": PRODUCTS, "supplier": SUPPLIERS}


def validate_request_input(product_id: str, quantity: Any, supplier_id: str) -> None:
    """Reject a request intent before anything is sent to the store."""
    if not product_id:
        raise ValidationError("A product is required")
    if not supplier_id:
        raise ValidationError("A supplier is required")
    if isinstance(quantity, bool) or not isinstance(quantity, int):
        raise ValidationError(f"Quantity must be a whole number, got {quantity!r}")
    if quantity <= 0:
        raise ValidationError(f"Quantity must be greater than zero, got {quantity}")


def _utcnow() -> str:
    return datetime.now(timezone.utc).isoformat()


class ReplenishmentRequestStore(BaseService):
    """CRUD over replenishment requests for the signed-in profile."""

    service_type = ServiceType.REPLENISHMENT

    async def create(self, product_id: str, quantity: int, supplier_id: str) -> ReplenishmentRequest:
        """
        Persist a new pending request.

        Raises:
            ValidationError: bad quantity or missing ids (no store call made).
            AuthError: no signed-in user or active profile.
            StoreError: the insert failed.
        """
        validate_request_input(product_id, quantity, supplier_id)
        user = await self.require_user()
        profile = await self.require_profile()

        row = {
            "product_id": product_id,
            "supplier_id": supplier_id,
            "quantity": quantity,
            "status": ReplenishmentStatus.PENDING.value,
            "requested_by": user.id,
            "requested_at": _utcnow(),
            "profile_id": profile.id,
        }
        stored = await self.store.insert(REPLENISHMENT_REQUESTS, row, embed=REQUEST_EMBED)
        request = ReplenishmentRequest.model_validate(stored)
        logger.info(
            f"Replenishment request {request.id} created: {quantity} x {product_id} from {supplier_id}"
        )
        return request

    async def list(self) -> list[ReplenishmentRequest]:
        """
        Requests of the active profile, most recent first.

        Falls back to the requests made by the signed-in user when the profile
        cannot be resolved or the profile-scoped query fails.
        """
        user = await self.require_user()
        rows = None
        try:
            profile = await self.identity.get_profile()
            if profile is not None:
                rows = await self._select({"profile_id": profile.id})
        except StoreError as exc:
            logger.warning(f"Profile-scoped request listing unavailable, falling back to user scope: {exc}")
        if rows is None:
            rows = await self._select({"requested_by": user.id})
        return [ReplenishmentRequest.model_validate(r) for r in rows]

    async def _select(self, filters: dict[str, Any]) -> list[dict[str, Any]]:
        return await self.store.select(
            REPLENISHMENT_REQUESTS,
            filters=filters,
            order_by="requested_at",
            descending=True,
            embed=REQUEST_EMBED,
        )

    async def get(self, request_id: str) -> ReplenishmentRequest:
        row = await self.store.get(REPLENISHMENT_REQUESTS, request_id, embed=REQUEST_EMBED)
        if row is None:
            raise RecordNotFoundError(f"Replenishment request {request_id} not found")
        return ReplenishmentRequest.model_validate(row)

    async def update_status(
        self,
        request_id: str,
        new_status: ReplenishmentStatus,
        notes: str | None = None,
        product_id: str | None = None,
        quantity: int | None = None,
        *,
        expected_status: ReplenishmentStatus | None = None,
        mark_approved: bool = False,
    ) -> ReplenishmentRequest:
        """
        Move a request to ``new_status`` and stamp the matching timestamps.

        With ``expected_status`` the write is a compare-and-set, so two callers
        racing on the same request cannot both succeed. With ``product_id`` and
        ``quantity`` the product's stock is credited atomically; if that fails
        the status change is rolled back and the StoreError propagates.
        """
        await self.require_user()
        credit = product_id is not None and quantity is not None
        if credit and (isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0):
            raise ValidationError(f"Stock credit must be a positive whole number, got {quantity!r}")

        now = _utcnow()
        changes: dict[str, Any] = {"status": new_status.value, "updated_at": now}
        if new_status is ReplenishmentStatus.APPROVED or mark_approved:
            changes["approved_at"] = now
        if new_status is ReplenishmentStatus.COMPLETED:
            changes["completed_at"] = now
        if notes:
            changes["notes"] = notes

        previous = await self.store.get(REPLENISHMENT_REQUESTS, request_id) if credit else None
        match = {"status": expected_status.value} if expected_status is not None else None
        updated = await self.store.update(REPLENISHMENT_REQUESTS, request_id, changes, match=match)
        if updated is None:
            raise InvalidTransitionError(
                f"Replenishment request {request_id} is no longer {expected_status.value}"
            )

        if credit:
            try:
                new_stock = await self.credit_stock(product_id, quantity)
            except StoreError as exc:
                await self._rollback_status(request_id, previous or {}, changes, new_status)
                raise StoreError(f"Stock credit failed, request {request_id} left unchanged: {exc}") from exc
            logger.info(f"Credited {quantity} units to product {product_id}; stock now {new_stock}")

        return await self.get(request_id)

    async def _rollback_status(
        self,
        request_id: str,
        previous: dict[str, Any],
        changes: dict[str, Any],
        new_status: ReplenishmentStatus,
    ) -> None:
        restore = {column: previous.get(column) for column in changes}
        try:
            await self.store.update(
                REPLENISHMENT_REQUESTS, request_id, restore, match={"status": new_status.value}
            )
        except StoreError as exc:
            await self.handle_exception(exc, {"stage": "status_rollback", "request_id": request_id})

    async def credit_stock(self, product_id: str, quantity: int) -> int:
        """Add ``quantity`` to a product's current stock in one store operation."""
        row = await self.store.increment(PRODUCTS, product_id, "current_stock", quantity)
        return row["current_stock"]

    async def delete(self, request_id: str) -> None:
        await self.require_user()
        await self.store.delete(REPLENISHMENT_REQUESTS, request_id)
        logger.info(f"Replenishment request {request_id} deleted")
