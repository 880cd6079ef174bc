"""
Replenishment lifecycle controller.

Owns the status transitions of a replenishment request:

    pending --approve--> completed   (collapse mode, stock credited)
    pending --approve--> approved    (split mode, decision only)
    pending --reject---> rejected
    approved --complete--> completed (stock credited in split mode)

`rejected` and `completed` are terminal; any other move raises
InvalidTransitionError.
"""

import logging
from typing import Any

from config.config import ReplenishmentConfig
from connectors.base import IdentityProvider, InventoryStore
from models.enums import (
    InventoryEventType,
    ReplenishmentAction,
    ReplenishmentStatus,
    ServiceType,
)
from models.exceptions import InvalidTransitionError, StoreError, ValidationError
from models.replenishment import (
    BatchSubmissionResult,
    ReplenishmentLine,
    ReplenishmentRequest,
)
from services.base import BaseService
from services.replenishment_store import ReplenishmentRequestStore, validate_request_input
from utils.event_bus import EventBus

logger = logging.getLogger(__name__)

_STATUS_EVENTS = {
    ReplenishmentStatus.APPROVED: InventoryEventType.REPLENISHMENT_APPROVED,
    ReplenishmentStatus.REJECTED: InventoryEventType.REPLENISHMENT_REJECTED,
    ReplenishmentStatus.COMPLETED: InventoryEventType.REPLENISHMENT_COMPLETED,
}


class ReplenishmentLifecycle(BaseService):
    """Validates and applies replenishment request transitions."""

    service_type = ServiceType.REPLENISHMENT

    def __init__(
        self,
        store: InventoryStore,
        identity: IdentityProvider,
        event_bus: EventBus | None = None,
        config: ReplenishmentConfig | None = None,
        requests: ReplenishmentRequestStore | None = None,
    ):
        super().__init__(store, identity, event_bus)
        self.config = config or ReplenishmentConfig()
        self.requests = requests or ReplenishmentRequestStore(store, identity, event_bus)

    # --- Transition table --- #

    def next_status(
        self, current: ReplenishmentStatus, action: ReplenishmentAction
    ) -> ReplenishmentStatus:
        transitions = {
            (ReplenishmentStatus.PENDING, ReplenishmentAction.APPROVE): (
                ReplenishmentStatus.COMPLETED
                if self.config.collapse_approval
                else ReplenishmentStatus.APPROVED
            ),
            (ReplenishmentStatus.PENDING, ReplenishmentAction.REJECT): ReplenishmentStatus.REJECTED,
            (ReplenishmentStatus.APPROVED, ReplenishmentAction.COMPLETE): ReplenishmentStatus.COMPLETED,
        }
        try:
            return transitions[(current, action)]
        except KeyError:
            raise InvalidTransitionError(
                f"Cannot {action.value} a {current.value} replenishment request"
            ) from None

    def credits_stock(self, action: ReplenishmentAction, target: ReplenishmentStatus) -> bool:
        """Whether reaching ``target`` through ``action`` puts the goods on the shelf."""
        if target is not ReplenishmentStatus.COMPLETED:
            return False
        # In collapse mode the credit happened (or was meant to happen) at approval
        return action is ReplenishmentAction.APPROVE or not self.config.collapse_approval

    # --- Operations --- #

    async def request(self, product_id: str, quantity: int, supplier_id: str) -> ReplenishmentRequest:
        """Create a pending request and announce it for notification."""
        created = await self.requests.create(product_id, quantity, supplier_id)
        self.emit_event(InventoryEventType.REPLENISHMENT_REQUESTED, self._event_payload(created))
        return created

    async def list_requests(self) -> list[ReplenishmentRequest]:
        return await self.requests.list()

    async def approve(self, request_id: str, notes: str | None = None) -> ReplenishmentRequest:
        return await self.apply(request_id, ReplenishmentAction.APPROVE, notes)

    async def reject(self, request_id: str, notes: str | None = None) -> ReplenishmentRequest:
        return await self.apply(request_id, ReplenishmentAction.REJECT, notes)

    async def complete(self, request_id: str, notes: str | None = None) -> ReplenishmentRequest:
        return await self.apply(request_id, ReplenishmentAction.COMPLETE, notes)

    async def apply(
        self, request_id: str, action: ReplenishmentAction, notes: str | None = None
    ) -> ReplenishmentRequest:
        current = await self.requests.get(request_id)
        target = self.next_status(current.status, action)
        credit = self.credits_stock(action, target)

        updated = await self.requests.update_status(
            request_id,
            target,
            notes,
            product_id=current.product_id if credit else None,
            quantity=current.quantity if credit else None,
            expected_status=current.status,
            mark_approved=action is ReplenishmentAction.APPROVE,
        )
        logger.info(
            f"Replenishment request {request_id}: {current.status.value} --{action.value}--> {target.value}"
        )
        self.emit_event(_STATUS_EVENTS[target], self._event_payload(updated))
        return updated

    async def delete(self, request_id: str) -> None:
        await self.requests.delete(request_id)

    async def submit_multi(
        self, supplier_id: str, lines: list[ReplenishmentLine]
    ) -> BatchSubmissionResult:
        """
        Create one pending request per line for a single supplier.

        Every line is validated first. Inserts then run one at a time and stop
        at the first store failure; requests created before it are kept and
        reported, the failing line and the untouched rest are reported too.
        """
        if not lines:
            raise ValidationError("Select at least one product to replenish")
        for line in lines:
            validate_request_input(line.product_id, line.quantity, supplier_id)
        await self.require_user()
        await self.require_profile()

        result = BatchSubmissionResult(supplier_id=supplier_id)
        for index, line in enumerate(lines):
            try:
                created = await self.requests.create(line.product_id, line.quantity, supplier_id)
            except StoreError as exc:
                result.failed_line = line
                result.error = str(exc)
                result.skipped = list(lines[index + 1 :])
                logger.error(
                    f"Multi-product replenishment for supplier {supplier_id} stopped at "
                    f"{line.product_id} after {len(result.created)} created: {exc}"
                )
                break
            result.created.append(created)
        return result

    @staticmethod
    def _event_payload(request: ReplenishmentRequest) -> dict[str, Any]:
        return {
            "request_id": request.id,
            "product_id": request.product_id,
            "product_name": request.product.name if request.product else None,
            "supplier_id": request.supplier_id,
            "supplier_name": request.supplier.name if request.supplier else None,
            "supplier_phone": request.supplier.phone if request.supplier else None,
            "quantity": request.quantity,
            "status": request.status.value,
            "requested_at": request.requested_at.isoformat(),
        }
