import asyncio
from unittest.mock import AsyncMock

import pytest

from connectors.base import PRODUCTS, REPLENISHMENT_REQUESTS
from connectors.memory_store import InMemoryStore
from models.enums import ReplenishmentAction, ReplenishmentStatus
from models.exceptions import AuthError, InvalidTransitionError, StoreError, ValidationError
from models.replenishment import ReplenishmentLine
from services.replenishment import ReplenishmentLifecycle


def stock_of(store: InMemoryStore, product_id: str) -> int:
    return next(r for r in store.rows(PRODUCTS) if r["id"] == product_id)["current_stock"]


# --- Transition table --- #


def test_next_status_collapse_mode(lifecycle: ReplenishmentLifecycle):
    assert lifecycle.next_status(ReplenishmentStatus.PENDING, ReplenishmentAction.APPROVE) is ReplenishmentStatus.COMPLETED
    assert lifecycle.next_status(ReplenishmentStatus.PENDING, ReplenishmentAction.REJECT) is ReplenishmentStatus.REJECTED
    assert lifecycle.next_status(ReplenishmentStatus.APPROVED, ReplenishmentAction.COMPLETE) is ReplenishmentStatus.COMPLETED


def test_next_status_split_mode(split_lifecycle: ReplenishmentLifecycle):
    assert (
        split_lifecycle.next_status(ReplenishmentStatus.PENDING, ReplenishmentAction.APPROVE)
        is ReplenishmentStatus.APPROVED
    )


@pytest.mark.parametrize("terminal", [ReplenishmentStatus.COMPLETED, ReplenishmentStatus.REJECTED])
@pytest.mark.parametrize("action", list(ReplenishmentAction))
def test_no_transition_out_of_terminal_states(lifecycle, terminal, action):
    with pytest.raises(InvalidTransitionError):
        lifecycle.next_status(terminal, action)


def test_pending_cannot_be_completed_directly(lifecycle):
    with pytest.raises(InvalidTransitionError, match="Cannot complete a pending"):
        lifecycle.next_status(ReplenishmentStatus.PENDING, ReplenishmentAction.COMPLETE)


# --- request --- #


@pytest.mark.asyncio
async def test_request_emits_requested_event(lifecycle, event_bus):
    received = AsyncMock(name="on_requested")
    event_bus.subscribe("replenishment.requested", received)

    created = await lifecycle.request("p1", 20, "sup-1")
    await event_bus.drain()

    received.assert_called_once()
    event = received.call_args.args[0]
    assert event.payload["request_id"] == created.id
    assert event.payload["product_name"] == "Apples"
    assert event.payload["supplier_phone"] == "+15550101"
    assert event.payload["quantity"] == 20
    assert event.payload["status"] == "pending"


@pytest.mark.asyncio
async def test_request_validation_emits_nothing(lifecycle, event_bus, store):
    with pytest.raises(ValidationError):
        await lifecycle.request("p1", 0, "sup-1")
    assert event_bus.pending_count == 0
    assert store.writes() == []


# --- approve / reject / complete --- #


@pytest.mark.asyncio
async def test_approve_credits_stock_and_completes(lifecycle, store, event_bus):
    created = await lifecycle.request("p1", 20, "sup-1")
    assert stock_of(store, "p1") == 5

    approved = await lifecycle.approve(created.id)

    assert approved.status is ReplenishmentStatus.COMPLETED
    assert approved.approved_at is not None
    assert approved.completed_at is not None
    assert stock_of(store, "p1") == 25
    await event_bus.drain()


@pytest.mark.asyncio
async def test_reject_leaves_stock_unchanged(lifecycle, store):
    created = await lifecycle.request("p1", 20, "sup-1")

    rejected = await lifecycle.reject(created.id, "supplier out of stock")

    assert rejected.status is ReplenishmentStatus.REJECTED
    assert rejected.notes == "supplier out of stock"
    assert rejected.approved_at is None
    assert rejected.completed_at is None
    assert stock_of(store, "p1") == 5


@pytest.mark.asyncio
async def test_second_approval_fails_and_credits_once(lifecycle, store):
    created = await lifecycle.request("p1", 20, "sup-1")
    await lifecycle.approve(created.id)

    with pytest.raises(InvalidTransitionError):
        await lifecycle.approve(created.id)
    with pytest.raises(InvalidTransitionError):
        await lifecycle.reject(created.id)

    assert stock_of(store, "p1") == 25


@pytest.mark.asyncio
async def test_racing_approvals_of_one_request_credit_once(identity, event_bus):
    store = InMemoryStore(latency=0.001, foreign_keys={})
    store.seed(PRODUCTS, [{"id": "p1", "name": "Apples", "category": "Produce", "current_stock": 5,
                           "min_stock": 10, "max_stock": 50, "profile_id": "profile-1"}])
    store.seed(REPLENISHMENT_REQUESTS, [{"id": "r1", "product_id": "p1", "supplier_id": "sup-1", "quantity": 20,
                                         "status": "pending", "requested_by": "user-1",
                                         "requested_at": "2026-01-01T08:00:00+00:00", "profile_id": "profile-1"}])
    lifecycle = ReplenishmentLifecycle(store, identity, event_bus)

    results = await asyncio.gather(
        lifecycle.approve("r1"), lifecycle.approve("r1"), return_exceptions=True
    )

    assert sum(isinstance(r, InvalidTransitionError) for r in results) == 1
    assert stock_of(store, "p1") == 25


@pytest.mark.asyncio
async def test_concurrent_approvals_for_same_product_both_credit(identity, event_bus, make_product_row):
    store = InMemoryStore(latency=0.001, foreign_keys={})
    store.seed(PRODUCTS, [make_product_row("p1", 5, 10, 50)])
    lifecycle = ReplenishmentLifecycle(store, identity, event_bus)
    first = await lifecycle.request("p1", 20, "sup-1")
    second = await lifecycle.request("p1", 15, "sup-1")

    await asyncio.gather(lifecycle.approve(first.id), lifecycle.approve(second.id))

    assert stock_of(store, "p1") == 40
    await event_bus.drain()


@pytest.mark.asyncio
async def test_split_mode_approve_then_complete(split_lifecycle, store):
    created = await split_lifecycle.request("p1", 20, "sup-1")

    approved = await split_lifecycle.approve(created.id)
    assert approved.status is ReplenishmentStatus.APPROVED
    assert approved.approved_at is not None
    assert approved.completed_at is None
    assert stock_of(store, "p1") == 5

    completed = await split_lifecycle.complete(created.id, "received")
    assert completed.status is ReplenishmentStatus.COMPLETED
    assert completed.completed_at is not None
    assert stock_of(store, "p1") == 25


@pytest.mark.asyncio
async def test_collapse_mode_completing_approved_request_does_not_credit(lifecycle, store):
    store.seed(REPLENISHMENT_REQUESTS, [{"id": "r-approved", "product_id": "p1", "supplier_id": "sup-1",
                                         "quantity": 20, "status": "approved", "requested_by": "user-1",
                                         "requested_at": "2026-01-01T08:00:00+00:00", "profile_id": "profile-1"}])

    completed = await lifecycle.complete("r-approved")

    assert completed.status is ReplenishmentStatus.COMPLETED
    assert stock_of(store, "p1") == 5


@pytest.mark.asyncio
async def test_transition_events_are_published(lifecycle, event_bus):
    completed_events = AsyncMock(name="on_completed")
    rejected_events = AsyncMock(name="on_rejected")
    event_bus.subscribe("replenishment.completed", completed_events)
    event_bus.subscribe("replenishment.rejected", rejected_events)

    first = await lifecycle.request("p1", 20, "sup-1")
    second = await lifecycle.request("p2", 8, "sup-1")
    await lifecycle.approve(first.id)
    await lifecycle.reject(second.id)
    await event_bus.drain()

    assert completed_events.call_args.args[0].payload["request_id"] == first.id
    assert rejected_events.call_args.args[0].payload["request_id"] == second.id


@pytest.mark.asyncio
async def test_transitions_require_user(store, signed_out, lifecycle):
    created = await lifecycle.request("p1", 20, "sup-1")
    anonymous = ReplenishmentLifecycle(store, signed_out)

    with pytest.raises(AuthError):
        await anonymous.approve(created.id)
    assert stock_of(store, "p1") == 5


# --- submit_multi --- #


@pytest.mark.asyncio
async def test_submit_multi_stops_at_bad_product(lifecycle, store):
    lines = [
        ReplenishmentLine(product_id="p1", quantity=10),
        ReplenishmentLine(product_id="bad-id", quantity=5),
        ReplenishmentLine(product_id="p2", quantity=8),
    ]

    result = await lifecycle.submit_multi("sup-1", lines)

    assert result.ok is False
    assert [r.product_id for r in result.created] == ["p1"]
    assert result.failed_line.product_id == "bad-id"
    assert "foreign key" in result.error
    assert [line.product_id for line in result.skipped] == ["p2"]
    assert [r["product_id"] for r in store.rows(REPLENISHMENT_REQUESTS)] == ["p1"]


@pytest.mark.asyncio
async def test_submit_multi_validates_every_line_first(lifecycle, store):
    lines = [
        ReplenishmentLine(product_id="p1", quantity=10),
        ReplenishmentLine(product_id="p2", quantity=0),
    ]

    with pytest.raises(ValidationError):
        await lifecycle.submit_multi("sup-1", lines)
    assert store.writes() == []


@pytest.mark.asyncio
async def test_submit_multi_success(lifecycle, event_bus):
    lines = [ReplenishmentLine(product_id="p1", quantity=10), ReplenishmentLine(product_id="p2", quantity=8)]

    result = await lifecycle.submit_multi("sup-1", lines)

    assert result.ok is True
    assert [r.quantity for r in result.created] == [10, 8]
    assert all(r.status is ReplenishmentStatus.PENDING for r in result.created)
    # Batch submissions do not trigger reorder notifications
    assert event_bus.pending_count == 0


@pytest.mark.asyncio
async def test_submit_multi_empty(lifecycle):
    with pytest.raises(ValidationError, match="at least one"):
        await lifecycle.submit_multi("sup-1", [])


@pytest.mark.asyncio
async def test_submit_multi_store_failure_on_first_line(lifecycle, store):
    result = await lifecycle.submit_multi("missing-supplier", [ReplenishmentLine(product_id="p1", quantity=3)])

    assert result.ok is False
    assert result.created == []
    assert isinstance(result.error, str)
    assert store.rows(REPLENISHMENT_REQUESTS) == []


@pytest.mark.asyncio
async def test_delete_request(lifecycle, store):
    created = await lifecycle.request("p1", 20, "sup-1")
    await lifecycle.delete(created.id)
    assert store.rows(REPLENISHMENT_REQUESTS) == []
    with pytest.raises(StoreError):
        await lifecycle.delete(created.id)
