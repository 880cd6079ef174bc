import json

import httpx
import pytest

from connectors.rest_store import RestInventoryStore
from models.exceptions import RecordNotFoundError, StoreError

BASE_URL = "https://db.example.com"


def make_store(handler, **kwargs) -> RestInventoryStore:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return RestInventoryStore(BASE_URL, "anon-key", access_token="jwt", client=client, **kwargs)


def test_requires_base_url():
    with pytest.raises(ValueError):
        RestInventoryStore("", "anon-key")


@pytest.mark.asyncio
async def test_select_builds_filters_order_and_embeds():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["request"] = request
        return httpx.Response(200, json=[{"id": "r1", "product": {"id": "p1"}}])

    store = make_store(handler)
    rows = await store.select(
        "replenishment_requests",
        filters={"profile_id": "profile-1", "notes": None, "urgent": True},
        order_by="requested_at",
        descending=True,
        embed={"product": "products", "supplier": "suppliers"},
    )

    request = seen["request"]
    assert rows == [{"id": "r1", "product": {"id": "p1"}}]
    assert request.method == "GET"
    assert request.url.path == "/rest/v1/replenishment_requests"
    assert request.url.params["select"] == "*,product:products(*),supplier:suppliers(*)"
    assert request.url.params["profile_id"] == "eq.profile-1"
    assert request.url.params["notes"] == "is.null"
    assert request.url.params["urgent"] == "eq.true"
    assert request.url.params["order"] == "requested_at.desc"
    assert request.headers["apikey"] == "anon-key"
    assert request.headers["Authorization"] == "Bearer jwt"


@pytest.mark.asyncio
async def test_insert_returns_representation():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["request"] = request
        body = json.loads(request.content)
        return httpx.Response(201, json=[{"id": "new", **body}])

    store = make_store(handler)
    row = await store.insert("suppliers", {"name": "Acme"})

    assert row == {"id": "new", "name": "Acme"}
    assert seen["request"].method == "POST"
    assert seen["request"].headers["Prefer"] == "return=representation"


@pytest.mark.asyncio
async def test_insert_failure_is_store_error():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(409, text='{"message":"violates foreign key constraint"}')

    store = make_store(handler)
    with pytest.raises(StoreError, match="409"):
        await store.insert("replenishment_requests", {"product_id": "bad-id"})


@pytest.mark.asyncio
async def test_network_error_is_store_error():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    store = make_store(handler)
    with pytest.raises(StoreError, match="unreachable"):
        await store.select("products")


@pytest.mark.asyncio
async def test_update_with_match_sends_compare_and_set_filter():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["request"] = request
        return httpx.Response(200, json=[{"id": "r1", "status": "completed"}])

    store = make_store(handler)
    row = await store.update("replenishment_requests", "r1", {"status": "completed"}, match={"status": "pending"})

    assert row["status"] == "completed"
    assert seen["request"].method == "PATCH"
    assert seen["request"].url.params["id"] == "eq.r1"
    assert seen["request"].url.params["status"] == "eq.pending"


@pytest.mark.asyncio
async def test_update_match_mismatch_returns_none():
    def handler(request: httpx.Request) -> httpx.Response:
        if request.method == "PATCH":
            return httpx.Response(200, json=[])
        return httpx.Response(200, json=[{"id": "r1", "status": "rejected"}])

    store = make_store(handler)
    assert await store.update("replenishment_requests", "r1", {"status": "completed"}, match={"status": "pending"}) is None


@pytest.mark.asyncio
async def test_update_missing_row():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json=[])

    store = make_store(handler)
    with pytest.raises(RecordNotFoundError):
        await store.update("products", "nope", {"min_stock": 1})
    with pytest.raises(RecordNotFoundError):
        await store.update("products", "nope", {"min_stock": 1}, match={"min_stock": 0})


@pytest.mark.asyncio
async def test_delete():
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.params["id"] == "eq.present":
            return httpx.Response(200, json=[{"id": "present"}])
        return httpx.Response(200, json=[])

    store = make_store(handler)
    await store.delete("products", "present")
    with pytest.raises(RecordNotFoundError):
        await store.delete("products", "absent")


@pytest.mark.asyncio
async def test_increment_calls_rpc_function():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["request"] = request
        return httpx.Response(200, json=[{"id": "p1", "current_stock": 25}])

    store = make_store(handler, increment_function="bump_column")
    row = await store.increment("products", "p1", "current_stock", 20)

    assert row["current_stock"] == 25
    assert seen["request"].url.path == "/rest/v1/rpc/bump_column"
    assert json.loads(seen["request"].content) == {
        "target_table": "products",
        "row_id": "p1",
        "column_name": "current_stock",
        "amount": 20,
    }


@pytest.mark.asyncio
async def test_increment_rejected_by_check_constraint():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(400, json={"message": "violates check constraint current_stock >= 0"})

    store = make_store(handler)
    with pytest.raises(StoreError, match="check constraint"):
        await store.increment("products", "p1", "current_stock", -100)
