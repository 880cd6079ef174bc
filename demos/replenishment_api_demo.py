"""
FastAPI application exposing the inventory and replenishment services.

Without INVENTORY_STORE_URL / INVENTORY_STORE_API_KEY it runs on the in-memory
store with a demo user, profile and a small seeded catalogue.
Run with: uvicorn demos.replenishment_api_demo:app --reload
"""

import json
from datetime import date
from typing import Any

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from config.config import AppConfig
from connectors.base import PRODUCTS, PROFILES, SUPPLIERS
from connectors.identity import StaticIdentityProvider
from connectors.memory_store import InMemoryStore
from models.enums import ReplenishmentAction
from models.exceptions import (
    AuthError,
    InvalidTransitionError,
    InventoryError,
    RecordNotFoundError,
    StoreError,
    ValidationError,
)
from models.identity import AuthenticatedUser, Profile
from models.inventory import ProductDraft, SaleLine, SupplierDraft
from models.replenishment import ReplenishmentLine
from services.app import InventoryApp, build_app
from services.stock import classify, suggest_quantities
from utils.logger import get_logger

logger = get_logger("replenishment-api")

app = FastAPI(title="Inventory Replenishment Service")

DEMO_USER = AuthenticatedUser(id="demo-user", email="demo@example.com", username="demo")
DEMO_PROFILE = Profile(id="demo-profile", user_id="demo-user", name="Demo store")


# --- Request bodies --- #


class ReplenishmentRequestBody(BaseModel):
    product_id: str
    supplier_id: str
    quantity: int


class BatchReplenishmentBody(BaseModel):
    supplier_id: str
    lines: list[ReplenishmentLine]


class TransitionBody(BaseModel):
    notes: str | None = None


class SalesBody(BaseModel):
    lines: list[SaleLine] = Field(min_length=1)


class DayClosingBody(BaseModel):
    day: date | None = None


# --- Application state --- #


def build_demo_inventory(config: AppConfig | None = None) -> InventoryApp:
    """Build the service graph, seeding an in-memory demo tenant when not remote."""
    config = config or AppConfig.from_env()
    get_logger(logger.name, level=config.log_level)
    if config.store.is_remote:
        return build_app(config)
    store = InMemoryStore()
    store.seed(PROFILES, [DEMO_PROFILE.model_dump()])
    store.seed(
        SUPPLIERS,
        [{"id": "sup-acme", "name": "Acme Wholesale", "contact": "Ana", "phone": "+15550100", "profile_id": DEMO_PROFILE.id}],
    )
    store.seed(
        PRODUCTS,
        [
            {"id": "prod-coffee", "name": "Coffee beans", "category": "Grocery", "current_stock": 5, "min_stock": 10,
             "max_stock": 50, "unit_price": 12.5, "unit": "kg", "supplier_id": "sup-acme", "profile_id": DEMO_PROFILE.id},
            {"id": "prod-filters", "name": "Paper filters", "category": "Supplies", "current_stock": 0, "min_stock": 20,
             "max_stock": 200, "unit_price": 3.0, "supplier_id": "sup-acme", "profile_id": DEMO_PROFILE.id},
            {"id": "prod-mugs", "name": "Mugs", "category": "Tableware", "current_stock": 40, "min_stock": 5,
             "max_stock": 60, "unit_price": 8.0, "supplier_id": "sup-acme", "profile_id": DEMO_PROFILE.id},
        ],
    )
    identity = StaticIdentityProvider(DEMO_USER, DEMO_PROFILE)
    logger.info("Running on the in-memory store with the demo tenant")
    return build_app(config, store=store, identity=identity)


def get_inventory(request: Request) -> InventoryApp:
    inventory = getattr(request.app.state, "inventory", None)
    if inventory is None:
        inventory = build_demo_inventory()
        request.app.state.inventory = inventory
    return inventory


@app.on_event("shutdown")
async def shutdown_event():
    """Flush pending notifications and close HTTP clients."""
    inventory = getattr(app.state, "inventory", None)
    if inventory is not None:
        await inventory.aclose()
        logger.info("Inventory services closed.")


_STATUS_CODES: list[tuple[type[InventoryError], int]] = [
    (AuthError, 401),
    (ValidationError, 422),
    (RecordNotFoundError, 404),
    (InvalidTransitionError, 409),
    (StoreError, 502),
]


@app.exception_handler(InventoryError)
async def inventory_error_handler(request: Request, exc: InventoryError):
    status_code = next((code for cls, code in _STATUS_CODES if isinstance(exc, cls)), 500)
    logger.warning(f"{request.method} {request.url.path} failed ({status_code}): {exc}")
    return JSONResponse(status_code=status_code, content={"error": type(exc).__name__, "detail": str(exc)})


# --- Catalogue --- #


@app.get("/products")
async def list_products(request: Request) -> list[dict[str, Any]]:
    """Products with their stock status and suggested reorder quantities."""
    products = await get_inventory(request).inventory.list_products()
    return [
        {
            **p.model_dump(mode="json"),
            "status": classify(p).value,
            "suggested_quantities": suggest_quantities(p),
        }
        for p in products
    ]


@app.post("/products", status_code=201)
async def add_product(draft: ProductDraft, request: Request):
    product = await get_inventory(request).inventory.add_product(draft)
    return product.model_dump(mode="json")


@app.get("/suppliers")
async def list_suppliers(request: Request):
    suppliers = await get_inventory(request).inventory.list_suppliers()
    return [s.model_dump(mode="json") for s in suppliers]


@app.post("/suppliers", status_code=201)
async def add_supplier(draft: SupplierDraft, request: Request):
    supplier = await get_inventory(request).inventory.add_supplier(draft)
    return supplier.model_dump(mode="json")


@app.get("/alerts")
async def list_alerts(request: Request):
    alerts = await get_inventory(request).inventory.get_alerts()
    return [a.model_dump(mode="json") for a in alerts]


# --- Replenishment --- #


@app.get("/replenishment-requests")
async def list_replenishment_requests(request: Request):
    requests = await get_inventory(request).replenishment.list_requests()
    return [r.model_dump(mode="json") for r in requests]


@app.post("/replenishment-requests", status_code=201)
async def create_replenishment_request(body: ReplenishmentRequestBody, request: Request):
    created = await get_inventory(request).replenishment.request(body.product_id, body.quantity, body.supplier_id)
    return created.model_dump(mode="json")


@app.post("/replenishment-requests/batch", status_code=201)
async def submit_batch(body: BatchReplenishmentBody, request: Request):
    result = await get_inventory(request).replenishment.submit_multi(body.supplier_id, body.lines)
    content = {
        "supplier_id": result.supplier_id,
        "ok": result.ok,
        "created": [r.model_dump(mode="json") for r in result.created],
        "failed_line": result.failed_line.model_dump() if result.failed_line else None,
        "error": result.error,
        "skipped": [line.model_dump() for line in result.skipped],
    }
    return JSONResponse(status_code=201 if result.ok else 207, content=content)


@app.post("/replenishment-requests/{request_id}/{action}")
async def transition_replenishment_request(
    request_id: str, action: ReplenishmentAction, request: Request, body: TransitionBody | None = None
):
    updated = await get_inventory(request).replenishment.apply(
        request_id, action, body.notes if body else None
    )
    return updated.model_dump(mode="json")


@app.delete("/replenishment-requests/{request_id}", status_code=204)
async def delete_replenishment_request(request_id: str, request: Request):
    await get_inventory(request).replenishment.delete(request_id)


# --- Sales and closing --- #


@app.get("/sales")
async def list_sales(request: Request, day: date | None = None):
    sales = await get_inventory(request).sales.list_sales(day)
    return [s.model_dump(mode="json") for s in sales]


@app.post("/sales", status_code=201)
async def record_sales(body: SalesBody, request: Request):
    recorded = await get_inventory(request).sales.record_sales(body.lines)
    return [s.model_dump(mode="json") for s in recorded]


@app.post("/day-closings", status_code=201)
async def close_day(request: Request, body: DayClosingBody | None = None):
    closing = await get_inventory(request).sales.close_day(body.day if body else None)
    return closing.model_dump(mode="json")


@app.get("/reports/summary")
async def report_summary(request: Request):
    report = await get_inventory(request).reports.build_report()
    return {
        **report.summary(),
        "top_sellers": json.loads(report.sales_by_product.head(5).to_json(orient="records")),
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8002)
