"""
Inventory data models: suppliers, products, sales, alerts and day closings.

Field names match the store's snake_case columns so that rows can be
validated directly with ``Model.model_validate(row)``.
"""

from datetime import date, datetime

from pydantic import BaseModel, ConfigDict, Field

from .enums import AlertType


class Supplier(BaseModel):
    """A vendor products are reordered from."""

    model_config = ConfigDict(extra="ignore")

    id: str
    name: str
    contact: str = ""
    phone: str | None = None
    email: str | None = None
    address: str | None = None
    profile_id: str | None = None
    created_at: datetime | None = None


class SupplierDraft(BaseModel):
    """Writable supplier fields."""

    name: str = Field(min_length=1)
    contact: str = ""
    phone: str | None = None
    email: str | None = None
    address: str | None = None


class ProductDraft(BaseModel):
    """Writable product fields used for create and update."""

    name: str = Field(min_length=1)
    category: str = Field(min_length=1)
    current_stock: int = Field(default=0, ge=0)
    min_stock: int = Field(default=0, ge=0)
    max_stock: int = Field(default=0, ge=0)
    unit_price: float = Field(default=0.0, ge=0)
    unit: str = "pieces"  # 'pieces', 'kg', 'liters', etc.
    supplier_id: str | None = None
    description: str | None = None
    sku: str | None = None


class Product(ProductDraft):
    """A stocked product as stored, optionally with its supplier joined in."""

    model_config = ConfigDict(extra="ignore")

    id: str
    supplier: Supplier | None = None
    profile_id: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def stock_value(self) -> float:
        return self.current_stock * self.unit_price


class SaleLine(BaseModel):
    """One product/quantity pair entered on the day-closing form."""

    product_id: str
    quantity: int


class Sale(BaseModel):
    """A recorded sale. Immutable once stored."""

    model_config = ConfigDict(extra="ignore")

    id: str
    product_id: str
    quantity: int = Field(gt=0)
    date: datetime
    total_value: float
    profile_id: str | None = None
    product: Product | None = None


class StockAlert(BaseModel):
    """Derived alert for a product that is low on or out of stock."""

    product_id: str
    product_name: str
    alert_type: AlertType
    current_stock: int
    min_stock: int
    is_active: bool = True
    created_at: datetime = Field(default_factory=datetime.now)


class DayClosing(BaseModel):
    """End-of-day summary of the sales recorded on one date."""

    model_config = ConfigDict(extra="ignore")

    id: str | None = None
    date: date
    sales: list[Sale] = Field(default_factory=list)
    total_sales: int = 0
    total_value: float = 0.0
    closed_by: str
    profile_id: str | None = None
    created_at: datetime | None = None
