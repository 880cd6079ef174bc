"""
Inventory and sales reports built as pandas DataFrames.
"""

import logging
from dataclasses import dataclass, field

import pandas as pd

from models.inventory import Product, Sale, StockAlert
from services.inventory import InventoryService
from services.sales import SalesService
from services.stock import build_alerts, classify

logger = logging.getLogger(__name__)

SALES_BY_PRODUCT_COLUMNS = ["product_id", "product_name", "units_sold", "revenue"]
DAILY_SALES_COLUMNS = ["date", "units_sold", "revenue", "transactions"]
VALUATION_COLUMNS = [
    "product_id",
    "name",
    "category",
    "current_stock",
    "min_stock",
    "unit_price",
    "stock_value",
    "status",
]


def sales_by_product(sales: list[Sale], products: list[Product]) -> pd.DataFrame:
    """Units and revenue per product, best sellers first."""
    if not sales:
        return pd.DataFrame(columns=SALES_BY_PRODUCT_COLUMNS)
    sales_df = pd.DataFrame(
        [{"product_id": s.product_id, "quantity": s.quantity, "total_value": s.total_value} for s in sales]
    )
    names_df = pd.DataFrame(
        [{"product_id": p.id, "product_name": p.name} for p in products],
        columns=["product_id", "product_name"],
    )
    grouped = (
        sales_df.groupby("product_id", as_index=False)
        .agg(units_sold=("quantity", "sum"), revenue=("total_value", "sum"))
    )
    df = pd.merge(grouped, names_df, on="product_id", how="left")
    df["product_name"] = df["product_name"].fillna(df["product_id"])
    df = df.sort_values(by=["units_sold", "revenue"], ascending=[False, False])
    return df[SALES_BY_PRODUCT_COLUMNS].reset_index(drop=True)


def daily_sales(sales: list[Sale]) -> pd.DataFrame:
    """Units, revenue and number of sale rows per UTC day, oldest first."""
    if not sales:
        return pd.DataFrame(columns=DAILY_SALES_COLUMNS)
    df = pd.DataFrame(
        [{"date": s.date, "quantity": s.quantity, "total_value": s.total_value} for s in sales]
    )
    df["date"] = pd.to_datetime(df["date"], utc=True).dt.date
    df = (
        df.groupby("date", as_index=False)
        .agg(
            units_sold=("quantity", "sum"),
            revenue=("total_value", "sum"),
            transactions=("quantity", "count"),
        )
        .sort_values(by="date")
    )
    return df[DAILY_SALES_COLUMNS].reset_index(drop=True)


def inventory_valuation(products: list[Product]) -> pd.DataFrame:
    """Stock value and status per product, most valuable first."""
    records = [
        {
            "product_id": p.id,
            "name": p.name,
            "category": p.category,
            "current_stock": p.current_stock,
            "min_stock": p.min_stock,
            "unit_price": p.unit_price,
            "stock_value": p.stock_value,
            "status": classify(p).value,
        }
        for p in products
    ]
    df = pd.DataFrame(records, columns=VALUATION_COLUMNS)
    if df.empty:
        return df
    return df.sort_values(by="stock_value", ascending=False).reset_index(drop=True)


@dataclass
class InventoryReport:
    sales_by_product: pd.DataFrame
    daily_sales: pd.DataFrame
    valuation: pd.DataFrame
    alerts: list[StockAlert] = field(default_factory=list)

    @property
    def total_stock_value(self) -> float:
        return float(self.valuation["stock_value"].sum()) if not self.valuation.empty else 0.0

    @property
    def total_revenue(self) -> float:
        return float(self.daily_sales["revenue"].sum()) if not self.daily_sales.empty else 0.0

    def summary(self) -> dict[str, float | int]:
        return {
            "products": len(self.valuation),
            "total_stock_value": round(self.total_stock_value, 2),
            "total_revenue": round(self.total_revenue, 2),
            "active_alerts": len(self.alerts),
        }


class ReportService:
    """Builds an InventoryReport from the live catalogue and sales history."""

    def __init__(self, inventory: InventoryService, sales: SalesService):
        self.inventory = inventory
        self.sales = sales

    async def build_report(self) -> InventoryReport:
        products = await self.inventory.list_products()
        sales = await self.sales.list_sales()
        report = InventoryReport(
            sales_by_product=sales_by_product(sales, products),
            daily_sales=daily_sales(sales),
            valuation=inventory_valuation(products),
            alerts=build_alerts(products),
        )
        logger.info(f"Report built: {report.summary()}")
        return report
