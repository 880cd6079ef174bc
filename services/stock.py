"""
Stock evaluation: status classification, reorder quantity suggestions and
derived low/out-of-stock alerts. Everything here is pure.
"""

from models.enums import AlertType, StockStatus
from models.inventory import Product, StockAlert


def classify_levels(current_stock: int, min_stock: int) -> StockStatus:
    """Classify raw stock numbers: out at or below zero, low up to the minimum."""
    if current_stock <= 0:
        return StockStatus.OUT
    if current_stock <= min_stock:
        return StockStatus.LOW
    return StockStatus.GOOD


def classify(product: Product) -> StockStatus:
    return classify_levels(product.current_stock, product.min_stock)


def needs_replenishment(product: Product) -> bool:
    return classify(product) is not StockStatus.GOOD


def suggest_quantities(product: Product) -> list[int]:
    """
    Candidate reorder quantities, in this order: twice the minimum, three
    times the minimum, what is missing to reach the maximum, the maximum.

    Non-positive candidates and repeats are dropped. An empty list means the
    caller has to fall back to manual entry.
    """
    candidates = [
        product.min_stock * 2,
        product.min_stock * 3,
        product.max_stock - product.current_stock,
        product.max_stock,
    ]
    suggestions: list[int] = []
    for quantity in candidates:
        if quantity > 0 and quantity not in suggestions:
            suggestions.append(quantity)
    return suggestions


def default_order_quantity(product: Product) -> int:
    """Quantity pre-filled for a product in a multi-product reorder."""
    return max(product.min_stock * 2, 1)


def build_alerts(products: list[Product]) -> list[StockAlert]:
    """One active alert per product that is low on or out of stock."""
    alerts = []
    for product in products:
        status = classify(product)
        if status is StockStatus.GOOD:
            continue
        alerts.append(
            StockAlert(
                product_id=product.id,
                product_name=product.name,
                alert_type=AlertType.OUT_OF_STOCK if status is StockStatus.OUT else AlertType.LOW_STOCK,
                current_stock=product.current_stock,
                min_stock=product.min_stock,
            )
        )
    return alerts
