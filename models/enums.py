"""
Centralized Enum definitions for the project.
"""

from enum import Enum


class ServiceType(str, Enum):
    """Services that publish events on the bus"""

    INVENTORY = "inventory"
    SALES = "sales"
    REPLENISHMENT = "replenishment"
    SYSTEM = "system"


class StockStatus(str, Enum):
    """Stock level classification of a product"""

    GOOD = "good"
    LOW = "low"  # 0 < current_stock <= min_stock
    OUT = "out"  # current_stock <= 0


class AlertType(str, Enum):
    """Kinds of derived stock alerts"""

    LOW_STOCK = "low_stock"
    OUT_OF_STOCK = "out_of_stock"


class ReplenishmentStatus(str, Enum):
    """Lifecycle states of a replenishment request"""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    COMPLETED = "completed"

    @property
    def is_terminal(self) -> bool:
        return self in (ReplenishmentStatus.REJECTED, ReplenishmentStatus.COMPLETED)


class ReplenishmentAction(str, Enum):
    """Events that drive a replenishment request through its lifecycle"""

    APPROVE = "approve"
    REJECT = "reject"
    COMPLETE = "complete"


class DashboardTab(str, Enum):
    """Tabs of the inventory dashboard"""

    INVENTORY = "inventory"
    SUPPLIERS = "suppliers"
    REPLENISHMENT = "replenishment"
    CLOSING = "closing"
    REPORTS = "reports"


class InventoryEventType(str, Enum):
    """Event names published on the event bus"""

    REPLENISHMENT_REQUESTED = "replenishment.requested"
    REPLENISHMENT_APPROVED = "replenishment.approved"
    REPLENISHMENT_REJECTED = "replenishment.rejected"
    REPLENISHMENT_COMPLETED = "replenishment.completed"
    SALE_RECORDED = "sale.recorded"
    DAY_CLOSED = "day.closed"
    SUPPLIER_CREATED = "supplier.created"
    SYSTEM_EXCEPTION = "system.exception"
