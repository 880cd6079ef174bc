"""
Data models for replenishment (reorder) requests.
"""

from dataclasses import dataclass, field
from datetime import datetime

from pydantic import BaseModel, ConfigDict

from .enums import ReplenishmentStatus
from .inventory import Product, Supplier


class ReplenishmentRequest(BaseModel):
    """A request to restock a product from a supplier."""

    model_config = ConfigDict(extra="ignore")

    id: str
    product_id: str
    supplier_id: str
    quantity: int
    status: ReplenishmentStatus = ReplenishmentStatus.PENDING
    requested_by: str
    requested_at: datetime
    approved_at: datetime | None = None
    completed_at: datetime | None = None
    notes: str | None = None
    profile_id: str | None = None
    # Snapshots joined at read time, not live references
    product: Product | None = None
    supplier: Supplier | None = None

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal


class ReplenishmentLine(BaseModel):
    """One product of a multi-product replenishment submission."""

    product_id: str
    quantity: int
    name: str | None = None


@dataclass
class BatchSubmissionResult:
    """
    Outcome of a multi-product submission.

    Inserts stop at the first failure; requests created before it stay in the
    store and are listed in `created`.
    """

    supplier_id: str
    created: list[ReplenishmentRequest] = field(default_factory=list)
    failed_line: ReplenishmentLine | None = None
    error: str | None = None
    skipped: list[ReplenishmentLine] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.failed_line is None and not self.skipped
