"""
Exception hierarchy shared by connectors and services.

Services raise these; `services.dashboard.DashboardController` turns them
into the human-readable error strings shown to users.
"""


class InventoryError(Exception):
    """Base class for every failure surfaced by the inventory services."""


class AuthError(InventoryError):
    """No authenticated user or active profile is available."""


class ValidationError(InventoryError, ValueError):
    """Input rejected before any call to the store."""


class StoreError(InventoryError):
    """The backing store failed (network, constraint violation, bad query)."""


class RecordNotFoundError(StoreError):
    """The addressed record does not exist in the store."""


class InvalidTransitionError(InventoryError):
    """A replenishment request cannot move from its current status."""


class NotificationError(InventoryError):
    """Delivery to the notification webhook failed."""
