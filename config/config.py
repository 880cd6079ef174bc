"""
Configuration classes for the inventory and replenishment service.
Values come from the environment (a project `.env` is loaded by `utils`).
"""

import os
from dataclasses import dataclass, field

from utils.env import env_flag, env_float


@dataclass
class StoreConfig:
    url: str = ""
    api_key: str = ""
    access_token: str | None = None
    timeout_seconds: float = 10.0
    increment_function: str = "increment_column"

    @property
    def is_remote(self) -> bool:
        return bool(self.url and self.api_key)


@dataclass
class NotificationConfig:
    webhook_url: str | None = None
    timeout_seconds: float = 5.0


@dataclass
class ReplenishmentConfig:
    collapse_approval: bool = True  # approve goes straight to completed
    default_supplier_name: str = "default_"


@dataclass
class AppConfig:
    store: StoreConfig = field(default_factory=StoreConfig)
    notification: NotificationConfig = field(default_factory=NotificationConfig)
    replenishment: ReplenishmentConfig = field(default_factory=ReplenishmentConfig)
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "AppConfig":
        """Build the configuration from environment variables."""
        return cls(
            store=StoreConfig(
                url=os.getenv("INVENTORY_STORE_URL", ""),
                api_key=os.getenv("INVENTORY_STORE_API_KEY", ""),
                access_token=os.getenv("INVENTORY_STORE_ACCESS_TOKEN") or None,
                timeout_seconds=env_float("INVENTORY_STORE_TIMEOUT", 10.0),
                increment_function=os.getenv("INVENTORY_STORE_INCREMENT_FUNCTION") or "increment_column",
            ),
            notification=NotificationConfig(
                webhook_url=os.getenv("REORDER_WEBHOOK_URL") or None,
                timeout_seconds=env_float("REORDER_WEBHOOK_TIMEOUT", 5.0),
            ),
            replenishment=ReplenishmentConfig(
                collapse_approval=env_flag("REPLENISHMENT_COLLAPSE_APPROVAL", True),
                default_supplier_name=os.getenv("DEFAULT_SUPPLIER_NAME", "default_"),
            ),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        )
