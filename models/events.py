"""
Data models for events within the inventory system.
"""

import uuid
from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from .enums import ServiceType


class InventoryEvent(BaseModel):
    """Envelope for everything published on the event bus."""

    event_id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    event_type: str
    payload: dict[str, Any]
    source: ServiceType
    timestamp: datetime = Field(default_factory=datetime.now)
