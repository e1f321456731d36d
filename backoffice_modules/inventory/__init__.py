"""
Inventory Module (``backoffice_modules.inventory``).

The stock collaborator: per-warehouse snapshots updated under a row lock,
inbound receipts that mark purchased goods as received, and stock
applications whose approval deducts stock atomically.
"""

from backoffice_modules.inventory.models import (
    ApplicationStatus,
    InventoryApplication,
    InventoryItem,
    InventoryMovement,
    MovementDirection,
    MovementType,
)
from backoffice_modules.inventory.workflows import INVENTORY_APPLICATION_WORKFLOW

__all__ = [
    "ApplicationStatus",
    "InventoryApplication",
    "InventoryItem",
    "InventoryMovement",
    "MovementDirection",
    "MovementType",
    "INVENTORY_APPLICATION_WORKFLOW",
]
