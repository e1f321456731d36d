"""
Inventory Domain Models.

The nouns of the stock collaborator: items, per-warehouse stock levels,
movements, and outbound requests awaiting approval.
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID


class MovementDirection(str, Enum):
    INBOUND = "inbound"
    OUTBOUND = "outbound"


class MovementType(str, Enum):
    """Why stock moved."""
    PURCHASE = "purchase"
    RETURN = "return"
    TRANSFER = "transfer"
    APPLICATION = "application"
    ADJUSTMENT = "adjustment"


class ApplicationStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


@dataclass(frozen=True)
class InventoryItem:
    id: UUID
    sku: str
    name: str
    unit: str
    is_active: bool = True


@dataclass(frozen=True)
class InventoryMovement:
    """A single stock movement."""
    id: UUID
    item_id: UUID
    warehouse_id: UUID
    direction: MovementDirection
    movement_type: MovementType
    quantity: Decimal
    occurred_at: datetime
    unit_cost: Decimal | None = None
    related_purchase_id: UUID | None = None
    related_order_no: str | None = None
    related_application_id: UUID | None = None
    notes: str | None = None


@dataclass(frozen=True)
class InventoryApplication:
    """An employee's request to draw stock from a warehouse."""
    id: UUID
    applicant_id: UUID
    item_id: UUID
    warehouse_id: UUID
    quantity: Decimal
    status: ApplicationStatus
    reason: str | None = None
    decided_at: datetime | None = None
    decided_by: UUID | None = None
    rejection_reason: str | None = None
    movement_id: UUID | None = None
