"""
Module: backoffice_modules.inventory.orm
Responsibility: SQLAlchemy ORM persistence for the inventory collaborator:
    items, per-warehouse stock snapshots, movements, and stock applications.

Invariants enforced:
    - All quantities use Decimal (Numeric(38,9)) -- NEVER float.
    - Exactly one snapshot row per (item_id, warehouse_id); the row is the
      lock target for every quantity change.
    - Movements are the history; the snapshot is the current balance.
    - Inbound movements that receive purchased goods carry
      ``related_purchase_id`` (and optionally the purchase number in
      ``related_order_no``); this is what inbound readiness checks.
"""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from backoffice_kernel.db.base import TrackedBase, UUIDString


class InventoryItemModel(TrackedBase):
    """A stock-keeping unit."""

    __tablename__ = "inventory_items"

    __table_args__ = (
        UniqueConstraint("sku", name="uq_inventory_item_sku"),
    )

    sku: Mapped[str] = mapped_column(String(100), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    unit: Mapped[str] = mapped_column(String(20), nullable=False, default="pcs")
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    def to_dto(self):
        from backoffice_modules.inventory.models import InventoryItem

        return InventoryItem(
            id=self.id,
            sku=self.sku,
            name=self.name,
            unit=self.unit,
            is_active=self.is_active,
        )


class StockSnapshotModel(TrackedBase):
    """Current on-hand quantity of an item in a warehouse."""

    __tablename__ = "stock_snapshots"

    __table_args__ = (
        UniqueConstraint("item_id", "warehouse_id", name="uq_stock_snapshot_item_warehouse"),
    )

    item_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("inventory_items.id"), nullable=False
    )
    warehouse_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    quantity: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))


class InventoryMovementModel(TrackedBase):
    """One inbound or outbound stock movement."""

    __tablename__ = "inventory_movements"

    __table_args__ = (
        Index("idx_inv_movement_item", "item_id", "warehouse_id"),
        Index("idx_inv_movement_purchase", "related_purchase_id", "direction"),
        Index("idx_inv_movement_order_no", "related_order_no", "direction"),
    )

    item_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("inventory_items.id"), nullable=False
    )
    warehouse_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    direction: Mapped[str] = mapped_column(String(20), nullable=False)
    movement_type: Mapped[str] = mapped_column(String(50), nullable=False)
    quantity: Mapped[Decimal] = mapped_column(nullable=False)
    unit_cost: Mapped[Decimal | None] = mapped_column(nullable=True)
    related_purchase_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)
    related_order_no: Mapped[str | None] = mapped_column(String(50), nullable=True)
    related_application_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)
    occurred_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    def to_dto(self):
        from backoffice_modules.inventory.models import (
            InventoryMovement,
            MovementDirection,
            MovementType,
        )

        return InventoryMovement(
            id=self.id,
            item_id=self.item_id,
            warehouse_id=self.warehouse_id,
            direction=MovementDirection(self.direction),
            movement_type=MovementType(self.movement_type),
            quantity=self.quantity,
            occurred_at=self.occurred_at,
            unit_cost=self.unit_cost,
            related_purchase_id=self.related_purchase_id,
            related_order_no=self.related_order_no,
            related_application_id=self.related_application_id,
            notes=self.notes,
        )


class InventoryApplicationModel(TrackedBase):
    """A request to draw stock, approved or rejected by a warehouse keeper."""

    __tablename__ = "inventory_applications"

    __table_args__ = (
        Index("idx_inv_application_status", "status"),
    )

    applicant_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    item_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("inventory_items.id"), nullable=False
    )
    warehouse_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    quantity: Mapped[Decimal] = mapped_column(nullable=False)
    reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="pending")
    decided_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    decided_by: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)
    rejection_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    movement_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)

    def to_dto(self):
        from backoffice_modules.inventory.models import (
            ApplicationStatus,
            InventoryApplication,
        )

        return InventoryApplication(
            id=self.id,
            applicant_id=self.applicant_id,
            item_id=self.item_id,
            warehouse_id=self.warehouse_id,
            quantity=self.quantity,
            status=ApplicationStatus(self.status),
            reason=self.reason,
            decided_at=self.decided_at,
            decided_by=self.decided_by,
            rejection_reason=self.rejection_reason,
            movement_id=self.movement_id,
        )
