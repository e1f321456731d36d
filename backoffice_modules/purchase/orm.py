"""
SQLAlchemy ORM persistence model for the Purchase module.

Responsibility
--------------
Database-backed persistence for purchase requests, including approval
audit columns and soft-delete markers.

Invariants enforced
-------------------
* All monetary fields use ``Decimal`` (Numeric(38,9)) -- NEVER float.
* Enum fields stored as String(50) for readability and portability.
* Evidence lists (invoice images, receipts, attachments) are JSON arrays
  here and immutable tuples everywhere else.
* ``purchase_number`` is unique.
"""

from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import JSON, Boolean, Date, DateTime, Index, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from backoffice_kernel.db.base import TrackedBase, UUIDString


class PurchaseModel(TrackedBase):
    """
    A purchase request.

    Maps to the ``Purchase`` DTO in ``backoffice_modules.purchase.models``.

    Guarantees:
        - ``status`` follows PURCHASE_WORKFLOW.
        - ``total_amount`` equals ``quantity * unit_price`` rounded half-up
          to 2 places; the service recomputes it on every write.
    """

    __tablename__ = "purchases"

    __table_args__ = (
        UniqueConstraint("purchase_number", name="uq_purchase_number"),
        Index("idx_purchase_status", "status"),
        Index("idx_purchase_pending_approver", "pending_approver_id", "status"),
        Index("idx_purchase_purchaser", "purchaser_id"),
    )

    purchase_number: Mapped[str] = mapped_column(String(50), nullable=False)
    purchase_date: Mapped[date] = mapped_column(Date, nullable=False)
    organization_type: Mapped[str] = mapped_column(String(50), nullable=False)

    item_name: Mapped[str] = mapped_column(String(255), nullable=False)
    specification: Mapped[str | None] = mapped_column(Text, nullable=True)
    quantity: Mapped[Decimal] = mapped_column(nullable=False)
    unit_price: Mapped[Decimal] = mapped_column(nullable=False)
    total_amount: Mapped[Decimal] = mapped_column(nullable=False)
    fee_amount: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    purpose: Mapped[str] = mapped_column(Text, nullable=False)

    purchase_channel: Mapped[str] = mapped_column(String(50), nullable=False)
    purchase_location: Mapped[str | None] = mapped_column(String(255), nullable=True)
    purchase_link: Mapped[str | None] = mapped_column(String(1000), nullable=True)

    payment_method: Mapped[str] = mapped_column(String(50), nullable=False)
    payment_type: Mapped[str] = mapped_column(String(50), nullable=False)
    payer_name: Mapped[str | None] = mapped_column(String(100), nullable=True)
    transaction_no: Mapped[str | None] = mapped_column(String(100), nullable=True)
    purchaser_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)

    invoice_type: Mapped[str] = mapped_column(String(50), nullable=False)
    invoice_status: Mapped[str] = mapped_column(String(50), nullable=False)
    invoice_number: Mapped[str | None] = mapped_column(String(100), nullable=True)
    invoice_issue_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    invoice_images: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    receipt_images: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    attachments: Mapped[list] = mapped_column(JSON, nullable=False, default=list)

    supplier_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)
    has_project: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    project_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)

    status: Mapped[str] = mapped_column(String(50), nullable=False, default="draft")
    pending_approver_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)
    submitted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    approved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    approved_by: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)
    rejected_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    rejected_by: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)
    rejection_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    paid_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    paid_by: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    is_deleted: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    deleted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    deleted_by: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)

    def to_dto(self):
        from backoffice_kernel.domain.dtos import OrganizationType
        from backoffice_modules.purchase.models import (
            InvoiceStatus,
            InvoiceType,
            PaymentMethod,
            PaymentType,
            Purchase,
            PurchaseChannel,
            PurchaseStatus,
        )

        return Purchase(
            id=self.id,
            purchase_number=self.purchase_number,
            purchase_date=self.purchase_date,
            organization_type=OrganizationType(self.organization_type),
            item_name=self.item_name,
            specification=self.specification,
            quantity=self.quantity,
            unit_price=self.unit_price,
            total_amount=self.total_amount,
            fee_amount=self.fee_amount,
            purpose=self.purpose,
            purchase_channel=PurchaseChannel(self.purchase_channel),
            purchase_location=self.purchase_location,
            purchase_link=self.purchase_link,
            payment_method=PaymentMethod(self.payment_method),
            payment_type=PaymentType(self.payment_type),
            payer_name=self.payer_name,
            transaction_no=self.transaction_no,
            purchaser_id=self.purchaser_id,
            invoice_type=InvoiceType(self.invoice_type),
            invoice_status=InvoiceStatus(self.invoice_status),
            invoice_number=self.invoice_number,
            invoice_issue_date=self.invoice_issue_date,
            invoice_images=tuple(self.invoice_images or ()),
            receipt_images=tuple(self.receipt_images or ()),
            attachments=tuple(self.attachments or ()),
            supplier_id=self.supplier_id,
            has_project=self.has_project,
            project_id=self.project_id,
            status=PurchaseStatus(self.status),
            pending_approver_id=self.pending_approver_id,
            submitted_at=self.submitted_at,
            approved_at=self.approved_at,
            approved_by=self.approved_by,
            rejected_at=self.rejected_at,
            rejected_by=self.rejected_by,
            rejection_reason=self.rejection_reason,
            paid_at=self.paid_at,
            paid_by=self.paid_by,
            notes=self.notes,
            is_deleted=self.is_deleted,
        )

    def to_input(self):
        """The editable fields as a ``PurchaseInput`` (used by update/duplicate)."""
        from backoffice_modules.purchase.models import PurchaseInput

        return PurchaseInput(
            purchase_date=self.purchase_date,
            organization_type=self.organization_type,
            item_name=self.item_name,
            quantity=self.quantity,
            unit_price=self.unit_price,
            purpose=self.purpose,
            payment_method=self.payment_method,
            fee_amount=self.fee_amount,
            specification=self.specification,
            purchase_channel=self.purchase_channel,
            purchase_location=self.purchase_location,
            purchase_link=self.purchase_link,
            payment_type=self.payment_type,
            payer_name=self.payer_name,
            transaction_no=self.transaction_no,
            purchaser_id=self.purchaser_id,
            invoice_type=self.invoice_type,
            invoice_status=self.invoice_status,
            invoice_number=self.invoice_number,
            invoice_issue_date=self.invoice_issue_date,
            invoice_images=tuple(self.invoice_images or ()),
            receipt_images=tuple(self.receipt_images or ()),
            attachments=tuple(self.attachments or ()),
            supplier_id=self.supplier_id,
            has_project=self.has_project,
            project_id=self.project_id,
            notes=self.notes,
        )

    def __repr__(self) -> str:
        return f"<PurchaseModel {self.purchase_number} [{self.status}]>"
