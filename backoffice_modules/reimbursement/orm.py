"""
SQLAlchemy ORM persistence model for the Reimbursement module.

Invariants enforced
-------------------
* ``amount`` uses ``Decimal`` (Numeric(38,9)) -- NEVER float.
* ``source_purchase_id`` is set iff ``source_type == 'purchase'``.
* A purchase is linked to at most one non-deleted reimbursement.  The
  service checks this under a lock on the purchase row; it is not a
  database constraint because soft-deleted claims keep their link.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Any
from uuid import UUID

from sqlalchemy import JSON, Boolean, Date, DateTime, Index, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from backoffice_kernel.db.base import TrackedBase, UUIDString


class ReimbursementModel(TrackedBase):
    """
    An expense reimbursement claim.

    Maps to the ``Reimbursement`` DTO in ``backoffice_modules.reimbursement.models``.
    """

    __tablename__ = "reimbursements"

    __table_args__ = (
        UniqueConstraint("reimbursement_number", name="uq_reimbursement_number"),
        Index("idx_reimbursement_status", "status"),
        Index("idx_reimbursement_pending_approver", "pending_approver_id", "status"),
        Index("idx_reimbursement_source_purchase", "source_purchase_id", "is_deleted"),
        Index("idx_reimbursement_applicant", "applicant_id"),
    )

    reimbursement_number: Mapped[str] = mapped_column(String(50), nullable=False)
    source_type: Mapped[str] = mapped_column(String(20), nullable=False, default="direct")
    source_purchase_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)
    organization_type: Mapped[str] = mapped_column(String(50), nullable=False)

    category: Mapped[str] = mapped_column(String(100), nullable=False)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    amount: Mapped[Decimal] = mapped_column(nullable=False)
    occurred_at: Mapped[date] = mapped_column(Date, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    details: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)

    invoice_images: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    receipt_images: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    attachments: Mapped[list] = mapped_column(JSON, nullable=False, default=list)

    applicant_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)

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
    payment_note: Mapped[str | None] = mapped_column(Text, nullable=True)

    is_deleted: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    deleted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    deleted_by: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)

    def to_dto(self):
        from backoffice_kernel.domain.dtos import OrganizationType
        from backoffice_modules.reimbursement.models import (
            Reimbursement,
            ReimbursementStatus,
            SourceType,
        )

        return Reimbursement(
            id=self.id,
            reimbursement_number=self.reimbursement_number,
            source_type=SourceType(self.source_type),
            source_purchase_id=self.source_purchase_id,
            organization_type=OrganizationType(self.organization_type),
            category=self.category,
            title=self.title,
            amount=self.amount,
            occurred_at=self.occurred_at,
            description=self.description,
            details=dict(self.details or {}),
            invoice_images=tuple(self.invoice_images or ()),
            receipt_images=tuple(self.receipt_images or ()),
            attachments=tuple(self.attachments or ()),
            applicant_id=self.applicant_id,
            status=ReimbursementStatus(self.status),
            pending_approver_id=self.pending_approver_id,
            submitted_at=self.submitted_at,
            approved_at=self.approved_at,
            approved_by=self.approved_by,
            rejected_at=self.rejected_at,
            rejected_by=self.rejected_by,
            rejection_reason=self.rejection_reason,
            paid_at=self.paid_at,
            paid_by=self.paid_by,
            payment_note=self.payment_note,
            is_deleted=self.is_deleted,
            created_by=self.created_by_id,
        )

    def to_input(self):
        from backoffice_modules.reimbursement.models import ReimbursementInput

        return ReimbursementInput(
            category=self.category,
            title=self.title,
            amount=self.amount,
            occurred_at=self.occurred_at,
            source_type=self.source_type,
            source_purchase_id=self.source_purchase_id,
            organization_type=self.organization_type,
            description=self.description,
            details=dict(self.details or {}),
            invoice_images=tuple(self.invoice_images or ()),
            receipt_images=tuple(self.receipt_images or ()),
            attachments=tuple(self.attachments or ()),
            applicant_id=self.applicant_id,
        )

    def __repr__(self) -> str:
        return f"<ReimbursementModel {self.reimbursement_number} [{self.status}]>"
