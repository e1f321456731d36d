"""
FinanceExpenseRecordModel -- ledger-side expense materialized at payment.

Created exactly once per paid Purchase or Reimbursement.  The
``(source_type, source_id)`` pair is the back-reference used by Finance Sync
for its existence check; the unique constraint is a database-level backstop
for that check.
"""

from datetime import date
from decimal import Decimal
from typing import Any
from uuid import UUID

from sqlalchemy import JSON, Date, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from backoffice_kernel.db.base import TrackedBase, UUIDString


class FinanceExpenseRecordModel(TrackedBase):
    """A cleared expense in the finance ledger."""

    __tablename__ = "finance_expense_records"

    __table_args__ = (
        UniqueConstraint("source_type", "source_id", name="uq_finance_record_source"),
        Index("idx_finance_record_purchase", "purchase_id"),
        Index("idx_finance_record_reimbursement", "reimbursement_id"),
    )

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    record_type: Mapped[str] = mapped_column(String(30), nullable=False, default="expense")
    category: Mapped[str] = mapped_column(String(100), nullable=False)
    amount: Mapped[Decimal] = mapped_column(nullable=False)
    occurred_on: Mapped[date] = mapped_column(Date, nullable=False)
    source_type: Mapped[str] = mapped_column(String(30), nullable=False)
    source_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    purchase_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)
    reimbursement_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)
    status: Mapped[str] = mapped_column(String(30), nullable=False, default="cleared")
    details: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)

    def to_dto(self):
        from backoffice_kernel.domain.dtos import EntityType, FinanceExpenseRecord

        return FinanceExpenseRecord(
            id=self.id,
            name=self.name,
            record_type=self.record_type,
            category=self.category,
            amount=self.amount,
            occurred_on=self.occurred_on,
            source_type=EntityType(self.source_type),
            source_id=self.source_id,
            purchase_id=self.purchase_id,
            reimbursement_id=self.reimbursement_id,
            status=self.status,
            details=dict(self.details or {}),
        )

    def __repr__(self) -> str:
        return f"<FinanceExpenseRecordModel {self.source_type}:{self.source_id} {self.amount}>"
