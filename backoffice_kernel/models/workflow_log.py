"""
WorkflowLogModel -- append-only transition audit trail.

One row per Purchase or Reimbursement transition, including the initial
``create`` pseudo-transition.  Rows are never updated or deleted; the
listeners in ``backoffice_kernel.db.immutability`` block both at flush time.
``seq`` is allocated from the ``workflow_log`` sequence counter, so entries
with identical timestamps still have a total order.
"""

from datetime import datetime
from uuid import UUID

from sqlalchemy import BigInteger, DateTime, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from backoffice_kernel.db.base import Base, UUIDString


class WorkflowLogModel(Base):
    """A single workflow transition record."""

    __tablename__ = "workflow_logs"

    __table_args__ = (
        Index("idx_workflow_log_entity", "entity_type", "entity_id", "seq"),
        Index("idx_workflow_log_operator", "operator_id"),
    )

    seq: Mapped[int] = mapped_column(BigInteger, nullable=False, unique=True)
    entity_type: Mapped[str] = mapped_column(String(30), nullable=False)
    entity_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    action: Mapped[str] = mapped_column(String(30), nullable=False)
    from_status: Mapped[str] = mapped_column(String(50), nullable=False)
    to_status: Mapped[str] = mapped_column(String(50), nullable=False)
    operator_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    comment: Mapped[str | None] = mapped_column(String(2000), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    def to_dto(self):
        from backoffice_kernel.domain.dtos import EntityType, WorkflowAction, WorkflowLogEntry

        return WorkflowLogEntry(
            id=self.id,
            seq=self.seq,
            entity_type=EntityType(self.entity_type),
            entity_id=self.entity_id,
            action=WorkflowAction(self.action),
            from_status=self.from_status,
            to_status=self.to_status,
            operator_id=self.operator_id,
            comment=self.comment,
            created_at=self.created_at,
        )

    def __repr__(self) -> str:
        return (
            f"<WorkflowLogModel #{self.seq} {self.entity_type}:{self.entity_id} "
            f"{self.action} {self.from_status}->{self.to_status}>"
        )
