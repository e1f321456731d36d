"""
FinanceSyncService -- idempotent materialization of finance expense records.

Responsibility:
    When a Purchase or Reimbursement reaches ``paid``, write exactly one
    FinanceExpenseRecord that references it.

Architecture position:
    Kernel > Services.  Flush-only: it MUST run inside the same transaction
    as the ``pay`` transition that triggers it, so "paid" and "has a ledger
    entry" are never observably different.

Invariants enforced:
    - Idempotence: an existence query on ``(source_type, source_id)`` runs
      before any insert; if a record exists it is returned unchanged.  A
      retried ``pay`` after a partial failure therefore never creates a
      second record.  ``uq_finance_record_source`` backs the check at the
      database level.

Failure modes:
    - FinanceSyncError on an invalid source (negative amount, blank name or
      category) or when the insert itself fails.  The caller's transaction
      must roll back; the coordinator does this and re-raises.
"""

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from backoffice_kernel.domain.dtos import EntityType, FinanceExpenseRecord, FinanceSource
from backoffice_kernel.exceptions import FinanceSyncError
from backoffice_kernel.logging_config import get_logger
from backoffice_kernel.models.finance_record import FinanceExpenseRecordModel
from backoffice_kernel.services.base import BaseService

logger = get_logger("services.finance_sync")

RECORD_TYPE_EXPENSE = "expense"
RECORD_STATUS_CLEARED = "cleared"


class FinanceSyncService(BaseService[FinanceExpenseRecordModel]):
    """Writes finance expense records for settled documents."""

    def find_for_source(
        self, source_type: EntityType, source_id: UUID
    ) -> FinanceExpenseRecord | None:
        model = self._find_model(source_type, source_id)
        return model.to_dto() if model is not None else None

    def _find_model(self, source_type: EntityType, source_id: UUID):
        return self.session.execute(
            select(FinanceExpenseRecordModel).where(
                FinanceExpenseRecordModel.source_type == EntityType(source_type).value,
                FinanceExpenseRecordModel.source_id == source_id,
            )
        ).scalar_one_or_none()

    def _validate(self, source: FinanceSource) -> None:
        source_type = EntityType(source.source_type).value
        if source.amount is None or source.amount < 0:
            raise FinanceSyncError(source_type, source.source_id, f"invalid amount {source.amount}")
        if not source.name or not source.name.strip():
            raise FinanceSyncError(source_type, source.source_id, "name is blank")
        if not source.category or not source.category.strip():
            raise FinanceSyncError(source_type, source.source_id, "category is blank")

    def sync_expense(
        self, source: FinanceSource, actor_id: UUID
    ) -> tuple[FinanceExpenseRecord, bool]:
        """
        Ensure a finance expense record exists for ``source``.

        Returns:
            ``(record, created)`` -- ``created`` is False when a record for
            the same source already existed.
        """
        source_type = EntityType(source.source_type)
        existing = self._find_model(source_type, source.source_id)
        if existing is not None:
            logger.info(
                "finance_sync_skipped_existing",
                extra={
                    "source_type": source_type.value,
                    "source_id": str(source.source_id),
                    "finance_record_id": str(existing.id),
                },
            )
            return existing.to_dto(), False

        self._validate(source)

        model = FinanceExpenseRecordModel(
            name=source.name.strip(),
            record_type=RECORD_TYPE_EXPENSE,
            category=source.category.strip(),
            amount=source.amount,
            occurred_on=source.occurred_on,
            source_type=source_type.value,
            source_id=source.source_id,
            purchase_id=source.purchase_id,
            reimbursement_id=source.reimbursement_id,
            status=RECORD_STATUS_CLEARED,
            details=dict(source.details) or None,
            created_by_id=actor_id,
        )
        self.session.add(model)
        try:
            self.session.flush()
        except SQLAlchemyError as exc:
            raise FinanceSyncError(
                source_type.value, source.source_id, type(exc).__name__
            ) from exc

        logger.info(
            "finance_record_created",
            extra={
                "source_type": source_type.value,
                "source_id": str(source.source_id),
                "finance_record_id": str(model.id),
                "amount": str(source.amount),
                "category": model.category,
            },
        )
        return model.to_dto(), True

    def count_for_source(self, source_type: EntityType, source_id: UUID) -> int:
        rows = self.session.execute(
            select(FinanceExpenseRecordModel.id).where(
                FinanceExpenseRecordModel.source_type == EntityType(source_type).value,
                FinanceExpenseRecordModel.source_id == source_id,
            )
        ).all()
        return len(rows)
