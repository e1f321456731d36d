"""
WorkflowLogService -- append-only audit trail shared by both state machines.

Responsibility:
    Append one entry per transition (including ``create``) and read the
    ordered trail of a document back.  The log is the sole audit source of
    truth: an entry is written in the same transaction as the status change
    it describes, so a rolled-back transition leaves no entry behind.

Invariants enforced:
    - Entries are never updated or deleted (ORM listeners, see
      ``backoffice_kernel.db.immutability``).
    - Entries are totally ordered by ``seq`` from the ``workflow_log``
      sequence counter.
"""

from enum import Enum
from uuid import UUID

from sqlalchemy import select

from backoffice_kernel.domain.dtos import EntityType, WorkflowAction, WorkflowLogEntry
from backoffice_kernel.logging_config import get_logger
from backoffice_kernel.models.workflow_log import WorkflowLogModel
from backoffice_kernel.services.base import BaseService
from backoffice_kernel.services.sequence_service import SequenceService

logger = get_logger("services.workflow_log")


def _state(value) -> str:
    return value.value if isinstance(value, Enum) else str(value)


class WorkflowLogService(BaseService[WorkflowLogModel]):
    """Flush-only writer and reader for workflow log entries."""

    def append(
        self,
        entity_type: EntityType,
        entity_id: UUID,
        action: WorkflowAction,
        from_status: str,
        to_status: str,
        operator_id: UUID,
        comment: str | None = None,
    ) -> WorkflowLogEntry:
        seq = SequenceService(self.session).next_value(SequenceService.WORKFLOW_LOG)
        model = WorkflowLogModel(
            seq=seq,
            entity_type=EntityType(entity_type).value,
            entity_id=entity_id,
            action=WorkflowAction(action).value,
            from_status=_state(from_status),
            to_status=_state(to_status),
            operator_id=operator_id,
            comment=(comment.strip() or None) if comment else None,
            created_at=self.clock.now(),
        )
        self.session.add(model)
        self.session.flush()

        logger.info(
            "workflow_log_appended",
            extra={
                "seq": seq,
                "entity_type": model.entity_type,
                "entity_id": str(entity_id),
                "action": model.action,
                "from_status": model.from_status,
                "to_status": model.to_status,
                "operator_id": str(operator_id),
            },
        )
        return model.to_dto()

    def entries_for(self, entity_type: EntityType, entity_id: UUID) -> list[WorkflowLogEntry]:
        rows = self.session.execute(
            select(WorkflowLogModel)
            .where(
                WorkflowLogModel.entity_type == EntityType(entity_type).value,
                WorkflowLogModel.entity_id == entity_id,
            )
            .order_by(WorkflowLogModel.seq)
        ).scalars()
        return [row.to_dto() for row in rows]

    def count_for(self, entity_type: EntityType, entity_id: UUID) -> int:
        return len(self.entries_for(entity_type, entity_id))
