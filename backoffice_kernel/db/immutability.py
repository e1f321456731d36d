"""
ORM-level immutability enforcement (``backoffice_kernel.db.immutability``).

===============================================================================
HOW IT WORKS
===============================================================================

SQLAlchemy fires mapper events before UPDATE/DELETE statements are emitted.
Listeners intercept them and raise ImmutabilityViolationError, which aborts
the flush; the surrounding transaction is then rolled back by its owner.

    session.flush()
         |
         v
    [before_update] --> _check_workflow_log_update() --> ImmutabilityViolationError
    [before_delete] --> _check_workflow_log_delete() --> ImmutabilityViolationError

===============================================================================
PROTECTED ENTITIES
===============================================================================

Entity                  | When Immutable        | Why
------------------------|-----------------------|----------------------------------
WorkflowLogModel        | ALWAYS                | Sole audit source of truth
FinanceExpenseRecord    | Delete, always        | Ledger rows are never removed

Bulk ``session.execute(update(...))`` statements bypass mapper events; no
service issues bulk statements against these tables.
"""

from sqlalchemy import event

from backoffice_kernel.exceptions import ImmutabilityViolationError
from backoffice_kernel.logging_config import get_logger

logger = get_logger("db.immutability")


def _check_workflow_log_update(mapper, connection, target):
    logger.error(
        "workflow_log_update_blocked",
        extra={"workflow_log_id": str(target.id)},
    )
    raise ImmutabilityViolationError(
        "WorkflowLog", target.id, "workflow log entries are append-only"
    )


def _check_workflow_log_delete(mapper, connection, target):
    logger.error(
        "workflow_log_delete_blocked",
        extra={"workflow_log_id": str(target.id)},
    )
    raise ImmutabilityViolationError(
        "WorkflowLog", target.id, "workflow log entries cannot be deleted"
    )


def _check_finance_record_delete(mapper, connection, target):
    logger.error(
        "finance_record_delete_blocked",
        extra={"finance_record_id": str(target.id)},
    )
    raise ImmutabilityViolationError(
        "FinanceExpenseRecord", target.id, "finance expense records cannot be deleted"
    )


def _listeners():
    from backoffice_kernel.models.finance_record import FinanceExpenseRecordModel
    from backoffice_kernel.models.workflow_log import WorkflowLogModel

    return (
        (WorkflowLogModel, "before_update", _check_workflow_log_update),
        (WorkflowLogModel, "before_delete", _check_workflow_log_delete),
        (FinanceExpenseRecordModel, "before_delete", _check_finance_record_delete),
    )


def register_immutability_listeners() -> None:
    """Register all immutability listeners (idempotent)."""
    for target, name, fn in _listeners():
        if not event.contains(target, name, fn):
            event.listen(target, name, fn)


def unregister_immutability_listeners() -> None:
    """
    Remove immutability listeners.

    WARNING: Only use this in tests that must violate immutability on purpose.
    """
    for target, name, fn in _listeners():
        if event.contains(target, name, fn):
            event.remove(target, name, fn)
