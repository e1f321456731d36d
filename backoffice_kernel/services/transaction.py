"""
TransactionCoordinator -- one atomic unit per state transition.

Responsibility:
    Wraps a transition's dependent writes (status update, workflow-log
    insert, finance sync, stock deduction) so they commit together or not
    at all.

Modes:
    ``auto_commit=True``  -- the coordinator owns the boundary: commit on
        success; on ANY exception roll back and re-raise.
    ``auto_commit=False`` -- the caller owns the boundary: the unit runs in a
        SAVEPOINT (``Session.begin_nested``).  On failure only the savepoint
        is rolled back, so the caller's outer transaction survives, and the
        caller decides when to commit.  This is the "run inside a
        caller-supplied transaction" signature: services compose by sharing
        a session, never by opening independent transactions.

Failure semantics:
    After a rollback every ORM instance in the session is expired; callers
    re-read the entity to observe its pre-transition state.  The exception
    that caused the rollback propagates unchanged, so the caller sees the
    same error whether the state write or a dependent write failed.
"""

from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

from sqlalchemy.orm import Session

from backoffice_kernel.logging_config import LogContext, get_logger

logger = get_logger("services.transaction")


class TransactionCoordinator:
    """Commit-or-rollback boundary for multi-step transitions."""

    def __init__(self, session: Session, auto_commit: bool = True):
        self.session = session
        self.auto_commit = auto_commit

    @contextmanager
    def transaction(self, operation: str, **fields: Any) -> Iterator[Session]:
        log_fields = {k: str(v) for k, v in fields.items() if v is not None}
        with LogContext.bind(operation=operation):
            if self.auto_commit:
                yield from self._owned(operation, log_fields)
            else:
                yield from self._nested(operation, log_fields)

    def _owned(self, operation: str, log_fields: dict[str, str]) -> Iterator[Session]:
        try:
            yield self.session
            self.session.commit()
        except Exception:
            self.session.rollback()
            logger.warning(
                "transaction_rolled_back",
                extra={"operation": operation, "mode": "owned", **log_fields},
                exc_info=True,
            )
            raise
        logger.debug(
            "transaction_committed",
            extra={"operation": operation, "mode": "owned", **log_fields},
        )

    def _nested(self, operation: str, log_fields: dict[str, str]) -> Iterator[Session]:
        savepoint = self.session.begin_nested()
        try:
            yield self.session
            savepoint.commit()
        except Exception:
            if savepoint.is_active:
                savepoint.rollback()
            logger.warning(
                "transaction_rolled_back",
                extra={"operation": operation, "mode": "savepoint", **log_fields},
                exc_info=True,
            )
            raise
        logger.debug(
            "transaction_released",
            extra={"operation": operation, "mode": "savepoint", **log_fields},
        )
