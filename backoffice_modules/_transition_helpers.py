"""
Shared helpers for module state transitions.

Used by ``backoffice_modules/*/service.py`` to load the target row under a
lock, check the declared workflow, and coerce raw inputs into domain values
with the typed input errors.

Architecture: Modules layer.  Imports only from ``backoffice_kernel`` and
``backoffice_config``.
"""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, TypeVar
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from backoffice_config import BackofficeConfig
from backoffice_kernel.domain.workflow import Transition, Workflow
from backoffice_kernel.exceptions import (
    InvalidAmountError,
    InvalidChoiceError,
    InvalidDateError,
    InvalidTransitionError,
    RequiredFieldError,
)
from backoffice_kernel.services.approver_assignment import ApproverAssignmentService

E = TypeVar("E", bound=Enum)


def state_value(value: Any) -> str:
    """Plain string form of a status or enum member."""
    return value.value if isinstance(value, Enum) else str(value)


def lock_active_row(session: Session, model_cls: Any, entity_id: UUID, not_found: type[Exception]):
    """
    ``SELECT ... FOR UPDATE`` a non-deleted row, refreshing any stale
    identity-map copy so the status re-check sees the committed value.

    Raises:
        ``not_found(entity_id)`` when the row is missing or soft-deleted.
    """
    row = session.execute(
        select(model_cls)
        .where(model_cls.id == entity_id, model_cls.is_deleted.is_(False))
        .with_for_update()
        .execution_options(populate_existing=True)
    ).scalar_one_or_none()
    if row is None:
        raise not_found(entity_id)
    return row


def require_transition(
    workflow: Workflow,
    entity_type: str,
    row: Any,
    action: str,
    error_cls: type[InvalidTransitionError],
) -> Transition:
    """Return the declared transition for the row's current status or raise ``error_cls``."""
    transition = workflow.find(row.status, action)
    if transition is None:
        raise error_cls(entity_type, row.id, row.status)
    return transition


def require_text(entity_type: str, field: str, value: str | None) -> str:
    if value is None or not str(value).strip():
        raise RequiredFieldError(entity_type, field)
    return str(value).strip()


def optional_text(value: str | None) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def to_decimal(field: str, value: Any) -> Decimal:
    if value is None or isinstance(value, bool):
        raise InvalidAmountError(field, None, "a number")
    try:
        result = value if isinstance(value, Decimal) else Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        raise InvalidAmountError(field, value, "a number") from None
    if not result.is_finite():
        raise InvalidAmountError(field, result, "a finite number")
    return result


def to_date(field: str, value: Any) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str) and value.strip():
        try:
            return date.fromisoformat(value.strip()[:10])
        except ValueError:
            raise InvalidDateError(field, value) from None
    raise InvalidDateError(field, value)


def to_choice(field: str, value: Any, enum_cls: type[E]) -> E:
    raw = state_value(value) if value is not None else None
    try:
        return enum_cls(raw)
    except ValueError:
        raise InvalidChoiceError(
            field, value, tuple(m.value for m in enum_cls)
        ) from None


def build_approver_assignment(
    session: Session, config: BackofficeConfig
) -> ApproverAssignmentService:
    """Approver assignment whose backlog spans purchases and reimbursements."""
    from backoffice_modules.purchase.orm import PurchaseModel
    from backoffice_modules.reimbursement.orm import ReimbursementModel

    return ApproverAssignmentService(
        session,
        role_by_organization=config.routing.role_by_organization,
        backlog_sources=(PurchaseModel, ReimbursementModel),
    )
