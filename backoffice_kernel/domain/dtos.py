"""
Kernel DTOs -- immutable values returned by kernel services.

ORM models never leave a service boundary; callers receive these frozen
dataclasses instead.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID


class WorkflowAction(str, Enum):
    """Actions recorded in the workflow log."""

    CREATE = "create"
    SUBMIT = "submit"
    APPROVE = "approve"
    REJECT = "reject"
    WITHDRAW = "withdraw"
    PAY = "pay"
    CANCEL = "cancel"
    TRANSFER = "transfer"


class EntityType(str, Enum):
    """Document types that flow through the workflow engine."""

    PURCHASE = "purchase"
    REIMBURSEMENT = "reimbursement"


class OrganizationType(str, Enum):
    """Organizational scope used for approver routing."""

    SCHOOL = "school"
    COMPANY = "company"


@dataclass(frozen=True)
class WorkflowLogEntry:
    """One append-only workflow transition record."""

    id: UUID
    seq: int
    entity_type: EntityType
    entity_id: UUID
    action: WorkflowAction
    from_status: str
    to_status: str
    operator_id: UUID
    comment: str | None
    created_at: datetime


@dataclass(frozen=True)
class FinanceSource:
    """What Finance Sync needs to know about a settled document."""

    source_type: EntityType
    source_id: UUID
    name: str
    category: str
    amount: Decimal
    occurred_on: date
    purchase_id: UUID | None = None
    reimbursement_id: UUID | None = None
    details: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class FinanceExpenseRecord:
    """Ledger-side expense created once per paid document."""

    id: UUID
    name: str
    record_type: str
    category: str
    amount: Decimal
    occurred_on: date
    source_type: EntityType
    source_id: UUID
    purchase_id: UUID | None
    reimbursement_id: UUID | None
    status: str
    details: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class Employee:
    """Identity collaborator view of an employee."""

    id: UUID
    display_name: str
    email: str | None
    primary_role: str | None
    roles: tuple[str, ...]
    is_active: bool
