"""
Reimbursement Domain Models.

Employee expense claims, either standalone (``direct``) or backed by a
purchase the employee paid for personally (``purchase``).
"""

from __future__ import annotations

from dataclasses import dataclass, fields
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID

from backoffice_kernel.domain.dtos import OrganizationType


class ReimbursementStatus(str, Enum):
    """Reimbursement lifecycle states."""
    DRAFT = "draft"
    PENDING_APPROVAL = "pending_approval"
    APPROVED = "approved"
    REJECTED = "rejected"
    PAID = "paid"


class SourceType(str, Enum):
    DIRECT = "direct"
    PURCHASE = "purchase"


@dataclass(frozen=True)
class ReimbursementInput:
    """Editable reimbursement fields; see ``PurchaseInput`` for the update model."""
    category: str
    title: str
    amount: Decimal | int | str
    occurred_at: date | str
    source_type: SourceType | str = SourceType.DIRECT
    source_purchase_id: UUID | None = None
    organization_type: OrganizationType | str | None = None
    description: str | None = None
    details: dict[str, Any] | None = None
    invoice_images: tuple[str, ...] | list[str] = ()
    receipt_images: tuple[str, ...] | list[str] = ()
    attachments: tuple[str, ...] | list[str] = ()
    applicant_id: UUID | None = None

    @classmethod
    def field_names(cls) -> tuple[str, ...]:
        return tuple(f.name for f in fields(cls))


@dataclass(frozen=True)
class Reimbursement:
    """An expense reimbursement claim."""
    id: UUID
    reimbursement_number: str
    source_type: SourceType
    source_purchase_id: UUID | None
    organization_type: OrganizationType
    category: str
    title: str
    amount: Decimal
    occurred_at: date
    description: str | None
    details: dict[str, str]
    invoice_images: tuple[str, ...]
    receipt_images: tuple[str, ...]
    attachments: tuple[str, ...]
    applicant_id: UUID
    status: ReimbursementStatus
    pending_approver_id: UUID | None = None
    submitted_at: datetime | None = None
    approved_at: datetime | None = None
    approved_by: UUID | None = None
    rejected_at: datetime | None = None
    rejected_by: UUID | None = None
    rejection_reason: str | None = None
    paid_at: datetime | None = None
    paid_by: UUID | None = None
    payment_note: str | None = None
    is_deleted: bool = False
    created_by: UUID | None = None
