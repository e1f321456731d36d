"""
Purchase Domain Models.

The nouns of procurement requests: the purchase document, its payment and
invoice vocabulary, and the editable input a purchaser supplies.
"""

from __future__ import annotations

from dataclasses import dataclass, fields
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID

from backoffice_kernel.domain.dtos import OrganizationType
from backoffice_kernel.domain.evidence import EvidenceSet


class PurchaseStatus(str, Enum):
    """Purchase lifecycle states."""
    DRAFT = "draft"
    PENDING_APPROVAL = "pending_approval"
    APPROVED = "approved"
    REJECTED = "rejected"
    PAID = "paid"
    CANCELLED = "cancelled"


class PurchaseChannel(str, Enum):
    ONLINE = "online"
    OFFLINE = "offline"


class PaymentMethod(str, Enum):
    """How the purchase was paid."""
    WECHAT = "wechat"
    ALIPAY = "alipay"
    BANK_TRANSFER = "bank_transfer"
    CORPORATE_TRANSFER = "corporate_transfer"
    CASH = "cash"


class PaymentType(str, Enum):
    DEPOSIT = "deposit"
    FULL_PAYMENT = "full_payment"
    INSTALLMENT = "installment"
    BALANCE = "balance"
    OTHER = "other"


class InvoiceType(str, Enum):
    SPECIAL = "special"
    GENERAL = "general"
    NONE = "none"


class InvoiceStatus(str, Enum):
    ISSUED = "issued"
    PENDING = "pending"
    NOT_REQUIRED = "not_required"


@dataclass(frozen=True)
class PurchaseInput:
    """
    Editable purchase fields.

    ``create`` validates a complete input; ``update`` replaces fields on the
    stored input and validates the result again, so the total and the
    invoice defaults are always derived from the full record.
    """
    purchase_date: date | str
    organization_type: OrganizationType | str
    item_name: str
    quantity: Decimal | int | str
    unit_price: Decimal | int | str
    purpose: str
    payment_method: PaymentMethod | str
    fee_amount: Decimal | int | str = Decimal("0")
    specification: str | None = None
    purchase_channel: PurchaseChannel | str = PurchaseChannel.OFFLINE
    purchase_location: str | None = None
    purchase_link: str | None = None
    payment_type: PaymentType | str = PaymentType.FULL_PAYMENT
    payer_name: str | None = None
    transaction_no: str | None = None
    purchaser_id: UUID | None = None
    invoice_type: InvoiceType | str = InvoiceType.NONE
    invoice_status: InvoiceStatus | str | None = None
    invoice_number: str | None = None
    invoice_issue_date: date | str | None = None
    invoice_images: tuple[str, ...] | list[str] | EvidenceSet = ()
    receipt_images: tuple[str, ...] | list[str] | EvidenceSet = ()
    attachments: tuple[str, ...] | list[str] | EvidenceSet = ()
    supplier_id: UUID | None = None
    has_project: bool = False
    project_id: UUID | None = None
    notes: str | None = None

    @classmethod
    def field_names(cls) -> tuple[str, ...]:
        return tuple(f.name for f in fields(cls))


@dataclass(frozen=True)
class Purchase:
    """A purchase request document."""
    id: UUID
    purchase_number: str
    purchase_date: date
    organization_type: OrganizationType
    item_name: str
    specification: str | None
    quantity: Decimal
    unit_price: Decimal
    total_amount: Decimal
    fee_amount: Decimal
    purpose: str
    purchase_channel: PurchaseChannel
    purchase_location: str | None
    purchase_link: str | None
    payment_method: PaymentMethod
    payment_type: PaymentType
    payer_name: str | None
    transaction_no: str | None
    purchaser_id: UUID
    invoice_type: InvoiceType
    invoice_status: InvoiceStatus
    invoice_number: str | None
    invoice_issue_date: date | None
    invoice_images: tuple[str, ...]
    receipt_images: tuple[str, ...]
    attachments: tuple[str, ...]
    supplier_id: UUID | None
    has_project: bool
    project_id: UUID | None
    status: PurchaseStatus
    pending_approver_id: UUID | None = None
    submitted_at: datetime | None = None
    approved_at: datetime | None = None
    approved_by: UUID | None = None
    rejected_at: datetime | None = None
    rejected_by: UUID | None = None
    rejection_reason: str | None = None
    paid_at: datetime | None = None
    paid_by: UUID | None = None
    notes: str | None = None
    is_deleted: bool = False

    @property
    def payable_amount(self) -> Decimal:
        """Total plus fee; the amount recorded in the finance ledger."""
        return self.total_amount + self.fee_amount
