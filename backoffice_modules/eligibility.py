"""
EligibilityValidator -- cross-entity checks between purchases,
reimbursements and inventory.

Responsibility
--------------
Read-only rules that decide whether a purchase may back a reimbursement.
Every check raises a distinct ``EligibilityError`` subclass so the caller
can tell the user exactly which rule failed.
``check_purchase_for_reimbursement`` runs the same checks and reports the
outcome as an ``EligibilityResult`` instead of raising.

Rules
-----
* Reimbursable: the purchase's payment method is not in the configured
  non-reimbursable set (``corporate_transfer`` by default), i.e. the
  employee advanced the money.
* Single link: no other non-deleted reimbursement references the purchase.
* Inbound ready: the purchase is approved or paid, and at least one
  inbound inventory movement references it.
* Invoice evidence: see ``backoffice_kernel.domain.evidence``.

Failure modes
-------------
* ``PurchaseNotReimbursableError``, ``PurchaseAlreadyLinkedError``,
  ``SourcePurchaseNotApprovedError``, ``InboundNotReadyError``,
  ``PurchaseInvoiceRequiredError``, ``SourcePurchaseNotFoundError``.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from backoffice_config import EligibilityConfig
from backoffice_kernel.domain import evidence
from backoffice_kernel.exceptions import (
    EligibilityError,
    InboundNotReadyError,
    NotFoundError,
    PurchaseAlreadyLinkedError,
    PurchaseInvoiceRequiredError,
    PurchaseNotReimbursableError,
    SourcePurchaseNotApprovedError,
    SourcePurchaseNotFoundError,
)
from backoffice_kernel.logging_config import get_logger
from backoffice_modules._transition_helpers import state_value
from backoffice_modules.inventory.service import InventoryService
from backoffice_modules.purchase.orm import PurchaseModel
from backoffice_modules.reimbursement.orm import ReimbursementModel

logger = get_logger("modules.eligibility")


@dataclass(frozen=True)
class EligibilityResult:
    """Non-raising outcome of a purchase eligibility check."""
    eligible: bool
    code: str | None = None
    message: str | None = None


class EligibilityValidator:
    """Pure read checks; never writes."""

    def __init__(self, session: Session, config: EligibilityConfig | None = None):
        self._session = session
        self._config = config or EligibilityConfig()
        self._inventory = InventoryService(session)

    @staticmethod
    def has_invoice_evidence(
        invoice_type: Any, invoice_status: Any, images: Iterable[str] | None
    ) -> bool:
        return evidence.has_invoice_evidence(
            state_value(invoice_type),
            state_value(invoice_status) if invoice_status is not None else None,
            images,
        )

    def load_source_purchase(self, purchase_id: UUID, lock: bool = False) -> PurchaseModel:
        """
        The non-deleted purchase, optionally locked ``FOR UPDATE`` so that
        concurrent link attempts for the same purchase serialize.
        """
        stmt = select(PurchaseModel).where(
            PurchaseModel.id == purchase_id,
            PurchaseModel.is_deleted.is_(False),
        )
        if lock:
            stmt = stmt.with_for_update().execution_options(populate_existing=True)
        purchase = self._session.execute(stmt).scalar_one_or_none()
        if purchase is None:
            raise SourcePurchaseNotFoundError(purchase_id)
        return purchase

    def ensure_reimbursable(self, purchase: Any) -> None:
        method = state_value(purchase.payment_method)
        if method in self._config.non_reimbursable_payment_methods:
            raise PurchaseNotReimbursableError(purchase.id, method)

    def ensure_single_link(
        self, purchase_id: UUID, exclude_reimbursement_id: UUID | None = None
    ) -> None:
        stmt = select(ReimbursementModel.id).where(
            ReimbursementModel.source_purchase_id == purchase_id,
            ReimbursementModel.is_deleted.is_(False),
        )
        if exclude_reimbursement_id is not None:
            stmt = stmt.where(ReimbursementModel.id != exclude_reimbursement_id)
        existing = self._session.execute(stmt.limit(1)).scalar_one_or_none()
        if existing is not None:
            raise PurchaseAlreadyLinkedError(purchase_id, existing)

    def ensure_approved(self, purchase: Any) -> None:
        status = state_value(purchase.status)
        if status not in self._config.inbound_ready_statuses:
            raise SourcePurchaseNotApprovedError(purchase.id, status)

    def ensure_inbound_ready(self, purchase: Any) -> None:
        self.ensure_approved(purchase)
        if not self._config.require_inbound_movement:
            return
        if not self._inventory.has_inbound_for_purchase(purchase.id, purchase.purchase_number):
            raise InboundNotReadyError(purchase.id)

    def ensure_purchase_invoice_evidence(
        self,
        purchase: Any,
        reimbursement_id: UUID,
        images: Iterable[str] | None,
    ) -> None:
        """
        Invoice rule for a purchase-sourced claim: the purchase's invoice
        declaration decides whether evidence is needed; images on the claim
        or on the purchase satisfy it.
        """
        combined = list(images or ()) + list(purchase.invoice_images or ())
        if not self.has_invoice_evidence(purchase.invoice_type, purchase.invoice_status, combined):
            raise PurchaseInvoiceRequiredError(
                "reimbursement", reimbursement_id, state_value(purchase.invoice_type)
            )

    def check_purchase_for_reimbursement(
        self, purchase_id: UUID, exclude_reimbursement_id: UUID | None = None
    ) -> EligibilityResult:
        """Run link, reimbursability and inbound checks without raising."""
        try:
            purchase = self.load_source_purchase(purchase_id)
            self.ensure_approved(purchase)
            self.ensure_reimbursable(purchase)
            self.ensure_single_link(purchase_id, exclude_reimbursement_id)
            self.ensure_inbound_ready(purchase)
        except (EligibilityError, NotFoundError) as exc:
            logger.info(
                "purchase_not_eligible",
                extra={"purchase_id": str(purchase_id), "reason_code": exc.code},
            )
            return EligibilityResult(eligible=False, code=exc.code, message=str(exc))
        return EligibilityResult(eligible=True)
