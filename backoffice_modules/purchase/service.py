"""
Purchase Module Service (``backoffice_modules.purchase.service``).

Responsibility
--------------
Every Purchase operation: create, edit, duplicate, the approval
transitions, manual payment confirmation with finance sync, approver
transfer and soft delete.

Architecture position
---------------------
**Modules layer** -- ``PurchaseService`` is the sole public entry point for
purchase operations.  It composes flush-only kernel services
(``NumberingService``, ``WorkflowLogService``, ``ApproverAssignmentService``,
``FinanceSyncService``, ``IdentityService``) inside one
``TransactionCoordinator`` transaction per call.

Invariants enforced
-------------------
* Each transition loads the row ``SELECT ... FOR UPDATE``, re-checks the
  status against ``PURCHASE_WORKFLOW`` and only then writes.
* Every transition appends exactly one workflow log entry in the same
  transaction as the status write.
* ``total_amount = round_half_up(quantity * unit_price, 2)`` on every write.
* ``mark_paid`` writes the finance expense record in the same transaction;
  a sync failure leaves the purchase ``approved`` with no ``pay`` entry.

Failure modes
-------------
* Typed ``BackofficeError`` subclasses; the session is rolled back and the
  exception re-raised (coordinator ``auto_commit=True``), or the savepoint
  is rolled back when running inside a caller's transaction.

Usage::

    service = PurchaseService(session, clock=clock)
    purchase = service.create(PurchaseInput(...), operator_id=actor_id)
    purchase = service.submit(purchase.id, operator_id=actor_id)
"""

from __future__ import annotations

import dataclasses
from collections.abc import Mapping
from decimal import Decimal
from typing import Any
from uuid import UUID

from sqlalchemy.orm import Session

from backoffice_config import BackofficeConfig
from backoffice_kernel.db.types import round_money
from backoffice_kernel.domain.clock import Clock, SystemClock
from backoffice_kernel.domain.dtos import (
    EntityType,
    FinanceSource,
    OrganizationType,
    WorkflowAction,
    WorkflowLogEntry,
)
from backoffice_kernel.domain.evidence import EvidenceSet
from backoffice_kernel.exceptions import (
    InvalidAmountError,
    InvalidChoiceError,
    InvoiceEvidenceRequiredError,
    NotApprovableError,
    NotDeletableError,
    NotEditableError,
    NotPayableError,
    NotRejectableError,
    NotSubmittableError,
    NotTransferableError,
    NotWithdrawableError,
    PurchaseNotFoundError,
    RejectReasonRequiredError,
    RequiredFieldError,
)
from backoffice_kernel.logging_config import LogContext, get_logger
from backoffice_kernel.services.finance_sync import FinanceSyncService
from backoffice_kernel.services.identity_service import IdentityService
from backoffice_kernel.services.numbering_service import NumberingService
from backoffice_kernel.services.transaction import TransactionCoordinator
from backoffice_kernel.services.workflow_log_service import WorkflowLogService
from backoffice_modules._transition_helpers import (
    build_approver_assignment,
    lock_active_row,
    optional_text,
    require_text,
    require_transition,
    to_choice,
    to_date,
    to_decimal,
)
from backoffice_modules.eligibility import EligibilityValidator
from backoffice_modules.purchase.models import (
    InvoiceStatus,
    InvoiceType,
    PaymentMethod,
    PaymentType,
    Purchase,
    PurchaseChannel,
    PurchaseInput,
    PurchaseStatus,
)
from backoffice_modules.purchase.orm import PurchaseModel
from backoffice_modules.purchase.workflows import EDITABLE_STATES, PURCHASE_WORKFLOW

logger = get_logger("modules.purchase.service")

ENTITY = EntityType.PURCHASE.value


def compute_total(quantity: Decimal, unit_price: Decimal) -> Decimal:
    """Line total rounded half-up to 2 places."""
    return round_money(quantity * unit_price)


class PurchaseService:
    """
    Orchestrates purchase operations.

    Contract
    --------
    * Every mutating method takes ``operator_id`` and returns the refreshed
      ``Purchase`` DTO.
    * Rejected operations raise before any write, or inside a transaction
      that is rolled back.

    Transaction boundary: with ``auto_commit=True`` (default) each call
    commits on success.  With ``auto_commit=False`` each call runs in a
    savepoint and the caller commits.
    """

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        config: BackofficeConfig | None = None,
        auto_commit: bool = True,
    ):
        self._session = session
        self._clock = clock or SystemClock()
        self._config = config or BackofficeConfig.with_defaults()
        self._coordinator = TransactionCoordinator(session, auto_commit=auto_commit)
        self._numbering = NumberingService(
            session, self._clock, sequence_width=self._config.numbering.sequence_width
        )
        self._log = WorkflowLogService(session, self._clock)
        self._identity = IdentityService(session, self._clock)
        self._approvers = build_approver_assignment(session, self._config)
        self._finance = FinanceSyncService(session, self._clock)
        self._eligibility = EligibilityValidator(session, self._config.eligibility)

    # -------------------------------------------------------------------------
    # Validation
    # -------------------------------------------------------------------------

    def _normalize(self, data: PurchaseInput) -> dict[str, Any]:
        """Validate ``data`` and return column values for ``PurchaseModel``."""
        item_name = require_text(ENTITY, "item_name", data.item_name)
        purpose = require_text(ENTITY, "purpose", data.purpose)
        organization = to_choice("organization_type", data.organization_type, OrganizationType)

        quantity = to_decimal("quantity", data.quantity)
        if quantity <= 0:
            raise InvalidAmountError("quantity", quantity, "greater than zero")
        unit_price = to_decimal("unit_price", data.unit_price)
        if unit_price < 0:
            raise InvalidAmountError("unit_price", unit_price, "zero or more")
        fee_amount = to_decimal("fee_amount", data.fee_amount if data.fee_amount is not None else 0)
        if fee_amount < 0:
            raise InvalidAmountError("fee_amount", fee_amount, "zero or more")

        channel = to_choice("purchase_channel", data.purchase_channel, PurchaseChannel)
        purchase_link = optional_text(data.purchase_link)
        purchase_location = optional_text(data.purchase_location)
        if channel is PurchaseChannel.ONLINE and not purchase_link:
            raise RequiredFieldError(ENTITY, "purchase_link")
        if channel is PurchaseChannel.OFFLINE and not purchase_location:
            raise RequiredFieldError(ENTITY, "purchase_location")

        payment_method = to_choice("payment_method", data.payment_method, PaymentMethod)
        payment_type = to_choice("payment_type", data.payment_type, PaymentType)

        invoice_type = to_choice("invoice_type", data.invoice_type, InvoiceType)
        invoice_images = EvidenceSet.of(data.invoice_images)
        if invoice_type is InvoiceType.NONE:
            invoice_status = InvoiceStatus.NOT_REQUIRED
            invoice_images = EvidenceSet()
            invoice_number = None
            invoice_issue_date = None
        else:
            invoice_status = (
                to_choice("invoice_status", data.invoice_status, InvoiceStatus)
                if data.invoice_status is not None
                else InvoiceStatus.PENDING
            )
            invoice_number = optional_text(data.invoice_number)
            invoice_issue_date = (
                to_date("invoice_issue_date", data.invoice_issue_date)
                if data.invoice_issue_date
                else None
            )

        if data.has_project and data.project_id is None:
            raise RequiredFieldError(ENTITY, "project_id")

        return {
            "purchase_date": to_date("purchase_date", data.purchase_date),
            "organization_type": organization.value,
            "item_name": item_name,
            "specification": optional_text(data.specification),
            "quantity": quantity,
            "unit_price": unit_price,
            "total_amount": compute_total(quantity, unit_price),
            "fee_amount": fee_amount,
            "purpose": purpose,
            "purchase_channel": channel.value,
            "purchase_link": purchase_link if channel is PurchaseChannel.ONLINE else None,
            "purchase_location": purchase_location if channel is PurchaseChannel.OFFLINE else None,
            "payment_method": payment_method.value,
            "payment_type": payment_type.value,
            "payer_name": optional_text(data.payer_name),
            "transaction_no": optional_text(data.transaction_no),
            "invoice_type": invoice_type.value,
            "invoice_status": invoice_status.value,
            "invoice_number": invoice_number,
            "invoice_issue_date": invoice_issue_date,
            "invoice_images": invoice_images.to_storage(),
            "receipt_images": EvidenceSet.of(data.receipt_images).to_storage(),
            "attachments": EvidenceSet.of(data.attachments).to_storage(),
            "supplier_id": data.supplier_id,
            "has_project": bool(data.has_project),
            "project_id": data.project_id if data.has_project else None,
            "notes": optional_text(data.notes),
        }

    def _lock(self, purchase_id: UUID) -> PurchaseModel:
        return lock_active_row(self._session, PurchaseModel, purchase_id, PurchaseNotFoundError)

    def _append_log(
        self,
        row: PurchaseModel,
        action: WorkflowAction,
        from_status: str,
        operator_id: UUID,
        comment: str | None = None,
    ) -> WorkflowLogEntry:
        return self._log.append(
            EntityType.PURCHASE, row.id, action, from_status, row.status, operator_id, comment
        )

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    def get(self, purchase_id: UUID) -> Purchase:
        row = self._session.get(PurchaseModel, purchase_id, populate_existing=True)
        if row is None or row.is_deleted:
            raise PurchaseNotFoundError(purchase_id)
        return row.to_dto()

    def get_logs(self, purchase_id: UUID) -> list[WorkflowLogEntry]:
        return self._log.entries_for(EntityType.PURCHASE, purchase_id)

    # -------------------------------------------------------------------------
    # Create / edit
    # -------------------------------------------------------------------------

    def create(self, data: PurchaseInput, operator_id: UUID) -> Purchase:
        """Create a draft purchase and log ``create``."""
        purchaser_id = data.purchaser_id or operator_id
        with LogContext.bind(actor_id=operator_id, entity_type=ENTITY):
            with self._coordinator.transaction("purchase_create"):
                values = self._normalize(data)
                self._identity.ensure_employee_record_exists(purchaser_id, "purchaser")
                row = PurchaseModel(
                    purchase_number=self._numbering.next_number(
                        self._config.numbering.purchase_prefix
                    ),
                    purchaser_id=purchaser_id,
                    status=PurchaseStatus.DRAFT.value,
                    created_by_id=operator_id,
                    **values,
                )
                self._session.add(row)
                self._session.flush()
                self._append_log(row, WorkflowAction.CREATE, row.status, operator_id)
                result = row.to_dto()

        logger.info(
            "purchase_created",
            extra={
                "purchase_id": str(result.id),
                "purchase_number": result.purchase_number,
                "total_amount": str(result.total_amount),
            },
        )
        return result

    def update(
        self, purchase_id: UUID, operator_id: UUID, changes: Mapping[str, Any]
    ) -> Purchase:
        """
        Apply ``changes`` (``PurchaseInput`` field names) to a draft or
        rejected purchase.  The total and invoice defaults are re-derived
        from the merged record.
        """
        allowed = PurchaseInput.field_names()
        for key in changes:
            if key not in allowed:
                raise InvalidChoiceError("field", key, allowed)

        with LogContext.bind(actor_id=operator_id, entity_type=ENTITY, entity_id=purchase_id):
            with self._coordinator.transaction("purchase_update", purchase_id=purchase_id):
                row = self._lock(purchase_id)
                if row.status not in EDITABLE_STATES:
                    raise NotEditableError(ENTITY, row.id, row.status)
                merged = dataclasses.replace(row.to_input(), **dict(changes))
                values = self._normalize(merged)
                if merged.purchaser_id != row.purchaser_id:
                    self._identity.ensure_employee_record_exists(merged.purchaser_id, "purchaser")
                    row.purchaser_id = merged.purchaser_id
                for key, value in values.items():
                    setattr(row, key, value)
                row.updated_by_id = operator_id
                self._session.flush()
                result = row.to_dto()

        logger.info(
            "purchase_updated",
            extra={
                "purchase_id": str(purchase_id),
                "changed_fields": sorted(changes),
                "total_amount": str(result.total_amount),
            },
        )
        return result

    def duplicate(self, purchase_id: UUID, operator_id: UUID) -> Purchase:
        """Copy a purchase into a new draft owned by ``operator_id``."""
        source = self.get(purchase_id)
        row = self._session.get(PurchaseModel, purchase_id)
        data = dataclasses.replace(row.to_input(), purchaser_id=operator_id)
        copy = self.create(data, operator_id)
        logger.info(
            "purchase_duplicated",
            extra={
                "source_purchase_id": str(purchase_id),
                "source_purchase_number": source.purchase_number,
                "purchase_id": str(copy.id),
            },
        )
        return copy

    # -------------------------------------------------------------------------
    # Transitions
    # -------------------------------------------------------------------------

    def submit(self, purchase_id: UUID, operator_id: UUID) -> Purchase:
        """Submit for approval: evidence gate, approver assignment, log."""
        with LogContext.bind(actor_id=operator_id, entity_type=ENTITY, entity_id=purchase_id):
            with self._coordinator.transaction("purchase_submit", purchase_id=purchase_id):
                row = self._lock(purchase_id)
                require_transition(PURCHASE_WORKFLOW, ENTITY, row, "submit", NotSubmittableError)
                if not self._eligibility.has_invoice_evidence(
                    row.invoice_type, row.invoice_status, row.invoice_images
                ):
                    raise InvoiceEvidenceRequiredError(ENTITY, row.id, row.invoice_type)
                approver_id = self._approvers.assign(row.organization_type)

                from_status = row.status
                row.status = PurchaseStatus.PENDING_APPROVAL.value
                row.pending_approver_id = approver_id
                row.submitted_at = self._clock.now()
                row.approved_at = None
                row.approved_by = None
                row.rejected_at = None
                row.rejected_by = None
                row.rejection_reason = None
                row.updated_by_id = operator_id
                self._session.flush()
                self._append_log(row, WorkflowAction.SUBMIT, from_status, operator_id)
                result = row.to_dto()

        logger.info(
            "purchase_submitted",
            extra={"purchase_id": str(purchase_id), "approver_id": str(approver_id)},
        )
        return result

    def approve(
        self, purchase_id: UUID, operator_id: UUID, comment: str | None = None
    ) -> Purchase:
        with LogContext.bind(actor_id=operator_id, entity_type=ENTITY, entity_id=purchase_id):
            with self._coordinator.transaction("purchase_approve", purchase_id=purchase_id):
                row = self._lock(purchase_id)
                require_transition(PURCHASE_WORKFLOW, ENTITY, row, "approve", NotApprovableError)
                from_status = row.status
                row.status = PurchaseStatus.APPROVED.value
                row.approved_at = self._clock.now()
                row.approved_by = operator_id
                row.pending_approver_id = None
                row.updated_by_id = operator_id
                self._session.flush()
                self._append_log(row, WorkflowAction.APPROVE, from_status, operator_id, comment)
                result = row.to_dto()

        logger.info("purchase_approved", extra={"purchase_id": str(purchase_id)})
        return result

    def reject(self, purchase_id: UUID, operator_id: UUID, reason: str) -> Purchase:
        with LogContext.bind(actor_id=operator_id, entity_type=ENTITY, entity_id=purchase_id):
            with self._coordinator.transaction("purchase_reject", purchase_id=purchase_id):
                row = self._lock(purchase_id)
                require_transition(PURCHASE_WORKFLOW, ENTITY, row, "reject", NotRejectableError)
                if not reason or not reason.strip():
                    raise RejectReasonRequiredError(ENTITY, purchase_id)
                from_status = row.status
                row.status = PurchaseStatus.REJECTED.value
                row.rejected_at = self._clock.now()
                row.rejected_by = operator_id
                row.rejection_reason = reason.strip()
                row.pending_approver_id = None
                row.updated_by_id = operator_id
                self._session.flush()
                self._append_log(
                    row, WorkflowAction.REJECT, from_status, operator_id, reason.strip()
                )
                result = row.to_dto()

        logger.info("purchase_rejected", extra={"purchase_id": str(purchase_id)})
        return result

    def withdraw(
        self, purchase_id: UUID, operator_id: UUID, reason: str | None = None
    ) -> Purchase:
        with LogContext.bind(actor_id=operator_id, entity_type=ENTITY, entity_id=purchase_id):
            with self._coordinator.transaction("purchase_withdraw", purchase_id=purchase_id):
                row = self._lock(purchase_id)
                require_transition(PURCHASE_WORKFLOW, ENTITY, row, "withdraw", NotWithdrawableError)
                from_status = row.status
                row.status = PurchaseStatus.CANCELLED.value
                row.pending_approver_id = None
                row.updated_by_id = operator_id
                self._session.flush()
                self._append_log(row, WorkflowAction.WITHDRAW, from_status, operator_id, reason)
                result = row.to_dto()

        logger.info("purchase_withdrawn", extra={"purchase_id": str(purchase_id)})
        return result

    def mark_paid(
        self, purchase_id: UUID, operator_id: UUID, note: str | None = None
    ) -> Purchase:
        """
        Confirm payment and write the finance expense record atomically.

        Raises:
            NotPayableError: purchase is not ``approved``.
            FinanceSyncError: the ledger record could not be written; the
                purchase stays ``approved`` with no ``pay`` log entry.
        """
        with LogContext.bind(actor_id=operator_id, entity_type=ENTITY, entity_id=purchase_id):
            with self._coordinator.transaction("purchase_mark_paid", purchase_id=purchase_id):
                row = self._lock(purchase_id)
                require_transition(PURCHASE_WORKFLOW, ENTITY, row, "pay", NotPayableError)
                from_status = row.status
                paid_at = self._clock.now()
                row.status = PurchaseStatus.PAID.value
                row.paid_at = paid_at
                row.paid_by = operator_id
                row.updated_by_id = operator_id
                self._session.flush()
                self._append_log(row, WorkflowAction.PAY, from_status, operator_id, note)

                record, created = self._finance.sync_expense(
                    FinanceSource(
                        source_type=EntityType.PURCHASE,
                        source_id=row.id,
                        name=row.item_name,
                        category=self._config.finance_sync.purchase_category,
                        amount=row.total_amount + row.fee_amount,
                        occurred_on=paid_at.date(),
                        purchase_id=row.id,
                        details={
                            "purchase_number": row.purchase_number,
                            "payment_method": row.payment_method,
                            "organization_type": row.organization_type,
                        },
                    ),
                    operator_id,
                )
                result = row.to_dto()

        logger.info(
            "purchase_paid",
            extra={
                "purchase_id": str(purchase_id),
                "finance_record_id": str(record.id),
                "finance_record_created": created,
            },
        )
        return result

    def transfer(
        self,
        purchase_id: UUID,
        operator_id: UUID,
        target_approver_id: UUID,
        comment: str | None = None,
    ) -> Purchase:
        """Hand a pending purchase to another approver."""
        with LogContext.bind(actor_id=operator_id, entity_type=ENTITY, entity_id=purchase_id):
            with self._coordinator.transaction("purchase_transfer", purchase_id=purchase_id):
                row = self._lock(purchase_id)
                require_transition(PURCHASE_WORKFLOW, ENTITY, row, "transfer", NotTransferableError)
                self._identity.ensure_employee_record_exists(target_approver_id, "approver")
                previous = row.pending_approver_id
                row.pending_approver_id = target_approver_id
                row.updated_by_id = operator_id
                self._session.flush()
                self._append_log(row, WorkflowAction.TRANSFER, row.status, operator_id, comment)
                result = row.to_dto()

        logger.info(
            "purchase_transferred",
            extra={
                "purchase_id": str(purchase_id),
                "from_approver_id": str(previous) if previous else None,
                "to_approver_id": str(target_approver_id),
            },
        )
        return result

    def delete(self, purchase_id: UUID, operator_id: UUID) -> Purchase:
        """Soft-delete a draft or rejected purchase; it becomes ``cancelled``."""
        with LogContext.bind(actor_id=operator_id, entity_type=ENTITY, entity_id=purchase_id):
            with self._coordinator.transaction("purchase_delete", purchase_id=purchase_id):
                row = self._lock(purchase_id)
                require_transition(PURCHASE_WORKFLOW, ENTITY, row, "cancel", NotDeletableError)
                from_status = row.status
                row.status = PurchaseStatus.CANCELLED.value
                row.is_deleted = True
                row.deleted_at = self._clock.now()
                row.deleted_by = operator_id
                row.updated_by_id = operator_id
                self._session.flush()
                self._append_log(row, WorkflowAction.CANCEL, from_status, operator_id, "deleted")
                result = row.to_dto()

        logger.info("purchase_deleted", extra={"purchase_id": str(purchase_id)})
        return result
