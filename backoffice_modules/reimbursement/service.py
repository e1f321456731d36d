"""
Reimbursement Module Service (``backoffice_modules.reimbursement.service``).

Responsibility
--------------
Every Reimbursement operation: create and edit with category detail
sanitization, purchase linkage validation, the approval transitions,
payment with finance sync, soft delete, and the non-raising purchase
eligibility query used while a claim is being filled in.

Architecture position
---------------------
**Modules layer** -- sole public entry point for reimbursement operations.
Composes the same flush-only kernel services as ``PurchaseService`` plus
``EligibilityValidator`` inside one ``TransactionCoordinator`` transaction
per call.

Invariants enforced
-------------------
* Single link: a purchase backs at most one non-deleted reimbursement.
  Linkage checks lock the purchase row, so two claims racing for the same
  purchase serialize and the second one fails the check.
* Once a purchase-sourced claim has been submitted it cannot be edited
  unless it is currently ``rejected``.
* ``pay`` from ``pending_approval`` approves and pays in the same
  transaction and logs both transitions; finance sync runs exactly once.

Failure modes
-------------
* Typed ``BackofficeError`` subclasses; the transaction is rolled back and
  the exception re-raised.
"""

from __future__ import annotations

import dataclasses
from collections.abc import Mapping
from typing import Any
from uuid import UUID

from sqlalchemy.orm import Session

from backoffice_config import BackofficeConfig
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
    EvidenceFilesRequiredError,
    InvalidAmountError,
    InvalidChoiceError,
    LinkedPurchaseLockedError,
    NotApprovableError,
    NotDeletableError,
    NotEditableError,
    NotPayableError,
    NotRejectableError,
    NotSubmittableError,
    NotWithdrawableError,
    ReimbursementNotFoundError,
    RejectReasonRequiredError,
    RequiredFieldError,
    SourcePurchaseRequiredError,
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
from backoffice_modules.eligibility import EligibilityResult, EligibilityValidator
from backoffice_modules.reimbursement.details import sanitize_details
from backoffice_modules.reimbursement.models import (
    Reimbursement,
    ReimbursementInput,
    ReimbursementStatus,
    SourceType,
)
from backoffice_modules.reimbursement.orm import ReimbursementModel
from backoffice_modules.reimbursement.workflows import (
    DELETABLE_STATES,
    EDITABLE_STATES,
    REIMBURSEMENT_WORKFLOW,
)

logger = get_logger("modules.reimbursement.service")

ENTITY = EntityType.REIMBURSEMENT.value

_SOURCE_FIELDS = frozenset({"source_type", "source_purchase_id"})
_DETAIL_FIELDS = frozenset({"category", "details"})


class ReimbursementService:
    """
    Orchestrates reimbursement operations.

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

    def _sanitize(self, category: str, details: Mapping[str, Any] | None) -> dict[str, str]:
        return sanitize_details(category, details, self._config.category_schema(category))

    def _normalize(
        self,
        data: ReimbursementInput,
        reimbursement_id: UUID | None,
        changed: frozenset[str] | None = None,
        current: ReimbursementModel | None = None,
    ) -> dict[str, Any]:
        """
        Validate ``data`` into column values.

        ``changed`` limits linkage re-validation and detail re-sanitization
        to edits that touch them; ``None`` means validate everything.
        """
        title = require_text(ENTITY, "title", data.title)
        category = require_text(ENTITY, "category", data.category)
        amount = to_decimal("amount", data.amount)
        if amount <= 0:
            raise InvalidAmountError("amount", amount, "greater than zero")
        if data.occurred_at is None or data.occurred_at == "":
            raise RequiredFieldError(ENTITY, "occurred_at")
        occurred_at = to_date("occurred_at", data.occurred_at)
        source_type = to_choice("source_type", data.source_type, SourceType)

        values: dict[str, Any] = {
            "title": title,
            "category": category,
            "amount": amount,
            "occurred_at": occurred_at,
            "source_type": source_type.value,
            "description": optional_text(data.description),
            "invoice_images": EvidenceSet.of(data.invoice_images).to_storage(),
            "receipt_images": EvidenceSet.of(data.receipt_images).to_storage(),
            "attachments": EvidenceSet.of(data.attachments).to_storage(),
        }

        if source_type is SourceType.PURCHASE:
            if data.source_purchase_id is None:
                raise SourcePurchaseRequiredError()
            values["source_purchase_id"] = data.source_purchase_id
            if changed is None or changed & _SOURCE_FIELDS:
                purchase = self._eligibility.load_source_purchase(
                    data.source_purchase_id, lock=True
                )
                self._eligibility.ensure_reimbursable(purchase)
                self._eligibility.ensure_single_link(purchase.id, reimbursement_id)
                values["organization_type"] = purchase.organization_type
            else:
                values["organization_type"] = current.organization_type
        else:
            values["source_purchase_id"] = None
            # direct claims default to the company scope
            organization = data.organization_type or OrganizationType.COMPANY
            values["organization_type"] = to_choice(
                "organization_type", organization, OrganizationType
            ).value

        if changed is None or changed & _DETAIL_FIELDS:
            values["details"] = self._sanitize(category, data.details)
        return values

    def _lock(self, reimbursement_id: UUID) -> ReimbursementModel:
        return lock_active_row(
            self._session, ReimbursementModel, reimbursement_id, ReimbursementNotFoundError
        )

    def _append_log(
        self,
        row: ReimbursementModel,
        action: WorkflowAction,
        from_status: str,
        operator_id: UUID,
        comment: str | None = None,
    ) -> WorkflowLogEntry:
        return self._log.append(
            EntityType.REIMBURSEMENT, row.id, action, from_status, row.status, operator_id, comment
        )

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    def get(self, reimbursement_id: UUID) -> Reimbursement:
        row = self._session.get(ReimbursementModel, reimbursement_id, populate_existing=True)
        if row is None or row.is_deleted:
            raise ReimbursementNotFoundError(reimbursement_id)
        return row.to_dto()

    def get_logs(self, reimbursement_id: UUID) -> list[WorkflowLogEntry]:
        return self._log.entries_for(EntityType.REIMBURSEMENT, reimbursement_id)

    def check_purchase_eligibility(
        self, purchase_id: UUID, exclude_reimbursement_id: UUID | None = None
    ) -> EligibilityResult:
        """Whether ``purchase_id`` may back a (new or edited) reimbursement."""
        return self._eligibility.check_purchase_for_reimbursement(
            purchase_id, exclude_reimbursement_id
        )

    # -------------------------------------------------------------------------
    # Create / edit / delete
    # -------------------------------------------------------------------------

    def create(self, data: ReimbursementInput, operator_id: UUID) -> Reimbursement:
        applicant_id = data.applicant_id or operator_id
        with LogContext.bind(actor_id=operator_id, entity_type=ENTITY):
            with self._coordinator.transaction("reimbursement_create"):
                self._identity.ensure_employee_record_exists(operator_id, "creator")
                self._identity.ensure_employee_record_exists(applicant_id, "applicant")
                values = self._normalize(data, reimbursement_id=None)
                row = ReimbursementModel(
                    reimbursement_number=self._numbering.next_number(
                        self._config.numbering.reimbursement_prefix
                    ),
                    applicant_id=applicant_id,
                    status=ReimbursementStatus.DRAFT.value,
                    created_by_id=operator_id,
                    **values,
                )
                self._session.add(row)
                self._session.flush()
                self._append_log(row, WorkflowAction.CREATE, row.status, operator_id)
                result = row.to_dto()

        logger.info(
            "reimbursement_created",
            extra={
                "reimbursement_id": str(result.id),
                "reimbursement_number": result.reimbursement_number,
                "source_type": result.source_type.value,
                "amount": str(result.amount),
            },
        )
        return result

    def update(
        self, reimbursement_id: UUID, operator_id: UUID, changes: Mapping[str, Any]
    ) -> Reimbursement:
        allowed = ReimbursementInput.field_names()
        for key in changes:
            if key not in allowed:
                raise InvalidChoiceError("field", key, allowed)

        with LogContext.bind(actor_id=operator_id, entity_type=ENTITY, entity_id=reimbursement_id):
            with self._coordinator.transaction(
                "reimbursement_update", reimbursement_id=reimbursement_id
            ):
                row = self._lock(reimbursement_id)
                if row.status not in EDITABLE_STATES:
                    raise NotEditableError(ENTITY, row.id, row.status)
                if (
                    row.source_type == SourceType.PURCHASE.value
                    and row.submitted_at is not None
                    and row.status != ReimbursementStatus.REJECTED.value
                ):
                    raise LinkedPurchaseLockedError(row.id, row.status)

                merged = dataclasses.replace(row.to_input(), **dict(changes))
                values = self._normalize(
                    merged, row.id, changed=frozenset(changes), current=row
                )
                if merged.applicant_id != row.applicant_id:
                    self._identity.ensure_employee_record_exists(merged.applicant_id, "applicant")
                    row.applicant_id = merged.applicant_id
                for key, value in values.items():
                    setattr(row, key, value)
                row.updated_by_id = operator_id
                self._session.flush()
                result = row.to_dto()

        logger.info(
            "reimbursement_updated",
            extra={"reimbursement_id": str(reimbursement_id), "changed_fields": sorted(changes)},
        )
        return result

    def delete(self, reimbursement_id: UUID, operator_id: UUID) -> Reimbursement:
        """Soft-delete a draft or rejected claim, freeing its purchase link."""
        with LogContext.bind(actor_id=operator_id, entity_type=ENTITY, entity_id=reimbursement_id):
            with self._coordinator.transaction(
                "reimbursement_delete", reimbursement_id=reimbursement_id
            ):
                row = self._lock(reimbursement_id)
                if row.status not in DELETABLE_STATES:
                    raise NotDeletableError(ENTITY, row.id, row.status)
                row.is_deleted = True
                row.deleted_at = self._clock.now()
                row.deleted_by = operator_id
                row.updated_by_id = operator_id
                self._session.flush()
                self._append_log(row, WorkflowAction.CANCEL, row.status, operator_id, "deleted")
                result = row.to_dto()

        logger.info(
            "reimbursement_deleted",
            extra={
                "reimbursement_id": str(reimbursement_id),
                "source_purchase_id": (
                    str(result.source_purchase_id) if result.source_purchase_id else None
                ),
            },
        )
        return result

    # -------------------------------------------------------------------------
    # Transitions
    # -------------------------------------------------------------------------

    def _check_submission_evidence(self, row: ReimbursementModel) -> None:
        if row.source_type == SourceType.PURCHASE.value:
            if row.source_purchase_id is None:
                raise SourcePurchaseRequiredError()
            purchase = self._eligibility.load_source_purchase(row.source_purchase_id, lock=True)
            self._eligibility.ensure_purchase_invoice_evidence(
                purchase, row.id, row.invoice_images
            )
            self._eligibility.ensure_inbound_ready(purchase)
            self._eligibility.ensure_reimbursable(purchase)
            self._eligibility.ensure_single_link(purchase.id, row.id)
        elif not (row.invoice_images or row.receipt_images):
            raise EvidenceFilesRequiredError(row.id)

    def submit(self, reimbursement_id: UUID, operator_id: UUID) -> Reimbursement:
        with LogContext.bind(actor_id=operator_id, entity_type=ENTITY, entity_id=reimbursement_id):
            with self._coordinator.transaction(
                "reimbursement_submit", reimbursement_id=reimbursement_id
            ):
                row = self._lock(reimbursement_id)
                require_transition(
                    REIMBURSEMENT_WORKFLOW, ENTITY, row, "submit", NotSubmittableError
                )
                self._sanitize(row.category, row.details)
                self._check_submission_evidence(row)
                approver_id = self._approvers.assign(row.organization_type)

                from_status = row.status
                row.status = ReimbursementStatus.PENDING_APPROVAL.value
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
            "reimbursement_submitted",
            extra={"reimbursement_id": str(reimbursement_id), "approver_id": str(approver_id)},
        )
        return result

    def _apply_approve(
        self, row: ReimbursementModel, operator_id: UUID, comment: str | None
    ) -> None:
        from_status = row.status
        row.status = ReimbursementStatus.APPROVED.value
        row.approved_at = self._clock.now()
        row.approved_by = operator_id
        row.pending_approver_id = None
        row.updated_by_id = operator_id
        self._session.flush()
        self._append_log(row, WorkflowAction.APPROVE, from_status, operator_id, comment)

    def approve(
        self, reimbursement_id: UUID, operator_id: UUID, comment: str | None = None
    ) -> Reimbursement:
        with LogContext.bind(actor_id=operator_id, entity_type=ENTITY, entity_id=reimbursement_id):
            with self._coordinator.transaction(
                "reimbursement_approve", reimbursement_id=reimbursement_id
            ):
                row = self._lock(reimbursement_id)
                require_transition(
                    REIMBURSEMENT_WORKFLOW, ENTITY, row, "approve", NotApprovableError
                )
                self._apply_approve(row, operator_id, comment)
                result = row.to_dto()

        logger.info("reimbursement_approved", extra={"reimbursement_id": str(reimbursement_id)})
        return result

    def reject(self, reimbursement_id: UUID, operator_id: UUID, reason: str) -> Reimbursement:
        with LogContext.bind(actor_id=operator_id, entity_type=ENTITY, entity_id=reimbursement_id):
            with self._coordinator.transaction(
                "reimbursement_reject", reimbursement_id=reimbursement_id
            ):
                row = self._lock(reimbursement_id)
                require_transition(
                    REIMBURSEMENT_WORKFLOW, ENTITY, row, "reject", NotRejectableError
                )
                if not reason or not reason.strip():
                    raise RejectReasonRequiredError(ENTITY, reimbursement_id)
                from_status = row.status
                row.status = ReimbursementStatus.REJECTED.value
                row.rejected_at = self._clock.now()
                row.rejected_by = operator_id
                row.rejection_reason = reason.strip()
                row.approved_at = None
                row.approved_by = None
                row.pending_approver_id = None
                row.updated_by_id = operator_id
                self._session.flush()
                self._append_log(
                    row, WorkflowAction.REJECT, from_status, operator_id, reason.strip()
                )
                result = row.to_dto()

        logger.info("reimbursement_rejected", extra={"reimbursement_id": str(reimbursement_id)})
        return result

    def withdraw(
        self, reimbursement_id: UUID, operator_id: UUID, reason: str | None = None
    ) -> Reimbursement:
        """Pull a pending claim back to ``draft``."""
        with LogContext.bind(actor_id=operator_id, entity_type=ENTITY, entity_id=reimbursement_id):
            with self._coordinator.transaction(
                "reimbursement_withdraw", reimbursement_id=reimbursement_id
            ):
                row = self._lock(reimbursement_id)
                require_transition(
                    REIMBURSEMENT_WORKFLOW, ENTITY, row, "withdraw", NotWithdrawableError
                )
                from_status = row.status
                row.status = ReimbursementStatus.DRAFT.value
                row.pending_approver_id = None
                row.updated_by_id = operator_id
                self._session.flush()
                self._append_log(row, WorkflowAction.WITHDRAW, from_status, operator_id, reason)
                result = row.to_dto()

        logger.info("reimbursement_withdrawn", extra={"reimbursement_id": str(reimbursement_id)})
        return result

    def pay(
        self, reimbursement_id: UUID, operator_id: UUID, note: str | None = None
    ) -> Reimbursement:
        """
        Confirm payment.  A claim still ``pending_approval`` is approved
        first; both entries are logged and the finance record is written in
        the same transaction.

        Raises:
            NotPayableError: claim is neither ``approved`` nor ``pending_approval``.
            FinanceSyncError: ledger write failed; nothing is persisted.
        """
        note = optional_text(note)
        with LogContext.bind(actor_id=operator_id, entity_type=ENTITY, entity_id=reimbursement_id):
            with self._coordinator.transaction(
                "reimbursement_pay", reimbursement_id=reimbursement_id
            ):
                row = self._lock(reimbursement_id)
                implicit_approve = row.status == ReimbursementStatus.PENDING_APPROVAL.value
                if implicit_approve:
                    self._apply_approve(row, operator_id, "approved at payment")
                require_transition(REIMBURSEMENT_WORKFLOW, ENTITY, row, "pay", NotPayableError)

                from_status = row.status
                row.status = ReimbursementStatus.PAID.value
                row.paid_at = self._clock.now()
                row.paid_by = operator_id
                row.payment_note = note
                row.updated_by_id = operator_id
                self._session.flush()
                self._append_log(row, WorkflowAction.PAY, from_status, operator_id, note)

                record, created = self._finance.sync_expense(
                    FinanceSource(
                        source_type=EntityType.REIMBURSEMENT,
                        source_id=row.id,
                        name=row.title,
                        category=row.category,
                        amount=row.amount,
                        occurred_on=row.occurred_at,
                        purchase_id=row.source_purchase_id,
                        reimbursement_id=row.id,
                        details={
                            "reimbursement_number": row.reimbursement_number,
                            "source_type": row.source_type,
                            "organization_type": row.organization_type,
                        },
                    ),
                    operator_id,
                )
                result = row.to_dto()

        logger.info(
            "reimbursement_paid",
            extra={
                "reimbursement_id": str(reimbursement_id),
                "implicit_approve": implicit_approve,
                "finance_record_id": str(record.id),
                "finance_record_created": created,
            },
        )
        return result
