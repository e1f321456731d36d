"""
Typed Exception Hierarchy for the Back-office Workflow Engine.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Every rejected transition must tell the caller WHICH rule failed, so the UI
can show specific guidance ("the linked purchase has not been received into
inventory yet") instead of "validation failed".

Every exception therefore carries:
  1. A TYPED class (catch by type, not by message)
  2. A CODE attribute (machine-readable, API-safe, stable across releases)
  3. A KIND from the closed ``ErrorKind`` enumeration, so callers can handle
     whole failure categories exhaustively
  4. Structured DATA (entity ids, current status, offending field)

Example:
    try:
        reimbursements.submit(reimbursement_id, operator_id)
    except EligibilityError as e:
        api_response(status=422, code=e.code, message=str(e))
    except PreconditionError as e:
        api_response(status=409, code=e.code, current_status=e.current_status)

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    BackofficeError (base)
    |
    +-- PreconditionError                       kind=PRECONDITION
    |   +-- InvalidTransitionError
    |   |   +-- NotSubmittableError
    |   |   +-- NotApprovableError
    |   |   +-- NotRejectableError
    |   |   +-- NotWithdrawableError
    |   |   +-- NotPayableError
    |   |   +-- NotEditableError
    |   |   +-- NotDeletableError
    |   |   +-- NotTransferableError
    |   |   +-- ApplicationNotPendingError
    |   +-- LinkedPurchaseLockedError
    |
    +-- MissingInputError                       kind=MISSING_INPUT
    |   +-- RequiredFieldError
    |   +-- RejectReasonRequiredError
    |   +-- DetailFieldRequiredError
    |   +-- SourcePurchaseRequiredError
    |
    +-- InvalidInputError                       kind=INVALID_INPUT
    |   +-- InvalidAmountError
    |   +-- InvalidChoiceError
    |   +-- InvalidDateError
    |
    +-- EligibilityError                        kind=ELIGIBILITY
    |   +-- PurchaseNotReimbursableError
    |   +-- PurchaseAlreadyLinkedError
    |   +-- SourcePurchaseNotApprovedError
    |   +-- InboundNotReadyError
    |   +-- InvoiceEvidenceRequiredError
    |   |   +-- PurchaseInvoiceRequiredError
    |   +-- EvidenceFilesRequiredError
    |
    +-- NotFoundError                           kind=NOT_FOUND
    |   +-- PurchaseNotFoundError
    |   +-- SourcePurchaseNotFoundError
    |   +-- ReimbursementNotFoundError
    |   +-- EmployeeNotFoundError
    |   +-- InventoryItemNotFoundError
    |   +-- InventoryApplicationNotFoundError
    |
    +-- AssignmentError                         kind=ASSIGNMENT
    |   +-- ApproverNotFoundError
    |
    +-- SyncError                               kind=SYNC
    |   +-- FinanceSyncError
    |
    +-- ResourceError                           kind=RESOURCE
    |   +-- InsufficientStockError
    |
    +-- ImmutabilityError                       kind=INTEGRITY
        +-- ImmutabilityViolationError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category        | Code                                 | When Raised
----------------|--------------------------------------|---------------------------------------
Precondition    | NOT_SUBMITTABLE                      | submit outside draft/rejected
                | NOT_APPROVABLE                       | approve outside pending_approval
                | NOT_REJECTABLE                       | reject outside pending_approval
                | NOT_WITHDRAWABLE                     | withdraw outside pending_approval
                | NOT_PAYABLE                          | pay from a state that cannot settle
                | NOT_EDITABLE                         | update outside draft/rejected
                | NOT_DELETABLE                        | delete outside draft/rejected
                | NOT_TRANSFERABLE                     | approver transfer outside pending
                | APPLICATION_NOT_PENDING              | inventory application already decided
                | REIMBURSEMENT_LINKED_PURCHASE_LOCKED | edit of a submitted purchase-sourced claim
----------------|--------------------------------------|---------------------------------------
Missing input   | FIELD_REQUIRED                       | required scalar field blank
                | REJECT_REASON_REQUIRED               | reject without a reason
                | REIMBURSEMENT_DETAIL_REQUIRED        | category detail field missing
                | SOURCE_PURCHASE_REQUIRED             | sourceType=purchase without purchase id
----------------|--------------------------------------|---------------------------------------
Invalid input   | INVALID_AMOUNT                       | non-positive / negative amounts
                | INVALID_CHOICE                       | value outside its enumeration
                | INVALID_DATE                         | unparseable date
----------------|--------------------------------------|---------------------------------------
Eligibility     | SOURCE_PURCHASE_NOT_REIMBURSABLE     | corporate transfer purchase
                | SOURCE_PURCHASE_ALREADY_LINKED       | purchase backs another live claim
                | SOURCE_PURCHASE_NOT_APPROVED         | purchase not approved/paid yet
                | SOURCE_PURCHASE_INBOUND_REQUIRED     | no inbound movement recorded
                | INVOICE_EVIDENCE_REQUIRED            | invoice expected but no image
                | REIMBURSEMENT_PURCHASE_INVOICE_REQUIRED | same rule, purchase-sourced claim
                | INVOICE_FILES_REQUIRED               | direct claim without invoice/receipt
----------------|--------------------------------------|---------------------------------------
Not found       | PURCHASE_NOT_FOUND                   | unknown or deleted purchase id
                | SOURCE_PURCHASE_NOT_FOUND            | linked purchase unknown or deleted
                | REIMBURSEMENT_NOT_FOUND              | unknown or deleted reimbursement id
                | EMPLOYEE_NOT_FOUND                   | unknown or inactive employee
                | INVENTORY_ITEM_NOT_FOUND             | unknown stock item
                | INVENTORY_APPLICATION_NOT_FOUND      | unknown inventory application
----------------|--------------------------------------|---------------------------------------
Assignment      | APPROVER_NOT_FOUND                   | no active approver for the scope
Sync            | FINANCE_SYNC_FAILED                  | ledger record could not be written
Resource        | INSUFFICIENT_STOCK                   | requested quantity exceeds snapshot
Integrity       | IMMUTABILITY_VIOLATION               | workflow log update/delete attempt
"""

from decimal import Decimal
from enum import Enum
from typing import Any


class ErrorKind(str, Enum):
    """Closed enumeration of failure categories."""

    PRECONDITION = "precondition"
    MISSING_INPUT = "missing_input"
    INVALID_INPUT = "invalid_input"
    ELIGIBILITY = "eligibility"
    NOT_FOUND = "not_found"
    ASSIGNMENT = "assignment"
    SYNC = "sync"
    RESOURCE = "resource"
    INTEGRITY = "integrity"


class BackofficeError(Exception):
    """Base exception for all back-office workflow errors."""

    code: str = "BACKOFFICE_ERROR"
    kind: ErrorKind = ErrorKind.PRECONDITION


# =============================================================================
# Precondition violations
# =============================================================================


class PreconditionError(BackofficeError):
    """The entity is not in a state that permits the requested operation."""

    code: str = "PRECONDITION_FAILED"
    kind: ErrorKind = ErrorKind.PRECONDITION


class InvalidTransitionError(PreconditionError):
    """Base for per-action state precondition failures."""

    code: str = "INVALID_TRANSITION"
    action: str = "transition"

    def __init__(self, entity_type: str, entity_id: Any, current_status: str):
        self.entity_type = entity_type
        self.entity_id = str(entity_id)
        self.current_status = current_status
        super().__init__(
            f"Cannot {self.action} {entity_type} {entity_id} "
            f"in status '{current_status}'"
        )


class NotSubmittableError(InvalidTransitionError):
    code: str = "NOT_SUBMITTABLE"
    action: str = "submit"


class NotApprovableError(InvalidTransitionError):
    code: str = "NOT_APPROVABLE"
    action: str = "approve"


class NotRejectableError(InvalidTransitionError):
    code: str = "NOT_REJECTABLE"
    action: str = "reject"


class NotWithdrawableError(InvalidTransitionError):
    code: str = "NOT_WITHDRAWABLE"
    action: str = "withdraw"


class NotPayableError(InvalidTransitionError):
    code: str = "NOT_PAYABLE"
    action: str = "pay"


class NotEditableError(InvalidTransitionError):
    code: str = "NOT_EDITABLE"
    action: str = "edit"


class NotDeletableError(InvalidTransitionError):
    code: str = "NOT_DELETABLE"
    action: str = "delete"


class NotTransferableError(InvalidTransitionError):
    code: str = "NOT_TRANSFERABLE"
    action: str = "transfer"


class ApplicationNotPendingError(InvalidTransitionError):
    code: str = "APPLICATION_NOT_PENDING"
    action: str = "decide"


class LinkedPurchaseLockedError(PreconditionError):
    """A submitted purchase-sourced reimbursement can no longer be edited."""

    code: str = "REIMBURSEMENT_LINKED_PURCHASE_LOCKED"

    def __init__(self, reimbursement_id: Any, current_status: str):
        self.reimbursement_id = str(reimbursement_id)
        self.current_status = current_status
        super().__init__(
            f"Reimbursement {reimbursement_id} is linked to a purchase and was "
            f"already submitted (status '{current_status}'); it can no longer be edited"
        )


# =============================================================================
# Missing required input
# =============================================================================


class MissingInputError(BackofficeError):
    """A required input was not supplied."""

    code: str = "MISSING_INPUT"
    kind: ErrorKind = ErrorKind.MISSING_INPUT


class RequiredFieldError(MissingInputError):
    code: str = "FIELD_REQUIRED"

    def __init__(self, entity_type: str, field: str):
        self.entity_type = entity_type
        self.field = field
        super().__init__(f"{entity_type} field '{field}' is required")


class RejectReasonRequiredError(MissingInputError):
    code: str = "REJECT_REASON_REQUIRED"

    def __init__(self, entity_type: str, entity_id: Any):
        self.entity_type = entity_type
        self.entity_id = str(entity_id)
        super().__init__(f"A rejection reason is required to reject {entity_type} {entity_id}")


class DetailFieldRequiredError(MissingInputError):
    """A required category-specific detail field is missing."""

    code: str = "REIMBURSEMENT_DETAIL_REQUIRED"

    def __init__(self, category: str, field: str):
        self.category = category
        self.field = field
        super().__init__(f"Detail field '{field}' is required for category '{category}'")


class SourcePurchaseRequiredError(MissingInputError):
    code: str = "SOURCE_PURCHASE_REQUIRED"

    def __init__(self):
        super().__init__("A purchase-sourced reimbursement must reference a source purchase")


# =============================================================================
# Invalid input
# =============================================================================


class InvalidInputError(BackofficeError):
    """An input value is present but not acceptable."""

    code: str = "INVALID_INPUT"
    kind: ErrorKind = ErrorKind.INVALID_INPUT


class InvalidAmountError(InvalidInputError):
    code: str = "INVALID_AMOUNT"

    def __init__(self, field: str, value: Decimal | None, constraint: str):
        self.field = field
        self.value = value
        self.constraint = constraint
        super().__init__(f"{field} must be {constraint}, got {value}")


class InvalidChoiceError(InvalidInputError):
    code: str = "INVALID_CHOICE"

    def __init__(self, field: str, value: Any, allowed: tuple[str, ...]):
        self.field = field
        self.value = value
        self.allowed = allowed
        super().__init__(f"{field} must be one of {', '.join(allowed)}; got {value!r}")


class InvalidDateError(InvalidInputError):
    code: str = "INVALID_DATE"

    def __init__(self, field: str, value: Any):
        self.field = field
        self.value = value
        super().__init__(f"{field} is not a valid date: {value!r}")


# =============================================================================
# Cross-entity eligibility
# =============================================================================


class EligibilityError(BackofficeError):
    """A cross-entity rule blocks the operation."""

    code: str = "ELIGIBILITY_FAILED"
    kind: ErrorKind = ErrorKind.ELIGIBILITY


class PurchaseNotReimbursableError(EligibilityError):
    """The purchase was not advanced by an employee and cannot be reimbursed."""

    code: str = "SOURCE_PURCHASE_NOT_REIMBURSABLE"

    def __init__(self, purchase_id: Any, payment_method: str):
        self.purchase_id = str(purchase_id)
        self.payment_method = payment_method
        super().__init__(
            f"Purchase {purchase_id} was paid by {payment_method} and cannot back a reimbursement"
        )


class PurchaseAlreadyLinkedError(EligibilityError):
    code: str = "SOURCE_PURCHASE_ALREADY_LINKED"

    def __init__(self, purchase_id: Any, existing_reimbursement_id: Any):
        self.purchase_id = str(purchase_id)
        self.existing_reimbursement_id = str(existing_reimbursement_id)
        super().__init__(
            f"Purchase {purchase_id} is already linked to reimbursement "
            f"{existing_reimbursement_id}"
        )


class SourcePurchaseNotApprovedError(EligibilityError):
    code: str = "SOURCE_PURCHASE_NOT_APPROVED"

    def __init__(self, purchase_id: Any, current_status: str):
        self.purchase_id = str(purchase_id)
        self.current_status = current_status
        super().__init__(
            f"Purchase {purchase_id} has not been approved (status '{current_status}')"
        )


class InboundNotReadyError(EligibilityError):
    """No goods receipt has been recorded against the purchase."""

    code: str = "SOURCE_PURCHASE_INBOUND_REQUIRED"

    def __init__(self, purchase_id: Any):
        self.purchase_id = str(purchase_id)
        super().__init__(
            f"Purchase {purchase_id} has no inbound inventory movement; "
            "goods must be received before reimbursement"
        )


class InvoiceEvidenceRequiredError(EligibilityError):
    code: str = "INVOICE_EVIDENCE_REQUIRED"

    def __init__(self, entity_type: str, entity_id: Any, invoice_type: str):
        self.entity_type = entity_type
        self.entity_id = str(entity_id)
        self.invoice_type = invoice_type
        super().__init__(
            f"{entity_type} {entity_id} declares a '{invoice_type}' invoice "
            "but has no invoice image"
        )


class PurchaseInvoiceRequiredError(InvoiceEvidenceRequiredError):
    """Purchase-sourced claim whose purchase demands an invoice that is missing."""

    code: str = "REIMBURSEMENT_PURCHASE_INVOICE_REQUIRED"


class EvidenceFilesRequiredError(EligibilityError):
    code: str = "INVOICE_FILES_REQUIRED"

    def __init__(self, reimbursement_id: Any):
        self.reimbursement_id = str(reimbursement_id)
        super().__init__(
            f"Reimbursement {reimbursement_id} needs an invoice or receipt image before submission"
        )


# =============================================================================
# Resource not found
# =============================================================================


class NotFoundError(BackofficeError):
    code: str = "NOT_FOUND"
    kind: ErrorKind = ErrorKind.NOT_FOUND


class PurchaseNotFoundError(NotFoundError):
    code: str = "PURCHASE_NOT_FOUND"

    def __init__(self, purchase_id: Any):
        self.purchase_id = str(purchase_id)
        super().__init__(f"Purchase not found: {purchase_id}")


class SourcePurchaseNotFoundError(NotFoundError):
    code: str = "SOURCE_PURCHASE_NOT_FOUND"

    def __init__(self, purchase_id: Any):
        self.purchase_id = str(purchase_id)
        super().__init__(f"Source purchase not found or deleted: {purchase_id}")


class ReimbursementNotFoundError(NotFoundError):
    code: str = "REIMBURSEMENT_NOT_FOUND"

    def __init__(self, reimbursement_id: Any):
        self.reimbursement_id = str(reimbursement_id)
        super().__init__(f"Reimbursement not found: {reimbursement_id}")


class EmployeeNotFoundError(NotFoundError):
    code: str = "EMPLOYEE_NOT_FOUND"

    def __init__(self, employee_ref: Any, purpose: str = "employee"):
        self.employee_ref = str(employee_ref)
        self.purpose = purpose
        super().__init__(f"No active employee for {purpose}: {employee_ref}")


class InventoryItemNotFoundError(NotFoundError):
    code: str = "INVENTORY_ITEM_NOT_FOUND"

    def __init__(self, item_id: Any):
        self.item_id = str(item_id)
        super().__init__(f"Inventory item not found: {item_id}")


class InventoryApplicationNotFoundError(NotFoundError):
    code: str = "INVENTORY_APPLICATION_NOT_FOUND"

    def __init__(self, application_id: Any):
        self.application_id = str(application_id)
        super().__init__(f"Inventory application not found: {application_id}")


# =============================================================================
# Assignment exhaustion
# =============================================================================


class AssignmentError(BackofficeError):
    code: str = "ASSIGNMENT_FAILED"
    kind: ErrorKind = ErrorKind.ASSIGNMENT


class ApproverNotFoundError(AssignmentError):
    """No active employee holds the approver role for the organization scope."""

    code: str = "APPROVER_NOT_FOUND"

    def __init__(self, organization_type: str, role: str):
        self.organization_type = organization_type
        self.role = role
        super().__init__(
            f"No active approver with role '{role}' for organization '{organization_type}'"
        )


# =============================================================================
# Post-condition synchronization
# =============================================================================


class SyncError(BackofficeError):
    code: str = "SYNC_FAILED"
    kind: ErrorKind = ErrorKind.SYNC


class FinanceSyncError(SyncError):
    code: str = "FINANCE_SYNC_FAILED"

    def __init__(self, source_type: str, source_id: Any, reason: str):
        self.source_type = source_type
        self.source_id = str(source_id)
        self.reason = reason
        super().__init__(
            f"Finance expense record for {source_type} {source_id} could not be written: {reason}"
        )


# =============================================================================
# Contended resources
# =============================================================================


class ResourceError(BackofficeError):
    code: str = "RESOURCE_ERROR"
    kind: ErrorKind = ErrorKind.RESOURCE


class InsufficientStockError(ResourceError):
    code: str = "INSUFFICIENT_STOCK"

    def __init__(
        self,
        item_id: Any,
        warehouse_id: Any,
        available: Decimal,
        requested: Decimal,
    ):
        self.item_id = str(item_id)
        self.warehouse_id = str(warehouse_id)
        self.available = available
        self.requested = requested
        super().__init__(
            f"Insufficient stock for item {item_id} in warehouse {warehouse_id}: "
            f"available {available}, requested {requested}"
        )


# =============================================================================
# Immutability
# =============================================================================


class ImmutabilityError(BackofficeError):
    code: str = "IMMUTABILITY_ERROR"
    kind: ErrorKind = ErrorKind.INTEGRITY


class ImmutabilityViolationError(ImmutabilityError):
    """Attempted to modify or delete an append-only record."""

    code: str = "IMMUTABILITY_VIOLATION"

    def __init__(self, entity_type: str, entity_id: Any, reason: str):
        self.entity_type = entity_type
        self.entity_id = str(entity_id)
        self.reason = reason
        super().__init__(
            f"Immutability violation on {entity_type} {entity_id}: {reason}"
        )
