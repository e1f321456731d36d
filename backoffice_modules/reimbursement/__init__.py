"""
Reimbursement Module (``backoffice_modules.reimbursement``).

Employee expense claims through approval to payment.  Purchase-sourced
claims are tied to exactly one purchase and may only be submitted once the
purchase is approved and its goods have been received into inventory.
"""

from backoffice_modules.reimbursement.details import sanitize_details
from backoffice_modules.reimbursement.models import (
    Reimbursement,
    ReimbursementInput,
    ReimbursementStatus,
    SourceType,
)
from backoffice_modules.reimbursement.workflows import REIMBURSEMENT_WORKFLOW

__all__ = [
    "Reimbursement",
    "ReimbursementInput",
    "ReimbursementStatus",
    "SourceType",
    "REIMBURSEMENT_WORKFLOW",
    "sanitize_details",
]
