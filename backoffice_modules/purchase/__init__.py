"""
Purchase Module (``backoffice_modules.purchase``).

Responsibility
--------------
Purchase requests from draft through approval to manual payment
confirmation, with approver assignment on submit and a finance expense
record written when the purchase is marked paid.

Failure modes
-------------
* Typed ``BackofficeError`` subclasses for every rejected operation; the
  row and its workflow log are unchanged after any failure.
"""

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
from backoffice_modules.purchase.workflows import PURCHASE_WORKFLOW

__all__ = [
    "InvoiceStatus",
    "InvoiceType",
    "PaymentMethod",
    "PaymentType",
    "Purchase",
    "PurchaseChannel",
    "PurchaseInput",
    "PurchaseStatus",
    "PURCHASE_WORKFLOW",
]
