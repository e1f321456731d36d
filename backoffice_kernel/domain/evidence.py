"""
Evidence value objects and the invoice-evidence rule.

Evidence images (invoice scans, payment receipts, attachments) are lists of
storage references.  In memory they are immutable ``EvidenceSet`` tuples;
they are converted to a JSON list only at the persistence edge.

The invoice-evidence rule is shared by Purchase submission and
purchase-sourced Reimbursement submission:

    sufficient  <=>  invoice_type == "none"
                 OR  invoice_status == "not_required"
                 OR  at least one evidence image is present
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

INVOICE_TYPE_NONE = "none"
INVOICE_STATUS_NOT_REQUIRED = "not_required"


@dataclass(frozen=True)
class EvidenceSet:
    """Ordered, de-duplicated, non-blank storage references."""

    refs: tuple[str, ...] = ()

    @classmethod
    def of(cls, values: Iterable[str] | None) -> EvidenceSet:
        if values is None:
            return cls()
        if isinstance(values, EvidenceSet):
            return values
        if isinstance(values, str):
            values = [values]
        cleaned: list[str] = []
        for value in values:
            if value is None:
                continue
            ref = str(value).strip()
            if ref and ref not in cleaned:
                cleaned.append(ref)
        return cls(tuple(cleaned))

    def to_storage(self) -> list[str]:
        return list(self.refs)

    def __bool__(self) -> bool:
        return bool(self.refs)

    def __len__(self) -> int:
        return len(self.refs)

    def __iter__(self):
        return iter(self.refs)


def has_invoice_evidence(
    invoice_type: str,
    invoice_status: str | None,
    images: Iterable[str] | None,
) -> bool:
    """Apply the invoice-evidence sufficiency rule."""
    if invoice_type == INVOICE_TYPE_NONE:
        return True
    if invoice_status == INVOICE_STATUS_NOT_REQUIRED:
        return True
    return bool(EvidenceSet.of(images))
