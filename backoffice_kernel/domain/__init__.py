"""Pure domain layer: clock, workflow definitions, evidence rules. Zero I/O."""

from backoffice_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from backoffice_kernel.domain.evidence import EvidenceSet, has_invoice_evidence
from backoffice_kernel.domain.workflow import Guard, Transition, Workflow

__all__ = [
    "Clock",
    "DeterministicClock",
    "SystemClock",
    "EvidenceSet",
    "has_invoice_evidence",
    "Guard",
    "Transition",
    "Workflow",
]
