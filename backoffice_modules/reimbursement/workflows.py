"""Reimbursement Workflows.

State machine for reimbursement claims.  ``pay`` from ``pending_approval``
is not a declared transition: the service runs ``approve`` then ``pay`` and
logs both.
"""

from backoffice_kernel.domain.workflow import Guard, Transition, Workflow
from backoffice_kernel.logging_config import get_logger

logger = get_logger("modules.reimbursement.workflows")


# -----------------------------------------------------------------------------
# Guards
# -----------------------------------------------------------------------------

EVIDENCE_ATTACHED = Guard(
    name="evidence_attached",
    description="Direct claims carry an invoice or receipt image",
)

LINKED_PURCHASE_ELIGIBLE = Guard(
    name="linked_purchase_eligible",
    description=(
        "Purchase-sourced claims: purchase reimbursable, singly linked, "
        "approved or paid, goods received, invoice evidence present"
    ),
)

APPROVER_AVAILABLE = Guard(
    name="approver_available",
    description="An active approver exists for the organization scope",
)


# -----------------------------------------------------------------------------
# Reimbursement Workflow
# -----------------------------------------------------------------------------

EDITABLE_STATES = ("draft", "rejected")
DELETABLE_STATES = ("draft", "rejected")

REIMBURSEMENT_WORKFLOW = Workflow(
    name="reimbursement",
    description="Reimbursement claim lifecycle",
    initial_state="draft",
    states=(
        "draft",
        "pending_approval",
        "approved",
        "rejected",
        "paid",
    ),
    transitions=(
        Transition("draft", "pending_approval", action="submit",
                   guards=(EVIDENCE_ATTACHED, LINKED_PURCHASE_ELIGIBLE, APPROVER_AVAILABLE)),
        Transition("rejected", "pending_approval", action="submit",
                   guards=(EVIDENCE_ATTACHED, LINKED_PURCHASE_ELIGIBLE, APPROVER_AVAILABLE)),
        Transition("pending_approval", "approved", action="approve"),
        Transition("pending_approval", "rejected", action="reject"),
        Transition("pending_approval", "draft", action="withdraw"),
        Transition("approved", "paid", action="pay", syncs_finance=True),
    ),
    terminal_states=("paid",),
)

logger.info(
    "reimbursement_workflow_registered",
    extra={
        "workflow_name": REIMBURSEMENT_WORKFLOW.name,
        "state_count": len(REIMBURSEMENT_WORKFLOW.states),
        "transition_count": len(REIMBURSEMENT_WORKFLOW.transitions),
        "initial_state": REIMBURSEMENT_WORKFLOW.initial_state,
    },
)
