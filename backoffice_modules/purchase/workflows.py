"""Purchase Workflows.

State machine for purchase requests.
"""

from backoffice_kernel.domain.workflow import Guard, Transition, Workflow
from backoffice_kernel.logging_config import get_logger

logger = get_logger("modules.purchase.workflows")


# -----------------------------------------------------------------------------
# Guards
# -----------------------------------------------------------------------------

INVOICE_EVIDENCE = Guard(
    name="invoice_evidence",
    description="Invoice type is none, invoice not required, or an invoice image is attached",
)

APPROVER_AVAILABLE = Guard(
    name="approver_available",
    description="An active approver exists for the organization scope",
)

TRANSFER_TARGET_ACTIVE = Guard(
    name="transfer_target_active",
    description="The new approver is an active employee",
)

REJECT_REASON = Guard(
    name="reject_reason",
    description="A non-blank rejection reason is given",
)


# -----------------------------------------------------------------------------
# Purchase Workflow
# -----------------------------------------------------------------------------

EDITABLE_STATES = ("draft", "rejected")

PURCHASE_WORKFLOW = Workflow(
    name="purchase",
    description="Purchase request lifecycle",
    initial_state="draft",
    states=(
        "draft",
        "pending_approval",
        "approved",
        "rejected",
        "paid",
        "cancelled",
    ),
    transitions=(
        Transition("draft", "pending_approval", action="submit",
                   guards=(INVOICE_EVIDENCE, APPROVER_AVAILABLE)),
        Transition("rejected", "pending_approval", action="submit",
                   guards=(INVOICE_EVIDENCE, APPROVER_AVAILABLE)),
        Transition("pending_approval", "approved", action="approve"),
        Transition("pending_approval", "rejected", action="reject", guards=(REJECT_REASON,)),
        Transition("pending_approval", "cancelled", action="withdraw"),
        Transition("pending_approval", "pending_approval", action="transfer",
                   guards=(TRANSFER_TARGET_ACTIVE,)),
        Transition("approved", "paid", action="pay", syncs_finance=True),
        Transition("draft", "cancelled", action="cancel"),
        Transition("rejected", "cancelled", action="cancel"),
    ),
    terminal_states=("paid", "cancelled"),
)

logger.info(
    "purchase_workflow_registered",
    extra={
        "workflow_name": PURCHASE_WORKFLOW.name,
        "state_count": len(PURCHASE_WORKFLOW.states),
        "transition_count": len(PURCHASE_WORKFLOW.transitions),
        "initial_state": PURCHASE_WORKFLOW.initial_state,
    },
)
