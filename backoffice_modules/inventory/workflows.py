"""Inventory Workflows.

State machine for stock applications.
"""

from backoffice_kernel.domain.workflow import Guard, Transition, Workflow

STOCK_AVAILABLE = Guard(
    name="stock_available",
    description="Locked snapshot quantity covers the requested quantity",
)

INVENTORY_APPLICATION_WORKFLOW = Workflow(
    name="inventory_application",
    description="Stock application lifecycle",
    initial_state="pending",
    states=("pending", "approved", "rejected"),
    transitions=(
        Transition("pending", "approved", action="approve", guards=(STOCK_AVAILABLE,)),
        Transition("pending", "rejected", action="reject"),
    ),
    terminal_states=("approved", "rejected"),
)
