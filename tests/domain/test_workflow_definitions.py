"""
Tests for the declared state machines.

Validates:
- Workflow value-object construction rules
- The exact transition tables of Purchase, Reimbursement and inventory
  applications
"""

import pytest

from backoffice_kernel.domain.workflow import Transition, Workflow
from backoffice_modules.inventory.workflows import INVENTORY_APPLICATION_WORKFLOW
from backoffice_modules.purchase.workflows import EDITABLE_STATES, PURCHASE_WORKFLOW
from backoffice_modules.reimbursement.workflows import (
    DELETABLE_STATES,
    REIMBURSEMENT_WORKFLOW,
)


def _table(workflow: Workflow) -> set[tuple[str, str, str]]:
    return {(t.from_state, t.action, t.to_state) for t in workflow.transitions}


# =============================================================================
# Workflow construction
# =============================================================================


class TestWorkflowConstruction:

    def test_unknown_initial_state_rejected(self):
        with pytest.raises(ValueError, match="initial_state"):
            Workflow(
                name="w", description="", initial_state="x",
                states=("a",), transitions=(),
            )

    def test_unknown_transition_state_rejected(self):
        with pytest.raises(ValueError, match="unknown state"):
            Workflow(
                name="w", description="", initial_state="a",
                states=("a",), transitions=(Transition("a", "b", action="go"),),
            )

    def test_terminal_state_cannot_have_outgoing_transition(self):
        with pytest.raises(ValueError, match="terminal"):
            Workflow(
                name="w", description="", initial_state="a",
                states=("a", "b"),
                transitions=(Transition("b", "a", action="back"),),
                terminal_states=("b",),
            )

    def test_duplicate_pair_rejected(self):
        with pytest.raises(ValueError, match="duplicate"):
            Workflow(
                name="w", description="", initial_state="a",
                states=("a", "b", "c"),
                transitions=(
                    Transition("a", "b", action="go"),
                    Transition("a", "c", action="go"),
                ),
            )

    def test_helpers(self):
        assert PURCHASE_WORKFLOW.can("draft", "submit")
        assert not PURCHASE_WORKFLOW.can("paid", "submit")
        assert set(PURCHASE_WORKFLOW.source_states("submit")) == {"draft", "rejected"}
        assert set(PURCHASE_WORKFLOW.allowed_actions("approved")) == {"pay"}


# =============================================================================
# Purchase
# =============================================================================


class TestPurchaseWorkflow:

    def test_transition_table(self):
        assert _table(PURCHASE_WORKFLOW) == {
            ("draft", "submit", "pending_approval"),
            ("rejected", "submit", "pending_approval"),
            ("pending_approval", "approve", "approved"),
            ("pending_approval", "reject", "rejected"),
            ("pending_approval", "withdraw", "cancelled"),
            ("pending_approval", "transfer", "pending_approval"),
            ("approved", "pay", "paid"),
            ("draft", "cancel", "cancelled"),
            ("rejected", "cancel", "cancelled"),
        }

    def test_terminal_states(self):
        assert set(PURCHASE_WORKFLOW.terminal_states) == {"paid", "cancelled"}
        for state in PURCHASE_WORKFLOW.terminal_states:
            assert PURCHASE_WORKFLOW.allowed_actions(state) == ()

    def test_only_pay_syncs_finance(self):
        syncing = [t for t in PURCHASE_WORKFLOW.transitions if t.syncs_finance]
        assert [(t.from_state, t.action) for t in syncing] == [("approved", "pay")]

    def test_editable_states(self):
        assert set(EDITABLE_STATES) == {"draft", "rejected"}

    def test_submit_declares_guards(self):
        guard_names = {g.name for g in PURCHASE_WORKFLOW.find("draft", "submit").guards}
        assert {"invoice_evidence", "approver_available"} <= guard_names


# =============================================================================
# Reimbursement
# =============================================================================


class TestReimbursementWorkflow:

    def test_transition_table(self):
        assert _table(REIMBURSEMENT_WORKFLOW) == {
            ("draft", "submit", "pending_approval"),
            ("rejected", "submit", "pending_approval"),
            ("pending_approval", "approve", "approved"),
            ("pending_approval", "reject", "rejected"),
            ("pending_approval", "withdraw", "draft"),
            ("approved", "pay", "paid"),
        }

    def test_paid_is_terminal(self):
        assert REIMBURSEMENT_WORKFLOW.terminal_states == ("paid",)

    def test_pay_not_declared_from_pending(self):
        """The service composes approve + pay; the table keeps them separate."""
        assert not REIMBURSEMENT_WORKFLOW.can("pending_approval", "pay")

    def test_deletable_states(self):
        assert set(DELETABLE_STATES) == {"draft", "rejected"}


class TestInventoryApplicationWorkflow:

    def test_transition_table(self):
        assert _table(INVENTORY_APPLICATION_WORKFLOW) == {
            ("pending", "approve", "approved"),
            ("pending", "reject", "rejected"),
        }


# =============================================================================
# Graph completeness
# =============================================================================

ALL_WORKFLOWS = [
    ("Purchase", PURCHASE_WORKFLOW),
    ("Reimbursement", REIMBURSEMENT_WORKFLOW),
    ("Inventory Application", INVENTORY_APPLICATION_WORKFLOW),
]


def reachable_states(workflow: Workflow) -> set[str]:
    """States reachable from the initial state by declared transitions."""
    seen = {workflow.initial_state}
    frontier = [workflow.initial_state]
    while frontier:
        state = frontier.pop()
        for t in workflow.transitions:
            if t.from_state == state and t.to_state not in seen:
                seen.add(t.to_state)
                frontier.append(t.to_state)
    return seen


@pytest.mark.parametrize("name, workflow", ALL_WORKFLOWS)
class TestWorkflowGraph:

    def test_every_state_reachable(self, name, workflow):
        unreachable = set(workflow.states) - reachable_states(workflow)
        assert not unreachable, f"{name}: unreachable states {sorted(unreachable)}"

    def test_non_terminal_states_can_move(self, name, workflow):
        for state in workflow.states:
            if state in workflow.terminal_states:
                continue
            assert workflow.allowed_actions(state), f"{name}: '{state}' is a dead end"

    def test_terminal_states_are_inert(self, name, workflow):
        for state in workflow.terminal_states:
            assert workflow.allowed_actions(state) == ()

    def test_finance_sync_only_into_terminal_paid(self, name, workflow):
        for t in workflow.transitions:
            if t.syncs_finance:
                assert t.to_state == "paid"
                assert t.to_state in workflow.terminal_states
