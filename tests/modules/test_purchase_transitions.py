"""
Purchase state machine enforced by the service.

Every (status, action) pair that PURCHASE_WORKFLOW does not declare must be
refused with a typed InvalidTransitionError, leaving the row and its
workflow log untouched.
"""

from __future__ import annotations

import pytest

from backoffice_kernel.exceptions import InvalidTransitionError
from backoffice_modules.purchase.workflows import PURCHASE_WORKFLOW

ACTIONS = ("submit", "approve", "reject", "withdraw", "pay", "transfer", "cancel")

UNDECLARED = [
    (state, action)
    for state in PURCHASE_WORKFLOW.states
    for action in ACTIONS
    if not PURCHASE_WORKFLOW.can(state, action)
]


@pytest.fixture
def purchase_in_state(purchase_service, draft_purchase, school_approver, test_actor_id):
    """Factory: a purchase driven through the service into ``state``."""

    def _drive(state: str):
        purchase = draft_purchase()
        if state == "draft":
            return purchase
        if state == "cancelled":
            return purchase_service.delete(purchase.id, test_actor_id)
        purchase_service.submit(purchase.id, test_actor_id)
        if state == "rejected":
            return purchase_service.reject(purchase.id, school_approver.id, "needs quote")
        if state in ("approved", "paid"):
            purchase_service.approve(purchase.id, school_approver.id)
        if state == "paid":
            purchase_service.mark_paid(purchase.id, test_actor_id)
        return purchase_service.get(purchase.id)

    return _drive


def _perform(purchase_service, action, purchase_id, operator_id, target_id):
    if action == "submit":
        return purchase_service.submit(purchase_id, operator_id)
    if action == "approve":
        return purchase_service.approve(purchase_id, operator_id)
    if action == "reject":
        return purchase_service.reject(purchase_id, operator_id, "no")
    if action == "withdraw":
        return purchase_service.withdraw(purchase_id, operator_id)
    if action == "pay":
        return purchase_service.mark_paid(purchase_id, operator_id)
    if action == "transfer":
        return purchase_service.transfer(purchase_id, operator_id, target_id)
    return purchase_service.delete(purchase_id, operator_id)


def test_grid_is_not_empty():
    assert ("paid", "pay") in UNDECLARED
    assert ("draft", "approve") in UNDECLARED
    assert ("pending_approval", "approve") not in UNDECLARED


@pytest.mark.parametrize("state, action", [
    pytest.param(s, a, id=f"{s}-{a}") for s, a in UNDECLARED if s != "cancelled"
])
def test_undeclared_action_refused(
    purchase_service, purchase_in_state, school_approver, test_actor_id, state, action,
):
    purchase = purchase_in_state(state)
    assert purchase.status.value == state
    log_count = len(purchase_service.get_logs(purchase.id))

    with pytest.raises(InvalidTransitionError) as exc_info:
        _perform(purchase_service, action, purchase.id, test_actor_id, school_approver.id)

    assert exc_info.value.current_status == state
    assert exc_info.value.entity_id == str(purchase.id)
    reloaded = purchase_service.get(purchase.id)
    assert reloaded.status.value == state
    assert len(purchase_service.get_logs(purchase.id)) == log_count


def test_cancelled_by_withdraw_is_terminal(
    purchase_service, draft_purchase, school_approver, test_actor_id,
):
    purchase = draft_purchase()
    purchase_service.submit(purchase.id, test_actor_id)
    purchase_service.withdraw(purchase.id, test_actor_id)

    for action in ACTIONS:
        with pytest.raises(InvalidTransitionError):
            _perform(purchase_service, action, purchase.id, test_actor_id, school_approver.id)
    assert len(purchase_service.get_logs(purchase.id)) == 3


def test_every_declared_action_logs_once(
    purchase_service, draft_purchase, school_approver, create_employee, test_actor_id,
):
    deputy = create_employee("Deputy", primary_role="finance_school")
    purchase = draft_purchase()

    purchase_service.submit(purchase.id, test_actor_id)
    purchase_service.reject(purchase.id, school_approver.id, "quote missing")
    purchase_service.submit(purchase.id, test_actor_id)
    purchase_service.transfer(purchase.id, school_approver.id, deputy.id)
    purchase_service.approve(purchase.id, deputy.id)
    purchase_service.mark_paid(purchase.id, test_actor_id)

    logs = purchase_service.get_logs(purchase.id)
    assert [e.action.value for e in logs] == [
        "create", "submit", "reject", "submit", "transfer", "approve", "pay",
    ]
    assert [e.to_status for e in logs] == [
        "draft", "pending_approval", "rejected", "pending_approval",
        "pending_approval", "approved", "paid",
    ]
    # from_status of each entry chains from the previous to_status
    assert all(
        later.from_status == earlier.to_status for earlier, later in zip(logs, logs[1:])
    )
