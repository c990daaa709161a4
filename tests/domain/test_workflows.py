"""
Tests for workflow value objects and the declared procurement lifecycles.
"""

import pytest

from supply_kernel.domain.workflow import Transition, Workflow
from supply_kernel.exceptions import InvalidTransitionError
from supply_modules.procurement.workflows import (
    DELETABLE_REQUEST_STATES,
    PURCHASE_ORDER_WORKFLOW,
    PURCHASE_REQUEST_WORKFLOW,
)


class TestWorkflowValidation:

    def test_initial_state_must_be_declared(self):
        with pytest.raises(ValueError, match="initial state"):
            Workflow(
                name="w",
                description="",
                initial_state="draft",
                states=("open",),
                transitions=(),
            )

    def test_transition_states_must_be_declared(self):
        with pytest.raises(ValueError, match="undeclared state"):
            Workflow(
                name="w",
                description="",
                initial_state="open",
                states=("open",),
                transitions=(Transition("open", "closed", action="close"),),
            )

    def test_transition_for_unknown_action(self):
        with pytest.raises(InvalidTransitionError) as exc_info:
            PURCHASE_ORDER_WORKFLOW.transition_for("issued", "approve", entity_id="po-1")
        assert exc_info.value.current_state == "issued"
        assert exc_info.value.action == "approve"
        assert exc_info.value.entity_id == "po-1"


class TestPurchaseRequestWorkflow:

    @pytest.mark.parametrize(
        "state, action, expected",
        [
            ("pending", "approve", "approved"),
            ("pending", "reject", "rejected"),
            ("pending", "edit", "pending"),
            ("rejected", "edit", "pending"),
            ("approved", "order", "ordered"),
            ("ordered", "release", "approved"),
        ],
    )
    def test_declared_transitions(self, state, action, expected):
        assert PURCHASE_REQUEST_WORKFLOW.transition_for(state, action).to_state == expected

    @pytest.mark.parametrize("state", ["approved", "ordered", "rejected", "stock_allocated"])
    def test_review_only_from_pending(self, state):
        assert not PURCHASE_REQUEST_WORKFLOW.can(state, "approve")
        assert not PURCHASE_REQUEST_WORKFLOW.can(state, "reject")

    def test_reservation_is_terminal(self):
        assert PURCHASE_REQUEST_WORKFLOW.actions_from("stock_allocated") == ()
        assert "stock_allocated" in PURCHASE_REQUEST_WORKFLOW.terminal_states

    def test_approved_and_ordered_not_deletable(self):
        assert "approved" not in DELETABLE_REQUEST_STATES
        assert "ordered" not in DELETABLE_REQUEST_STATES


class TestPurchaseOrderWorkflow:

    def test_initial_state(self):
        assert PURCHASE_ORDER_WORKFLOW.initial_state == "pending_approval"

    def test_approval_requires_elevated_role(self):
        transition = PURCHASE_ORDER_WORKFLOW.transition_for("pending_approval", "approve")
        assert transition.requires_elevated_role
        assert transition.to_state == "issued"

    def test_receive_posts_to_ledger(self):
        assert PURCHASE_ORDER_WORKFLOW.transition_for("issued", "receive").posts_entry

    @pytest.mark.parametrize("state", ["received", "partial_paid", "paid"])
    def test_payable_states_accept_full_payment(self, state):
        assert PURCHASE_ORDER_WORKFLOW.transition_for(state, "pay_in_full").to_state == "paid"

    @pytest.mark.parametrize("state", ["pending_approval", "issued"])
    def test_unreceived_orders_not_payable(self, state):
        assert not PURCHASE_ORDER_WORKFLOW.can(state, "pay_partial")
        assert not PURCHASE_ORDER_WORKFLOW.can(state, "pay_in_full")

    def test_update_only_before_approval(self):
        assert PURCHASE_ORDER_WORKFLOW.actions_from("issued") == ("receive",)
