"""
Tests for the declared state machines and the workflow executor.

Covers:
- Tire lifecycle: legal and illegal transitions, movement types
- Retread order: receive status derivation via guards
- Purchase order: receipt status derivation via guards
- Executor: declaration-order candidate selection, fail-closed guards
"""

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from tire_kernel.domain.values import MovementType, TireStatus
from tire_kernel.domain.workflow import Guard, Transition, Workflow
from tire_kernel.services.workflow_executor import GuardExecutor, WorkflowExecutor
from tire_modules.intake.purchase_orders import purchase_order_guards
from tire_modules.intake.workflows import PURCHASE_ORDER_WORKFLOW, RECORD_RECEIPT
from tire_modules.lifecycle import workflows as lw
from tire_modules.lifecycle.workflows import TIRE_LIFECYCLE_WORKFLOW
from tire_modules.retread.service import retread_order_guards
from tire_modules.retread.workflows import RECEIVE, RETREAD_ORDER_WORKFLOW

ALL_TIRE_ACTIONS = (
    lw.INSTALL,
    lw.REMOVE,
    lw.MARK_FOR_RETREAD,
    lw.ENQUEUE_RETREAD,
    lw.SEND_TO_RETREAD,
    lw.ACCEPT_RETREAD,
    lw.REJECT_RETREAD,
    lw.RELEASE_FROM_RETREAD,
    lw.RECALL_FROM_RETREAD,
    lw.DISPOSE,
    lw.REVERSE_DISPOSAL,
)


def _tire(state, action, to_state=None):
    return WorkflowExecutor().execute_transition(
        workflow=TIRE_LIFECYCLE_WORKFLOW,
        entity_type="Tire",
        entity_id="t-1",
        current_state=state,
        action=action,
        to_state=to_state,
    )


class TestTireLifecycleWorkflow:

    def test_initial_state_is_in_store(self):
        assert TIRE_LIFECYCLE_WORKFLOW.initial_state == TireStatus.IN_STORE.value

    def test_install_only_from_in_store(self):
        assert TIRE_LIFECYCLE_WORKFLOW.sources_for(lw.INSTALL) == {TireStatus.IN_STORE.value}

    def test_install_writes_store_to_vehicle(self):
        result = _tire("IN_STORE", lw.INSTALL)
        assert result.success
        assert result.new_state == "ON_VEHICLE"
        assert result.movement_type == MovementType.STORE_TO_VEHICLE.value

    @pytest.mark.parametrize("target", ["IN_STORE", "USED_STORE"])
    def test_remove_to_either_store_status(self, target):
        result = _tire("ON_VEHICLE", lw.REMOVE, target)
        assert result.success
        assert result.new_state == target
        assert result.movement_type == MovementType.VEHICLE_TO_STORE.value

    def test_remove_cannot_land_on_disposed(self):
        assert not _tire("ON_VEHICLE", lw.REMOVE, "DISPOSED").success

    def test_remove_without_target_defaults_to_used_store(self):
        assert _tire("ON_VEHICLE", lw.REMOVE).new_state == "USED_STORE"

    def test_install_of_used_tire_refused(self):
        result = _tire("USED_STORE", lw.INSTALL)
        assert not result.success
        assert "No transition" in result.reason

    def test_enqueue_has_no_movement(self):
        result = _tire("USED_STORE", lw.ENQUEUE_RETREAD)
        assert result.new_state == "AWAITING_RETREAD"
        assert result.movement_type is None

    def test_mark_for_retread_is_internal_transfer(self):
        result = _tire("USED_STORE", lw.MARK_FOR_RETREAD)
        assert result.movement_type == MovementType.INTERNAL_TRANSFER.value

    def test_reject_retread_goes_to_disposal(self):
        result = _tire("AT_RETREAD_SUPPLIER", lw.REJECT_RETREAD)
        assert result.new_state == "DISPOSED"
        assert result.movement_type == MovementType.STORE_TO_DISPOSAL.value

    @pytest.mark.parametrize("state", ["DISPOSED", "SCRAP"])
    def test_reversal_from_terminal_lands_on_used_store(self, state):
        result = _tire(state, lw.REVERSE_DISPOSAL)
        assert result.new_state == "USED_STORE"
        assert result.movement_type == MovementType.DISPOSAL_REVERSAL.value

    def test_reversal_from_in_store_refused(self):
        assert not _tire("IN_STORE", lw.REVERSE_DISPOSAL).success

    @pytest.mark.parametrize(
        "state",
        ["IN_STORE", "ON_VEHICLE", "USED_STORE", "AWAITING_RETREAD", "AT_RETREAD_SUPPLIER"],
    )
    @pytest.mark.parametrize("target", ["DISPOSED", "SCRAP"])
    def test_any_live_status_can_be_disposed(self, state, target):
        assert _tire(state, lw.DISPOSE, target).success

    @pytest.mark.parametrize("state", ["DISPOSED", "SCRAP"])
    def test_terminal_statuses_only_escape_by_reversal(self, state):
        assert TIRE_LIFECYCLE_WORKFLOW.actions_from(state) == (lw.REVERSE_DISPOSAL,)

    def test_every_status_is_declared(self):
        assert set(TIRE_LIFECYCLE_WORKFLOW.states) == {s.value for s in TireStatus}

    @settings(max_examples=200, deadline=None)
    @given(st.lists(st.sampled_from(ALL_TIRE_ACTIONS), max_size=30))
    def test_random_walk_stays_inside_declared_machine(self, actions):
        state = TIRE_LIFECYCLE_WORKFLOW.initial_state
        for action in actions:
            result = _tire(state, action)
            if not result.success:
                assert TIRE_LIFECYCLE_WORKFLOW.find(state, action) is None
                continue
            assert TIRE_LIFECYCLE_WORKFLOW.allows(state, result.new_state)
            state = result.new_state
            assert state in {s.value for s in TireStatus}


def _receive(state, received, rejected, pending):
    executor = WorkflowExecutor(retread_order_guards())
    return executor.execute_transition(
        workflow=RETREAD_ORDER_WORKFLOW,
        entity_type="RetreadOrder",
        entity_id="o-1",
        current_state=state,
        action=RECEIVE,
        context={"received": received, "rejected": rejected, "pending": pending},
    )


class TestRetreadOrderWorkflow:

    def test_mixed_batch_is_partially_received(self):
        assert _receive("SENT", 2, 1, 0).new_state == "PARTIALLY_RECEIVED"

    def test_all_accepted_nothing_pending_is_completed(self):
        assert _receive("SENT", 3, 0, 0).new_state == "COMPLETED"

    def test_all_accepted_with_pending_is_received(self):
        assert _receive("SENT", 2, 0, 1).new_state == "RECEIVED"

    def test_rejections_with_pending_is_partially_received(self):
        assert _receive("SENT", 0, 1, 2).new_state == "PARTIALLY_RECEIVED"

    def test_only_rejections_resolving_everything_is_completed(self):
        assert _receive("SENT", 0, 2, 0).new_state == "COMPLETED"

    def test_receive_from_draft_refused(self):
        assert not _receive("DRAFT", 1, 0, 0).success

    def test_receive_legal_sources(self):
        assert RETREAD_ORDER_WORKFLOW.sources_for(RECEIVE) == {
            "SENT", "RECEIVED", "PARTIALLY_RECEIVED",
        }

    def test_cancel_only_from_draft_or_sent(self):
        assert RETREAD_ORDER_WORKFLOW.sources_for("cancel") == {"DRAFT", "SENT"}

    @settings(max_examples=300, deadline=None)
    @given(
        st.sampled_from(["SENT", "RECEIVED", "PARTIALLY_RECEIVED"]),
        st.integers(0, 20),
        st.integers(0, 20),
        st.integers(0, 20),
    )
    def test_every_receipt_resolves_to_a_status(self, state, received, rejected, pending):
        result = _receive(state, received, rejected, pending)
        assert result.success
        if rejected and received:
            assert result.new_state == "PARTIALLY_RECEIVED"
        elif pending == 0:
            assert result.new_state in ("COMPLETED", "PARTIALLY_RECEIVED")
        if rejected == 0 and pending == 0:
            assert result.new_state == "COMPLETED"
        if rejected == 0 and pending > 0:
            assert result.new_state == "RECEIVED"


def _po_receipt(state, ordered, received):
    return WorkflowExecutor(purchase_order_guards()).execute_transition(
        workflow=PURCHASE_ORDER_WORKFLOW,
        entity_type="PurchaseOrder",
        entity_id="po-1",
        current_state=state,
        action=RECORD_RECEIPT,
        context={"ordered": ordered, "received": received},
    )


class TestPurchaseOrderWorkflow:

    def test_full_receipt(self):
        assert _po_receipt("APPROVED", 4, 4).new_state == "FULLY_RECEIVED"

    def test_over_receipt_counts_as_full(self):
        assert _po_receipt("ORDERED", 4, 5).new_state == "FULLY_RECEIVED"

    def test_partial_receipt(self):
        assert _po_receipt("APPROVED", 4, 1).new_state == "PARTIALLY_RECEIVED"

    def test_nothing_received_leaves_status(self):
        assert not _po_receipt("APPROVED", 4, 0).success

    def test_draft_cannot_receive(self):
        assert not _po_receipt("DRAFT", 4, 4).success


class TestWorkflowExecutor:

    def _workflow(self):
        g1 = Guard("first", "first guard")
        g2 = Guard("second", "second guard")
        return Workflow(
            name="demo",
            description="demo",
            initial_state="A",
            states=("A", "B", "C"),
            transitions=(
                Transition("A", "B", action="go", guard=g1),
                Transition("A", "C", action="go", guard=g2),
            ),
        )

    def test_first_passing_candidate_wins(self):
        executor = WorkflowExecutor(GuardExecutor({"first": lambda c: True, "second": lambda c: True}))
        result = executor.execute_transition(self._workflow(), "X", "1", "A", "go")
        assert result.new_state == "B"

    def test_later_candidate_used_when_earlier_guard_fails(self):
        executor = WorkflowExecutor(GuardExecutor({"first": lambda c: False, "second": lambda c: True}))
        result = executor.execute_transition(self._workflow(), "X", "1", "A", "go")
        assert result.new_state == "C"

    def test_unknown_guard_fails_closed(self):
        result = WorkflowExecutor().execute_transition(self._workflow(), "X", "1", "A", "go")
        assert not result.success
        assert "Guard not satisfied" in result.reason

    def test_undeclared_state_rejected_at_definition(self):
        with pytest.raises(ValueError):
            Workflow(
                name="bad",
                description="bad",
                initial_state="A",
                states=("A",),
                transitions=(Transition("A", "Z", action="go"),),
            )

    def test_terminal_state_with_outgoing_action_rejected(self):
        with pytest.raises(ValueError):
            Workflow(
                name="bad",
                description="bad",
                initial_state="A",
                states=("A", "B"),
                transitions=(Transition("B", "A", action="undo"),),
                terminal_states=("B",),
            )
