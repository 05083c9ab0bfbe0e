"""
Immutability of the audit trail.

Movements, supplier ledger entries and retread receivings are
append-only; tires are never deleted; a closed assignment is frozen;
retread timeline rows survive once the order has left DRAFT.  All of
these are enforced by ORM listeners at flush time.
"""

from decimal import Decimal

import pytest
from sqlalchemy import select

from tire_kernel.exceptions import ImmutabilityViolationError
from tire_kernel.models import Movement, SupplierLedgerEntry, Tire, TireAssignment
from tire_modules.retread import RetreadOutcome, RetreadResult
from tire_modules.retread.orm import RetreadReceivingModel, RetreadTimelineEntryModel


def _flush_rejected(session):
    with pytest.raises(ImmutabilityViolationError):
        session.flush()
    session.rollback()


class TestAppendOnlyRecords:

    def test_movement_update_blocked(self, session, make_tire):
        tire = make_tire()
        movement = session.execute(
            select(Movement).where(Movement.tire_id == tire.id)
        ).scalar_one()
        movement.to_location = "ELSEWHERE"
        _flush_rejected(session)

    def test_movement_delete_blocked(self, session, make_tire):
        tire = make_tire()
        movement = session.execute(
            select(Movement).where(Movement.tire_id == tire.id)
        ).scalar_one()
        session.delete(movement)
        _flush_rejected(session)

    def test_ledger_entry_update_blocked(self, session, make_tire, make_supplier):
        supplier = make_supplier()
        make_tire(cost=Decimal("300"), supplier_id=supplier.id)
        entry = session.execute(
            select(SupplierLedgerEntry).where(SupplierLedgerEntry.supplier_id == supplier.id)
        ).scalar_one()
        entry.amount = Decimal("1")
        _flush_rejected(session)

    def test_tire_delete_blocked(self, session, make_tire):
        tire = session.get(Tire, make_tire().id)
        session.delete(tire)
        _flush_rejected(session)

    def test_violation_logged(self, captured_logs, session, make_tire):
        tire = make_tire()
        movement = session.execute(
            select(Movement).where(Movement.tire_id == tire.id)
        ).scalar_one()
        movement.notes = "edited"
        _flush_rejected(session)
        events = [r for r in captured_logs() if r["message"] == "immutability_violation_blocked"]
        assert events and events[0]["entity_type"] == "Movement"
        assert events[0]["field"] == "notes"


class TestAssignments:

    def test_open_assignment_can_be_closed(
        self, assignment_service, make_tire, make_vehicle, test_actor_id,
    ):
        installed = assignment_service.install(make_tire().id, make_vehicle().id, "FL", actor_id=test_actor_id)
        removed = assignment_service.remove(installed.assignment.id, actor_id=test_actor_id)
        assert not removed.assignment.is_open

    def test_closed_assignment_frozen(
        self, session, assignment_service, make_tire, make_vehicle, test_actor_id,
    ):
        installed = assignment_service.install(make_tire().id, make_vehicle().id, "FL", actor_id=test_actor_id)
        assignment_service.remove(installed.assignment.id, actor_id=test_actor_id, reason="Worn")

        row = session.get(TireAssignment, installed.assignment.id)
        row.removal_reason = "Rewritten"
        _flush_rejected(session)

    def test_assignment_delete_blocked(
        self, session, assignment_service, make_tire, make_vehicle, test_actor_id,
    ):
        installed = assignment_service.install(make_tire().id, make_vehicle().id, "FL", actor_id=test_actor_id)
        session.delete(session.get(TireAssignment, installed.assignment.id))
        _flush_rejected(session)


class TestRetreadRecords:

    @pytest.fixture
    def received_order(self, retread_service, make_retread_supplier, make_used_tire, test_actor_id):
        tire = make_used_tire()
        order = retread_service.create_order(
            make_retread_supplier().id, [tire.id], actor_id=test_actor_id,
        )
        retread_service.send(order.id, actor_id=test_actor_id)
        result = retread_service.receive(
            order.id, [RetreadResult(tire.id, RetreadOutcome.RECEIVED)], actor_id=test_actor_id,
        )
        return result

    def test_receiving_update_blocked(self, session, received_order):
        receiving = session.get(RetreadReceivingModel, received_order.receiving_id)
        receiving.received_count = 0
        _flush_rejected(session)

    def test_timeline_update_blocked(self, session, received_order):
        entry = session.execute(
            select(RetreadTimelineEntryModel).where(
                RetreadTimelineEntryModel.order_id == received_order.order.id
            ).limit(1)
        ).scalar_one()
        entry.note = "Rewritten"
        _flush_rejected(session)

    def test_timeline_of_completed_order_cannot_be_deleted(self, session, received_order):
        entry = session.execute(
            select(RetreadTimelineEntryModel).where(
                RetreadTimelineEntryModel.order_id == received_order.order.id
            ).limit(1)
        ).scalar_one()
        session.delete(entry)
        _flush_rejected(session)
