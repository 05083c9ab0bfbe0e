"""
Tests for tire registration, disposal, disposal reversal and the
retread queue.
"""

from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest

from tire_kernel.domain.values import (
    DisposalMethod,
    LedgerEntryKind,
    MovementType,
    TireCategory,
    TireStatus,
)
from tire_kernel.exceptions import (
    DuplicateSerialError,
    InvalidTireSpecError,
    InvalidTireStateError,
    SupplierNotFoundError,
    TireCommittedToOrderError,
    TireNotFoundError,
    ValidationError,
)


class TestRegisterTire:

    def test_register_creates_in_store_tire_with_intake_movement(
        self, lifecycle_service, tire_selector, test_actor_id,
    ):
        tire = lifecycle_service.register_tire(
            "MX-0001", "295/80R22.5", "Michelin", actor_id=test_actor_id, model="X Multi Z",
        )

        assert tire.status == TireStatus.IN_STORE
        assert tire.category == TireCategory.NEW
        assert tire.current_location == "MAIN_WAREHOUSE"
        assert tire.retread_count == 0
        assert tire.acquisition_date == date(2024, 1, 1)

        history = tire_selector.movement_history(tire.id)
        assert len(history) == 1
        assert history[0].sequence_no == 1
        assert history[0].movement_type == MovementType.PURCHASE_TO_STORE
        assert history[0].from_location == "SUPPLIER"
        assert history[0].to_location == "MAIN_WAREHOUSE"

    def test_register_with_supplier_charges_ledger(
        self, make_tire, make_supplier, supplier_selector,
    ):
        supplier = make_supplier()
        make_tire(serial_number="MX-0002", cost=Decimal("410.00"), supplier_id=supplier.id)

        entries = supplier_selector.ledger(supplier.id)
        assert len(entries) == 1
        assert entries[0].kind == LedgerEntryKind.PURCHASE
        assert entries[0].amount == Decimal("410.00")
        assert entries[0].reference == "MX-0002"
        assert supplier_selector.get_supplier(supplier.id).balance == Decimal("410.00")

    def test_register_without_cost_writes_no_charge(
        self, make_tire, make_supplier, supplier_selector,
    ):
        supplier = make_supplier()
        make_tire(supplier_id=supplier.id)
        assert supplier_selector.ledger(supplier.id) == []

    def test_duplicate_serial_rejected(self, make_tire):
        make_tire(serial_number="DUP-001")
        with pytest.raises(DuplicateSerialError):
            make_tire(serial_number="DUP-001")

    def test_size_outside_catalog_rejected(self, make_tire):
        with pytest.raises(InvalidTireSpecError) as exc_info:
            make_tire(size="205/55R16")
        assert exc_info.value.field == "size"

    @pytest.mark.parametrize("serial", ["", "   "])
    def test_blank_serial_rejected(self, make_tire, serial):
        with pytest.raises(ValidationError):
            make_tire(serial_number=serial)

    def test_negative_cost_rejected(self, make_tire):
        with pytest.raises(ValidationError):
            make_tire(cost=Decimal("-1"))

    def test_unknown_supplier_rejected(self, make_tire, tire_selector):
        with pytest.raises(SupplierNotFoundError):
            make_tire(serial_number="ORPHAN-1", supplier_id=uuid4())
        assert tire_selector.find_by_serial("ORPHAN-1") is None

    def test_get_unknown_tire(self, lifecycle_service):
        with pytest.raises(TireNotFoundError):
            lifecycle_service.get_tire(uuid4())

    def test_registration_logged(self, captured_logs, make_tire):
        make_tire(serial_number="LOG-001")
        events = [r for r in captured_logs() if r["message"] == "tire_registered"]
        assert len(events) == 1
        assert events[0]["serial_number"] == "LOG-001"


class TestDisposal:

    def test_dispose_in_store_tire(
        self, lifecycle_service, make_tire, tire_selector, test_actor_id,
    ):
        tire = make_tire()
        authoriser = uuid4()
        disposed = lifecycle_service.dispose(
            tire.id, "Sidewall damage", actor_id=test_actor_id,
            authorized_by=authoriser, notes="Found at inspection",
        )

        assert disposed.status == TireStatus.DISPOSED
        assert disposed.is_disposed
        assert disposed.disposal_reason == "Sidewall damage"
        assert disposed.disposal_method == DisposalMethod.DISPOSAL
        assert disposed.disposal_authorized_by == authoriser
        assert disposed.disposal_date == date(2024, 1, 1)
        assert disposed.current_location == "DISPOSAL"

        last = tire_selector.movement_history(tire.id)[-1]
        assert last.movement_type == MovementType.STORE_TO_DISPOSAL
        assert last.from_location == "MAIN_WAREHOUSE"
        assert last.to_location == "DISPOSAL"

    def test_scrap_method_lands_on_scrap(self, lifecycle_service, make_tire, test_actor_id):
        disposed = lifecycle_service.dispose(
            make_tire().id, "Casing failure", actor_id=test_actor_id, method=DisposalMethod.SCRAP,
        )
        assert disposed.status == TireStatus.SCRAP

    def test_dispose_mounted_tire_closes_assignment(
        self, lifecycle_service, assignment_service, make_tire, make_vehicle,
        tire_selector, test_actor_id,
    ):
        tire = make_tire()
        vehicle = make_vehicle()
        assignment_service.install(tire.id, vehicle.id, "FL", actor_id=test_actor_id)

        lifecycle_service.dispose(tire.id, "Blowout", actor_id=test_actor_id)

        assert tire_selector.current_assignment(tire.id) is None
        closed = tire_selector.assignment_history(tire.id)[-1]
        assert closed.removal_reason == "Blowout"
        last = tire_selector.movement_history(tire.id)[-1]
        assert last.vehicle_id == vehicle.id
        occupancy = {o.position.code: o for o in tire_selector.vehicle_occupancy(vehicle.id)}
        assert not occupancy["FL"].is_occupied

    def test_dispose_twice_refused(self, lifecycle_service, make_tire, test_actor_id):
        tire = make_tire()
        lifecycle_service.dispose(tire.id, "Worn out", actor_id=test_actor_id)
        with pytest.raises(InvalidTireStateError):
            lifecycle_service.dispose(tire.id, "Worn out", actor_id=test_actor_id)

    def test_blank_reason_refused(self, lifecycle_service, make_tire, test_actor_id):
        with pytest.raises(ValidationError):
            lifecycle_service.dispose(make_tire().id, " ", actor_id=test_actor_id)

    def test_unknown_method_refused(self, lifecycle_service, make_tire, test_actor_id):
        with pytest.raises(ValidationError):
            lifecycle_service.dispose(make_tire().id, "Worn", actor_id=test_actor_id, method="BURN")

    def test_tire_committed_to_retread_order_refused(
        self, lifecycle_service, retread_service, make_used_tire, make_retread_supplier,
        test_actor_id,
    ):
        tire = make_used_tire()
        retread_service.create_order(make_retread_supplier().id, [tire.id], actor_id=test_actor_id)

        with pytest.raises(TireCommittedToOrderError) as exc_info:
            lifecycle_service.dispose(tire.id, "Changed mind", actor_id=test_actor_id)
        assert exc_info.value.order_number == "RTD-2401-0001"


class TestBulkDisposal:

    def test_failures_do_not_stop_the_batch(
        self, lifecycle_service, make_tire, tire_selector, test_actor_id,
    ):
        good = make_tire()
        already = make_tire()
        lifecycle_service.dispose(already.id, "Worn", actor_id=test_actor_id)
        missing = uuid4()

        result = lifecycle_service.dispose_many(
            [good.id, already.id, missing], "Fleet clear-out", actor_id=test_actor_id,
        )

        assert not result.all_succeeded
        assert [o.tire_id for o in result.succeeded] == [good.id]
        failed = {o.tire_id: o.error_code for o in result.failed}
        assert failed[already.id] == InvalidTireStateError.code
        assert failed[missing] == TireNotFoundError.code
        assert tire_selector.get_tire(good.id).status == TireStatus.DISPOSED

    def test_shared_argument_validation_fails_whole_call(
        self, lifecycle_service, make_tire, tire_selector, test_actor_id,
    ):
        tire = make_tire()
        with pytest.raises(ValidationError):
            lifecycle_service.dispose_many([tire.id], "", actor_id=test_actor_id)
        assert tire_selector.get_tire(tire.id).status == TireStatus.IN_STORE


class TestReverseDisposal:

    def test_reversal_returns_tire_to_used_store(
        self, lifecycle_service, make_tire, tire_selector, test_actor_id,
    ):
        tire = make_tire()
        lifecycle_service.dispose(tire.id, "Mistake", actor_id=test_actor_id)

        restored = lifecycle_service.reverse_disposal(
            tire.id, actor_id=test_actor_id, reason="Wrong tire scanned",
        )

        assert restored.status == TireStatus.USED_STORE
        assert restored.current_location == "MAIN_WAREHOUSE"
        assert restored.disposal_date is None
        assert restored.disposal_reason is None
        assert restored.disposal_method is None

        types = [m.movement_type for m in tire_selector.movement_history(tire.id)]
        assert types == [
            MovementType.PURCHASE_TO_STORE,
            MovementType.STORE_TO_DISPOSAL,
            MovementType.DISPOSAL_REVERSAL,
        ]

    def test_reversal_of_live_tire_refused(self, lifecycle_service, make_tire, test_actor_id):
        with pytest.raises(InvalidTireStateError):
            lifecycle_service.reverse_disposal(make_tire().id, actor_id=test_actor_id)


class TestMarkForRetread:

    def test_used_tires_queued(
        self, lifecycle_service, make_used_tire, make_tire, tire_selector, test_actor_id,
    ):
        used = make_used_tire()
        fresh = make_tire()

        result = lifecycle_service.mark_for_retread([used.id, fresh.id], actor_id=test_actor_id)

        assert [o.tire_id for o in result.succeeded] == [used.id]
        assert result.failed[0].tire_id == fresh.id
        assert result.failed[0].error_code == InvalidTireStateError.code

        queued = tire_selector.get_tire(used.id)
        assert queued.status == TireStatus.AWAITING_RETREAD
        last = tire_selector.movement_history(used.id)[-1]
        assert last.movement_type == MovementType.INTERNAL_TRANSFER
        assert last.from_location == last.to_location == "MAIN_WAREHOUSE"
        assert tire_selector.tires_in_status(TireStatus.AWAITING_RETREAD) == [queued]
