"""
The Movement Log as a complete custody trail.

Replaying a tire's movements must reproduce its current location, every
movement must chain from the previous one's destination, and sequence
numbers must run 1..n without gaps.
"""

from datetime import date
from decimal import Decimal

from tire_kernel.domain.values import MovementType, TireStatus
from tire_modules.lifecycle.workflows import TIRE_LIFECYCLE_WORKFLOW
from tire_modules.retread import RetreadOutcome, RetreadResult

DECLARED_MOVEMENT_TYPES = {
    t.movement_type for t in TIRE_LIFECYCLE_WORKFLOW.transitions if t.movement_type
} | {MovementType.PURCHASE_TO_STORE.value}


def assert_trail_consistent(tire_selector, tire_id):
    tire = tire_selector.get_tire(tire_id)
    history = tire_selector.movement_history(tire_id)

    assert [m.sequence_no for m in history] == list(range(1, len(history) + 1))
    assert history[0].movement_type == MovementType.PURCHASE_TO_STORE
    for previous, current in zip(history, history[1:]):
        assert current.from_location == previous.to_location
    assert history[-1].to_location == tire.current_location
    for movement in history:
        assert movement.movement_type.value in DECLARED_MOVEMENT_TYPES
    return tire, history


class TestMovementTrail:

    def test_full_life_of_a_tire(
        self, assignment_service, retread_service, lifecycle_service, make_tire,
        make_vehicle, make_retread_supplier, tire_selector, test_actor_id,
    ):
        tire = make_tire()
        vehicle = make_vehicle("KDA-500B")
        supplier = make_retread_supplier(code="RT77")

        installed = assignment_service.install(
            tire.id, vehicle.id, "R1L", actor_id=test_actor_id,
            install_date=date(2023, 1, 10), odometer=Decimal("1000"),
        )
        assignment_service.remove(
            installed.assignment.id, actor_id=test_actor_id,
            removal_date=date(2023, 9, 1), odometer=Decimal("81000"), reason="Tread low",
        )
        order = retread_service.create_order(supplier.id, [tire.id], actor_id=test_actor_id)
        retread_service.send(order.id, actor_id=test_actor_id)
        retread_service.receive(
            order.id, [RetreadResult(tire.id, RetreadOutcome.RECEIVED)], actor_id=test_actor_id,
        )
        lifecycle_service.dispose(tire.id, "Second casing failure", actor_id=test_actor_id)
        lifecycle_service.reverse_disposal(tire.id, actor_id=test_actor_id)

        current, history = assert_trail_consistent(tire_selector, tire.id)
        assert current.status == TireStatus.USED_STORE
        assert current.retread_count == 1
        assert [m.movement_type for m in history] == [
            MovementType.PURCHASE_TO_STORE,
            MovementType.STORE_TO_VEHICLE,
            MovementType.VEHICLE_TO_STORE,
            MovementType.STORE_TO_RETREAD_SUPPLIER,
            MovementType.RETREAD_SUPPLIER_TO_STORE,
            MovementType.STORE_TO_DISPOSAL,
            MovementType.DISPOSAL_REVERSAL,
        ]
        assert [m.to_location for m in history] == [
            "MAIN_WAREHOUSE",
            "Vehicle-KDA-500B",
            "MAIN_WAREHOUSE",
            "RETREAD:RT77",
            "MAIN_WAREHOUSE",
            "DISPOSAL",
            "MAIN_WAREHOUSE",
        ]

    def test_superseded_tire_trail(
        self, assignment_service, make_tire, make_vehicle, tire_selector, test_actor_id,
    ):
        vehicle = make_vehicle()
        first = make_tire()
        second = make_tire()
        assignment_service.install(first.id, vehicle.id, "FR", actor_id=test_actor_id)
        assignment_service.install(second.id, vehicle.id, "FR", actor_id=test_actor_id)

        superseded, history = assert_trail_consistent(tire_selector, first.id)
        assert superseded.status == TireStatus.USED_STORE
        assert history[-1].movement_type == MovementType.VEHICLE_TO_STORE
        assert history[-1].vehicle_id == vehicle.id
        assert_trail_consistent(tire_selector, second.id)

    def test_every_actor_recorded(
        self, assignment_service, make_tire, make_vehicle, tire_selector, test_actor_id,
    ):
        tire = make_tire()
        assignment_service.install(tire.id, make_vehicle().id, "FL", actor_id=test_actor_id)
        assert {m.actor_id for m in tire_selector.movement_history(tire.id)} == {test_actor_id}
