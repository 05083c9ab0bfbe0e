"""
Tests for the Assignment module: install, remove and the occupancy
invariant (one open assignment per position, one per tire).
"""

from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest
from hypothesis import HealthCheck, given, settings
from hypothesis import strategies as st
from sqlalchemy import func, select

from tire_kernel.domain.values import MovementType, ReferenceType, TireStatus
from tire_kernel.exceptions import (
    AssignmentNotFoundError,
    InvalidTireStateError,
    InvalidVehicleStateError,
    MissingActorError,
    PositionNotFoundError,
    PositionOccupiedError,
    TireNotFoundError,
    ValidationError,
    VehicleNotFoundError,
)
from tire_kernel.models.assignment import TireAssignment
from tire_kernel.models.movement import Movement


class TestInstall:

    def test_install_opens_assignment_and_moves_tire(
        self, assignment_service, make_tire, make_vehicle, tire_selector, test_actor_id,
    ):
        tire = make_tire()
        vehicle = make_vehicle("KAA-100A")

        result = assignment_service.install(
            tire.id, vehicle.id, "FL", actor_id=test_actor_id,
            install_date=date(2024, 1, 1), odometer=Decimal("12000"),
        )

        assert result.assignment.is_open
        assert result.assignment.install_odometer == Decimal("12000")
        assert result.tire.status == TireStatus.ON_VEHICLE
        assert result.tire.current_location == "Vehicle-KAA-100A"
        assert result.replaced_tire is False

        history = tire_selector.movement_history(tire.id)
        assert [m.movement_type for m in history] == [
            MovementType.PURCHASE_TO_STORE,
            MovementType.STORE_TO_VEHICLE,
        ]
        install_move = history[-1]
        assert install_move.from_location == "MAIN_WAREHOUSE"
        assert install_move.to_location == "Vehicle-KAA-100A"
        assert install_move.reference_type == ReferenceType.ASSIGNMENT
        assert install_move.reference_id == result.assignment.id
        assert install_move.vehicle_id == vehicle.id
        assert install_move.actor_id == test_actor_id

    def test_install_at_occupied_position_supersedes_occupant(
        self, assignment_service, make_tire, make_vehicle, tire_selector, test_actor_id,
    ):
        tire_a = make_tire()
        tire_b = make_tire()
        vehicle = make_vehicle()
        first = assignment_service.install(
            tire_b.id, vehicle.id, "FL", actor_id=test_actor_id, install_date=date(2024, 1, 1),
        )

        second = assignment_service.install(
            tire_a.id, vehicle.id, "FL", actor_id=test_actor_id,
            install_date=date(2024, 2, 1), reason="Puncture swap",
        )

        assert second.superseded.id == first.assignment.id
        assert second.superseded.removal_date == date(2024, 2, 1)
        assert second.superseded.removal_reason == "Puncture swap"
        assert second.superseded_tire.status == TireStatus.USED_STORE
        assert second.tire.status == TireStatus.ON_VEHICLE
        assert tire_selector.get_tire(tire_b.id).status == TireStatus.USED_STORE
        assert tire_selector.get_tire(tire_b.id).current_location == "MAIN_WAREHOUSE"

        occupancy = {o.position.code: o for o in tire_selector.vehicle_occupancy(vehicle.id)}
        assert occupancy["FL"].tire_id == tire_a.id
        assert [a.id for a in tire_selector.position_history(vehicle.id, "FL")] == [
            first.assignment.id, second.assignment.id,
        ]

    def test_implicit_removal_default_reason(
        self, assignment_service, make_tire, make_vehicle, test_actor_id,
    ):
        vehicle = make_vehicle()
        assignment_service.install(make_tire().id, vehicle.id, "FR", actor_id=test_actor_id)
        result = assignment_service.install(make_tire().id, vehicle.id, "FR", actor_id=test_actor_id)
        assert result.superseded.removal_reason == "Replaced"

    def test_install_before_occupant_install_date_is_conflict(
        self, session, assignment_service, make_tire, make_vehicle, test_actor_id,
    ):
        vehicle = make_vehicle()
        occupant = make_tire()
        assignment_service.install(
            occupant.id, vehicle.id, "FL", actor_id=test_actor_id, install_date=date(2024, 3, 1),
        )
        newcomer = make_tire()

        with pytest.raises(PositionOccupiedError):
            assignment_service.install(
                newcomer.id, vehicle.id, "FL", actor_id=test_actor_id,
                install_date=date(2024, 2, 1),
            )

        open_count = session.execute(
            select(func.count()).select_from(TireAssignment).where(
                TireAssignment.vehicle_id == vehicle.id,
                TireAssignment.removal_date.is_(None),
            )
        ).scalar_one()
        assert open_count == 1

    def test_install_of_mounted_tire_is_invalid_state(
        self, assignment_service, make_tire, make_vehicle, test_actor_id,
    ):
        tire = make_tire()
        vehicle = make_vehicle()
        assignment_service.install(tire.id, vehicle.id, "FL", actor_id=test_actor_id)

        with pytest.raises(InvalidTireStateError) as exc_info:
            assignment_service.install(tire.id, vehicle.id, "FR", actor_id=test_actor_id)
        assert exc_info.value.current_status == TireStatus.ON_VEHICLE.value

    def test_install_of_used_tire_is_invalid_state(
        self, assignment_service, make_used_tire, make_vehicle, test_actor_id,
    ):
        tire = make_used_tire()
        with pytest.raises(InvalidTireStateError):
            assignment_service.install(tire.id, make_vehicle().id, "FL", actor_id=test_actor_id)

    def test_unknown_position(self, assignment_service, make_tire, make_vehicle, test_actor_id):
        with pytest.raises(PositionNotFoundError):
            assignment_service.install(
                make_tire().id, make_vehicle().id, "R2LO", actor_id=test_actor_id,
            )

    def test_unknown_vehicle(self, assignment_service, make_tire, test_actor_id):
        with pytest.raises(VehicleNotFoundError):
            assignment_service.install(make_tire().id, uuid4(), "FL", actor_id=test_actor_id)

    def test_unknown_tire(self, assignment_service, make_vehicle, test_actor_id):
        with pytest.raises(TireNotFoundError):
            assignment_service.install(uuid4(), make_vehicle().id, "FL", actor_id=test_actor_id)

    def test_retired_vehicle_refused(
        self, assignment_service, fleet_service, make_tire, make_vehicle, test_actor_id,
    ):
        vehicle = make_vehicle()
        fleet_service.retire_vehicle(vehicle.id, actor_id=test_actor_id)
        with pytest.raises(InvalidVehicleStateError):
            assignment_service.install(make_tire().id, vehicle.id, "FL", actor_id=test_actor_id)

    def test_missing_actor_rejected_before_any_write(
        self, session, assignment_service, make_tire, make_vehicle,
    ):
        tire = make_tire()
        vehicle = make_vehicle()
        with pytest.raises(MissingActorError):
            assignment_service.install(tire.id, vehicle.id, "FL", actor_id=None)
        moves = session.execute(
            select(func.count()).select_from(Movement).where(Movement.tire_id == tire.id)
        ).scalar_one()
        assert moves == 1

    def test_failed_install_leaves_no_trace(
        self, assignment_service, make_tire, make_vehicle, tire_selector, test_actor_id,
    ):
        tire = make_tire()
        with pytest.raises(PositionNotFoundError):
            assignment_service.install(tire.id, make_vehicle().id, "ZZ", actor_id=test_actor_id)
        assert tire_selector.get_tire(tire.id).status == TireStatus.IN_STORE
        assert tire_selector.current_assignment(tire.id) is None

    def test_install_logged(
        self, captured_logs, assignment_service, make_tire, make_vehicle, test_actor_id,
    ):
        tire = make_tire()
        assignment_service.install(tire.id, make_vehicle().id, "FL", actor_id=test_actor_id)
        events = [r for r in captured_logs() if r["message"] == "tire_installed"]
        assert len(events) == 1
        assert events[0]["tire_id"] == str(tire.id)
        assert events[0]["position_code"] == "FL"


class TestRemove:

    def test_remove_closes_assignment(
        self, assignment_service, make_tire, make_vehicle, tire_selector, test_actor_id,
    ):
        tire = make_tire()
        installed = assignment_service.install(
            tire.id, make_vehicle().id, "FL", actor_id=test_actor_id, install_date=date(2024, 1, 1),
        )

        result = assignment_service.remove(
            installed.assignment.id, actor_id=test_actor_id,
            removal_date=date(2024, 5, 1), odometer=Decimal("55000"), reason="Worn",
        )

        assert not result.assignment.is_open
        assert result.assignment.removal_odometer == Decimal("55000")
        assert result.tire.status == TireStatus.USED_STORE
        assert result.tire.current_location == "MAIN_WAREHOUSE"
        assert tire_selector.current_assignment(tire.id) is None
        last = tire_selector.movement_history(tire.id)[-1]
        assert last.movement_type == MovementType.VEHICLE_TO_STORE
        assert last.notes == "Worn"

    def test_remove_back_to_in_store(
        self, assignment_service, make_tire, make_vehicle, test_actor_id,
    ):
        installed = assignment_service.install(
            make_tire().id, make_vehicle().id, "FL", actor_id=test_actor_id,
        )
        result = assignment_service.remove(
            installed.assignment.id, actor_id=test_actor_id,
            reason="Mounted on wrong vehicle", next_status=TireStatus.IN_STORE,
        )
        assert result.tire.status == TireStatus.IN_STORE

    def test_remove_to_non_store_status_rejected(
        self, assignment_service, make_tire, make_vehicle, test_actor_id,
    ):
        installed = assignment_service.install(
            make_tire().id, make_vehicle().id, "FL", actor_id=test_actor_id,
        )
        with pytest.raises(ValidationError):
            assignment_service.remove(
                installed.assignment.id, actor_id=test_actor_id,
                next_status=TireStatus.DISPOSED,
            )

    def test_remove_twice_is_not_found(
        self, assignment_service, make_tire, make_vehicle, test_actor_id,
    ):
        installed = assignment_service.install(
            make_tire().id, make_vehicle().id, "FL", actor_id=test_actor_id,
        )
        assignment_service.remove(installed.assignment.id, actor_id=test_actor_id)
        with pytest.raises(AssignmentNotFoundError):
            assignment_service.remove(installed.assignment.id, actor_id=test_actor_id)

    def test_remove_unknown_assignment(self, assignment_service, test_actor_id):
        with pytest.raises(AssignmentNotFoundError):
            assignment_service.remove(uuid4(), actor_id=test_actor_id)

    def test_removal_before_install_rejected(
        self, assignment_service, make_tire, make_vehicle, test_actor_id,
    ):
        installed = assignment_service.install(
            make_tire().id, make_vehicle().id, "FL", actor_id=test_actor_id,
            install_date=date(2024, 1, 10),
        )
        with pytest.raises(ValidationError):
            assignment_service.remove(
                installed.assignment.id, actor_id=test_actor_id, removal_date=date(2024, 1, 9),
            )

    def test_position_reusable_after_removal(
        self, assignment_service, make_tire, make_vehicle, test_actor_id,
    ):
        vehicle = make_vehicle()
        installed = assignment_service.install(make_tire().id, vehicle.id, "R1L", actor_id=test_actor_id)
        assignment_service.remove(installed.assignment.id, actor_id=test_actor_id)
        again = assignment_service.install(make_tire().id, vehicle.id, "R1L", actor_id=test_actor_id)
        assert again.superseded is None


class TestOccupancyProperty:

    @settings(
        max_examples=15,
        deadline=None,
        suppress_health_check=[HealthCheck.function_scoped_fixture],
    )
    @given(st.lists(st.sampled_from(["FL", "FR", "R1L", "R1R"]), min_size=1, max_size=8))
    def test_at_most_one_open_assignment_per_position_and_tire(
        self, session, assignment_service, make_tire, make_vehicle, test_actor_id, codes,
    ):
        vehicle = make_vehicle()
        for code in codes:
            assignment_service.install(make_tire().id, vehicle.id, code, actor_id=test_actor_id)

        open_rows = session.execute(
            select(TireAssignment).where(
                TireAssignment.vehicle_id == vehicle.id,
                TireAssignment.removal_date.is_(None),
            )
        ).scalars().all()
        positions = [a.position_id for a in open_rows]
        tires = [a.tire_id for a in open_rows]
        assert len(positions) == len(set(positions)) == len(set(codes))
        assert len(tires) == len(set(tires))

        total = session.execute(
            select(func.count()).select_from(TireAssignment).where(
                TireAssignment.vehicle_id == vehicle.id,
            )
        ).scalar_one()
        assert total == len(codes)
