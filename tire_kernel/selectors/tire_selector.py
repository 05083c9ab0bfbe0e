"""
Tire and fleet query selector.

Read-only access to tires, their movement history, and the occupancy of
vehicle wheel positions.

Key design decisions:
- Returns DTOs (frozen dataclasses), never ORM rows
- Uses the caller's Session; never creates its own
- Movement history is ordered by the per-tire sequence number, which is
  the order the movements were committed in
"""

from dataclasses import dataclass
from datetime import date
from uuid import UUID

from sqlalchemy import select

from tire_kernel.domain.dtos import (
    AssignmentInfo,
    MovementInfo,
    TireInfo,
    VehicleInfo,
    WheelPositionInfo,
)
from tire_kernel.domain.values import TireStatus
from tire_kernel.exceptions import TireNotFoundError, VehicleNotFoundError
from tire_kernel.models.assignment import TireAssignment
from tire_kernel.models.movement import Movement
from tire_kernel.models.tire import Tire
from tire_kernel.models.vehicle import Vehicle, WheelPosition
from tire_kernel.selectors.base import BaseSelector


@dataclass(frozen=True)
class PositionOccupancy:
    """One wheel slot and the tire currently mounted on it, if any."""

    position: WheelPositionInfo
    assignment_id: UUID | None = None
    tire_id: UUID | None = None
    serial_number: str | None = None
    install_date: date | None = None

    @property
    def is_occupied(self) -> bool:
        return self.assignment_id is not None


class TireSelector(BaseSelector[Tire]):

    def get_tire(self, tire_id: UUID) -> TireInfo:
        tire = self.session.get(Tire, tire_id)
        if tire is None:
            raise TireNotFoundError(str(tire_id))
        return tire.to_dto()

    def find_by_serial(self, serial_number: str) -> TireInfo | None:
        tire = self.session.execute(
            select(Tire).where(Tire.serial_number == serial_number)
        ).scalar_one_or_none()
        return tire.to_dto() if tire else None

    def tires_in_status(self, status: TireStatus) -> list[TireInfo]:
        stmt = (
            select(Tire)
            .where(Tire.status == TireStatus(status).value)
            .order_by(Tire.serial_number)
        )
        return [t.to_dto() for t in self.session.execute(stmt).scalars()]

    def movement_history(self, tire_id: UUID) -> list[MovementInfo]:
        """All movements of one tire, oldest first."""
        stmt = (
            select(Movement)
            .where(Movement.tire_id == tire_id)
            .order_by(Movement.sequence_no)
        )
        return [m.to_dto() for m in self.session.execute(stmt).scalars()]

    def current_assignment(self, tire_id: UUID) -> AssignmentInfo | None:
        row = self.session.execute(
            select(TireAssignment).where(
                TireAssignment.tire_id == tire_id,
                TireAssignment.removal_date.is_(None),
            )
        ).scalar_one_or_none()
        return row.to_dto() if row else None

    def assignment_history(self, tire_id: UUID) -> list[AssignmentInfo]:
        stmt = (
            select(TireAssignment)
            .where(TireAssignment.tire_id == tire_id)
            .order_by(TireAssignment.install_date, TireAssignment.created_at)
        )
        return [a.to_dto() for a in self.session.execute(stmt).scalars()]

    def position_history(self, vehicle_id: UUID, position_code: str) -> list[AssignmentInfo]:
        """Every assignment ever made at one slot, oldest first."""
        stmt = (
            select(TireAssignment)
            .join(WheelPosition, TireAssignment.position_id == WheelPosition.id)
            .where(
                TireAssignment.vehicle_id == vehicle_id,
                WheelPosition.position_code == position_code,
            )
            .order_by(TireAssignment.install_date, TireAssignment.created_at)
        )
        return [a.to_dto() for a in self.session.execute(stmt).scalars()]

    def get_vehicle(self, vehicle_id: UUID) -> VehicleInfo:
        vehicle = self.session.get(Vehicle, vehicle_id)
        if vehicle is None:
            raise VehicleNotFoundError(str(vehicle_id))
        return vehicle.to_dto()

    def vehicle_occupancy(self, vehicle_id: UUID) -> list[PositionOccupancy]:
        """Every slot of a vehicle in template order, with its mounted tire."""
        vehicle = self.session.get(Vehicle, vehicle_id)
        if vehicle is None:
            raise VehicleNotFoundError(str(vehicle_id))

        rows = self.session.execute(
            select(TireAssignment, Tire.serial_number)
            .join(Tire, TireAssignment.tire_id == Tire.id)
            .where(
                TireAssignment.vehicle_id == vehicle_id,
                TireAssignment.removal_date.is_(None),
            )
        ).all()
        mounted = {a.position_id: (a, serial) for a, serial in rows}

        result = []
        for position in vehicle.positions:
            hit = mounted.get(position.id)
            if hit is None:
                result.append(PositionOccupancy(position=position.to_dto()))
                continue
            assignment, serial = hit
            result.append(
                PositionOccupancy(
                    position=position.to_dto(),
                    assignment_id=assignment.id,
                    tire_id=assignment.tire_id,
                    serial_number=serial,
                    install_date=assignment.install_date,
                )
            )
        return result
