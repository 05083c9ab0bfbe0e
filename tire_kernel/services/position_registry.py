"""
PositionRegistry -- vehicles and their fixed wheel slots.

Responsibility:
    Materialises a vehicle's WheelPosition rows from the closed
    configuration registry in ``tire_kernel.domain.positions`` and
    answers the validity checks the Assignment Manager needs: does the
    vehicle exist, is it active, does the position code belong to it.

Invariants enforced:
    - Positions are generated exactly once, at vehicle registration.
    - An unknown configuration is rejected before the vehicle row exists.
    - A vehicle with mounted tires cannot be retired.
"""

from datetime import date
from uuid import UUID

from sqlalchemy import func, select

from tire_kernel.domain.positions import parse_configuration, slots_for
from tire_kernel.domain.values import VehicleStatus
from tire_kernel.exceptions import (
    InvalidVehicleStateError,
    PositionNotFoundError,
    ValidationError,
    VehicleHasMountedTiresError,
    VehicleNotFoundError,
)
from tire_kernel.logging_config import get_logger
from tire_kernel.models.assignment import TireAssignment
from tire_kernel.models.vehicle import Vehicle, WheelPosition
from tire_kernel.services.base import BaseService, load_for_update

logger = get_logger("services.position_registry")


class PositionRegistry(BaseService[Vehicle]):
    """Vehicle registration and wheel-position lookup (flush only)."""

    def create_vehicle(
        self,
        vehicle_number: str,
        configuration: str,
        actor_id: UUID,
        make: str | None = None,
        model: str | None = None,
        year: int | None = None,
    ) -> Vehicle:
        """
        Register a vehicle and generate its wheel positions.

        Raises:
            UnknownWheelConfigurationError: configuration not registered.
            ValidationError: blank or already-registered vehicle number.
        """
        config = parse_configuration(configuration)
        if not vehicle_number or not vehicle_number.strip():
            raise ValidationError("vehicle_number", "must not be blank")
        exists = self._session.execute(
            select(Vehicle.id).where(Vehicle.vehicle_number == vehicle_number)
        ).first()
        if exists is not None:
            raise ValidationError("vehicle_number", f"{vehicle_number} is already registered")

        vehicle = Vehicle(
            vehicle_number=vehicle_number,
            configuration=config.value,
            make=make,
            model=model,
            year=year,
            status=VehicleStatus.ACTIVE.value,
            created_by_id=actor_id,
        )
        self._session.add(vehicle)
        self._session.flush()

        for order, slot in enumerate(slots_for(config), start=1):
            self._session.add(
                WheelPosition(
                    vehicle_id=vehicle.id,
                    position_code=slot.code,
                    position_name=slot.name,
                    axle_number=slot.axle,
                    is_trailer=slot.is_trailer,
                    sort_order=order,
                    created_by_id=actor_id,
                )
            )
        self._session.flush()
        self._session.refresh(vehicle, attribute_names=["positions"])

        logger.info(
            "vehicle_registered",
            extra={
                "vehicle_id": str(vehicle.id),
                "vehicle_number": vehicle_number,
                "configuration": config.value,
                "position_count": len(vehicle.positions),
            },
        )
        return vehicle

    def get_vehicle(self, vehicle_id: UUID, for_update: bool = False) -> Vehicle:
        if for_update:
            vehicle = load_for_update(self._session, Vehicle, vehicle_id)
        else:
            vehicle = self._session.get(Vehicle, vehicle_id)
        if vehicle is None:
            raise VehicleNotFoundError(str(vehicle_id))
        return vehicle

    def resolve_position(self, vehicle_id: UUID, position_code: str) -> WheelPosition:
        """
        Find the slot ``position_code`` on ``vehicle_id``.

        Raises:
            PositionNotFoundError: the vehicle has no such slot.
        """
        position = self._session.execute(
            select(WheelPosition).where(
                WheelPosition.vehicle_id == vehicle_id,
                WheelPosition.position_code == position_code,
            )
        ).scalar_one_or_none()
        if position is None:
            raise PositionNotFoundError(str(vehicle_id), position_code)
        return position

    def require_active(self, vehicle: Vehicle, action: str) -> None:
        if vehicle.status != VehicleStatus.ACTIVE:
            raise InvalidVehicleStateError(str(vehicle.id), vehicle.status, action)

    def retire_vehicle(self, vehicle_id: UUID, actor_id: UUID, retired_on: date) -> Vehicle:
        """
        Mark a vehicle RETIRED.

        Raises:
            VehicleNotFoundError, InvalidVehicleStateError (already retired),
            VehicleHasMountedTiresError (open assignments remain).
        """
        vehicle = self.get_vehicle(vehicle_id, for_update=True)
        self.require_active(vehicle, "retire")
        mounted = self._session.execute(
            select(func.count(TireAssignment.id)).where(
                TireAssignment.vehicle_id == vehicle_id,
                TireAssignment.removal_date.is_(None),
            )
        ).scalar_one()
        if mounted:
            raise VehicleHasMountedTiresError(str(vehicle_id), mounted)

        vehicle.status = VehicleStatus.RETIRED.value
        vehicle.retired_date = retired_on
        vehicle.updated_by_id = actor_id
        self._session.flush()
        logger.info(
            "vehicle_retired",
            extra={"vehicle_id": str(vehicle_id), "retired_date": retired_on},
        )
        return vehicle
