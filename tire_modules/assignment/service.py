"""
Assignment Module Service (``tire_modules.assignment.service``).

Responsibility
--------------
Installs tires on wheel positions and removes them, keeping the
occupancy invariant: at most one open assignment per (vehicle, position)
and at most one open assignment per tire.

Architecture position
---------------------
**Modules layer** -- transaction-owning orchestration over the kernel
``PositionRegistry`` and the lifecycle ``TireCustody``.

Invariants enforced
-------------------
* Installing at an occupied position closes the occupant's assignment
  (removal date = install date, same reason) and returns the occupant to
  USED_STORE in the same transaction that opens the new assignment.
* Every install writes one STORE_TO_VEHICLE movement; every removal,
  explicit or implicit, one VEHICLE_TO_STORE movement.
* Tire rows involved in one call are locked in id order.
* The partial unique indexes on ``tire_assignments`` back both
  occupancy rules in storage.

Failure modes
-------------
* ``VehicleNotFoundError`` / ``PositionNotFoundError`` / ``TireNotFoundError``.
* ``InvalidVehicleStateError`` -- vehicle retired.
* ``InvalidTireStateError`` -- tire not IN_STORE.
* ``TireAlreadyAssignedError`` -- tire still holds an open assignment.
* ``PositionOccupiedError`` -- occupant cannot be closed at that date.
* ``AssignmentNotFoundError`` -- removal of a missing or closed assignment.

Usage::

    assignments = AssignmentService(session, clock)
    result = assignments.install(tire.id, truck.id, "FL", actor_id=actor_id)
    assignments.remove(result.assignment.id, actor_id=actor_id, odometer=Decimal("81200"))
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from tire_config import TireLedgerConfig
from tire_kernel.db.engine import transaction
from tire_kernel.domain.clock import Clock, SystemClock
from tire_kernel.domain.dtos import AssignmentInfo
from tire_kernel.domain.values import ReferenceType, TireStatus
from tire_kernel.exceptions import (
    AssignmentNotFoundError,
    PositionOccupiedError,
    TireAlreadyAssignedError,
    ValidationError,
)
from tire_kernel.logging_config import LogContext, get_logger
from tire_kernel.models.assignment import TireAssignment
from tire_kernel.models.tire import Tire
from tire_kernel.services.base import load_for_update
from tire_kernel.services.position_registry import PositionRegistry
from tire_modules._helpers import resolve_actor, resolve_config
from tire_modules.assignment.models import InstallResult, RemovalResult
from tire_modules.lifecycle.custody import TireCustody
from tire_modules.lifecycle.workflows import INSTALL, REMOVE

logger = get_logger("modules.assignment.service")

REMOVAL_STATUSES = frozenset({TireStatus.USED_STORE, TireStatus.IN_STORE})


class AssignmentService:
    """Install and remove tires on vehicle wheel positions."""

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        config: TireLedgerConfig | None = None,
    ):
        self._session = session
        self._clock = clock or SystemClock()
        self._config = resolve_config(config)
        self._positions = PositionRegistry(session)
        self._custody = TireCustody(session, self._clock)

    # =========================================================================
    # Install
    # =========================================================================

    def install(
        self,
        tire_id: UUID,
        vehicle_id: UUID,
        position_code: str,
        actor_id: UUID | None,
        install_date: date | None = None,
        odometer: Decimal | None = None,
        reason: str | None = None,
    ) -> InstallResult:
        """
        Mount an IN_STORE tire at ``position_code`` on ``vehicle_id``.

        If another tire occupies the position, its assignment is closed
        first with the same date, odometer and reason, and that tire goes
        back to the warehouse as USED_STORE.
        """
        actor = resolve_actor(actor_id, "install", self._config)
        install_date = install_date or self._clock.today()

        with LogContext.bind(
            operation="install", actor_id=actor, tire_id=tire_id, vehicle_id=vehicle_id
        ):
            with transaction(self._session, "install"):
                vehicle = self._positions.get_vehicle(vehicle_id, for_update=True)
                self._positions.require_active(vehicle, "install")
                position = self._positions.resolve_position(vehicle_id, position_code)

                occupant = self._open_at_position(vehicle_id, position.id)
                ids = [tire_id] if occupant is None else [tire_id, occupant.tire_id]
                tires = self._custody.lock_many(ids)
                tire = tires[tire_id]
                self._custody.check(tire, INSTALL)

                held = self._open_for_tire(tire.id)
                if held is not None:
                    raise TireAlreadyAssignedError(str(tire.id), str(held.id))

                superseded: AssignmentInfo | None = None
                superseded_tire = None
                if occupant is not None:
                    if install_date < occupant.install_date:
                        raise PositionOccupiedError(
                            str(vehicle_id),
                            position_code,
                            f"occupied since {occupant.install_date}, "
                            f"after install date {install_date}",
                        )
                    prior = tires[occupant.tire_id]
                    self._close(
                        occupant, prior, install_date, odometer,
                        reason or "Replaced", actor, TireStatus.USED_STORE,
                    )
                    superseded = occupant.to_dto()
                    superseded_tire = prior.to_dto()

                assignment = TireAssignment(
                    tire_id=tire.id,
                    vehicle_id=vehicle_id,
                    position_id=position.id,
                    install_date=install_date,
                    install_odometer=odometer,
                    install_reason=reason,
                    created_by_id=actor,
                )
                self._session.add(assignment)
                self._session.flush()

                self._custody.move(
                    tire,
                    INSTALL,
                    actor_id=actor,
                    to_location=self._config.locations.vehicle(vehicle.vehicle_number),
                    reference_type=ReferenceType.ASSIGNMENT,
                    reference_id=assignment.id,
                    vehicle_id=vehicle_id,
                    notes=f"Installed at {position_code}",
                )
                result = InstallResult(
                    assignment=assignment.to_dto(),
                    tire=tire.to_dto(),
                    superseded=superseded,
                    superseded_tire=superseded_tire,
                )

        logger.info(
            "tire_installed",
            extra={
                "tire_id": str(tire_id),
                "vehicle_id": str(vehicle_id),
                "position_code": position_code,
                "assignment_id": str(result.assignment.id),
                "superseded_assignment_id": (
                    str(result.superseded.id) if result.superseded else None
                ),
            },
        )
        return result

    # =========================================================================
    # Remove
    # =========================================================================

    def remove(
        self,
        assignment_id: UUID,
        actor_id: UUID | None,
        removal_date: date | None = None,
        odometer: Decimal | None = None,
        reason: str | None = None,
        next_status: TireStatus = TireStatus.USED_STORE,
    ) -> RemovalResult:
        """
        Close an open assignment and return its tire to the warehouse.

        Args:
            next_status: USED_STORE (default) or IN_STORE.

        Raises:
            ValidationError: next_status not a store status, removal date
                before install date.
            AssignmentNotFoundError: missing or already closed.
        """
        actor = resolve_actor(actor_id, "remove", self._config)
        try:
            next_status = TireStatus(next_status)
        except ValueError:
            raise ValidationError("next_status", f"unknown status '{next_status}'") from None
        if next_status not in REMOVAL_STATUSES:
            raise ValidationError(
                "next_status", f"{next_status.value} is not a store status"
            )
        removal_date = removal_date or self._clock.today()

        with LogContext.bind(operation="remove", actor_id=actor):
            with transaction(self._session, "remove"):
                assignment = load_for_update(self._session, TireAssignment, assignment_id)
                if assignment is None:
                    raise AssignmentNotFoundError(str(assignment_id))
                if not assignment.is_open:
                    raise AssignmentNotFoundError(str(assignment_id), "already closed")
                if removal_date < assignment.install_date:
                    raise ValidationError(
                        "removal_date",
                        f"{removal_date} is before install date {assignment.install_date}",
                    )

                tire = self._custody.lock(assignment.tire_id)
                self._close(
                    assignment, tire, removal_date, odometer, reason, actor, next_status
                )
                result = RemovalResult(assignment=assignment.to_dto(), tire=tire.to_dto())

        logger.info(
            "tire_removed",
            extra={
                "tire_id": str(result.tire.id),
                "assignment_id": str(assignment_id),
                "next_status": next_status.value,
            },
        )
        return result

    def get_assignment(self, assignment_id: UUID) -> AssignmentInfo:
        assignment = self._session.get(TireAssignment, assignment_id)
        if assignment is None:
            raise AssignmentNotFoundError(str(assignment_id))
        return assignment.to_dto()

    # =========================================================================
    # Internals
    # =========================================================================

    def _close(
        self,
        assignment: TireAssignment,
        tire: Tire,
        removal_date: date,
        odometer: Decimal | None,
        reason: str | None,
        actor: UUID,
        next_status: TireStatus,
    ) -> None:
        self._custody.check(tire, REMOVE, next_status)
        assignment.close(removal_date, odometer, reason, actor)
        self._session.flush()
        self._custody.move(
            tire,
            REMOVE,
            actor_id=actor,
            to_location=self._config.locations.warehouse,
            to_state=next_status,
            reference_type=ReferenceType.ASSIGNMENT,
            reference_id=assignment.id,
            vehicle_id=assignment.vehicle_id,
            notes=reason,
        )

    def _open_at_position(self, vehicle_id: UUID, position_id: UUID) -> TireAssignment | None:
        stmt = (
            select(TireAssignment)
            .where(
                TireAssignment.vehicle_id == vehicle_id,
                TireAssignment.position_id == position_id,
                TireAssignment.removal_date.is_(None),
            )
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        return self._session.execute(stmt).scalar_one_or_none()

    def _open_for_tire(self, tire_id: UUID) -> TireAssignment | None:
        stmt = select(TireAssignment).where(
            TireAssignment.tire_id == tire_id,
            TireAssignment.removal_date.is_(None),
        )
        return self._session.execute(stmt).scalar_one_or_none()
