"""
MovementLog -- append-only writer for tire custody changes.

Responsibility:
    The only code path that inserts Movement rows.  Every lifecycle
    operation that changes a tire's status or location calls ``record``
    exactly once per tire, inside the operation's transaction.

Invariants enforced:
    - Movements are never updated or deleted (db/immutability.py).
    - Each tire's movements are numbered 1..n without gaps; the unique
      (tire_id, sequence_no) constraint turns a lost race between two
      writers into a constraint violation instead of a silent interleave.
    - Timestamps come from the injected Clock.
"""

from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from tire_kernel.domain.clock import Clock, SystemClock
from tire_kernel.domain.values import MovementType, ReferenceType
from tire_kernel.logging_config import get_logger
from tire_kernel.models.movement import Movement
from tire_kernel.services.base import BaseService

logger = get_logger("services.movement_log")


class MovementLog(BaseService[Movement]):

    def __init__(self, session: Session, clock: Clock | None = None):
        super().__init__(session)
        self._clock = clock or SystemClock()

    def _next_sequence(self, tire_id: UUID) -> int:
        current = self._session.execute(
            select(func.max(Movement.sequence_no)).where(Movement.tire_id == tire_id)
        ).scalar()
        return (current or 0) + 1

    def record(
        self,
        tire_id: UUID,
        movement_type: MovementType,
        from_location: str,
        to_location: str,
        actor_id: UUID,
        *,
        reference_type: ReferenceType | None = None,
        reference_id: UUID | None = None,
        vehicle_id: UUID | None = None,
        supplier_id: UUID | None = None,
        notes: str | None = None,
    ) -> Movement:
        """Append one movement for ``tire_id`` and flush it."""
        movement = Movement(
            tire_id=tire_id,
            sequence_no=self._next_sequence(tire_id),
            movement_type=MovementType(movement_type).value,
            from_location=from_location,
            to_location=to_location,
            reference_type=ReferenceType(reference_type).value if reference_type else None,
            reference_id=reference_id,
            vehicle_id=vehicle_id,
            supplier_id=supplier_id,
            actor_id=actor_id,
            notes=notes,
            moved_at=self._clock.now(),
        )
        self._session.add(movement)
        self._session.flush()

        logger.info(
            "movement_recorded",
            extra={
                "tire_id": str(tire_id),
                "movement_type": movement.movement_type,
                "from_location": from_location,
                "to_location": to_location,
                "sequence_no": movement.sequence_no,
                "reference_type": movement.reference_type,
            },
        )
        return movement
