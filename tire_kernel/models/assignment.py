"""
Module: tire_kernel.models.assignment
Responsibility: ORM persistence for tire assignments -- the half-open
    interval [install_date, removal_date) during which one tire occupies
    one wheel position.
Architecture position: Kernel > Models.

Invariants enforced:
    - At most one open row (removal_date IS NULL) per (vehicle, position):
      partial unique index uq_assignment_open_position.
    - At most one open row per tire: partial unique index
      uq_assignment_open_tire.
    - Rows are never deleted; a closed row is never modified again
      (db/immutability.py).

Failure modes:
    - IntegrityError from either partial index when a concurrent writer
      slipped past the service-level check; surfaced as
      ConstraintViolationError by the transaction boundary.
"""

from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import Date, ForeignKey, Index, String, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from tire_kernel.db.base import TrackedBase
from tire_kernel.domain.dtos import AssignmentInfo

_OPEN = text("removal_date IS NULL")


class TireAssignment(TrackedBase):

    __tablename__ = "tire_assignments"

    __table_args__ = (
        Index(
            "uq_assignment_open_position",
            "vehicle_id",
            "position_id",
            unique=True,
            postgresql_where=_OPEN,
            sqlite_where=_OPEN,
        ),
        Index(
            "uq_assignment_open_tire",
            "tire_id",
            unique=True,
            postgresql_where=_OPEN,
            sqlite_where=_OPEN,
        ),
        Index("idx_assignment_tire", "tire_id", "install_date"),
        Index("idx_assignment_position", "position_id", "install_date"),
    )

    tire_id: Mapped[UUID] = mapped_column(ForeignKey("tires.id"), nullable=False)
    vehicle_id: Mapped[UUID] = mapped_column(ForeignKey("vehicles.id"), nullable=False)
    position_id: Mapped[UUID] = mapped_column(
        ForeignKey("wheel_positions.id"), nullable=False
    )
    install_date: Mapped[date] = mapped_column(Date, nullable=False)
    install_odometer: Mapped[Decimal | None] = mapped_column(nullable=True)
    install_reason: Mapped[str | None] = mapped_column(String(255), nullable=True)
    removal_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    removal_odometer: Mapped[Decimal | None] = mapped_column(nullable=True)
    removal_reason: Mapped[str | None] = mapped_column(String(255), nullable=True)

    position = relationship("WheelPosition")

    @property
    def is_open(self) -> bool:
        return self.removal_date is None

    def close(
        self,
        removal_date: date,
        odometer: Decimal | None,
        reason: str | None,
        actor_id: UUID,
    ) -> None:
        self.removal_date = removal_date
        self.removal_odometer = odometer
        self.removal_reason = reason
        self.updated_by_id = actor_id

    def to_dto(self) -> AssignmentInfo:
        return AssignmentInfo(
            id=self.id,
            tire_id=self.tire_id,
            vehicle_id=self.vehicle_id,
            position_id=self.position_id,
            install_date=self.install_date,
            install_odometer=self.install_odometer,
            install_reason=self.install_reason,
            removal_date=self.removal_date,
            removal_odometer=self.removal_odometer,
            removal_reason=self.removal_reason,
        )

    def __repr__(self) -> str:
        state = "open" if self.is_open else f"closed {self.removal_date}"
        return f"<TireAssignment tire={self.tire_id} pos={self.position_id} {state}>"
