"""
Module: tire_kernel.models.movement
Responsibility: ORM persistence for the Movement Log -- the append-only
    record of every change of a tire's location or custody status.
Architecture position: Kernel > Models.  Written only through
    services/movement_log.py.

Invariants enforced:
    - Rows are immutable from creation: no UPDATE, no DELETE
      (db/immutability.py).
    - (tire_id, sequence_no) is unique; sequence_no is the tire's
      1-based movement ordinal, so two writers appending to the same
      tire cannot both succeed.
    - actor_id is required.

Audit relevance:
    The sole source of historical truth for a tire.  Current tire state
    must always equal the to-side of the tire's latest movement.
"""

from datetime import datetime
from uuid import UUID

from sqlalchemy import ForeignKey, Index, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from tire_kernel.db.base import Base
from tire_kernel.domain.dtos import MovementInfo
from tire_kernel.domain.values import MovementType, ReferenceType


class Movement(Base):

    __tablename__ = "tire_movements"

    __table_args__ = (
        UniqueConstraint("tire_id", "sequence_no", name="uq_movement_tire_sequence"),
        Index("idx_movement_type", "movement_type"),
        Index("idx_movement_moved_at", "moved_at"),
        Index("idx_movement_reference", "reference_type", "reference_id"),
    )

    tire_id: Mapped[UUID] = mapped_column(ForeignKey("tires.id"), nullable=False)
    sequence_no: Mapped[int] = mapped_column(nullable=False)
    movement_type: Mapped[str] = mapped_column(String(40), nullable=False)
    from_location: Mapped[str] = mapped_column(String(100), nullable=False)
    to_location: Mapped[str] = mapped_column(String(100), nullable=False)
    reference_type: Mapped[str | None] = mapped_column(String(30), nullable=True)
    reference_id: Mapped[UUID | None] = mapped_column(nullable=True)
    vehicle_id: Mapped[UUID | None] = mapped_column(nullable=True)
    supplier_id: Mapped[UUID | None] = mapped_column(nullable=True)
    actor_id: Mapped[UUID] = mapped_column(nullable=False)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    moved_at: Mapped[datetime] = mapped_column(nullable=False)

    def to_dto(self) -> MovementInfo:
        return MovementInfo(
            id=self.id,
            tire_id=self.tire_id,
            sequence_no=self.sequence_no,
            movement_type=MovementType(self.movement_type),
            from_location=self.from_location,
            to_location=self.to_location,
            actor_id=self.actor_id,
            moved_at=self.moved_at,
            reference_type=ReferenceType(self.reference_type) if self.reference_type else None,
            reference_id=self.reference_id,
            vehicle_id=self.vehicle_id,
            supplier_id=self.supplier_id,
            notes=self.notes,
        )

    def __repr__(self) -> str:
        return (
            f"<Movement #{self.sequence_no} {self.movement_type} "
            f"{self.from_location} -> {self.to_location}>"
        )
