"""
Module: tire_kernel.models.tire
Responsibility: ORM persistence for serialized tires, the central asset of
    the ledger.
Architecture position: Kernel > Models.  Imports db/base.py and
    domain value types only.

Invariants enforced:
    - serial_number is globally unique (uq_tire_serial).
    - status is one of TireStatus; transitions are validated by the
      lifecycle workflow before the row is touched.
    - ``version`` is the mapper's version_id_col: an UPDATE issued from a
      stale copy matches zero rows and aborts with StaleDataError, which
      the transaction boundary reports as OptimisticLockError.
    - Tires are never deleted (db/immutability.py); disposal is a status.

Audit relevance:
    The row holds only current state.  Every change of status or location
    is mirrored by a Movement row, which is the historical record.
"""

from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import Date, ForeignKey, Index, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from tire_kernel.db.base import TrackedBase
from tire_kernel.domain.dtos import TireInfo
from tire_kernel.domain.values import DisposalMethod, TireCategory, TireStatus


class Tire(TrackedBase):
    """A single serialized tire and its current custody state."""

    __tablename__ = "tires"

    __table_args__ = (
        UniqueConstraint("serial_number", name="uq_tire_serial"),
        Index("idx_tire_status", "status"),
        Index("idx_tire_supplier", "supplier_id"),
        Index("idx_tire_size", "size"),
    )

    serial_number: Mapped[str] = mapped_column(String(100), nullable=False)
    size: Mapped[str] = mapped_column(String(50), nullable=False)
    brand: Mapped[str] = mapped_column(String(100), nullable=False)
    model: Mapped[str | None] = mapped_column(String(100), nullable=True)
    category: Mapped[str] = mapped_column(
        String(20), nullable=False, default=TireCategory.NEW.value
    )
    status: Mapped[str] = mapped_column(
        String(30), nullable=False, default=TireStatus.IN_STORE.value
    )
    acquisition_cost: Mapped[Decimal | None] = mapped_column(nullable=True)
    supplier_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("suppliers.id"), nullable=True
    )
    acquisition_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    current_location: Mapped[str] = mapped_column(String(100), nullable=False)
    retread_count: Mapped[int] = mapped_column(nullable=False, default=0)

    disposal_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    disposal_reason: Mapped[str | None] = mapped_column(String(255), nullable=True)
    disposal_method: Mapped[str | None] = mapped_column(String(30), nullable=True)
    disposal_authorized_by: Mapped[UUID | None] = mapped_column(nullable=True)
    disposal_notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Intake provenance; intake tables live in tire_modules, so no FK.
    purchase_order_line_id: Mapped[UUID | None] = mapped_column(nullable=True)
    grn_id: Mapped[UUID | None] = mapped_column(nullable=True)
    grn_item_id: Mapped[UUID | None] = mapped_column(nullable=True)

    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    version: Mapped[int] = mapped_column(nullable=False)

    __mapper_args__ = {"version_id_col": version}

    def clear_disposal(self) -> None:
        self.disposal_date = None
        self.disposal_reason = None
        self.disposal_method = None
        self.disposal_authorized_by = None
        self.disposal_notes = None

    def to_dto(self) -> TireInfo:
        return TireInfo(
            id=self.id,
            serial_number=self.serial_number,
            size=self.size,
            brand=self.brand,
            model=self.model,
            category=TireCategory(self.category),
            status=TireStatus(self.status),
            acquisition_cost=self.acquisition_cost,
            supplier_id=self.supplier_id,
            acquisition_date=self.acquisition_date,
            current_location=self.current_location,
            retread_count=self.retread_count,
            disposal_date=self.disposal_date,
            disposal_reason=self.disposal_reason,
            disposal_method=(
                DisposalMethod(self.disposal_method) if self.disposal_method else None
            ),
            disposal_authorized_by=self.disposal_authorized_by,
            disposal_notes=self.disposal_notes,
            purchase_order_line_id=self.purchase_order_line_id,
            grn_id=self.grn_id,
            grn_item_id=self.grn_item_id,
        )

    def __repr__(self) -> str:
        return f"<Tire {self.serial_number} [{self.status}] @ {self.current_location}>"
