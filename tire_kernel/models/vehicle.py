"""
Module: tire_kernel.models.vehicle
Responsibility: ORM persistence for vehicles and their wheel positions.
Architecture position: Kernel > Models.

Invariants enforced:
    - vehicle_number is unique (uq_vehicle_number).
    - (vehicle_id, position_code) is unique (uq_wheel_position_code).
    - WheelPosition rows are created once, from the vehicle's configuration
      template, and are never updated or deleted (db/immutability.py).
"""

from datetime import date
from uuid import UUID

from sqlalchemy import Boolean, Date, ForeignKey, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from tire_kernel.db.base import TrackedBase
from tire_kernel.domain.dtos import VehicleInfo, WheelPositionInfo
from tire_kernel.domain.values import VehicleStatus


class Vehicle(TrackedBase):

    __tablename__ = "vehicles"

    __table_args__ = (
        UniqueConstraint("vehicle_number", name="uq_vehicle_number"),
        Index("idx_vehicle_status", "status"),
    )

    vehicle_number: Mapped[str] = mapped_column(String(50), nullable=False)
    configuration: Mapped[str] = mapped_column(String(30), nullable=False)
    make: Mapped[str | None] = mapped_column(String(100), nullable=True)
    model: Mapped[str | None] = mapped_column(String(100), nullable=True)
    year: Mapped[int | None] = mapped_column(nullable=True)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=VehicleStatus.ACTIVE.value
    )
    retired_date: Mapped[date | None] = mapped_column(Date, nullable=True)

    positions: Mapped[list["WheelPosition"]] = relationship(
        "WheelPosition",
        back_populates="vehicle",
        order_by="WheelPosition.sort_order",
        lazy="selectin",
    )

    def to_dto(self) -> VehicleInfo:
        return VehicleInfo(
            id=self.id,
            vehicle_number=self.vehicle_number,
            configuration=self.configuration,
            make=self.make,
            model=self.model,
            year=self.year,
            status=VehicleStatus(self.status),
            positions=tuple(p.to_dto() for p in self.positions),
        )

    def __repr__(self) -> str:
        return f"<Vehicle {self.vehicle_number} {self.configuration} [{self.status}]>"


class WheelPosition(TrackedBase):
    """Immutable mounting slot on one vehicle."""

    __tablename__ = "wheel_positions"

    __table_args__ = (
        UniqueConstraint("vehicle_id", "position_code", name="uq_wheel_position_code"),
        Index("idx_wheel_position_vehicle", "vehicle_id"),
    )

    vehicle_id: Mapped[UUID] = mapped_column(ForeignKey("vehicles.id"), nullable=False)
    position_code: Mapped[str] = mapped_column(String(20), nullable=False)
    position_name: Mapped[str] = mapped_column(String(100), nullable=False)
    axle_number: Mapped[int] = mapped_column(nullable=False)
    is_trailer: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    sort_order: Mapped[int] = mapped_column(nullable=False)

    vehicle: Mapped["Vehicle"] = relationship("Vehicle", back_populates="positions")

    def to_dto(self) -> WheelPositionInfo:
        return WheelPositionInfo(
            id=self.id,
            vehicle_id=self.vehicle_id,
            code=self.position_code,
            name=self.position_name,
            axle=self.axle_number,
            is_trailer=self.is_trailer,
        )

    def __repr__(self) -> str:
        return f"<WheelPosition {self.position_code} axle={self.axle_number}>"
