"""
DTOs -- immutable views of kernel entities.

Responsibility:
    Frozen dataclasses returned by kernel services and selectors so
    callers never hold live ORM rows: TireInfo, VehicleInfo,
    WheelPositionInfo, AssignmentInfo, MovementInfo, SupplierInfo,
    LedgerEntryInfo.

Architecture position:
    Kernel > Domain -- zero I/O.  ORM models convert themselves with
    ``to_dto()``; nothing here imports the ORM.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from tire_kernel.domain.values import (
    TERMINAL_TIRE_STATUSES,
    DisposalMethod,
    LedgerEntryKind,
    MovementType,
    ReferenceType,
    SupplierType,
    TireCategory,
    TireStatus,
    VehicleStatus,
)


@dataclass(frozen=True)
class TireInfo:
    id: UUID
    serial_number: str
    size: str
    brand: str
    model: str | None
    category: TireCategory
    status: TireStatus
    acquisition_cost: Decimal | None
    supplier_id: UUID | None
    acquisition_date: date | None
    current_location: str
    retread_count: int
    disposal_date: date | None = None
    disposal_reason: str | None = None
    disposal_method: DisposalMethod | None = None
    disposal_authorized_by: UUID | None = None
    disposal_notes: str | None = None
    purchase_order_line_id: UUID | None = None
    grn_id: UUID | None = None
    grn_item_id: UUID | None = None

    @property
    def is_disposed(self) -> bool:
        return self.status in TERMINAL_TIRE_STATUSES


@dataclass(frozen=True)
class WheelPositionInfo:
    id: UUID
    vehicle_id: UUID
    code: str
    name: str
    axle: int
    is_trailer: bool


@dataclass(frozen=True)
class VehicleInfo:
    id: UUID
    vehicle_number: str
    configuration: str
    make: str | None
    model: str | None
    year: int | None
    status: VehicleStatus
    positions: tuple[WheelPositionInfo, ...] = ()

    def position(self, code: str) -> WheelPositionInfo | None:
        for p in self.positions:
            if p.code == code:
                return p
        return None


@dataclass(frozen=True)
class AssignmentInfo:
    """An interval during which a tire occupied a wheel position."""
    id: UUID
    tire_id: UUID
    vehicle_id: UUID
    position_id: UUID
    install_date: date
    install_odometer: Decimal | None
    install_reason: str | None
    removal_date: date | None = None
    removal_odometer: Decimal | None = None
    removal_reason: str | None = None

    @property
    def is_open(self) -> bool:
        return self.removal_date is None


@dataclass(frozen=True)
class MovementInfo:
    id: UUID
    tire_id: UUID
    sequence_no: int
    movement_type: MovementType
    from_location: str
    to_location: str
    actor_id: UUID
    moved_at: datetime
    reference_type: ReferenceType | None = None
    reference_id: UUID | None = None
    vehicle_id: UUID | None = None
    supplier_id: UUID | None = None
    notes: str | None = None


@dataclass(frozen=True)
class SupplierInfo:
    id: UUID
    code: str
    name: str
    supplier_type: SupplierType
    balance: Decimal
    is_active: bool


@dataclass(frozen=True)
class LedgerEntryInfo:
    id: UUID
    supplier_id: UUID
    entry_date: date
    kind: LedgerEntryKind
    description: str
    amount: Decimal
    balance_after: Decimal
    reference: str | None
