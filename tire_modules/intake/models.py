"""
Intake Domain Models (``tire_modules.intake.models``).

Responsibility
--------------
Frozen value objects for purchase orders and goods received notes: the
line specs a purchase order is created from, the item specs a GRN is
received with, and the read-side DTOs returned to callers.

Invariants
----------
- ``GRNItemSpec.quantity`` > 0 and ``unit_cost`` >= 0; a non-empty
  ``serial_numbers`` tuple must hold exactly ``quantity`` values.  These
  are checked by ``IntakeService.receive`` before any write, so that a
  malformed item rejects the whole GRN with a typed Validation error.
- All monetary fields are ``Decimal``.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from enum import Enum
from uuid import UUID

from tire_kernel.domain.dtos import TireInfo
from tire_kernel.domain.values import TireCategory


class PurchaseOrderStatus(str, Enum):
    DRAFT = "DRAFT"
    APPROVED = "APPROVED"
    ORDERED = "ORDERED"
    PARTIALLY_RECEIVED = "PARTIALLY_RECEIVED"
    FULLY_RECEIVED = "FULLY_RECEIVED"
    CANCELLED = "CANCELLED"
    CLOSED = "CLOSED"


RECEIVABLE_STATUSES = frozenset({
    PurchaseOrderStatus.APPROVED,
    PurchaseOrderStatus.ORDERED,
    PurchaseOrderStatus.PARTIALLY_RECEIVED,
})


@dataclass(frozen=True)
class PurchaseOrderLineSpec:
    """One line of a new purchase order."""
    size: str
    brand: str
    quantity: int
    unit_price: Decimal
    model: str | None = None
    category: TireCategory = TireCategory.NEW


@dataclass(frozen=True)
class PurchaseOrderLineInfo:
    id: UUID
    order_id: UUID
    line_no: int
    size: str
    brand: str
    model: str | None
    category: TireCategory
    quantity_ordered: int
    quantity_received: int
    unit_price: Decimal

    @property
    def quantity_outstanding(self) -> int:
        return max(self.quantity_ordered - self.quantity_received, 0)


@dataclass(frozen=True)
class PurchaseOrderInfo:
    id: UUID
    po_number: str
    supplier_id: UUID
    order_date: date
    status: PurchaseOrderStatus
    total_amount: Decimal
    expected_delivery_date: date | None = None
    notes: str | None = None
    lines: tuple[PurchaseOrderLineInfo, ...] = ()

    @property
    def quantity_ordered(self) -> int:
        return sum(line.quantity_ordered for line in self.lines)

    @property
    def quantity_received(self) -> int:
        return sum(line.quantity_received for line in self.lines)


@dataclass(frozen=True)
class GRNItemSpec:
    """
    One received line of a GRN.

    ``serial_numbers`` may be empty, in which case serials are generated
    from the purchase-order number, the line number and the unit's
    running 1-based index on that line.  ``brand`` overrides the
    purchase-order line's brand.
    """
    line_id: UUID
    quantity: int
    unit_cost: Decimal
    serial_numbers: tuple[str, ...] = ()
    batch_number: str | None = None
    brand: str | None = None
    notes: str | None = None


@dataclass(frozen=True)
class GRNItemInfo:
    id: UUID
    grn_id: UUID
    line_id: UUID
    quantity: int
    unit_cost: Decimal
    serial_numbers: tuple[str, ...]
    batch_number: str | None = None
    brand: str | None = None
    notes: str | None = None


@dataclass(frozen=True)
class GRNInfo:
    id: UUID
    grn_number: str
    purchase_order_id: UUID
    receipt_date: date
    supplier_invoice_number: str | None = None
    delivery_note_number: str | None = None
    vehicle_number: str | None = None
    driver_name: str | None = None
    notes: str | None = None
    items: tuple[GRNItemInfo, ...] = ()


@dataclass(frozen=True)
class GRNResult:
    """Everything one successful receipt created or changed."""
    grn: GRNInfo
    purchase_order: PurchaseOrderInfo
    tires: tuple[TireInfo, ...] = ()

    @property
    def tire_count(self) -> int:
        return len(self.tires)
