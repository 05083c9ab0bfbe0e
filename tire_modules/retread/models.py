"""
Retread Domain Models (``tire_modules.retread.models``).

Responsibility
--------------
Status enums and frozen DTOs for retread-order batches: the order, its
items (one per tire), the append-only timeline, and the per-tire results
submitted when a batch comes back from the supplier.

Architecture
------------
Layer: **Modules** -- pure domain data structures with no I/O.  ORM rows
convert themselves into these DTOs with ``to_dto()``.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID


class RetreadOrderStatus(str, Enum):
    DRAFT = "DRAFT"
    SENT = "SENT"
    RECEIVED = "RECEIVED"
    PARTIALLY_RECEIVED = "PARTIALLY_RECEIVED"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


# Orders in these statuses no longer hold their tires.
CLOSED_ORDER_STATUSES = frozenset({RetreadOrderStatus.CANCELLED, RetreadOrderStatus.COMPLETED})


class RetreadItemStatus(str, Enum):
    PENDING = "PENDING"
    SENT = "SENT"
    RECEIVED = "RECEIVED"
    REJECTED = "REJECTED"


# Items still awaiting an outcome from the supplier.
OPEN_ITEM_STATUSES = frozenset({RetreadItemStatus.PENDING, RetreadItemStatus.SENT})


class RetreadOutcome(str, Enum):
    RECEIVED = "RECEIVED"
    REJECTED = "REJECTED"


class RetreadQuality(str, Enum):
    GOOD = "GOOD"
    ACCEPTABLE = "ACCEPTABLE"
    POOR = "POOR"


@dataclass(frozen=True)
class RetreadResult:
    """One tire's outcome as reported when a batch is received."""
    tire_id: UUID
    outcome: RetreadOutcome
    tread_depth: Decimal | None = None
    cost: Decimal | None = None
    quality: RetreadQuality = RetreadQuality.GOOD
    notes: str | None = None


@dataclass(frozen=True)
class RetreadOrderItemInfo:
    id: UUID
    tire_id: UUID
    status: RetreadItemStatus
    cost: Decimal | None = None
    notes: str | None = None


@dataclass(frozen=True)
class RetreadTimelineInfo:
    id: UUID
    status: RetreadOrderStatus
    note: str
    actor_id: UUID
    recorded_at: datetime


@dataclass(frozen=True)
class RetreadOrderInfo:
    id: UUID
    order_number: str
    supplier_id: UUID
    status: RetreadOrderStatus
    total_tires: int
    estimated_cost: Decimal
    total_cost: Decimal
    expected_completion_date: date | None = None
    sent_date: date | None = None
    received_date: date | None = None
    notes: str | None = None
    items: tuple[RetreadOrderItemInfo, ...] = ()
    timeline: tuple[RetreadTimelineInfo, ...] = ()

    @property
    def tire_ids(self) -> tuple[UUID, ...]:
        return tuple(i.tire_id for i in self.items)

    @property
    def pending_count(self) -> int:
        return sum(1 for i in self.items if i.status in OPEN_ITEM_STATUSES)


@dataclass(frozen=True)
class RetreadReceiveResult:
    """Outcome of one ``receive`` call, applied as a single transaction."""
    order: RetreadOrderInfo
    receiving_id: UUID
    received_count: int
    rejected_count: int
