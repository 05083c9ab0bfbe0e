"""
Module: tire_modules.retread.orm
Responsibility: SQLAlchemy persistence for retread-order batches: the
    order header, one item per tire, the append-only timeline, and the
    receiving records written each time results come back.
Architecture position: Modules > Retread > ORM.  Inherits TrackedBase
    (tire_kernel.db.base); references tires and suppliers by foreign key.

Invariants enforced:
    - order_number is unique.
    - A tire appears at most once per order (uq_retread_item_order_tire).
    - Timeline entries are never updated; they are deleted only together
      with a DRAFT order (db/immutability.py).
    - Receiving headers and received items are append-only.
    - Enum fields are stored as strings holding the enum value.

Audit relevance:
    Item status and cost change as results arrive; the receiving records
    keep every submitted result (depth, quality, outcome) as written.
"""

from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import Date, ForeignKey, Index, String, Text, UniqueConstraint, select
from sqlalchemy.orm import Mapped, Session, mapped_column, relationship

from tire_kernel.db.base import TrackedBase
from tire_modules.retread.models import (
    CLOSED_ORDER_STATUSES,
    OPEN_ITEM_STATUSES,
    RetreadItemStatus,
    RetreadOrderInfo,
    RetreadOrderItemInfo,
    RetreadOrderStatus,
    RetreadTimelineInfo,
)


# =============================================================================
# RetreadOrderModel
# =============================================================================

class RetreadOrderModel(TrackedBase):
    """
    Header of a retread batch sent to one supplier.

    Maps to: tire_modules.retread.models.RetreadOrderInfo.
    """

    __tablename__ = "retread_orders"

    __table_args__ = (
        UniqueConstraint("order_number", name="uq_retread_order_number"),
        Index("idx_retread_order_supplier", "supplier_id"),
        Index("idx_retread_order_status", "status"),
    )

    order_number: Mapped[str] = mapped_column(String(50), nullable=False)
    supplier_id: Mapped[UUID] = mapped_column(ForeignKey("suppliers.id"), nullable=False)
    status: Mapped[str] = mapped_column(
        String(50), nullable=False, default=RetreadOrderStatus.DRAFT.value
    )
    total_tires: Mapped[int] = mapped_column(nullable=False, default=0)
    estimated_cost: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    total_cost: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    expected_completion_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    sent_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    received_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    items: Mapped[list["RetreadOrderItemModel"]] = relationship(
        "RetreadOrderItemModel",
        back_populates="order",
        order_by="RetreadOrderItemModel.line_no",
        cascade="all, delete-orphan",
        lazy="selectin",
    )
    timeline: Mapped[list["RetreadTimelineEntryModel"]] = relationship(
        "RetreadTimelineEntryModel",
        back_populates="order",
        order_by="RetreadTimelineEntryModel.entry_no",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    def item_for(self, tire_id: UUID) -> "RetreadOrderItemModel | None":
        for item in self.items:
            if item.tire_id == tire_id:
                return item
        return None

    def to_dto(self) -> RetreadOrderInfo:
        return RetreadOrderInfo(
            id=self.id,
            order_number=self.order_number,
            supplier_id=self.supplier_id,
            status=RetreadOrderStatus(self.status),
            total_tires=self.total_tires,
            estimated_cost=self.estimated_cost,
            total_cost=self.total_cost,
            expected_completion_date=self.expected_completion_date,
            sent_date=self.sent_date,
            received_date=self.received_date,
            notes=self.notes,
            items=tuple(i.to_dto() for i in self.items),
            timeline=tuple(t.to_dto() for t in self.timeline),
        )

    def __repr__(self) -> str:
        return f"<RetreadOrderModel {self.order_number} [{self.status}] tires={self.total_tires}>"


# =============================================================================
# RetreadOrderItemModel
# =============================================================================

class RetreadOrderItemModel(TrackedBase):

    __tablename__ = "retread_order_items"

    __table_args__ = (
        UniqueConstraint("order_id", "tire_id", name="uq_retread_item_order_tire"),
        Index("idx_retread_item_tire", "tire_id", "status"),
    )

    order_id: Mapped[UUID] = mapped_column(ForeignKey("retread_orders.id"), nullable=False)
    tire_id: Mapped[UUID] = mapped_column(ForeignKey("tires.id"), nullable=False)
    line_no: Mapped[int] = mapped_column(nullable=False)
    status: Mapped[str] = mapped_column(
        String(50), nullable=False, default=RetreadItemStatus.PENDING.value
    )
    estimated_cost: Mapped[Decimal | None] = mapped_column(nullable=True)
    cost: Mapped[Decimal | None] = mapped_column(nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    order: Mapped["RetreadOrderModel"] = relationship("RetreadOrderModel", back_populates="items")

    def to_dto(self) -> RetreadOrderItemInfo:
        return RetreadOrderItemInfo(
            id=self.id,
            tire_id=self.tire_id,
            status=RetreadItemStatus(self.status),
            cost=self.cost if self.cost is not None else self.estimated_cost,
            notes=self.notes,
        )

    def __repr__(self) -> str:
        return f"<RetreadOrderItemModel tire={self.tire_id} [{self.status}]>"


# =============================================================================
# RetreadTimelineEntryModel
# =============================================================================

class RetreadTimelineEntryModel(TrackedBase):
    """Status-change narration of an order; ``created_by_id`` is the actor."""

    __tablename__ = "retread_timeline"

    __table_args__ = (
        UniqueConstraint("order_id", "entry_no", name="uq_retread_timeline_entry"),
    )

    order_id: Mapped[UUID] = mapped_column(ForeignKey("retread_orders.id"), nullable=False)
    entry_no: Mapped[int] = mapped_column(nullable=False)
    status: Mapped[str] = mapped_column(String(50), nullable=False)
    note: Mapped[str] = mapped_column(Text, nullable=False)
    recorded_at: Mapped[datetime] = mapped_column(nullable=False)

    order: Mapped["RetreadOrderModel"] = relationship(
        "RetreadOrderModel", back_populates="timeline"
    )

    def to_dto(self) -> RetreadTimelineInfo:
        return RetreadTimelineInfo(
            id=self.id,
            status=RetreadOrderStatus(self.status),
            note=self.note,
            actor_id=self.created_by_id,
            recorded_at=self.recorded_at,
        )

    def __repr__(self) -> str:
        return f"<RetreadTimelineEntryModel #{self.entry_no} {self.status}: {self.note}>"


# =============================================================================
# RetreadReceivingModel / RetreadReceivedItemModel
# =============================================================================

class RetreadReceivingModel(TrackedBase):
    """One ``receive`` call against an order."""

    __tablename__ = "retread_receivings"

    __table_args__ = (
        Index("idx_retread_receiving_order", "order_id"),
    )

    order_id: Mapped[UUID] = mapped_column(ForeignKey("retread_orders.id"), nullable=False)
    received_date: Mapped[date] = mapped_column(Date, nullable=False)
    received_count: Mapped[int] = mapped_column(nullable=False, default=0)
    rejected_count: Mapped[int] = mapped_column(nullable=False, default=0)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    def __repr__(self) -> str:
        return (
            f"<RetreadReceivingModel order={self.order_id} "
            f"received={self.received_count} rejected={self.rejected_count}>"
        )


class RetreadReceivedItemModel(TrackedBase):
    """One submitted tire result, as reported by the supplier."""

    __tablename__ = "retread_received_items"

    __table_args__ = (
        Index("idx_retread_received_receiving", "receiving_id"),
        Index("idx_retread_received_tire", "tire_id"),
    )

    receiving_id: Mapped[UUID] = mapped_column(
        ForeignKey("retread_receivings.id"), nullable=False
    )
    tire_id: Mapped[UUID] = mapped_column(ForeignKey("tires.id"), nullable=False)
    outcome: Mapped[str] = mapped_column(String(50), nullable=False)
    tread_depth: Mapped[Decimal | None] = mapped_column(nullable=True)
    quality: Mapped[str] = mapped_column(String(50), nullable=False)
    cost: Mapped[Decimal | None] = mapped_column(nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    def __repr__(self) -> str:
        return f"<RetreadReceivedItemModel tire={self.tire_id} {self.outcome}>"


def find_active_order_number(
    session: Session,
    tire_id: UUID,
    exclude_order_id: UUID | None = None,
) -> str | None:
    """Number of an open order in which ``tire_id`` still awaits an outcome."""
    stmt = (
        select(RetreadOrderModel.order_number)
        .join(RetreadOrderItemModel, RetreadOrderItemModel.order_id == RetreadOrderModel.id)
        .where(
            RetreadOrderItemModel.tire_id == tire_id,
            RetreadOrderItemModel.status.in_([s.value for s in OPEN_ITEM_STATUSES]),
            RetreadOrderModel.status.not_in([s.value for s in CLOSED_ORDER_STATUSES]),
        )
        .limit(1)
    )
    if exclude_order_id is not None:
        stmt = stmt.where(RetreadOrderModel.id != exclude_order_id)
    return session.execute(stmt).scalar_one_or_none()
