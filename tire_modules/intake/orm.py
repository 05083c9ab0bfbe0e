"""
Module: tire_modules.intake.orm
Responsibility: SQLAlchemy persistence for purchase orders, their lines,
    goods received notes and GRN items.
Architecture position: Modules > Intake > ORM.  Inherits TrackedBase
    (tire_kernel.db.base); references suppliers by foreign key.

Invariants enforced:
    - po_number and grn_number are unique.
    - (order_id, line_no) is unique.
    - quantity_received >= 0 (ck_po_line_received_nonneg).
    - Enum fields are stored as strings holding the enum value.

Audit relevance:
    Tires created by a receipt keep the PO line, GRN and GRN item ids, so
    each tire traces back to the delivery it arrived in.
"""

import json
from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import CheckConstraint, Date, ForeignKey, Index, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from tire_kernel.db.base import TrackedBase
from tire_kernel.domain.values import TireCategory
from tire_modules.intake.models import (
    GRNInfo,
    GRNItemInfo,
    PurchaseOrderInfo,
    PurchaseOrderLineInfo,
    PurchaseOrderStatus,
)


# =============================================================================
# PurchaseOrderModel
# =============================================================================

class PurchaseOrderModel(TrackedBase):

    __tablename__ = "purchase_orders"

    __table_args__ = (
        UniqueConstraint("po_number", name="uq_purchase_order_number"),
        Index("idx_purchase_order_supplier", "supplier_id"),
        Index("idx_purchase_order_status", "status"),
    )

    po_number: Mapped[str] = mapped_column(String(50), nullable=False)
    supplier_id: Mapped[UUID] = mapped_column(ForeignKey("suppliers.id"), nullable=False)
    order_date: Mapped[date] = mapped_column(Date, nullable=False)
    expected_delivery_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    status: Mapped[str] = mapped_column(
        String(50), nullable=False, default=PurchaseOrderStatus.DRAFT.value
    )
    total_amount: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    lines: Mapped[list["PurchaseOrderLineModel"]] = relationship(
        "PurchaseOrderLineModel",
        back_populates="order",
        order_by="PurchaseOrderLineModel.line_no",
        lazy="selectin",
    )

    def to_dto(self) -> PurchaseOrderInfo:
        return PurchaseOrderInfo(
            id=self.id,
            po_number=self.po_number,
            supplier_id=self.supplier_id,
            order_date=self.order_date,
            status=PurchaseOrderStatus(self.status),
            total_amount=self.total_amount,
            expected_delivery_date=self.expected_delivery_date,
            notes=self.notes,
            lines=tuple(line.to_dto() for line in self.lines),
        )

    def __repr__(self) -> str:
        return f"<PurchaseOrderModel {self.po_number} [{self.status}]>"


class PurchaseOrderLineModel(TrackedBase):

    __tablename__ = "purchase_order_lines"

    __table_args__ = (
        UniqueConstraint("order_id", "line_no", name="uq_po_line_no"),
        CheckConstraint("quantity_received >= 0", name="ck_po_line_received_nonneg"),
    )

    order_id: Mapped[UUID] = mapped_column(ForeignKey("purchase_orders.id"), nullable=False)
    line_no: Mapped[int] = mapped_column(nullable=False)
    size: Mapped[str] = mapped_column(String(50), nullable=False)
    brand: Mapped[str] = mapped_column(String(100), nullable=False)
    model: Mapped[str | None] = mapped_column(String(100), nullable=True)
    category: Mapped[str] = mapped_column(
        String(20), nullable=False, default=TireCategory.NEW.value
    )
    quantity_ordered: Mapped[int] = mapped_column(nullable=False)
    quantity_received: Mapped[int] = mapped_column(nullable=False, default=0)
    unit_price: Mapped[Decimal] = mapped_column(nullable=False)

    order: Mapped["PurchaseOrderModel"] = relationship(
        "PurchaseOrderModel", back_populates="lines"
    )

    def to_dto(self) -> PurchaseOrderLineInfo:
        return PurchaseOrderLineInfo(
            id=self.id,
            order_id=self.order_id,
            line_no=self.line_no,
            size=self.size,
            brand=self.brand,
            model=self.model,
            category=TireCategory(self.category),
            quantity_ordered=self.quantity_ordered,
            quantity_received=self.quantity_received,
            unit_price=self.unit_price,
        )

    def __repr__(self) -> str:
        return (
            f"<PurchaseOrderLineModel #{self.line_no} {self.size} "
            f"{self.quantity_received}/{self.quantity_ordered}>"
        )


# =============================================================================
# GoodsReceivedNoteModel
# =============================================================================

class GoodsReceivedNoteModel(TrackedBase):

    __tablename__ = "goods_received_notes"

    __table_args__ = (
        UniqueConstraint("grn_number", name="uq_grn_number"),
        Index("idx_grn_purchase_order", "purchase_order_id"),
    )

    grn_number: Mapped[str] = mapped_column(String(50), nullable=False)
    purchase_order_id: Mapped[UUID] = mapped_column(
        ForeignKey("purchase_orders.id"), nullable=False
    )
    receipt_date: Mapped[date] = mapped_column(Date, nullable=False)
    supplier_invoice_number: Mapped[str | None] = mapped_column(String(100), nullable=True)
    delivery_note_number: Mapped[str | None] = mapped_column(String(100), nullable=True)
    vehicle_number: Mapped[str | None] = mapped_column(String(50), nullable=True)
    driver_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    items: Mapped[list["GRNItemModel"]] = relationship(
        "GRNItemModel",
        order_by="GRNItemModel.created_at",
        lazy="selectin",
    )

    def to_dto(self) -> GRNInfo:
        return GRNInfo(
            id=self.id,
            grn_number=self.grn_number,
            purchase_order_id=self.purchase_order_id,
            receipt_date=self.receipt_date,
            supplier_invoice_number=self.supplier_invoice_number,
            delivery_note_number=self.delivery_note_number,
            vehicle_number=self.vehicle_number,
            driver_name=self.driver_name,
            notes=self.notes,
            items=tuple(i.to_dto() for i in self.items),
        )

    def __repr__(self) -> str:
        return f"<GoodsReceivedNoteModel {self.grn_number} receipt={self.receipt_date}>"


class GRNItemModel(TrackedBase):
    """``serial_numbers`` holds the JSON list of serials actually assigned."""

    __tablename__ = "grn_items"

    __table_args__ = (
        Index("idx_grn_item_grn", "grn_id"),
        Index("idx_grn_item_line", "purchase_order_line_id"),
    )

    grn_id: Mapped[UUID] = mapped_column(ForeignKey("goods_received_notes.id"), nullable=False)
    purchase_order_line_id: Mapped[UUID] = mapped_column(
        ForeignKey("purchase_order_lines.id"), nullable=False
    )
    quantity_received: Mapped[int] = mapped_column(nullable=False)
    unit_cost: Mapped[Decimal] = mapped_column(nullable=False)
    batch_number: Mapped[str | None] = mapped_column(String(100), nullable=True)
    serial_numbers: Mapped[str] = mapped_column(Text, nullable=False, default="[]")
    brand: Mapped[str | None] = mapped_column(String(100), nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    def to_dto(self) -> GRNItemInfo:
        return GRNItemInfo(
            id=self.id,
            grn_id=self.grn_id,
            line_id=self.purchase_order_line_id,
            quantity=self.quantity_received,
            unit_cost=self.unit_cost,
            serial_numbers=tuple(json.loads(self.serial_numbers or "[]")),
            batch_number=self.batch_number,
            brand=self.brand,
            notes=self.notes,
        )

    def __repr__(self) -> str:
        return f"<GRNItemModel line={self.purchase_order_line_id} qty={self.quantity_received}>"
