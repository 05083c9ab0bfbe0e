"""
Module: tire_kernel.models.supplier
Responsibility: ORM persistence for suppliers (tire vendors and retread
    shops) and their append-only ledger of charges and payments.
Architecture position: Kernel > Models.

Invariants enforced:
    - Supplier.code is unique.
    - Supplier.balance always equals the balance_after of the supplier's
      latest ledger entry (maintained by services/supplier_ledger.py under
      a row lock on the supplier).
    - SupplierLedgerEntry rows are immutable (db/immutability.py).
"""

from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import Boolean, Date, ForeignKey, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from tire_kernel.db.base import TrackedBase
from tire_kernel.domain.dtos import LedgerEntryInfo, SupplierInfo
from tire_kernel.domain.values import LedgerEntryKind, SupplierType


class Supplier(TrackedBase):

    __tablename__ = "suppliers"

    __table_args__ = (
        UniqueConstraint("code", name="uq_supplier_code"),
        Index("idx_supplier_type", "supplier_type"),
    )

    code: Mapped[str] = mapped_column(String(50), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    supplier_type: Mapped[str] = mapped_column(String(20), nullable=False)
    contact_person: Mapped[str | None] = mapped_column(String(255), nullable=True)
    phone: Mapped[str | None] = mapped_column(String(50), nullable=True)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    balance: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    def to_dto(self) -> SupplierInfo:
        return SupplierInfo(
            id=self.id,
            code=self.code,
            name=self.name,
            supplier_type=SupplierType(self.supplier_type),
            balance=self.balance,
            is_active=self.is_active,
        )

    def __repr__(self) -> str:
        return f"<Supplier {self.code} [{self.supplier_type}] balance={self.balance}>"


class SupplierLedgerEntry(TrackedBase):

    __tablename__ = "supplier_ledger"

    __table_args__ = (
        Index("idx_supplier_ledger_supplier", "supplier_id", "entry_date"),
        Index("idx_supplier_ledger_reference", "reference"),
    )

    supplier_id: Mapped[UUID] = mapped_column(ForeignKey("suppliers.id"), nullable=False)
    entry_date: Mapped[date] = mapped_column(Date, nullable=False)
    kind: Mapped[str] = mapped_column(String(30), nullable=False)
    description: Mapped[str] = mapped_column(String(500), nullable=False)
    amount: Mapped[Decimal] = mapped_column(nullable=False)
    balance_after: Mapped[Decimal] = mapped_column(nullable=False)
    reference: Mapped[str | None] = mapped_column(String(100), nullable=True)
    purchase_order_id: Mapped[UUID | None] = mapped_column(nullable=True)
    grn_id: Mapped[UUID | None] = mapped_column(nullable=True)
    retread_order_id: Mapped[UUID | None] = mapped_column(nullable=True)

    def to_dto(self) -> LedgerEntryInfo:
        return LedgerEntryInfo(
            id=self.id,
            supplier_id=self.supplier_id,
            entry_date=self.entry_date,
            kind=LedgerEntryKind(self.kind),
            description=self.description,
            amount=self.amount,
            balance_after=self.balance_after,
            reference=self.reference,
        )

    def __repr__(self) -> str:
        return f"<SupplierLedgerEntry {self.kind} {self.amount} ref={self.reference}>"
