"""
Supplier query selector.

Read-only access to suppliers and their ledger.  The cached
``Supplier.balance`` can be checked against the ledger with
``ledger_balance``, which sums the signed entries.
"""

from decimal import Decimal
from uuid import UUID

from sqlalchemy import select

from tire_kernel.domain.dtos import LedgerEntryInfo, SupplierInfo
from tire_kernel.domain.values import LedgerEntryKind
from tire_kernel.exceptions import SupplierNotFoundError
from tire_kernel.models.supplier import Supplier, SupplierLedgerEntry
from tire_kernel.selectors.base import BaseSelector


class SupplierSelector(BaseSelector[Supplier]):

    def get_supplier(self, supplier_id: UUID) -> SupplierInfo:
        supplier = self.session.get(Supplier, supplier_id)
        if supplier is None:
            raise SupplierNotFoundError(str(supplier_id))
        return supplier.to_dto()

    def find_by_code(self, code: str) -> SupplierInfo | None:
        supplier = self.session.execute(
            select(Supplier).where(Supplier.code == code)
        ).scalar_one_or_none()
        return supplier.to_dto() if supplier else None

    def ledger(self, supplier_id: UUID) -> list[LedgerEntryInfo]:
        stmt = (
            select(SupplierLedgerEntry)
            .where(SupplierLedgerEntry.supplier_id == supplier_id)
            .order_by(SupplierLedgerEntry.entry_date, SupplierLedgerEntry.created_at)
        )
        return [e.to_dto() for e in self.session.execute(stmt).scalars()]

    def ledger_balance(self, supplier_id: UUID) -> Decimal:
        """Balance recomputed from the ledger entries."""
        total = Decimal("0")
        for entry in self.ledger(supplier_id):
            total += LedgerEntryKind(entry.kind).sign * entry.amount
        return total
