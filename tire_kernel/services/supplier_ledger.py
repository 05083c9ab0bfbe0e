"""
SupplierLedger -- supplier registration and the running-balance hook.

Responsibility:
    ``append_charge`` is the hook the Intake Processor and the Retread
    Workflow call to record what is owed to a supplier: one PURCHASE entry
    per unit received, one RETREAD_SERVICE entry per retread order sent.
    Payments reduce the balance.

Invariants enforced:
    - The charge is written in the caller's transaction: if the lifecycle
      operation rolls back, so does the charge, and vice versa.
    - The supplier row is locked (FOR UPDATE) while its balance is read
      and rewritten, and each entry stores ``balance_after`` so the ledger
      can be audited against the cached balance.
    - Amounts are non-negative; the entry kind carries the sign.
"""

from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import select

from tire_kernel.domain.values import LedgerEntryKind, SupplierType
from tire_kernel.exceptions import InvalidQuantityError, SupplierNotFoundError, ValidationError
from tire_kernel.logging_config import get_logger
from tire_kernel.models.supplier import Supplier, SupplierLedgerEntry
from tire_kernel.services.base import BaseService, load_for_update

logger = get_logger("services.supplier_ledger")


class SupplierLedger(BaseService[Supplier]):

    def get_supplier(self, supplier_id: UUID, for_update: bool = False) -> Supplier:
        if for_update:
            supplier = load_for_update(self._session, Supplier, supplier_id)
        else:
            supplier = self._session.get(Supplier, supplier_id)
        if supplier is None:
            raise SupplierNotFoundError(str(supplier_id))
        return supplier

    def create_supplier(
        self,
        code: str,
        name: str,
        supplier_type: SupplierType,
        actor_id: UUID,
        contact_person: str | None = None,
        phone: str | None = None,
        email: str | None = None,
    ) -> Supplier:
        if not code or not name:
            raise ValidationError("supplier", "code and name are required")
        if self._session.execute(select(Supplier.id).where(Supplier.code == code)).first():
            raise ValidationError("code", f"supplier {code} already exists")
        supplier = Supplier(
            code=code,
            name=name,
            supplier_type=SupplierType(supplier_type).value,
            contact_person=contact_person,
            phone=phone,
            email=email,
            balance=Decimal("0"),
            created_by_id=actor_id,
        )
        self._session.add(supplier)
        self._session.flush()
        logger.info(
            "supplier_registered",
            extra={"supplier_id": str(supplier.id), "code": code, "supplier_type": supplier.supplier_type},
        )
        return supplier

    def append_charge(
        self,
        supplier_id: UUID,
        entry_date: date,
        description: str,
        kind: LedgerEntryKind,
        amount: Decimal,
        reference: str | None,
        actor_id: UUID,
        *,
        purchase_order_id: UUID | None = None,
        grn_id: UUID | None = None,
        retread_order_id: UUID | None = None,
    ) -> SupplierLedgerEntry:
        """
        Append one ledger entry and move the supplier's balance.

        Args:
            kind: PURCHASE and RETREAD_SERVICE add to the balance,
                PAYMENT subtracts.
            amount: non-negative Decimal.

        Raises:
            SupplierNotFoundError: unknown supplier.
            InvalidQuantityError: negative amount.
        """
        kind = LedgerEntryKind(kind)
        amount = Decimal(amount)
        if amount < 0:
            raise InvalidQuantityError("amount", amount)

        supplier = self.get_supplier(supplier_id, for_update=True)
        new_balance = (supplier.balance or Decimal("0")) + kind.sign * amount

        entry = SupplierLedgerEntry(
            supplier_id=supplier_id,
            entry_date=entry_date,
            kind=kind.value,
            description=description,
            amount=amount,
            balance_after=new_balance,
            reference=reference,
            purchase_order_id=purchase_order_id,
            grn_id=grn_id,
            retread_order_id=retread_order_id,
            created_by_id=actor_id,
        )
        supplier.balance = new_balance
        supplier.updated_by_id = actor_id
        self._session.add(entry)
        self._session.flush()

        logger.info(
            "supplier_charge_appended",
            extra={
                "supplier_id": str(supplier_id),
                "kind": kind.value,
                "amount": amount,
                "balance_after": new_balance,
                "reference": reference,
            },
        )
        return entry

    def entries(self, supplier_id: UUID) -> list[SupplierLedgerEntry]:
        stmt = (
            select(SupplierLedgerEntry)
            .where(SupplierLedgerEntry.supplier_id == supplier_id)
            .order_by(SupplierLedgerEntry.created_at, SupplierLedgerEntry.entry_date)
        )
        return list(self._session.execute(stmt).scalars())
