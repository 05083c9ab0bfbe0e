"""
Intake Module Service (``tire_modules.intake.service``).

Responsibility
--------------
Purchase orders and goods received notes.  ``IntakeService.receive``
turns one delivery against a purchase order into a GRN, its items, one
IN_STORE tire and one PURCHASE_TO_STORE movement per unit, the line
fulfillment counters, the order's derived status and one PURCHASE charge
per unit on the supplier ledger.

Architecture position
---------------------
**Modules layer** -- transaction-owning orchestration.  Calls the
purchase-order aggregate (``purchase_orders.PurchaseOrderBook``), tire
custody (``tire_modules.lifecycle.custody``) and the kernel
``SupplierLedger``; none of them commit.

Invariants enforced
-------------------
* The whole receipt is validated before the first write: item shape,
  serial counts, duplicate serials within the request and against the
  store, line ownership, order status and (when configured) over-receipt.
* A receipt commits completely or not at all; a failure anywhere rolls
  back tires, counters, charges and the GRN header together.
* Tires inherit size, model and category from the order line; the brand
  comes from the item when given, else from the line.

Failure modes
-------------
* ``ValidationError`` family -- malformed items, serial mismatch,
  duplicate serials, over-receipt.
* ``PurchaseOrderNotFoundError`` / ``PurchaseOrderLineNotFoundError``.
* ``InvalidOrderStateError`` -- order not APPROVED, ORDERED or
  PARTIALLY_RECEIVED.
* ``StorageError`` -- translated by the transaction boundary.

Usage::

    intake = IntakeService(session, clock)
    result = intake.receive(
        po.id,
        [GRNItemSpec(line_id=po.lines[0].id, quantity=2, unit_cost=Decimal("450"))],
        actor_id=actor_id,
    )
"""

from __future__ import annotations

import json
from collections import Counter
from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from tire_config import TireLedgerConfig
from tire_kernel.db.engine import transaction
from tire_kernel.domain.clock import Clock, SystemClock
from tire_kernel.domain.values import LedgerEntryKind, ReferenceType
from tire_kernel.exceptions import (
    DuplicateSerialError,
    GoodsReceivedNoteNotFoundError,
    InvalidOrderStateError,
    InvalidQuantityError,
    OverReceiptError,
    SerialCountMismatchError,
    ValidationError,
)
from tire_kernel.logging_config import LogContext, get_logger
from tire_kernel.models.tire import Tire
from tire_kernel.services.supplier_ledger import SupplierLedger
from tire_modules._helpers import document_number, resolve_actor, resolve_config
from tire_modules.intake.models import (
    RECEIVABLE_STATUSES,
    GRNInfo,
    GRNItemSpec,
    GRNResult,
    PurchaseOrderInfo,
    PurchaseOrderLineInfo,
    PurchaseOrderLineSpec,
    PurchaseOrderStatus,
)
from tire_modules.intake.orm import GoodsReceivedNoteModel, GRNItemModel, PurchaseOrderModel
from tire_modules.intake.purchase_orders import PurchaseOrderBook
from tire_modules.intake.workflows import APPROVE, CANCEL, CLOSE, MARK_ORDERED
from tire_modules.lifecycle.custody import TireCustody

logger = get_logger("modules.intake.service")


class PurchaseOrderService:
    """Purchase-order creation and manual status changes."""

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        config: TireLedgerConfig | None = None,
    ):
        self._session = session
        self._clock = clock or SystemClock()
        self._config = resolve_config(config)
        self._book = PurchaseOrderBook(session, self._config)

    def create_purchase_order(
        self,
        supplier_id: UUID,
        lines: list[PurchaseOrderLineSpec],
        actor_id: UUID | None,
        order_date: date | None = None,
        expected_delivery_date: date | None = None,
        notes: str | None = None,
    ) -> PurchaseOrderInfo:
        actor = resolve_actor(actor_id, "create_purchase_order", self._config)
        with LogContext.bind(operation="create_purchase_order", actor_id=actor):
            with transaction(self._session, "create_purchase_order"):
                order = self._book.create(
                    supplier_id=supplier_id,
                    lines=list(lines),
                    order_date=order_date or self._clock.today(),
                    actor_id=actor,
                    expected_delivery_date=expected_delivery_date,
                    notes=notes,
                )
                info = order.to_dto()
        return info

    def get_purchase_order(self, order_id: UUID) -> PurchaseOrderInfo:
        return self._book.get(order_id).to_dto()

    def outstanding_lines(self, order_id: UUID) -> list[PurchaseOrderLineInfo]:
        """Lines still short of their ordered quantity, in line order."""
        self._book.get(order_id)
        return [line.to_dto() for line in self._book.open_lines(order_id)]

    def approve(self, order_id: UUID, actor_id: UUID | None) -> PurchaseOrderInfo:
        return self._apply(order_id, APPROVE, actor_id)

    def mark_ordered(self, order_id: UUID, actor_id: UUID | None) -> PurchaseOrderInfo:
        return self._apply(order_id, MARK_ORDERED, actor_id)

    def cancel(self, order_id: UUID, actor_id: UUID | None) -> PurchaseOrderInfo:
        return self._apply(order_id, CANCEL, actor_id)

    def close(self, order_id: UUID, actor_id: UUID | None) -> PurchaseOrderInfo:
        return self._apply(order_id, CLOSE, actor_id)

    def increment_received(
        self,
        line_id: UUID,
        quantity: int,
        actor_id: UUID | None,
    ) -> PurchaseOrderLineInfo:
        """Stand-alone counter correction; a GRN receipt increments lines itself."""
        actor = resolve_actor(actor_id, "increment_received", self._config)
        with LogContext.bind(operation="increment_received", actor_id=actor):
            with transaction(self._session, "increment_received"):
                line = self._book.get_line(line_id)
                self._book.get(line.order_id, for_update=True)
                line = self._book.increment_received(line, quantity, actor)
                info = line.to_dto()
        return info

    def recompute_status(self, order_id: UUID, actor_id: UUID | None) -> PurchaseOrderInfo:
        actor = resolve_actor(actor_id, "recompute_status", self._config)
        with LogContext.bind(operation="recompute_status", actor_id=actor, order_id=order_id):
            with transaction(self._session, "recompute_status"):
                order = self._book.get(order_id, for_update=True)
                self._book.recompute_status(order, actor)
                info = order.to_dto()
        return info

    def _apply(self, order_id: UUID, action: str, actor_id: UUID | None) -> PurchaseOrderInfo:
        operation = f"purchase_order_{action}"
        actor = resolve_actor(actor_id, operation, self._config)
        with LogContext.bind(operation=operation, actor_id=actor, order_id=order_id):
            with transaction(self._session, operation):
                order = self._book.get(order_id, for_update=True)
                self._book.transition(order, action, actor)
                info = order.to_dto()
        return info


class IntakeService:
    """Goods received notes against purchase orders."""

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        config: TireLedgerConfig | None = None,
    ):
        self._session = session
        self._clock = clock or SystemClock()
        self._config = resolve_config(config)
        self._book = PurchaseOrderBook(session, self._config)
        self._custody = TireCustody(session, self._clock)
        self._suppliers = SupplierLedger(session)

    def receive(
        self,
        order_id: UUID,
        items: list[GRNItemSpec],
        actor_id: UUID | None,
        receipt_date: date | None = None,
        supplier_invoice_number: str | None = None,
        delivery_note_number: str | None = None,
        vehicle_number: str | None = None,
        driver_name: str | None = None,
        notes: str | None = None,
    ) -> GRNResult:
        """
        Record a delivery against a purchase order.

        Args:
            order_id: Purchase order being received.
            items: One spec per received line.  Several specs may target
                the same line.
            actor_id: Receiving user; falls back to the configured system
                actor, if any.
            receipt_date: Business date of the delivery; defaults to the
                clock's date.

        Returns:
            GRNResult with the GRN, the refreshed purchase order and the
            tires created, in item then unit order.
        """
        actor = resolve_actor(actor_id, "receive_grn", self._config)
        items = list(items)
        self._validate_items(items)
        receipt_date = receipt_date or self._clock.today()

        with LogContext.bind(operation="receive_grn", actor_id=actor, order_id=order_id):
            with transaction(self._session, "receive_grn"):
                order = self._book.get(order_id, for_update=True)
                if PurchaseOrderStatus(order.status) not in RECEIVABLE_STATUSES:
                    raise InvalidOrderStateError(str(order.id), order.status, "receive")

                lines = {
                    spec.line_id: self._book.get_line(spec.line_id, order.id)
                    for spec in items
                }
                self._check_over_receipt(items, lines)
                serials = self._assign_serials(order, items, lines)
                self._check_existing_serials(serials)

                grn = GoodsReceivedNoteModel(
                    grn_number=document_number(
                        self._session,
                        GoodsReceivedNoteModel.grn_number,
                        self._config.intake.grn_prefix,
                        receipt_date.strftime("%y%m"),
                    ),
                    purchase_order_id=order.id,
                    receipt_date=receipt_date,
                    supplier_invoice_number=supplier_invoice_number,
                    delivery_note_number=delivery_note_number,
                    vehicle_number=vehicle_number,
                    driver_name=driver_name,
                    notes=notes,
                    created_by_id=actor,
                )
                self._session.add(grn)
                self._session.flush()

                tires: list[Tire] = []
                for spec, unit_serials in zip(items, serials):
                    tires.extend(
                        self._receive_item(order, grn, lines[spec.line_id], spec, unit_serials, actor)
                    )

                self._book.recompute_status(order, actor)
                self._session.refresh(grn, attribute_names=["items"])
                result = GRNResult(
                    grn=grn.to_dto(),
                    purchase_order=order.to_dto(),
                    tires=tuple(t.to_dto() for t in tires),
                )

        logger.info(
            "grn_received",
            extra={
                "grn_id": str(result.grn.id),
                "grn_number": result.grn.grn_number,
                "order_id": str(order_id),
                "item_count": len(items),
                "tire_count": result.tire_count,
                "order_status": result.purchase_order.status.value,
            },
        )
        return result

    def get_grn(self, grn_id: UUID) -> GRNInfo:
        grn = self._session.get(GoodsReceivedNoteModel, grn_id)
        if grn is None:
            raise GoodsReceivedNoteNotFoundError(str(grn_id))
        return grn.to_dto()

    def grns_for_order(self, order_id: UUID) -> list[GRNInfo]:
        self._book.get(order_id)
        stmt = (
            select(GoodsReceivedNoteModel)
            .where(GoodsReceivedNoteModel.purchase_order_id == order_id)
            .order_by(GoodsReceivedNoteModel.grn_number)
        )
        return [g.to_dto() for g in self._session.execute(stmt).scalars()]

    # -------------------------------------------------------------------------
    # Validation (no writes)
    # -------------------------------------------------------------------------

    def _validate_items(self, items: list[GRNItemSpec]) -> None:
        if not items:
            raise ValidationError("items", "a receipt needs at least one item")
        seen: Counter[str] = Counter()
        for spec in items:
            if spec.line_id is None:
                raise ValidationError("line_id", "is required")
            if spec.quantity is None or spec.quantity <= 0:
                raise InvalidQuantityError("quantity", spec.quantity)
            if spec.unit_cost is None or Decimal(spec.unit_cost) < 0:
                raise InvalidQuantityError("unit_cost", spec.unit_cost)
            if spec.serial_numbers:
                if len(spec.serial_numbers) != spec.quantity:
                    raise SerialCountMismatchError(
                        str(spec.line_id), spec.quantity, len(spec.serial_numbers)
                    )
                for serial in spec.serial_numbers:
                    if not serial or not serial.strip():
                        raise ValidationError("serial_numbers", "must not contain blank values")
                    seen[serial] += 1
        for serial, count in seen.items():
            if count > 1:
                raise DuplicateSerialError(serial)

    def _check_over_receipt(self, items, lines) -> None:
        if self._config.intake.allow_over_receipt:
            return
        incoming: Counter[UUID] = Counter()
        for spec in items:
            incoming[spec.line_id] += spec.quantity
        for line_id, quantity in incoming.items():
            line = lines[line_id]
            total = line.quantity_received + quantity
            if total > line.quantity_ordered:
                raise OverReceiptError(str(line_id), line.quantity_ordered, total)

    def _assign_serials(self, order: PurchaseOrderModel, items, lines) -> list[tuple[str, ...]]:
        """
        Supplied serials as given; missing ones generated from the order
        number, the line number and the unit's running index on the line.
        """
        next_index = {line_id: line.quantity_received for line_id, line in lines.items()}
        assigned: list[tuple[str, ...]] = []
        for spec in items:
            if spec.serial_numbers:
                assigned.append(tuple(spec.serial_numbers))
                next_index[spec.line_id] += spec.quantity
                continue
            line = lines[spec.line_id]
            start = next_index[spec.line_id]
            assigned.append(tuple(
                self._config.intake.fallback_serial(order.po_number, line.line_no, start + i)
                for i in range(1, spec.quantity + 1)
            ))
            next_index[spec.line_id] += spec.quantity

        seen: set[str] = set()
        for group in assigned:
            for serial in group:
                if serial in seen:
                    raise DuplicateSerialError(serial)
                seen.add(serial)
        return assigned

    def _check_existing_serials(self, serials: list[tuple[str, ...]]) -> None:
        flat = [s for group in serials for s in group]
        existing = self._session.execute(
            select(Tire.serial_number).where(Tire.serial_number.in_(flat)).limit(1)
        ).scalar_one_or_none()
        if existing is not None:
            raise DuplicateSerialError(existing, existing=True)

    # -------------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------------

    def _receive_item(self, order, grn, line, spec: GRNItemSpec, serials, actor: UUID) -> list[Tire]:
        unit_cost = Decimal(spec.unit_cost)
        item = GRNItemModel(
            grn_id=grn.id,
            purchase_order_line_id=line.id,
            quantity_received=spec.quantity,
            unit_cost=unit_cost,
            batch_number=spec.batch_number,
            serial_numbers=json.dumps(list(serials)),
            brand=spec.brand,
            notes=spec.notes,
            created_by_id=actor,
        )
        self._session.add(item)
        self._session.flush()
        self._book.increment_received(line, spec.quantity, actor)

        tires = []
        for serial in serials:
            tire = self._custody.admit(
                serial_number=serial,
                size=line.size,
                brand=spec.brand or line.brand,
                model=line.model,
                category=line.category,
                location=self._config.locations.warehouse,
                actor_id=actor,
                from_location=self._config.locations.supplier_intake,
                acquisition_cost=unit_cost,
                supplier_id=order.supplier_id,
                acquisition_date=grn.receipt_date,
                reference_type=ReferenceType.GRN,
                reference_id=grn.id,
                purchase_order_line_id=line.id,
                grn_id=grn.id,
                grn_item_id=item.id,
                notes=f"Received via {grn.grn_number}",
            )
            self._suppliers.append_charge(
                supplier_id=order.supplier_id,
                entry_date=grn.receipt_date,
                description=f"Tire purchase {serial} ({grn.grn_number})",
                kind=LedgerEntryKind.PURCHASE,
                amount=unit_cost,
                reference=grn.grn_number,
                actor_id=actor,
                purchase_order_id=order.id,
                grn_id=grn.id,
            )
            tires.append(tire)
        return tires
