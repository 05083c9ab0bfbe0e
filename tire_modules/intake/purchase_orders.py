"""
Purchase-order aggregate (``tire_modules.intake.purchase_orders``).

Responsibility
--------------
Creates purchase orders, moves them through ``PURCHASE_ORDER_WORKFLOW``
and keeps their fulfillment counters.  ``increment_received`` and
``recompute_status`` are the two calls the GRN receipt path makes into
the aggregate; both flush only, so they share the receipt's transaction.

Invariants
----------
- Order status changes only along ``PURCHASE_ORDER_WORKFLOW``.
- ``recompute_status`` compares the sum of received quantities with the
  sum of ordered quantities: FULLY_RECEIVED when received >= ordered,
  PARTIALLY_RECEIVED when some but not all units arrived, unchanged when
  nothing has arrived.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from tire_config import TireLedgerConfig
from tire_kernel.domain.values import TireCategory
from tire_kernel.exceptions import (
    InvalidOrderStateError,
    InvalidQuantityError,
    InvalidTireSpecError,
    PurchaseOrderLineNotFoundError,
    PurchaseOrderNotFoundError,
    ValidationError,
)
from tire_kernel.logging_config import get_logger
from tire_kernel.services.base import load_for_update
from tire_kernel.services.supplier_ledger import SupplierLedger
from tire_kernel.services.workflow_executor import GuardExecutor, WorkflowExecutor
from tire_modules._helpers import document_number
from tire_modules.intake.models import PurchaseOrderLineSpec, PurchaseOrderStatus
from tire_modules.intake.orm import PurchaseOrderLineModel, PurchaseOrderModel
from tire_modules.intake.workflows import (
    ALL_LINES_RECEIVED,
    PURCHASE_ORDER_WORKFLOW,
    RECORD_RECEIPT,
    SOME_UNITS_RECEIVED,
)

logger = get_logger("modules.intake.purchase_orders")


def _all_lines_received(context: dict) -> bool:
    return context["received"] >= context["ordered"] > 0


def _some_units_received(context: dict) -> bool:
    return context["received"] > 0


def purchase_order_guards() -> GuardExecutor:
    return GuardExecutor({
        ALL_LINES_RECEIVED.name: _all_lines_received,
        SOME_UNITS_RECEIVED.name: _some_units_received,
    })


class PurchaseOrderBook:
    """Flush-only operations on the purchase-order aggregate."""

    def __init__(self, session: Session, config: TireLedgerConfig):
        self._session = session
        self._config = config
        self._suppliers = SupplierLedger(session)
        self._executor = WorkflowExecutor(purchase_order_guards())

    # -------------------------------------------------------------------------
    # Lookup
    # -------------------------------------------------------------------------

    def get(self, order_id: UUID, for_update: bool = False) -> PurchaseOrderModel:
        if for_update:
            order = load_for_update(self._session, PurchaseOrderModel, order_id)
        else:
            order = self._session.get(PurchaseOrderModel, order_id)
        if order is None:
            raise PurchaseOrderNotFoundError(str(order_id))
        return order

    def get_line(self, line_id: UUID, order_id: UUID | None = None) -> PurchaseOrderLineModel:
        line = self._session.get(PurchaseOrderLineModel, line_id)
        if line is None or (order_id is not None and line.order_id != order_id):
            raise PurchaseOrderLineNotFoundError(
                str(line_id), str(order_id) if order_id else None
            )
        return line

    # -------------------------------------------------------------------------
    # Creation
    # -------------------------------------------------------------------------

    def create(
        self,
        supplier_id: UUID,
        lines: list[PurchaseOrderLineSpec],
        order_date: date,
        actor_id: UUID,
        expected_delivery_date: date | None = None,
        notes: str | None = None,
    ) -> PurchaseOrderModel:
        """
        Create a DRAFT purchase order numbered ``PO-{yyyymm}-{seq:04d}``.

        Raises:
            SupplierNotFoundError: unknown supplier.
            ValidationError: no lines.
            InvalidQuantityError: quantity <= 0 or negative unit price.
            InvalidTireSpecError: size not in the catalog, unknown category.
        """
        self._suppliers.get_supplier(supplier_id)
        if not lines:
            raise ValidationError("lines", "a purchase order needs at least one line")
        for spec in lines:
            self._validate_line(spec)

        po_number = document_number(
            self._session,
            PurchaseOrderModel.po_number,
            self._config.intake.purchase_order_prefix,
            order_date.strftime("%Y%m"),
        )
        order = PurchaseOrderModel(
            po_number=po_number,
            supplier_id=supplier_id,
            order_date=order_date,
            expected_delivery_date=expected_delivery_date,
            status=PurchaseOrderStatus.DRAFT.value,
            total_amount=sum(
                (Decimal(s.unit_price) * s.quantity for s in lines), Decimal("0")
            ),
            notes=notes,
            created_by_id=actor_id,
        )
        self._session.add(order)
        self._session.flush()

        for line_no, spec in enumerate(lines, start=1):
            self._session.add(
                PurchaseOrderLineModel(
                    order_id=order.id,
                    line_no=line_no,
                    size=spec.size,
                    brand=spec.brand,
                    model=spec.model,
                    category=TireCategory(spec.category).value,
                    quantity_ordered=spec.quantity,
                    quantity_received=0,
                    unit_price=Decimal(spec.unit_price),
                    created_by_id=actor_id,
                )
            )
        self._session.flush()
        self._session.refresh(order, attribute_names=["lines"])

        logger.info(
            "purchase_order_created",
            extra={
                "order_id": str(order.id),
                "po_number": po_number,
                "supplier_id": str(supplier_id),
                "line_count": len(lines),
                "total_amount": order.total_amount,
            },
        )
        return order

    def _validate_line(self, spec: PurchaseOrderLineSpec) -> None:
        if not self._config.catalog.is_valid_size(spec.size):
            raise InvalidTireSpecError("size", spec.size, self._config.catalog.sizes)
        try:
            TireCategory(spec.category)
        except ValueError:
            raise InvalidTireSpecError(
                "category", str(spec.category), tuple(c.value for c in TireCategory)
            ) from None
        if not spec.brand or not spec.brand.strip():
            raise ValidationError("brand", "must not be blank")
        if spec.quantity is None or spec.quantity <= 0:
            raise InvalidQuantityError("quantity", spec.quantity)
        if spec.unit_price is None or Decimal(spec.unit_price) < 0:
            raise InvalidQuantityError("unit_price", spec.unit_price)

    # -------------------------------------------------------------------------
    # Status
    # -------------------------------------------------------------------------

    def transition(self, order: PurchaseOrderModel, action: str, actor_id: UUID) -> None:
        """Apply a manual workflow action (approve, mark_ordered, cancel, close)."""
        result = self._executor.execute_transition(
            workflow=PURCHASE_ORDER_WORKFLOW,
            entity_type="PurchaseOrder",
            entity_id=order.id,
            current_state=order.status,
            action=action,
        )
        if not result.success:
            raise InvalidOrderStateError(str(order.id), order.status, action)
        previous = order.status
        order.status = result.new_state
        order.updated_by_id = actor_id
        self._session.flush()
        logger.info(
            "purchase_order_status_changed",
            extra={
                "order_id": str(order.id),
                "po_number": order.po_number,
                "from_status": previous,
                "to_status": order.status,
            },
        )

    def increment_received(
        self,
        line: PurchaseOrderLineModel,
        quantity: int,
        actor_id: UUID,
    ) -> PurchaseOrderLineModel:
        if quantity <= 0:
            raise InvalidQuantityError("quantity", quantity)
        line.quantity_received = (line.quantity_received or 0) + quantity
        line.updated_by_id = actor_id
        self._session.flush()
        return line

    def recompute_status(self, order: PurchaseOrderModel, actor_id: UUID) -> str:
        """Derive the order status from its fulfillment counters; returns the status."""
        ordered = sum(line.quantity_ordered for line in order.lines)
        received = sum(line.quantity_received for line in order.lines)
        result = self._executor.execute_transition(
            workflow=PURCHASE_ORDER_WORKFLOW,
            entity_type="PurchaseOrder",
            entity_id=order.id,
            current_state=order.status,
            action=RECORD_RECEIPT,
            context={"ordered": ordered, "received": received},
        )
        if result.success and result.new_state != order.status:
            previous = order.status
            order.status = result.new_state
            order.updated_by_id = actor_id
            self._session.flush()
            logger.info(
                "purchase_order_status_changed",
                extra={
                    "order_id": str(order.id),
                    "po_number": order.po_number,
                    "from_status": previous,
                    "to_status": order.status,
                    "quantity_ordered": ordered,
                    "quantity_received": received,
                },
            )
        return order.status

    def open_lines(self, order_id: UUID) -> list[PurchaseOrderLineModel]:
        stmt = (
            select(PurchaseOrderLineModel)
            .where(
                PurchaseOrderLineModel.order_id == order_id,
                PurchaseOrderLineModel.quantity_received < PurchaseOrderLineModel.quantity_ordered,
            )
            .order_by(PurchaseOrderLineModel.line_no)
        )
        return list(self._session.execute(stmt).scalars())
