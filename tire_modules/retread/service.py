"""
Retread Module Service (``tire_modules.retread.service``).

Responsibility
--------------
The retread-order batch lifecycle: create, send, receive (per-tire
accept or reject), cancel, delete while DRAFT, duplicate.  Every batch
step runs as one transaction over all of the order's tires.

Architecture position
---------------------
**Modules layer** -- transaction-owning orchestration.  Tire status and
location change through ``TireCustody``; the supplier is charged through
the kernel ``SupplierLedger``.

Invariants enforced
-------------------
* Order status changes only along ``RETREAD_ORDER_WORKFLOW``.
* A tire awaits an outcome in at most one open order at a time.
* ``send`` moves every tire to the supplier with one
  STORE_TO_RETREAD_SUPPLIER movement each and one RETREAD_SERVICE
  charge for the order's estimated total.
* ``receive`` is all-or-nothing: every result is validated before the
  first write.  Accepted tires return to USED_STORE, rejected tires are
  DISPOSED; both become RETREADED with ``retread_count`` + 1.
* Each create, send, receive, cancel and duplicate appends exactly one
  timeline entry.

Failure modes
-------------
* ``RetreadOrderNotFoundError`` -- unknown order, or a result for a tire
  that is not in the order.
* ``RetreadOrderEmptyError`` -- duplicating an order with no tires.
* ``InvalidOrderStateError`` -- action not legal for the order status.
* ``InvalidTireStateError`` -- tire not eligible, or result for an item
  that already has an outcome.
* ``TireCommittedToOrderError`` -- tire pending in another open order.
* ``ValidationError`` family -- empty or duplicated tire lists, supplier
  not a retread shop, negative costs or depths.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Any
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from tire_config import TireLedgerConfig
from tire_kernel.db.engine import transaction
from tire_kernel.domain.clock import Clock, SystemClock
from tire_kernel.domain.values import (
    LedgerEntryKind,
    ReferenceType,
    SupplierType,
    TireCategory,
)
from tire_kernel.exceptions import (
    InvalidOrderStateError,
    InvalidQuantityError,
    InvalidTireStateError,
    RetreadOrderEmptyError,
    RetreadOrderNotFoundError,
    TireCommittedToOrderError,
    ValidationError,
)
from tire_kernel.logging_config import LogContext, get_logger
from tire_kernel.models.supplier import Supplier
from tire_kernel.models.tire import Tire
from tire_kernel.services.base import load_for_update
from tire_kernel.services.supplier_ledger import SupplierLedger
from tire_kernel.services.workflow_executor import GuardExecutor, WorkflowExecutor
from tire_modules._helpers import document_number, resolve_actor, resolve_config
from tire_modules.lifecycle.custody import TireCustody
from tire_modules.lifecycle.workflows import (
    ACCEPT_RETREAD,
    ENQUEUE_RETREAD,
    RECALL_FROM_RETREAD,
    REJECT_RETREAD,
    RELEASE_FROM_RETREAD,
    SEND_TO_RETREAD,
)
from tire_modules.retread.models import (
    OPEN_ITEM_STATUSES,
    RetreadItemStatus,
    RetreadOrderInfo,
    RetreadOrderStatus,
    RetreadOutcome,
    RetreadQuality,
    RetreadReceiveResult,
    RetreadResult,
)
from tire_modules.retread.orm import (
    RetreadOrderItemModel,
    RetreadOrderModel,
    RetreadReceivedItemModel,
    RetreadReceivingModel,
    RetreadTimelineEntryModel,
    find_active_order_number,
)
from tire_modules.retread.workflows import (
    ALL_ITEMS_RESOLVED,
    CANCEL,
    NO_REJECTIONS,
    PARTIAL_OUTCOME,
    RECEIVE,
    RETREAD_ORDER_WORKFLOW,
    SEND,
)

logger = get_logger("modules.retread.service")


def retread_order_guards() -> GuardExecutor:
    return GuardExecutor({
        PARTIAL_OUTCOME.name: lambda ctx: ctx["rejected"] > 0 and (
            ctx["received"] > 0 or ctx["pending"] > 0
        ),
        ALL_ITEMS_RESOLVED.name: lambda ctx: ctx["pending"] == 0,
        NO_REJECTIONS.name: lambda ctx: ctx["rejected"] == 0,
    })


class RetreadService:
    """Retread-order batches sent to retread suppliers."""

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        config: TireLedgerConfig | None = None,
    ):
        self._session = session
        self._clock = clock or SystemClock()
        self._config = resolve_config(config)
        self._custody = TireCustody(session, self._clock)
        self._suppliers = SupplierLedger(session)
        self._executor = WorkflowExecutor(retread_order_guards())

    # =========================================================================
    # Queries
    # =========================================================================

    def get_order(self, order_id: UUID) -> RetreadOrderInfo:
        """The order with its items and timeline."""
        order = self._session.get(RetreadOrderModel, order_id)
        if order is None:
            raise RetreadOrderNotFoundError(str(order_id))
        return order.to_dto()

    def find_by_number(self, order_number: str) -> RetreadOrderInfo | None:
        order = self._session.execute(
            select(RetreadOrderModel).where(RetreadOrderModel.order_number == order_number)
        ).scalar_one_or_none()
        return order.to_dto() if order is not None else None

    def orders_in_status(self, status: RetreadOrderStatus) -> list[RetreadOrderInfo]:
        stmt = (
            select(RetreadOrderModel)
            .where(RetreadOrderModel.status == RetreadOrderStatus(status).value)
            .order_by(RetreadOrderModel.order_number)
        )
        return [o.to_dto() for o in self._session.execute(stmt).scalars()]

    # =========================================================================
    # Create / duplicate
    # =========================================================================

    def create_order(
        self,
        supplier_id: UUID,
        tire_ids: list[UUID],
        actor_id: UUID | None,
        estimated_costs: dict[UUID, Decimal] | None = None,
        expected_completion_date: date | None = None,
        notes: str | None = None,
    ) -> RetreadOrderInfo:
        """
        Open a DRAFT order for ``tire_ids`` at a retread supplier.

        Every tire must be USED_STORE or AWAITING_RETREAD and not pending
        in another open order; all tires are checked before the first
        write.  Included tires move to AWAITING_RETREAD without a custody
        movement.
        """
        actor = resolve_actor(actor_id, "create_retread_order", self._config)
        tire_ids = list(tire_ids)
        costs = dict(estimated_costs or {})
        self._validate_tire_list(tire_ids)
        for tire_id, cost in costs.items():
            if cost is not None and Decimal(cost) < 0:
                raise InvalidQuantityError("estimated_cost", cost)

        with LogContext.bind(operation="create_retread_order", actor_id=actor):
            with transaction(self._session, "create_retread_order"):
                order = self._build_order(
                    supplier_id, tire_ids, costs, actor,
                    expected_completion_date=expected_completion_date,
                    notes=notes,
                    timeline_note="Order created",
                )
                info = order.to_dto()

        logger.info(
            "retread_order_created",
            extra={
                "order_id": str(info.id),
                "order_number": info.order_number,
                "supplier_id": str(supplier_id),
                "tire_count": info.total_tires,
                "estimated_cost": info.estimated_cost,
            },
        )
        return info

    def duplicate(self, order_id: UUID, actor_id: UUID | None) -> RetreadOrderInfo:
        """
        Copy the supplier and tire set of an order into a new DRAFT order.

        The copied tires go through the same eligibility checks as
        ``create_order``; per-tire estimates are carried over.

        Raises:
            RetreadOrderNotFoundError: unknown source order.
            RetreadOrderEmptyError: source order has no tires.
        """
        actor = resolve_actor(actor_id, "duplicate_retread_order", self._config)
        with LogContext.bind(operation="duplicate_retread_order", actor_id=actor):
            with transaction(self._session, "duplicate_retread_order"):
                source = self._session.get(RetreadOrderModel, order_id)
                if source is None:
                    raise RetreadOrderNotFoundError(str(order_id))
                if not source.items:
                    raise RetreadOrderEmptyError(str(order_id))

                header = f"Duplicated from order {source.order_number}"
                order = self._build_order(
                    source.supplier_id,
                    [item.tire_id for item in source.items],
                    {item.tire_id: item.estimated_cost for item in source.items},
                    actor,
                    expected_completion_date=None,
                    notes=f"{header}\n{source.notes}" if source.notes else header,
                    timeline_note=f"Order duplicated from order {source.order_number}",
                )
                info = order.to_dto()
                source_number = source.order_number

        logger.info(
            "retread_order_duplicated",
            extra={
                "order_id": str(info.id),
                "order_number": info.order_number,
                "source_order_number": source_number,
                "tire_count": info.total_tires,
            },
        )
        return info

    def _validate_tire_list(self, tire_ids: list[UUID]) -> None:
        if not tire_ids:
            raise ValidationError("tire_ids", "an order needs at least one tire")
        if len(set(tire_ids)) != len(tire_ids):
            raise ValidationError("tire_ids", "a tire may appear only once per order")

    def _build_order(
        self,
        supplier_id: UUID,
        tire_ids: list[UUID],
        costs: dict[UUID, Decimal | None],
        actor: UUID,
        *,
        expected_completion_date: date | None,
        notes: str | None,
        timeline_note: str,
    ) -> RetreadOrderModel:
        supplier = self._suppliers.get_supplier(supplier_id)
        if supplier.supplier_type != SupplierType.RETREAD.value:
            raise ValidationError(
                "supplier_id", f"supplier {supplier.code} is not a retread supplier"
            )

        tires = self._custody.lock_many(tire_ids)
        for tire_id in tire_ids:
            tire = tires[tire_id]
            self._custody.check(tire, ENQUEUE_RETREAD)
            held_by = find_active_order_number(self._session, tire.id)
            if held_by is not None:
                raise TireCommittedToOrderError(str(tire.id), held_by)

        today = self._clock.today()
        order = RetreadOrderModel(
            order_number=document_number(
                self._session,
                RetreadOrderModel.order_number,
                self._config.retread.order_prefix,
                today.strftime("%y%m"),
            ),
            supplier_id=supplier_id,
            status=RETREAD_ORDER_WORKFLOW.initial_state,
            total_tires=len(tire_ids),
            estimated_cost=sum(
                (Decimal(c) for c in costs.values() if c is not None), Decimal("0")
            ),
            total_cost=Decimal("0"),
            expected_completion_date=expected_completion_date,
            notes=notes,
            created_by_id=actor,
        )
        self._session.add(order)
        self._session.flush()

        for line_no, tire_id in enumerate(tire_ids, start=1):
            cost = costs.get(tire_id)
            order.items.append(
                RetreadOrderItemModel(
                    tire_id=tire_id,
                    line_no=line_no,
                    status=RetreadItemStatus.PENDING.value,
                    estimated_cost=Decimal(cost) if cost is not None else None,
                    created_by_id=actor,
                )
            )
            tire = tires[tire_id]
            self._custody.move(
                tire,
                ENQUEUE_RETREAD,
                actor_id=actor,
                to_location=tire.current_location,
            )
        self._session.flush()
        self._append_timeline(order, timeline_note, actor)
        return order

    # =========================================================================
    # Send
    # =========================================================================

    def send(
        self,
        order_id: UUID,
        actor_id: UUID | None,
        sent_date: date | None = None,
    ) -> RetreadOrderInfo:
        """
        Ship a DRAFT order to its supplier.

        Every tire moves AWAITING_RETREAD -> AT_RETREAD_SUPPLIER with one
        movement each; the supplier is charged the estimated total.

        The charge is written once per sent order even when no per-tire
        estimates were given, in which case it is a RETREAD_SERVICE entry
        of 0.00 that leaves the balance unchanged and carries the order
        number as its reference.
        """
        actor = resolve_actor(actor_id, "send_retread_order", self._config)
        sent_date = sent_date or self._clock.today()

        with LogContext.bind(operation="send_retread_order", actor_id=actor, order_id=order_id):
            with transaction(self._session, "send_retread_order"):
                order = self._lock_order(order_id)
                new_status = self._resolve(order, SEND)
                supplier = self._session.get(Supplier, order.supplier_id)
                location = self._config.locations.retread_supplier(supplier.code)

                tires = self._custody.lock_many([item.tire_id for item in order.items])
                for item in order.items:
                    self._custody.move(
                        tires[item.tire_id],
                        SEND_TO_RETREAD,
                        actor_id=actor,
                        to_location=location,
                        reference_type=ReferenceType.RETREAD_ORDER,
                        reference_id=order.id,
                        supplier_id=order.supplier_id,
                        notes=f"Sent for retread on {order.order_number}",
                    )
                    item.status = RetreadItemStatus.SENT.value
                    item.updated_by_id = actor

                order.status = new_status
                order.sent_date = sent_date
                order.updated_by_id = actor
                self._session.flush()

                self._suppliers.append_charge(
                    supplier_id=order.supplier_id,
                    entry_date=sent_date,
                    description=f"Retread service {order.order_number}",
                    kind=LedgerEntryKind.RETREAD_SERVICE,
                    amount=order.estimated_cost,
                    reference=order.order_number,
                    actor_id=actor,
                    retread_order_id=order.id,
                )
                self._append_timeline(order, "Order sent to supplier", actor)
                info = order.to_dto()

        logger.info(
            "retread_order_sent",
            extra={
                "order_id": str(order_id),
                "order_number": info.order_number,
                "tire_count": info.total_tires,
                "estimated_cost": info.estimated_cost,
            },
        )
        return info

    # =========================================================================
    # Receive
    # =========================================================================

    def receive(
        self,
        order_id: UUID,
        results: list[RetreadResult],
        actor_id: UUID | None,
        received_date: date | None = None,
        notes: str | None = None,
    ) -> RetreadReceiveResult:
        """
        Record the supplier's outcome for some or all of the order's tires.

        Args:
            results: One RetreadResult per returning tire.  Tires not
                mentioned stay pending.
            received_date: Business date of the return; also the disposal
                date of rejected tires.

        Returns:
            RetreadReceiveResult with the refreshed order and the counts
            of this call.
        """
        actor = resolve_actor(actor_id, "receive_retread_order", self._config)
        results = [self._normalise(r) for r in results]
        if not results:
            raise ValidationError("results", "at least one tire result is required")
        tire_ids = [r.tire_id for r in results]
        if len(set(tire_ids)) != len(tire_ids):
            raise ValidationError("results", "a tire may appear only once per receipt")
        received_date = received_date or self._clock.today()

        with LogContext.bind(
            operation="receive_retread_order", actor_id=actor, order_id=order_id
        ):
            with transaction(self._session, "receive_retread_order"):
                order = self._lock_order(order_id)
                if order.status not in RETREAD_ORDER_WORKFLOW.sources_for(RECEIVE):
                    raise InvalidOrderStateError(str(order.id), order.status, RECEIVE)

                items = {}
                for result in results:
                    item = order.item_for(result.tire_id)
                    if item is None:
                        raise RetreadOrderNotFoundError(str(order.id), str(result.tire_id))
                    items[result.tire_id] = item
                tires = self._custody.lock_many(tire_ids)
                for result in results:
                    tire = tires[result.tire_id]
                    if RetreadItemStatus(items[result.tire_id].status) not in OPEN_ITEM_STATUSES:
                        raise InvalidTireStateError(str(tire.id), tire.status, "receive")
                    action = (
                        ACCEPT_RETREAD
                        if result.outcome is RetreadOutcome.RECEIVED
                        else REJECT_RETREAD
                    )
                    self._custody.check(tire, action)

                received = sum(1 for r in results if r.outcome is RetreadOutcome.RECEIVED)
                rejected = len(results) - received
                receiving = RetreadReceivingModel(
                    order_id=order.id,
                    received_date=received_date,
                    received_count=received,
                    rejected_count=rejected,
                    notes=notes,
                    created_by_id=actor,
                )
                self._session.add(receiving)
                self._session.flush()

                accepted_cost = Decimal("0")
                for result in results:
                    cost = self._apply_result(
                        order, receiving, items[result.tire_id], tires[result.tire_id],
                        result, received_date, actor,
                    )
                    if result.outcome is RetreadOutcome.RECEIVED:
                        accepted_cost += cost

                pending = sum(
                    1 for i in order.items
                    if RetreadItemStatus(i.status) in OPEN_ITEM_STATUSES
                )
                order.status = self._resolve(
                    order,
                    RECEIVE,
                    {"received": received, "rejected": rejected, "pending": pending},
                )
                order.received_date = received_date
                order.total_cost = (order.total_cost or Decimal("0")) + accepted_cost
                order.updated_by_id = actor
                self._session.flush()
                self._append_timeline(
                    order,
                    f"Order received: {received} tires received, {rejected} rejected",
                    actor,
                )
                outcome = RetreadReceiveResult(
                    order=order.to_dto(),
                    receiving_id=receiving.id,
                    received_count=received,
                    rejected_count=rejected,
                )

        logger.info(
            "retread_order_received",
            extra={
                "order_id": str(order_id),
                "order_number": outcome.order.order_number,
                "received_count": received,
                "rejected_count": rejected,
                "pending_count": outcome.order.pending_count,
                "order_status": outcome.order.status.value,
            },
        )
        return outcome

    def _normalise(self, result: RetreadResult) -> RetreadResult:
        try:
            outcome = RetreadOutcome(result.outcome)
            quality = RetreadQuality(result.quality)
        except ValueError as exc:
            raise ValidationError("results", str(exc)) from None
        if result.tread_depth is not None and Decimal(result.tread_depth) < 0:
            raise ValidationError("tread_depth", "must not be negative")
        if result.cost is not None and Decimal(result.cost) < 0:
            raise InvalidQuantityError("cost", result.cost)
        return RetreadResult(
            tire_id=result.tire_id,
            outcome=outcome,
            tread_depth=result.tread_depth,
            cost=result.cost,
            quality=quality,
            notes=result.notes,
        )

    def _apply_result(
        self,
        order: RetreadOrderModel,
        receiving: RetreadReceivingModel,
        item: RetreadOrderItemModel,
        tire: Tire,
        result: RetreadResult,
        received_date: date,
        actor: UUID,
    ) -> Decimal:
        if result.cost is not None:
            cost = Decimal(result.cost)
        else:
            cost = item.estimated_cost or Decimal("0")

        self._session.add(
            RetreadReceivedItemModel(
                receiving_id=receiving.id,
                tire_id=tire.id,
                outcome=result.outcome.value,
                tread_depth=result.tread_depth,
                quality=result.quality.value,
                cost=cost,
                notes=result.notes,
                created_by_id=actor,
            )
        )
        item.status = (
            RetreadItemStatus.RECEIVED.value
            if result.outcome is RetreadOutcome.RECEIVED
            else RetreadItemStatus.REJECTED.value
        )
        item.cost = cost
        item.notes = result.notes
        item.updated_by_id = actor

        tire.category = TireCategory.RETREADED.value
        tire.retread_count = (tire.retread_count or 0) + 1

        if result.outcome is RetreadOutcome.RECEIVED:
            self._custody.move(
                tire,
                ACCEPT_RETREAD,
                actor_id=actor,
                to_location=self._config.locations.warehouse,
                reference_type=ReferenceType.RETREAD_ORDER,
                reference_id=order.id,
                supplier_id=order.supplier_id,
                notes=result.notes or "Returned from retreading",
            )
        else:
            policy = self._config.retread
            tire.disposal_date = received_date
            tire.disposal_reason = policy.rejection_reason
            tire.disposal_method = policy.rejection_method
            tire.disposal_authorized_by = actor
            tire.disposal_notes = result.notes or policy.rejection_note
            self._custody.move(
                tire,
                REJECT_RETREAD,
                actor_id=actor,
                to_location=self._config.locations.disposal,
                reference_type=ReferenceType.RETREAD_ORDER,
                reference_id=order.id,
                supplier_id=order.supplier_id,
                notes=result.notes or policy.rejection_note,
            )
        return cost

    # =========================================================================
    # Cancel / delete
    # =========================================================================

    def cancel(
        self,
        order_id: UUID,
        actor_id: UUID | None,
        reason: str | None = None,
    ) -> RetreadOrderInfo:
        """
        Cancel a DRAFT or SENT order and return its tires to USED_STORE.

        Tires coming back from the supplier (SENT order) get a
        RETREAD_SUPPLIER_TO_STORE movement; tires of a DRAFT order never
        left the warehouse and get none.
        """
        actor = resolve_actor(actor_id, "cancel_retread_order", self._config)
        with LogContext.bind(operation="cancel_retread_order", actor_id=actor, order_id=order_id):
            with transaction(self._session, "cancel_retread_order"):
                order = self._lock_order(order_id)
                new_status = self._resolve(order, CANCEL)
                was_sent = order.status == RetreadOrderStatus.SENT.value
                self._release_tires(order, actor, recall=was_sent)
                order.status = new_status
                order.updated_by_id = actor
                self._session.flush()
                note = "Order cancelled" if not reason else f"Order cancelled: {reason}"
                self._append_timeline(order, note, actor)
                info = order.to_dto()

        logger.info(
            "retread_order_cancelled",
            extra={
                "order_id": str(order_id),
                "order_number": info.order_number,
                "was_sent": was_sent,
                "tire_count": info.total_tires,
            },
        )
        return info

    def delete_draft(self, order_id: UUID, actor_id: UUID | None) -> None:
        """
        Delete a DRAFT order with its items and timeline.

        Raises:
            RetreadOrderNotFoundError: unknown order.
            InvalidOrderStateError: order is not DRAFT.
        """
        actor = resolve_actor(actor_id, "delete_retread_draft", self._config)
        with LogContext.bind(operation="delete_retread_draft", actor_id=actor, order_id=order_id):
            with transaction(self._session, "delete_retread_draft"):
                order = self._lock_order(order_id)
                if order.status != RetreadOrderStatus.DRAFT.value:
                    raise InvalidOrderStateError(str(order.id), order.status, "delete")
                order_number = order.order_number
                self._release_tires(order, actor, recall=False)
                self._session.delete(order)
                self._session.flush()

        logger.info(
            "retread_draft_deleted",
            extra={"order_id": str(order_id), "order_number": order_number},
        )

    def _release_tires(self, order: RetreadOrderModel, actor: UUID, recall: bool) -> None:
        open_items = [
            item for item in order.items
            if RetreadItemStatus(item.status) in OPEN_ITEM_STATUSES
        ]
        if not open_items:
            return
        tires = self._custody.lock_many([item.tire_id for item in open_items])
        for item in open_items:
            tire = tires[item.tire_id]
            if recall:
                self._custody.move(
                    tire,
                    RECALL_FROM_RETREAD,
                    actor_id=actor,
                    to_location=self._config.locations.warehouse,
                    reference_type=ReferenceType.RETREAD_ORDER,
                    reference_id=order.id,
                    supplier_id=order.supplier_id,
                    notes=f"Recalled on cancellation of {order.order_number}",
                )
            else:
                self._custody.move(
                    tire,
                    RELEASE_FROM_RETREAD,
                    actor_id=actor,
                    to_location=tire.current_location,
                )

    # =========================================================================
    # Internals
    # =========================================================================

    def _lock_order(self, order_id: UUID) -> RetreadOrderModel:
        order = load_for_update(self._session, RetreadOrderModel, order_id)
        if order is None:
            raise RetreadOrderNotFoundError(str(order_id))
        return order

    def _resolve(
        self,
        order: RetreadOrderModel,
        action: str,
        context: dict[str, Any] | None = None,
    ) -> str:
        result = self._executor.execute_transition(
            workflow=RETREAD_ORDER_WORKFLOW,
            entity_type="RetreadOrder",
            entity_id=order.id,
            current_state=order.status,
            action=action,
            context=context,
        )
        if not result.success:
            raise InvalidOrderStateError(str(order.id), order.status, action)
        return result.new_state

    def _append_timeline(self, order: RetreadOrderModel, note: str, actor: UUID) -> None:
        order.timeline.append(
            RetreadTimelineEntryModel(
                entry_no=len(order.timeline) + 1,
                status=order.status,
                note=note,
                recorded_at=self._clock.now(),
                created_by_id=actor,
            )
        )
        self._session.flush()
