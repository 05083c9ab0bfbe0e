"""
Tire Lifecycle Module Service (``tire_modules.lifecycle.service``).

Responsibility
--------------
Direct tire registration, manual disposal (single and bulk), disposal
reversal and bulk queueing of used tires for retreading.  Status and
location changes go through ``TireCustody``; supplier charges through the
kernel ``SupplierLedger``.

Architecture position
---------------------
**Modules layer** -- transaction-owning orchestration.

Invariants enforced
-------------------
* ``dispose`` lands on SCRAP for method SCRAP and on DISPOSED for every
  other method, closes an open assignment on the way and refuses a tire
  still awaiting an outcome in an active retread order.
* ``reverse_disposal`` is legal only from DISPOSED or SCRAP, lands on
  USED_STORE at the warehouse and clears every disposal field.  The
  retread counter is left as it is.
* Bulk operations run one transaction per tire and report an outcome
  per requested tire; one failing tire never undoes another.

Failure modes
-------------
* ``InvalidTireSpecError`` / ``DuplicateSerialError`` -- registration.
* ``TireNotFoundError`` -- unknown tire.
* ``InvalidTireStateError`` -- transition not legal from current status.
* ``TireCommittedToOrderError`` -- disposal of a tire held by an order.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from tire_config import TireLedgerConfig
from tire_kernel.db.engine import transaction
from tire_kernel.domain.clock import Clock, SystemClock
from tire_kernel.domain.dtos import TireInfo
from tire_kernel.domain.values import (
    DisposalMethod,
    LedgerEntryKind,
    TireCategory,
    TireStatus,
)
from tire_kernel.exceptions import (
    DuplicateSerialError,
    InvalidTireSpecError,
    TireCommittedToOrderError,
    TireKernelError,
    TireNotFoundError,
    ValidationError,
)
from tire_kernel.logging_config import LogContext, get_logger
from tire_kernel.models.assignment import TireAssignment
from tire_kernel.models.tire import Tire
from tire_kernel.services.supplier_ledger import SupplierLedger
from tire_modules._helpers import resolve_actor, resolve_config
from tire_modules.lifecycle.custody import TireCustody
from tire_modules.lifecycle.models import (
    BulkDisposalResult,
    BulkRetreadQueueResult,
    TireOutcome,
)
from tire_modules.lifecycle.workflows import DISPOSE, MARK_FOR_RETREAD, REVERSE_DISPOSAL
from tire_modules.retread.orm import find_active_order_number

logger = get_logger("modules.lifecycle.service")


class TireLifecycleService:
    """Registration, disposal, reversal and retread queueing."""

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

    # =========================================================================
    # Registration
    # =========================================================================

    def register_tire(
        self,
        serial_number: str,
        size: str,
        brand: str,
        actor_id: UUID | None,
        model: str | None = None,
        category: TireCategory = TireCategory.NEW,
        cost: Decimal | None = None,
        supplier_id: UUID | None = None,
        acquisition_date: date | None = None,
        notes: str | None = None,
    ) -> TireInfo:
        """
        Enter a directly purchased tire into the warehouse.

        Creates the tire IN_STORE with a PURCHASE_TO_STORE movement.  When
        a supplier and a positive cost are given, one PURCHASE charge is
        appended to the supplier's ledger in the same transaction.

        Raises:
            ValidationError: blank serial or brand, negative cost.
            InvalidTireSpecError: size not in the catalog, unknown category.
            DuplicateSerialError: serial already registered.
            SupplierNotFoundError: unknown supplier.
        """
        actor = resolve_actor(actor_id, "register_tire", self._config)
        category = self._validate_spec(serial_number, size, brand, category, cost)
        acquired = acquisition_date or self._clock.today()

        with LogContext.bind(operation="register_tire", actor_id=actor):
            with transaction(self._session, "register_tire"):
                exists = self._session.execute(
                    select(Tire.id).where(Tire.serial_number == serial_number)
                ).first()
                if exists is not None:
                    raise DuplicateSerialError(serial_number, existing=True)
                if supplier_id is not None:
                    self._suppliers.get_supplier(supplier_id)

                tire = self._custody.admit(
                    serial_number=serial_number,
                    size=size,
                    brand=brand,
                    model=model,
                    category=category,
                    location=self._config.locations.warehouse,
                    actor_id=actor,
                    from_location=self._config.locations.supplier_intake,
                    acquisition_cost=cost,
                    supplier_id=supplier_id,
                    acquisition_date=acquired,
                    notes=notes,
                )
                if supplier_id is not None and cost is not None and Decimal(cost) > 0:
                    self._suppliers.append_charge(
                        supplier_id=supplier_id,
                        entry_date=acquired,
                        description=f"Tire purchase {serial_number}",
                        kind=LedgerEntryKind.PURCHASE,
                        amount=Decimal(cost),
                        reference=serial_number,
                        actor_id=actor,
                    )
                info = tire.to_dto()

        logger.info(
            "tire_registered",
            extra={
                "tire_id": str(info.id),
                "serial_number": serial_number,
                "size": size,
                "category": info.category.value,
            },
        )
        return info

    def _validate_spec(self, serial_number, size, brand, category, cost) -> TireCategory:
        if not serial_number or not serial_number.strip():
            raise ValidationError("serial_number", "must not be blank")
        if not brand or not brand.strip():
            raise ValidationError("brand", "must not be blank")
        if not self._config.catalog.is_valid_size(size):
            raise InvalidTireSpecError("size", size, self._config.catalog.sizes)
        try:
            category = TireCategory(category)
        except ValueError:
            raise InvalidTireSpecError(
                "category", str(category), tuple(c.value for c in TireCategory)
            ) from None
        if cost is not None and Decimal(cost) < 0:
            raise ValidationError("cost", "must not be negative")
        return category

    def get_tire(self, tire_id: UUID) -> TireInfo:
        tire = self._session.get(Tire, tire_id)
        if tire is None:
            raise TireNotFoundError(str(tire_id))
        return tire.to_dto()

    # =========================================================================
    # Disposal
    # =========================================================================

    def dispose(
        self,
        tire_id: UUID,
        reason: str,
        actor_id: UUID | None,
        method: DisposalMethod = DisposalMethod.DISPOSAL,
        authorized_by: UUID | None = None,
        notes: str | None = None,
        disposal_date: date | None = None,
    ) -> TireInfo:
        """
        Take a tire out of service.

        Raises:
            ValidationError: blank reason or unknown method.
            TireNotFoundError: unknown tire.
            InvalidTireStateError: tire already DISPOSED or SCRAP.
            TireCommittedToOrderError: tire awaits an outcome in an active
                retread order.
        """
        actor = resolve_actor(actor_id, "dispose", self._config)
        if not reason or not reason.strip():
            raise ValidationError("reason", "must not be blank")
        try:
            method = DisposalMethod(method)
        except ValueError:
            raise ValidationError("method", f"unknown disposal method '{method}'") from None

        with LogContext.bind(operation="dispose", actor_id=actor, tire_id=tire_id):
            with transaction(self._session, "dispose"):
                tire = self._dispose_one(
                    tire_id, reason, actor, method, authorized_by, notes,
                    disposal_date or self._clock.today(),
                )
                info = tire.to_dto()

        logger.info(
            "tire_disposed",
            extra={
                "tire_id": str(tire_id),
                "status": info.status.value,
                "method": method.value,
                "reason": reason,
            },
        )
        return info

    def dispose_many(
        self,
        tire_ids: list[UUID],
        reason: str,
        actor_id: UUID | None,
        method: DisposalMethod = DisposalMethod.DISPOSAL,
        authorized_by: UUID | None = None,
        notes: str | None = None,
        disposal_date: date | None = None,
    ) -> BulkDisposalResult:
        """
        Dispose several tires, each in its own transaction.

        A failing tire is reported in the result and does not stop the
        remaining ones.  Validation of the shared arguments (actor, reason,
        method) still fails the whole call before any tire is touched.
        """
        actor = resolve_actor(actor_id, "dispose_many", self._config)
        if not reason or not reason.strip():
            raise ValidationError("reason", "must not be blank")
        try:
            method = DisposalMethod(method)
        except ValueError:
            raise ValidationError("method", f"unknown disposal method '{method}'") from None
        when = disposal_date or self._clock.today()

        outcomes = []
        with LogContext.bind(operation="dispose_many", actor_id=actor):
            for tire_id in tire_ids:
                try:
                    with transaction(self._session, "dispose"):
                        tire = self._dispose_one(
                            tire_id, reason, actor, method, authorized_by, notes, when
                        )
                        info = tire.to_dto()
                except TireKernelError as exc:
                    outcomes.append(
                        TireOutcome(tire_id=tire_id, error_code=exc.code, error=str(exc))
                    )
                    continue
                outcomes.append(TireOutcome(tire_id=tire_id, tire=info))

        result = BulkDisposalResult(outcomes=tuple(outcomes))
        logger.info(
            "tires_disposed_bulk",
            extra={
                "requested": len(tire_ids),
                "succeeded": len(result.succeeded),
                "failed": len(result.failed),
            },
        )
        return result

    def _dispose_one(
        self,
        tire_id: UUID,
        reason: str,
        actor: UUID,
        method: DisposalMethod,
        authorized_by: UUID | None,
        notes: str | None,
        disposal_date: date,
    ) -> Tire:
        tire = self._custody.lock(tire_id)
        target = TireStatus.SCRAP if method is DisposalMethod.SCRAP else TireStatus.DISPOSED
        self._custody.check(tire, DISPOSE, target)
        self._refuse_if_committed(tire)

        assignment = self._session.execute(
            select(TireAssignment)
            .where(TireAssignment.tire_id == tire.id, TireAssignment.removal_date.is_(None))
            .with_for_update()
        ).scalar_one_or_none()
        vehicle_id = None
        if assignment is not None:
            vehicle_id = assignment.vehicle_id
            assignment.close(disposal_date, None, reason, actor)
            self._session.flush()

        tire.disposal_date = disposal_date
        tire.disposal_reason = reason
        tire.disposal_method = method.value
        tire.disposal_authorized_by = authorized_by
        tire.disposal_notes = notes
        self._custody.move(
            tire,
            DISPOSE,
            actor_id=actor,
            to_location=self._config.locations.disposal,
            to_state=target,
            vehicle_id=vehicle_id,
            notes=f"{method.value}: {reason}",
        )
        return tire

    def _refuse_if_committed(self, tire: Tire) -> None:
        order_number = find_active_order_number(self._session, tire.id)
        if order_number is not None:
            raise TireCommittedToOrderError(str(tire.id), order_number)

    def reverse_disposal(
        self,
        tire_id: UUID,
        actor_id: UUID | None,
        reason: str | None = None,
    ) -> TireInfo:
        """
        Undo a disposal as an administrative correction.

        Raises:
            TireNotFoundError: unknown tire.
            InvalidTireStateError: tire is not DISPOSED or SCRAP.
        """
        actor = resolve_actor(actor_id, "reverse_disposal", self._config)
        with LogContext.bind(operation="reverse_disposal", actor_id=actor, tire_id=tire_id):
            with transaction(self._session, "reverse_disposal"):
                tire = self._custody.lock(tire_id)
                self._custody.check(tire, REVERSE_DISPOSAL)
                previous = tire.status
                tire.clear_disposal()
                self._custody.move(
                    tire,
                    REVERSE_DISPOSAL,
                    actor_id=actor,
                    to_location=self._config.locations.warehouse,
                    notes=reason or "Disposal reversed",
                )
                info = tire.to_dto()

        logger.info(
            "tire_disposal_reversed",
            extra={"tire_id": str(tire_id), "from_status": previous, "reason": reason},
        )
        return info

    # =========================================================================
    # Retread queue
    # =========================================================================

    def mark_for_retread(
        self,
        tire_ids: list[UUID],
        actor_id: UUID | None,
        notes: str | None = None,
    ) -> BulkRetreadQueueResult:
        """
        Move used tires to AWAITING_RETREAD, one transaction per tire.

        Each queued tire gets an INTERNAL_TRANSFER movement within the
        warehouse.  Tires not in USED_STORE are reported as failures.
        """
        actor = resolve_actor(actor_id, "mark_for_retread", self._config)
        warehouse = self._config.locations.warehouse
        outcomes = []
        with LogContext.bind(operation="mark_for_retread", actor_id=actor):
            for tire_id in tire_ids:
                try:
                    with transaction(self._session, "mark_for_retread"):
                        tire = self._custody.lock(tire_id)
                        self._custody.move(
                            tire,
                            MARK_FOR_RETREAD,
                            actor_id=actor,
                            to_location=warehouse,
                            notes=notes or "Queued for retread",
                        )
                        info = tire.to_dto()
                except TireKernelError as exc:
                    outcomes.append(
                        TireOutcome(tire_id=tire_id, error_code=exc.code, error=str(exc))
                    )
                    continue
                outcomes.append(TireOutcome(tire_id=tire_id, tire=info))

        result = BulkRetreadQueueResult(outcomes=tuple(outcomes))
        logger.info(
            "tires_marked_for_retread",
            extra={
                "requested": len(tire_ids),
                "succeeded": len(result.succeeded),
                "failed": len(result.failed),
            },
        )
        return result
