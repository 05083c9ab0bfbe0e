"""
Tire custody transitions (``tire_modules.lifecycle.custody``).

Responsibility
--------------
The single place where a tire's status and location change.  ``move``
resolves the transition against ``TIRE_LIFECYCLE_WORKFLOW``, applies the
new status and location to the (already locked) Tire row, and appends
the Movement Log entry the transition declares.  Assignment, intake,
retread and lifecycle services all call it, so a status change without
its movement cannot be written.

Invariants
----------
- A transition not in the workflow raises InvalidTireStateError before
  the row is touched.
- A transition that declares a movement type writes exactly one
  Movement, from the tire's previous location to its new one.
- Never commits; runs inside the calling service's transaction.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Any
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from tire_kernel.domain.clock import Clock
from tire_kernel.domain.values import MovementType, ReferenceType, TireCategory, TireStatus
from tire_kernel.domain.workflow import Transition
from tire_kernel.exceptions import InvalidTireStateError, TireNotFoundError
from tire_kernel.models.movement import Movement
from tire_kernel.models.tire import Tire
from tire_kernel.services.base import load_for_update
from tire_kernel.services.movement_log import MovementLog
from tire_kernel.services.workflow_executor import WorkflowExecutor
from tire_modules.lifecycle.workflows import TIRE_LIFECYCLE_WORKFLOW


class TireCustody:

    def __init__(
        self,
        session: Session,
        clock: Clock,
        executor: WorkflowExecutor | None = None,
    ):
        self._session = session
        self._movements = MovementLog(session, clock)
        self._executor = executor or WorkflowExecutor()

    def lock(self, tire_id: UUID) -> Tire:
        tire = load_for_update(self._session, Tire, tire_id)
        if tire is None:
            raise TireNotFoundError(str(tire_id))
        return tire

    def lock_many(self, tire_ids: list[UUID]) -> dict[UUID, Tire]:
        """Lock several tires in id order; raises on the first unknown id."""
        stmt = (
            select(Tire)
            .where(Tire.id.in_(tire_ids))
            .order_by(Tire.id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        found = {t.id: t for t in self._session.execute(stmt).scalars()}
        for tire_id in tire_ids:
            if tire_id not in found:
                raise TireNotFoundError(str(tire_id))
        return found

    def check(
        self,
        tire: Tire,
        action: str,
        to_state: TireStatus | None = None,
        context: dict[str, Any] | None = None,
    ) -> Transition:
        """Resolve the transition for ``action`` or raise InvalidTireStateError."""
        result = self._executor.execute_transition(
            workflow=TIRE_LIFECYCLE_WORKFLOW,
            entity_type="Tire",
            entity_id=tire.id,
            current_state=tire.status,
            action=action,
            to_state=TireStatus(to_state).value if to_state else None,
            context=context,
        )
        if not result.success:
            raise InvalidTireStateError(str(tire.id), tire.status, action)
        return result.transition

    def move(
        self,
        tire: Tire,
        action: str,
        *,
        actor_id: UUID,
        to_location: str,
        to_state: TireStatus | None = None,
        reference_type: ReferenceType | None = None,
        reference_id: UUID | None = None,
        vehicle_id: UUID | None = None,
        supplier_id: UUID | None = None,
        notes: str | None = None,
    ) -> Movement | None:
        transition = self.check(tire, action, to_state)
        from_location = tire.current_location

        tire.status = transition.to_state
        tire.current_location = to_location
        tire.updated_by_id = actor_id
        self._session.flush()

        if transition.movement_type is None:
            return None
        return self._movements.record(
            tire_id=tire.id,
            movement_type=transition.movement_type,
            from_location=from_location,
            to_location=to_location,
            actor_id=actor_id,
            reference_type=reference_type,
            reference_id=reference_id,
            vehicle_id=vehicle_id,
            supplier_id=supplier_id,
            notes=notes,
        )

    def admit(
        self,
        *,
        serial_number: str,
        size: str,
        brand: str,
        category: TireCategory,
        location: str,
        actor_id: UUID,
        from_location: str,
        model: str | None = None,
        acquisition_cost: Decimal | None = None,
        supplier_id: UUID | None = None,
        acquisition_date: date | None = None,
        reference_type: ReferenceType | None = None,
        reference_id: UUID | None = None,
        purchase_order_line_id: UUID | None = None,
        grn_id: UUID | None = None,
        grn_item_id: UUID | None = None,
        notes: str | None = None,
    ) -> Tire:
        """
        Create an IN_STORE tire at ``location`` and open its history.

        Serial uniqueness is the caller's check; the unique constraint on
        ``tires.serial_number`` backs it at flush.
        """
        tire = Tire(
            serial_number=serial_number,
            size=size,
            brand=brand,
            model=model,
            category=TireCategory(category).value,
            status=TIRE_LIFECYCLE_WORKFLOW.initial_state,
            acquisition_cost=acquisition_cost,
            supplier_id=supplier_id,
            acquisition_date=acquisition_date,
            current_location=location,
            retread_count=0,
            purchase_order_line_id=purchase_order_line_id,
            grn_id=grn_id,
            grn_item_id=grn_item_id,
            notes=notes,
            created_by_id=actor_id,
        )
        self._session.add(tire)
        self._session.flush()
        self.record_intake(
            tire,
            actor_id=actor_id,
            from_location=from_location,
            reference_type=reference_type,
            reference_id=reference_id,
            supplier_id=supplier_id,
            notes=notes,
        )
        return tire

    def record_intake(
        self,
        tire: Tire,
        *,
        actor_id: UUID,
        from_location: str,
        reference_type: ReferenceType | None = None,
        reference_id: UUID | None = None,
        supplier_id: UUID | None = None,
        notes: str | None = None,
    ) -> Movement:
        """Write the PURCHASE_TO_STORE movement that opens a new tire's history."""
        return self._movements.record(
            tire_id=tire.id,
            movement_type=MovementType.PURCHASE_TO_STORE,
            from_location=from_location,
            to_location=tire.current_location,
            actor_id=actor_id,
            reference_type=reference_type,
            reference_id=reference_id,
            supplier_id=supplier_id,
            notes=notes,
        )
