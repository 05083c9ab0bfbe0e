"""
tire_kernel.services.workflow_executor -- state transition checks.

Responsibility:
    Resolves whether an action is legal for an entity's current state
    under a declared ``Workflow``, evaluating transition guards against a
    caller-supplied context.  The executor never touches the database:
    module services ask it for a ``TransitionResult`` and then apply the
    new state themselves, raising their own InvalidState error on failure.

Architecture position:
    Kernel > Services.  Pure apart from structured logging.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Any, Callable
from uuid import UUID

from tire_kernel.domain.workflow import Guard, Transition, Workflow
from tire_kernel.logging_config import get_logger

logger = get_logger("services.workflow_executor")

OUTCOME_SUCCESS = "success"
OUTCOME_NO_TRANSITION = "no_transition"
OUTCOME_GUARD_FAILED = "guard_failed"

GuardEvaluator = Callable[[dict[str, Any]], bool]


@dataclass(frozen=True)
class TransitionResult:
    success: bool
    transition: Transition | None = None
    reason: str | None = None

    @property
    def new_state(self) -> str | None:
        return self.transition.to_state if self.transition else None

    @property
    def movement_type(self) -> str | None:
        return self.transition.movement_type if self.transition else None


class GuardExecutor:
    """Evaluates workflow guards by name.  Unknown guards fail closed."""

    def __init__(self, evaluators: dict[str, GuardEvaluator] | None = None) -> None:
        self._evaluators: dict[str, GuardEvaluator] = dict(evaluators or {})

    def register(self, guard_name: str, evaluator: GuardEvaluator) -> None:
        self._evaluators[guard_name] = evaluator

    def evaluate(self, guard: Guard, context: dict[str, Any]) -> bool:
        fn = self._evaluators.get(guard.name)
        if fn is None:
            logger.warning("guard_no_evaluator", extra={"guard_name": guard.name})
            return False
        return bool(fn(context))


class WorkflowExecutor:
    """
    Finds the transition for (current_state, action) and checks its guard.

    When ``to_state`` is omitted and several transitions share the same
    (state, action), candidates are tried in declaration order and the
    first whose guard passes wins.
    """

    def __init__(self, guard_executor: GuardExecutor | None = None) -> None:
        self._guards = guard_executor or GuardExecutor()

    def execute_transition(
        self,
        workflow: Workflow,
        entity_type: str,
        entity_id: UUID | str,
        current_state: str,
        action: str,
        to_state: str | None = None,
        context: dict[str, Any] | None = None,
    ) -> TransitionResult:
        t0 = time.monotonic()
        ctx = context or {}
        candidates = [
            t for t in workflow.transitions
            if t.from_state == current_state
            and t.action == action
            and (to_state is None or t.to_state == to_state)
        ]

        if not candidates:
            result = TransitionResult(
                success=False,
                reason=(
                    f"No transition from '{current_state}' via action '{action}' "
                    f"in workflow '{workflow.name}'"
                ),
            )
            outcome = OUTCOME_NO_TRANSITION
        else:
            result = None
            for candidate in candidates:
                if candidate.guard is None or self._guards.evaluate(candidate.guard, ctx):
                    result = TransitionResult(success=True, transition=candidate)
                    break
            if result is None:
                names = ", ".join(c.guard.name for c in candidates if c.guard)
                result = TransitionResult(
                    success=False,
                    reason=f"Guard not satisfied: {names}",
                )
                outcome = OUTCOME_GUARD_FAILED
            else:
                outcome = OUTCOME_SUCCESS

        logger.debug(
            "workflow_transition",
            extra={
                "workflow": workflow.name,
                "entity_type": entity_type,
                "entity_id": str(entity_id),
                "action": action,
                "from_state": current_state,
                "to_state": result.new_state,
                "outcome": outcome,
                "duration_ms": round((time.monotonic() - t0) * 1000, 3),
            },
        )
        return result
