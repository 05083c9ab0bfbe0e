"""
Canonical workflow types (``tire_kernel.domain.workflow``).

Responsibility
--------------
Pure value objects for the state machines of the ledger: the tire
lifecycle and the retread-order batch lifecycle.  Guard, Transition and
Workflow are defined once here; modules declare their machines in their
own ``workflows.py``.

Architecture position
---------------------
**Kernel domain layer** -- pure value objects.  ZERO I/O.

Invariants enforced
-------------------
* Transitions reference only states in ``Workflow.states``.
* ``initial_state`` is a member of ``states``.
* Terminal states have no outgoing transitions other than those whose
  action is explicitly listed in ``escape_actions`` (administrative
  corrections such as disposal reversal).
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Guard:
    """A named precondition attached to a transition (descriptive only)."""
    name: str
    description: str


@dataclass(frozen=True)
class Transition:
    """A legal state change.

    ``movement_type`` names the Movement Log entry the transition writes,
    or None when the change is not a custody movement.
    """
    from_state: str
    to_state: str
    action: str
    guard: Guard | None = None
    movement_type: str | None = None


@dataclass(frozen=True)
class Workflow:
    """A state machine definition for an entity lifecycle."""
    name: str
    description: str
    initial_state: str
    states: tuple[str, ...]
    transitions: tuple[Transition, ...]
    terminal_states: tuple[str, ...] = ()
    escape_actions: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        if self.initial_state not in self.states:
            raise ValueError(
                f"Workflow {self.name}: initial state {self.initial_state} not in states"
            )
        for t in self.transitions:
            if t.from_state not in self.states or t.to_state not in self.states:
                raise ValueError(
                    f"Workflow {self.name}: transition {t.from_state}->{t.to_state} "
                    "references an undeclared state"
                )
            if t.from_state in self.terminal_states and t.action not in self.escape_actions:
                raise ValueError(
                    f"Workflow {self.name}: terminal state {t.from_state} "
                    f"has outgoing action {t.action}"
                )

    def find(
        self,
        from_state: str,
        action: str,
        to_state: str | None = None,
    ) -> Transition | None:
        """Return the transition for (from_state, action[, to_state]) or None."""
        for t in self.transitions:
            if t.from_state != from_state or t.action != action:
                continue
            if to_state is None or t.to_state == to_state:
                return t
        return None

    def actions_from(self, state: str) -> tuple[str, ...]:
        return tuple(dict.fromkeys(t.action for t in self.transitions if t.from_state == state))

    def sources_for(self, action: str) -> frozenset[str]:
        """States from which ``action`` is legal."""
        return frozenset(t.from_state for t in self.transitions if t.action == action)

    def allows(self, from_state: str, to_state: str) -> bool:
        return any(
            t.from_state == from_state and t.to_state == to_state
            for t in self.transitions
        )
