"""
Canonical workflow types (``supply_kernel.domain.workflow``).

Responsibility
--------------
Pure value objects for document state machines.  Used by every module
(procurement, receiving, payments) so that Guard, Transition and Workflow
are defined once, and so that status changes are checked against a declared
table rather than ad-hoc ``if`` chains.

Architecture position
---------------------
**Kernel domain layer** -- pure value objects.  No imports from ``db/``,
``services/``, ``selectors/``, or outer layers.

Invariants enforced
-------------------
* Transitions reference only states in ``Workflow.states``.
* ``initial_state`` is a member of ``states``.
* ``transition_for`` is the only sanctioned way to resolve an action.
"""

from __future__ import annotations

from dataclasses import dataclass

from supply_kernel.exceptions import InvalidTransitionError


@dataclass(frozen=True)
class Guard:
    """A condition that must be satisfied before a transition fires.

    Contract: frozen, descriptive only.
    Non-goals: does not evaluate the condition -- the owning service does.
    """
    name: str
    description: str


@dataclass(frozen=True)
class Transition:
    """A valid state transition in a workflow.

    ``posts_entry=True`` marks a transition that writes to the inventory ledger.
    ``requires_elevated_role=True`` marks a transition gated by actor role.
    """
    from_state: str
    to_state: str
    action: str
    guard: Guard | None = None
    posts_entry: bool = False
    requires_elevated_role: bool = False


@dataclass(frozen=True)
class Workflow:
    """A state machine definition for a document lifecycle.

    Contract: frozen; ``transitions`` reference only states in ``states``.
    ``terminal_states`` are states with no outgoing transitions.
    """
    name: str
    description: str
    initial_state: str
    states: tuple[str, ...]
    transitions: tuple[Transition, ...]
    terminal_states: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        if self.initial_state not in self.states:
            raise ValueError(
                f"Workflow {self.name}: initial state '{self.initial_state}' "
                "is not a declared state"
            )
        for t in self.transitions:
            if t.from_state not in self.states or t.to_state not in self.states:
                raise ValueError(
                    f"Workflow {self.name}: transition {t.action} "
                    f"{t.from_state}->{t.to_state} uses an undeclared state"
                )

    def actions_from(self, state: str) -> tuple[str, ...]:
        """Actions available from ``state``."""
        return tuple(t.action for t in self.transitions if t.from_state == state)

    def can(self, state: str, action: str) -> bool:
        return any(
            t.from_state == state and t.action == action for t in self.transitions
        )

    def transition_for(
        self, state: str, action: str, *, entity_id: str = ""
    ) -> Transition:
        """
        Resolve ``action`` from ``state``.

        Raises:
            InvalidTransitionError: if the workflow declares no such transition.
        """
        for t in self.transitions:
            if t.from_state == state and t.action == action:
                return t
        raise InvalidTransitionError(
            entity_type=self.name,
            entity_id=entity_id,
            current_state=state,
            action=action,
        )
