"""
Canonical workflow types (``backoffice_kernel.domain.workflow``).

Responsibility
--------------
Pure value objects for the fixed, domain-specific state machines of
Purchase and Reimbursement.  A ``Workflow`` is the single declaration of
which ``(from_state, action) -> to_state`` moves exist; services consult it
before writing, and tests enumerate it to prove every other pair is
rejected.

Architecture position
---------------------
**Kernel domain layer** -- pure value objects.  ZERO I/O.

Invariants enforced
-------------------
* Transitions reference only states in ``Workflow.states``.
* ``initial_state`` is a member of ``states``.
* Terminal states have no outgoing transitions.
* At most one transition per ``(from_state, action)`` pair.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Guard:
    """A named condition checked by the service before a transition fires.

    Descriptive only; evaluation lives in the owning service.
    """
    name: str
    description: str


@dataclass(frozen=True)
class Transition:
    """A valid state transition.

    ``syncs_finance=True`` marks the settlement transition that must
    materialize a finance expense record in the same transaction.
    """
    from_state: str
    to_state: str
    action: str
    guards: tuple[Guard, ...] = ()
    syncs_finance: bool = False


@dataclass(frozen=True)
class Workflow:
    """A state machine definition for a document lifecycle."""
    name: str
    description: str
    initial_state: str
    states: tuple[str, ...]
    transitions: tuple[Transition, ...]
    terminal_states: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        if self.initial_state not in self.states:
            raise ValueError(
                f"{self.name}: initial_state {self.initial_state!r} not in states"
            )
        seen: set[tuple[str, str]] = set()
        for t in self.transitions:
            for state in (t.from_state, t.to_state):
                if state not in self.states:
                    raise ValueError(f"{self.name}: unknown state {state!r} in {t}")
            if t.from_state in self.terminal_states:
                raise ValueError(
                    f"{self.name}: terminal state {t.from_state!r} has outgoing transition"
                )
            key = (t.from_state, t.action)
            if key in seen:
                raise ValueError(f"{self.name}: duplicate transition {key}")
            seen.add(key)

    @property
    def actions(self) -> tuple[str, ...]:
        return tuple(dict.fromkeys(t.action for t in self.transitions))

    def find(self, from_state: str, action: str) -> Transition | None:
        """Return the transition for ``(from_state, action)`` or None."""
        for t in self.transitions:
            if t.from_state == from_state and t.action == action:
                return t
        return None

    def can(self, from_state: str, action: str) -> bool:
        return self.find(from_state, action) is not None

    def source_states(self, action: str) -> tuple[str, ...]:
        """States from which ``action`` is allowed."""
        return tuple(t.from_state for t in self.transitions if t.action == action)

    def allowed_actions(self, state: str) -> tuple[str, ...]:
        return tuple(t.action for t in self.transitions if t.from_state == state)
