"""Run conditions over a StateMachine, in the ``(machine, owner) -> bool`` guard shape."""
from __future__ import annotations

from typing import TYPE_CHECKING, Any, Callable

from tick_state.types import OwnerId, StateDef

if TYPE_CHECKING:
    from tick_state.machine import StateMachine

Condition = Callable[["StateMachine", "OwnerId | None"], bool]


def in_state(state: StateDef, value: Any) -> Condition:
    """True while the owner's state equals ``value`` (``None`` matches disabled)."""

    def check(machine: StateMachine, owner: OwnerId | None = None) -> bool:
        return machine.current(owner, state) == value

    return check


def state_changed(state: StateDef) -> Condition:
    """True if the last completed cycle updated the owner's state, reentries included."""

    def check(machine: StateMachine, owner: OwnerId | None = None) -> bool:
        report = machine.last_report
        if report is None:
            return False
        oid = machine.store.resolve(owner)
        return report.was_updated(oid, state.name)

    return check


def state_changed_to(state: StateDef, value: Any) -> Condition:
    """True if the last completed cycle moved the owner's state to a new ``value``."""
    changed = state_changed(state)

    def check(machine: StateMachine, owner: OwnerId | None = None) -> bool:
        if not changed(machine, owner):
            return False
        slot = machine.get(owner, state)
        return slot is not None and not slot.is_reentrant and slot.current == value

    return check
