"""StateSlot - per-owner state record, and SlotView, its read-only face."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from tick_state.targets import UpdateTarget
from tick_state.types import Decision, Disable, Enable, NoChange, StateDef


@dataclass(slots=True)
class StateSlot:
    """One state type's record on one owner.

    ``current`` is ``None`` while the state is disabled. ``previous`` is the
    last distinct value held before the most recent change and survives
    reentries, which raise ``is_reentrant`` instead. ``updated`` is only
    true inside the transition cycle that changed the slot.
    """

    state: StateDef
    target: UpdateTarget
    current: Any = None
    previous: Any = None
    is_reentrant: bool = False
    updated: bool = False
    # Value set by init_state, transition still to be run.
    initializing: bool = False
    # Skip exit/enter for the initial transition.
    silent: bool = False

    @property
    def enabled(self) -> bool:
        return self.current is not None

    @property
    def reentrant_previous(self) -> Any:
        """The value left by the most recent change, counting reentries."""
        if self.is_reentrant:
            return self.current
        return self.previous

    def apply(self, decision: Decision) -> bool:
        """Apply an update decision. Returns True if the slot was updated."""
        if isinstance(decision, Enable):
            if decision.value == self.current:
                self.is_reentrant = True
            else:
                self.previous = self.current
                self.current = decision.value
                self.is_reentrant = False
            self.updated = True
            return True
        if isinstance(decision, Disable):
            if self.current is None:
                return False
            self.previous = self.current
            self.current = None
            self.is_reentrant = False
            self.updated = True
            return True
        if isinstance(decision, NoChange):
            return False
        raise TypeError(
            f"Update of {self.state.name!r} returned {decision!r}, "
            "expected NO_CHANGE, DISABLE or Enable(value)"
        )

    def view(self) -> SlotView:
        return SlotView(self)


class SlotView:
    """Read-only view of a slot, handed to dependents' update functions."""

    __slots__ = ("_slot",)

    def __init__(self, slot: StateSlot) -> None:
        self._slot = slot

    @property
    def state(self) -> StateDef:
        return self._slot.state

    @property
    def current(self) -> Any:
        return self._slot.current

    @property
    def previous(self) -> Any:
        return self._slot.previous

    @property
    def is_reentrant(self) -> bool:
        return self._slot.is_reentrant

    @property
    def updated(self) -> bool:
        return self._slot.updated

    @property
    def enabled(self) -> bool:
        return self._slot.current is not None

    @property
    def reentrant_previous(self) -> Any:
        return self._slot.reentrant_previous

    def __repr__(self) -> str:
        return (
            f"SlotView({self._slot.state.name!r}, current={self.current!r}, "
            f"previous={self.previous!r})"
        )
