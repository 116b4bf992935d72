"""Update targets - what a slot carries into the next transition cycle."""
from __future__ import annotations

from typing import TYPE_CHECKING, Any

from tick_state.types import DISABLE, NO_CHANGE, Decision, Enable

if TYPE_CHECKING:
    from tick_state.slots import SlotView, StateSlot


class UpdateTarget:
    """Base class for pending-update descriptors.

    ``should_update`` tells the evaluator the slot needs evaluating this
    cycle, ``stage`` records an external request and ``reset`` clears the
    pending flag once the slot was evaluated. ``decision`` is what the
    default update function, :func:`follow_target`, returns.

    ``validate`` and ``validate_pop`` raise for requests ``stage`` and
    ``pop`` would reject, without touching the target.
    """

    __slots__ = ()

    def should_update(self) -> bool:
        return False

    def reset(self) -> None:
        pass

    def validate(self, value: Any) -> None:
        raise TypeError(f"{type(self).__name__} does not accept staged values")

    def validate_pop(self) -> None:
        raise TypeError(f"{type(self).__name__} does not support pop")

    def stage(self, value: Any) -> None:
        self.validate(value)

    def pop(self) -> None:
        self.validate_pop()

    def decision(self, slot: StateSlot) -> Decision:
        return NO_CHANGE


class NoTarget(UpdateTarget):
    """No external update channel. The state changes only through its dependencies."""

    __slots__ = ()

    def __repr__(self) -> str:
        return "NoTarget()"


class ReplaceTarget(UpdateTarget):
    """Replace the state with the staged value on the next cycle."""

    __slots__ = ("value",)

    def __init__(self) -> None:
        self.value: Any = None

    def should_update(self) -> bool:
        return self.value is not None

    def reset(self) -> None:
        self.value = None

    def validate(self, value: Any) -> None:
        if value is None:
            raise ValueError(
                "ReplaceTarget cannot stage None, use ToggleTarget to disable"
            )

    def stage(self, value: Any) -> None:
        self.validate(value)
        self.value = value

    def decision(self, slot: StateSlot) -> Decision:
        if self.value is None:
            return NO_CHANGE
        return Enable(self.value)

    def __repr__(self) -> str:
        return f"ReplaceTarget({self.value!r})"


class ToggleTarget(UpdateTarget):
    """Enable, disable or replace the state. Staging ``None`` disables it."""

    __slots__ = ("value", "_pending")

    def __init__(self) -> None:
        self.value: Any = None
        self._pending = False

    def should_update(self) -> bool:
        return self._pending

    def reset(self) -> None:
        self.value = None
        self._pending = False

    def validate(self, value: Any) -> None:
        pass

    def stage(self, value: Any) -> None:
        self.value = value
        self._pending = True

    def decision(self, slot: StateSlot) -> Decision:
        if not self._pending:
            return NO_CHANGE
        if self.value is None:
            return DISABLE
        return Enable(self.value)

    def __repr__(self) -> str:
        if not self._pending:
            return "ToggleTarget()"
        return f"ToggleTarget({self.value!r})"


class StackTarget(UpdateTarget):
    """Push/pop stack of values. The top of the stack is the slot's current value.

    Pushing a value keeps the current one underneath it; popping restores
    the value below, or disables the state once the stack is empty.
    """

    __slots__ = ("stack", "_op")

    def __init__(self) -> None:
        self.stack: list[Any] = []
        self._op: tuple[str, Any] | None = None

    def validate(self, value: Any) -> None:
        if value is None:
            raise ValueError("Cannot push None onto a StackTarget")

    def validate_pop(self) -> None:
        pass

    def push(self, value: Any) -> None:
        self.validate(value)
        self._op = ("push", value)

    def pop(self) -> None:
        self._op = ("pop", None)

    def stage(self, value: Any) -> None:
        self.push(value)

    def should_update(self) -> bool:
        return self._op is not None

    def reset(self) -> None:
        self._op = None

    def decision(self, slot: StateSlot) -> Decision:
        if self._op is None:
            return NO_CHANGE
        kind, value = self._op
        if kind == "push":
            if slot.current is not None:
                self.stack.append(slot.current)
            return Enable(value)
        if self.stack:
            return Enable(self.stack.pop())
        return DISABLE

    def __repr__(self) -> str:
        return f"StackTarget(stack={self.stack!r}, op={self._op!r})"


class PersistentTarget(UpdateTarget):
    """Keeps the last requested value after it was consumed.

    Useful for sub-states that should come back with their last value
    when a parent state re-enables them.
    """

    __slots__ = ("value", "_pending")

    def __init__(self, default: Any = None) -> None:
        self.value: Any = default
        self._pending = False

    def should_update(self) -> bool:
        return self._pending

    def reset(self) -> None:
        self._pending = False

    def validate(self, value: Any) -> None:
        if value is None:
            raise ValueError("PersistentTarget cannot stage None")

    def stage(self, value: Any) -> None:
        self.validate(value)
        self.value = value
        self._pending = True

    def decision(self, slot: StateSlot) -> Decision:
        if self.value is None:
            return NO_CHANGE
        return Enable(self.value)

    def __repr__(self) -> str:
        return f"PersistentTarget({self.value!r})"


def follow_target(
    slot: StateSlot, dependencies: tuple[SlotView, ...]
) -> Decision:
    """Default update function: do whatever the slot's target asks for."""
    return slot.target.decision(slot)
