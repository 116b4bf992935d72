"""Shared type aliases, state definitions, update decisions and errors."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Callable, Union

OwnerId = int


class NoChange:
    """Update decision: leave the slot untouched."""

    __slots__ = ()

    def __repr__(self) -> str:
        return "NO_CHANGE"


class Disable:
    """Update decision: clear the slot's current value."""

    __slots__ = ()

    def __repr__(self) -> str:
        return "DISABLE"


@dataclass(frozen=True, slots=True)
class Enable:
    """Update decision: set the slot to ``value``.

    Enabling with the value the slot already holds is a reentry.
    """

    value: Any

    def __post_init__(self) -> None:
        if self.value is None:
            raise ValueError("Enable value must not be None, use DISABLE")


NO_CHANGE = NoChange()
DISABLE = Disable()

Decision = Union[NoChange, Disable, Enable]


if TYPE_CHECKING:
    from tick_state.slots import SlotView, StateSlot
    from tick_state.targets import UpdateTarget

UpdateFn = Callable[["StateSlot", "tuple[SlotView, ...]"], Decision]


@dataclass(eq=False)
class StateDef:
    """Definition of a state type. Hashed by identity.

    ``depends_on`` lists the parent states whose changes re-evaluate this
    one. ``update(slot, deps)`` returns the next decision; when omitted the
    slot follows its own target. ``target`` builds the slot's update target
    and defaults to :class:`~tick_state.targets.ReplaceTarget`.
    """

    name: str
    depends_on: tuple[StateDef, ...] = ()
    update: UpdateFn | None = None
    target: Callable[[], UpdateTarget] | None = None

    def __post_init__(self) -> None:
        if not self.name:
            raise ValueError("StateDef name must be non-empty")
        self.depends_on = tuple(self.depends_on)
        if len(set(map(id, self.depends_on))) != len(self.depends_on):
            raise ValueError(
                f"StateDef {self.name!r} lists a dependency more than once"
            )

    def __repr__(self) -> str:
        return f"StateDef({self.name!r})"


class RegistrationError(Exception):
    """Raised on dependency cycles, duplicate state names and a second global owner."""

    def __init__(self, message: str, cycle: tuple[str, ...] = ()) -> None:
        self.cycle = cycle
        super().__init__(message)


class DeadOwnerError(KeyError):
    """Raised when operating on an owner that is not alive."""

    def __init__(self, owner: OwnerId | None, message: str) -> None:
        self.owner = owner
        super().__init__(message)


class MissingDependencySlot(KeyError):
    """Raised when a slot would be created without its dependency slots."""

    def __init__(self, owner: OwnerId, state: str, dependency: str) -> None:
        self.owner = owner
        self.state = state
        self.dependency = dependency
        super().__init__(
            f"Owner {owner} has no {dependency!r} slot required by {state!r}"
        )


class TransitionInProgressError(RuntimeError):
    """Raised on immediate mutation while a transition cycle is running."""
