"""Update evaluation - running state update functions root to leaf."""
from __future__ import annotations

from typing import TYPE_CHECKING, Iterator

from tick_state.slots import SlotView, StateSlot
from tick_state.targets import follow_target
from tick_state.types import MissingDependencySlot, OwnerId, StateDef

if TYPE_CHECKING:
    from tick_state.store import SlotStore


def dependency_views(
    store: SlotStore, owner: OwnerId, state: StateDef
) -> tuple[SlotView, ...]:
    """Read-only views of the owner's dependency slots, in declaration order."""
    views: list[SlotView] = []
    for dependency in store.registry.dependencies(state):
        slot = store.get(owner, dependency)
        if slot is None:
            raise MissingDependencySlot(owner, state.name, dependency.name)
        views.append(slot.view())
    return tuple(views)


def evaluate(slot: StateSlot, dependencies: tuple[SlotView, ...]) -> bool:
    """Evaluate one slot for the current cycle. Returns True if it was updated.

    The update function runs only when the target asks for it or a
    dependency was updated earlier in the same pass. The target is reset
    after every evaluation.
    """
    initializing = slot.initializing
    slot.updated = initializing
    if initializing:
        slot.initializing = False
    else:
        slot.silent = False

    if slot.target.should_update() or any(dep.updated for dep in dependencies):
        update = slot.state.update if slot.state.update is not None else follow_target
        decision = update(slot, dependencies)
        slot.target.reset()
        slot.apply(decision)

    if initializing:
        # The cycle that runs the initial transition starts from disabled.
        slot.previous = None
        slot.is_reentrant = False
        slot.updated = slot.current is not None
    return slot.updated


def run_updates(store: SlotStore) -> Iterator[tuple[OwnerId, StateSlot]]:
    """Update phase. Visits every slot by ascending rank, yields the updated ones."""
    for state in store.registry.by_rank():
        for owner, slot in store.slots(state):
            if evaluate(slot, dependency_views(store, owner, state)):
                yield owner, slot
