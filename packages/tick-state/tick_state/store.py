"""SlotStore - owners and their state slots."""
from __future__ import annotations

import logging
from typing import Any, Callable

from tick_state.registry import StateRegistry
from tick_state.slots import StateSlot
from tick_state.targets import ReplaceTarget
from tick_state.types import (
    DeadOwnerError,
    MissingDependencySlot,
    OwnerId,
    RegistrationError,
    StateDef,
)

logger = logging.getLogger(__name__)

# Called with (owner, state, new value) when a pending target is replaced.
# The value is None for a pop.
OverwriteHook = Callable[[OwnerId, StateDef, Any], None]


class SlotStore:
    def __init__(self, registry: StateRegistry) -> None:
        self._registry = registry
        self._slots: dict[StateDef, dict[OwnerId, StateSlot]] = {}
        self._next_id: int = 0
        self._alive: set[OwnerId] = set()
        self._global: OwnerId | None = None
        self._on_overwrite: list[OverwriteHook] = []

    @property
    def registry(self) -> StateRegistry:
        return self._registry

    # -- Owners --

    def spawn(self) -> OwnerId:
        oid = self._next_id
        self._next_id += 1
        self._alive.add(oid)
        return oid

    def create_global(self) -> OwnerId:
        """Create the global owner. Only one may exist at a time."""
        if self._global is not None:
            raise RegistrationError(
                f"Global owner already exists (owner {self._global})"
            )
        self._global = self.spawn()
        return self._global

    @property
    def global_owner(self) -> OwnerId | None:
        return self._global

    def is_global(self, owner: OwnerId) -> bool:
        return owner is not None and owner == self._global

    def despawn(self, owner: OwnerId) -> list[StateSlot]:
        """Remove an owner with all its slots. Returns the slots, highest rank first."""
        self._alive.discard(owner)
        if owner == self._global:
            self._global = None
        removed: list[StateSlot] = []
        for state in reversed(self._registry.by_rank()):
            store = self._slots.get(state)
            if store is None:
                continue
            slot = store.pop(owner, None)
            if slot is not None:
                removed.append(slot)
        return removed

    def alive(self, owner: OwnerId) -> bool:
        return owner in self._alive

    def owners(self) -> frozenset[OwnerId]:
        return frozenset(self._alive)

    def resolve(self, owner: OwnerId | None) -> OwnerId:
        """Map ``None`` to the global owner and check the owner is alive."""
        if owner is None:
            if self._global is None:
                raise DeadOwnerError(None, "No global owner exists")
            return self._global
        if owner not in self._alive:
            raise DeadOwnerError(owner, f"Owner {owner} is not alive")
        return owner

    # -- Slots --

    def get(self, owner: OwnerId, state: StateDef) -> StateSlot | None:
        store = self._slots.get(state)
        if store is None:
            return None
        return store.get(owner)

    def has(self, owner: OwnerId, state: StateDef) -> bool:
        store = self._slots.get(state)
        return store is not None and owner in store

    def ensure(self, owner: OwnerId, state: StateDef) -> StateSlot:
        """Return the owner's slot for ``state``, creating it and its dependency slots."""
        if owner not in self._alive:
            raise DeadOwnerError(
                owner, f"Cannot add {state.name!r} to dead owner {owner}"
            )
        if not self._registry.has(state):
            raise KeyError(f"State {state.name!r} is not registered")
        slot = self.get(owner, state)
        if slot is not None:
            return slot

        missing: list[StateDef] = []
        seen: set[StateDef] = set()
        todo = [state]
        while todo:
            current = todo.pop()
            if current in seen or self.has(owner, current):
                continue
            seen.add(current)
            missing.append(current)
            todo.extend(self._registry.dependencies(current))
        # Dependencies rank below their dependents, so rank order creates them first.
        for current in sorted(missing, key=self._registry.rank):
            slot = self._create(owner, current)
        return slot

    def _create(self, owner: OwnerId, state: StateDef) -> StateSlot:
        for dependency in self._registry.dependencies(state):
            if not self.has(owner, dependency):
                raise MissingDependencySlot(owner, state.name, dependency.name)
        factory = state.target if state.target is not None else ReplaceTarget
        slot = StateSlot(state=state, target=factory())
        self._slots.setdefault(state, {})[owner] = slot
        logger.debug("Created %r slot on owner %d", state.name, owner)
        return slot

    def slots(self, state: StateDef) -> list[tuple[OwnerId, StateSlot]]:
        """All (owner, slot) pairs for one state."""
        store = self._slots.get(state)
        if store is None:
            return []
        return list(store.items())

    def slots_of(self, owner: OwnerId) -> list[StateSlot]:
        """All slots of one owner, lowest rank first."""
        result: list[StateSlot] = []
        for state in self._registry.by_rank():
            slot = self.get(owner, state)
            if slot is not None:
                result.append(slot)
        return result

    def staging_slot(self, owner: OwnerId, state: StateDef) -> StateSlot:
        """The slot a target request for (owner, state) would land on."""
        if owner not in self._alive:
            raise DeadOwnerError(owner, f"Owner {owner} is not alive")
        slot = self.get(owner, state)
        if slot is None:
            raise KeyError(f"Owner {owner} has no {state.name!r} state")
        return slot

    def set_target(self, owner: OwnerId, state: StateDef, value: Any) -> None:
        """Stage ``value`` on the slot's target. The last write before a cycle wins."""
        slot = self.staging_slot(owner, state)
        slot.target.validate(value)
        self._overwriting(owner, slot, value)
        slot.target.stage(value)

    def pop_target(self, owner: OwnerId, state: StateDef) -> None:
        """Stage a pop on a stack target. Replaces any pending push or pop."""
        slot = self.staging_slot(owner, state)
        slot.target.validate_pop()
        self._overwriting(owner, slot, None)
        slot.target.pop()

    def _overwriting(self, owner: OwnerId, slot: StateSlot, value: Any) -> None:
        if not slot.target.should_update():
            return
        logger.debug(
            "Overwriting pending %r target on owner %d with %r",
            slot.state.name, owner, value,
        )
        for cb in self._on_overwrite:
            cb(owner, slot.state, value)

    # -- Diagnostics --

    def on_overwrite(self, callback: OverwriteHook) -> None:
        self._on_overwrite.append(callback)

    def off_overwrite(self, callback: OverwriteHook) -> None:
        try:
            self._on_overwrite.remove(callback)
        except ValueError:
            pass
