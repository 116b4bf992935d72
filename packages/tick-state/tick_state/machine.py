"""StateMachine - registration, owners, staging and transition cycles."""
from __future__ import annotations

import logging
from collections import deque
from typing import Any

from tick_state.config import StateConfig
from tick_state.dispatcher import LifecycleHandler, NotificationDispatcher, TransitionHandler
from tick_state.registry import StateRegistry
from tick_state.scheduler import TransitionReport, TransitionScheduler
from tick_state.slots import StateSlot
from tick_state.store import SlotStore
from tick_state.types import DeadOwnerError, OwnerId, StateDef, TransitionInProgressError

logger = logging.getLogger(__name__)


class StateMachine:
    """Hierarchical state machines for one global owner and any number of local owners.

    Wherever an owner is expected, ``None`` means the global owner.
    """

    def __init__(self) -> None:
        self._registry = StateRegistry()
        self._store = SlotStore(self._registry)
        self._dispatcher = NotificationDispatcher()
        self._scheduler = TransitionScheduler(self._store, self._dispatcher)
        # (owner, state, value, is_pop)
        self._deferred: deque[tuple[OwnerId | None, StateDef, Any, bool]] = deque()
        self._last_report: TransitionReport | None = None

    @property
    def registry(self) -> StateRegistry:
        return self._registry

    @property
    def store(self) -> SlotStore:
        return self._store

    @property
    def dispatcher(self) -> NotificationDispatcher:
        return self._dispatcher

    @property
    def last_report(self) -> TransitionReport | None:
        """Report of the most recent completed cycle."""
        return self._last_report

    @property
    def cycle(self) -> int:
        return self._scheduler.cycle

    @property
    def global_owner(self) -> OwnerId | None:
        return self._store.global_owner

    def _check_idle(self, action: str) -> None:
        if self._scheduler.running:
            raise TransitionInProgressError(
                f"Cannot {action} during a transition cycle, use defer_target"
            )

    # --- Registration ---

    def register_state(self, state: StateDef, config: StateConfig | None = None) -> int:
        """Register a state type and its dependencies. Returns its rank."""
        self._check_idle("register a state")
        return self._registry.register(state, config)

    # --- Owners ---

    def spawn(self) -> OwnerId:
        """Create a local owner."""
        self._check_idle("spawn an owner")
        return self._store.spawn()

    def create_global(self) -> OwnerId:
        """Create the global owner. Raises RegistrationError if it already exists."""
        self._check_idle("create the global owner")
        return self._store.create_global()

    def despawn(self, owner: OwnerId | None) -> None:
        """Destroy an owner and its slots, dispatching deinit leaf to root."""
        self._check_idle("despawn an owner")
        if owner is None:
            owner = self._store.global_owner
            if owner is None:
                return
        notify: OwnerId | None = None if self._store.is_global(owner) else owner
        for slot in self._store.despawn(owner):
            if slot.current is None:
                continue
            if self._registry.config(slot.state).deinit:
                self._dispatcher.deinit(notify, slot.state, slot.current)

    # --- State setup and staging ---

    def init_state(
        self,
        owner: OwnerId | None,
        state: StateDef,
        initial: Any = None,
        suppress_initial_transition: bool = False,
    ) -> StateSlot:
        """Add ``state`` (and its dependencies) to an owner.

        With an ``initial`` value the slot is populated right away and the
        next cycle runs its initial transition, silently if
        ``suppress_initial_transition`` is set. Passing ``None`` as owner
        creates the global owner on first use.
        """
        self._check_idle("initialize a state")
        if not self._registry.has(state):
            self._registry.register(state)
        if owner is None:
            oid = self._store.global_owner
            if oid is None:
                oid = self._store.create_global()
        else:
            oid = self._store.resolve(owner)

        existing = self._store.get(oid, state)
        if existing is not None and (existing.current is not None or existing.initializing):
            logger.warning(
                "State %r is already initialized on owner %d", state.name, oid
            )
            return existing

        slot = self._store.ensure(oid, state)
        if initial is not None:
            slot.current = initial
            slot.previous = None
            slot.is_reentrant = False
            slot.initializing = True
            slot.silent = suppress_initial_transition
            if self._registry.config(state).init:
                notify = None if self._store.is_global(oid) else oid
                self._dispatcher.init(notify, state, initial)
        return slot

    def set_target(self, owner: OwnerId | None, state: StateDef, value: Any) -> None:
        """Stage an update for the next cycle. Replaces any pending one."""
        self._check_idle("set a target")
        self._store.set_target(self._store.resolve(owner), state, value)

    def pop_target(self, owner: OwnerId | None, state: StateDef) -> None:
        """Stage a pop on a stack-targeted state for the next cycle."""
        self._check_idle("pop a target")
        self._store.pop_target(self._store.resolve(owner), state)

    def defer_target(self, owner: OwnerId | None, state: StateDef, value: Any) -> None:
        """Queue an update to be staged when the next cycle starts. Safe inside handlers.

        The owner must hold the state now and its target must accept
        ``value``; otherwise this raises right away.
        """
        oid = self._store.resolve(owner)
        self._store.staging_slot(oid, state).target.validate(value)
        self._deferred.append((owner, state, value, False))

    def defer_pop(self, owner: OwnerId | None, state: StateDef) -> None:
        """Queue a stack pop for the start of the next cycle. Safe inside handlers."""
        oid = self._store.resolve(owner)
        self._store.staging_slot(oid, state).target.validate_pop()
        self._deferred.append((owner, state, None, True))

    def pending_deferred(self) -> int:
        """Return the number of deferred targets waiting for the next cycle."""
        return len(self._deferred)

    def _apply_deferred(self) -> None:
        while self._deferred:
            owner, state, value, pop = self._deferred.popleft()
            try:
                oid = self._store.resolve(owner)
            except DeadOwnerError:
                logger.warning(
                    "Dropping deferred %r target, owner %r is gone", state.name, owner
                )
                continue
            if not self._store.has(oid, state):
                logger.warning(
                    "Dropping deferred %r target, owner %d has no such state",
                    state.name, oid,
                )
                continue
            if pop:
                self._store.pop_target(oid, state)
            else:
                self._store.set_target(oid, state, value)

    # --- Queries ---

    def get(self, owner: OwnerId | None, state: StateDef) -> StateSlot | None:
        return self._store.get(self._store.resolve(owner), state)

    def current(self, owner: OwnerId | None, state: StateDef) -> Any:
        """Current value of a state, ``None`` when disabled or absent."""
        slot = self.get(owner, state)
        return None if slot is None else slot.current

    # --- Notifications ---

    def on_exit(
        self, state: StateDef, handler: TransitionHandler, owner: OwnerId | None = None
    ) -> None:
        self._dispatcher.on_exit(state, handler, owner)

    def on_enter(
        self, state: StateDef, handler: TransitionHandler, owner: OwnerId | None = None
    ) -> None:
        self._dispatcher.on_enter(state, handler, owner)

    def on_init(
        self, state: StateDef, handler: LifecycleHandler, owner: OwnerId | None = None
    ) -> None:
        self._dispatcher.on_init(state, handler, owner)

    def on_deinit(
        self, state: StateDef, handler: LifecycleHandler, owner: OwnerId | None = None
    ) -> None:
        self._dispatcher.on_deinit(state, handler, owner)

    def off_exit(
        self, state: StateDef, handler: TransitionHandler, owner: OwnerId | None = None
    ) -> None:
        self._dispatcher.off_exit(state, handler, owner)

    def off_enter(
        self, state: StateDef, handler: TransitionHandler, owner: OwnerId | None = None
    ) -> None:
        self._dispatcher.off_enter(state, handler, owner)

    def off_init(
        self, state: StateDef, handler: LifecycleHandler, owner: OwnerId | None = None
    ) -> None:
        self._dispatcher.off_init(state, handler, owner)

    def off_deinit(
        self, state: StateDef, handler: LifecycleHandler, owner: OwnerId | None = None
    ) -> None:
        self._dispatcher.off_deinit(state, handler, owner)

    # --- Cycle ---

    def run_transition_cycle(self) -> TransitionReport:
        """Apply deferred targets, then run one update/exit/enter cycle.

        Exceptions from update functions or handlers propagate; the phases
        after the failing one do not run.
        """
        self._check_idle("start a nested transition cycle")
        self._apply_deferred()
        report = self._scheduler.run()
        self._last_report = report
        return report
