"""NotificationDispatcher - routes transition notifications to handlers."""
from __future__ import annotations

from enum import Enum
from typing import Any, Callable

from tick_state.types import OwnerId, StateDef

# (owner or None for global state, previous, current, is_reentrant)
TransitionHandler = Callable[[OwnerId | None, Any, Any, bool], None]
# (owner or None for global state, value)
LifecycleHandler = Callable[[OwnerId | None, Any], None]


class Notification(Enum):
    EXIT = "exit"
    ENTER = "enter"
    INIT = "init"
    DEINIT = "deinit"


class NotificationDispatcher:
    """Maps (notification, state) to handlers, optionally filtered to one owner.

    Local state notifications reach unfiltered handlers and handlers
    filtered to that owner. Global state notifications carry no owner and
    reach unfiltered handlers only. Handlers of the same event run in no
    promised order.
    """

    def __init__(self) -> None:
        self._handlers: dict[
            tuple[Notification, StateDef], list[tuple[Callable[..., None], OwnerId | None]]
        ] = {}

    def subscribe(
        self,
        kind: Notification,
        state: StateDef,
        handler: Callable[..., None],
        owner: OwnerId | None = None,
    ) -> None:
        self._handlers.setdefault((kind, state), []).append((handler, owner))

    def unsubscribe(
        self,
        kind: Notification,
        state: StateDef,
        handler: Callable[..., None],
        owner: OwnerId | None = None,
    ) -> None:
        handlers = self._handlers.get((kind, state))
        if handlers is None:
            return
        try:
            handlers.remove((handler, owner))
        except ValueError:
            pass

    def handler_count(self, kind: Notification, state: StateDef) -> int:
        return len(self._handlers.get((kind, state), ()))

    # -- Subscription shorthands --

    def on_exit(
        self, state: StateDef, handler: TransitionHandler, owner: OwnerId | None = None
    ) -> None:
        self.subscribe(Notification.EXIT, state, handler, owner)

    def on_enter(
        self, state: StateDef, handler: TransitionHandler, owner: OwnerId | None = None
    ) -> None:
        self.subscribe(Notification.ENTER, state, handler, owner)

    def on_init(
        self, state: StateDef, handler: LifecycleHandler, owner: OwnerId | None = None
    ) -> None:
        self.subscribe(Notification.INIT, state, handler, owner)

    def on_deinit(
        self, state: StateDef, handler: LifecycleHandler, owner: OwnerId | None = None
    ) -> None:
        self.subscribe(Notification.DEINIT, state, handler, owner)

    def off_exit(
        self, state: StateDef, handler: TransitionHandler, owner: OwnerId | None = None
    ) -> None:
        self.unsubscribe(Notification.EXIT, state, handler, owner)

    def off_enter(
        self, state: StateDef, handler: TransitionHandler, owner: OwnerId | None = None
    ) -> None:
        self.unsubscribe(Notification.ENTER, state, handler, owner)

    def off_init(
        self, state: StateDef, handler: LifecycleHandler, owner: OwnerId | None = None
    ) -> None:
        self.unsubscribe(Notification.INIT, state, handler, owner)

    def off_deinit(
        self, state: StateDef, handler: LifecycleHandler, owner: OwnerId | None = None
    ) -> None:
        self.unsubscribe(Notification.DEINIT, state, handler, owner)

    # -- Dispatch --

    def _targets(
        self, kind: Notification, state: StateDef, owner: OwnerId | None
    ) -> list[Callable[..., None]]:
        # Snapshot, so handlers may unsubscribe while being called.
        return [
            handler
            for handler, only in self._handlers.get((kind, state), ())
            if only is None or only == owner
        ]

    def exit(
        self,
        owner: OwnerId | None,
        state: StateDef,
        previous: Any,
        current: Any,
        is_reentrant: bool,
    ) -> None:
        for handler in self._targets(Notification.EXIT, state, owner):
            handler(owner, previous, current, is_reentrant)

    def enter(
        self,
        owner: OwnerId | None,
        state: StateDef,
        previous: Any,
        current: Any,
        is_reentrant: bool,
    ) -> None:
        for handler in self._targets(Notification.ENTER, state, owner):
            handler(owner, previous, current, is_reentrant)

    def init(self, owner: OwnerId | None, state: StateDef, value: Any) -> None:
        for handler in self._targets(Notification.INIT, state, owner):
            handler(owner, value)

    def deinit(self, owner: OwnerId | None, state: StateDef, value: Any) -> None:
        for handler in self._targets(Notification.DEINIT, state, owner):
            handler(owner, value)
