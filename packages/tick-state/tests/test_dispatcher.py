"""Unit tests for NotificationDispatcher."""
from __future__ import annotations

from tick_state import Notification, NotificationDispatcher, StateDef


def test_enter_reaches_unfiltered_handler():
    dispatcher = NotificationDispatcher()
    mode = StateDef("mode")
    received = []

    def handler(owner, previous, current, is_reentrant):
        received.append((owner, previous, current, is_reentrant))

    dispatcher.on_enter(mode, handler)
    dispatcher.enter(3, mode, "a", "b", False)

    assert received == [(3, "a", "b", False)]


def test_owner_filter():
    """A filtered handler only hears about its own owner."""
    dispatcher = NotificationDispatcher()
    mode = StateDef("mode")
    received = []

    dispatcher.on_exit(mode, lambda o, p, c, r: received.append(o), owner=1)
    dispatcher.exit(1, mode, "a", None, False)
    dispatcher.exit(2, mode, "a", None, False)

    assert received == [1]


def test_global_events_skip_filtered_handlers():
    dispatcher = NotificationDispatcher()
    mode = StateDef("mode")
    filtered = []
    unfiltered = []

    dispatcher.on_enter(mode, lambda o, p, c, r: filtered.append(o), owner=0)
    dispatcher.on_enter(mode, lambda o, p, c, r: unfiltered.append(o))
    dispatcher.enter(None, mode, None, "a", False)

    assert filtered == []
    assert unfiltered == [None]


def test_state_types_are_separate():
    dispatcher = NotificationDispatcher()
    a = StateDef("a")
    b = StateDef("b")
    received = []

    dispatcher.on_enter(a, lambda o, p, c, r: received.append("a"))
    dispatcher.enter(0, b, None, "x", False)

    assert received == []


def test_lifecycle_notifications():
    dispatcher = NotificationDispatcher()
    mode = StateDef("mode")
    received = []

    dispatcher.on_init(mode, lambda o, v: received.append(("init", o, v)))
    dispatcher.on_deinit(mode, lambda o, v: received.append(("deinit", o, v)))
    dispatcher.init(2, mode, "a")
    dispatcher.deinit(2, mode, "b")

    assert received == [("init", 2, "a"), ("deinit", 2, "b")]


def test_unsubscribe():
    dispatcher = NotificationDispatcher()
    mode = StateDef("mode")
    received = []

    def handler(owner, previous, current, is_reentrant):
        received.append(current)

    dispatcher.on_enter(mode, handler)
    assert dispatcher.handler_count(Notification.ENTER, mode) == 1
    dispatcher.off_enter(mode, handler)
    dispatcher.off_enter(mode, handler)  # Not subscribed anymore, no error
    dispatcher.enter(0, mode, None, "a", False)

    assert received == []
    assert dispatcher.handler_count(Notification.ENTER, mode) == 0


def test_unsubscribe_during_dispatch():
    """A handler removing itself does not disturb the running dispatch."""
    dispatcher = NotificationDispatcher()
    mode = StateDef("mode")
    received = []

    def once(owner, previous, current, is_reentrant):
        received.append("once")
        dispatcher.off_enter(mode, once)

    def always(owner, previous, current, is_reentrant):
        received.append("always")

    dispatcher.on_enter(mode, once)
    dispatcher.on_enter(mode, always)
    dispatcher.enter(0, mode, None, "a", False)
    dispatcher.enter(0, mode, "a", "b", False)

    assert received == ["once", "always", "always"]
