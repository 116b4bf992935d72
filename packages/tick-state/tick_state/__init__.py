"""tick-state - Hierarchical state machines with dependency-ordered transitions."""
from __future__ import annotations

from tick_state.conditions import in_state, state_changed, state_changed_to
from tick_state.config import StateConfig
from tick_state.dispatcher import Notification, NotificationDispatcher
from tick_state.machine import StateMachine
from tick_state.registry import StateRegistry
from tick_state.scheduler import TransitionReport, TransitionScheduler
from tick_state.slots import SlotView, StateSlot
from tick_state.store import SlotStore
from tick_state.targets import (
    NoTarget,
    PersistentTarget,
    ReplaceTarget,
    StackTarget,
    ToggleTarget,
    UpdateTarget,
    follow_target,
)
from tick_state.types import (
    DISABLE,
    NO_CHANGE,
    DeadOwnerError,
    Disable,
    Enable,
    MissingDependencySlot,
    NoChange,
    OwnerId,
    RegistrationError,
    StateDef,
    TransitionInProgressError,
)

__all__ = [
    "StateMachine",
    "StateDef",
    "StateConfig",
    "StateRegistry",
    "SlotStore",
    "StateSlot",
    "SlotView",
    "TransitionScheduler",
    "TransitionReport",
    "Notification",
    "NotificationDispatcher",
    "UpdateTarget",
    "NoTarget",
    "ReplaceTarget",
    "ToggleTarget",
    "StackTarget",
    "PersistentTarget",
    "follow_target",
    "Enable",
    "Disable",
    "NoChange",
    "DISABLE",
    "NO_CHANGE",
    "OwnerId",
    "RegistrationError",
    "DeadOwnerError",
    "MissingDependencySlot",
    "TransitionInProgressError",
    "in_state",
    "state_changed",
    "state_changed_to",
]
