"""Per-state notification configuration."""
from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class StateConfig:
    """Which notifications a state type emits. Only the first registration counts.

    Attributes:
        exit: Dispatch exit notifications.
        enter: Dispatch enter notifications.
        reentries: Also dispatch exit/enter for reentrant transitions.
        init: Dispatch an init notification when ``init_state`` gives a slot a value.
        deinit: Dispatch a deinit notification for populated slots of a despawned owner.
    """

    exit: bool = True
    enter: bool = True
    reentries: bool = True
    init: bool = True
    deinit: bool = True

    @classmethod
    def empty(cls) -> StateConfig:
        """Config that dispatches no notifications at all."""
        return cls(exit=False, enter=False, reentries=False, init=False, deinit=False)
