"""TransitionScheduler - the three-phase transition cycle."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field

from tick_state.dispatcher import NotificationDispatcher
from tick_state.evaluator import run_updates
from tick_state.slots import StateSlot
from tick_state.store import SlotStore
from tick_state.types import OwnerId, TransitionInProgressError

logger = logging.getLogger(__name__)


@dataclass
class TransitionReport:
    """What one cycle did. Entries are (owner, state name) in dispatch order."""

    cycle: int
    updated: list[tuple[OwnerId, str]] = field(default_factory=list)
    exits: list[tuple[OwnerId, str]] = field(default_factory=list)
    enters: list[tuple[OwnerId, str]] = field(default_factory=list)

    def was_updated(self, owner: OwnerId, state_name: str) -> bool:
        return (owner, state_name) in self.updated


class TransitionScheduler:
    """Runs transition cycles over every owner in a SlotStore.

    Cycle phases, strictly in sequence:
    1. Update - evaluate slots root to leaf, marking changed ones updated
    2. Exit - notify updated slots that left a value, leaf to root
    3. Enter - notify updated slots that hold a value, root to leaf

    ``updated`` flags are cleared once the cycle ends, also when a handler
    or update function raised.
    """

    def __init__(self, store: SlotStore, dispatcher: NotificationDispatcher) -> None:
        self._store = store
        self._dispatcher = dispatcher
        self._cycle = 0
        self._running = False

    @property
    def running(self) -> bool:
        return self._running

    @property
    def cycle(self) -> int:
        return self._cycle

    def run(self) -> TransitionReport:
        if self._running:
            raise TransitionInProgressError("A transition cycle is already running")
        self._running = True
        self._cycle += 1
        report = TransitionReport(cycle=self._cycle)
        updated: list[tuple[OwnerId, StateSlot]] = []
        try:
            for owner, slot in run_updates(self._store):
                updated.append((owner, slot))
                report.updated.append((owner, slot.state.name))
            # Update order is ascending rank, so reversed is leaf to root.
            for owner, slot in reversed(updated):
                self._exit(owner, slot, report)
            for owner, slot in updated:
                self._enter(owner, slot, report)
        finally:
            for _, slot in updated:
                slot.updated = False
                slot.silent = False
            self._running = False
        logger.debug(
            "Cycle %d: %d updated, %d exits, %d enters",
            report.cycle, len(report.updated), len(report.exits), len(report.enters),
        )
        return report

    def _notify_owner(self, owner: OwnerId) -> OwnerId | None:
        return None if self._store.is_global(owner) else owner

    def _exit(self, owner: OwnerId, slot: StateSlot, report: TransitionReport) -> None:
        config = self._store.registry.config(slot.state)
        if not config.exit or slot.silent:
            return
        if slot.is_reentrant and not config.reentries:
            return
        if slot.reentrant_previous is None:
            return
        report.exits.append((owner, slot.state.name))
        self._dispatcher.exit(
            self._notify_owner(owner), slot.state,
            slot.previous, slot.current, slot.is_reentrant,
        )

    def _enter(self, owner: OwnerId, slot: StateSlot, report: TransitionReport) -> None:
        config = self._store.registry.config(slot.state)
        if not config.enter or slot.silent:
            return
        if slot.is_reentrant and not config.reentries:
            return
        if slot.current is None:
            return
        report.enters.append((owner, slot.state.name))
        self._dispatcher.enter(
            self._notify_owner(owner), slot.state,
            slot.previous, slot.current, slot.is_reentrant,
        )
