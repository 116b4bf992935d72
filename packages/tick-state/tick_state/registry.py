"""StateRegistry - state definitions and their dependency ranks."""
from __future__ import annotations

import logging
from typing import Iterator

from tick_state.config import StateConfig
from tick_state.types import RegistrationError, StateDef

logger = logging.getLogger(__name__)


class StateRegistry:
    """Registers state types and assigns each a fixed rank.

    A state without dependencies has rank 0; any other state ranks one
    above its highest dependency. Ranks never change after registration,
    so they serve as sort keys for every transition cycle.
    """

    def __init__(self) -> None:
        self._by_name: dict[str, StateDef] = {}
        self._ranks: dict[StateDef, int] = {}
        self._dependencies: dict[StateDef, tuple[StateDef, ...]] = {}
        self._configs: dict[StateDef, StateConfig] = {}
        self._order: list[StateDef] = []
        self._by_rank: list[StateDef] | None = None

    def register(self, state: StateDef, config: StateConfig | None = None) -> int:
        """Register a state and, first, any unregistered dependencies.

        Returns the state's rank. Raises ``RegistrationError`` on a
        dependency cycle or a name already used by another definition;
        nothing is registered in that case.
        """
        if state in self._ranks:
            logger.warning("State %r is already registered", state.name)
            return self._ranks[state]

        pending: dict[StateDef, tuple[int, tuple[StateDef, ...]]] = {}
        self._resolve(state, pending)

        for resolved, (rank, dependencies) in pending.items():
            self._by_name[resolved.name] = resolved
            self._ranks[resolved] = rank
            self._dependencies[resolved] = dependencies
            if resolved is state and config is not None:
                self._configs[resolved] = config
            else:
                self._configs[resolved] = StateConfig()
            self._order.append(resolved)
            logger.debug("Registered state %r at rank %d", resolved.name, rank)
        self._by_rank = None
        return self._ranks[state]

    def _resolve(
        self,
        state: StateDef,
        pending: dict[StateDef, tuple[int, tuple[StateDef, ...]]],
    ) -> None:
        """Depth-first rank computation over an explicit stack.

        Dependencies land in ``pending`` before their dependents.
        """
        path: list[StateDef] = []
        frames: list[tuple[tuple[StateDef, ...], Iterator[StateDef]]] = []

        def push(node: StateDef) -> None:
            self._check_name(node, pending, path)
            dependencies = tuple(node.depends_on)
            path.append(node)
            frames.append((dependencies, iter(dependencies)))

        push(state)
        while frames:
            dependencies, remaining = frames[-1]
            dependency = next(remaining, None)
            if dependency is not None:
                if dependency in self._ranks or dependency in pending:
                    continue
                if dependency in path:
                    names = tuple(
                        s.name for s in path[path.index(dependency):]
                    ) + (dependency.name,)
                    raise RegistrationError(
                        f"Dependency cycle: {' -> '.join(names)}", cycle=names
                    )
                push(dependency)
                continue

            frames.pop()
            node = path.pop()
            rank = 0
            for dep in dependencies:
                dep_rank = self._ranks[dep] if dep in self._ranks else pending[dep][0]
                rank = max(rank, dep_rank + 1)
            pending[node] = (rank, dependencies)

    def _check_name(
        self,
        state: StateDef,
        pending: dict[StateDef, tuple[int, tuple[StateDef, ...]]],
        path: list[StateDef],
    ) -> None:
        clash = self._by_name.get(state.name)
        if clash is None:
            clash = next(
                (s for s in (*pending, *path) if s.name == state.name), None
            )
        if clash is not None:
            raise RegistrationError(
                f"State name {state.name!r} is already used by another definition"
            )

    # --- Queries ---

    def has(self, state: StateDef) -> bool:
        """Check if this exact definition is registered."""
        return state in self._ranks

    def get(self, name: str) -> StateDef:
        """Look up a definition by name. Raises KeyError if not registered."""
        if name not in self._by_name:
            raise KeyError(name)
        return self._by_name[name]

    def rank(self, state: StateDef) -> int:
        return self._ranks[self._check(state)]

    def dependencies(self, state: StateDef) -> tuple[StateDef, ...]:
        """Dependencies as captured at registration, in declaration order."""
        return self._dependencies[self._check(state)]

    def config(self, state: StateDef) -> StateConfig:
        return self._configs[self._check(state)]

    def states(self) -> list[StateDef]:
        """All registered states in registration order."""
        return list(self._order)

    def by_rank(self) -> list[StateDef]:
        """All registered states, lowest rank first. Stable by registration order."""
        if self._by_rank is None:
            self._by_rank = sorted(self._order, key=self._ranks.__getitem__)
        return list(self._by_rank)

    def tiers(self) -> dict[int, list[StateDef]]:
        """Registered states grouped by rank, ascending."""
        tiers: dict[int, list[StateDef]] = {}
        for state in self.by_rank():
            tiers.setdefault(self._ranks[state], []).append(state)
        return tiers

    def _check(self, state: StateDef) -> StateDef:
        if state not in self._ranks:
            raise KeyError(f"State {state.name!r} is not registered")
        return state
