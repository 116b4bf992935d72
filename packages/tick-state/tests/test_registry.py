"""Tests for StateRegistry ranks, transitive registration and cycle detection."""
from __future__ import annotations

import logging
import random

import pytest

from tick_state import RegistrationError, StateConfig, StateDef, StateRegistry


class TestStateDef:
    def test_empty_name_rejected(self) -> None:
        with pytest.raises(ValueError, match="non-empty"):
            StateDef("")

    def test_duplicate_dependency_rejected(self) -> None:
        root = StateDef("root")
        with pytest.raises(ValueError, match="more than once"):
            StateDef("child", depends_on=(root, root))

    def test_depends_on_list_becomes_tuple(self) -> None:
        root = StateDef("root")
        child = StateDef("child", depends_on=[root])  # type: ignore[arg-type]
        assert child.depends_on == (root,)

    def test_identity_hashing(self) -> None:
        """Two definitions with the same name are still different keys."""
        a1 = StateDef("a")
        a2 = StateDef("a")
        assert a1 != a2
        assert len({a1, a2}) == 2


class TestRanks:
    def test_root_state_has_rank_zero(self) -> None:
        registry = StateRegistry()
        root = StateDef("root")
        assert registry.register(root) == 0
        assert registry.rank(root) == 0

    def test_rank_is_one_above_highest_dependency(self) -> None:
        registry = StateRegistry()
        a = StateDef("a")
        b = StateDef("b", depends_on=(a,))
        c = StateDef("c", depends_on=(b,))
        d = StateDef("d", depends_on=(a, c))

        assert registry.register(d) == 3
        assert registry.rank(a) == 0
        assert registry.rank(b) == 1
        assert registry.rank(c) == 2

    def test_rank_increases_along_every_edge(self) -> None:
        """Random DAG: every dependency ranks strictly below its dependent."""
        rng = random.Random(7)
        states: list[StateDef] = []
        for i in range(40):
            picks = rng.sample(states, k=min(len(states), rng.randint(0, 3)))
            states.append(StateDef(f"s{i}", depends_on=tuple(picks)))

        registry = StateRegistry()
        for state in reversed(states):
            registry.register(state)

        for state in states:
            for dep in state.depends_on:
                assert registry.rank(dep) < registry.rank(state)

    def test_dependencies_registered_first(self) -> None:
        registry = StateRegistry()
        a = StateDef("a")
        b = StateDef("b", depends_on=(a,))
        c = StateDef("c", depends_on=(b,))

        registry.register(c)

        assert registry.has(a)
        assert registry.has(b)
        assert registry.states() == [a, b, c]

    def test_dependencies_captured_at_registration(self) -> None:
        registry = StateRegistry()
        a = StateDef("a")
        b = StateDef("b", depends_on=(a,))
        registry.register(b)

        b.depends_on = ()

        assert registry.dependencies(b) == (a,)
        assert registry.rank(b) == 1


class TestCycles:
    def test_two_state_cycle(self) -> None:
        registry = StateRegistry()
        a = StateDef("a")
        b = StateDef("b", depends_on=(a,))
        a.depends_on = (b,)

        with pytest.raises(RegistrationError, match="b -> a -> b") as exc_info:
            registry.register(b)

        assert exc_info.value.cycle == ("b", "a", "b")
        assert not registry.has(a)
        assert not registry.has(b)

    def test_self_cycle(self) -> None:
        registry = StateRegistry()
        a = StateDef("a")
        a.depends_on = (a,)

        with pytest.raises(RegistrationError, match="a -> a"):
            registry.register(a)

    def test_cycle_below_valid_chain(self) -> None:
        """Only the cyclic part is reported, not the path leading to it."""
        registry = StateRegistry()
        x = StateDef("x")
        y = StateDef("y", depends_on=(x,))
        x.depends_on = (y,)
        top = StateDef("top", depends_on=(y,))

        with pytest.raises(RegistrationError) as exc_info:
            registry.register(top)

        assert exc_info.value.cycle == ("y", "x", "y")

    def test_failed_registration_keeps_earlier_states(self) -> None:
        registry = StateRegistry()
        ok = StateDef("ok")
        registry.register(ok)
        a = StateDef("a", depends_on=(ok,))
        b = StateDef("b", depends_on=(a,))
        a.depends_on = (ok, b)

        with pytest.raises(RegistrationError):
            registry.register(b)

        assert registry.states() == [ok]


class TestRegistration:
    def test_duplicate_name_rejected(self) -> None:
        registry = StateRegistry()
        registry.register(StateDef("mode"))
        with pytest.raises(RegistrationError, match="already used"):
            registry.register(StateDef("mode"))

    def test_reregistration_warns_and_keeps_rank(self, caplog) -> None:  # type: ignore[no-untyped-def]
        registry = StateRegistry()
        root = StateDef("root")
        child = StateDef("child", depends_on=(root,))
        registry.register(child)

        with caplog.at_level(logging.WARNING, logger="tick_state.registry"):
            assert registry.register(child) == 1

        assert "already registered" in caplog.text
        assert len(registry.states()) == 2

    def test_config_applies_on_first_registration_only(self) -> None:
        registry = StateRegistry()
        root = StateDef("root")
        registry.register(root, StateConfig.empty())
        registry.register(root, StateConfig())
        assert registry.config(root) == StateConfig.empty()

    def test_transitive_dependencies_get_default_config(self) -> None:
        registry = StateRegistry()
        root = StateDef("root")
        child = StateDef("child", depends_on=(root,))
        registry.register(child, StateConfig(reentries=False))

        assert registry.config(root) == StateConfig()
        assert registry.config(child).reentries is False


class TestQueries:
    def test_by_rank_is_stable(self) -> None:
        registry = StateRegistry()
        a = StateDef("a")
        b = StateDef("b", depends_on=(a,))
        x = StateDef("x")
        registry.register(b)
        registry.register(x)

        assert registry.states() == [a, b, x]
        assert registry.by_rank() == [a, x, b]
        assert registry.tiers() == {0: [a, x], 1: [b]}

    def test_get_by_name(self) -> None:
        registry = StateRegistry()
        a = StateDef("a")
        registry.register(a)
        assert registry.get("a") is a
        with pytest.raises(KeyError):
            registry.get("ghost")

    def test_unregistered_queries_raise(self) -> None:
        registry = StateRegistry()
        ghost = StateDef("ghost")
        assert not registry.has(ghost)
        with pytest.raises(KeyError, match="not registered"):
            registry.rank(ghost)
        with pytest.raises(KeyError):
            registry.config(ghost)
        with pytest.raises(KeyError):
            registry.dependencies(ghost)


class TestDeepGraphs:
    def test_long_chain_registers(self) -> None:
        states = [StateDef("s0")]
        for i in range(1, 1500):
            states.append(StateDef(f"s{i}", depends_on=(states[-1],)))
        registry = StateRegistry()

        assert registry.register(states[-1]) == 1499
        assert registry.states() == states

    def test_cycle_at_bottom_of_long_chain(self) -> None:
        bottom = StateDef("bottom")
        states = [bottom]
        for i in range(1, 1500):
            states.append(StateDef(f"s{i}", depends_on=(states[-1],)))
        bottom.depends_on = (states[1],)

        with pytest.raises(RegistrationError) as exc_info:
            StateRegistry().register(states[-1])

        assert exc_info.value.cycle == ("s1", "bottom", "s1")

    def test_name_clash_inside_one_registration(self) -> None:
        registry = StateRegistry()
        first = StateDef("dup")
        second = StateDef("dup", depends_on=(first,))
        top = StateDef("top", depends_on=(second,))

        with pytest.raises(RegistrationError, match="already used"):
            registry.register(top)
        assert registry.states() == []
