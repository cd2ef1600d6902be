"""Tests for agent name allocation."""

import random

import pytest

from claudectl.errors import PoolExhaustedError, ValidationError
from claudectl.names import AGENT_NAMES, NamePool


class TestAgentNames:
    def test_names_unique(self) -> None:
        assert len(set(AGENT_NAMES)) == len(AGENT_NAMES)


class TestNamePool:
    """Tests for NamePool."""

    def test_rejects_duplicates(self) -> None:
        with pytest.raises(ValueError, match="duplicate"):
            NamePool(names=["a", "b", "a"])

    def test_select_fresh_names(self) -> None:
        pool = NamePool(rng=random.Random(0))
        names = pool.select_names(3)
        assert len(names) == 3
        assert len(set(names)) == 3
        assert all(name in pool for name in names)

    def test_select_prefers_existing(self) -> None:
        pool = NamePool(rng=random.Random(1))
        names = pool.select_names(5, ["betty", "alice"])
        assert names[:2] == ["alice", "betty"]
        assert len(set(names)) == 5
        assert not {"alice", "betty"} & set(names[2:])

    def test_select_caps_existing_at_count(self) -> None:
        pool = NamePool()
        assert pool.select_names(2, ["clara", "alice", "betty"]) == ["alice", "betty"]

    def test_select_ignores_unknown_existing_names(self) -> None:
        pool = NamePool(names=["a", "b", "c"], rng=random.Random(2))
        names = pool.select_names(2, ["zzz"])
        assert len(names) == 2
        assert "zzz" not in names

    def test_select_zero(self) -> None:
        assert NamePool().select_names(0) == []

    def test_negative_count(self) -> None:
        with pytest.raises(ValueError):
            NamePool().select_names(-1)

    def test_pool_exhausted(self) -> None:
        pool = NamePool(names=["a", "b", "c"])
        with pytest.raises(PoolExhaustedError) as exc_info:
            pool.allocate_new(2, ["a", "b"])
        assert exc_info.value.needed == 2
        assert exc_info.value.available == 1
        assert isinstance(exc_info.value, ValidationError)

    def test_allocate_new_skips_existing(self) -> None:
        pool = NamePool(names=["a", "b", "c", "d"], rng=random.Random(3))
        names = pool.allocate_new(2, ["a", "b"])
        assert sorted(names) == ["c", "d"]

    def test_injected_rng_is_deterministic(self) -> None:
        first = NamePool(rng=random.Random(42)).select_names(4)
        second = NamePool(rng=random.Random(42)).select_names(4)
        assert first == second
