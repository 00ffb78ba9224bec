"""Tests for handle lifetime in the registry."""

from __future__ import annotations

import pytest

from forkio import Handle, HandleRegistry
from forkio.errors import InterpreterInvariantError


def test_value_lives_while_handle_is_referenced() -> None:
    registry = HandleRegistry()
    handle = registry.create({"key": "value"})
    alias = handle

    del handle
    assert registry.expire() == 0
    assert registry.get(alias) == {"key": "value"}
    assert alias in registry


def test_slot_is_released_only_on_expire() -> None:
    registry = HandleRegistry()
    handle = registry.create("payload")
    assert len(registry) == 1

    del handle

    assert registry.pending == 1
    assert len(registry) == 1
    assert registry.expire() == 1
    assert len(registry) == 0
    assert registry.pending == 0


def test_expire_only_releases_unreachable_slots() -> None:
    registry = HandleRegistry()
    kept = registry.create("kept")
    dropped = [registry.create(n) for n in range(3)]

    del dropped

    assert registry.expire() == 3
    assert registry.get(kept) == "kept"


def test_foreign_handle_is_rejected() -> None:
    registry = HandleRegistry()
    other = HandleRegistry()
    handle = other.create(1)

    with pytest.raises(InterpreterInvariantError, match="another registry"):
        registry.get(handle)
    assert handle not in registry


def test_non_handle_is_rejected() -> None:
    with pytest.raises(InterpreterInvariantError, match="expected Handle"):
        HandleRegistry().get("slot-1")  # type: ignore[arg-type]


def test_handles_have_distinct_slots() -> None:
    registry = HandleRegistry()
    first, second = registry.create("a"), registry.create("a")

    assert isinstance(first, Handle)
    assert first.slot != second.slot
