"""Script-facing effect constructors.

These are the names a script sees as globals. ``fork`` needs the registry of
the interpreter running the script, so the table is built per interpreter.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

from forkio._vendor import FrozenDict
from forkio.effects import (
    EFFECT_PROTOCOL_VERSION,
    ForkEffect,
    fetch,
    nop,
    sleep,
)
from forkio.effects._validators import ensure_callable
from forkio.registry import HandleRegistry


def _label(function: Callable[..., Any]) -> str:
    return getattr(function, "__name__", None) or type(function).__name__


def make_fork(registry: HandleRegistry) -> Callable[[Callable[[], Any]], ForkEffect]:
    def fork(function: Callable[[], Any]) -> ForkEffect:
        """Run ``function`` as a concurrent task; resumes with its Job."""
        ensure_callable(function, name="function")
        return ForkEffect(function=registry.create(function), label=_label(function))

    return fork


def build_primitives(registry: HandleRegistry) -> FrozenDict:
    return FrozenDict(
        nop=nop,
        sleep=sleep,
        fork=make_fork(registry),
        fetch=fetch,
        EFFECT_PROTOCOL_VERSION=EFFECT_PROTOCOL_VERSION,
    )


__all__ = ["build_primitives", "make_fork"]
