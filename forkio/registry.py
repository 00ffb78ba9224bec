"""Reference-counted handles into interpreter-owned storage.

A :class:`Handle` keeps a value reachable while it crosses a suspension point
(a callable waiting to be forked, a finished task's return value, a live
execution context). Ownership is shared through ordinary Python references to
the handle object. Dropping the last reference queues the slot as unreachable;
the slot itself is only released when :meth:`HandleRegistry.expire` runs, which
the scheduler does once per resume cycle.
"""

from __future__ import annotations

import itertools
import weakref
from typing import Any

from forkio.errors import InterpreterInvariantError


class Handle:
    """Opaque key into a :class:`HandleRegistry`."""

    __slots__ = ("_slot", "_owner", "__weakref__")

    def __init__(self, slot: int, owner: HandleRegistry) -> None:
        self._slot = slot
        self._owner = weakref.ref(owner)

    @property
    def slot(self) -> int:
        return self._slot

    def belongs_to(self, registry: HandleRegistry) -> bool:
        return self._owner() is registry

    def __repr__(self) -> str:
        return f"Handle(slot={self._slot})"


class HandleRegistry:
    """Slot storage for values referenced by live handles."""

    def __init__(self) -> None:
        self._values: dict[int, Any] = {}
        self._unreachable: list[int] = []
        self._slots = itertools.count(1)

    def create(self, value: Any) -> Handle:
        """Store ``value`` and return a new handle keeping it alive."""
        slot = next(self._slots)
        self._values[slot] = value
        handle = Handle(slot, self)
        finalizer = weakref.finalize(handle, self._unreachable.append, slot)
        finalizer.atexit = False
        return handle

    def get(self, handle: Handle) -> Any:
        """Return the value behind ``handle``."""
        if not isinstance(handle, Handle):
            raise InterpreterInvariantError(
                f"expected Handle, got {type(handle).__name__}"
            )
        if not handle.belongs_to(self):
            raise InterpreterInvariantError(f"{handle!r} belongs to another registry")
        try:
            return self._values[handle.slot]
        except KeyError:
            raise InterpreterInvariantError(f"{handle!r} has already expired") from None

    def expire(self) -> int:
        """Release every slot whose handles are all gone; return how many."""
        released = 0
        while self._unreachable:
            slot = self._unreachable.pop()
            if slot in self._values:
                del self._values[slot]
                released += 1
        return released

    @property
    def pending(self) -> int:
        """Number of unreachable slots waiting for :meth:`expire`."""
        return len(self._unreachable)

    def __len__(self) -> int:
        return len(self._values)

    def __contains__(self, handle: object) -> bool:
        return (
            isinstance(handle, Handle)
            and handle.belongs_to(self)
            and handle.slot in self._values
        )


__all__ = ["Handle", "HandleRegistry"]
