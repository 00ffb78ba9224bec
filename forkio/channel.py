"""Single-slot channel used to deliver one forked task's outcome."""

from __future__ import annotations

import asyncio
from typing import Any, Generic, TypeVar

from forkio.errors import InterpreterInvariantError

T = TypeVar("T")

_EMPTY: Any = object()


class OneShotChannel(Generic[T]):
    """Channel that carries at most one value from one sender.

    The sender either calls :meth:`send` once or :meth:`close` without a value.
    Either way the channel is closed afterwards. The first :meth:`receive`
    after delivery takes the value; every other receive, earlier or later,
    resolves to ``(False, None)`` once the channel is closed and empty.
    """

    def __init__(self) -> None:
        self._value: Any = _EMPTY
        self._sent = False
        self._closed = asyncio.Event()

    @property
    def closed(self) -> bool:
        return self._closed.is_set()

    @property
    def sent(self) -> bool:
        return self._sent

    def send(self, value: T) -> None:
        if self._sent:
            raise InterpreterInvariantError("one-shot channel already delivered a value")
        if self.closed:
            raise InterpreterInvariantError("cannot send on a closed channel")
        self._sent = True
        self._value = value
        self._closed.set()

    def close(self) -> None:
        """Close the sending end without delivering anything."""
        self._closed.set()

    def try_receive(self) -> tuple[bool, T | None]:
        if self._value is _EMPTY:
            return (False, None)
        value, self._value = self._value, _EMPTY
        return (True, value)

    async def receive(self) -> tuple[bool, T | None]:
        """Wait until the sender is done, then take the value if still there."""
        await self._closed.wait()
        return self.try_receive()

    def __repr__(self) -> str:
        if not self.closed:
            state = "open"
        elif self._value is not _EMPTY:
            state = "ready"
        else:
            state = "drained" if self._sent else "closed"
        return f"OneShotChannel({state})"


__all__ = ["OneShotChannel"]
