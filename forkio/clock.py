"""Clocks the scheduler uses for ``sleep`` effects."""

from __future__ import annotations

import asyncio
import heapq
import itertools
import math
import time
from typing import Protocol


def _coerce_finite_float(value: float, *, name: str) -> float:
    if isinstance(value, bool) or not isinstance(value, int | float):
        raise TypeError(f"{name} must be float, got {type(value).__name__}")
    coerced = float(value)
    if math.isnan(coerced) or math.isinf(coerced):
        raise ValueError(f"{name} must be finite, got {value!r}")
    return coerced


class Clock(Protocol):
    def now(self) -> float: ...

    async def sleep(self, seconds: float) -> None: ...


class MonotonicClock:
    """Wall-clock time from :func:`time.monotonic` and :func:`asyncio.sleep`."""

    def now(self) -> float:
        return time.monotonic()

    async def sleep(self, seconds: float) -> None:
        await asyncio.sleep(max(0.0, seconds))


class VirtualClock:
    """Virtual time that jumps straight to the next deadline.

    Sleepers are kept in a min-heap ordered by deadline. Whenever the event
    loop has nothing else to run (checked by yielding to it ``settle_rounds``
    times), the clock advances to the earliest deadline and wakes every sleeper
    due at that time. Only meaningful when all waiting goes through this clock.
    """

    def __init__(self, start: float = 0.0, *, settle_rounds: int = 20) -> None:
        self._current_time = _coerce_finite_float(start, name="start")
        self._settle_rounds = settle_rounds
        self._sequence = itertools.count()
        self._sleepers: list[tuple[float, int, asyncio.Future[None]]] = []
        self._pump: asyncio.Task[None] | None = None

    def now(self) -> float:
        return self._current_time

    def advance_to(self, target_time: float) -> float:
        target = _coerce_finite_float(target_time, name="target_time")
        if target > self._current_time:
            self._current_time = target
        return self._current_time

    @property
    def pending(self) -> int:
        return len(self._sleepers)

    async def sleep(self, seconds: float) -> None:
        duration = _coerce_finite_float(seconds, name="seconds")
        loop = asyncio.get_running_loop()
        waiter: asyncio.Future[None] = loop.create_future()
        deadline = self._current_time + max(0.0, duration)
        heapq.heappush(self._sleepers, (deadline, next(self._sequence), waiter))
        if self._pump is None or self._pump.done():
            self._pump = loop.create_task(self._run_pump())
        await waiter

    async def _settle(self) -> None:
        for _ in range(self._settle_rounds):
            await asyncio.sleep(0)

    async def _run_pump(self) -> None:
        while True:
            await self._settle()
            while self._sleepers and self._sleepers[0][2].done():
                heapq.heappop(self._sleepers)
            if not self._sleepers:
                return
            deadline = self._sleepers[0][0]
            self.advance_to(deadline)
            while self._sleepers and self._sleepers[0][0] <= deadline:
                _, _, waiter = heapq.heappop(self._sleepers)
                if not waiter.done():
                    waiter.set_result(None)


__all__ = ["Clock", "MonotonicClock", "VirtualClock"]
