"""Timer effect.

Usage inside a script::

    def main():
        yield sleep(1.5)  # resumes no earlier than 1.5 clock units later
"""

from __future__ import annotations

from dataclasses import dataclass

from ._validators import ensure_non_negative_number
from .base import EffectBase


@dataclass(frozen=True)
class SleepEffect(EffectBase):
    """Suspend the task for ``seconds`` on the scheduler's clock.

    There is no early wake-up: the task always waits the full duration.

    Args:
        seconds: Duration to wait. Must be a finite, non-negative number.
    """

    tag = "sleep"

    seconds: float

    def __post_init__(self) -> None:
        ensure_non_negative_number(self.seconds, name="seconds")

    def describe(self) -> str:
        return f"sleep({self.seconds!r})"


def sleep(seconds: float) -> SleepEffect:
    return SleepEffect(seconds=seconds)


__all__ = ["SleepEffect", "sleep"]
