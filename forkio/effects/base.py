"""Base class shared by every effect a task can yield."""

from __future__ import annotations

from dataclasses import dataclass
from typing import ClassVar


@dataclass(frozen=True)
class EffectBase:
    """A request a suspended task makes to the scheduler.

    Effects are plain data. Performing them is the scheduler's job.
    """

    tag: ClassVar[str] = "effect"

    def describe(self) -> str:
        return f"{self.tag}()"


__all__ = ["EffectBase"]
