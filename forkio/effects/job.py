"""Job handle returned by a fork, and the effect used to wait on it."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from forkio._vendor import Result
from forkio.channel import OneShotChannel

from .base import EffectBase


@dataclass(frozen=True, eq=False)
class Job:
    """The eventual outcome of one forked task.

    Scripts only ever call :meth:`wait`. Waiting is itself an effect, so a
    script writes ``value = yield job.wait()``. The first wait receives the
    child's return value (or has its failure raised); later waits get ``None``.
    """

    task: str
    channel: OneShotChannel[Result[Any]] = field(repr=False)

    def wait(self) -> AwaitJobEffect:
        return AwaitJobEffect(job=self)

    @property
    def done(self) -> bool:
        return self.channel.closed


@dataclass(frozen=True)
class AwaitJobEffect(EffectBase):
    """Suspend until the job's task finishes."""

    tag = "wait"

    job: Job

    def __post_init__(self) -> None:
        if not isinstance(self.job, Job):
            raise TypeError(f"job must be Job, got {type(self.job).__name__}")

    def describe(self) -> str:
        return f"wait({self.job.task!r})"


__all__ = ["AwaitJobEffect", "Job"]
