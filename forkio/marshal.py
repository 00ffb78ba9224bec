"""Conversions between scheduler values and script values.

Going in, :func:`to_engine` turns the :data:`ResumeData` produced by an effect
into what the script sees at its ``yield``. Coming out, :func:`classify` checks
what a resume produced and turns it into a :data:`CoroutineStatus`. Nothing
that fails these checks is coerced into a default.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from forkio.effects import EFFECT_TYPES, EffectBase, Job
from forkio.engine import Outcome, Raised, Returned, Yielded
from forkio.errors import InterpreterInvariantError, ProtocolViolation
from forkio.registry import Handle, HandleRegistry


# =========================================================
# Resume data (scheduler -> script)
# =========================================================
@dataclass(frozen=True)
class NoValue:
    """Resume with ``None``."""


@dataclass(frozen=True)
class Text:
    text: str


@dataclass(frozen=True)
class Value:
    """Resume with the value a handle keeps alive."""

    handle: Handle


@dataclass(frozen=True)
class JobValue:
    job: Job


@dataclass(frozen=True)
class Failure:
    """Raise ``error`` at the script's ``yield``."""

    error: Exception


ResumeData = NoValue | Text | Value | JobValue | Failure

NOTHING = NoValue()


def to_engine(data: ResumeData, registry: HandleRegistry) -> tuple[Any, Exception | None]:
    """Return ``(value, error)``; exactly one of them is meaningful."""
    match data:
        case NoValue():
            return (None, None)
        case Text(text=text):
            if not isinstance(text, str):
                raise InterpreterInvariantError(
                    f"Text resume data must hold str, got {type(text).__name__}"
                )
            return (text, None)
        case Value(handle=handle):
            return (registry.get(handle), None)
        case JobValue(job=job):
            if not isinstance(job, Job):
                raise InterpreterInvariantError(
                    f"JobValue resume data must hold Job, got {type(job).__name__}"
                )
            return (job, None)
        case Failure(error=error):
            return (None, error)
        case _:
            raise InterpreterInvariantError(f"unknown resume data: {data!r}")


# =========================================================
# Coroutine status (script -> scheduler)
# =========================================================
@dataclass(frozen=True)
class Running:
    effect: EffectBase


@dataclass(frozen=True)
class Finished:
    value: Handle


@dataclass(frozen=True)
class Errored:
    error: Exception


CoroutineStatus = Running | Finished | Errored


def as_effect(value: Any, *, task: str) -> EffectBase:
    """Validate a yielded value into one of the known effect types."""
    if type(value) in EFFECT_TYPES:
        return value
    raise ProtocolViolation(task, value)


def classify(outcome: Outcome, registry: HandleRegistry, *, task: str) -> CoroutineStatus:
    match outcome:
        case Yielded(value=value):
            return Running(as_effect(value, task=task))
        case Returned(value=value):
            return Finished(registry.create(value))
        case Raised(error=error):
            return Errored(error)
        case _:
            raise InterpreterInvariantError(f"unknown resume outcome: {outcome!r}")


__all__ = [
    "NOTHING",
    "CoroutineStatus",
    "Errored",
    "Failure",
    "Finished",
    "JobValue",
    "NoValue",
    "ResumeData",
    "Running",
    "Text",
    "Value",
    "as_effect",
    "classify",
    "to_engine",
]
