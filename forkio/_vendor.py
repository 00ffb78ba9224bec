"""
Small value types shared across the runtime.

A finished task is ``Ok(value)`` or ``Err(error)``. Both are frozen and match
by keyword::

    match outcome:
        case Ok(value=handle): ...
        case Err(error=error): ...
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, NoReturn, TypeVar, Union

from frozendict import frozendict

T = TypeVar("T")


@dataclass(frozen=True)
class Ok(Generic[T]):
    """A task that returned ``value``."""

    value: T

    def is_ok(self) -> bool:
        return True

    def is_err(self) -> bool:
        return False

    def ok(self) -> T:
        return self.value

    def err(self) -> None:
        return None

    def unwrap(self) -> T:
        return self.value

    def unwrap_err(self) -> NoReturn:
        raise ValueError(f"unwrap_err() called on {self!r}")


@dataclass(frozen=True)
class Err:
    """A task that raised ``error``."""

    error: Exception

    def is_ok(self) -> bool:
        return False

    def is_err(self) -> bool:
        return True

    def ok(self) -> None:
        return None

    def err(self) -> Exception:
        return self.error

    def unwrap(self) -> NoReturn:
        raise self.error

    def unwrap_err(self) -> Exception:
        return self.error


Result = Union[Ok[T], Err]

FrozenDict = frozendict

__all__ = [
    "Err",
    "FrozenDict",
    "Ok",
    "Result",
]
