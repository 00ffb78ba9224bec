"""Fork effect: run a function as a concurrent child task."""

from __future__ import annotations

from dataclasses import dataclass

from forkio.registry import Handle

from .base import EffectBase


@dataclass(frozen=True)
class ForkEffect(EffectBase):
    """Start ``function`` as a new task and resume at once with its :class:`Job`.

    ``function`` is a registry handle so the callable stays alive between the
    yield and the moment the scheduler creates the child context.
    """

    tag = "fork"

    function: Handle
    label: str | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.function, Handle):
            raise TypeError(
                f"function must be Handle, got {type(self.function).__name__}"
            )

    def describe(self) -> str:
        if self.label:
            return f"fork({self.label})"
        return f"fork({self.function!r})"


__all__ = ["ForkEffect"]
