"""Opt-in timing of CLI phases.

Set ``FORKIO_PROFILE=1`` to print how long loading and running a script took::

    FORKIO_PROFILE=1 forkio examples/hello_world.py
    [PROFILE]   load examples/hello_world.py: 0.41ms
    [PROFILE]   run main: 4012.77ms
    [PROFILE] total: 4013.50ms
"""

from __future__ import annotations

import os
import sys
import time
from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import TextIO

PROFILE_ENV = "FORKIO_PROFILE"

_OFF = frozenset({"", "0", "false", "no", "off"})


def profiling_requested(environ: Mapping[str, str] | None = None) -> bool:
    source = os.environ if environ is None else environ
    return source.get(PROFILE_ENV, "").strip().lower() not in _OFF


@dataclass
class PhaseTimer:
    """Records wall time per phase and reports it on stderr when enabled."""

    enabled: bool = False
    stream: TextIO | None = None
    phases: list[tuple[str, float]] = field(default_factory=list)

    @contextmanager
    def phase(self, name: str, *, depth: int = 0) -> Iterator[None]:
        if not self.enabled:
            yield
            return

        started = time.perf_counter()
        try:
            yield
        finally:
            elapsed_ms = (time.perf_counter() - started) * 1000
            self.phases.append((name, elapsed_ms))
            # stdout is reserved for --format json
            print(
                f"[PROFILE] {'  ' * depth}{name}: {elapsed_ms:.2f}ms",
                file=self.stream or sys.stderr,
            )


__all__ = ["PROFILE_ENV", "PhaseTimer", "profiling_requested"]
