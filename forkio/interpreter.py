"""The shared interpreter resource.

One :class:`Interpreter` owns the script engine and its handle registry. Tasks
reach them only through :meth:`Interpreter.exclusive`, which runs a plain
(non-async) callable under an :class:`asyncio.Lock`. Because the callable cannot
await, a critical section can never contain a suspension point.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Mapping
from pathlib import Path
from typing import Any, TypeVar

from forkio.engine import ContextStatus, ExecutionContext, ScriptEngine
from forkio.errors import InterpreterInvariantError, ResourceContention
from forkio.marshal import CoroutineStatus, ResumeData, classify, to_engine
from forkio.registry import Handle, HandleRegistry

logger = logging.getLogger(__name__)

T = TypeVar("T")


class Session:
    """Operations available while holding the interpreter lock.

    A session is only valid inside the :meth:`Interpreter.exclusive` call that
    created it.
    """

    def __init__(self, engine: ScriptEngine, registry: HandleRegistry) -> None:
        self._engine = engine
        self._registry = registry
        self._open = True
        self.expired = 0

    def _check_open(self) -> None:
        if not self._open:
            raise InterpreterInvariantError("session used outside its critical section")

    def close(self) -> None:
        self._open = False

    def create_handle(self, value: Any) -> Handle:
        self._check_open()
        return self._registry.create(value)

    def value(self, handle: Handle) -> Any:
        self._check_open()
        return self._registry.get(handle)

    def create_context(self, function: Callable[[], Any] | Handle, name: str) -> Handle:
        """Create an execution context and return a handle to it."""
        self._check_open()
        if isinstance(function, Handle):
            function = self._registry.get(function)
        context = self._engine.create_context(function, name)
        return self._registry.create(context)

    def resume(self, context_handle: Handle, data: ResumeData) -> CoroutineStatus:
        """Resume a context with ``data`` and classify what it did."""
        self._check_open()
        context = self._registry.get(context_handle)
        if not isinstance(context, ExecutionContext):
            raise InterpreterInvariantError(
                f"{context_handle!r} does not refer to an execution context"
            )
        if context.status is not ContextStatus.RESUMABLE:
            raise InterpreterInvariantError(
                f"context {context.name!r} is {context.status.value} and cannot be resumed"
            )
        value, error = to_engine(data, self._registry)
        outcome = context.throw(error) if error is not None else context.resume(value)
        status = classify(outcome, self._registry, task=context.name)
        self.expired += self._registry.expire()
        return status


class Interpreter:
    """Engine plus registry behind one asynchronous lock."""

    def __init__(
        self,
        engine: ScriptEngine | None = None,
        registry: HandleRegistry | None = None,
    ) -> None:
        self._engine = engine or ScriptEngine()
        self._registry = registry or HandleRegistry()
        self._lock = asyncio.Lock()
        self._poisoned: BaseException | None = None
        self._holder: str | None = None
        self.expired_handles = 0

    @property
    def registry(self) -> HandleRegistry:
        return self._registry

    @property
    def poisoned(self) -> bool:
        return self._poisoned is not None

    @property
    def locked(self) -> bool:
        return self._lock.locked()

    def load(
        self,
        source: str,
        filename: str = "<forkio-script>",
        extra_globals: Mapping[str, Any] | None = None,
    ) -> Callable[[], Any]:
        return self._engine.load(source, filename, extra_globals)

    def load_path(
        self, path: str | Path, extra_globals: Mapping[str, Any] | None = None
    ) -> Callable[[], Any]:
        return self._engine.load_path(path, extra_globals)

    async def exclusive(self, operation: Callable[[Session], T], *, owner: str = "?") -> T:
        """Run ``operation`` with sole access to the interpreter.

        An exception escaping ``operation`` is an internal failure: the
        interpreter is poisoned and every later caller gets
        :class:`ResourceContention`.
        """
        self._check_poisoned()
        async with self._lock:
            self._check_poisoned()
            self._enter_critical(owner)
            session = Session(self._engine, self._registry)
            try:
                return operation(session)
            except Exception as exc:
                self._poisoned = exc
                logger.debug("interpreter poisoned by %s: %s", owner, exc)
                raise
            finally:
                session.close()
                self.expired_handles += session.expired
                self._exit_critical(owner)

    def _check_poisoned(self) -> None:
        if self._poisoned is not None:
            raise ResourceContention(self._poisoned)

    def _enter_critical(self, owner: str) -> None:
        if self._holder is not None:
            raise InterpreterInvariantError(
                f"{owner!r} entered the interpreter while {self._holder!r} holds it"
            )
        self._holder = owner

    def _exit_critical(self, owner: str) -> None:
        self._holder = None


__all__ = ["Interpreter", "Session"]
