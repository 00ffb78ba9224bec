"""Effect-dispatch scheduler.

Each execution context is driven by its own asyncio task running
:meth:`Scheduler._drive`: resume the context under the interpreter lock, look at
the effect it yielded, perform that effect with the lock released, and feed the
result into the next resume. A fork creates the child context and starts a new
driver task for it; the child's outcome comes back only through the
:class:`~forkio.effects.Job` channel.

Failure handling:
- A script exception fails only its own task. The failure is delivered through
  the task's Job and raised in whoever waits on it.
- A failed fetch is raised inside the fetching script at its ``yield``.
- :class:`~forkio.errors.ProtocolViolation` and other internal errors abort
  the whole run.
"""

from __future__ import annotations

import asyncio
import itertools
import logging
from collections import Counter
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Generic, TypeVar

from forkio._vendor import Err, FrozenDict, Ok, Result
from forkio.channel import OneShotChannel
from forkio.clock import Clock, MonotonicClock
from forkio.config import RuntimeConfig
from forkio.effects import (
    EFFECT_TYPES,
    AwaitJobEffect,
    EffectBase,
    FetchEffect,
    ForkEffect,
    Job,
    NopEffect,
    SleepEffect,
)
from forkio.errors import (
    InterpreterInvariantError,
    NetworkError,
    ProtocolViolation,
    ResourceContention,
    RuntimeScriptError,
)
from forkio.fetcher import Fetcher, HttpFetcher
from forkio.interpreter import Interpreter, Session
from forkio.marshal import (
    NOTHING,
    CoroutineStatus,
    Errored,
    Failure,
    Finished,
    JobValue,
    ResumeData,
    Running,
    Text,
    Value,
)
from forkio.primitives import build_primitives
from forkio.registry import Handle

logger = logging.getLogger(__name__)

T = TypeVar("T")

ROOT_TASK = "main"

EffectHandler = Callable[["TaskRef", Any], Awaitable[ResumeData]]


@dataclass
class TaskRef:
    """Scheduler-side bookkeeping for one execution context."""

    name: str
    context: Handle
    last_effect: EffectBase | None = None
    steps: int = 0


@dataclass
class RunStats:
    tasks_spawned: int = 0
    effects: Counter[str] = field(default_factory=Counter)
    failed_tasks: list[str] = field(default_factory=list)
    orphaned_forks: int = 0
    handles_expired: int = 0


@dataclass(frozen=True)
class RunResult(Generic[T]):
    """Outcome of the root task, plus statistics about the whole run."""

    result: Result[T]
    stats: RunStats

    @property
    def is_ok(self) -> bool:
        return self.result.is_ok()

    @property
    def is_err(self) -> bool:
        return self.result.is_err()

    @property
    def value(self) -> T:
        return self.result.unwrap()

    @property
    def error(self) -> Exception:
        return self.result.unwrap_err()

    def unwrap(self) -> T:
        """Get value or raise if error."""
        return self.result.unwrap()

    def display(self) -> str:
        if self.is_ok:
            return f"Ok({self.result.ok()!r})"
        error = self.result.err()
        if isinstance(error, RuntimeScriptError):
            return f"Err({error.describe()})"
        return f"Err({error!r})"


def _check_dispatch_table(table: Mapping[type, Any]) -> None:
    missing = [t.__name__ for t in EFFECT_TYPES if t not in table]
    extra = [t.__name__ for t in table if t not in EFFECT_TYPES]
    if missing or extra:
        raise InterpreterInvariantError(
            "effect dispatch table is out of step with EFFECT_TYPES: "
            f"missing={missing}, unknown={extra}"
        )


class Scheduler:
    """Runs a script's root task and every task it forks."""

    def __init__(
        self,
        interpreter: Interpreter | None = None,
        *,
        config: RuntimeConfig | None = None,
        fetcher: Fetcher | None = None,
        clock: Clock | None = None,
    ) -> None:
        self._interpreter = interpreter or Interpreter()
        self._config = config or RuntimeConfig()
        self._fetcher = fetcher
        self._owns_fetcher = fetcher is None
        self._clock = clock or MonotonicClock()
        self._dispatch: dict[type, EffectHandler] = {
            NopEffect: self._perform_nop,
            SleepEffect: self._perform_sleep,
            ForkEffect: self._perform_fork,
            FetchEffect: self._perform_fetch,
            AwaitJobEffect: self._perform_await_job,
        }
        _check_dispatch_table(self._dispatch)
        self._tasks: set[asyncio.Task[Any]] = set()
        self._task_ids = itertools.count(1)
        self._root_task: asyncio.Task[Any] | None = None
        self._fatal: BaseException | None = None
        self._unclaimed_failures: dict[str, OneShotChannel[Result[Any]]] = {}
        self.stats = RunStats()

    @property
    def interpreter(self) -> Interpreter:
        return self._interpreter

    @property
    def config(self) -> RuntimeConfig:
        return self._config

    @property
    def primitives(self) -> FrozenDict:
        return build_primitives(self._interpreter.registry)

    def load(self, source: str, filename: str = "<forkio-script>") -> Callable[[], Any]:
        """Load a script with the effect constructors installed as globals."""
        return self._interpreter.load(source, filename, self.primitives)

    def load_path(self, path: str | Path) -> Callable[[], Any]:
        return self._interpreter.load_path(path, self.primitives)

    async def run_path(self, path: str | Path) -> RunResult[Any]:
        return await self.run(self.load_path(path))

    async def run(self, entry: Callable[[], Any]) -> RunResult[Any]:
        """Drive ``entry`` as the root task until it finishes.

        Returns a :class:`RunResult` for script-level success or failure.
        Raises for fatal conditions such as :class:`ProtocolViolation`.
        """
        root = await self._interpreter.exclusive(
            lambda session: session.create_context(entry, ROOT_TASK), owner=ROOT_TASK
        )
        self._root_task = asyncio.create_task(
            self._drive(TaskRef(ROOT_TASK, root), None), name=f"forkio:{ROOT_TASK}"
        )
        del root
        outcome: Result[Handle] | None = None
        try:
            outcome = await self._root_task
            if self._config.wait_for_forks:
                await self._wait_for_forks()
        except (asyncio.CancelledError, ResourceContention):
            # A fork already aborted the run; report its error instead.
            if self._fatal is None:
                raise
        finally:
            self._root_task = None
            await self._shutdown()

        if self._fatal is not None:
            raise self._fatal
        if outcome is None:
            raise InterpreterInvariantError("root task ended without an outcome")

        match outcome:
            case Ok(value=handle):
                value = await self._interpreter.exclusive(
                    lambda session: session.value(handle), owner=ROOT_TASK
                )
                return RunResult(Ok(value), self.stats)
            case Err(error=error):
                return RunResult(Err(error), self.stats)
            case _:
                raise InterpreterInvariantError(f"unknown root outcome: {outcome!r}")

    # ------------------------------------------------------------------
    # Driver loop
    # ------------------------------------------------------------------

    async def _drive(
        self,
        task: TaskRef,
        out: OneShotChannel[Result[Any]] | None,
    ) -> Result[Handle]:
        data: ResumeData = NOTHING
        try:
            while True:
                status = await self._resume(task, data)
                match status:
                    case Finished(value=handle):
                        outcome: Result[Handle] = Ok(handle)
                        logger.debug("task %s finished after %d step(s)", task.name, task.steps)
                        break
                    case Errored(error=error):
                        outcome = Err(self._task_failure(task, error))
                        break
                    case Running(effect=effect):
                        data = await self._perform(task, effect)
                    case _:
                        raise InterpreterInvariantError(f"unknown coroutine status: {status!r}")
        except BaseException:
            if out is not None:
                out.close()
            raise
        if out is not None:
            out.send(outcome)
            if outcome.is_err():
                self._unclaimed_failures[task.name] = out
        return outcome

    async def _resume(self, task: TaskRef, data: ResumeData) -> CoroutineStatus:
        def resume(session: Session) -> CoroutineStatus:
            return session.resume(task.context, data)

        task.steps += 1
        return await self._interpreter.exclusive(resume, owner=task.name)

    def _task_failure(self, task: TaskRef, error: Exception) -> RuntimeScriptError:
        effect = task.last_effect.describe() if task.last_effect is not None else None
        failure = RuntimeScriptError(task.name, effect, error)
        self.stats.failed_tasks.append(task.name)
        logger.debug("%s", failure)
        return failure

    # ------------------------------------------------------------------
    # Effect dispatch
    # ------------------------------------------------------------------

    async def _perform(self, task: TaskRef, effect: EffectBase) -> ResumeData:
        handler = self._dispatch.get(type(effect))
        if handler is None:
            raise ProtocolViolation(task.name, effect)
        task.last_effect = effect
        self.stats.effects[effect.tag] += 1
        logger.debug("task %s: %s", task.name, effect.describe())
        return await handler(task, effect)

    async def _perform_nop(self, task: TaskRef, effect: NopEffect) -> ResumeData:
        await asyncio.sleep(0)
        return NOTHING

    async def _perform_sleep(self, task: TaskRef, effect: SleepEffect) -> ResumeData:
        await self._clock.sleep(effect.seconds)
        return NOTHING

    async def _perform_fork(self, task: TaskRef, effect: ForkEffect) -> ResumeData:
        name = f"{effect.label or 'task'}-{next(self._task_ids)}"
        child = await self._interpreter.exclusive(
            lambda session: session.create_context(effect.function, name), owner=task.name
        )
        channel: OneShotChannel[Result[Any]] = OneShotChannel()
        self._spawn(TaskRef(name, child), channel)
        logger.debug("task %s forked %s", task.name, name)
        return JobValue(Job(task=name, channel=channel))

    async def _perform_fetch(self, task: TaskRef, effect: FetchEffect) -> ResumeData:
        try:
            body = await self._get_fetcher().fetch(effect.url)
        except NetworkError as exc:
            logger.debug("task %s: %s", task.name, exc)
            return Failure(exc)
        return Text(body)

    async def _perform_await_job(self, task: TaskRef, effect: AwaitJobEffect) -> ResumeData:
        received, outcome = await effect.job.channel.receive()
        if not received:
            return NOTHING
        self._unclaimed_failures.pop(effect.job.task, None)
        match outcome:
            case Ok(value=handle):
                return Value(handle)
            case Err(error=error):
                return Failure(error)
            case _:
                raise InterpreterInvariantError(f"job {effect.job.task!r} delivered {outcome!r}")

    def _get_fetcher(self) -> Fetcher:
        if self._fetcher is None:
            self._fetcher = HttpFetcher(
                timeout=self._config.fetch_timeout,
                follow_redirects=self._config.follow_redirects,
                user_agent=self._config.user_agent,
            )
            self._owns_fetcher = True
        return self._fetcher

    # ------------------------------------------------------------------
    # Task lifetime
    # ------------------------------------------------------------------

    def _spawn(self, task: TaskRef, out: OneShotChannel[Result[Any]]) -> None:
        driver = asyncio.create_task(self._drive(task, out), name=f"forkio:{task.name}")
        self._tasks.add(driver)
        driver.add_done_callback(self._on_task_done)
        self.stats.tasks_spawned += 1

    def _on_task_done(self, driver: asyncio.Task[Any]) -> None:
        self._tasks.discard(driver)
        if driver.cancelled():
            return
        error = driver.exception()
        if error is not None:
            self._abort(error)

    def _abort(self, error: BaseException) -> None:
        if self._fatal is not None:
            return
        self._fatal = error
        logger.error("aborting run: %s", error)
        if self._root_task is not None and not self._root_task.done():
            self._root_task.cancel()

    async def _wait_for_forks(self) -> None:
        while self._fatal is None:
            pending = [driver for driver in self._tasks if not driver.done()]
            if not pending:
                return
            done, _ = await asyncio.wait(pending)
            for driver in done:
                if not driver.cancelled() and driver.exception() is not None:
                    self._abort(driver.exception())

    def _warn_unclaimed_failures(self) -> None:
        for name, channel in self._unclaimed_failures.items():
            received, outcome = channel.try_receive()
            if received and outcome is not None:
                logger.warning(
                    "task %r failed and its job was never waited on: %s",
                    name,
                    outcome.unwrap_err(),
                )
        self._unclaimed_failures.clear()

    async def _shutdown(self) -> None:
        pending = [driver for driver in self._tasks if not driver.done()]
        if pending:
            self.stats.orphaned_forks = len(pending)
            if self._fatal is None:
                names = ", ".join(sorted(driver.get_name() for driver in pending))
                logger.warning(
                    "%d forked task(s) were still running when %r finished and are "
                    "being cancelled: %s\n"
                    "Hint: wait on their jobs with `yield job.wait()`, or enable "
                    "wait_for_forks to let them finish.",
                    len(pending),
                    ROOT_TASK,
                    names,
                )
            for driver in pending:
                driver.cancel()
            await asyncio.gather(*pending, return_exceptions=True)
        self._warn_unclaimed_failures()
        if self._owns_fetcher and self._fetcher is not None:
            await self._fetcher.aclose()
            self._fetcher = None
        self.stats.handles_expired = self._interpreter.expired_handles


__all__ = ["ROOT_TASK", "RunResult", "RunStats", "Scheduler", "TaskRef"]
