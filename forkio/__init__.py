"""
forkio - run sequential scripts whose yields become asynchronous effects.

A script is ordinary Python. Every ``yield`` hands an effect to the scheduler,
which performs it on an asyncio event loop and resumes the script with the
result:

    >>> def main():
    ...     job = yield fork(worker)        # start a concurrent task
    ...     page = yield fetch("https://example.com/")
    ...     yield sleep(1)
    ...     answer = yield job.wait()       # the worker's return value
    ...     return answer, len(page)
    >>>
    >>> scheduler = Scheduler()
    >>> result = asyncio.run(scheduler.run(scheduler.load(source)))
"""

__version__ = "0.1.0"

from forkio._vendor import Err, Ok, Result
from forkio.channel import OneShotChannel
from forkio.clock import Clock, MonotonicClock, VirtualClock
from forkio.config import RuntimeConfig
from forkio.effects import (
    EFFECT_PROTOCOL_VERSION,
    EFFECT_TYPES,
    AwaitJobEffect,
    EffectBase,
    FetchEffect,
    ForkEffect,
    Job,
    NopEffect,
    SleepEffect,
    fetch,
    nop,
    sleep,
)
from forkio.engine import ContextStatus, ExecutionContext, ScriptEngine
from forkio.errors import (
    ForkioError,
    InterpreterInvariantError,
    NetworkError,
    ProtocolViolation,
    ResourceContention,
    RuntimeScriptError,
    ScriptLoadError,
)
from forkio.fetcher import Fetcher, HttpFetcher
from forkio.interpreter import Interpreter, Session
from forkio.primitives import build_primitives
from forkio.registry import Handle, HandleRegistry
from forkio.scheduler import RunResult, RunStats, Scheduler

__all__ = [
    "EFFECT_PROTOCOL_VERSION",
    "EFFECT_TYPES",
    "AwaitJobEffect",
    "Clock",
    "ContextStatus",
    "EffectBase",
    "Err",
    "ExecutionContext",
    "FetchEffect",
    "Fetcher",
    "ForkEffect",
    "ForkioError",
    "Handle",
    "HandleRegistry",
    "HttpFetcher",
    "Interpreter",
    "InterpreterInvariantError",
    "Job",
    "MonotonicClock",
    "NetworkError",
    "NopEffect",
    "Ok",
    "OneShotChannel",
    "ProtocolViolation",
    "ResourceContention",
    "Result",
    "RunResult",
    "RunStats",
    "RuntimeConfig",
    "RuntimeScriptError",
    "Scheduler",
    "ScriptEngine",
    "ScriptLoadError",
    "Session",
    "SleepEffect",
    "VirtualClock",
    "build_primitives",
    "fetch",
    "nop",
    "sleep",
    "__version__",
]
