"""Error types raised by the forkio runtime."""

from __future__ import annotations

from typing import Any


class ForkioError(Exception):
    """Base class for every error the runtime raises on purpose."""

    def describe(self) -> str:
        """Format the error together with its chain of causes."""
        parts = [f"{type(self).__name__}: {self}"]
        seen: set[int] = {id(self)}
        cause = self.__cause__
        while cause is not None and id(cause) not in seen:
            seen.add(id(cause))
            parts.append(f"  caused by {type(cause).__name__}: {cause}")
            cause = cause.__cause__
        return "\n".join(parts)


class ScriptLoadError(ForkioError):
    """Raised when a script cannot be read, compiled, or has no entry point."""

    def __init__(self, path: str, reason: str) -> None:
        self.path = path
        self.reason = reason
        super().__init__(f"cannot load script {path!r}: {reason}")


class ProtocolViolation(ForkioError):
    """Raised when a suspended context yields something that is not an effect.

    This means the effect contract itself is broken, so it is never recovered
    from; the whole run is aborted.
    """

    def __init__(self, task: str, yielded: Any) -> None:
        self.task = task
        self.yielded = yielded
        super().__init__(
            f"task {task!r} yielded {type(yielded).__name__} {yielded!r}, "
            "which is not an effect\n"
            "Hint: yield one of nop(), sleep(...), fork(...), fetch(...) or job.wait()"
        )


class RuntimeScriptError(ForkioError):
    """Raised when script code fails while a task is being resumed."""

    def __init__(self, task: str, effect: str | None, cause: BaseException) -> None:
        self.task = task
        self.effect = effect
        self.cause = cause
        where = f" while resuming from {effect}" if effect else ""
        super().__init__(
            f"task {task!r} failed{where}: {type(cause).__name__}: {cause}"
        )
        self.__cause__ = cause


class NetworkError(ForkioError):
    """Raised when a fetch cannot complete."""

    def __init__(self, url: str, cause: BaseException | None = None) -> None:
        self.url = url
        self.cause = cause
        detail = f"{type(cause).__name__}: {cause}" if cause else "request failed"
        super().__init__(f"fetch {url!r} failed: {detail}")
        if cause is not None:
            self.__cause__ = cause


class ResourceContention(ForkioError):
    """Raised when the interpreter was poisoned by an earlier internal failure."""

    def __init__(self, cause: BaseException) -> None:
        self.cause = cause
        super().__init__(
            "interpreter is unavailable after an earlier failure: "
            f"{type(cause).__name__}: {cause}"
        )
        self.__cause__ = cause


class InterpreterInvariantError(ForkioError):
    """Raised when the runtime reaches an invalid state (a programming error)."""


__all__ = [
    "ForkioError",
    "InterpreterInvariantError",
    "NetworkError",
    "ProtocolViolation",
    "ResourceContention",
    "RuntimeScriptError",
    "ScriptLoadError",
]
