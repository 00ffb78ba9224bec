"""Script engine adapter: loads scripts and runs execution contexts.

An execution context wraps a script callable. Its first resume calls the
callable; if that returns a generator, each later resume sends a value into the
generator and runs it to its next ``yield`` (or to its end). A callable that
returns a plain value finishes on its first resume.
"""

from __future__ import annotations

import ast
import enum
import inspect
from collections.abc import Callable, Generator, Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from forkio.errors import InterpreterInvariantError, ScriptLoadError

ENTRY_NAME = "__forkio_entry__"
DEFAULT_ENTRY_FUNCTION = "main"


class ContextStatus(enum.Enum):
    RESUMABLE = "resumable"
    FINISHED = "finished"
    ERRORED = "errored"


@dataclass(frozen=True)
class Yielded:
    value: Any


@dataclass(frozen=True)
class Returned:
    value: Any


@dataclass(frozen=True)
class Raised:
    error: Exception


Outcome = Yielded | Returned | Raised


class ExecutionContext:
    """A resumable unit of script execution."""

    def __init__(self, function: Callable[[], Any], name: str) -> None:
        self._function = function
        self._generator: Generator[Any, Any, Any] | None = None
        self._started = False
        self._status = ContextStatus.RESUMABLE
        self.name = name

    @property
    def status(self) -> ContextStatus:
        return self._status

    def resume(self, value: Any = None) -> Outcome:
        """Run until the next yield, passing ``value`` as the result of the last one."""
        self._ensure_resumable()
        if not self._started:
            return self._start()
        if self._generator is None:
            raise InterpreterInvariantError(f"context {self.name!r} has no generator to resume")
        try:
            yielded = self._generator.send(value)
        except StopIteration as stop:
            return self._finish(stop.value)
        except Exception as exc:
            return self._fail(exc)
        return Yielded(yielded)

    def throw(self, error: Exception) -> Outcome:
        """Raise ``error`` at the suspended yield and run until the next one."""
        self._ensure_resumable()
        if self._generator is None:
            self._started = True
            return self._fail(error)
        try:
            yielded = self._generator.throw(error)
        except StopIteration as stop:
            return self._finish(stop.value)
        except Exception as exc:
            return self._fail(exc)
        return Yielded(yielded)

    def _start(self) -> Outcome:
        self._started = True
        try:
            result = self._function()
        except Exception as exc:
            return self._fail(exc)
        if not inspect.isgenerator(result):
            return self._finish(result)
        self._generator = result
        try:
            yielded = next(result)
        except StopIteration as stop:
            return self._finish(stop.value)
        except Exception as exc:
            return self._fail(exc)
        return Yielded(yielded)

    def _finish(self, value: Any) -> Returned:
        self._status = ContextStatus.FINISHED
        self._generator = None
        return Returned(value)

    def _fail(self, error: Exception) -> Raised:
        self._status = ContextStatus.ERRORED
        self._generator = None
        return Raised(error)

    def _ensure_resumable(self) -> None:
        if self._status is not ContextStatus.RESUMABLE:
            raise InterpreterInvariantError(
                f"context {self.name!r} is {self._status.value} and cannot be resumed"
            )

    def __repr__(self) -> str:
        return f"ExecutionContext({self.name!r}, {self._status.value})"


def _wrap_last_expr_as_entry(tree: ast.Module) -> ast.Module:
    """Assign the module's trailing expression to the entry-point name."""
    if not tree.body:
        return tree

    last_stmt = tree.body[-1]
    if isinstance(last_stmt, ast.Expr):
        assign = ast.Assign(
            targets=[ast.Name(id=ENTRY_NAME, ctx=ast.Store())],
            value=last_stmt.value,
        )
        ast.copy_location(assign, last_stmt)
        new_tree = ast.Module(body=tree.body[:-1] + [assign], type_ignores=[])
        ast.fix_missing_locations(new_tree)
        return new_tree

    return tree


class ScriptEngine:
    """Compiles scripts and creates execution contexts from callables."""

    def load(
        self,
        source: str,
        filename: str = "<forkio-script>",
        extra_globals: Mapping[str, Any] | None = None,
    ) -> Callable[[], Any]:
        """Execute a script module and return its entry point.

        The entry point is the module's last top-level expression, or a
        top-level callable named ``main`` when the module does not end in one.
        """
        try:
            tree = ast.parse(source, filename=filename, mode="exec")
            code = compile(_wrap_last_expr_as_entry(tree), filename, "exec", dont_inherit=True)
        except SyntaxError as exc:
            raise ScriptLoadError(filename, f"syntax error: {exc}") from exc

        exec_globals: dict[str, Any] = {
            "__name__": "__forkio__",
            "__file__": filename,
            "__builtins__": __builtins__,
        }
        if extra_globals:
            exec_globals.update(extra_globals)

        try:
            exec(code, exec_globals)
        except Exception as exc:
            raise ScriptLoadError(
                filename, f"module raised {type(exc).__name__}: {exc}"
            ) from exc

        entry = exec_globals.get(ENTRY_NAME)
        if not callable(entry) and DEFAULT_ENTRY_FUNCTION in exec_globals:
            entry = exec_globals[DEFAULT_ENTRY_FUNCTION]
        if entry is None:
            raise ScriptLoadError(
                filename,
                "no entry point; end the script with the entry function, "
                f"e.g. `{DEFAULT_ENTRY_FUNCTION}`",
            )
        if not callable(entry):
            raise ScriptLoadError(
                filename, f"entry point must be callable, got {type(entry).__name__}"
            )
        return entry

    def load_path(
        self,
        path: str | Path,
        extra_globals: Mapping[str, Any] | None = None,
    ) -> Callable[[], Any]:
        script_path = Path(path)
        try:
            source = script_path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            raise ScriptLoadError(str(script_path), str(exc)) from exc
        return self.load(source, str(script_path), extra_globals)

    def create_context(self, function: Callable[[], Any], name: str) -> ExecutionContext:
        if not callable(function):
            raise InterpreterInvariantError(
                f"cannot create a context from {type(function).__name__}"
            )
        return ExecutionContext(function, name)


__all__ = [
    "ContextStatus",
    "ExecutionContext",
    "Outcome",
    "Raised",
    "Returned",
    "ScriptEngine",
    "Yielded",
]
