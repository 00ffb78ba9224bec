"""Tests for script loading and execution contexts."""

from __future__ import annotations

from pathlib import Path

import pytest

from forkio import ContextStatus, ExecutionContext, ScriptEngine, ScriptLoadError
from forkio.engine import Raised, Returned, Yielded
from forkio.errors import InterpreterInvariantError


class TestLoad:
    def test_trailing_expression_is_entry(self) -> None:
        entry = ScriptEngine().load("def run():\n    return 7\n\nrun\n")

        assert entry() == 7

    def test_trailing_lambda_is_entry(self) -> None:
        entry = ScriptEngine().load("lambda: 'inline'\n")

        assert entry() == "inline"

    def test_falls_back_to_main(self) -> None:
        entry = ScriptEngine().load("def main():\n    return 'main'\n\nx = 1\n")

        assert entry() == "main"

    def test_non_callable_trailing_expression_falls_back_to_main(self) -> None:
        entry = ScriptEngine().load("def main():\n    return 'main'\n\nprint('loaded')\n")

        assert entry() == "main"

    def test_extra_globals_are_visible(self) -> None:
        entry = ScriptEngine().load("lambda: greeting\n", extra_globals={"greeting": "hi"})

        assert entry() == "hi"

    def test_syntax_error(self) -> None:
        with pytest.raises(ScriptLoadError, match="syntax error") as excinfo:
            ScriptEngine().load("def main(:\n", "broken.py")

        assert excinfo.value.path == "broken.py"
        assert isinstance(excinfo.value.__cause__, SyntaxError)

    def test_module_level_exception(self) -> None:
        with pytest.raises(ScriptLoadError, match="module raised NameError"):
            ScriptEngine().load("undefined_name\n")

    def test_missing_entry(self) -> None:
        with pytest.raises(ScriptLoadError, match="no entry point"):
            ScriptEngine().load("x = 1\n")

    def test_non_callable_entry(self) -> None:
        with pytest.raises(ScriptLoadError, match="must be callable, got int"):
            ScriptEngine().load("main = 3\n")

    def test_load_path(self, tmp_path: Path) -> None:
        path = tmp_path / "script.py"
        path.write_text("lambda: __file__\n", encoding="utf-8")

        entry = ScriptEngine().load_path(path)

        assert entry() == str(path)

    def test_load_missing_path(self, tmp_path: Path) -> None:
        with pytest.raises(ScriptLoadError):
            ScriptEngine().load_path(tmp_path / "absent.py")


class TestExecutionContext:
    def test_plain_function_finishes_on_first_resume(self) -> None:
        context = ExecutionContext(lambda: 2, "main")

        assert context.resume() == Returned(2)
        assert context.status is ContextStatus.FINISHED

    def test_generator_yields_then_receives_value(self) -> None:
        def script():
            received = yield "first"
            return received * 2

        context = ExecutionContext(script, "main")

        assert context.resume() == Yielded("first")
        assert context.resume(21) == Returned(42)

    def test_throw_is_catchable_by_script(self) -> None:
        def script():
            try:
                yield "waiting"
            except LookupError:
                yield "recovered"

        context = ExecutionContext(script, "main")
        context.resume()

        assert context.throw(KeyError("k")) == Yielded("recovered")
        assert context.status is ContextStatus.RESUMABLE

    def test_uncaught_throw_errors_context(self) -> None:
        def script():
            yield "waiting"

        context = ExecutionContext(script, "main")
        context.resume()
        error = ValueError("bad")

        assert context.throw(error) == Raised(error)
        assert context.status is ContextStatus.ERRORED

    def test_exception_before_first_yield(self) -> None:
        def script():
            raise RuntimeError("early")
            yield

        outcome = ExecutionContext(script, "main").resume()

        assert isinstance(outcome, Raised)
        assert str(outcome.error) == "early"

    def test_finished_context_cannot_resume(self) -> None:
        context = ExecutionContext(lambda: None, "done")
        context.resume()

        with pytest.raises(InterpreterInvariantError, match="'done' is finished"):
            context.resume()

    def test_started_context_without_generator_is_an_invariant_error(self) -> None:
        context = ExecutionContext(lambda: None, "broken")
        context._started = True

        with pytest.raises(InterpreterInvariantError, match="no generator"):
            context.resume()

    def test_create_context_requires_callable(self) -> None:
        with pytest.raises(InterpreterInvariantError):
            ScriptEngine().create_context(5, "bad")  # type: ignore[arg-type]
