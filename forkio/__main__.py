from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from collections.abc import Iterable
from typing import Any

from loguru import logger

from forkio import __version__
from forkio.config import RuntimeConfig
from forkio.errors import ForkioError, ScriptLoadError
from forkio.profiling import PhaseTimer, profiling_requested
from forkio.scheduler import RunResult, Scheduler

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_USAGE = 2
EXIT_LOAD_ERROR = 3
EXIT_FATAL = 4

cli_logger = logger.bind(component="forkio")


def configure_logging(level: str) -> None:
    """Send runtime logs and CLI reports to stderr at ``level``."""
    logging.basicConfig(
        level=level,
        stream=sys.stderr,
        format="%(levelname)s %(name)s: %(message)s",
        force=True,
    )
    logger.remove()
    logger.add(
        sys.stderr,
        level=level,
        format="<level>{level}</level> {extra[component]}: {message}",
        colorize=False,
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="forkio",
        description="Run a forkio script: sequential code whose yields are asynchronous effects.",
        epilog=(
            "Scripts may yield nop(), sleep(seconds), fork(function), fetch(url) "
            "and job.wait().\n\n"
            "Examples:\n"
            "  forkio examples/hello_world.py\n"
            "  forkio --print-result --format json my_workflow.py\n"
            "  FORKIO_FETCH_TIMEOUT=5 forkio my_workflow.py"
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("script", help="Path to the script to run")
    parser.add_argument(
        "--format",
        choices=("text", "json"),
        default="text",
        help="Output format for the final report (default: text)",
    )
    parser.add_argument(
        "--print-result",
        action="store_true",
        help="Print the main task's return value.",
    )
    parser.add_argument(
        "--fetch-timeout",
        type=float,
        help="Seconds allowed per fetch (overrides FORKIO_FETCH_TIMEOUT).",
    )
    parser.add_argument(
        "--wait-forks",
        action="store_true",
        help="Wait for forked tasks still running when the main task finishes.",
    )
    parser.add_argument(
        "--log-level",
        help="Logging level name (overrides FORKIO_LOG_LEVEL).",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Shortcut for --log-level DEBUG.",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def resolve_config(args: argparse.Namespace) -> RuntimeConfig:
    log_level = args.log_level.upper() if args.log_level else None
    if log_level is None and args.verbose:
        log_level = "DEBUG"
    if args.fetch_timeout is not None and args.fetch_timeout <= 0:
        raise ValueError(f"--fetch-timeout must be positive, got {args.fetch_timeout}")
    if log_level is not None and not isinstance(logging.getLevelName(log_level), int):
        raise ValueError(f"--log-level must be a logging level name, got {args.log_level!r}")
    return RuntimeConfig.from_env().with_overrides(
        fetch_timeout=args.fetch_timeout,
        wait_for_forks=True if args.wait_forks else None,
        log_level=log_level,
    )


async def run_script(
    path: str, config: RuntimeConfig, timer: PhaseTimer | None = None
) -> RunResult[Any]:
    timer = timer or PhaseTimer()
    scheduler = Scheduler(config=config)
    with timer.phase(f"load {path}", depth=1):
        entry = scheduler.load_path(path)
    with timer.phase("run main", depth=1):
        return await scheduler.run(entry)


def _report_error(output_format: str, status: str, error: BaseException) -> None:
    if output_format == "json":
        payload = {
            "status": status,
            "error": type(error).__name__,
            "message": str(error),
        }
        print(json.dumps(payload))
        return
    if isinstance(error, ForkioError):
        cli_logger.error(error.describe())
    else:
        cli_logger.error(f"{type(error).__name__}: {error}")


def _report_success(args: argparse.Namespace, run_result: RunResult[Any]) -> None:
    value = run_result.value
    stats = run_result.stats
    if args.format == "json":
        payload: dict[str, Any] = {
            "status": "ok",
            "tasks_spawned": stats.tasks_spawned,
            "effects": dict(stats.effects),
            "orphaned_forks": stats.orphaned_forks,
        }
        if args.print_result:
            payload["value"] = repr(value)
        print(json.dumps(payload))
        return
    if args.print_result:
        print(repr(value))
    cli_logger.debug(
        f"done: {stats.tasks_spawned} task(s) forked, "
        f"{sum(stats.effects.values())} effect(s) performed"
    )


def main(argv: Iterable[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)
    try:
        config = resolve_config(args)
    except ValueError as exc:
        parser.print_usage(sys.stderr)
        print(f"{parser.prog}: error: {exc}", file=sys.stderr)
        return EXIT_USAGE

    configure_logging(config.log_level)

    timer = PhaseTimer(enabled=profiling_requested())
    try:
        with timer.phase("total"):
            run_result = asyncio.run(run_script(args.script, config, timer))
    except ScriptLoadError as exc:
        _report_error(args.format, "load_error", exc)
        return EXIT_LOAD_ERROR
    except ForkioError as exc:
        _report_error(args.format, "fatal", exc)
        return EXIT_FATAL
    except KeyboardInterrupt:
        return 130

    if run_result.is_err:
        _report_error(args.format, "error", run_result.error)
        return EXIT_FAILURE

    _report_success(args, run_result)
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
