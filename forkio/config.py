"""Runtime configuration.

Defaults live in :data:`DEFAULT_CONFIG`. :meth:`RuntimeConfig.from_env` layers
``FORKIO_*`` environment variables on top, and the CLI layers its flags on top
of that with :meth:`RuntimeConfig.with_overrides`.
"""

from __future__ import annotations

import logging
import math
import os
from collections.abc import Mapping
from dataclasses import dataclass, fields, replace
from typing import Any

from forkio._vendor import FrozenDict
from forkio.fetcher import DEFAULT_USER_AGENT

ENV_PREFIX = "FORKIO_"

DEFAULT_CONFIG: FrozenDict = FrozenDict(
    fetch_timeout=30.0,
    follow_redirects=True,
    user_agent=DEFAULT_USER_AGENT,
    wait_for_forks=False,
    log_level="WARNING",
)

_TRUE = frozenset({"1", "true", "yes", "on"})
_FALSE = frozenset({"0", "false", "no", "off", ""})


def _parse_bool(raw: str, *, name: str) -> bool:
    lowered = raw.strip().lower()
    if lowered in _TRUE:
        return True
    if lowered in _FALSE:
        return False
    raise ValueError(f"{name} must be a boolean (1/0, true/false), got {raw!r}")


def _parse_timeout(raw: str, *, name: str) -> float | None:
    lowered = raw.strip().lower()
    if lowered in ("", "none", "off"):
        return None
    try:
        value = float(lowered)
    except ValueError:
        raise ValueError(f"{name} must be a number of seconds or 'none', got {raw!r}") from None
    if math.isnan(value) or value <= 0:
        raise ValueError(f"{name} must be positive, got {raw!r}")
    return value


def _parse_log_level(raw: str, *, name: str) -> str:
    level = raw.strip().upper()
    if not isinstance(logging.getLevelName(level), int):
        raise ValueError(f"{name} must be a logging level name, got {raw!r}")
    return level


_PARSERS = {
    "fetch_timeout": _parse_timeout,
    "follow_redirects": _parse_bool,
    "user_agent": lambda raw, *, name: raw,
    "wait_for_forks": _parse_bool,
    "log_level": _parse_log_level,
}


@dataclass(frozen=True, kw_only=True)
class RuntimeConfig:
    """Settings for one scheduler run.

    Attributes:
        fetch_timeout: Seconds allowed per fetch, or ``None`` for no limit.
        follow_redirects: Whether fetches follow HTTP redirects.
        user_agent: ``User-Agent`` header sent with fetches.
        wait_for_forks: Wait for forked tasks still running when the root task
            finishes, instead of cancelling them at shutdown.
        log_level: Level name the CLI logs at.
    """

    fetch_timeout: float | None = DEFAULT_CONFIG["fetch_timeout"]
    follow_redirects: bool = DEFAULT_CONFIG["follow_redirects"]
    user_agent: str = DEFAULT_CONFIG["user_agent"]
    wait_for_forks: bool = DEFAULT_CONFIG["wait_for_forks"]
    log_level: str = DEFAULT_CONFIG["log_level"]

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> RuntimeConfig:
        source = os.environ if environ is None else environ
        values: dict[str, Any] = {}
        for config_field in fields(cls):
            env_name = ENV_PREFIX + config_field.name.upper()
            if env_name in source:
                values[config_field.name] = _PARSERS[config_field.name](
                    source[env_name], name=env_name
                )
        return cls(**values)

    def with_overrides(self, **changes: Any) -> RuntimeConfig:
        """Return a copy with every non-``None`` change applied."""
        return replace(self, **{key: value for key, value in changes.items() if value is not None})


__all__ = ["DEFAULT_CONFIG", "ENV_PREFIX", "RuntimeConfig"]
