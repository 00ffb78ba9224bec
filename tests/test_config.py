"""RuntimeConfig defaults, environment parsing and overrides."""

from __future__ import annotations

import pytest

from forkio import RuntimeConfig
from forkio.config import DEFAULT_CONFIG


def test_defaults_match_default_config() -> None:
    config = RuntimeConfig()

    assert config.fetch_timeout == DEFAULT_CONFIG["fetch_timeout"]
    assert config.follow_redirects is True
    assert config.wait_for_forks is False
    assert config.log_level == "WARNING"


def test_from_env_reads_prefixed_variables() -> None:
    config = RuntimeConfig.from_env(
        {
            "FORKIO_FETCH_TIMEOUT": "2.5",
            "FORKIO_FOLLOW_REDIRECTS": "no",
            "FORKIO_USER_AGENT": "custom/1.0",
            "FORKIO_WAIT_FOR_FORKS": "1",
            "FORKIO_LOG_LEVEL": "debug",
            "UNRELATED": "ignored",
        }
    )

    assert config == RuntimeConfig(
        fetch_timeout=2.5,
        follow_redirects=False,
        user_agent="custom/1.0",
        wait_for_forks=True,
        log_level="DEBUG",
    )


def test_timeout_can_be_disabled() -> None:
    assert RuntimeConfig.from_env({"FORKIO_FETCH_TIMEOUT": "none"}).fetch_timeout is None


@pytest.mark.parametrize(
    "name, raw",
    [
        ("FORKIO_FETCH_TIMEOUT", "soon"),
        ("FORKIO_FETCH_TIMEOUT", "-1"),
        ("FORKIO_WAIT_FOR_FORKS", "maybe"),
        ("FORKIO_LOG_LEVEL", "LOUD"),
    ],
)
def test_invalid_values_name_the_variable(name: str, raw: str) -> None:
    with pytest.raises(ValueError, match=name):
        RuntimeConfig.from_env({name: raw})


def test_with_overrides_skips_none() -> None:
    base = RuntimeConfig(fetch_timeout=5.0)

    updated = base.with_overrides(fetch_timeout=None, wait_for_forks=True)

    assert updated.fetch_timeout == 5.0
    assert updated.wait_for_forks is True
    assert base.wait_for_forks is False
