"""Shared fixtures for forkio tests.

Scheduler tests run on a :class:`VirtualClock` so sleeps finish instantly and
deterministically, and on a :class:`FakeFetcher` so no test touches the
network.
"""

from __future__ import annotations

import textwrap
from collections.abc import Iterable, Mapping
from typing import Any

import pytest

from forkio import NetworkError, Scheduler, VirtualClock


class FakeFetcher:
    """In-memory :class:`~forkio.fetcher.Fetcher` serving canned pages."""

    def __init__(
        self,
        pages: Mapping[str, str] | None = None,
        *,
        failing: Iterable[str] = (),
    ) -> None:
        self.pages = dict(pages or {})
        self.failing = set(failing)
        self.requested: list[str] = []
        self.closed = False

    async def fetch(self, url: str) -> str:
        self.requested.append(url)
        if url in self.failing or url not in self.pages:
            raise NetworkError(url, ConnectionError("connection refused"))
        return self.pages[url]

    async def aclose(self) -> None:
        self.closed = True


@pytest.fixture
def virtual_clock() -> VirtualClock:
    return VirtualClock()


@pytest.fixture
def fake_fetcher() -> FakeFetcher:
    return FakeFetcher(
        {
            "http://example.test/": "<html>example</html>",
            "http://example.test/a": "page a",
            "http://example.test/b": "page b",
        },
        failing={"http://down.test/"},
    )


@pytest.fixture
def scheduler(virtual_clock: VirtualClock, fake_fetcher: FakeFetcher) -> Scheduler:
    return Scheduler(fetcher=fake_fetcher, clock=virtual_clock)


def script(source: str) -> str:
    """Dedent an inline script body."""
    return textwrap.dedent(source).lstrip("\n")


def load(scheduler: Scheduler, source: str) -> Any:
    return scheduler.load(script(source))
