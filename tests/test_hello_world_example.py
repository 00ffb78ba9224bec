"""The bundled hello-world workflow runs end to end."""

from __future__ import annotations

from pathlib import Path

import pytest

from conftest import FakeFetcher

from forkio import Scheduler, VirtualClock

EXAMPLE = Path(__file__).resolve().parents[1] / "examples" / "hello_world.py"


@pytest.mark.asyncio
async def test_hello_world(
    monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    monkeypatch.delenv("HELLO_WORLD_URL", raising=False)
    clock = VirtualClock()
    scheduler = Scheduler(
        fetcher=FakeFetcher({"http://localhost/": "<html>local</html>"}), clock=clock
    )

    result = await scheduler.run_path(EXAMPLE)

    lines = capsys.readouterr().out.splitlines()
    assert result.is_ok
    assert result.value is None
    assert set(lines[:2]) == {"[forked.]", "hello,"}
    assert lines.index("world") < lines.index("<html>local</html>")
    assert [line for line in lines if line in ("42", "None")] == ["42", "None"]
    assert lines.index("{forked.}") < lines.index("{finished}") < lines.index("42")
    assert clock.now() >= 4.0
    assert result.stats.orphaned_forks == 1
