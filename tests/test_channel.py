"""Tests for the one-shot channel behind Job."""

from __future__ import annotations

import asyncio

import pytest

from forkio import OneShotChannel
from forkio.errors import InterpreterInvariantError


@pytest.mark.asyncio
async def test_receive_waits_for_send() -> None:
    channel: OneShotChannel[str] = OneShotChannel()
    receiver = asyncio.create_task(channel.receive())
    await asyncio.sleep(0)
    assert not receiver.done()

    channel.send("value")

    assert await receiver == (True, "value")
    assert channel.closed and channel.sent


@pytest.mark.asyncio
async def test_value_is_delivered_once() -> None:
    channel: OneShotChannel[int] = OneShotChannel()
    channel.send(42)

    assert await channel.receive() == (True, 42)
    assert await channel.receive() == (False, None)
    assert repr(channel) == "OneShotChannel(drained)"


@pytest.mark.asyncio
async def test_concurrent_receivers_get_one_value_between_them() -> None:
    channel: OneShotChannel[str] = OneShotChannel()
    receivers = [asyncio.create_task(channel.receive()) for _ in range(3)]
    await asyncio.sleep(0)

    channel.send("only")
    results = await asyncio.gather(*receivers)

    assert sorted(results, key=lambda r: r[0]) == [(False, None), (False, None), (True, "only")]


@pytest.mark.asyncio
async def test_close_without_value_releases_receivers() -> None:
    channel: OneShotChannel[str] = OneShotChannel()
    receiver = asyncio.create_task(channel.receive())
    await asyncio.sleep(0)

    channel.close()

    assert await receiver == (False, None)
    assert not channel.sent


def test_second_send_is_rejected() -> None:
    channel: OneShotChannel[int] = OneShotChannel()
    channel.send(1)

    with pytest.raises(InterpreterInvariantError, match="already delivered"):
        channel.send(2)


def test_send_after_close_is_rejected() -> None:
    channel: OneShotChannel[int] = OneShotChannel()
    channel.close()

    with pytest.raises(InterpreterInvariantError, match="closed channel"):
        channel.send(1)


def test_try_receive_on_open_channel() -> None:
    channel: OneShotChannel[int] = OneShotChannel()

    assert channel.try_receive() == (False, None)
    assert repr(channel) == "OneShotChannel(open)"
