"""Tests for the progress event channel."""

import asyncio

import pytest

from orchestrator import ProgressChannel


def test_failing_subscriber_does_not_break_emit():
    channel = ProgressChannel()
    received = []

    def _broken(event):
        raise RuntimeError("ui crashed")

    channel.subscribe(_broken)
    channel.subscribe(received.append)
    channel.emit("search", 15, "Searching", sequence_index=2, count=3)

    assert len(received) == 1
    assert received[0].data == {"count": 3}
    assert received[0].sequence_index == 2


def test_unsubscribe_stops_delivery():
    channel = ProgressChannel()
    received = []
    unsubscribe = channel.subscribe(received.append)

    channel.emit("a", 10)
    unsubscribe()
    channel.emit("b", 20)

    assert [e.stage for e in received] == ["a"]


def test_buffer_is_bounded_and_drain_empties_it():
    channel = ProgressChannel(maxlen=3)
    for i in range(5):
        channel.emit("step", i * 10, f"step {i}")

    assert len(channel) == 3
    events = channel.drain()
    assert [e.message for e in events] == ["step 2", "step 3", "step 4"]
    assert len(channel) == 0


def test_percentage_is_clamped():
    event = ProgressChannel().emit("x", 150)

    assert event.percentage == 100


@pytest.mark.asyncio
async def test_stream_yields_until_closed():
    channel = ProgressChannel()
    collected = []

    async def _consume():
        async for event in channel:
            collected.append(event.stage)

    consumer = asyncio.create_task(_consume())
    await asyncio.sleep(0)
    channel.emit("planning", 5)
    channel.emit("search", 15)
    channel.close()
    await asyncio.wait_for(consumer, timeout=1)

    assert collected == ["planning", "search"]
