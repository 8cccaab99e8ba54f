"""Stream relay: ordering, terminal guarantee, single consumer, cancellation."""

import asyncio
from contextlib import aclosing

import pytest

from relaychat.chat.client.protocols import Abort, End, Fragment
from relaychat.chat.errors import RelayError, UpstreamAborted
from relaychat.chat.relay import StreamRelay


async def scripted(*events):
    for e in events:
        yield e


async def collect(relay):
    async with aclosing(relay.events()) as events:
        return [e async for e in events]


@pytest.mark.asyncio
async def test_events_arrive_in_order_ending_with_terminal():
    script = (Fragment("a"), Fragment("b"), Fragment("c"), End("stop"))
    relay = StreamRelay(scripted(*script))

    assert await collect(relay) == list(script)
    assert relay.fragments == 3
    assert relay.outcome == End("stop") and relay.done


@pytest.mark.asyncio
async def test_nothing_is_relayed_after_terminal():
    relay = StreamRelay(scripted(Fragment("a"), Abort("x"), Fragment("late")))
    assert await collect(relay) == [Fragment("a"), Abort("x")]


@pytest.mark.asyncio
async def test_stream_without_end_signal_becomes_abort():
    events = await collect(StreamRelay(scripted(Fragment("a"))))
    assert events[0] == Fragment("a")
    assert isinstance(events[-1], Abort) and len(events) == 2


@pytest.mark.asyncio
async def test_raising_upstream_becomes_abort():
    async def broken():
        yield Fragment("a")
        raise RuntimeError("boom")

    events = await collect(StreamRelay(broken()))
    assert isinstance(events[-1], Abort)
    assert "boom" in events[-1].reason


@pytest.mark.asyncio
async def test_second_consumer_is_rejected():
    relay = StreamRelay(scripted(Fragment("a"), End()))
    first = relay.events()
    assert await first.__anext__() == Fragment("a")

    with pytest.raises(RelayError):
        await relay.events().__anext__()
    await first.aclose()


@pytest.mark.asyncio
async def test_leaving_early_cancels_upstream():
    closed = asyncio.Event()

    async def endless():
        try:
            yield Fragment("a")
            await asyncio.Event().wait()
        finally:
            closed.set()

    relay = StreamRelay(endless())
    async with aclosing(relay.events()) as events:
        async for _ in events:
            break

    assert relay.cancelled
    assert closed.is_set()
    assert relay.outcome is None


@pytest.mark.asyncio
async def test_cancel_is_idempotent_after_completion():
    relay = StreamRelay(scripted(End()))
    await collect(relay)
    await relay.cancel()
    assert not relay.cancelled


@pytest.mark.asyncio
async def test_iter_bytes_sends_raw_utf8_per_fragment():
    relay = StreamRelay(scripted(Fragment("héllo"), Fragment(" ✓"), End()))
    chunks = [c async for c in relay.iter_bytes()]
    assert chunks == ["héllo".encode(), " ✓".encode()]


@pytest.mark.asyncio
async def test_iter_bytes_terminates_abnormally_on_abort():
    relay = StreamRelay(scripted(Fragment("part"), Abort("provider down")))
    chunks = []
    with pytest.raises(UpstreamAborted):
        async for c in relay.iter_bytes():
            chunks.append(c)
    assert chunks == [b"part"]
