"""Relay HTTP client: chunked body decoding and failure mapping."""

import json

import httpx
import pytest

from relaychat.chat.client.protocols import Abort, End, Fragment
from relaychat.chat.client.relay_http_client import RelayHttpClient

URL = "http://relay.test/v1/chat/stream"


class Chunks(httpx.AsyncByteStream):
    def __init__(self, *parts, fail=False):
        self.parts, self.fail = parts, fail

    async def __aiter__(self):
        for p in self.parts:
            yield p
        if self.fail:
            raise httpx.RemoteProtocolError("peer closed connection")


def make_client(handler) -> RelayHttpClient:
    return RelayHttpClient(URL, "u1", http=httpx.AsyncClient(transport=httpx.MockTransport(handler)))


async def run(client):
    return [e async for e in client.stream([{"role": "user", "content": "hi"}], cid="c1")]


@pytest.mark.asyncio
async def test_clean_body_end_is_end():
    seen = {}

    def handler(request: httpx.Request):
        seen["user"] = request.headers["x-user-id"]
        seen["cid"] = request.headers["x-correlation-id"]
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, stream=Chunks("Hi".encode(), " thére".encode()))

    events = await run(make_client(handler))

    assert isinstance(events[-1], End)
    assert "".join(e.text for e in events if isinstance(e, Fragment)) == "Hi thére"
    assert seen == {"user": "u1", "cid": "c1", "body": {"messages": [{"role": "user", "content": "hi"}]}}


@pytest.mark.asyncio
async def test_multibyte_character_split_across_chunks():
    raw = "✓".encode()

    def handler(request):
        return httpx.Response(200, stream=Chunks(raw[:1], raw[1:]))

    events = await run(make_client(handler))
    assert "".join(e.text for e in events if isinstance(e, Fragment)) == "✓"


@pytest.mark.asyncio
async def test_abnormal_body_termination_is_abort():
    def handler(request):
        return httpx.Response(200, stream=Chunks(b"par", fail=True))

    events = await run(make_client(handler))
    assert events[0] == Fragment("par")
    assert isinstance(events[-1], Abort)


@pytest.mark.asyncio
async def test_error_status_is_abort():
    def handler(request):
        return httpx.Response(401, json={"detail": "missing identity"})

    events = await run(make_client(handler))
    assert len(events) == 1 and isinstance(events[0], Abort)
    assert "401" in events[0].reason


@pytest.mark.asyncio
async def test_ping_uses_readiness_route():
    paths = []

    def handler(request):
        paths.append(request.url.path)
        return httpx.Response(200, json={"status": "ready"})

    assert await make_client(handler).ping() is True
    assert paths == ["/v1/health/ready"]
