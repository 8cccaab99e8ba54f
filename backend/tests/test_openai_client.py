"""OpenAI-compatible completion client against a mocked provider."""

import json

import httpx
import pytest
from openai import AsyncOpenAI

from relaychat.chat.client.openai_client import OpenAICompletionClient
from relaychat.chat.client.protocols import Abort, End, Fragment

MESSAGES = [{"role": "user", "content": "Hello"}]


def chunk(content=None, finish_reason=None):
    return {
        "id": "chatcmpl-1",
        "object": "chat.completion.chunk",
        "created": 0,
        "model": "deepseek-chat",
        "choices": [
            {
                "index": 0,
                "delta": {"content": content} if content is not None else {},
                "finish_reason": finish_reason,
            }
        ],
    }


def sse(*chunks, done=True) -> bytes:
    body = "".join(f"data: {json.dumps(c)}\n\n" for c in chunks)
    if done:
        body += "data: [DONE]\n\n"
    return body.encode()


def make_client(handler) -> OpenAICompletionClient:
    http = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    sdk = AsyncOpenAI(
        base_url="https://provider.test/v1", api_key="k", max_retries=0, http_client=http
    )
    return OpenAICompletionClient(sdk, "deepseek-chat", {"temperature": 0.7, "max_tokens": 4000})


async def run(client):
    return [e async for e in client.stream(MESSAGES, cid="t1")]


@pytest.mark.asyncio
async def test_deltas_become_fragments_then_end():
    seen = {}

    def handler(request: httpx.Request):
        seen.update(json.loads(request.content))
        body = sse(chunk("Hi"), chunk(" there"), chunk(finish_reason="stop"))
        return httpx.Response(200, content=body, headers={"content-type": "text/event-stream"})

    events = await run(make_client(handler))

    assert events == [Fragment("Hi"), Fragment(" there"), End("stop")]
    assert seen["stream"] is True
    assert seen["temperature"] == 0.7 and seen["max_tokens"] == 4000
    assert seen["messages"] == MESSAGES


@pytest.mark.asyncio
async def test_provider_error_status_is_abort():
    def handler(request):
        return httpx.Response(500, json={"error": {"message": "down"}})

    events = await run(make_client(handler))
    assert len(events) == 1 and isinstance(events[0], Abort)


@pytest.mark.asyncio
async def test_stream_without_finish_reason_is_abort():
    def handler(request):
        return httpx.Response(
            200,
            content=sse(chunk("partial"), done=False),
            headers={"content-type": "text/event-stream"},
        )

    events = await run(make_client(handler))
    assert events[0] == Fragment("partial")
    assert isinstance(events[-1], Abort)


@pytest.mark.asyncio
async def test_connection_failure_is_abort():
    def handler(request):
        raise httpx.ConnectError("refused", request=request)

    events = await run(make_client(handler))
    assert len(events) == 1 and isinstance(events[0], Abort)


@pytest.mark.asyncio
async def test_ping_reports_provider_reachability():
    def ok(request):
        return httpx.Response(200, json={"object": "list", "data": []})

    def down(request):
        return httpx.Response(401, json={"error": {"message": "bad key"}})

    assert await make_client(ok).ping() is True
    assert await make_client(down).ping() is False
