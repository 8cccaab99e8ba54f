# ------------------------------------------------------------
# Module: relaychat/chat/client/openai_client.py
# Purpose: Completion client for OpenAI-compatible providers (DeepSeek by default).
# ------------------------------------------------------------

"""Streaming completion client on top of the `openai` SDK.

Responsibilities
----------------
- Open one `chat.completions.create(stream=True)` request per exchange with
  the fixed temperature and maximum output length from settings.
- Yield each non-empty text delta as a `Fragment`, in arrival order.
- Require an explicit finish reason; a stream that just stops is an abort.
- Convert every provider failure (connection, non-2xx, malformed payload)
  into a single `Abort` event.
- Close the upstream HTTP response when the consumer stops early.

Notes
-----
- Structured logs: `llm.stream.open`, `llm.stream.first_token`,
  `llm.stream.done`, `llm.stream.error`, all tagged with the exchange `cid`.
"""

from __future__ import annotations

import logging
import time
from collections.abc import AsyncIterator

import httpx
import openai
from openai import AsyncOpenAI

from relaychat.chat.client.protocols import Abort, End, Fragment, StreamEvent
from relaychat.chat.types import OutboundMessage
from relaychat.core.config import Settings
from relaychat.core.config import settings as _settings
from relaychat.utils.logging_extras import log_adapter
from relaychat.utils.timing import ms_since

logger = logging.getLogger(__name__)


class OpenAICompletionClient:
    """Thin streaming client for an OpenAI-compatible chat completion API.

    Parameters
    ----------
    client
        Configured `AsyncOpenAI` instance (base URL, key, retries).
    model
        Model name sent with every request.
    params
        Fixed generation parameters (temperature, max_tokens).

    Notes
    -----
    - Stateless across calls; safe to share between exchanges.
    """

    def __init__(self, client: AsyncOpenAI, model: str, params: dict):
        self.client, self.model, self.params = client, model, dict(params)

    @classmethod
    def from_settings(cls, settings: Settings = _settings) -> OpenAICompletionClient:
        """Construct a client from settings.

        Notes
        -----
        - Reads are not time-limited: a stalled stream blocks its exchange
          until the provider or the transport fails it.
        """
        client = AsyncOpenAI(
            base_url=settings.PROVIDER_BASE_URL,
            api_key=settings.PROVIDER_API_KEY or "missing-api-key",
            max_retries=settings.PROVIDER_MAX_RETRIES,
            timeout=httpx.Timeout(10.0, read=None),
        )
        return cls(client, settings.GEN_MODEL, settings.completion_params)

    async def stream(
        self, messages: list[OutboundMessage], *, cid: str | None = None
    ) -> AsyncIterator[StreamEvent]:
        """Stream one completion as Fragment* (End | Abort)."""
        lad = log_adapter(logger, cid)
        t0 = time.perf_counter()
        try:
            upstream = await self.client.chat.completions.create(
                model=self.model,
                messages=messages,
                stream=True,
                **self.params,
            )
        except openai.OpenAIError as e:
            lad.error(
                "llm.stream.open",
                extra={"model": self.model, "ok": False, "error": str(e)[:200]},
            )
            yield Abort(f"provider request failed: {e}")
            return
        lad.info(
            "llm.stream.open",
            extra={"model": self.model, "ok": True, "dur_ms": ms_since(t0)},
        )

        count = 0
        finish_reason: str | None = None
        try:
            async for chunk in upstream:
                if not chunk.choices:
                    continue
                choice = chunk.choices[0]
                text = choice.delta.content if choice.delta else None
                if text:
                    if count == 0:
                        lad.info("llm.stream.first_token", extra={"dur_ms": ms_since(t0)})
                    count += 1
                    yield Fragment(text)
                if choice.finish_reason:
                    finish_reason = choice.finish_reason
        except (openai.OpenAIError, httpx.HTTPError, ValueError) as e:
            # ValueError covers malformed SSE/JSON payloads.
            lad.error(
                "llm.stream.error", extra={"fragments": count, "error": str(e)[:200]}
            )
            yield Abort(f"provider stream failed: {e}")
            return
        finally:
            await upstream.close()

        if finish_reason is None:
            lad.error("llm.stream.error", extra={"fragments": count, "error": "no end signal"})
            yield Abort("provider stream closed before its end signal")
            return
        lad.info(
            "llm.stream.done",
            extra={"fragments": count, "finish_reason": finish_reason, "dur_ms": ms_since(t0)},
        )
        yield End(finish_reason)

    async def ping(self) -> bool:
        """Return True if the provider answers a model listing."""
        try:
            await self.client.models.list()
        except openai.OpenAIError as e:
            logger.warning("llm.ping failed", extra={"error": str(e)[:200]})
            return False
        return True
