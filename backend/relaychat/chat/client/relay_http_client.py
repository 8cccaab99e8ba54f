# ------------------------------------------------------------
# Module: relaychat/chat/client/relay_http_client.py
# Purpose: Completion client that consumes the relay endpoint over HTTP.
# ------------------------------------------------------------

"""UI-side completion source reading the chunked relay transport.

Responsibilities
----------------
- POST the outbound request to `/v1/chat/stream` with the caller's identity.
- Decode the raw byte stream incrementally into text `Fragment`s.
- Map a clean end of body to `End` and any non-2xx status or transport
  failure (including a body that ends abnormally) to `Abort`.

Notes
-----
- The relay sends no envelope per chunk; a chunk boundary carries no meaning,
  so a fragment here may join or split provider fragments. Concatenation is
  preserved exactly.
- No read timeout: only the server or the transport can fail a stalled stream.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator

import httpx

from relaychat.chat.client.protocols import Abort, End, Fragment, StreamEvent
from relaychat.chat.types import OutboundMessage
from relaychat.utils.logging_extras import log_adapter

logger = logging.getLogger(__name__)


class RelayHttpClient:
    """Completion client backed by the relay endpoint.

    Parameters
    ----------
    url
        Full URL of the relay endpoint.
    user_id
        Identity sent as `X-User-Id`.
    http
        Optional shared `httpx.AsyncClient` (tests pass one with a mock transport).
    """

    def __init__(self, url: str, user_id: str, http: httpx.AsyncClient | None = None):
        self.url, self.user_id = url, user_id
        self.http = http or httpx.AsyncClient(timeout=httpx.Timeout(10.0, read=None))

    async def stream(
        self, messages: list[OutboundMessage], *, cid: str | None = None
    ) -> AsyncIterator[StreamEvent]:
        lad = log_adapter(logger, cid)
        headers = {"X-User-Id": self.user_id}
        if cid:
            headers["x-correlation-id"] = cid
        try:
            async with self.http.stream(
                "POST", self.url, json={"messages": messages}, headers=headers
            ) as r:
                if not r.is_success:
                    body = (await r.aread()).decode("utf-8", "replace")
                    lad.error("relay.client.status", extra={"status": r.status_code})
                    yield Abort(f"relay {r.status_code}: {body[:200]}")
                    return
                async for text in r.aiter_text():
                    if text:
                        yield Fragment(text)
        except httpx.HTTPError as e:
            lad.error("relay.client.error", extra={"error": str(e)[:200]})
            yield Abort(f"relay transport failed: {e}")
            return
        yield End()

    async def ping(self) -> bool:
        """Probe the relay server's readiness route next to the stream route."""
        ready = self.url.rsplit("/chat/stream", 1)[0] + "/health/ready"
        try:
            r = await self.http.get(ready)
        except httpx.HTTPError as e:
            logger.warning("relay.client.ping failed", extra={"error": str(e)[:200]})
            return False
        return r.is_success

    async def aclose(self) -> None:
        await self.http.aclose()
