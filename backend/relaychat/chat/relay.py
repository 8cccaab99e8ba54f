# ------------------------------------------------------------
# Module: relaychat/chat/relay.py
# Purpose: Single-producer/single-consumer bridge from a completion stream.
# ------------------------------------------------------------

"""Stream relay between network arrival and state application.

Responsibilities
----------------
- Pull events from one completion stream in a dedicated pump task.
- Hand them to exactly one consumer, in arrival order, without altering
  fragment text.
- Guarantee a terminal event: a stream that stops without `End`/`Abort`
  (or raises) is reported as `Abort`.
- Cancel the upstream request when the consumer goes away before the end.
- Frame fragments as raw UTF-8 bytes for the HTTP transport.

Notes
-----
- The hand-off queue holds one event: the pump never runs ahead of the
  consumer by more than a single fragment.
- Only the pump task touches the upstream iterator, so cancellation works
  from any task without "generator already running" races.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator
from contextlib import aclosing

from relaychat.chat.client.protocols import Abort, Fragment, StreamEvent
from relaychat.chat.errors import RelayError, UpstreamAborted
from relaychat.utils.logging_extras import log_adapter

logger = logging.getLogger(__name__)


class StreamRelay:
    """Forward one completion stream to one consumer.

    Parameters
    ----------
    upstream
        Event iterator from a `CompletionClient.stream(...)` call.
    cid
        Correlation id for structured logs.
    """

    def __init__(self, upstream: AsyncIterator[StreamEvent], *, cid: str | None = None):
        self._upstream = upstream
        self._queue: asyncio.Queue[StreamEvent] = asyncio.Queue(maxsize=1)
        self._pump_task: asyncio.Task | None = None
        self._claimed = False
        self._lad = log_adapter(logger, cid)
        self.fragments = 0
        self.outcome: StreamEvent | None = None
        self.cancelled = False

    @property
    def done(self) -> bool:
        return self.outcome is not None or self.cancelled

    async def _pump(self) -> None:
        try:
            async for event in self._upstream:
                await self._queue.put(event)
                if not isinstance(event, Fragment):
                    return
            await self._queue.put(Abort("upstream ended without an end signal"))
        except asyncio.CancelledError:
            raise
        except Exception as e:
            # Contract breach by the client; still owe the consumer a terminal event.
            self._lad.exception("relay.upstream_error")
            await self._queue.put(Abort(f"upstream error: {e}"))
        finally:
            aclose = getattr(self._upstream, "aclose", None)
            if aclose is not None:
                await aclose()

    async def events(self) -> AsyncIterator[StreamEvent]:
        """Yield Fragment* then one End/Abort. Only one consumer is allowed.

        Leaving the loop early (break, exception, task cancellation) cancels
        the upstream request. Wrap in `contextlib.aclosing` so that happens
        deterministically.
        """
        if self._claimed:
            raise RelayError("relay already has a consumer")
        self._claimed = True
        self._pump_task = asyncio.create_task(self._pump())
        self._lad.info("relay.open")
        try:
            while True:
                event = await self._queue.get()
                if isinstance(event, Fragment):
                    self.fragments += 1
                    if self.fragments == 1:
                        self._lad.info("relay.first_fragment")
                    yield event
                    continue
                self.outcome = event
                self._lad.info(
                    "relay.done",
                    extra={"fragments": self.fragments, "outcome": type(event).__name__},
                )
                yield event
                return
        finally:
            if self.outcome is None:
                await self.cancel()

    async def cancel(self) -> None:
        """Stop relaying and cancel the upstream request (idempotent)."""
        task = self._pump_task
        if task is None or task.done():
            return
        self.cancelled = True
        self._lad.info("relay.cancelled", extra={"fragments": self.fragments})
        task.cancel()
        await asyncio.wait([task])

    async def iter_bytes(self) -> AsyncIterator[bytes]:
        """HTTP framing: each chunk is exactly one fragment's UTF-8 bytes.

        Raises
        ------
        UpstreamAborted
            On `Abort`, so the response body terminates abnormally instead of
            looking like a complete answer.
        """
        async with aclosing(self.events()) as events:
            async for event in events:
                if isinstance(event, Fragment):
                    yield event.text.encode("utf-8")
                elif isinstance(event, Abort):
                    self._lad.warning("relay.abort", extra={"reason": event.reason[:200]})
                    raise UpstreamAborted(event.reason)
