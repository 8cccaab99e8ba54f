# ------------------------------------------------------------
# Module: relaychat/chat/client/protocols.py
# Purpose: Stream event types and the completion client protocol.
# ------------------------------------------------------------

"""Typed protocol for completion clients and the events they emit.

Responsibilities
----------------
- Define the three stream outcomes a caller may observe: `Fragment`, `End`
  and `Abort`.
- Declare the `CompletionClient` contract so the controller and the relay
  never depend on a specific provider SDK.

Notes
-----
- A stream yields zero or more `Fragment`s followed by exactly one `End` or
  `Abort`, then stops. Provider errors never escape as exceptions.
- Closing the iterator (`aclose()`) cancels the upstream request.
- Provider-side retries, if any, are opaque to callers.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from dataclasses import dataclass
from typing import Protocol

from relaychat.chat.types import OutboundMessage


@dataclass(frozen=True)
class Fragment:
    """Opaque text to append verbatim."""

    text: str


@dataclass(frozen=True)
class End:
    """Explicit end of a complete response."""

    finish_reason: str | None = None


@dataclass(frozen=True)
class Abort:
    """The stream failed before its end signal; any turn in progress failed."""

    reason: str


StreamEvent = Fragment | End | Abort


class CompletionClient(Protocol):
    # Yield fragments for one request, terminated by End or Abort.
    def stream(
        self, messages: list[OutboundMessage], *, cid: str | None = None
    ) -> AsyncIterator[StreamEvent]: ...

    # Cheap connectivity probe used by the health endpoint.
    async def ping(self) -> bool: ...
