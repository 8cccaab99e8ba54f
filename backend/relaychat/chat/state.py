# ------------------------------------------------------------
# Module: relaychat/chat/state.py
# Purpose: Explicit session state container with subscribe/notify.
# ------------------------------------------------------------

"""Session state owned by the conversation controller.

Responsibilities
----------------
- Hold the per-user chat mode, the sidebar list and one view per open
  conversation (transcript + in-flight exchange + incognito flag).
- Track which view is displayed without tying exchanges to it.
- Notify subscribers on every transition; subscribers never mutate state.

Notes
-----
- Listener signature: `listener(topic, view)`. Topics: "exchange",
  "fragment", "transcript", "conversations", "mode", "incognito", "session".
- Listener exceptions propagate to the notifying call.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum

from relaychat.chat.relay import StreamRelay
from relaychat.chat.transcript import TranscriptStore
from relaychat.chat.types import (
    ChatMode,
    Conversation,
    ConversationSummary,
    OutboundMessage,
    Turn,
)


class ExchangeState(str, Enum):
    IDLE = "idle"
    COMPOSING = "composing"
    STREAMING = "streaming"
    FINALIZING = "finalizing"
    FAILED = "failed"


# States in which a second submit for the same conversation is rejected.
IN_FLIGHT = frozenset(
    {ExchangeState.COMPOSING, ExchangeState.STREAMING, ExchangeState.FINALIZING}
)


@dataclass
class Exchange:
    """One user-initiated request/response cycle."""

    cid: str
    user_turn: Turn
    request: tuple[OutboundMessage, ...]
    state: ExchangeState = ExchangeState.COMPOSING
    assistant_turn_id: str | None = None
    relay: StreamRelay | None = None
    task: asyncio.Task | None = None
    abandoned: bool = False
    failure: str | None = None
    transitions: list[ExchangeState] = field(default_factory=list)

    @property
    def in_flight(self) -> bool:
        return self.state in IN_FLIGHT


@dataclass
class ConversationView:
    """Everything the session knows about one conversation (or a draft)."""

    conversation: Conversation | None = None
    transcript: TranscriptStore = field(default_factory=TranscriptStore)
    draft_incognito: bool = False
    exchange: Exchange | None = None

    @property
    def incognito(self) -> bool:
        if self.conversation is not None:
            return self.conversation.incognito
        return self.draft_incognito

    @property
    def busy(self) -> bool:
        return self.exchange is not None and self.exchange.in_flight


Listener = Callable[[str, ConversationView], None]


class ChatState:
    """State container; the controller is the only writer."""

    def __init__(self, mode: ChatMode = ChatMode.ASSISTANT):
        self.mode = mode
        self.conversations: list[ConversationSummary] = []
        self.active = ConversationView()
        self.views: dict[str, ConversationView] = {}
        self._listeners: list[Listener] = []

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register `listener`; returns an unsubscribe function."""
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def notify(self, topic: str, view: ConversationView | None = None) -> None:
        target = view if view is not None else self.active
        for listener in list(self._listeners):
            listener(topic, target)

    @property
    def incognito_ids(self) -> set[str]:
        return {cid for cid, v in self.views.items() if v.incognito}

    def register(self, view: ConversationView, old_id: str | None = None) -> None:
        """Index `view` under its conversation id (re-keying a local id)."""
        if old_id is not None:
            self.views.pop(old_id, None)
        if view.conversation is not None:
            self.views[view.conversation.id] = view

    def upsert_summary(self, conversation: Conversation) -> None:
        """Move/insert a persisted conversation at the top of the sidebar list."""
        rows = [c for c in self.conversations if c["id"] != conversation.id]
        rows.insert(
            0,
            {
                "id": conversation.id,
                "title": conversation.title,
                "updated_at": conversation.updated_at,
            },
        )
        self.conversations = rows

    def reset(self) -> None:
        self.conversations = []
        self.active = ConversationView()
        self.views = {}
