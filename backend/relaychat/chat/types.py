# ------------------------------------------------------------
# Module: relaychat/chat/types.py
# Purpose: Core data shapes: turns, conversations, chat modes, wire messages.
# ------------------------------------------------------------

"""Data model shared by the transcript, the controller and the gateways.

Responsibilities
----------------
- Define `Turn` (one role-attributed message) and `Conversation` metadata.
- Define `ChatMode`, the per-user selector of the system directive.
- Define the wire shapes exchanged with the provider and the storage backend.

Notes
-----
- `Turn` is mutable only through `TranscriptStore`; everything handed out by
  the store is a copy.
- Timestamps are milliseconds since the Unix epoch.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Literal, TypedDict

# Public role values; these also travel to the provider and the store.
Role = Literal["user", "assistant", "system"]


class ChatMode(str, Enum):
    """Selectable system directive; one active per user, not per conversation."""

    ASSISTANT = "assistant"
    CREATIVE = "creative"
    TECHNICAL = "technical"
    CASUAL = "casual"


def new_turn_id() -> str:
    return uuid.uuid4().hex


@dataclass
class Turn:
    """One message in a conversation.

    Notes
    -----
    - `streaming` is True only while an assistant turn still receives fragments.
    - `image_ref` is a location the UI renders; the model only ever sees it as
      an inline text annotation.
    """

    role: Role
    content: str = ""
    id: str = field(default_factory=new_turn_id)
    image_ref: str | None = None
    streaming: bool = False


@dataclass
class Conversation:
    """Conversation metadata held by the session.

    `persisted` is False for conversations that exist only in memory (born
    incognito); such a conversation is created in storage on its first
    non-incognito exchange.
    """

    id: str
    title: str
    updated_at: int
    incognito: bool = False
    persisted: bool = True


class OutboundMessage(TypedDict):
    """One role/content pair of an outbound completion request."""

    role: Role
    content: str


class ConversationSummary(TypedDict):
    """Sidebar row returned by `list_conversations`."""

    id: str
    title: str
    updated_at: int
