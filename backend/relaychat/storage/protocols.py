# ------------------------------------------------------------
# Module: relaychat/storage/protocols.py
# Purpose: Persistence gateway contract for conversations and messages.
# ------------------------------------------------------------

"""Typed protocol for durable conversation storage.

Responsibilities
----------------
- Declare the request/response operations the controller relies on.
- Keep the controller independent of the concrete backend (SQLite here,
  a hosted database elsewhere).

Notes
-----
- All calls are blocking; the controller runs them in worker threads.
- Implementations raise `PersistenceError` on failure.
"""

from __future__ import annotations

from typing import Protocol

from relaychat.chat.types import ConversationSummary, Role, Turn


class PersistenceGateway(Protocol):
    def create_conversation(self, user_id: str, title: str) -> str: ...

    def append_message(
        self,
        conversation_id: str,
        role: Role,
        content: str,
        image_ref: str | None = None,
    ) -> str: ...

    def touch_conversation(self, conversation_id: str) -> None: ...

    # Newest first (by updated_at).
    def list_conversations(self, user_id: str) -> list[ConversationSummary]: ...

    # Oldest first (insertion order).
    def list_messages(self, conversation_id: str) -> list[Turn]: ...

    def delete_conversation(self, conversation_id: str) -> None: ...

    # Account-level wipe; returns number of conversations removed.
    def delete_user_conversations(self, user_id: str) -> int: ...

    def ping(self) -> bool: ...
