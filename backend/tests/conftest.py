"""Shared fixtures: scripted completion clients and recording gateways."""

from __future__ import annotations

import asyncio

import pytest

from relaychat.chat.auth import StaticIdentity
from relaychat.chat.client.protocols import End, Fragment
from relaychat.chat.controller import ConversationController
from relaychat.chat.errors import PersistenceError
from relaychat.chat.types import Turn
from relaychat.core.config import Settings
from relaychat.storage.sqlite_gateway import SqliteGateway

FAILURE = "Sorry, an error occurred. Please try again."


class ScriptedClient:
    """Completion client replaying a fixed event script.

    `hold_at=n` parks the stream before event n until `release` is set, so a
    test can act while the exchange is mid-flight.
    """

    def __init__(self, *events, hold_at: int | None = None):
        self.events = list(events)
        self.hold_at = hold_at
        self.release = asyncio.Event()
        self.held = asyncio.Event()
        self.requests: list[list[dict]] = []
        self.closed = 0

    async def stream(self, messages, *, cid=None):
        self.requests.append([dict(m) for m in messages])
        try:
            for i, event in enumerate(self.events):
                if i == self.hold_at:
                    self.held.set()
                    await self.release.wait()
                yield event
        finally:
            self.closed += 1

    async def ping(self) -> bool:
        return True


class RecordingGateway:
    """In-memory gateway recording every call; `fail` names methods that raise."""

    def __init__(self, fail: tuple[str, ...] = ()):
        self.calls: list[tuple] = []
        self.fail = set(fail)
        self.conversations: dict[str, dict] = {}
        self.messages: dict[str, list[Turn]] = {}
        self._n = 0

    def _record(self, name, *args):
        self.calls.append((name, *args))
        if name in self.fail:
            raise PersistenceError(f"{name} failed")

    def create_conversation(self, user_id, title):
        self._record("create_conversation", user_id, title)
        self._n += 1
        cid = f"conv-{self._n}"
        self.conversations[cid] = {"id": cid, "user_id": user_id, "title": title, "updated_at": self._n}
        self.messages[cid] = []
        return cid

    def append_message(self, conversation_id, role, content, image_ref=None):
        self._record("append_message", conversation_id, role, content, image_ref)
        self._n += 1
        turn = Turn(id=f"msg-{self._n}", role=role, content=content, image_ref=image_ref)
        self.messages[conversation_id].append(turn)
        return turn.id

    def touch_conversation(self, conversation_id):
        self._record("touch_conversation", conversation_id)
        self._n += 1
        self.conversations[conversation_id]["updated_at"] = self._n

    def list_conversations(self, user_id):
        self._record("list_conversations", user_id)
        rows = [c for c in self.conversations.values() if c["user_id"] == user_id]
        rows.sort(key=lambda c: c["updated_at"], reverse=True)
        return [{"id": c["id"], "title": c["title"], "updated_at": c["updated_at"]} for c in rows]

    def list_messages(self, conversation_id):
        self._record("list_messages", conversation_id)
        return [Turn(id=t.id, role=t.role, content=t.content, image_ref=t.image_ref)
                for t in self.messages.get(conversation_id, [])]

    def delete_conversation(self, conversation_id):
        self._record("delete_conversation", conversation_id)
        self.conversations.pop(conversation_id, None)
        self.messages.pop(conversation_id, None)

    def delete_user_conversations(self, user_id):
        self._record("delete_user_conversations", user_id)
        ids = [k for k, c in self.conversations.items() if c["user_id"] == user_id]
        for k in ids:
            self.delete_conversation(k)
        return len(ids)

    def ping(self):
        return True

    def writes(self) -> list[tuple]:
        return [c for c in self.calls if not c[0].startswith("list_")]


@pytest.fixture
def test_settings() -> Settings:
    return Settings(FAILURE_MESSAGE=FAILURE)


@pytest.fixture
def gateway() -> RecordingGateway:
    return RecordingGateway()


@pytest.fixture
def sqlite_gateway(tmp_path) -> SqliteGateway:
    gw = SqliteGateway(tmp_path / "chat.sqlite")
    gw.ensure_initialized()
    return gw


@pytest.fixture
def make_controller(gateway, test_settings):
    """Factory: controller over a scripted client for user 'u1'."""

    def _make(client, *, user="u1", gw=None):
        return ConversationController(
            client, gw or gateway, StaticIdentity(user), settings=test_settings
        )

    return _make


def hello_script():
    return (Fragment("Hi"), Fragment(" there"), End("stop"))
