# ------------------------------------------------------------
# Module: relaychat/chat/controller.py
# Purpose: Conversation controller: exchange state machine and session operations.
# ------------------------------------------------------------

"""Orchestrates user exchanges against the completion client and storage.

Responsibilities
----------------
- Run one exchange per submit: Idle -> Composing -> Streaming -> Finalizing
  -> Idle, or -> Failed -> Idle on abort.
- Snapshot the outbound request atomically when composing starts.
- Create conversations lazily (first non-incognito exchange) and persist
  finished exchanges off the hot path.
- Reject a second submit while the same conversation is in flight.
- Manage the session: new chat, switching, incognito, deletion, chat mode,
  explicit abandon and sign-out.

Notes
-----
- Exchanges are bound to their conversation view, not to whatever view is
  displayed; switching views never cancels or redirects an exchange.
- Persistence failures are logged and never roll back the transcript.
- Nothing here is fatal: every path returns the exchange to Idle.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from contextlib import aclosing

from relaychat.chat.auth import IdentityProvider
from relaychat.chat.client.protocols import Abort, CompletionClient, End, Fragment
from relaychat.chat.errors import (
    ChatError,
    ExchangeRejected,
    PreconditionError,
    TranscriptError,
)
from relaychat.chat.persistence import PersistenceDispatcher
from relaychat.chat.prompts import build_request, conversation_title
from relaychat.chat.relay import StreamRelay
from relaychat.chat.state import ChatState, ConversationView, Exchange, ExchangeState
from relaychat.chat.types import ChatMode, Conversation, Turn
from relaychat.core.config import Settings
from relaychat.core.config import settings as _settings
from relaychat.storage.protocols import PersistenceGateway
from relaychat.utils.logging_extras import log_adapter, new_cid
from relaychat.utils.timing import now_ms

logger = logging.getLogger(__name__)


class ConversationController:
    """Owner of the session state and the only caller of the gateway.

    Parameters
    ----------
    client
        Completion source (provider SDK or relay endpoint).
    gateway
        Durable storage for conversations and messages.
    identity
        Auth collaborator; no identity rejects every operation.
    settings
        Title length and failure message come from here.
    """

    def __init__(
        self,
        client: CompletionClient,
        gateway: PersistenceGateway,
        identity: IdentityProvider,
        *,
        settings: Settings = _settings,
        state: ChatState | None = None,
    ):
        self.client = client
        self.gateway = gateway
        self.identity = identity
        self.settings = settings
        self.state = state or ChatState()
        self.persistence = PersistenceDispatcher()

    # ------------------------------------------------------------------
    # Session surface
    # ------------------------------------------------------------------

    def subscribe(self, listener):
        return self.state.subscribe(listener)

    def _require_user(self) -> str:
        user_id = self.identity.current_user()
        if not user_id:
            raise PreconditionError("no signed-in user")
        return user_id

    def set_mode(self, mode: ChatMode | str) -> ChatMode:
        try:
            self.state.mode = ChatMode(mode)
        except ValueError as e:
            raise PreconditionError(f"unknown chat mode {mode!r}") from e
        self.state.notify("mode")
        return self.state.mode

    def new_chat(self) -> ConversationView:
        """Show an empty draft; in-flight exchanges elsewhere keep running."""
        self.state.active = ConversationView()
        self.state.notify("transcript")
        return self.state.active

    async def refresh_conversations(self) -> None:
        user_id = self._require_user()
        rows = await asyncio.to_thread(self.gateway.list_conversations, user_id)
        self.state.conversations = rows
        self.state.notify("conversations")

    async def select_conversation(self, conversation_id: str) -> ConversationView:
        """Display a conversation.

        A view with a live exchange or in incognito keeps its in-memory
        transcript; otherwise turns are (re)loaded from storage.
        """
        self._require_user()
        view = self.state.views.get(conversation_id)
        if view is None:
            row = next(
                (c for c in self.state.conversations if c["id"] == conversation_id), None
            )
            view = ConversationView(
                conversation=Conversation(
                    id=conversation_id,
                    title=row["title"] if row else "",
                    updated_at=row["updated_at"] if row else now_ms(),
                )
            )
            self.state.register(view)
        if not (view.busy or view.incognito):
            turns = await asyncio.to_thread(self.gateway.list_messages, conversation_id)
            view.transcript.replace_all(turns)
        self.state.active = view
        self.state.notify("transcript")
        return view

    async def set_incognito(self, on: bool) -> None:
        """Toggle incognito for the displayed conversation (or the draft).

        Either direction first abandons an in-flight exchange. On: clears the
        displayed turns (storage is untouched). Off: reloads the turns from
        storage if the conversation exists there; turns written while
        incognito are not persisted.
        """
        self._require_user()
        view = self.state.active
        if view.incognito == on:
            return
        await self._abandon(view)
        if view.conversation is not None:
            view.conversation.incognito = on
        else:
            view.draft_incognito = on
        if on:
            view.transcript.clear()
        elif view.conversation is not None and view.conversation.persisted:
            turns = await asyncio.to_thread(self.gateway.list_messages, view.conversation.id)
            view.transcript.replace_all(turns)
        self.state.notify("incognito", view)

    async def delete_conversation(self, conversation_id: str) -> None:
        self._require_user()
        view = self.state.views.pop(conversation_id, None)
        if view is not None:
            await self._abandon(view)
        if view is None or view.conversation is None or view.conversation.persisted:
            await asyncio.to_thread(self.gateway.delete_conversation, conversation_id)
        self.state.conversations = [
            c for c in self.state.conversations if c["id"] != conversation_id
        ]
        self.state.notify("conversations")
        if view is not None and view is self.state.active:
            self.new_chat()

    async def delete_all_conversations(self) -> int:
        """Account-level wipe of the user's stored conversations."""
        user_id = self._require_user()
        for view in list(self.state.views.values()):
            await self._abandon(view)
        removed = await asyncio.to_thread(self.gateway.delete_user_conversations, user_id)
        self.state.reset()
        self.state.notify("session")
        return removed

    async def abandon(self) -> bool:
        """Cancel the displayed conversation's exchange, if one is in flight."""
        return await self._abandon(self.state.active)

    async def sign_out(self) -> None:
        for view in [self.state.active, *self.state.views.values()]:
            await self._abandon(view)
        self.identity.sign_out()
        self.state.reset()
        self.state.notify("session")

    async def flush(self) -> None:
        """Wait for background persistence (shutdown, tests)."""
        await self.persistence.drain()

    # ------------------------------------------------------------------
    # Exchange state machine
    # ------------------------------------------------------------------

    async def submit(self, text: str, image_ref: str | None = None) -> Exchange:
        """Run one exchange on the displayed conversation until it is Idle again.

        Raises
        ------
        PreconditionError
            No identity, or neither text nor image. Nothing was created.
        ExchangeRejected
            This conversation already has an exchange in flight.
        """
        user_id = self._require_user()
        text = (text or "").strip()
        if not text and not image_ref:
            raise PreconditionError("empty turn")
        view = self.state.active
        if view.busy:
            raise ExchangeRejected("an exchange is already in flight for this conversation")

        cid = new_cid()
        lad = log_adapter(logger, cid)
        user_turn = Turn(role="user", content=text, image_ref=image_ref)
        # Snapshot before the user turn lands in the transcript.
        request = build_request(self.state.mode, view.transcript.snapshot(), user_turn)
        exchange = Exchange(cid=cid, user_turn=user_turn, request=tuple(request))
        view.exchange = exchange
        view.transcript.append(user_turn)
        lad.info(
            "exchange.submit",
            extra={"mode": self.state.mode.value, "messages": len(request), "incognito": view.incognito},
        )
        self._transition(view, exchange, ExchangeState.COMPOSING)

        try:
            await self._ensure_conversation(view, user_id, text, lad)
        except ChatError as e:
            lad.error("exchange.create_conversation_failed", extra={"error": str(e)[:200]})
            self._open_placeholder(view, exchange)
            self._fail(view, exchange, f"conversation could not be created: {e}")
            return exchange
        if exchange.abandoned:
            self._transition(view, exchange, ExchangeState.IDLE)
            return exchange

        self._open_placeholder(view, exchange)
        exchange.relay = StreamRelay(self.client.stream(list(request), cid=cid), cid=cid)
        exchange.task = asyncio.create_task(self._consume(view, exchange))
        try:
            await exchange.task
        except asyncio.CancelledError:
            if not exchange.abandoned:
                raise
        return exchange

    async def _ensure_conversation(self, view: ConversationView, user_id: str, first: str, lad) -> None:
        conv = view.conversation
        if conv is not None and (conv.persisted or conv.incognito):
            return
        title = conversation_title(first, self.settings.TITLE_MAX_CHARS)
        if view.incognito:
            # Memory only: no gateway call for incognito conversations.
            view.conversation = Conversation(
                id=f"local-{uuid.uuid4().hex}",
                title=title,
                updated_at=now_ms(),
                incognito=True,
                persisted=False,
            )
            self.state.register(view)
            return

        conversation_id = await asyncio.to_thread(self.gateway.create_conversation, user_id, title)
        lad.info("conversation.created", extra={"conversation_id": conversation_id})
        old_id = None
        if conv is None:
            # The draft may have gone incognito while the create call was running.
            view.conversation = Conversation(
                id=conversation_id,
                title=title,
                updated_at=now_ms(),
                incognito=view.draft_incognito,
            )
        else:
            old_id = conv.id
            conv.id, conv.title, conv.persisted = conversation_id, title, True
        self.state.register(view, old_id)
        self.state.upsert_summary(view.conversation)
        self.state.notify("conversations", view)

    def _open_placeholder(self, view: ConversationView, exchange: Exchange) -> None:
        turn = view.transcript.append(Turn(role="assistant", streaming=True))
        exchange.assistant_turn_id = turn.id
        self.state.notify("transcript", view)

    async def _consume(self, view: ConversationView, exchange: Exchange) -> None:
        lad = log_adapter(logger, exchange.cid)
        try:
            async with aclosing(exchange.relay.events()) as events:
                async for event in events:
                    if isinstance(event, Fragment):
                        if exchange.state is ExchangeState.COMPOSING:
                            self._transition(view, exchange, ExchangeState.STREAMING)
                        view.transcript.append_to_streaming(
                            event.text, turn_id=exchange.assistant_turn_id
                        )
                        self.state.notify("fragment", view)
                    elif isinstance(event, End):
                        self._finalize(view, exchange)
                    elif isinstance(event, Abort):
                        self._fail(view, exchange, event.reason)
        except asyncio.CancelledError:
            self._settle_abandoned(view, exchange)
            raise
        except TranscriptError as e:
            # Turn vanished under us (cleared/finalized elsewhere): stop relaying.
            lad.warning("exchange.turn_gone", extra={"error": str(e)})
            exchange.failure = str(e)
            self._transition(view, exchange, ExchangeState.IDLE)
        except Exception as e:
            lad.exception("exchange.error")
            if view.transcript.streaming_id == exchange.assistant_turn_id:
                self._fail(view, exchange, f"internal error: {e}")
            elif exchange.in_flight:
                self._transition(view, exchange, ExchangeState.IDLE)
            raise

    def _finalize(self, view: ConversationView, exchange: Exchange) -> None:
        lad = log_adapter(logger, exchange.cid)
        self._transition(view, exchange, ExchangeState.FINALIZING)
        final = view.transcript.finalize(exchange.assistant_turn_id)
        conv = view.conversation
        if conv is not None and conv.persisted and not conv.incognito:
            conv.updated_at = now_ms()
            self.state.upsert_summary(conv)
            self.persistence.submit(
                "persist.exchange",
                self._write_exchange,
                conv.id,
                exchange.user_turn,
                final,
                cid=exchange.cid,
            )
            self.state.notify("conversations", view)
        else:
            lad.info("persist.skipped", extra={"incognito": view.incognito})
        self._transition(view, exchange, ExchangeState.IDLE)

    def _write_exchange(self, conversation_id: str, user_turn: Turn, assistant_turn: Turn) -> None:
        self.gateway.append_message(conversation_id, "user", user_turn.content, user_turn.image_ref)
        self.gateway.append_message(conversation_id, "assistant", assistant_turn.content, None)
        self.gateway.touch_conversation(conversation_id)

    def _fail(self, view: ConversationView, exchange: Exchange, reason: str) -> None:
        """Keep applied fragments; the failure message stands in for the rest."""
        log_adapter(logger, exchange.cid).warning(
            "exchange.failed", extra={"reason": reason[:200]}
        )
        exchange.failure = reason
        turn_id = exchange.assistant_turn_id
        turn = view.transcript.get(turn_id) if turn_id is not None else None
        if turn is None or view.transcript.streaming_id != turn_id:
            # placeholder already gone: nothing left to annotate
            self._transition(view, exchange, ExchangeState.FAILED)
            self._transition(view, exchange, ExchangeState.IDLE)
            return
        partial = turn.content
        message = self.settings.FAILURE_MESSAGE
        view.transcript.append_to_streaming(
            f"\n\n{message}" if partial else message, turn_id=turn_id
        )
        view.transcript.finalize(turn_id)
        self._transition(view, exchange, ExchangeState.FAILED)
        self._transition(view, exchange, ExchangeState.IDLE)

    def _settle_abandoned(self, view: ConversationView, exchange: Exchange) -> None:
        """Abandoned: keep partial content, persist nothing, back to Idle."""
        turn_id = exchange.assistant_turn_id
        if turn_id is not None and view.transcript.streaming_id == turn_id:
            view.transcript.finalize(turn_id)
        log_adapter(logger, exchange.cid).info(
            "exchange.abandoned",
            extra={"fragments": exchange.relay.fragments if exchange.relay else 0},
        )
        self._transition(view, exchange, ExchangeState.IDLE)

    async def _abandon(self, view: ConversationView) -> bool:
        exchange = view.exchange
        if exchange is None or not exchange.in_flight:
            return False
        exchange.abandoned = True
        if exchange.task is not None and not exchange.task.done():
            exchange.task.cancel()
            await asyncio.wait([exchange.task])
        return True

    def _transition(self, view: ConversationView, exchange: Exchange, state: ExchangeState) -> None:
        exchange.state = state
        exchange.transitions.append(state)
        self.state.notify("exchange", view)
