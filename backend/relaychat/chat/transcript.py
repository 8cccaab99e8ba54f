# ------------------------------------------------------------
# Module: relaychat/chat/transcript.py
# Purpose: Ordered, id-indexed, in-memory transcript of one conversation.
# ------------------------------------------------------------

"""In-memory transcript with stable-id lookup and a single streaming slot.

Responsibilities
----------------
- Keep turns in conversation order with an id -> turn index for updates.
- Allow at most one streaming turn; only that turn may grow.
- Reject appends to missing or finalized turns instead of ignoring them.
- Replace or clear the whole collection on conversation switch.

Notes
-----
- Streaming content is append-only; after `finalize` a turn is immutable.
- Every turn handed out is a copy; callers cannot mutate stored state.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from dataclasses import replace

from relaychat.chat.errors import TranscriptError
from relaychat.chat.types import Turn


class TranscriptStore:
    """Ordered collection of `Turn` objects keyed by id."""

    def __init__(self, turns: Iterable[Turn] = ()):
        self._order: list[str] = []
        self._index: dict[str, Turn] = {}
        self._streaming_id: str | None = None
        self.replace_all(turns)

    def __len__(self) -> int:
        return len(self._order)

    def __iter__(self) -> Iterator[Turn]:
        return iter(self.snapshot())

    @property
    def streaming_id(self) -> str | None:
        """Id of the turn currently receiving fragments, if any."""
        return self._streaming_id

    def snapshot(self) -> tuple[Turn, ...]:
        """Copies of all turns in order (safe to hand to a request builder)."""
        return tuple(replace(self._index[tid]) for tid in self._order)

    def get(self, turn_id: str) -> Turn | None:
        turn = self._index.get(turn_id)
        return replace(turn) if turn is not None else None

    def append(self, turn: Turn) -> Turn:
        """Append a new turn; a streaming turn claims the single streaming slot."""
        if turn.id in self._index:
            raise TranscriptError(f"duplicate turn id {turn.id}")
        if turn.streaming and self._streaming_id is not None:
            raise TranscriptError(
                f"turn {self._streaming_id} is still streaming; cannot start {turn.id}"
            )
        stored = replace(turn)
        self._order.append(stored.id)
        self._index[stored.id] = stored
        if stored.streaming:
            self._streaming_id = stored.id
        return replace(stored)

    def append_to_streaming(self, text: str, *, turn_id: str | None = None) -> Turn:
        """Append `text` verbatim to the streaming turn.

        Raises
        ------
        TranscriptError
            No turn is streaming, or `turn_id` names a turn that is not the
            streaming one (finalized, removed, or never existed).
        """
        sid = self._streaming_id
        if sid is None:
            raise TranscriptError("no turn is streaming")
        if turn_id is not None and turn_id != sid:
            raise TranscriptError(f"turn {turn_id} is not streaming")
        turn = self._index[sid]
        turn.content += text
        return replace(turn)

    def finalize(self, turn_id: str) -> Turn:
        """Clear the streaming flag; the turn is immutable afterwards."""
        if turn_id != self._streaming_id:
            raise TranscriptError(f"turn {turn_id} is not streaming")
        turn = self._index[turn_id]
        turn.streaming = False
        self._streaming_id = None
        return replace(turn)

    def replace_all(self, turns: Iterable[Turn]) -> None:
        """Swap in a whole new collection (conversation switch / reload)."""
        order: list[str] = []
        index: dict[str, Turn] = {}
        streaming_id: str | None = None
        for turn in turns:
            if turn.id in index:
                raise TranscriptError(f"duplicate turn id {turn.id}")
            if turn.streaming:
                if streaming_id is not None:
                    raise TranscriptError("more than one streaming turn")
                streaming_id = turn.id
            order.append(turn.id)
            index[turn.id] = replace(turn)
        self._order, self._index, self._streaming_id = order, index, streaming_id

    def clear(self) -> None:
        self.replace_all(())
