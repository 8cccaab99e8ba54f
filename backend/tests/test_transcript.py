"""Transcript store: ordering, single streaming slot and copy semantics."""

import pytest

from relaychat.chat.errors import TranscriptError
from relaychat.chat.transcript import TranscriptStore
from relaychat.chat.types import Turn


def turn(tid, role="user", content="", streaming=False):
    return Turn(id=tid, role=role, content=content, streaming=streaming)


def test_append_keeps_order_and_index():
    store = TranscriptStore()
    store.append(turn("u1", content="hi"))
    store.append(turn("a1", role="assistant", streaming=True))

    assert [t.id for t in store] == ["u1", "a1"]
    assert store.streaming_id == "a1"
    assert store.get("u1").content == "hi"
    assert store.get("missing") is None


def test_only_one_streaming_turn():
    store = TranscriptStore([turn("a1", role="assistant", streaming=True)])
    with pytest.raises(TranscriptError):
        store.append(turn("a2", role="assistant", streaming=True))
    assert len(store) == 1


def test_fragments_grow_streaming_turn_verbatim():
    store = TranscriptStore([turn("a1", role="assistant", streaming=True)])
    for piece in ("Hel", "lo", "", " wörld\n"):
        store.append_to_streaming(piece, turn_id="a1")
    assert store.get("a1").content == "Hello wörld\n"


def test_finalized_turn_is_immutable():
    store = TranscriptStore([turn("a1", role="assistant", streaming=True)])
    store.append_to_streaming("done")
    final = store.finalize("a1")

    assert final.streaming is False and store.streaming_id is None
    with pytest.raises(TranscriptError):
        store.append_to_streaming("more", turn_id="a1")
    with pytest.raises(TranscriptError):
        store.append_to_streaming("more")
    with pytest.raises(TranscriptError):
        store.finalize("a1")
    assert store.get("a1").content == "done"


def test_append_to_unknown_turn_is_rejected():
    store = TranscriptStore([turn("a1", role="assistant", streaming=True)])
    with pytest.raises(TranscriptError):
        store.append_to_streaming("x", turn_id="nope")


def test_duplicate_ids_rejected():
    store = TranscriptStore([turn("u1")])
    with pytest.raises(TranscriptError):
        store.append(turn("u1"))
    with pytest.raises(TranscriptError):
        store.replace_all([turn("x"), turn("x")])
    assert [t.id for t in store] == ["u1"]


def test_handed_out_turns_are_copies():
    store = TranscriptStore([turn("u1", content="original")])
    store.get("u1").content = "changed"
    store.snapshot()[0].content = "changed"
    assert store.get("u1").content == "original"


def test_replace_all_and_clear():
    store = TranscriptStore([turn("a1", role="assistant", streaming=True)])
    store.replace_all([turn("u9", content="loaded")])
    assert store.streaming_id is None
    assert [t.content for t in store] == ["loaded"]

    store.clear()
    assert len(store) == 0 and store.snapshot() == ()
