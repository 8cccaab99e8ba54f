"""Request assembly, image flattening and titles."""

import pytest

from relaychat.chat.prompts import (
    STARTER_PROMPTS,
    SYSTEM_DIRECTIVES,
    build_request,
    conversation_title,
    flatten_turn,
)
from relaychat.chat.types import ChatMode, Turn


def test_every_mode_has_a_directive():
    assert set(SYSTEM_DIRECTIVES) == set(ChatMode)
    assert all(SYSTEM_DIRECTIVES.values())


def test_request_is_system_history_then_new_turn():
    history = [
        Turn(role="user", content="a"),
        Turn(role="assistant", content="b"),
        Turn(role="user", content="a"),
    ]
    new = Turn(role="user", content="c")

    msgs = build_request("creative", history, new)

    assert msgs[0] == {"role": "system", "content": SYSTEM_DIRECTIVES[ChatMode.CREATIVE]}
    assert [m["content"] for m in msgs[1:]] == ["a", "b", "a", "c"]


def test_image_becomes_leading_annotation():
    msg = flatten_turn(Turn(role="user", content="what?", image_ref="http://x/y.png"))
    assert msg == {"role": "user", "content": "[Image attached: http://x/y.png]\nwhat?"}

    only = flatten_turn(Turn(role="user", content="", image_ref="http://x/y.png"))
    assert only["content"] == "[Image attached: http://x/y.png]"


@pytest.mark.parametrize(
    "text,expected",
    [
        ("Hello", "Hello"),
        ("x" * 50, "x" * 50),
        ("x" * 51, "x" * 50 + "..."),
        ("   padded  ", "padded"),
        ("", "Image"),
    ],
)
def test_conversation_title(text, expected):
    assert conversation_title(text) == expected


def test_starter_prompts_are_title_prompt_pairs():
    assert len(STARTER_PROMPTS) == 4
    assert all(title and prompt for title, prompt in STARTER_PROMPTS)
