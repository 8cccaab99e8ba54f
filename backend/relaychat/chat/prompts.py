# ------------------------------------------------------------
# Module: relaychat/chat/prompts.py
# Purpose: System directives, outbound request assembly and titles.
# ------------------------------------------------------------

"""Prompt assembly for outbound completion requests.

Responsibilities
----------------
- Map each `ChatMode` to its system directive.
- Flatten turns to role/content pairs, embedding image references as text.
- Assemble `[system] + history + [new turn]` without reordering or dedup.
- Derive conversation titles from the first user turn.
- Provide the starter prompts offered on an empty transcript.
"""

from __future__ import annotations

from collections.abc import Iterable

from relaychat.chat.types import ChatMode, OutboundMessage, Turn

SYSTEM_DIRECTIVES: dict[ChatMode, str] = {
    ChatMode.ASSISTANT: (
        "You are a helpful, knowledgeable assistant. Answer clearly and "
        "accurately, ask for clarification when a request is ambiguous, and "
        "keep answers as short as the question allows."
    ),
    ChatMode.CREATIVE: (
        "You are a creative writing partner. Offer imaginative ideas, vivid "
        "language and several alternatives when useful, while staying on the "
        "user's topic."
    ),
    ChatMode.TECHNICAL: (
        "You are a precise technical expert. Give correct, detailed answers "
        "with code or step-by-step reasoning where it helps, state assumptions "
        "explicitly, and prefer concrete examples over generalities."
    ),
    ChatMode.CASUAL: (
        "You are a friendly, relaxed conversation partner. Keep the tone "
        "light and conversational and avoid unnecessary formality."
    ),
}

# Suggestions shown on an empty transcript; submitted as ordinary user turns.
STARTER_PROMPTS: tuple[tuple[str, str], ...] = (
    (
        "Explain concepts",
        "I need you to explain a concept to me. What topic would you like me to explain?",
    ),
    (
        "Write code",
        "I can help you write code! What programming language or task do you need help with?",
    ),
    (
        "Boost productivity",
        "I can help boost your productivity! What task or workflow would you like to improve or automate?",
    ),
    (
        "Create content",
        "I can help you create content! What type of content do you want to write? (blog post, article, social media, etc.)",
    ),
)


def image_annotation(ref: str) -> str:
    """Inline text stand-in for an attached image."""
    return f"[Image attached: {ref}]"


def flatten_turn(turn: Turn) -> OutboundMessage:
    """Turn -> role/content pair; an image reference becomes a leading annotation."""
    content = turn.content
    if turn.image_ref:
        note = image_annotation(turn.image_ref)
        content = f"{note}\n{content}" if content else note
    return {"role": turn.role, "content": content}


def build_request(
    mode: ChatMode, history: Iterable[Turn], new_turn: Turn
) -> list[OutboundMessage]:
    """Assemble the outbound request for one exchange.

    Notes
    -----
    - Order is conversation order exactly; no reordering or deduplication.
    - `history` must be a snapshot taken before `new_turn` was appended,
      otherwise the new turn would be sent twice.
    """
    messages: list[OutboundMessage] = [
        {"role": "system", "content": SYSTEM_DIRECTIVES[ChatMode(mode)]}
    ]
    messages.extend(flatten_turn(t) for t in history)
    messages.append(flatten_turn(new_turn))
    return messages


def conversation_title(first_turn: str, max_chars: int = 50) -> str:
    """Title = first `max_chars` characters of the first turn, '...' if cut."""
    text = first_turn.strip() or "Image"
    return text[:max_chars] + ("..." if len(text) > max_chars else "")
