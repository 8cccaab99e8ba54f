# ------------------------------------------------------------
# Module: relaychat/cli.py
# Purpose: Terminal chat UI driving the conversation controller.
# ------------------------------------------------------------

"""Interactive terminal front end.

Responsibilities
----------------
- Build a controller against the relay endpoint (default) or the provider
  directly (`--direct`), with the SQLite gateway for storage.
- Render the streaming assistant turn as fragments arrive by subscribing to
  the state container.
- Map slash commands onto controller operations.

Usage
-----
    relaychat --user alice
    relaychat --user alice --direct --mode technical
"""

from __future__ import annotations

import argparse
import asyncio
import sys

from relaychat.chat.auth import StaticIdentity
from relaychat.chat.client.openai_client import OpenAICompletionClient
from relaychat.chat.client.relay_http_client import RelayHttpClient
from relaychat.chat.controller import ConversationController
from relaychat.chat.errors import ChatError
from relaychat.chat.prompts import STARTER_PROMPTS
from relaychat.chat.state import ConversationView, ExchangeState
from relaychat.chat.types import ChatMode
from relaychat.core.config import settings
from relaychat.core.logging import configure_logging
from relaychat.storage.sqlite_gateway import SqliteGateway

HELP = """commands:
  /new                start a new chat
  /list               list conversations
  /open <id>          open a conversation
  /mode <mode>        assistant | creative | technical | casual
  /incognito on|off   toggle incognito for this conversation
  /delete <id>        delete a conversation
  /suggest <n>        send starter prompt n
  /quit               exit"""


class Renderer:
    """Prints the active view's streaming turn incrementally."""

    def __init__(self, controller: ConversationController):
        self.controller = controller
        self._printed: dict[str, int] = {}

    def __call__(self, topic: str, view: ConversationView) -> None:
        if view is not self.controller.state.active:
            return
        if topic == "fragment":
            self._flush(view)
        elif topic == "exchange" and view.exchange is not None:
            if view.exchange.state is ExchangeState.IDLE:
                self._flush(view)
                print()
        elif topic in ("transcript", "incognito"):
            self._printed.clear()

    def _flush(self, view: ConversationView) -> None:
        turn_id = view.exchange.assistant_turn_id if view.exchange else None
        turn = view.transcript.get(turn_id) if turn_id else None
        if turn is None:
            return
        done = self._printed.get(turn.id, 0)
        if done == 0 and turn.content:
            sys.stdout.write("assistant: ")
        sys.stdout.write(turn.content[done:])
        sys.stdout.flush()
        self._printed[turn.id] = len(turn.content)


def _print_transcript(view: ConversationView) -> None:
    for turn in view.transcript:
        note = f" [image: {turn.image_ref}]" if turn.image_ref else ""
        print(f"{turn.role}: {turn.content}{note}")


async def _command(controller: ConversationController, line: str) -> bool:
    cmd, _, arg = line[1:].partition(" ")
    arg = arg.strip()
    if cmd == "quit":
        return False
    if cmd == "new":
        controller.new_chat()
    elif cmd == "list":
        await controller.refresh_conversations()
        for c in controller.state.conversations:
            print(f"{c['id']}  {c['title']}")
    elif cmd == "open":
        _print_transcript(await controller.select_conversation(arg))
    elif cmd == "mode":
        print(f"mode: {controller.set_mode(arg).value}")
    elif cmd == "incognito":
        await controller.set_incognito(arg == "on")
        print(f"incognito: {controller.state.active.incognito}")
    elif cmd == "delete":
        await controller.delete_conversation(arg)
    elif cmd == "suggest":
        _, prompt = STARTER_PROMPTS[int(arg) - 1]
        await controller.submit(prompt)
    else:
        print(HELP)
    return True


async def run(controller: ConversationController) -> None:
    controller.subscribe(Renderer(controller))
    print(HELP)
    for i, (title, _) in enumerate(STARTER_PROMPTS, 1):
        print(f"  suggestion {i}: {title}")
    while True:
        try:
            line = (await asyncio.to_thread(input, "> ")).strip()
        except EOFError:
            break
        if not line:
            continue
        try:
            if line.startswith("/"):
                if not await _command(controller, line):
                    break
                continue
            await controller.submit(line)
        except (ChatError, ValueError, IndexError) as e:
            print(f"error: {e}")
    await controller.flush()


def main(argv: list[str] | None = None) -> int:
    ap = argparse.ArgumentParser(description="Terminal chat client")
    ap.add_argument("--user", required=True, help="user id sent to the relay")
    ap.add_argument("--mode", default=ChatMode.ASSISTANT.value, choices=[m.value for m in ChatMode])
    ap.add_argument("--direct", action="store_true", help="call the provider directly")
    ap.add_argument("--relay-url", default=settings.RELAY_URL)
    ap.add_argument("--db", default=str(settings.DB_PATH), help="SQLite conversation store")
    args = ap.parse_args(argv)

    configure_logging()
    gateway = SqliteGateway(args.db)
    gateway.ensure_initialized()
    if args.direct:
        client = OpenAICompletionClient.from_settings(settings)
    else:
        client = RelayHttpClient(args.relay_url, args.user)
    controller = ConversationController(client, gateway, StaticIdentity(args.user))
    controller.set_mode(args.mode)
    try:
        asyncio.run(run(controller))
    except KeyboardInterrupt:
        pass
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
