# ------------------------------------------------------------
# Module: relaychat/storage/sqlite_gateway.py
# Purpose: SQLite-backed persistence gateway for conversations and messages.
# ------------------------------------------------------------

"""Lightweight persistence layer for conversations using SQLite.

Responsibilities
----------------
- Initialize and maintain the conversations/messages tables and indexes.
- Implement every `PersistenceGateway` operation as a short transaction.
- Normalize rows into `ConversationSummary` dicts and `Turn` objects.
- Translate `sqlite3.Error` into `PersistenceError`.

Notes
-----
- Timestamps are milliseconds since the Unix epoch.
- WAL mode lets sidebar reads proceed while an exchange is being written.
- One connection per call; calls arrive from worker threads.
"""

from __future__ import annotations

import logging
import sqlite3
import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

from relaychat.chat.errors import PersistenceError
from relaychat.chat.types import ConversationSummary, Role, Turn
from relaychat.utils.timing import now_ms

log = logging.getLogger(__name__)

_ROLES = ("user", "assistant", "system")


class SqliteGateway:
    """`PersistenceGateway` over a single SQLite file.

    Parameters
    ----------
    db_path
        Database file; parent directories are created on first use.
    """

    def __init__(self, db_path: str | Path):
        self.db_path = Path(db_path)

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        """Open a connection with Row access and FK enforcement; commit or roll back."""
        try:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
            con = sqlite3.connect(self.db_path.as_posix(), timeout=30)
        except (OSError, sqlite3.Error) as e:
            raise PersistenceError(f"cannot open {self.db_path}: {e}") from e
        con.row_factory = sqlite3.Row
        try:
            con.execute("PRAGMA foreign_keys=ON;")
            yield con
            con.commit()
        except sqlite3.Error as e:
            con.rollback()
            raise PersistenceError(str(e)) from e
        finally:
            con.close()

    def ensure_initialized(self) -> None:
        """Create tables and indexes if missing (idempotent, run at startup)."""
        with self._connect() as con:
            # journal_mode=WAL persists at the DB level.
            con.execute("PRAGMA journal_mode=WAL;")
            con.execute(
                """
                CREATE TABLE IF NOT EXISTS conversations (
                    id TEXT PRIMARY KEY,
                    user_id TEXT NOT NULL,
                    title TEXT NOT NULL,
                    created_at INTEGER NOT NULL,
                    updated_at INTEGER NOT NULL
                );
                """
            )
            con.execute(
                """
                CREATE TABLE IF NOT EXISTS messages (
                    id TEXT PRIMARY KEY,
                    conversation_id TEXT NOT NULL
                        REFERENCES conversations(id) ON DELETE CASCADE,
                    role TEXT NOT NULL,
                    content TEXT NOT NULL,
                    image_url TEXT,
                    created_at INTEGER NOT NULL
                );
                """
            )
            con.execute(
                "CREATE INDEX IF NOT EXISTS idx_conv_user ON conversations(user_id, updated_at);"
            )
            con.execute(
                "CREATE INDEX IF NOT EXISTS idx_msg_conv ON messages(conversation_id, created_at);"
            )
        log.info("sqlite gateway ready path=%s", self.db_path)

    def create_conversation(self, user_id: str, title: str) -> str:
        conversation_id = str(uuid.uuid4())
        now = now_ms()
        with self._connect() as con:
            con.execute(
                """
                INSERT INTO conversations (id, user_id, title, created_at, updated_at)
                VALUES (?,?,?,?,?)
                """,
                (conversation_id, user_id, title, now, now),
            )
        return conversation_id

    def append_message(
        self,
        conversation_id: str,
        role: Role,
        content: str,
        image_ref: str | None = None,
    ) -> str:
        if role not in _ROLES:
            raise PersistenceError(f"invalid role {role!r}")
        message_id = str(uuid.uuid4())
        with self._connect() as con:
            con.execute(
                """
                INSERT INTO messages (id, conversation_id, role, content, image_url, created_at)
                VALUES (?,?,?,?,?,?)
                """,
                (message_id, conversation_id, role, content, image_ref, now_ms()),
            )
        return message_id

    def touch_conversation(self, conversation_id: str) -> None:
        with self._connect() as con:
            cur = con.execute(
                "UPDATE conversations SET updated_at=? WHERE id=?",
                (now_ms(), conversation_id),
            )
            if cur.rowcount == 0:
                log.warning("touch_conversation: unknown id=%s", conversation_id)

    def list_conversations(self, user_id: str) -> list[ConversationSummary]:
        with self._connect() as con:
            rows = con.execute(
                """
                SELECT id, title, updated_at FROM conversations
                WHERE user_id=?
                ORDER BY updated_at DESC, rowid DESC
                """,
                (user_id,),
            ).fetchall()
        return [
            {"id": r["id"], "title": r["title"], "updated_at": int(r["updated_at"])}
            for r in rows
        ]

    def list_messages(self, conversation_id: str) -> list[Turn]:
        with self._connect() as con:
            rows = con.execute(
                """
                SELECT id, role, content, image_url FROM messages
                WHERE conversation_id=?
                ORDER BY created_at ASC, rowid ASC
                """,
                (conversation_id,),
            ).fetchall()
        return [
            Turn(
                id=r["id"],
                role=r["role"],
                content=r["content"],
                image_ref=r["image_url"],
            )
            for r in rows
        ]

    def delete_conversation(self, conversation_id: str) -> None:
        with self._connect() as con:
            con.execute("DELETE FROM conversations WHERE id=?", (conversation_id,))

    def delete_user_conversations(self, user_id: str) -> int:
        with self._connect() as con:
            cur = con.execute("DELETE FROM conversations WHERE user_id=?", (user_id,))
            return cur.rowcount

    def ping(self) -> bool:
        try:
            with self._connect() as con:
                con.execute("SELECT 1").fetchone()
        except PersistenceError:
            log.warning("sqlite gateway ping failed", exc_info=True)
            return False
        return True
