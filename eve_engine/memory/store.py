"""SQLite-backed conversation log."""

from __future__ import annotations

import sqlite3
from dataclasses import dataclass
from pathlib import Path

from ..chat.schema import Message
from ..utils import ensure_dir, now_utc_iso


DB_PATH = Path.home() / ".eve" / "conversations.sqlite"


@dataclass
class MessageStore:
    path: Path = DB_PATH

    def connect(self) -> sqlite3.Connection:
        ensure_dir(self.path.parent)
        conn = sqlite3.connect(self.path)
        conn.row_factory = sqlite3.Row
        return conn

    def init_db(self) -> None:
        with self.connect() as conn:
            conn.executescript(
                """
                CREATE TABLE IF NOT EXISTS messages (
                    seq INTEGER PRIMARY KEY AUTOINCREMENT,
                    conversation_id TEXT NOT NULL,
                    message_id TEXT NOT NULL,
                    role TEXT NOT NULL,
                    text TEXT NOT NULL DEFAULT '',
                    image TEXT,
                    is_error INTEGER NOT NULL DEFAULT 0,
                    is_image_loading INTEGER NOT NULL DEFAULT 0,
                    created_at TEXT,
                    UNIQUE (conversation_id, message_id)
                );
                CREATE INDEX IF NOT EXISTS idx_messages_conversation
                    ON messages (conversation_id, seq);
                """
            )

    def append(self, conversation_id: str, message: Message) -> None:
        with self.connect() as conn:
            conn.execute(
                """
                INSERT INTO messages
                (conversation_id, message_id, role, text, image, is_error, is_image_loading, created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    conversation_id,
                    message.id,
                    message.role,
                    message.text or "",
                    message.image,
                    int(message.is_error),
                    int(message.is_image_loading),
                    now_utc_iso(),
                ),
            )

    def update(self, conversation_id: str, message: Message) -> bool:
        with self.connect() as conn:
            cursor = conn.execute(
                """
                UPDATE messages
                SET role = ?, text = ?, image = ?, is_error = ?, is_image_loading = ?
                WHERE conversation_id = ? AND message_id = ?
                """,
                (
                    message.role,
                    message.text or "",
                    message.image,
                    int(message.is_error),
                    int(message.is_image_loading),
                    conversation_id,
                    message.id,
                ),
            )
            return cursor.rowcount > 0

    def list_messages(self, conversation_id: str) -> list[Message]:
        with self.connect() as conn:
            rows = conn.execute(
                """
                SELECT message_id, role, text, image, is_error, is_image_loading
                FROM messages WHERE conversation_id = ? ORDER BY seq
                """,
                (conversation_id,),
            ).fetchall()
        return [
            Message(
                id=row["message_id"],
                role=row["role"],
                text=row["text"] or "",
                image=row["image"],
                is_error=bool(row["is_error"]),
                is_image_loading=bool(row["is_image_loading"]),
            )
            for row in rows
        ]

    def clear(self, conversation_id: str) -> int:
        with self.connect() as conn:
            cursor = conn.execute("DELETE FROM messages WHERE conversation_id = ?", (conversation_id,))
            return cursor.rowcount
