"""SQLite conversation memory adapter.

Implements the core MemoryLog using a simple SQLite database.
"""

from __future__ import annotations

import sqlite3
from datetime import datetime, timezone
from typing import Optional


class SQLiteMemoryLog:
    """Thin SQLite wrapper that satisfies the MemoryLog contract."""

    def __init__(self, db_path: str, keep_per_chat: int = 50) -> None:
        self._db_path = db_path
        self._keep_per_chat = keep_per_chat

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self._db_path)
        conn.row_factory = sqlite3.Row
        return conn

    def init_db(self) -> None:
        """Create tables if they do not exist.

        Tables:
        - exchanges: rolling log of auto-reply exchanges, trimmed per chat
        """

        with self._connect() as conn:
            # Fields:
            # - id: auto-increment primary key, also the trim order
            # - chat_identity: normalized phone digits of the contact
            # - created_at: ISO timestamp of the reply
            # - sentiment: lexical label of the inbound text
            # - user_text: what the contact wrote
            # - reply_text: what the bot answered
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS exchanges (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    chat_identity TEXT NOT NULL,
                    created_at TIMESTAMP NOT NULL,
                    sentiment TEXT,
                    user_text TEXT,
                    reply_text TEXT
                )
                """
            )
            conn.execute(
                "CREATE INDEX IF NOT EXISTS idx_exchanges_chat ON exchanges (chat_identity, id)"
            )

    def append(
        self,
        chat_identity: str,
        user_text: str,
        reply_text: str,
        sentiment: str,
        timestamp: float,
    ) -> None:
        """Record one exchange and drop the chat's oldest beyond the limit."""

        created_at = datetime.fromtimestamp(timestamp, tz=timezone.utc)
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO exchanges (chat_identity, created_at, sentiment, user_text, reply_text)
                VALUES (?, ?, ?, ?, ?)
                """,
                (chat_identity, created_at.isoformat(), sentiment, user_text, reply_text),
            )
            conn.execute(
                """
                DELETE FROM exchanges
                WHERE chat_identity = ?
                  AND id NOT IN (
                      SELECT id FROM exchanges
                      WHERE chat_identity = ?
                      ORDER BY id DESC
                      LIMIT ?
                  )
                """,
                (chat_identity, chat_identity, self._keep_per_chat),
            )

    def recent(self, chat_identity: Optional[str] = None, limit: int = 200) -> list[dict]:
        """Return exchanges newest first, optionally for one chat."""

        query = "SELECT * FROM exchanges"
        params: tuple = ()
        if chat_identity:
            query += " WHERE chat_identity = ?"
            params = (chat_identity,)
        query += " ORDER BY id DESC LIMIT ?"
        with self._connect() as conn:
            rows = conn.execute(query, params + (limit,)).fetchall()
        return [dict(row) for row in rows]

    def count(self, chat_identity: Optional[str] = None) -> int:
        with self._connect() as conn:
            if chat_identity:
                row = conn.execute(
                    "SELECT COUNT(*) AS total FROM exchanges WHERE chat_identity = ?",
                    (chat_identity,),
                ).fetchone()
            else:
                row = conn.execute("SELECT COUNT(*) AS total FROM exchanges").fetchone()
        return int(row["total"])

    def clear(self, chat_identity: Optional[str] = None) -> int:
        """Delete exchanges and return the number removed."""

        with self._connect() as conn:
            if chat_identity:
                cur = conn.execute("DELETE FROM exchanges WHERE chat_identity = ?", (chat_identity,))
            else:
                cur = conn.execute("DELETE FROM exchanges")
            return cur.rowcount
