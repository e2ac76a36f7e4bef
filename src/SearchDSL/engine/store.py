"""SQLite persistence for the reference engine's documents and mapping."""

from __future__ import annotations

import json
import sqlite3
import threading
from pathlib import Path
from typing import Any, Iterator


class DocumentStore:
    """Durable backing store for one index.

    Holds a single connection shared by all request threads; writes are
    serialized through a lock. Supports the context manager protocol for
    automatic connection cleanup.
    """

    def __init__(self, db_path: Path | str) -> None:
        """Open (creating if needed) the database at ``db_path``.

        Args:
            db_path: Database file path, or ``":memory:"`` for a transient index.
        """
        self.db_path = str(db_path)
        self.conn = ensure_db(self.db_path)
        self._lock = threading.Lock()
        init_schema(self.conn)

    def load_mapping(self) -> dict[str, Any] | None:
        row = self.conn.execute("SELECT body FROM index_meta WHERE key = 'mapping'").fetchone()
        return json.loads(row[0]) if row else None

    def save_mapping(self, mapping: dict[str, Any]) -> None:
        with self._lock:
            self.conn.execute(
                "INSERT OR REPLACE INTO index_meta (key, body) VALUES ('mapping', ?)",
                (json.dumps(mapping, sort_keys=True),),
            )
            self.conn.commit()

    def iter_documents(self) -> Iterator[tuple[str, dict[str, Any]]]:
        for doc_id, body in self.conn.execute("SELECT id, body FROM documents ORDER BY rowid"):
            yield doc_id, json.loads(body)

    def upsert(self, doc_id: str, body: dict[str, Any]) -> None:
        with self._lock:
            self.conn.execute(
                "INSERT OR REPLACE INTO documents (id, body) VALUES (?, ?)",
                (doc_id, json.dumps(body, ensure_ascii=False)),
            )
            self.conn.commit()

    def delete(self, doc_id: str) -> bool:
        with self._lock:
            cur = self.conn.execute("DELETE FROM documents WHERE id = ?", (doc_id,))
            self.conn.commit()
            return cur.rowcount > 0

    def close(self) -> None:
        if self.conn is not None:
            self.conn.close()
            self.conn = None

    def __enter__(self) -> DocumentStore:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()


def ensure_db(db_path: str) -> sqlite3.Connection:
    """Ensure the database file's directory exists and return a connection.

    Raises:
        OSError: If directory creation fails.
        sqlite3.Error: If database connection fails.
    """
    if db_path != ":memory:":
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)
    return sqlite3.connect(db_path, check_same_thread=False)


def init_schema(conn: sqlite3.Connection) -> None:
    conn.executescript("""
        CREATE TABLE IF NOT EXISTS documents (
          id TEXT PRIMARY KEY,
          body TEXT NOT NULL,
          indexed_at INTEGER NOT NULL DEFAULT (
            CAST(strftime('%s','now') AS INTEGER)
          )
        );

        CREATE TABLE IF NOT EXISTS index_meta (
          key TEXT PRIMARY KEY,
          body TEXT NOT NULL
        );
    """)
    conn.commit()
