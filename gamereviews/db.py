"""SQLite-backed key-value storage for gamereviews."""

from __future__ import annotations

import json
import logging
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Generator

from gamereviews.errors import StorageError

logger = logging.getLogger(__name__)

DEFAULT_DB = Path.home() / ".gamereviews" / "gamereviews.db"

_DDL = """
CREATE TABLE IF NOT EXISTS kv_store (
    key   TEXT PRIMARY KEY,
    value TEXT NOT NULL
);
"""


class Database:
    """Thin wrapper around an SQLite connection holding JSON values by key.

    Each value is read and written whole; there are no partial updates.
    """

    def __init__(self, path: Path | str = DEFAULT_DB) -> None:
        self._path = Path(path)
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._conn = sqlite3.connect(str(self._path), check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        self._conn.execute("PRAGMA journal_mode=WAL;")
        self._apply_schema()
        logger.debug("Opened %s with keys %s", self._path, self.keys())

    def _apply_schema(self) -> None:
        self._conn.executescript(_DDL)
        self._conn.commit()

    @contextmanager
    def _tx(self) -> Generator[sqlite3.Connection, None, None]:
        try:
            yield self._conn
            self._conn.commit()
        except Exception:
            self._conn.rollback()
            raise

    def close(self) -> None:
        self._conn.close()

    # ------------------------------------------------------------------
    # Key-value access
    # ------------------------------------------------------------------

    def get_json(self, key: str, default: Any = None) -> Any:
        """Return the decoded value stored under *key*, or *default*.

        Raises ``StorageError`` if the stored text is not valid JSON.
        """
        row = self._conn.execute(
            "SELECT value FROM kv_store WHERE key = ?", (key,)
        ).fetchone()
        if row is None:
            return default
        try:
            return json.loads(row["value"])
        except json.JSONDecodeError as exc:
            raise StorageError(f"Stored value for {key!r} is not valid JSON") from exc

    def set_json(self, key: str, value: Any) -> None:
        """Replace the whole value stored under *key*."""
        payload = json.dumps(value, ensure_ascii=False)
        with self._tx() as conn:
            conn.execute(
                """
                INSERT INTO kv_store (key, value) VALUES (?, ?)
                ON CONFLICT(key) DO UPDATE SET value = excluded.value
                """,
                (key, payload),
            )
        logger.debug("Wrote %r (%d chars)", key, len(payload))

    def delete(self, key: str) -> bool:
        """Remove *key*. Returns ``True`` if it was present."""
        with self._tx() as conn:
            cur = conn.execute("DELETE FROM kv_store WHERE key = ?", (key,))
        return cur.rowcount > 0

    def keys(self) -> list[str]:
        rows = self._conn.execute("SELECT key FROM kv_store ORDER BY key").fetchall()
        return [r["key"] for r in rows]
