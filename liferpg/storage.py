from __future__ import annotations

import asyncio
import json
import logging
import sqlite3
from pathlib import Path

from liferpg.clock import utc_now_iso
from liferpg.errors import StorageError

logger = logging.getLogger(__name__)

DB_PATH = Path(__file__).resolve().parent.parent / "data.sqlite3"
STATE_KEY = "state"


def get_conn(db_path: Path | None = None) -> sqlite3.Connection:
    conn = sqlite3.connect(db_path or DB_PATH)
    conn.row_factory = sqlite3.Row
    return conn


def init_db(db_path: Path | None = None) -> None:
    conn = get_conn(db_path)
    try:
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS kv (
                key TEXT PRIMARY KEY,
                value TEXT NOT NULL,
                updated_at TEXT NOT NULL
            )
            """
        )
        conn.commit()
    finally:
        conn.close()


class StateStore:
    async def load(self) -> dict | None:
        raise NotImplementedError

    async def save(self, state: dict) -> None:
        raise NotImplementedError

    async def clear(self) -> None:
        raise NotImplementedError


class MemoryStateStore(StateStore):
    def __init__(self, initial: dict | None = None) -> None:
        self._text: str | None = json.dumps(initial) if initial is not None else None
        self.saves = 0

    async def load(self) -> dict | None:
        return json.loads(self._text) if self._text is not None else None

    async def save(self, state: dict) -> None:
        self._text = json.dumps(state)
        self.saves += 1

    async def clear(self) -> None:
        self._text = None


class SqliteStateStore(StateStore):
    """Keeps the whole state as one JSON document in a single ``kv`` row."""

    def __init__(self, db_path: Path | None = None, key: str = STATE_KEY) -> None:
        self.db_path = db_path
        self.key = key

    def _load(self) -> dict | None:
        init_db(self.db_path)
        conn = get_conn(self.db_path)
        try:
            row = conn.execute("SELECT value FROM kv WHERE key = ?", (self.key,)).fetchone()
        finally:
            conn.close()
        if row is None:
            return None
        return json.loads(row["value"])

    def _save(self, text: str) -> None:
        init_db(self.db_path)
        conn = get_conn(self.db_path)
        try:
            conn.execute(
                """
                INSERT INTO kv (key, value, updated_at) VALUES (?, ?, ?)
                ON CONFLICT(key) DO UPDATE SET value=excluded.value, updated_at=excluded.updated_at
                """,
                (self.key, text, utc_now_iso()),
            )
            conn.commit()
        finally:
            conn.close()

    def _clear(self) -> None:
        init_db(self.db_path)
        conn = get_conn(self.db_path)
        try:
            conn.execute("DELETE FROM kv WHERE key = ?", (self.key,))
            conn.commit()
        finally:
            conn.close()

    async def load(self) -> dict | None:
        try:
            return await asyncio.to_thread(self._load)
        except (sqlite3.Error, ValueError) as exc:
            logger.error("Loading state failed: %s", exc)
            raise StorageError(f"Could not load state: {exc}") from exc

    async def save(self, state: dict) -> None:
        try:
            text = json.dumps(state)
            await asyncio.to_thread(self._save, text)
        except (sqlite3.Error, TypeError, ValueError) as exc:
            logger.error("Saving state failed: %s", exc)
            raise StorageError(f"Could not save state: {exc}") from exc

    async def clear(self) -> None:
        try:
            await asyncio.to_thread(self._clear)
        except sqlite3.Error as exc:
            logger.error("Clearing state failed: %s", exc)
            raise StorageError(f"Could not clear state: {exc}") from exc
