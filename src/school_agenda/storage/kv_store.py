# src/school_agenda/storage/kv_store.py

from __future__ import annotations

import asyncio
import contextlib
import logging
import sqlite3
from collections.abc import Iterable
from pathlib import Path

from ..errors import StorageReadError, StorageWriteError

logger = logging.getLogger(__name__)

# Slot names shared by every component that touches the store.
KEY_TASKS = "tasks"
KEY_DOCENTES = "docentes"
KEY_MATERIAS = "materias"
KEY_GRUPOS = "grupos"
KEY_DIRECTIVOS = "directivos"
KEY_HORARIOS = "horarios"
KEY_ACTIVIDADES = "actividades"
KEY_THEME = "theme"
KEY_LOGGED_IN = "isLoggedIn"
KEY_LAST_RESTORE = "lastRestoreTime"
KEY_LAST_CHECKED_RESTORE = "lastCheckedRestoreTime"


class KeyValueStore:
    """
    Asynchronous string key-value store backed by SQLite.

    Values are opaque strings (callers store JSON). Every public method is a
    coroutine; the blocking SQLite work runs in a worker thread so the event
    loop is never blocked.

    Thread-safety:
    - each call opens its own SQLite connection
    - single-key writes are atomic; multi_set runs in one transaction
    """

    def __init__(self, db_path: str | Path = "store.sqlite3") -> None:
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._ensure_schema()
        logger.info("KeyValueStore ready db=%s", self._db_path)

    @property
    def path(self) -> Path:
        return self._db_path

    # ---- low-level helpers ----

    def _get_conn(self) -> sqlite3.Connection:
        conn = sqlite3.connect(str(self._db_path), timeout=30.0)
        with contextlib.suppress(sqlite3.Error):
            conn.execute("PRAGMA journal_mode=WAL")
        return conn

    def _ensure_schema(self) -> None:
        conn = self._get_conn()
        try:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS kv (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL
                )
                """
            )
            conn.commit()
        finally:
            conn.close()

    def _read(self, keys: list[str]) -> list[tuple[str, str | None]]:
        try:
            conn = self._get_conn()
            try:
                out: list[tuple[str, str | None]] = []
                for key in keys:
                    row = conn.execute("SELECT value FROM kv WHERE key = ?", (key,)).fetchone()
                    out.append((key, row[0] if row else None))
                return out
            finally:
                conn.close()
        except sqlite3.Error as e:
            raise StorageReadError(f"failed to read {keys!r}: {e}") from e

    def _keys(self) -> list[str]:
        try:
            conn = self._get_conn()
            try:
                rows = conn.execute("SELECT key FROM kv ORDER BY key").fetchall()
                return [str(r[0]) for r in rows]
            finally:
                conn.close()
        except sqlite3.Error as e:
            raise StorageReadError(f"failed to list keys: {e}") from e

    def _write(self, pairs: list[tuple[str, str]], removals: list[str]) -> None:
        try:
            conn = self._get_conn()
            try:
                with conn:
                    conn.executemany(
                        "INSERT INTO kv(key, value) VALUES (?, ?) "
                        "ON CONFLICT(key) DO UPDATE SET value = excluded.value",
                        pairs,
                    )
                    conn.executemany("DELETE FROM kv WHERE key = ?", [(k,) for k in removals])
            finally:
                conn.close()
        except sqlite3.Error as e:
            keys = [k for k, _ in pairs] + removals
            raise StorageWriteError(f"failed to write {keys!r}: {e}") from e

    # ---- public API ----

    async def get_item(self, key: str) -> str | None:
        ((_, value),) = await asyncio.to_thread(self._read, [key])
        return value

    async def set_item(self, key: str, value: str) -> None:
        if not isinstance(value, str):
            raise TypeError("KeyValueStore values must be strings (serialize to JSON first)")
        await asyncio.to_thread(self._write, [(key, value)], [])
        logger.debug("Stored key=%s bytes=%d", key, len(value))

    async def remove_item(self, key: str) -> None:
        await asyncio.to_thread(self._write, [], [key])
        logger.debug("Removed key=%s", key)

    async def get_all_keys(self) -> list[str]:
        return await asyncio.to_thread(self._keys)

    async def multi_get(self, keys: Iterable[str]) -> list[tuple[str, str | None]]:
        return await asyncio.to_thread(self._read, list(keys))

    async def multi_set(self, pairs: Iterable[tuple[str, str]]) -> None:
        items = [(str(k), v) for k, v in pairs]
        for k, v in items:
            if not isinstance(v, str):
                raise TypeError(f"value for {k!r} must be a string")
        await asyncio.to_thread(self._write, items, [])
        logger.debug("Stored %d keys in one transaction", len(items))
