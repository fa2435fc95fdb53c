"""SqliteStateStore — aiosqlite-backed key-value state with expiry."""

from __future__ import annotations

import json
import logging
import time
from typing import TYPE_CHECKING, Any

import aiosqlite

from cortex.config import settings
from cortex.errors import StateStoreError

if TYPE_CHECKING:
    from pathlib import Path

logger = logging.getLogger(__name__)

_CREATE_TABLES = (
    """
    CREATE TABLE IF NOT EXISTS kv_state (
        key TEXT PRIMARY KEY,
        value TEXT NOT NULL,
        expires_at REAL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS kv_log (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        key TEXT NOT NULL,
        value TEXT NOT NULL,
        created_at REAL NOT NULL
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_kv_log_key ON kv_log (key, id)",
)


class SqliteStateStore:
    """Persists state rows in SQLite.

    Pass an explicit *db_path* for test isolation (e.g. ``tmp_path / "state.db"``).
    Expired rows are invisible to reads and purged on the next write.
    """

    def __init__(self, db_path: Path | None = None) -> None:
        self._db_path = db_path or settings.database_path
        self._initialised = False

    # -- Internal helpers ------------------------------------------------------

    async def _connect(self) -> aiosqlite.Connection:
        try:
            self._db_path.parent.mkdir(parents=True, exist_ok=True)
            db = await aiosqlite.connect(str(self._db_path))
            if not self._initialised:
                for stmt in _CREATE_TABLES:
                    await db.execute(stmt)
                await db.commit()
                self._initialised = True
            return db
        except (OSError, aiosqlite.Error) as exc:
            msg = f"Cannot open state database at {self._db_path}"
            raise StateStoreError(msg) from exc

    # -- Key-value -------------------------------------------------------------

    async def get(self, key: str) -> dict[str, Any] | None:
        db = await self._connect()
        try:
            cursor = await db.execute(
                "SELECT value FROM kv_state WHERE key = ? "
                "AND (expires_at IS NULL OR expires_at > ?)",
                (key, time.time()),
            )
            row = await cursor.fetchone()
            return json.loads(row[0]) if row else None
        except (aiosqlite.Error, json.JSONDecodeError) as exc:
            msg = f"Failed to read state key {key}"
            raise StateStoreError(msg) from exc
        finally:
            await db.close()

    async def set(
        self, key: str, value: dict[str, Any], ttl_seconds: float | None = None
    ) -> None:
        now = time.time()
        expires_at = now + ttl_seconds if ttl_seconds is not None else None
        db = await self._connect()
        try:
            await db.execute(
                "DELETE FROM kv_state WHERE expires_at IS NOT NULL AND expires_at <= ?",
                (now,),
            )
            await db.execute(
                "INSERT OR REPLACE INTO kv_state (key, value, expires_at) VALUES (?, ?, ?)",
                (key, json.dumps(value), expires_at),
            )
            await db.commit()
        except (aiosqlite.Error, TypeError) as exc:
            msg = f"Failed to write state key {key}"
            raise StateStoreError(msg) from exc
        finally:
            await db.close()

    async def delete(self, key: str) -> bool:
        db = await self._connect()
        try:
            cursor = await db.execute("DELETE FROM kv_state WHERE key = ?", (key,))
            await db.commit()
            return cursor.rowcount > 0
        except aiosqlite.Error as exc:
            msg = f"Failed to delete state key {key}"
            raise StateStoreError(msg) from exc
        finally:
            await db.close()

    async def keys(self, prefix: str) -> list[str]:
        escaped = prefix.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
        db = await self._connect()
        try:
            cursor = await db.execute(
                "SELECT key FROM kv_state WHERE key LIKE ? ESCAPE '\\' "
                "AND (expires_at IS NULL OR expires_at > ?) ORDER BY key",
                (f"{escaped}%", time.time()),
            )
            rows = await cursor.fetchall()
            return [row[0] for row in rows]
        except aiosqlite.Error as exc:
            msg = f"Failed to list state keys under {prefix}"
            raise StateStoreError(msg) from exc
        finally:
            await db.close()

    # -- Append-only log -------------------------------------------------------

    async def append(self, key: str, value: dict[str, Any]) -> None:
        db = await self._connect()
        try:
            await db.execute(
                "INSERT INTO kv_log (key, value, created_at) VALUES (?, ?, ?)",
                (key, json.dumps(value), time.time()),
            )
            await db.commit()
        except (aiosqlite.Error, TypeError) as exc:
            msg = f"Failed to append to log {key}"
            raise StateStoreError(msg) from exc
        finally:
            await db.close()

    async def read_log(self, key: str, limit: int = 50) -> list[dict[str, Any]]:
        """Return the newest *limit* entries, most recent first."""
        db = await self._connect()
        try:
            cursor = await db.execute(
                "SELECT value FROM kv_log WHERE key = ? ORDER BY id DESC LIMIT ?",
                (key, limit),
            )
            rows = await cursor.fetchall()
            return [json.loads(row[0]) for row in rows]
        except (aiosqlite.Error, json.JSONDecodeError) as exc:
            msg = f"Failed to read log {key}"
            raise StateStoreError(msg) from exc
        finally:
            await db.close()
