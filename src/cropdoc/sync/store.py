"""Key-value persistence for the offline queue.

The queue is kept as a single list of strings under one key, the same
shape as a mobile preferences store. Any mutation rewrites the whole list.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Protocol

import aiosqlite

from cropdoc.errors import StorageUnavailableError


class KeyValueStore(Protocol):
    """String-keyed store holding lists of strings."""

    async def open(self) -> None: ...

    async def close(self) -> None: ...

    async def get_string_list(self, key: str) -> list[str] | None: ...

    async def set_string_list(self, key: str, values: list[str]) -> None: ...

    async def remove(self, key: str) -> None: ...


class SqliteKeyValueStore:
    """aiosqlite-backed key-value store.

    Each key maps to one row whose value is a JSON array of strings. The
    store persists across process restarts.
    """

    def __init__(self, db_path: Path) -> None:
        """Initialize the store.

        Args:
            db_path: Path to the SQLite database file
        """
        self.db_path = Path(db_path)
        self._conn: aiosqlite.Connection | None = None

    async def open(self) -> None:
        """Open the database and create the table if it doesn't exist."""
        if self._conn is not None:
            return
        conn: aiosqlite.Connection | None = None
        try:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
            conn = await aiosqlite.connect(str(self.db_path))
            await conn.execute(
                """
                CREATE TABLE IF NOT EXISTS kv_store (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL
                )
                """
            )
            await conn.commit()
        except (aiosqlite.Error, OSError) as e:
            if conn is not None:
                await conn.close()
            raise StorageUnavailableError(f"Cannot open {self.db_path}: {e}") from e
        self._conn = conn

    async def close(self) -> None:
        """Close the database connection."""
        if self._conn is not None:
            await self._conn.close()
            self._conn = None

    def _connection(self) -> aiosqlite.Connection:
        if self._conn is None:
            raise StorageUnavailableError("Store is not open")
        return self._conn

    async def get_string_list(self, key: str) -> list[str] | None:
        conn = self._connection()
        try:
            cur = await conn.execute("SELECT value FROM kv_store WHERE key = ?", (key,))
            row = await cur.fetchone()
        except aiosqlite.Error as e:
            raise StorageUnavailableError(f"Cannot read {key}: {e}") from e

        if row is None:
            return None
        try:
            values = json.loads(row[0])
        except ValueError as e:
            raise StorageUnavailableError(f"Stored value for {key} is corrupt: {e}") from e
        if not isinstance(values, list) or not all(isinstance(v, str) for v in values):
            raise StorageUnavailableError(f"Stored value for {key} is not a string list")
        return values

    async def set_string_list(self, key: str, values: list[str]) -> None:
        conn = self._connection()
        try:
            await conn.execute(
                """
                INSERT INTO kv_store (key, value) VALUES (?, ?)
                ON CONFLICT(key) DO UPDATE SET value = excluded.value
                """,
                (key, json.dumps(list(values))),
            )
            await conn.commit()
        except aiosqlite.Error as e:
            raise StorageUnavailableError(f"Cannot write {key}: {e}") from e

    async def remove(self, key: str) -> None:
        conn = self._connection()
        try:
            await conn.execute("DELETE FROM kv_store WHERE key = ?", (key,))
            await conn.commit()
        except aiosqlite.Error as e:
            raise StorageUnavailableError(f"Cannot remove {key}: {e}") from e


class MemoryKeyValueStore:
    """In-process store for tests and hosts without a filesystem."""

    def __init__(self, initial: dict[str, list[str]] | None = None) -> None:
        self._data: dict[str, list[str]] = {
            k: list(v) for k, v in (initial or {}).items()
        }
        self.is_open = False

    async def open(self) -> None:
        self.is_open = True

    async def close(self) -> None:
        self.is_open = False

    async def get_string_list(self, key: str) -> list[str] | None:
        values = self._data.get(key)
        return list(values) if values is not None else None

    async def set_string_list(self, key: str, values: list[str]) -> None:
        self._data[key] = list(values)

    async def remove(self, key: str) -> None:
        self._data.pop(key, None)
