from __future__ import annotations

import asyncio
import sqlite3
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Iterable, List, Optional


class KeyValueStore(ABC):
    """Durable string key/value storage used by the offline weather cache."""

    @abstractmethod
    async def get(self, key: str) -> Optional[str]:
        ...

    @abstractmethod
    async def set(self, key: str, value: str) -> None:
        ...

    @abstractmethod
    async def remove(self, key: str) -> None:
        ...

    @abstractmethod
    async def multi_remove(self, keys: Iterable[str]) -> None:
        ...

    @abstractmethod
    async def get_all_keys(self) -> List[str]:
        ...


class SqliteKeyValueStore(KeyValueStore):
    def __init__(self, *, db_path: Path) -> None:
        self._db_path = db_path
        self._lock = asyncio.Lock()
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._initialize()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self._db_path, check_same_thread=False)
        conn.execute("PRAGMA journal_mode=WAL;")
        conn.execute("PRAGMA synchronous=NORMAL;")
        return conn

    def _initialize(self) -> None:
        with self._connect() as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS kv_store (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL
                );
                """
            )
            conn.commit()

    async def get(self, key: str) -> Optional[str]:
        async with self._lock:
            return await asyncio.to_thread(self._select, key)

    def _select(self, key: str) -> Optional[str]:
        with self._connect() as conn:
            row = conn.execute("SELECT value FROM kv_store WHERE key = ?", (key,)).fetchone()
        return row[0] if row is not None else None

    async def set(self, key: str, value: str) -> None:
        async with self._lock:
            await asyncio.to_thread(self._upsert, key, value)

    def _upsert(self, key: str, value: str) -> None:
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO kv_store (key, value) VALUES (?, ?)
                ON CONFLICT(key) DO UPDATE SET value=excluded.value
                """,
                (key, value),
            )
            conn.commit()

    async def remove(self, key: str) -> None:
        await self.multi_remove([key])

    async def multi_remove(self, keys: Iterable[str]) -> None:
        batch = [(key,) for key in keys]
        if not batch:
            return
        async with self._lock:
            await asyncio.to_thread(self._delete, batch)

    def _delete(self, batch: List[tuple[str]]) -> None:
        with self._connect() as conn:
            conn.executemany("DELETE FROM kv_store WHERE key = ?", batch)
            conn.commit()

    async def get_all_keys(self) -> List[str]:
        async with self._lock:
            return await asyncio.to_thread(self._keys)

    def _keys(self) -> List[str]:
        with self._connect() as conn:
            return [row[0] for row in conn.execute("SELECT key FROM kv_store ORDER BY key")]

    async def clear(self) -> None:
        async with self._lock:
            await asyncio.to_thread(self._truncate)

    def _truncate(self) -> None:
        with self._connect() as conn:
            conn.execute("DELETE FROM kv_store;")
            conn.commit()
