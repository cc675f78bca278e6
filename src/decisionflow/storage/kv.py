"""Opaque key-value substrate backing flows, execution state and audit logs."""

from __future__ import annotations

import asyncio
import sqlite3
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import UTC, datetime
from pathlib import Path
from typing import Any, Protocol

import orjson

from decisionflow.errors import DecisionFlowError, StorageError


class KeyValueStore(Protocol):
    """Async JSON-document store keyed by string."""

    async def get(self, key: str) -> Any | None:
        """Return the stored document or None."""

    async def set(self, key: str, value: Any) -> None:
        """Create or replace the document at ``key``."""

    async def delete(self, key: str) -> None:
        """Remove ``key``; missing keys are ignored."""

    async def keys(self, prefix: str = "") -> list[str]:
        """Return stored keys starting with ``prefix`` in sorted order."""


class InMemoryKeyValueStore:
    """Process-local store; documents are serialized so callers never share references."""

    def __init__(self) -> None:
        self._data: dict[str, bytes] = {}

    async def get(self, key: str) -> Any | None:
        raw = self._data.get(key)
        return None if raw is None else orjson.loads(raw)

    async def set(self, key: str, value: Any) -> None:
        self._data[key] = orjson.dumps(value)

    async def delete(self, key: str) -> None:
        self._data.pop(key, None)

    async def keys(self, prefix: str = "") -> list[str]:
        return sorted(key for key in self._data if key.startswith(prefix))


class SQLiteKeyValueStore:
    """SQLite-backed document store."""

    def __init__(self, db_path: Path) -> None:
        self.db_path = db_path
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_schema()

    def _init_schema(self) -> None:
        with sqlite3.connect(self.db_path) as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS kv_entries (
                    key TEXT PRIMARY KEY,
                    payload_json TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                )
                """
            )

    async def get(self, key: str) -> Any | None:
        return await asyncio.to_thread(self._get, key)

    async def set(self, key: str, value: Any) -> None:
        await asyncio.to_thread(self._set, key, value)

    async def delete(self, key: str) -> None:
        await asyncio.to_thread(self._delete, key)

    async def keys(self, prefix: str = "") -> list[str]:
        return await asyncio.to_thread(self._keys, prefix)

    def _get(self, key: str) -> Any | None:
        with sqlite3.connect(self.db_path) as conn:
            row = conn.execute(
                "SELECT payload_json FROM kv_entries WHERE key = ?",
                (key,),
            ).fetchone()
        return None if row is None else orjson.loads(row[0])

    def _set(self, key: str, value: Any) -> None:
        payload_json = orjson.dumps(value).decode("utf-8")
        with sqlite3.connect(self.db_path) as conn:
            conn.execute(
                """
                INSERT INTO kv_entries (key, payload_json, updated_at)
                VALUES (?, ?, ?)
                ON CONFLICT(key) DO UPDATE SET
                    payload_json=excluded.payload_json,
                    updated_at=excluded.updated_at
                """,
                (key, payload_json, datetime.now(UTC).isoformat()),
            )

    def _delete(self, key: str) -> None:
        with sqlite3.connect(self.db_path) as conn:
            conn.execute("DELETE FROM kv_entries WHERE key = ?", (key,))

    def _keys(self, prefix: str) -> list[str]:
        with sqlite3.connect(self.db_path) as conn:
            rows = conn.execute(
                """
                SELECT key FROM kv_entries
                WHERE substr(key, 1, ?) = ?
                ORDER BY key ASC
                """,
                (len(prefix), prefix),
            ).fetchall()
        return [row[0] for row in rows]


@contextmanager
def storage_errors(operation: str) -> Iterator[None]:
    """Re-raise substrate failures as ``StorageError``."""
    try:
        yield
    except DecisionFlowError:
        raise
    except Exception as exc:  # noqa: BLE001
        raise StorageError(f"{operation} failed: {exc}") from exc
