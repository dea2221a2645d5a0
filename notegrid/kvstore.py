"""Key-value persistence backends for notegrid.

The record store treats persistence as an opaque get/set string store;
anything implementing ``KeyValueStore`` can back it.
"""

import sqlite3
from pathlib import Path
from typing import Protocol


class KeyValueError(Exception):
    """Base exception for key-value backend errors."""
    pass


class KeyValueLockedError(KeyValueError):
    """Backing database is locked by another process."""
    pass


class KeyValueStore(Protocol):
    def get(self, key: str) -> str | None: ...

    def set(self, key: str, value: str) -> None: ...

    def remove(self, key: str) -> None: ...


class MemoryKeyValueStore:
    """Dict-backed store, used by tests and embedders."""

    def __init__(self, initial: dict[str, str] | None = None):
        self.data = dict(initial or {})

    def get(self, key: str) -> str | None:
        return self.data.get(key)

    def set(self, key: str, value: str) -> None:
        if not isinstance(value, str):
            raise KeyValueError(f"Values must be strings, got {type(value).__name__}")
        self.data[key] = value

    def remove(self, key: str) -> None:
        self.data.pop(key, None)


def _translate(e: sqlite3.Error, path: Path) -> KeyValueError:
    error_msg = str(e).lower()
    if "database is locked" in error_msg:
        return KeyValueLockedError(
            f"Notes database {path} is locked by another process. Try again."
        )
    if "unable to open database file" in error_msg:
        return KeyValueError(f"Cannot open notes database at {path}")
    return KeyValueError(f"Database error: {e}")


class SQLiteKeyValueStore:
    """Single-table SQLite store; one row per key."""

    def __init__(self, path: Path | str, timeout: float = 5.0):
        self.path = Path(path)
        self.timeout = timeout
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._run(
            "CREATE TABLE IF NOT EXISTS kv ("
            "key TEXT PRIMARY KEY, value TEXT NOT NULL)"
        )

    def _connect(self) -> sqlite3.Connection:
        try:
            return sqlite3.connect(self.path, timeout=self.timeout)
        except sqlite3.Error as e:
            raise _translate(e, self.path) from e

    def _run(self, sql: str, params: tuple = ()) -> list[tuple]:
        conn = self._connect()
        try:
            with conn:
                rows = conn.execute(sql, params).fetchall()
            return rows
        except sqlite3.Error as e:
            raise _translate(e, self.path) from e
        finally:
            conn.close()

    def get(self, key: str) -> str | None:
        rows = self._run("SELECT value FROM kv WHERE key = ?", (key,))
        if rows:
            return rows[0][0]
        return None

    def set(self, key: str, value: str) -> None:
        self._run(
            "INSERT INTO kv (key, value) VALUES (?, ?) "
            "ON CONFLICT(key) DO UPDATE SET value = excluded.value",
            (key, value),
        )

    def remove(self, key: str) -> None:
        self._run("DELETE FROM kv WHERE key = ?", (key,))
