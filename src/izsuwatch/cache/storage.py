"""Key-value storage backends used by the cache store.

Backends store opaque strings. Both can enforce a byte quota so the cache
store's eviction path can be exercised the way a browser's local storage
would reject writes.
"""

import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional

import duckdb

logger = logging.getLogger(__name__)


class StorageQuotaExceeded(Exception):
    """Raised when a write would push the storage past its quota."""


class KeyValueStorage(ABC):
    """Minimal string key-value store."""

    @abstractmethod
    def get(self, key: str) -> Optional[str]:
        """Return the stored string or None."""

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        """Store ``value``; raises StorageQuotaExceeded when full."""

    @abstractmethod
    def remove(self, key: str) -> None:
        """Delete ``key`` if present."""

    @abstractmethod
    def keys(self) -> list[str]:
        """All stored keys."""

    def size_of(self, key: str, value: str) -> int:
        return len(key.encode("utf-8")) + len(value.encode("utf-8"))

    def close(self) -> None:
        """Release resources held by the backend."""


class MemoryStorage(KeyValueStorage):
    """In-process storage with an optional byte quota.

    Example:
        >>> storage = MemoryStorage(quota_bytes=1024)
        >>> storage.set("a", "1")
        >>> storage.get("a")
        '1'
    """

    def __init__(self, quota_bytes: Optional[int] = None):
        self.quota_bytes = quota_bytes
        self._data: dict[str, str] = {}

    def used_bytes(self) -> int:
        return sum(self.size_of(k, v) for k, v in self._data.items())

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        if self.quota_bytes is not None:
            current = self._data.get(key)
            used = self.used_bytes()
            if current is not None:
                used -= self.size_of(key, current)
            if used + self.size_of(key, value) > self.quota_bytes:
                raise StorageQuotaExceeded(
                    f"Writing {key} needs {self.size_of(key, value)} bytes, "
                    f"{self.quota_bytes - used} available"
                )
        self._data[key] = value

    def remove(self, key: str) -> None:
        self._data.pop(key, None)

    def keys(self) -> list[str]:
        return list(self._data)


SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS kv_store (
    key VARCHAR PRIMARY KEY,
    value VARCHAR NOT NULL
)
"""


class DuckDBStorage(KeyValueStorage):
    """Persistent key-value table in a DuckDB file.

    Example:
        >>> storage = DuckDBStorage(Path("data/cache.duckdb"))
        >>> storage.set("izsu_barajdurum", "[]")
    """

    def __init__(self, db_path: Path, quota_bytes: Optional[int] = None):
        """Open (or create) the database.

        Args:
            db_path: Path to DuckDB file. Creates if doesn't exist.
            quota_bytes: Optional limit on the total stored size
        """
        self.db_path = db_path
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self.quota_bytes = quota_bytes

        self._conn = None
        self.conn.execute(SCHEMA_SQL)
        logger.info(f"Cache storage initialized at {self.db_path}")

    @property
    def conn(self) -> duckdb.DuckDBPyConnection:
        """Get database connection (lazy initialization)."""
        if self._conn is None:
            self._conn = duckdb.connect(str(self.db_path))
        return self._conn

    def close(self) -> None:
        """Close database connection."""
        if self._conn is not None:
            self._conn.close()
            self._conn = None

    def used_bytes(self, exclude_key: Optional[str] = None) -> int:
        result = self.conn.execute(
            """
            SELECT COALESCE(SUM(strlen(key) + strlen(value)), 0)
            FROM kv_store
            WHERE key IS DISTINCT FROM ?
            """,
            [exclude_key],
        ).fetchone()
        return int(result[0])

    def get(self, key: str) -> Optional[str]:
        result = self.conn.execute(
            "SELECT value FROM kv_store WHERE key = ?", [key]
        ).fetchone()
        return result[0] if result else None

    def set(self, key: str, value: str) -> None:
        if self.quota_bytes is not None:
            used = self.used_bytes(exclude_key=key)
            if used + self.size_of(key, value) > self.quota_bytes:
                raise StorageQuotaExceeded(
                    f"Writing {key} would exceed quota of {self.quota_bytes} bytes"
                )
        self.conn.execute(
            """
            INSERT INTO kv_store (key, value)
            VALUES (?, ?)
            ON CONFLICT (key)
            DO UPDATE SET value = EXCLUDED.value
            """,
            [key, value],
        )

    def remove(self, key: str) -> None:
        self.conn.execute("DELETE FROM kv_store WHERE key = ?", [key])

    def keys(self) -> list[str]:
        return [row[0] for row in self.conn.execute("SELECT key FROM kv_store").fetchall()]
