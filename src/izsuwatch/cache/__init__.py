"""Local cache for upstream payloads and user settings.

Entries expire after the TTL configured in ``Settings``. Storage is in-memory
by default or a DuckDB file for persistence between runs:

    store = CacheStore(DuckDBStorage(get_data_path("cache")))
"""

from izsuwatch.cache.models import CacheEntry, CacheStats, Settings
from izsuwatch.cache.storage import (
    DuckDBStorage,
    KeyValueStorage,
    MemoryStorage,
    StorageQuotaExceeded,
)
from izsuwatch.cache.store import CACHE_PREFIX, SETTINGS_KEY, CacheStore

__all__ = [
    "CACHE_PREFIX",
    "CacheEntry",
    "CacheStats",
    "CacheStore",
    "DuckDBStorage",
    "KeyValueStorage",
    "MemoryStorage",
    "SETTINGS_KEY",
    "Settings",
    "StorageQuotaExceeded",
]
