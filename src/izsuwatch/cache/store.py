"""Time-bound cache over a key-value storage backend.

Every entry is stored as ``{"data": ..., "timestamp": <ms>}`` under an
``izsu_`` prefixed key. Validity is always judged against the TTL from the
*current* settings, so shortening the cache duration immediately expires
older entries. User settings live under their own key and are never touched
by TTL expiry, cleanup or ``clear_all``.

Storage errors never escape: reads degrade to a miss and writes to a no-op.
"""

import json
import logging
import time
from typing import Any, Callable, Optional

from pydantic import ValidationError

from izsuwatch.cache.models import CacheEntry, CacheStats, Settings
from izsuwatch.cache.storage import KeyValueStorage, MemoryStorage, StorageQuotaExceeded

logger = logging.getLogger(__name__)

CACHE_PREFIX = "izsu_"
SETTINGS_KEY = "izsu_settings"


class CacheStore:
    """TTL cache for raw endpoint payloads plus user settings.

    Example:
        >>> store = CacheStore()
        >>> store.set("barajdurum", [{"BarajKuyuAdi": "Tahtali"}])
        >>> store.get("barajdurum")
        [{'BarajKuyuAdi': 'Tahtali'}]
    """

    def __init__(
        self,
        storage: Optional[KeyValueStorage] = None,
        clock: Callable[[], float] = time.time,
    ):
        """Initialize the store.

        Args:
            storage: Backend to persist into (in-memory if omitted)
            clock: Returns the current time in seconds since the epoch
        """
        self.storage = storage if storage is not None else MemoryStorage()
        self._clock = clock

    def _now_ms(self) -> int:
        return int(self._clock() * 1000)

    @staticmethod
    def _storage_key(key: str) -> str:
        return CACHE_PREFIX + key

    def _dataset_keys(self) -> list[str]:
        return [
            k for k in self.storage.keys()
            if k.startswith(CACHE_PREFIX) and k != SETTINGS_KEY
        ]

    def _read_entry(self, storage_key: str) -> Optional[CacheEntry]:
        """Decode a stored entry; raises on corrupt content."""
        raw = self.storage.get(storage_key)
        if raw is None:
            return None
        decoded = json.loads(raw)
        return CacheEntry(
            key=storage_key[len(CACHE_PREFIX):],
            payload=decoded["data"],
            stored_at_ms=int(decoded["timestamp"]),
        )

    # -------------------------------------------------------------------------
    # Entry Operations
    # -------------------------------------------------------------------------

    def get(self, key: str) -> Any:
        """Get cached payload if present and fresh.

        Expired entries are removed on access.

        Args:
            key: Cache key without prefix, e.g. "barajdurum"

        Returns:
            Stored payload, or None when missing, expired or unreadable
        """
        storage_key = self._storage_key(key)
        try:
            entry = self._read_entry(storage_key)
            if entry is None:
                logger.debug(f"Cache miss: {key}")
                return None
            if not entry.is_valid(self._now_ms(), self.get_settings().ttl_ms):
                logger.debug(f"Cache expired: {key}")
                self.storage.remove(storage_key)
                return None
            logger.debug(f"Cache hit: {key}")
            return entry.payload
        except Exception as e:
            logger.warning(f"Cache read error for {key}: {e}")
            return None

    def set(self, key: str, value: Any) -> None:
        """Store payload with the current timestamp.

        On a quota failure the store removes expired and corrupt entries and
        retries once, then evicts the oldest dataset entries until the write
        fits. A write that still fails is logged and dropped.
        """
        storage_key = self._storage_key(key)
        try:
            serialized = json.dumps(
                {"data": value, "timestamp": self._now_ms()}, ensure_ascii=False
            )
        except (TypeError, ValueError) as e:
            logger.error(f"Cache write error for {key}: payload is not serializable ({e})")
            return

        try:
            self.storage.set(storage_key, serialized)
            return
        except StorageQuotaExceeded as e:
            logger.warning(f"Storage quota exceeded writing {key}: {e}")
        except Exception as e:
            logger.error(f"Cache write error for {key}: {e}")
            return

        try:
            self.clear_old_entries()
            self.storage.set(storage_key, serialized)
            return
        except StorageQuotaExceeded:
            logger.warning(f"Still over quota after cleanup, evicting oldest entries for {key}")
        except Exception as e:
            logger.error(f"Cache write failed after cleanup for {key}: {e}")
            return

        try:
            for victim in self._eviction_order(exclude=storage_key):
                self.storage.remove(victim)
                logger.info(f"Evicted cache entry {victim}")
                try:
                    self.storage.set(storage_key, serialized)
                    return
                except StorageQuotaExceeded:
                    continue
            logger.error(f"Cache write failed for {key}: payload does not fit in storage")
        except Exception as e:
            logger.error(f"Cache eviction failed for {key}: {e}")

    def _eviction_order(self, exclude: str) -> list[str]:
        """Dataset keys sorted oldest first."""
        stamped = []
        for storage_key in self._dataset_keys():
            if storage_key == exclude:
                continue
            try:
                entry = self._read_entry(storage_key)
                stamp = entry.stored_at_ms if entry else 0
            except Exception:
                stamp = 0
            stamped.append((stamp, storage_key))
        return [k for _, k in sorted(stamped)]

    def has(self, key: str) -> bool:
        """True if a fresh entry exists for ``key``."""
        return self.get(key) is not None

    def remove(self, key: str) -> None:
        try:
            self.storage.remove(self._storage_key(key))
        except Exception as e:
            logger.error(f"Cache remove error for {key}: {e}")

    def clear_all(self) -> None:
        """Remove every dataset entry. Settings are kept."""
        try:
            keys = self._dataset_keys()
            for storage_key in keys:
                self.storage.remove(storage_key)
            logger.info(f"Cleared {len(keys)} cache entries")
        except Exception as e:
            logger.error(f"Cache clear error: {e}")

    def clear_old_entries(self) -> int:
        """Remove expired and corrupt dataset entries.

        Returns:
            Number of entries removed
        """
        removed = 0
        try:
            now = self._now_ms()
            ttl_ms = self.get_settings().ttl_ms
            for storage_key in self._dataset_keys():
                try:
                    entry = self._read_entry(storage_key)
                    stale = entry is not None and not entry.is_valid(now, ttl_ms)
                except (ValueError, KeyError, TypeError):
                    stale = True
                if stale:
                    self.storage.remove(storage_key)
                    removed += 1
        except Exception as e:
            logger.error(f"Clear old entries error: {e}")
        if removed:
            logger.info(f"Removed {removed} expired or corrupt cache entries")
        return removed

    def get_timestamp(self, key: str) -> Optional[int]:
        """Write time of ``key`` in epoch milliseconds, regardless of TTL."""
        try:
            entry = self._read_entry(self._storage_key(key))
        except Exception:
            return None
        return entry.stored_at_ms if entry else None

    def get_age(self, key: str) -> Optional[int]:
        """Age of ``key`` in milliseconds, or None if absent."""
        stamp = self.get_timestamp(key)
        if stamp is None:
            return None
        return self._now_ms() - stamp

    # -------------------------------------------------------------------------
    # Settings
    # -------------------------------------------------------------------------

    def get_settings(self) -> Settings:
        """Stored settings merged over defaults; defaults if unset or corrupt."""
        try:
            raw = self.storage.get(SETTINGS_KEY)
        except Exception as e:
            logger.warning(f"Settings read error: {e}")
            return Settings()
        if raw is None:
            return Settings()
        try:
            return Settings.model_validate(json.loads(raw))
        except (ValueError, ValidationError) as e:
            logger.warning(f"Ignoring corrupt settings: {e}")
            return Settings()

    def save_settings(self, settings: Settings) -> None:
        try:
            self.storage.set(SETTINGS_KEY, settings.model_dump_json(by_alias=True))
            logger.info(f"Saved settings: ttl={settings.cache_duration_hours}h")
        except Exception as e:
            logger.error(f"Settings write error: {e}")

    # -------------------------------------------------------------------------
    # Stats
    # -------------------------------------------------------------------------

    def get_stats(self) -> CacheStats:
        """Summarize dataset entries without modifying anything."""
        total_size = 0
        count = 0
        stamps = []
        try:
            for storage_key in self._dataset_keys():
                raw = self.storage.get(storage_key)
                if raw is None:
                    continue
                count += 1
                total_size += len(raw.encode("utf-8"))
                try:
                    stamps.append(int(json.loads(raw)["timestamp"]))
                except (ValueError, KeyError, TypeError):
                    continue
        except Exception as e:
            logger.error(f"Cache stats error: {e}")

        return CacheStats(
            entry_count=count,
            total_size_bytes=total_size,
            oldest_timestamp=min(stamps) if stamps else None,
            newest_timestamp=max(stamps) if stamps else None,
            ttl_hours=self.get_settings().cache_duration_hours,
        )

    def close(self) -> None:
        """Release the storage backend."""
        self.storage.close()
