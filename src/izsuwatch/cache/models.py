"""Data models for the cache layer."""

from dataclasses import dataclass
from typing import Any, Optional

from pydantic import BaseModel, Field

DEFAULT_CACHE_DURATION_HOURS = 24
DEFAULT_THEME = "dark"
DEFAULT_ACCENT_COLOR = "cyan"


@dataclass
class CacheEntry:
    """A stored payload and the wall-clock time it was written."""

    key: str
    payload: Any
    stored_at_ms: int

    def age_ms(self, now_ms: int) -> int:
        return now_ms - self.stored_at_ms

    def is_valid(self, now_ms: int, ttl_ms: int) -> bool:
        """True while ``now - stored_at <= ttl``."""
        return self.age_ms(now_ms) <= ttl_ms


class Settings(BaseModel):
    """User preferences persisted next to the cache.

    Attributes:
        cache_duration_hours: TTL applied to every cache read (positive)
        theme: UI theme name
        accent_color: UI accent color name
    """

    cache_duration_hours: int = Field(
        default=DEFAULT_CACHE_DURATION_HOURS,
        gt=0,
        alias="cacheDurationHours",
        description="Cache time-to-live in hours",
    )
    theme: str = Field(default=DEFAULT_THEME, description="UI theme")
    accent_color: str = Field(
        default=DEFAULT_ACCENT_COLOR,
        alias="accentColor",
        description="UI accent color",
    )

    model_config = {"populate_by_name": True}

    @property
    def ttl_ms(self) -> int:
        return self.cache_duration_hours * 60 * 60 * 1000


@dataclass
class CacheStats:
    """Read-only summary of the dataset entries in a cache."""

    entry_count: int
    total_size_bytes: int
    oldest_timestamp: Optional[int]
    newest_timestamp: Optional[int]
    ttl_hours: int

    @property
    def total_size_kb(self) -> float:
        return round(self.total_size_bytes / 1024, 1)
