"""Runtime configuration for izsuwatch.

Defaults live as module constants so they can be imported directly (tests,
the collector job). ``ServiceConfig.from_env`` overlays ``IZSUWATCH_*``
environment variables on top of them.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

# Snapshot feed (pre-aggregated bundle of every endpoint, refreshed hourly)
SNAPSHOT_FEED_URL = (
    "https://gist.githubusercontent.com/aft/3277579cab49d20d3fd0a8705119db0c/raw/izsu-data.json"
)
SNAPSHOT_FRESHNESS_SECONDS = 300
SNAPSHOT_FAILURE_COOLDOWN_SECONDS = 30

# Primary open-data API
PRIMARY_API_BASE = "https://openapi.izmir.bel.tr/api/izsu"

# CORS relay templates, tried in order. ``{url}`` receives the quoted target.
RELAY_TEMPLATES = (
    "https://corsproxy.io/?{url}",
    "https://api.allorigins.win/raw?url={url}",
    "https://api.codetabs.com/v1/proxy?quest={url}",
)

# Secondary CKAN datastore
DATASTORE_URL = "https://acikveri.bizizmir.com/api/3/action/datastore_search"
DATASTORE_LIMIT = 1000

# Retry policy shared by the primary and datastore clients
MAX_RETRIES = 3
RETRY_BASE_DELAY = 1.0  # seconds
RETRY_MAX_DELAY = 10.0  # seconds
RETRY_MAX_JITTER = 0.5  # seconds

REQUEST_TIMEOUT = 30.0  # seconds

# Liters per day, used when no consumption figure is published
DEFAULT_DAILY_CONSUMPTION_LITERS = 967_500_000

ENV_PREFIX = "IZSUWATCH_"


def _env(name: str, default: Optional[str] = None) -> Optional[str]:
    return os.environ.get(f"{ENV_PREFIX}{name}", default)


def _env_bool(name: str, default: bool) -> bool:
    value = _env(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _env_mapping(name: str) -> dict[str, str]:
    """Parse ``key=value,key=value`` into a dict."""
    value = _env(name)
    if not value:
        return {}
    pairs = (item.split("=", 1) for item in value.split(",") if "=" in item)
    return {k.strip(): v.strip() for k, v in pairs if k.strip() and v.strip()}


@dataclass
class ServiceConfig:
    """Network and retry settings for the data service.

    Attributes:
        snapshot_url: URL of the aggregated snapshot feed
        primary_base_url: Base URL of the primary open-data API
        datastore_url: CKAN ``datastore_search`` action URL
        relay_templates: Ordered relay URL templates for restricted contexts
        use_relays: Route primary API calls through the relays
        max_retries: Attempts per source (per relay for the primary API)
        base_delay: Backoff base delay in seconds
        max_delay: Backoff cap in seconds
        timeout: Transport timeout in seconds
        snapshot_freshness: In-memory envelope validity in seconds
        snapshot_failure_cooldown: Seconds a failed envelope download is reused
        datastore_resources: Optional overrides of CKAN resource ids per endpoint
        cache_db_path: DuckDB file for persistent cache; None keeps it in memory
    """

    snapshot_url: str = SNAPSHOT_FEED_URL
    primary_base_url: str = PRIMARY_API_BASE
    datastore_url: str = DATASTORE_URL
    relay_templates: tuple[str, ...] = RELAY_TEMPLATES
    use_relays: bool = False
    max_retries: int = MAX_RETRIES
    base_delay: float = RETRY_BASE_DELAY
    max_delay: float = RETRY_MAX_DELAY
    timeout: float = REQUEST_TIMEOUT
    snapshot_freshness: float = SNAPSHOT_FRESHNESS_SECONDS
    snapshot_failure_cooldown: float = SNAPSHOT_FAILURE_COOLDOWN_SECONDS
    datastore_resources: dict[str, str] = field(default_factory=dict)
    cache_db_path: Optional[Path] = None

    @classmethod
    def from_env(cls) -> "ServiceConfig":
        """Build a config from ``IZSUWATCH_*`` environment variables."""
        relays = _env("RELAY_TEMPLATES")
        db_path = _env("CACHE_DB")
        return cls(
            snapshot_url=_env("SNAPSHOT_URL", SNAPSHOT_FEED_URL),
            primary_base_url=_env("PRIMARY_API_BASE", PRIMARY_API_BASE),
            datastore_url=_env("DATASTORE_URL", DATASTORE_URL),
            relay_templates=tuple(r.strip() for r in relays.split(",") if r.strip())
            if relays
            else RELAY_TEMPLATES,
            use_relays=_env_bool("USE_RELAYS", False),
            max_retries=int(_env("MAX_RETRIES", str(MAX_RETRIES))),
            base_delay=float(_env("RETRY_BASE_DELAY", str(RETRY_BASE_DELAY))),
            max_delay=float(_env("RETRY_MAX_DELAY", str(RETRY_MAX_DELAY))),
            timeout=float(_env("TIMEOUT", str(REQUEST_TIMEOUT))),
            datastore_resources=_env_mapping("DATASTORE_RESOURCES"),
            cache_db_path=Path(db_path) if db_path else None,
        )
