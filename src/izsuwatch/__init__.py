"""izsuwatch: Izmir water authority open data, cached and summarized.

Fetches dam levels, production, outages and water-quality analyses from the
snapshot feed, the primary API or the municipal datastore, caches them
locally and derives year-over-year, quality and depletion metrics.
"""

__version__ = "0.1.0"

from izsuwatch.cache import CacheStore, Settings
from izsuwatch.config import ServiceConfig
from izsuwatch.models import EndpointKey
from izsuwatch.service import AggregateResult, DataService, FetchResult

__all__ = [
    "AggregateResult",
    "CacheStore",
    "DataService",
    "EndpointKey",
    "FetchResult",
    "ServiceConfig",
    "Settings",
]
