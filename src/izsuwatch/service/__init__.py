"""Data service: cached, multi-source retrieval of every endpoint."""

from izsuwatch.service.data_service import REQUIRED_ENDPOINTS, DataService, cache_key
from izsuwatch.service.results import AggregateResult, FetchResult
from izsuwatch.service.static import StaticDocuments

__all__ = [
    "AggregateResult",
    "DataService",
    "FetchResult",
    "REQUIRED_ENDPOINTS",
    "StaticDocuments",
    "cache_key",
]
