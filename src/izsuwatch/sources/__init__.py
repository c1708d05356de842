"""Upstream sources, tried in priority order: snapshot feed, primary API, datastore."""

from izsuwatch.sources.base import (
    FetchError,
    FetchErrorKind,
    SourceFetcher,
    has_error_marker,
    is_usable,
)
from izsuwatch.sources.datastore import DEFAULT_RESOURCES, DatastoreClient, DatastoreResource
from izsuwatch.sources.primary import PrimaryApiClient, RelayRing
from izsuwatch.sources.retry import backoff_delay, retry_with_backoff
from izsuwatch.sources.snapshot import SnapshotEnvelope, SnapshotFeedClient

__all__ = [
    "DEFAULT_RESOURCES",
    "DatastoreClient",
    "DatastoreResource",
    "FetchError",
    "FetchErrorKind",
    "PrimaryApiClient",
    "RelayRing",
    "SnapshotEnvelope",
    "SnapshotFeedClient",
    "SourceFetcher",
    "backoff_delay",
    "has_error_marker",
    "is_usable",
    "retry_with_backoff",
]
