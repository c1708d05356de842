"""Result containers returned by the data service."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional

from izsuwatch.models import EndpointKey, normalize
from izsuwatch.sources.base import FetchErrorKind


@dataclass
class FetchResult:
    """Outcome for a single endpoint.

    ``data`` is always present: the fetched or cached payload, or the
    endpoint's fallback value when every source failed (``error`` is set then).

    Attributes:
        endpoint: Endpoint the result belongs to
        data: Raw payload in the primary API's native shape
        error: Displayable error message, None on success
        error_kind: Failure category when ``error`` is set
        source: Name of the fetcher that produced ``data``, or "cache"
    """

    endpoint: EndpointKey
    data: Any
    error: Optional[str] = None
    error_kind: Optional[FetchErrorKind] = None
    source: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def from_cache(self) -> bool:
        return self.source == "cache"

    def records(self) -> Any:
        """Typed records for this payload."""
        return normalize(self.endpoint, self.data)

    def to_dict(self) -> dict:
        return {
            "data": self.data,
            "error": self.error,
            "errorKind": self.error_kind.value if self.error_kind else None,
            "source": self.source,
        }


@dataclass
class AggregateResult:
    """One ``FetchResult`` per endpoint from a ``fetch_all`` call."""

    results: dict[EndpointKey, FetchResult] = field(default_factory=dict)
    fetched_at: Optional[datetime] = None

    def __getitem__(self, endpoint: EndpointKey) -> FetchResult:
        return self.results[endpoint]

    def __contains__(self, endpoint: EndpointKey) -> bool:
        return endpoint in self.results

    def __len__(self) -> int:
        return len(self.results)

    def data(self, endpoint: EndpointKey) -> Any:
        return self.results[endpoint].data

    def records(self, endpoint: EndpointKey) -> Any:
        """Normalized records for ``endpoint`` (see ``izsuwatch.models.normalize``)."""
        return self.results[endpoint].records()

    def errors(self) -> dict[EndpointKey, str]:
        """Endpoints that fell back, with their error message."""
        return {k: r.error for k, r in self.results.items() if r.error is not None}

    @property
    def ok(self) -> bool:
        return not self.errors()

    def to_dict(self) -> dict:
        """JSON-friendly view keyed by endpoint value."""
        return {
            "fetchedAt": self.fetched_at.isoformat() if self.fetched_at else None,
            "endpoints": {k.value: r.to_dict() for k, r in self.results.items()},
        }

    def __str__(self) -> str:
        failed = len(self.errors())
        cached = sum(1 for r in self.results.values() if r.from_cache)
        return (
            f"Fetch complete: {len(self.results) - failed}/{len(self.results)} endpoints "
            f"available, {cached} from cache, {failed} failed"
        )
