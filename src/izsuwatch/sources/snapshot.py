"""Client for the aggregated snapshot feed.

A scheduled job publishes every endpoint into a single JSON document:

    {"timestamp": "2026-10-19T08:00:00Z",
     "endpoints": {"barajdurum": [...], "gunluksuuretimi": {...}, ...}}

The envelope is downloaded at most once per freshness window, and concurrent
callers share a single in-flight download.
"""

import asyncio
import logging
import time
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Optional

import httpx

from izsuwatch.config import (
    REQUEST_TIMEOUT,
    SNAPSHOT_FAILURE_COOLDOWN_SECONDS,
    SNAPSHOT_FEED_URL,
    SNAPSHOT_FRESHNESS_SECONDS,
)
from izsuwatch.models import EndpointKey
from izsuwatch.sources.base import FetchError, FetchErrorKind, SourceFetcher, has_error_marker

logger = logging.getLogger(__name__)


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse an ISO-8601 timestamp, accepting a trailing 'Z'."""
    if not isinstance(value, str) or not value:
        return None
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        logger.warning(f"Unparseable snapshot timestamp: {value}")
        return None


@dataclass
class SnapshotEnvelope:
    """Downloaded snapshot document."""

    timestamp: Optional[datetime]
    endpoints: dict[str, Any] = field(default_factory=dict)
    fetched_at: float = 0.0

    @classmethod
    def from_json(cls, body: Any, fetched_at: float) -> "SnapshotEnvelope":
        if not isinstance(body, dict) or not isinstance(body.get("endpoints"), dict):
            raise FetchError(FetchErrorKind.PARSE, "Snapshot document has no endpoints map")
        return cls(
            timestamp=parse_timestamp(body.get("timestamp")),
            endpoints=body["endpoints"],
            fetched_at=fetched_at,
        )


class SnapshotFeedClient(SourceFetcher):
    """Fetch endpoint payloads out of the snapshot feed.

    Example:
        >>> async with httpx.AsyncClient() as http:
        ...     feed = SnapshotFeedClient(client=http)
        ...     dams = await feed.fetch(EndpointKey.DAM_STATUS)
    """

    name = "snapshot"

    def __init__(
        self,
        url: str = SNAPSHOT_FEED_URL,
        client: Optional[httpx.AsyncClient] = None,
        freshness: float = SNAPSHOT_FRESHNESS_SECONDS,
        failure_cooldown: float = SNAPSHOT_FAILURE_COOLDOWN_SECONDS,
        timeout: float = REQUEST_TIMEOUT,
        clock: Callable[[], float] = time.time,
    ):
        """Initialize the client.

        Args:
            url: Snapshot document URL
            client: Shared HTTP client (one is created and owned if omitted)
            freshness: Seconds a downloaded envelope is reused
            failure_cooldown: Seconds a failed download is reported without retrying
            timeout: Transport timeout for an owned client
            clock: Returns the current time in seconds
        """
        self.url = url
        self.freshness = freshness
        self.failure_cooldown = failure_cooldown
        self._client = client
        self._owns_client = client is None
        self._timeout = timeout
        self._clock = clock

        self._envelope: Optional[SnapshotEnvelope] = None
        self._pending: Optional[asyncio.Task] = None
        self._failure: Optional[FetchError] = None
        self._failed_at = 0.0

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self._timeout, follow_redirects=True)
        return self._client

    @property
    def envelope(self) -> Optional[SnapshotEnvelope]:
        """Last successfully downloaded envelope, fresh or not."""
        return self._envelope

    def invalidate(self) -> None:
        """Forget the cached envelope and any remembered failure."""
        self._envelope = None
        self._failure = None

    async def get_envelope(self) -> SnapshotEnvelope:
        """Return a fresh envelope, downloading it if needed.

        Raises:
            FetchError: If the download failed (now or within the cool-down)
        """
        now = self._clock()
        if self._envelope is not None and now - self._envelope.fetched_at < self.freshness:
            return self._envelope
        if self._failure is not None and now - self._failed_at < self.failure_cooldown:
            raise self._failure

        # Check-and-set without suspending so concurrent callers share one task
        if self._pending is None:
            self._pending = asyncio.ensure_future(self._download())
        return await asyncio.shield(self._pending)

    async def _download(self) -> SnapshotEnvelope:
        try:
            try:
                response = await self.client.get(
                    self.url, params={"t": int(self._clock() * 1000)}
                )
            except httpx.HTTPError as e:
                raise FetchError(FetchErrorKind.NETWORK, f"Snapshot download failed: {e}")

            if not response.is_success:
                raise FetchError.from_status(response.status_code, self.url)

            try:
                body = response.json()
            except ValueError as e:
                raise FetchError(FetchErrorKind.PARSE, f"Snapshot is not valid JSON: {e}")

            envelope = SnapshotEnvelope.from_json(body, fetched_at=self._clock())
            self._envelope = envelope
            self._failure = None
            logger.info(
                f"Snapshot loaded: {len(envelope.endpoints)} endpoints, "
                f"timestamp {envelope.timestamp}"
            )
            return envelope
        except FetchError as e:
            self._failure = e
            self._failed_at = self._clock()
            logger.warning(f"Snapshot feed unavailable: {e}")
            raise
        finally:
            self._pending = None

    async def fetch(self, endpoint: EndpointKey, params: Optional[dict] = None) -> Any:
        envelope = await self.get_envelope()
        payload = envelope.endpoints.get(endpoint.raw_name)
        if payload is None:
            raise FetchError(
                FetchErrorKind.NO_DATA, f"Snapshot has no {endpoint.raw_name} section"
            )
        if has_error_marker(payload):
            raise FetchError(
                FetchErrorKind.UPSTREAM_DEGRADED,
                f"Snapshot section {endpoint.raw_name} carries an error: "
                f"{payload.get('error') or payload.get('message')}",
            )
        return payload

    async def aclose(self) -> None:
        if self._owns_client and self._client is not None:
            await self._client.aclose()
            self._client = None
