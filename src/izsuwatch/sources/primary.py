"""Client for the primary open-data REST API.

Each endpoint lives at ``<base>/<raw_name>``. In restricted contexts (where
the API cannot be called directly) requests go through public relay
services; the ``RelayRing`` remembers which relay last worked so later calls
start there.
"""

import asyncio
import logging
import random
from typing import Any, Awaitable, Callable, Optional, Sequence
from urllib.parse import quote

import httpx

from izsuwatch.config import (
    MAX_RETRIES,
    PRIMARY_API_BASE,
    RELAY_TEMPLATES,
    REQUEST_TIMEOUT,
    RETRY_BASE_DELAY,
    RETRY_MAX_DELAY,
)
from izsuwatch.models import EndpointKey
from izsuwatch.sources.base import FetchError, FetchErrorKind, SourceFetcher, has_error_marker
from izsuwatch.sources.retry import retry_with_backoff

logger = logging.getLogger(__name__)

# Only published through the datastore
DATASTORE_ONLY = frozenset({
    EndpointKey.CONSUMPTION,
    EndpointKey.WATER_LOSSES,
    EndpointKey.TARIFFS,
})


class RelayRing:
    """Ordered relay templates with a rotating cursor.

    The cursor points at the relay to try first. A failure advances it only
    if it still points at the relay that failed, so concurrent failures do
    not skip over healthy relays.

    Example:
        >>> ring = RelayRing(["https://relay-a/?{url}", "https://relay-b/?u={url}"])
        >>> ring.order()
        [0, 1]
        >>> ring.mark_failed(0)
        >>> ring.order()
        [1, 0]
    """

    def __init__(self, templates: Sequence[str] = RELAY_TEMPLATES):
        if not templates:
            raise ValueError("RelayRing needs at least one relay template")
        self.templates = list(templates)
        self._cursor = 0

    def __len__(self) -> int:
        return len(self.templates)

    @property
    def cursor(self) -> int:
        return self._cursor

    def order(self) -> list[int]:
        """Relay indices starting at the cursor, wrapping around."""
        start = self._cursor
        n = len(self.templates)
        return [(start + i) % n for i in range(n)]

    def wrap(self, index: int, url: str) -> str:
        """Route ``url`` through the relay at ``index``."""
        return self.templates[index].format(url=quote(url, safe=""))

    def mark_failed(self, index: int) -> None:
        if self._cursor == index:
            self._cursor = (index + 1) % len(self.templates)
            logger.debug(f"Relay cursor advanced to {self._cursor}")


class PrimaryApiClient(SourceFetcher):
    """Fetch endpoints from the primary API, directly or through relays.

    Args:
        base_url: API base URL
        client: Shared HTTP client (one is created and owned if omitted)
        relays: Relay ring; None calls the API directly
        max_retries: Attempts per relay (or for the direct call)
        base_delay: Backoff base in seconds
        max_delay: Backoff cap in seconds
        sleep: Awaitable sleep, replaceable in tests
        rng: Jitter source returning values in [0, 1)
    """

    name = "primary"

    def __init__(
        self,
        base_url: str = PRIMARY_API_BASE,
        client: Optional[httpx.AsyncClient] = None,
        relays: Optional[RelayRing] = None,
        max_retries: int = MAX_RETRIES,
        base_delay: float = RETRY_BASE_DELAY,
        max_delay: float = RETRY_MAX_DELAY,
        timeout: float = REQUEST_TIMEOUT,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        rng: Callable[[], float] = random.random,
    ):
        self.base_url = base_url.rstrip("/")
        self.relays = relays
        self.max_retries = max_retries
        self.base_delay = base_delay
        self.max_delay = max_delay
        self._client = client
        self._owns_client = client is None
        self._timeout = timeout
        self._sleep = sleep
        self._rng = rng

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self._timeout, follow_redirects=True)
        return self._client

    def supports(self, endpoint: EndpointKey) -> bool:
        return endpoint not in DATASTORE_ONLY

    def endpoint_url(self, endpoint: EndpointKey, params: Optional[dict] = None) -> str:
        url = httpx.URL(f"{self.base_url}/{endpoint.raw_name}")
        if params:
            url = url.copy_merge_params(params)
        return str(url)

    async def _request(self, url: str) -> Any:
        try:
            response = await self.client.get(url)
        except httpx.HTTPError as e:
            raise FetchError(FetchErrorKind.NETWORK, f"Request to {url} failed: {e}")

        if not response.is_success:
            raise FetchError.from_status(response.status_code, url)

        try:
            body = response.json()
        except ValueError as e:
            raise FetchError(FetchErrorKind.PARSE, f"Invalid JSON from {url}: {e}")

        if has_error_marker(body):
            raise FetchError(
                FetchErrorKind.UPSTREAM_DEGRADED,
                f"Upstream error body from {url}: {body.get('message') or body.get('error')}",
                status=response.status_code,
            )
        return body

    async def _request_with_retry(self, url: str, description: str) -> Any:
        return await retry_with_backoff(
            lambda: self._request(url),
            max_retries=self.max_retries,
            description=description,
            base=self.base_delay,
            cap=self.max_delay,
            sleep=self._sleep,
            rng=self._rng,
        )

    async def fetch(self, endpoint: EndpointKey, params: Optional[dict] = None) -> Any:
        if not self.supports(endpoint):
            raise FetchError(
                FetchErrorKind.NO_DATA, f"{endpoint.value} is not published by the primary API"
            )

        url = self.endpoint_url(endpoint, params)
        if self.relays is None:
            body = await self._request_with_retry(url, f"Primary API {endpoint.raw_name}")
            logger.info(f"Fetched {endpoint.raw_name} from primary API")
            return body

        last_error: Optional[FetchError] = None
        for index in self.relays.order():
            target = self.relays.wrap(index, url)
            try:
                body = await self._request_with_retry(
                    target, f"Relay {index} for {endpoint.raw_name}"
                )
                logger.info(f"Fetched {endpoint.raw_name} through relay {index}")
                return body
            except FetchError as e:
                last_error = e
                self.relays.mark_failed(index)
                logger.warning(f"Relay {index} failed for {endpoint.raw_name}: {e}")
        raise last_error

    async def aclose(self) -> None:
        if self._owns_client and self._client is not None:
            await self._client.aclose()
            self._client = None
