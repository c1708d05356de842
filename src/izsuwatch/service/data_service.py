"""Per-endpoint retrieval across the source chain with caching.

For every endpoint the service first consults the cache (unless a refresh is
forced), then tries each fetcher in priority order until one returns a usable
payload. Usable payloads are cached; when every source fails the endpoint
gets its fallback value and an error message instead, and nothing is cached.

Example:
    >>> async with DataService.from_config(ServiceConfig.from_env()) as service:
    ...     result = await service.fetch_all()
    ...     dams = result.records(EndpointKey.DAM_STATUS)
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Optional, Sequence

import httpx

from izsuwatch.cache import CacheStore, DuckDBStorage
from izsuwatch.config import ServiceConfig
from izsuwatch.models import EndpointKey, fallback_payload
from izsuwatch.service.results import AggregateResult, FetchResult
from izsuwatch.sources import (
    DatastoreClient,
    FetchError,
    FetchErrorKind,
    PrimaryApiClient,
    RelayRing,
    SnapshotFeedClient,
    SourceFetcher,
    is_usable,
)
from izsuwatch.utils.text import to_int

logger = logging.getLogger(__name__)

# Endpoints the dashboard cannot render without
REQUIRED_ENDPOINTS = (
    EndpointKey.OUTAGES,
    EndpointKey.DAMS_AND_WELLS,
    EndpointKey.DAM_STATUS,
    EndpointKey.DAILY_PRODUCTION,
    EndpointKey.PRODUCTION_DISTRIBUTION,
    EndpointKey.WEEKLY_ANALYSIS,
    EndpointKey.DISTRICT_ANALYSIS,
    EndpointKey.DAM_QUALITY,
)


def cache_key(endpoint: EndpointKey, year: Optional[int] = None) -> str:
    """Cache slot for an endpoint, suffixed with the year filter if any."""
    if year is not None:
        return f"{endpoint.raw_name}_{year}"
    return endpoint.raw_name


def _filter_year(payload: Any, year: int) -> Any:
    if not isinstance(payload, list):
        return payload
    return [r for r in payload if isinstance(r, dict) and to_int(r.get("Yil")) == year]


def _ms_to_datetime(ms: int) -> datetime:
    return datetime.fromtimestamp(ms / 1000, tz=timezone.utc)


class DataService:
    """Fetch, cache and fan out all endpoints.

    Args:
        cache: Cache store for raw payloads (in-memory if omitted)
        fetchers: Sources in priority order
    """

    def __init__(
        self,
        cache: Optional[CacheStore] = None,
        fetchers: Optional[Sequence[SourceFetcher]] = None,
    ):
        self.cache = cache if cache is not None else CacheStore()
        self.fetchers = list(fetchers) if fetchers is not None else []
        self.snapshot = next(
            (f for f in self.fetchers if isinstance(f, SnapshotFeedClient)), None
        )

    @classmethod
    def from_config(
        cls,
        config: ServiceConfig,
        client: Optional[httpx.AsyncClient] = None,
        cache: Optional[CacheStore] = None,
    ) -> "DataService":
        """Build the standard snapshot, primary, datastore chain."""
        if cache is None:
            storage = DuckDBStorage(config.cache_db_path) if config.cache_db_path else None
            cache = CacheStore(storage)
        relays = RelayRing(config.relay_templates) if config.use_relays else None
        fetchers = [
            SnapshotFeedClient(
                url=config.snapshot_url,
                client=client,
                freshness=config.snapshot_freshness,
                failure_cooldown=config.snapshot_failure_cooldown,
                timeout=config.timeout,
            ),
            PrimaryApiClient(
                base_url=config.primary_base_url,
                client=client,
                relays=relays,
                max_retries=config.max_retries,
                base_delay=config.base_delay,
                max_delay=config.max_delay,
                timeout=config.timeout,
            ),
            DatastoreClient(
                url=config.datastore_url,
                client=client,
                resource_ids=config.datastore_resources,
                max_retries=config.max_retries,
                base_delay=config.base_delay,
                max_delay=config.max_delay,
                timeout=config.timeout,
            ),
        ]
        return cls(cache=cache, fetchers=fetchers)

    async def aclose(self) -> None:
        for fetcher in self.fetchers:
            await fetcher.aclose()

    async def __aenter__(self) -> "DataService":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    # -------------------------------------------------------------------------
    # Single endpoint
    # -------------------------------------------------------------------------

    async def _run_chain(
        self, endpoint: EndpointKey, params: Optional[dict], year: Optional[int]
    ) -> tuple[Any, Optional[str], list[FetchError]]:
        errors: list[FetchError] = []
        for fetcher in self.fetchers:
            try:
                payload = await fetcher.fetch(endpoint, params)
            except FetchError as e:
                logger.warning(f"{fetcher.name} failed for {endpoint.value}: {e}")
                errors.append(e)
                continue

            if year is not None:
                payload = _filter_year(payload, year)
            if is_usable(payload):
                return payload, fetcher.name, errors

            logger.info(f"{fetcher.name} returned no usable data for {endpoint.value}")
            errors.append(
                FetchError(FetchErrorKind.NO_DATA, f"{fetcher.name} returned no data")
            )
        return None, None, errors

    async def get(
        self,
        endpoint: EndpointKey,
        force_refresh: bool = False,
        year: Optional[int] = None,
    ) -> FetchResult:
        """Get one endpoint, from cache when fresh.

        Args:
            endpoint: Endpoint to fetch
            force_refresh: Skip the cache read
            year: Keep only records of this year (production distribution)

        Returns:
            FetchResult with data and, if every source failed, an error
        """
        key = cache_key(endpoint, year)
        if not force_refresh:
            cached = self.cache.get(key)
            if cached is not None:
                return FetchResult(endpoint=endpoint, data=cached, source="cache")

        params = {"Yil": year} if year is not None else None
        payload, source, errors = await self._run_chain(endpoint, params, year)
        if source is not None:
            self.cache.set(key, payload)
            return FetchResult(endpoint=endpoint, data=payload, source=source)

        error = self._pick_error(errors)
        logger.error(f"All sources failed for {endpoint.value}: {error}")
        return FetchResult(
            endpoint=endpoint,
            data=fallback_payload(endpoint),
            error=error.display_message,
            error_kind=error.kind,
        )

    @staticmethod
    def _pick_error(errors: list[FetchError]) -> FetchError:
        """First real failure; "no data" only when nothing else went wrong."""
        for error in errors:
            if error.kind is not FetchErrorKind.NO_DATA:
                return error
        if errors:
            return errors[-1]
        return FetchError(FetchErrorKind.NO_DATA, "No sources configured")

    async def get_outages(self, force_refresh: bool = False) -> FetchResult:
        return await self.get(EndpointKey.OUTAGES, force_refresh)

    async def get_dams_and_wells(self, force_refresh: bool = False) -> FetchResult:
        return await self.get(EndpointKey.DAMS_AND_WELLS, force_refresh)

    async def get_dam_status(self, force_refresh: bool = False) -> FetchResult:
        return await self.get(EndpointKey.DAM_STATUS, force_refresh)

    async def get_daily_production(self, force_refresh: bool = False) -> FetchResult:
        return await self.get(EndpointKey.DAILY_PRODUCTION, force_refresh)

    async def get_production_distribution(
        self, year: Optional[int] = None, force_refresh: bool = False
    ) -> FetchResult:
        return await self.get(EndpointKey.PRODUCTION_DISTRIBUTION, force_refresh, year=year)

    async def get_weekly_analysis(self, force_refresh: bool = False) -> FetchResult:
        return await self.get(EndpointKey.WEEKLY_ANALYSIS, force_refresh)

    async def get_district_analysis(self, force_refresh: bool = False) -> FetchResult:
        return await self.get(EndpointKey.DISTRICT_ANALYSIS, force_refresh)

    async def get_dam_quality(self, force_refresh: bool = False) -> FetchResult:
        return await self.get(EndpointKey.DAM_QUALITY, force_refresh)

    async def get_consumption(self, force_refresh: bool = False) -> FetchResult:
        return await self.get(EndpointKey.CONSUMPTION, force_refresh)

    async def get_water_losses(self, force_refresh: bool = False) -> FetchResult:
        return await self.get(EndpointKey.WATER_LOSSES, force_refresh)

    async def get_tariffs(self, force_refresh: bool = False) -> FetchResult:
        return await self.get(EndpointKey.TARIFFS, force_refresh)

    # -------------------------------------------------------------------------
    # Fan-out
    # -------------------------------------------------------------------------

    async def fetch_all(self, force_refresh: bool = False) -> AggregateResult:
        """Fetch every endpoint concurrently.

        A failing endpoint never affects the others: each slot carries its own
        data (fresh, cached or fallback) and error. This call itself does not
        raise for endpoint failures.
        """
        endpoints = list(EndpointKey)
        outcomes = await asyncio.gather(
            *(self.get(e, force_refresh) for e in endpoints),
            return_exceptions=True,
        )

        aggregate = AggregateResult(fetched_at=datetime.now(timezone.utc))
        for endpoint, outcome in zip(endpoints, outcomes):
            if isinstance(outcome, BaseException):
                logger.error(f"Unexpected error fetching {endpoint.value}: {outcome!r}")
                outcome = FetchResult(
                    endpoint=endpoint,
                    data=fallback_payload(endpoint),
                    error=f"Unexpected error: {outcome}",
                )
            aggregate.results[endpoint] = outcome

        logger.info(str(aggregate))
        return aggregate

    # -------------------------------------------------------------------------
    # Freshness
    # -------------------------------------------------------------------------

    def get_last_update_time(self) -> Optional[datetime]:
        """Latest of the snapshot timestamp and the newest cache write."""
        candidates = []
        envelope = self.snapshot.envelope if self.snapshot else None
        if envelope is not None and envelope.timestamp is not None:
            stamp = envelope.timestamp
            if stamp.tzinfo is None:
                stamp = stamp.replace(tzinfo=timezone.utc)
            candidates.append(stamp)

        for endpoint in EndpointKey:
            ms = self.cache.get_timestamp(cache_key(endpoint))
            if ms is not None:
                candidates.append(_ms_to_datetime(ms))

        return max(candidates) if candidates else None

    def needs_refresh(self) -> bool:
        """True unless every required endpoint has a fresh cache entry."""
        return not all(self.cache.has(cache_key(e)) for e in REQUIRED_ENDPOINTS)
