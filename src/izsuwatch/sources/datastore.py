"""Client for the municipal CKAN datastore.

The datastore publishes a subset of the datasets with upper-case column
names (``BARAJ_ADI``, ``DOLULUK_ORANI``...). Records are renamed and coerced
into the primary API's field names so everything downstream sees a single
shape.
"""

import asyncio
import logging
import random
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Optional

import httpx

from izsuwatch.config import (
    DATASTORE_LIMIT,
    DATASTORE_URL,
    MAX_RETRIES,
    REQUEST_TIMEOUT,
    RETRY_BASE_DELAY,
    RETRY_MAX_DELAY,
)
from izsuwatch.models import EndpointKey, SourceKind, empty_payload, infer_source_kind
from izsuwatch.sources.base import FetchError, FetchErrorKind, SourceFetcher
from izsuwatch.sources.retry import retry_with_backoff
from izsuwatch.utils.text import to_int, to_number

logger = logging.getLogger(__name__)

TEXT = "text"
NUMBER = "number"
INTEGER = "int"


@dataclass
class DatastoreResource:
    """A CKAN resource and how its columns map onto native field names.

    Attributes:
        resource_id: CKAN resource id
        fields: CKAN column -> (native field, coercion)
        kind_field: Native field that receives an inferred "Baraj"/"Kuyu" label
        kind_from: Native fields whose text decides the inferred label
    """

    resource_id: str
    fields: dict[str, tuple[str, str]] = field(default_factory=dict)
    kind_field: Optional[str] = None
    kind_from: tuple[str, ...] = ()

    def native_filters(self, params: Optional[dict]) -> dict:
        """Translate native filter names (``Yil``) into CKAN columns (``YIL``)."""
        if not params:
            return {}
        reverse = {native: column for column, (native, _) in self.fields.items()}
        return {reverse.get(k, k): v for k, v in params.items()}

    def transform(self, record: dict) -> dict:
        out: dict[str, Any] = {}
        for column, (native, coercion) in self.fields.items():
            value = record.get(column)
            if coercion == NUMBER:
                out[native] = to_number(value)
            elif coercion == INTEGER:
                out[native] = to_int(value)
            else:
                out[native] = str(value).strip() if value is not None else None
        if self.kind_field and not out.get(self.kind_field):
            kind = infer_source_kind(*(out.get(f) for f in self.kind_from))
            out[self.kind_field] = "Baraj" if kind is SourceKind.DAM else "Kuyu"
        return out


# Resource ids are the portal slugs at the time of writing. Replace them with
# ServiceConfig.datastore_resources (IZSUWATCH_DATASTORE_RESOURCES) when the
# portal publishes different ids.
DEFAULT_RESOURCES: dict[EndpointKey, DatastoreResource] = {
    EndpointKey.DAM_STATUS: DatastoreResource(
        resource_id="izsu-baraj-doluluk-oranlari",
        fields={
            "BARAJ_ADI": ("BarajKuyuAdi", TEXT),
            "SU_DURUMU": ("SuDurumu", NUMBER),
            "MINIMUM_SU_KAPASITESI": ("MinimumSuKapasitesi", NUMBER),
            "MAKSIMUM_SU_KAPASITESI": ("MaksimumSuKapasitesi", NUMBER),
            "DOLULUK_ORANI": ("DolulukOrani", NUMBER),
            "TARIH": ("DurumTarihi", TEXT),
        },
    ),
    EndpointKey.PRODUCTION_DISTRIBUTION: DatastoreResource(
        resource_id="izsu-su-uretiminin-kaynaklara-gore-dagilimi",
        fields={
            "YIL": ("Yil", INTEGER),
            "AY": ("Ay", INTEGER),
            "URETIM_KAYNAGI": ("UretimKaynagi", TEXT),
            "URETIM_MIKTARI": ("UretimMiktari", NUMBER),
        },
        kind_field="KaynakTipi",
        kind_from=("UretimKaynagi",),
    ),
    EndpointKey.DAMS_AND_WELLS: DatastoreResource(
        resource_id="izsu-baraj-ve-kuyu-konumlari",
        fields={
            "ADI": ("Adi", TEXT),
            "TURU": ("TurAdi", TEXT),
            "ENLEM": ("Enlem", NUMBER),
            "BOYLAM": ("Boylam", NUMBER),
        },
        kind_field="TurAdi",
        kind_from=("Adi",),
    ),
    EndpointKey.CONSUMPTION: DatastoreResource(
        resource_id="izsu-ilce-bazinda-su-tuketimi",
        fields={
            "YIL": ("Yil", INTEGER),
            "AY": ("Ay", INTEGER),
            "ILCE": ("IlceAdi", TEXT),
            "ABONE_GRUBU": ("AboneGrubu", TEXT),
            "TUKETIM_MIKTARI": ("TuketimMiktari", NUMBER),
        },
    ),
    EndpointKey.WATER_LOSSES: DatastoreResource(
        resource_id="izsu-su-kayip-kacak-oranlari",
        fields={
            "YIL": ("Yil", INTEGER),
            "SISTEME_GIREN_SU": ("SistemeGirenSu", NUMBER),
            "FATURALANDIRILAN_SU": ("FaturalandirilanSu", NUMBER),
            "KAYIP_ORANI": ("KayipOrani", NUMBER),
        },
    ),
    EndpointKey.TARIFFS: DatastoreResource(
        resource_id="izsu-su-tarifeleri",
        fields={
            "TARIFE_GRUBU": ("TarifeGrubu", TEXT),
            "KADEME": ("Kademe", TEXT),
            "BIRIM_FIYAT": ("BirimFiyat", NUMBER),
        },
    ),
}


class DatastoreClient(SourceFetcher):
    """Fetch and transform records from the CKAN ``datastore_search`` action.

    Example:
        >>> store = DatastoreClient(resource_ids={"dam-status": "abc-123"})
        >>> rows = await store.fetch(EndpointKey.DAM_STATUS)
        >>> rows[0]["BarajKuyuAdi"]
        'Tahtali'
    """

    name = "datastore"

    def __init__(
        self,
        url: str = DATASTORE_URL,
        client: Optional[httpx.AsyncClient] = None,
        resource_ids: Optional[dict[str, str]] = None,
        limit: int = DATASTORE_LIMIT,
        max_retries: int = MAX_RETRIES,
        base_delay: float = RETRY_BASE_DELAY,
        max_delay: float = RETRY_MAX_DELAY,
        timeout: float = REQUEST_TIMEOUT,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        rng: Callable[[], float] = random.random,
    ):
        """Initialize the client.

        Args:
            url: ``datastore_search`` action URL
            client: Shared HTTP client (one is created and owned if omitted)
            resource_ids: Overrides of resource ids keyed by endpoint value
            limit: Maximum records per request
            max_retries: Attempts per request
        """
        self.url = url
        self.limit = limit
        self.max_retries = max_retries
        self.base_delay = base_delay
        self.max_delay = max_delay
        self._client = client
        self._owns_client = client is None
        self._timeout = timeout
        self._sleep = sleep
        self._rng = rng

        self.resources = dict(DEFAULT_RESOURCES)
        for key, resource_id in (resource_ids or {}).items():
            endpoint = EndpointKey(key)
            if endpoint not in self.resources:
                raise ValueError(f"No datastore column mapping for {key}")
            base = self.resources[endpoint]
            self.resources[endpoint] = DatastoreResource(
                resource_id=resource_id,
                fields=base.fields,
                kind_field=base.kind_field,
                kind_from=base.kind_from,
            )

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self._timeout, follow_redirects=True)
        return self._client

    async def _search(self, resource: DatastoreResource, params: Optional[dict]) -> list[dict]:
        payload = {
            "resource_id": resource.resource_id,
            "limit": self.limit,
            "filters": resource.native_filters(params),
        }
        try:
            response = await self.client.post(self.url, json=payload)
        except httpx.HTTPError as e:
            raise FetchError(FetchErrorKind.NETWORK, f"Datastore request failed: {e}")

        if not response.is_success:
            raise FetchError.from_status(response.status_code, self.url)

        try:
            body = response.json()
        except ValueError as e:
            raise FetchError(FetchErrorKind.PARSE, f"Invalid JSON from datastore: {e}")

        if not isinstance(body, dict) or not body.get("success"):
            detail = body.get("error") if isinstance(body, dict) else body
            raise FetchError(
                FetchErrorKind.UPSTREAM_DEGRADED,
                f"Datastore reported failure for {resource.resource_id}: {detail}",
                status=response.status_code,
            )

        records = (body.get("result") or {}).get("records")
        if not isinstance(records, list):
            raise FetchError(
                FetchErrorKind.PARSE, f"Datastore result for {resource.resource_id} has no records"
            )
        return records

    async def fetch(self, endpoint: EndpointKey, params: Optional[dict] = None) -> Any:
        resource = self.resources.get(endpoint)
        if resource is None:
            logger.warning(f"No datastore resource for {endpoint.value}, returning empty result")
            return empty_payload(endpoint)

        records = await retry_with_backoff(
            lambda: self._search(resource, params),
            max_retries=self.max_retries,
            description=f"Datastore {endpoint.value}",
            base=self.base_delay,
            cap=self.max_delay,
            sleep=self._sleep,
            rng=self._rng,
        )
        transformed = [resource.transform(r) for r in records if isinstance(r, dict)]
        logger.info(f"Fetched {len(transformed)} {endpoint.value} records from datastore")
        return transformed

    async def aclose(self) -> None:
        if self._owns_client and self._client is not None:
            await self._client.aclose()
            self._client = None
