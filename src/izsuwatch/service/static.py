"""Static JSON documents shipped next to the data: locations and history.

``locations.json``::

    {"barajlar": [{"name": "Tahtali Baraji", "lat": 38.1, "lng": 27.1}],
     "kuyular": [...],
     "consumption": {"dailyTotal": 967500000}}

``history.json`` is the ledger written by ``izsuwatch.collector``. Both are
loaded once; a missing document yields empty data and a warning.
"""

import logging
from pathlib import Path
from typing import Any, Optional, Union

import httpx

from izsuwatch.models import HistoryEntry, WaterSource, parse_history
from izsuwatch.utils.io import get_data_path, read_json
from izsuwatch.utils.text import name_key, to_number

logger = logging.getLogger(__name__)

DocumentSource = Union[str, Path]


class StaticDocuments:
    """Lazy, load-once access to the locations and history documents.

    Args:
        locations: File path or http(s) URL of locations.json
        history: File path or http(s) URL of history.json
        client: HTTP client used for URL sources
    """

    def __init__(
        self,
        locations: Optional[DocumentSource] = None,
        history: Optional[DocumentSource] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.locations_source = locations if locations is not None else get_data_path("locations")
        self.history_source = history if history is not None else get_data_path("history")
        self._client = client
        self._locations: Optional[dict] = None
        self._history: Optional[dict] = None

    async def _load(self, source: DocumentSource) -> Any:
        if isinstance(source, str) and source.startswith(("http://", "https://")):
            client = self._client or httpx.AsyncClient(follow_redirects=True)
            try:
                response = await client.get(source)
                response.raise_for_status()
                return response.json()
            except (httpx.HTTPError, ValueError) as e:
                logger.warning(f"Could not load {source}: {e}")
                return None
            finally:
                if self._client is None:
                    await client.aclose()
        return read_json(Path(source))

    async def load(self) -> None:
        """Load both documents unless already loaded."""
        if self._locations is None:
            loaded = await self._load(self.locations_source)
            self._locations = loaded if isinstance(loaded, dict) else {}
        if self._history is None:
            loaded = await self._load(self.history_source)
            self._history = loaded if isinstance(loaded, dict) else {"entries": [], "lastUpdated": None}

    @property
    def locations(self) -> dict:
        return self._locations or {}

    @property
    def history(self) -> list[HistoryEntry]:
        return parse_history(self._history)

    def daily_consumption_liters(self) -> Optional[float]:
        """Published daily consumption, None when the document has none."""
        value = (self.locations.get("consumption") or {}).get("dailyTotal")
        number = to_number(value)
        return number if number > 0 else None

    def source_coordinates(self, source: WaterSource) -> Optional[tuple[float, float]]:
        """Coordinates of a dam or well as ``(lat, lon)``.

        API coordinates win; otherwise the locations document is searched
        for a name that contains, or is contained in, the source name.
        """
        if source.lat and source.lon:
            return source.lat, source.lon

        wanted = name_key(source.name)
        if not wanted:
            return None
        known = list(self.locations.get("barajlar") or []) + list(self.locations.get("kuyular") or [])
        for location in known:
            candidate = name_key(location.get("name"))
            if candidate and (candidate in wanted or wanted in candidate):
                return to_number(location.get("lat")), to_number(location.get("lng"))
        return None
