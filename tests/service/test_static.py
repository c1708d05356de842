"""Tests for the static locations and history documents."""

import asyncio
import json

import httpx
import pytest

from izsuwatch.models import SourceKind, WaterSource
from izsuwatch.service import StaticDocuments


@pytest.fixture
def locations_file(tmp_path):
    path = tmp_path / "locations.json"
    path.write_text(json.dumps({
        "barajlar": [
            {"name": "Tahtalı Barajı", "lat": 38.13, "lng": 27.13},
            {"name": "Gördes", "lat": 38.93, "lng": 28.29},
        ],
        "kuyular": [{"name": "Sarıkız Kuyuları", "lat": 38.61, "lng": 27.38}],
        "consumption": {"dailyTotal": 967500000},
    }), encoding="utf-8")
    return path


@pytest.fixture
def history_file(tmp_path):
    path = tmp_path / "history.json"
    path.write_text(json.dumps({
        "entries": [
            {
                "date": "2026-10-18",
                "timestamp": "2026-10-18T00:05:00+00:00",
                "summary": {"averageFillRate": 40.8, "usableWater": 142000000},
                "dams": [{"name": "Tahtalı Barajı", "fillRate": 48.3}],
            }
        ],
        "lastUpdated": "2026-10-18T00:05:00+00:00",
    }), encoding="utf-8")
    return path


def loaded(docs):
    asyncio.run(docs.load())
    return docs


class TestLoading:
    """Tests for loading documents."""

    def test_load_files(self, locations_file, history_file):
        """File documents are parsed on load."""
        docs = loaded(StaticDocuments(locations_file, history_file))
        assert len(docs.locations["barajlar"]) == 2
        assert docs.history[0].date == "2026-10-18"
        assert docs.history[0].summary.average_fill_rate_percent == 40.8
        assert docs.history[0].dams[0].fill_rate == 48.3

    def test_missing_files(self, tmp_path):
        """Missing documents give empty data."""
        docs = loaded(StaticDocuments(tmp_path / "nope.json", tmp_path / "none.json"))
        assert docs.locations == {}
        assert docs.history == []
        assert docs.daily_consumption_liters() is None

    def test_loaded_once(self, locations_file, history_file):
        """Reloading keeps the first result."""
        docs = loaded(StaticDocuments(locations_file, history_file))
        locations_file.write_text("{}", encoding="utf-8")
        asyncio.run(docs.load())
        assert docs.locations["barajlar"]

    def test_load_from_url(self, make_client, history_file):
        """http(s) sources are downloaded with the given client."""

        def handler(request):
            return httpx.Response(200, json={"consumption": {"dailyTotal": "900000000"}})

        async def run():
            async with make_client(handler) as http:
                docs = StaticDocuments("https://site.test/locations.json", history_file, client=http)
                await docs.load()
                return docs

        docs = asyncio.run(run())
        assert docs.daily_consumption_liters() == 900_000_000

    def test_url_failure_gives_empty(self, make_client, history_file):
        """A failed download is treated as a missing document."""

        def handler(request):
            return httpx.Response(500)

        async def run():
            async with make_client(handler) as http:
                docs = StaticDocuments("https://site.test/locations.json", history_file, client=http)
                await docs.load()
                return docs

        assert asyncio.run(run()).locations == {}


class TestLookups:
    """Tests for consumption and coordinate lookups."""

    def test_daily_consumption(self, locations_file, history_file):
        """The published daily total is returned in liters."""
        docs = loaded(StaticDocuments(locations_file, history_file))
        assert docs.daily_consumption_liters() == 967_500_000

    def test_api_coordinates_win(self, locations_file, history_file):
        """Coordinates from the API are used as-is."""
        docs = loaded(StaticDocuments(locations_file, history_file))
        source = WaterSource("Tahtalı Barajı", SourceKind.DAM, lat=1.0, lon=2.0)
        assert docs.source_coordinates(source) == (1.0, 2.0)

    def test_name_match(self, locations_file, history_file):
        """Names match ignoring case and Turkish letters, in either direction."""
        docs = loaded(StaticDocuments(locations_file, history_file))
        assert docs.source_coordinates(WaterSource("TAHTALI BARAJI", SourceKind.DAM)) == (38.13, 27.13)
        assert docs.source_coordinates(WaterSource("Gördes Barajı", SourceKind.DAM)) == (38.93, 28.29)
        assert docs.source_coordinates(WaterSource("Sarikiz Kuyulari", SourceKind.WELL)) == (38.61, 27.38)

    def test_unknown_source(self, locations_file, history_file):
        """Sources without coordinates anywhere give None."""
        docs = loaded(StaticDocuments(locations_file, history_file))
        assert docs.source_coordinates(WaterSource("Ürkmez Barajı", SourceKind.DAM)) is None
        assert docs.source_coordinates(WaterSource("", SourceKind.WELL)) is None


class TestShippedDocuments:
    """Tests for the documents in data/."""

    def test_default_locations(self):
        """The bundled locations cover dams and wells with the default consumption."""
        docs = loaded(StaticDocuments())
        assert docs.daily_consumption_liters() == 967_500_000
        coords = docs.source_coordinates(WaterSource("TAHTALI BARAJI", SourceKind.DAM))
        assert coords == (38.1297, 27.1161)
        assert isinstance(docs.history, list)
