"""Shared pytest fixtures for izsuwatch tests.

Test Tiers:
- unit: Fast tests with fixtures, no network (default)
- integration: Tests wiring several components with mocked transports
- live: Real upstream tests, slow, requires network

Run live tests with: pytest -m live --run-live
"""

from pathlib import Path

import httpx
import pytest


def pytest_addoption(parser):
    """Add command line options for test configuration."""
    parser.addoption(
        "--run-live",
        action="store_true",
        default=False,
        help="Run live upstream tests (slow, requires network)",
    )


def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line("markers", "unit: fast unit tests using fixtures")
    config.addinivalue_line("markers", "integration: tests wiring components with mocked HTTP")
    config.addinivalue_line("markers", "live: real upstream tests (slow, requires network)")


def pytest_collection_modifyitems(config, items):
    """Skip live tests unless --run-live is specified."""
    if config.getoption("--run-live"):
        return

    skip_live = pytest.mark.skip(reason="need --run-live option to run")
    for item in items:
        if "live" in item.keywords:
            item.add_marker(skip_live)


class FakeClock:
    """Manually advanced clock returning seconds since the epoch."""

    def __init__(self, start: float = 1_760_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


async def no_sleep(delay: float) -> None:
    """Backoff sleep replacement that returns immediately."""
    return None


def mock_client(handler) -> httpx.AsyncClient:
    """AsyncClient whose requests are answered by ``handler(request)``."""
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def project_root() -> Path:
    """Get the project root directory."""
    return Path(__file__).parent.parent


@pytest.fixture
def dam_status_payload() -> list[dict]:
    """Dam status in the primary API's native shape."""
    return [
        {
            "BarajKuyuAdi": "Tahtalı Barajı",
            "SuDurumu": 150_000_000,
            "MinimumSuKapasitesi": 10_000_000,
            "MaksimumSuKapasitesi": 300_000_000,
            "DolulukOrani": 48.3,
            "DurumTarihi": "2026-10-18T00:00:00",
        },
        {
            "BarajKuyuAdi": "Balçova Barajı",
            "SuDurumu": 3_000_000,
            "MinimumSuKapasitesi": 1_000_000,
            "MaksimumSuKapasitesi": 7_000_000,
            "DolulukOrani": 33.3,
            "DurumTarihi": "2026-10-18T00:00:00",
        },
    ]


@pytest.fixture
def daily_production_payload() -> dict:
    """Daily production report in the primary API's native shape."""
    return {
        "UretimTarihi": "2026-10-18T00:00:00",
        "ToplamUretim": 1000,
        "BarajKuyuUretimleri": [
            {"BarajKuyuAdi": "Tahtalı Barajı", "UretimMiktari": 600},
            {"BarajKuyuAdi": "Sarıkız Kuyuları", "UretimMiktari": 400},
        ],
    }


@pytest.fixture
def distribution_payload() -> list[dict]:
    """Monthly production distribution spanning two years."""
    return [
        {"Yil": 2025, "Ay": 10, "UretimKaynagi": "Tahtalı Barajı", "UretimMiktari": 15000},
        {"Yil": 2025, "Ay": 10, "UretimKaynagi": "Sarıkız Kuyuları", "UretimMiktari": 15000},
        {"Yil": 2025, "Ay": 9, "UretimKaynagi": "Tahtalı Barajı", "UretimMiktari": 12000},
        {"Yil": 2026, "Ay": 9, "UretimKaynagi": "Tahtalı Barajı", "UretimMiktari": 18000},
        {"Yil": 2026, "Ay": 9, "UretimKaynagi": "Sarıkız Kuyuları", "UretimMiktari": 6000},
    ]


@pytest.fixture
def snapshot_document(dam_status_payload, daily_production_payload, distribution_payload) -> dict:
    """Snapshot feed document covering the eight published endpoints."""
    return {
        "timestamp": "2026-10-19T06:00:00Z",
        "endpoints": {
            "arizakaynaklisukesintileri": [
                {
                    "IlceAdi": "Buca",
                    "Mahalleler": "Adatepe, Kozağaç",
                    "Tip": "Arıza",
                    "KesintiTarihi": "2026-10-19T08:00:00",
                    "Ongoru": "1",
                }
            ],
            "barajvekuyular": [
                {"Adi": "Tahtalı Barajı", "TurAdi": "BARAJ", "Enlem": 38.13, "Boylam": 27.13}
            ],
            "barajdurum": dam_status_payload,
            "gunluksuuretimi": daily_production_payload,
            "suuretiminindagilimi": distribution_payload,
            "haftaliksuanalizleri": {
                "TumAnalizler": [
                    {
                        "NoktaTanimi": "Konak Meydan",
                        "analizSonuclari": [
                            {"ParametreAdi": "pH", "ParametreDegeri": "7.4", "Birim": "-"}
                        ],
                    }
                ]
            },
            "cevreilcesuanalizleri": {
                "Ilceler": [
                    {
                        "IlceAdi": "Urla",
                        "AnalizTarihi": "2026-10-01",
                        "Noktalar": [
                            {
                                "Adres": "Merkez",
                                "NoktaAnalizleri": [
                                    {"ParametreAdi": "Nitrat", "ParametreDegeri": "12", "Birim": "mg/L"}
                                ],
                            }
                        ],
                    }
                ]
            },
            "barajsukaliteraporlari": {"error": "upstream timeout"},
        },
    }


@pytest.fixture
def instant_sleep():
    """Awaitable sleep that does not wait."""
    return no_sleep


@pytest.fixture
def make_client():
    """Factory for AsyncClients backed by an ``httpx.MockTransport`` handler."""
    return mock_client
