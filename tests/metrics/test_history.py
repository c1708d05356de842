"""Tests for history ledger lookups."""

from izsuwatch.metrics.history import fill_rate_trend, historical_max_by_dam
from izsuwatch.models import HistoryDam, HistoryEntry, HistorySummary


def make_entry(day, average, dams):
    return HistoryEntry(
        date=day,
        timestamp=None,
        summary=HistorySummary(0, 0, 0, 0, 0, average),
        dams=[HistoryDam(name, rate, volume, 0, 0) for name, rate, volume in dams],
    )


def test_historical_max_by_dam():
    """The highest fill rate per dam is kept with its date."""
    entries = [
        make_entry("2026-10-18", 40.0, [("Tahtalı", 48.3, 150.0), ("Balçova", 33.3, 3.0)]),
        make_entry("2026-10-17", 41.0, [("Tahtalı", 49.0, 152.0), ("Balçova", 33.3, 3.1)]),
    ]
    records = historical_max_by_dam(entries)

    assert records["Tahtalı"].fill_rate == 49.0
    assert records["Tahtalı"].date == "2026-10-17"
    assert records["Tahtalı"].volume == 152.0
    assert records["Balçova"].date == "2026-10-18"


def test_fill_rate_trend_oldest_first():
    """Entries are returned oldest first."""
    entries = [
        make_entry("2026-10-18", 40.8, []),
        make_entry("2026-10-16", 41.5, []),
        make_entry("2026-10-17", 41.1, []),
    ]
    assert fill_rate_trend(entries) == [
        ("2026-10-16", 41.5),
        ("2026-10-17", 41.1),
        ("2026-10-18", 40.8),
    ]


def test_fill_rate_trend_needs_two_points():
    """A single entry is not a trend."""
    assert fill_rate_trend([make_entry("2026-10-18", 40.8, [])]) == []
    assert historical_max_by_dam([]) == {}
