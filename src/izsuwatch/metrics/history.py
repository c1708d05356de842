"""Lookups over the collected history ledger."""

from dataclasses import dataclass

from izsuwatch.models import HistoryEntry


@dataclass
class DamRecord:
    """Highest fill rate observed for a dam."""

    fill_rate: float
    date: str
    volume: float


def historical_max_by_dam(entries: list[HistoryEntry]) -> dict[str, DamRecord]:
    """Highest recorded fill rate per dam name, with the date it occurred.

    Ties keep the first entry seen (the ledger is newest-first).
    """
    records: dict[str, DamRecord] = {}
    for entry in entries:
        for dam in entry.dams:
            current = records.get(dam.name)
            if current is None or dam.fill_rate > current.fill_rate:
                records[dam.name] = DamRecord(
                    fill_rate=dam.fill_rate, date=entry.date, volume=dam.current_volume
                )
    return records


def fill_rate_trend(entries: list[HistoryEntry]) -> list[tuple[str, float]]:
    """Average fill rate per entry, oldest first.

    Returns an empty list when fewer than two entries exist.
    """
    if len(entries) < 2:
        return []
    ordered = sorted(entries, key=lambda e: e.date)
    return [(e.date, e.summary.average_fill_rate_percent) for e in ordered]
