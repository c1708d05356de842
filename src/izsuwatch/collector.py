"""Scheduled collection of dam levels into the history ledger.

Fetches the current dam status and daily production from the primary API
and records them as one entry per day in ``data/history.json``. The ledger
keeps the newest 24 entries.

Usage:
    izsuwatch collect                       # Update data/history.json
    izsuwatch collect --history other.json  # Write somewhere else
"""

import logging
import time
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Any, Optional

import requests

from izsuwatch.config import MAX_RETRIES, PRIMARY_API_BASE, REQUEST_TIMEOUT
from izsuwatch.metrics.production import summarize_dams
from izsuwatch.models import (
    DailyProduction,
    DamStatus,
    EndpointKey,
    HistoryDam,
    HistoryEntry,
    HistorySummary,
)
from izsuwatch.sources.base import has_error_marker
from izsuwatch.utils.io import get_data_path, read_json, write_json

logger = logging.getLogger(__name__)

MAX_HISTORY_ENTRIES = 24


class CollectionError(Exception):
    """Raised when the upstream API could not be read."""


def build_entry(
    day: str,
    dam_status: list[dict],
    daily_production: Optional[dict],
    collected_at: Optional[datetime] = None,
) -> HistoryEntry:
    """Build a ledger entry from raw dam status and daily production payloads."""
    dams = [DamStatus.from_api(d) for d in dam_status if isinstance(d, dict)]
    summary = summarize_dams(dams)

    production = None
    if isinstance(daily_production, dict) and daily_production:
        report = DailyProduction.from_api(daily_production)
        production = {
            "date": report.date,
            "total": report.reported_total,
            "sources": [{"name": s.name, "amount": s.amount} for s in report.sources],
        }

    collected_at = collected_at or datetime.now(timezone.utc)
    return HistoryEntry(
        date=day,
        timestamp=collected_at.isoformat(),
        summary=HistorySummary(
            total_current_volume=summary.total_current_volume,
            total_max_capacity=summary.total_max_capacity,
            total_min_capacity=summary.total_min_capacity,
            usable_water=summary.usable_water,
            usable_capacity=summary.usable_capacity,
            average_fill_rate_percent=summary.average_fill_rate_percent,
        ),
        dams=[
            HistoryDam(
                name=d.name,
                fill_rate=d.fill_rate_percent,
                current_volume=d.current_volume,
                max_capacity=d.max_capacity,
                min_capacity=d.min_capacity,
            )
            for d in dams
        ],
        production=production,
    )


def merge_entry(
    document: Optional[dict],
    entry: HistoryEntry,
    updated_at: Optional[datetime] = None,
) -> dict:
    """Insert ``entry`` into a ledger document.

    An entry with the same date is replaced. Entries are sorted newest
    first and capped at ``MAX_HISTORY_ENTRIES``.
    """
    entries = list((document or {}).get("entries") or [])
    replaced = False
    for i, existing in enumerate(entries):
        if existing.get("date") == entry.date:
            logger.info(f"Data for {entry.date} already exists, updating...")
            entries[i] = entry.to_json()
            replaced = True
            break
    if not replaced:
        entries.append(entry.to_json())

    entries.sort(key=lambda e: e.get("date") or "", reverse=True)
    updated_at = updated_at or datetime.now(timezone.utc)
    return {
        "entries": entries[:MAX_HISTORY_ENTRIES],
        "lastUpdated": updated_at.isoformat(),
    }


class HistoryCollector:
    """Fetch the primary API and append to the history ledger.

    Example:
        >>> collector = HistoryCollector()
        >>> entry = collector.collect()
        >>> entry.summary.average_fill_rate_percent
        42.3
    """

    MAX_RETRIES = MAX_RETRIES
    RETRY_DELAY = 2.0  # seconds, grows linearly per attempt

    def __init__(
        self,
        base_url: str = PRIMARY_API_BASE,
        history_path: Optional[Path] = None,
        session: Optional[requests.Session] = None,
        verify_ssl: bool = True,
        timeout: float = REQUEST_TIMEOUT,
    ):
        self.base_url = base_url.rstrip("/")
        self.history_path = history_path or get_data_path("history")
        self.session = session or requests.Session()
        self.verify_ssl = verify_ssl
        self.timeout = timeout

    def fetch_json(self, endpoint: EndpointKey) -> Any:
        """GET an endpoint with retry.

        A body carrying the upstream error marker counts as a failed attempt.

        Raises:
            CollectionError: If all retries fail
        """
        url = f"{self.base_url}/{endpoint.raw_name}"
        last_exception: Optional[Exception] = None
        for attempt in range(self.MAX_RETRIES):
            try:
                response = self.session.get(url, timeout=self.timeout, verify=self.verify_ssl)
                response.raise_for_status()
                data = response.json()
                if has_error_marker(data):
                    raise CollectionError(f"Server returned error in response body from {url}")
                return data
            except (requests.RequestException, ValueError, CollectionError) as e:
                last_exception = e
                if attempt < self.MAX_RETRIES - 1:
                    delay = self.RETRY_DELAY * (attempt + 1)
                    logger.warning(
                        f"Attempt {attempt + 1} failed: {e}. Retrying in {delay:.1f}s..."
                    )
                    time.sleep(delay)
                else:
                    logger.error(f"All {self.MAX_RETRIES} attempts failed: {e}")
        raise CollectionError(
            f"Failed to fetch {endpoint.raw_name} after {self.MAX_RETRIES} attempts"
        ) from last_exception

    def collect(self, today: Optional[date] = None) -> HistoryEntry:
        """Fetch current data and write the updated ledger.

        Returns:
            The entry written for ``today``
        """
        day = (today or datetime.now(timezone.utc).date()).isoformat()
        logger.info(f"Collecting water data for {day}...")

        dam_status = self.fetch_json(EndpointKey.DAM_STATUS)
        if not isinstance(dam_status, list):
            raise CollectionError("Dam status response is not a list")
        logger.info(f"Fetched {len(dam_status)} dam records")

        daily_production = self.fetch_json(EndpointKey.DAILY_PRODUCTION)
        logger.info("Fetched daily production data")

        entry = build_entry(day, dam_status, daily_production)
        document = merge_entry(read_json(self.history_path, default=None), entry)
        write_json(self.history_path, document)
        logger.info(f"History updated with {len(document['entries'])} entries")
        return entry
