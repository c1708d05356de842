"""Year-over-year production comparison and monthly aggregates.

The production distribution holds monthly totals per source. The comparison
turns the same calendar month of the previous year into a daily estimate
(monthly total / 30) and compares today's daily production against it.
"""

import logging
from dataclasses import dataclass
from datetime import date
from typing import Optional

import pandas as pd

from izsuwatch.models import DailyProduction, ProductionDistribution, SourceKind

logger = logging.getLogger(__name__)

DAYS_PER_MONTH_ESTIMATE = 30

DISTRIBUTION_COLUMNS = ["year", "month", "source_name", "source_kind", "amount"]


def distribution_frame(distribution: list[ProductionDistribution]) -> pd.DataFrame:
    """Production distribution records as a DataFrame."""
    if not distribution:
        return pd.DataFrame(columns=DISTRIBUTION_COLUMNS)
    return pd.DataFrame(
        [
            {
                "year": r.year,
                "month": r.month,
                "source_name": r.source_name,
                "source_kind": r.source_kind.value,
                "amount": r.amount,
            }
            for r in distribution
        ],
        columns=DISTRIBUTION_COLUMNS,
    )


@dataclass
class PeriodTotals:
    """Production split by source kind (m3)."""

    total: float
    dam: float
    well: float

    @property
    def dam_share(self) -> float:
        """Dam share of the total in percent, one decimal."""
        return round(self.dam / self.total * 100, 1) if self.total else 0.0

    @property
    def well_share(self) -> float:
        return round(self.well / self.total * 100, 1) if self.total else 0.0


@dataclass
class YearOverYear:
    """Comparison of current production with the same month last year.

    When ``has_data`` is False every delta is None; callers show a
    "no prior-year data" state instead of a number.
    """

    has_data: bool
    year: int
    month: int
    current: Optional[PeriodTotals] = None
    previous: Optional[PeriodTotals] = None
    total_change_percent: Optional[float] = None
    dam_share_change: Optional[float] = None
    well_share_change: Optional[float] = None

    @classmethod
    def no_data(cls, year: int, month: int, current: Optional[PeriodTotals] = None) -> "YearOverYear":
        return cls(has_data=False, year=year, month=month, current=current)


def current_totals(production: DailyProduction) -> PeriodTotals:
    return PeriodTotals(
        total=production.total,
        dam=production.dam_total,
        well=production.well_total,
    )


def previous_year_totals(
    distribution: list[ProductionDistribution], today: date
) -> Optional[PeriodTotals]:
    """Daily estimate for the same month one year before ``today``.

    Returns None when the distribution has no records for that month.
    """
    df = distribution_frame(distribution)
    prior = df[(df["year"] == today.year - 1) & (df["month"] == today.month)]
    if prior.empty:
        return None

    total = float(prior["amount"].sum())
    dam = float(prior.loc[prior["source_kind"] == SourceKind.DAM.value, "amount"].sum())
    return PeriodTotals(
        total=round(total / DAYS_PER_MONTH_ESTIMATE),
        dam=round(dam / DAYS_PER_MONTH_ESTIMATE),
        well=round((total - dam) / DAYS_PER_MONTH_ESTIMATE),
    )


def compare_year_over_year(
    production: DailyProduction,
    distribution: list[ProductionDistribution],
    today: Optional[date] = None,
) -> YearOverYear:
    """Compare today's production with the same month of the previous year.

    Args:
        production: Latest daily production report
        distribution: Monthly production history
        today: Reference date (defaults to today)

    Returns:
        YearOverYear with percent change of the total and percentage point
        change of the dam and well shares, or ``YearOverYear.no_data`` when the
        prior month is missing or its total is zero
    """
    today = today or date.today()
    current = current_totals(production)
    previous = previous_year_totals(distribution, today)

    if previous is None or not previous.total:
        logger.debug(f"No prior-year production for {today.year - 1}-{today.month:02d}")
        return YearOverYear.no_data(today.year, today.month, current)

    return YearOverYear(
        has_data=True,
        year=today.year,
        month=today.month,
        current=current,
        previous=previous,
        total_change_percent=round((current.total - previous.total) / previous.total * 100, 1),
        dam_share_change=round(current.dam_share - previous.dam_share, 1),
        well_share_change=round(current.well_share - previous.well_share, 1),
    )


def monthly_averages(distribution: list[ProductionDistribution]) -> dict[tuple[str, int], int]:
    """Average production per (source, calendar month) across all years."""
    df = distribution_frame(distribution)
    if df.empty:
        return {}
    means = df.groupby(["source_name", "month"])["amount"].mean().round()
    return {(source, int(month)): int(value) for (source, month), value in means.items()}


def monthly_totals(distribution: list[ProductionDistribution]) -> pd.DataFrame:
    """Dam, well and overall production per (year, month), oldest first."""
    df = distribution_frame(distribution)
    if df.empty:
        return pd.DataFrame(columns=["dam", "well", "total"])
    totals = df.pivot_table(
        index=["year", "month"],
        columns="source_kind",
        values="amount",
        aggfunc="sum",
        fill_value=0,
    )
    totals = totals.reindex(columns=[SourceKind.DAM.value, SourceKind.WELL.value], fill_value=0)
    totals.columns = ["dam", "well"]
    totals["total"] = totals["dam"] + totals["well"]
    return totals.sort_index()
