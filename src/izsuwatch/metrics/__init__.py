"""Derived metrics computed from fetched data."""

from izsuwatch.metrics.comparison import (
    PeriodTotals,
    YearOverYear,
    compare_year_over_year,
    monthly_averages,
    monthly_totals,
)
from izsuwatch.metrics.countdown import (
    CountdownState,
    CountdownTicker,
    DepletionCountdown,
    TickerState,
)
from izsuwatch.metrics.history import DamRecord, fill_rate_trend, historical_max_by_dam
from izsuwatch.metrics.production import DamSummary, daily_consumption_m3, summarize_dams
from izsuwatch.metrics.quality import (
    QUALITY_LIMITS,
    QualityLimit,
    QualityStatus,
    classify_parameter,
    classify_report,
    classify_value,
    find_limit,
    worst_status,
)

__all__ = [
    "CountdownState",
    "CountdownTicker",
    "DamRecord",
    "DamSummary",
    "DepletionCountdown",
    "PeriodTotals",
    "QUALITY_LIMITS",
    "QualityLimit",
    "QualityStatus",
    "TickerState",
    "YearOverYear",
    "classify_parameter",
    "classify_report",
    "classify_value",
    "compare_year_over_year",
    "daily_consumption_m3",
    "fill_rate_trend",
    "find_limit",
    "historical_max_by_dam",
    "monthly_averages",
    "monthly_totals",
    "summarize_dams",
    "worst_status",
]
