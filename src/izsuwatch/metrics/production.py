"""Dam storage totals and consumption figures."""

from dataclasses import dataclass
from typing import Optional

from izsuwatch.config import DEFAULT_DAILY_CONSUMPTION_LITERS
from izsuwatch.models import DamStatus

SECONDS_PER_DAY = 86400


@dataclass
class DamSummary:
    """Storage totals across all dams (m3)."""

    total_current_volume: float
    total_min_capacity: float
    total_max_capacity: float
    average_fill_rate_percent: float

    @property
    def usable_water(self) -> float:
        return self.total_current_volume - self.total_min_capacity

    @property
    def usable_capacity(self) -> float:
        return self.total_max_capacity - self.total_min_capacity

    @property
    def fill_percent(self) -> Optional[float]:
        """Usable water as a share of usable capacity, None if capacity is not positive."""
        if self.usable_capacity <= 0:
            return None
        return self.usable_water / self.usable_capacity * 100


def summarize_dams(dams: list[DamStatus]) -> DamSummary:
    """Sum volumes and capacities; average fill rate rounded to one decimal."""
    average = sum(d.fill_rate_percent for d in dams) / len(dams) if dams else 0.0
    return DamSummary(
        total_current_volume=sum(d.current_volume for d in dams),
        total_min_capacity=sum(d.min_capacity for d in dams),
        total_max_capacity=sum(d.max_capacity for d in dams),
        average_fill_rate_percent=round(average, 1),
    )


def daily_consumption_m3(liters_per_day: Optional[float] = None) -> float:
    """City-wide daily consumption in m3 (input in liters, default when unknown)."""
    return (liters_per_day or DEFAULT_DAILY_CONSUMPTION_LITERS) / 1000
