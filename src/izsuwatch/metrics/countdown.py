"""Depletion countdown: how long usable dam water lasts at current consumption.

The projection is linear from a fixed anchor ``(start_time, start_volume)``;
each tick subtracts the elapsed time times the consumption rate, floored at
zero. Nothing is re-fetched while ticking.
"""

import asyncio
import logging
import math
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

from izsuwatch.metrics.production import SECONDS_PER_DAY, daily_consumption_m3, summarize_dams
from izsuwatch.models import DamStatus

logger = logging.getLogger(__name__)


@dataclass
class CountdownState:
    """Countdown values at one instant."""

    remaining_volume: float
    total_seconds: int
    fill_percent: float

    @property
    def days(self) -> int:
        return self.total_seconds // SECONDS_PER_DAY

    @property
    def hours(self) -> int:
        return (self.total_seconds % SECONDS_PER_DAY) // 3600

    @property
    def minutes(self) -> int:
        return (self.total_seconds % 3600) // 60

    @property
    def seconds(self) -> int:
        return self.total_seconds % 60

    def __str__(self) -> str:
        return (
            f"{self.days}d {self.hours:02d}:{self.minutes:02d}:{self.seconds:02d} "
            f"({math.floor(self.remaining_volume):,} m3)"
        )


@dataclass
class DepletionCountdown:
    """Linear depletion projection from an anchor.

    Attributes:
        start_time: Anchor time in seconds since the epoch
        start_volume: Usable water at the anchor (m3)
        consumption_per_second: Depletion rate (m3/s), must be positive
        usable_capacity: Usable capacity for the fill percentage (m3)

    Example:
        >>> c = DepletionCountdown(start_time=0, start_volume=1000, consumption_per_second=1)
        >>> c.state_at(400).remaining_volume
        600.0
    """

    start_time: float
    start_volume: float
    consumption_per_second: float
    usable_capacity: Optional[float] = None

    def __post_init__(self):
        if self.consumption_per_second <= 0:
            raise ValueError("consumption_per_second must be positive")

    @classmethod
    def from_dams(
        cls,
        dams: list[DamStatus],
        daily_consumption_liters: Optional[float] = None,
        now: Optional[float] = None,
    ) -> "DepletionCountdown":
        """Anchor a countdown at the current dam totals."""
        summary = summarize_dams(dams)
        return cls(
            start_time=time.time() if now is None else now,
            start_volume=summary.usable_water,
            consumption_per_second=daily_consumption_m3(daily_consumption_liters) / SECONDS_PER_DAY,
            usable_capacity=summary.usable_capacity,
        )

    def remaining_volume(self, now: float) -> float:
        elapsed = now - self.start_time
        return max(0.0, self.start_volume - elapsed * self.consumption_per_second)

    def state_at(self, now: float) -> CountdownState:
        remaining = self.remaining_volume(now)
        if self.usable_capacity and self.usable_capacity > 0:
            fill = min(100.0, max(0.0, remaining / self.usable_capacity * 100))
        else:
            fill = 0.0
        return CountdownState(
            remaining_volume=remaining,
            total_seconds=math.floor(remaining / self.consumption_per_second),
            fill_percent=fill,
        )


class TickerState(str, Enum):
    STOPPED = "stopped"
    RUNNING = "running"


class CountdownTicker:
    """Recompute a countdown every ``interval`` seconds and hand it to a callback.

    ``render`` (re)anchors and starts ticking; calling it again while running
    replaces the anchor without stacking tickers. ``stop`` is idempotent and no
    callback fires after it returns. Must be used inside a running event loop.

    Example:
        >>> ticker = CountdownTicker(on_tick=print)
        >>> ticker.render(start_volume=1_000_000, consumption_per_second=11.2)
        >>> ticker.stop()
    """

    def __init__(
        self,
        on_tick: Callable[[CountdownState], None],
        interval: float = 1.0,
        clock: Callable[[], float] = time.time,
    ):
        self.on_tick = on_tick
        self.interval = interval
        self._clock = clock
        self.countdown: Optional[DepletionCountdown] = None
        self._task: Optional[asyncio.Task] = None
        self._generation = 0

    @property
    def state(self) -> TickerState:
        return TickerState.RUNNING if self._task is not None else TickerState.STOPPED

    def render(
        self,
        start_volume: float,
        consumption_per_second: float,
        usable_capacity: Optional[float] = None,
    ) -> CountdownState:
        """Capture a new anchor, emit the first state and (re)start ticking."""
        self._cancel()
        self.countdown = DepletionCountdown(
            start_time=self._clock(),
            start_volume=start_volume,
            consumption_per_second=consumption_per_second,
            usable_capacity=usable_capacity,
        )
        first = self.countdown.state_at(self._clock())
        self.on_tick(first)
        self._task = asyncio.get_running_loop().create_task(self._run(self._generation))
        logger.debug(f"Countdown started: {first}")
        return first

    def render_dams(
        self, dams: list[DamStatus], daily_consumption_liters: Optional[float] = None
    ) -> CountdownState:
        summary = summarize_dams(dams)
        return self.render(
            start_volume=summary.usable_water,
            consumption_per_second=daily_consumption_m3(daily_consumption_liters) / SECONDS_PER_DAY,
            usable_capacity=summary.usable_capacity,
        )

    def stop(self) -> None:
        """Stop ticking and clear the anchor. Safe to call when stopped."""
        if self._task is None and self.countdown is None:
            return
        self._cancel()
        self.countdown = None
        logger.debug("Countdown stopped")

    def _cancel(self) -> None:
        self._generation += 1
        if self._task is not None:
            self._task.cancel()
            self._task = None

    async def _run(self, generation: int) -> None:
        while True:
            await asyncio.sleep(self.interval)
            if generation != self._generation or self.countdown is None:
                return
            self.on_tick(self.countdown.state_at(self._clock()))
