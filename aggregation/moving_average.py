"""Windowed moving average over observed samples.

A window is **open** while ``now <= period_end`` and **expired** afterwards.
Observing into an expired window raises ``PeriodFinishedError`` and leaves
the state untouched; starting the next window is the caller's decision.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from statistics import fmean
from typing import Optional

from aggregation.common import ensure_utc
from aggregation.errors import PeriodFinishedError

logger = logging.getLogger(__name__)

DEFAULT_WINDOW = timedelta(seconds=600)


@dataclass(frozen=True)
class WindowUpdate:
    """Outcome of one accepted observation."""

    average: float
    rolled_over: bool


@dataclass
class MovingAverageCalculator:
    period_start: datetime
    period_end: datetime
    observed_values: list[float] = field(default_factory=list)
    running_average: float = 0.0
    last_period_average: float = 0.0

    def __post_init__(self) -> None:
        self.period_start = ensure_utc(self.period_start)
        self.period_end = ensure_utc(self.period_end)
        self.observed_values = list(self.observed_values)

    @classmethod
    def open_window(
        cls,
        now: datetime,
        window: timedelta,
        first_value: Optional[float] = None,
    ) -> "MovingAverageCalculator":
        """Start a fresh window; ``last_period_average`` begins at zero."""
        now = ensure_utc(now)
        values = [] if first_value is None else [first_value]
        average = 0.0 if first_value is None else first_value
        return cls(
            period_start=now,
            period_end=now + window,
            observed_values=values,
            running_average=average,
        )

    def is_expired(self, now: datetime) -> bool:
        return ensure_utc(now) > self.period_end

    def observe_value(self, now: datetime, value: float) -> float:
        """Append ``value`` to the open window and return the new mean."""
        if self.is_expired(now):
            raise PeriodFinishedError()
        self.observed_values.append(value)
        return self.compute()

    def compute(self) -> float:
        """Recompute the mean over every retained sample."""
        if not self.observed_values:
            return self.running_average
        average = fmean(self.observed_values)
        if average != self.running_average:
            self.running_average = average
        return average

    def roll_over(self, now: datetime, value: float, window: timedelta) -> float:
        """Close the current window and open the next one seeded with ``value``."""
        now = ensure_utc(now)
        self.last_period_average = self.running_average
        self.period_start = now
        self.period_end = now + window
        self.observed_values = [value]
        self.running_average = value
        return value

    def observe_or_roll_over(self, now: datetime, value: float, window: timedelta) -> WindowUpdate:
        """Observe ``value``, rolling the window over once if it has expired."""
        try:
            return WindowUpdate(average=self.observe_value(now, value), rolled_over=False)
        except PeriodFinishedError:
            logger.debug(
                "Window ending %s expired at %s; rolling over (last average %s).",
                self.period_end.isoformat(),
                ensure_utc(now).isoformat(),
                self.running_average,
            )
            # the new window is seeded with the value, which counts as its first observation
            return WindowUpdate(average=self.roll_over(now, value, window), rolled_over=True)

    def last_value(self) -> Optional[float]:
        return self.observed_values[-1] if self.observed_values else None
