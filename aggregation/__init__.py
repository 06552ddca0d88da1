"""Upsert-consistent, time-windowed aggregation over the analytics schema."""

from aggregation.common import Clock, FixedClock, SystemClock
from aggregation.config import AggregationConfig, StoreSettings, load_aggregation_config
from aggregation.errors import (
    AggregationError,
    DuplicateOpenRecordError,
    DuplicateRecordError,
    NotFoundError,
    PeriodFinishedError,
    PrecisionLossError,
)
from aggregation.matchers import All, ByCompositeField, ByField, Matcher
from aggregation.moving_average import MovingAverageCalculator
from aggregation.outlier_guard import OutlierGuard
from aggregation.queries import Page
from aggregation.store import AnalyticsStore
from aggregation.upsert import UpsertOutcome, upsert

__all__ = [
    "AggregationConfig",
    "AggregationError",
    "All",
    "AnalyticsStore",
    "ByCompositeField",
    "ByField",
    "Clock",
    "DuplicateOpenRecordError",
    "DuplicateRecordError",
    "FixedClock",
    "Matcher",
    "MovingAverageCalculator",
    "NotFoundError",
    "OutlierGuard",
    "Page",
    "PeriodFinishedError",
    "PrecisionLossError",
    "StoreSettings",
    "SystemClock",
    "UpsertOutcome",
    "load_aggregation_config",
    "upsert",
]
