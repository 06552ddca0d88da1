"""Environment-backed configuration for the analytics store."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta
import os

from aggregation.moving_average import DEFAULT_WINDOW
from aggregation.outlier_guard import DEFAULT_OOB_LIMIT, resolve_oob_limit

_LOG_LEVELS = frozenset({"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"})
DEFAULT_INGEST_WORKERS = 8


@dataclass(frozen=True)
class StoreSettings:
    """Tunables the repositories need at write time."""

    oob_limit: float = DEFAULT_OOB_LIMIT
    moving_average_window: timedelta = DEFAULT_WINDOW


@dataclass(frozen=True)
class AggregationConfig:
    """Canonical configuration surface for the store, the CLI and ingest."""

    database_url: str
    oob_limit: float
    moving_average_window_seconds: int
    pool_size: int
    ingest_max_workers: int
    log_level: str

    def store_settings(self) -> StoreSettings:
        return StoreSettings(
            oob_limit=self.oob_limit,
            moving_average_window=timedelta(seconds=self.moving_average_window_seconds),
        )


def _read_env(name: str, default: str | None = None) -> str:
    value = os.getenv(name, default)
    if value is None or value.strip() == "":
        raise RuntimeError(f"Missing required environment variable: {name}")
    return value.strip()


def _read_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        value = int(raw.strip())
    except ValueError as exc:
        raise RuntimeError(f"Invalid integer value for {name}: {raw}") from exc
    return value


def _read_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        value = float(raw.strip())
    except ValueError as exc:
        raise RuntimeError(f"Invalid float value for {name}: {raw}") from exc
    return value


def _read_positive_int(name: str, default: int) -> int:
    value = _read_int(name, default)
    if value <= 0:
        raise RuntimeError(f"{name} must be positive, got {value}")
    return value


def load_aggregation_config(database_url: str | None = None) -> AggregationConfig:
    """Load and validate analytics store configuration from environment.

    An explicit ``database_url`` takes precedence over ``DATABASE_URL``.
    """
    raw_limit = _read_float("ANALYTICS_OOB_LIMIT", DEFAULT_OOB_LIMIT)
    try:
        oob_limit = resolve_oob_limit(raw_limit)
    except ValueError as exc:
        raise RuntimeError(f"Invalid float value for ANALYTICS_OOB_LIMIT: {raw_limit}") from exc

    log_level = os.getenv("LOG_LEVEL", "INFO").strip().upper()
    if log_level not in _LOG_LEVELS:
        raise RuntimeError(f"Invalid log level for LOG_LEVEL: {log_level}")

    return AggregationConfig(
        database_url=database_url or _read_env("DATABASE_URL"),
        oob_limit=oob_limit,
        moving_average_window_seconds=_read_positive_int(
            "MOVING_AVERAGE_WINDOW_SECONDS",
            int(DEFAULT_WINDOW.total_seconds()),
        ),
        pool_size=_read_positive_int("DB_POOL_SIZE", 5),
        ingest_max_workers=_read_positive_int("INGEST_MAX_WORKERS", DEFAULT_INGEST_WORKERS),
        log_level=log_level,
    )
