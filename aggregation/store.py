"""Entry point bundling the repositories over one engine."""

from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy import Engine
from sqlalchemy.orm import Session, sessionmaker

from aggregation.common import Clock, SystemClock
from aggregation.config import DEFAULT_INGEST_WORKERS, AggregationConfig, StoreSettings
from aggregation.repositories import (
    PositionRepository,
    PriceRepository,
    RateRepository,
    VaultRepository,
)
from backend.db.session import build_session_factory, create_analytics_engine

logger = logging.getLogger(__name__)


class AnalyticsStore:
    """Thread-safe facade; every operation runs in its own transaction."""

    def __init__(
        self,
        session_factory: sessionmaker[Session],
        *,
        settings: Optional[StoreSettings] = None,
        clock: Optional[Clock] = None,
        ingest_max_workers: int = DEFAULT_INGEST_WORKERS,
    ) -> None:
        self.session_factory = session_factory
        self.ingest_max_workers = ingest_max_workers
        self.settings = settings or StoreSettings()
        self.clock = clock or SystemClock()

        shared = {"clock": self.clock, "settings": self.settings}
        self.prices = PriceRepository(session_factory, **shared)
        self.rates = RateRepository(session_factory, **shared)
        self.vaults = VaultRepository(session_factory, **shared)
        self.positions = PositionRepository(session_factory, **shared)

    @classmethod
    def from_engine(
        cls,
        engine: Engine,
        *,
        settings: Optional[StoreSettings] = None,
        clock: Optional[Clock] = None,
        ingest_max_workers: int = DEFAULT_INGEST_WORKERS,
    ) -> "AnalyticsStore":
        return cls(
            build_session_factory(engine),
            settings=settings,
            clock=clock,
            ingest_max_workers=ingest_max_workers,
        )

    @classmethod
    def from_config(cls, config: AggregationConfig, *, clock: Optional[Clock] = None) -> "AnalyticsStore":
        engine = create_analytics_engine(config.database_url, pool_size=config.pool_size)
        logger.info(
            "Analytics store ready (oob_limit=%s, window=%ss).",
            config.oob_limit,
            config.moving_average_window_seconds,
        )
        return cls.from_engine(
            engine,
            settings=config.store_settings(),
            clock=clock,
            ingest_max_workers=config.ingest_max_workers,
        )

    @property
    def engine(self) -> Engine:
        return self.session_factory.kw["bind"]

    def close(self) -> None:
        """Release pooled connections."""
        self.engine.dispose()
