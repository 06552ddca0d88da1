"""Concurrent sampler fan-in feeding the store.

Sampling (network-bound in production) runs on a thread pool; every
observation is then written from the calling thread, one transaction each.
A failing target is logged and counted, never retried, and never stops the
remaining targets.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Iterable, Optional, Protocol, TypeVar

from aggregation.store import AnalyticsStore

logger = logging.getLogger(__name__)

TargetT = TypeVar("TargetT")
ObservationT = TypeVar("ObservationT")


@dataclass(frozen=True)
class RateTarget:
    platform: str
    asset: str

    def describe(self) -> str:
        return f"{self.platform}-{self.asset}"


@dataclass(frozen=True)
class PriceTarget:
    asset: str
    platform: str

    def describe(self) -> str:
        return f"{self.platform}:{self.asset}"


@dataclass(frozen=True)
class RateObservation:
    platform: str
    asset: str
    borrow_rate: float
    utilization_rate: float
    lending_rate: float
    available_amount: float
    borrowed_amount: float
    scraped_at: datetime


@dataclass(frozen=True)
class PriceObservation:
    asset: str
    platform: str
    price: float
    coin_in_lp: float
    pc_in_lp: float
    token_mint: str


class ObservationSource(Protocol):
    """Where samples come from (RPC readers in production, fakes in tests)."""

    def sample_interest_rate(self, target: RateTarget) -> RateObservation:
        """Return the current rate state of ``target``."""

    def sample_token_price(self, target: PriceTarget) -> PriceObservation:
        """Return the current price of ``target``."""


@dataclass
class IngestReport:
    attempted: int = 0
    written: int = 0
    failed: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failed


def _fan_in(
    targets: Iterable[TargetT],
    sample: Callable[[TargetT], ObservationT],
    write: Callable[[ObservationT], None],
    describe: Callable[[TargetT], str],
    max_workers: int,
) -> IngestReport:
    targets = list(targets)
    report = IngestReport(attempted=len(targets))
    if not targets:
        return report

    with ThreadPoolExecutor(max_workers=max_workers) as executor:
        future_to_target = {executor.submit(sample, target): target for target in targets}
        for future in as_completed(future_to_target):
            target = future_to_target[future]
            try:
                observation = future.result()
                write(observation)
            except Exception:
                logger.exception("Ingest failed for %s.", describe(target))
                report.failed.append(describe(target))
                continue
            report.written += 1

    logger.info(
        "Ingest finished: %d/%d written, %d failed.",
        report.written,
        report.attempted,
        len(report.failed),
    )
    return report


def ingest_interest_rates(
    store: AnalyticsStore,
    source: ObservationSource,
    targets: Iterable[RateTarget],
    max_workers: Optional[int] = None,
) -> IngestReport:
    def write(observation: RateObservation) -> None:
        store.rates.put_interest_rate(
            observation.platform,
            observation.asset,
            observation.borrow_rate,
            observation.utilization_rate,
            observation.lending_rate,
            observation.available_amount,
            observation.borrowed_amount,
            observation.scraped_at,
        )

    return _fan_in(
        targets,
        source.sample_interest_rate,
        write,
        RateTarget.describe,
        max_workers or store.ingest_max_workers,
    )


def ingest_token_prices(
    store: AnalyticsStore,
    source: ObservationSource,
    targets: Iterable[PriceTarget],
    max_workers: Optional[int] = None,
) -> IngestReport:
    def write(observation: PriceObservation) -> None:
        store.prices.put_token_price(
            observation.asset,
            observation.platform,
            observation.price,
            observation.coin_in_lp,
            observation.pc_in_lp,
            observation.token_mint,
        )

    return _fan_in(
        targets,
        source.sample_token_price,
        write,
        PriceTarget.describe,
        max_workers or store.ingest_max_workers,
    )
