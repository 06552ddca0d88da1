"""Lending interest rates, their moving averages and rate curves."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional

from sqlalchemy import select

from aggregation.errors import NotFoundError
from aggregation.matchers import All, ByField, Matcher
from aggregation.moving_average import MovingAverageCalculator
from aggregation.queries import fetch_rows
from aggregation.repositories.base import Repository
from aggregation.upsert import upsert
from backend.db.models import InterestRate, InterestRateCurve, InterestRateMovingAverage

logger = logging.getLogger(__name__)


def rate_name(platform: str, asset: str) -> str:
    """Moving-average key, ``PLATFORM-ASSET`` in upper case."""
    return f"{platform.upper()}-{asset.upper()}"


def _rate_window(row: InterestRateMovingAverage) -> MovingAverageCalculator:
    return MovingAverageCalculator(
        period_start=row.period_start,
        period_end=row.period_end,
        observed_values=row.period_observed_rates,
        running_average=row.period_running_average,
        last_period_average=row.last_period_running_average,
    )


class RateRepository(Repository):
    def put_interest_rate(
        self,
        platform: str,
        asset: str,
        borrow_rate: float,
        utilization_rate: float,
        lending_rate: float,
        available_amount: float,
        borrowed_amount: float,
        scraped_at: datetime,
    ) -> None:
        """Append a rate sample and fold ``lending_rate`` into its moving average.

        Both writes share one transaction, so concurrent scrapers of the same
        pair serialize on the moving-average row.
        """
        platform = platform.upper()
        asset = asset.upper()
        name = rate_name(platform, asset)
        window = self._settings.moving_average_window

        with self._transaction() as session:
            session.add(
                InterestRate(
                    platform=platform,
                    asset=asset,
                    lending_rate=lending_rate,
                    borrow_rate=borrow_rate,
                    utilization_rate=utilization_rate,
                    available_amount=available_amount,
                    borrowed_amount=borrowed_amount,
                    scraped_at=scraped_at,
                )
            )
            now = self._clock.now_utc()

            def create() -> InterestRateMovingAverage:
                calculator = MovingAverageCalculator.open_window(now, window, lending_rate)
                return InterestRateMovingAverage(
                    platform=platform,
                    asset=asset,
                    rate_name=name,
                    period_start=calculator.period_start,
                    period_end=calculator.period_end,
                    period_running_average=calculator.running_average,
                    period_observed_rates=list(calculator.observed_values),
                    last_period_running_average=calculator.last_period_average,
                )

            def observe(row: InterestRateMovingAverage) -> None:
                calculator = _rate_window(row)
                update = calculator.observe_or_roll_over(now, lending_rate, window)
                if update.rolled_over:
                    logger.info(
                        "Rate window rolled over for %s; last period average %s.",
                        name,
                        calculator.last_period_average,
                    )
                row.period_start = calculator.period_start
                row.period_end = calculator.period_end
                row.period_observed_rates = list(calculator.observed_values)
                row.period_running_average = calculator.running_average
                row.last_period_running_average = calculator.last_period_average

            upsert(
                session,
                InterestRateMovingAverage,
                ByField("rate_name", [name]),
                create=create,
                mutate=observe,
            )

    def get_interest_rate(self, matcher: Matcher, limit: Optional[int] = None) -> list[InterestRate]:
        """Samples ascending by scrape time; with ``limit`` the newest ones first."""
        return self._get_time_series(InterestRate, matcher, InterestRate.scraped_at, limit)

    def delete_interest_rate(self, matcher: Matcher) -> int:
        return self._delete(InterestRate, matcher)

    def delete_interest_rates(self) -> int:
        return self._delete(InterestRate, All())

    def get_interest_rate_moving_average(self, matcher: Matcher) -> list[InterestRateMovingAverage]:
        return self._get(InterestRateMovingAverage, matcher)

    def delete_interest_rate_moving_average(self, matcher: Matcher) -> int:
        return self._delete(InterestRateMovingAverage, matcher)

    def get_interest_rate_with_moving_average(
        self,
        ma_matcher: Matcher,
    ) -> list[tuple[InterestRateMovingAverage, InterestRate]]:
        """Pair each moving average with the newest sample of the same platform and asset.

        Everything is read in one transaction so the pairs reflect a single
        snapshot.
        """
        with self._transaction() as session:
            averages = fetch_rows(session, InterestRateMovingAverage, ma_matcher)
            if not averages:
                raise NotFoundError(
                    "no moving averages matched",
                    entity=InterestRateMovingAverage.__tablename__,
                    matcher=ma_matcher.describe(),
                )
            pairs: list[tuple[InterestRateMovingAverage, InterestRate]] = []
            for average in averages:
                latest = session.scalars(
                    select(InterestRate)
                    .where(
                        InterestRate.platform == average.platform,
                        InterestRate.asset == average.asset,
                    )
                    .order_by(InterestRate.scraped_at.desc(), InterestRate.id.desc())
                    .limit(1)
                ).first()
                if latest is None:
                    raise NotFoundError(
                        f"no interest rate sample for {average.rate_name}",
                        entity=InterestRate.__tablename__,
                        matcher=ma_matcher.describe(),
                    )
                pairs.append((average, latest))
            return pairs

    def put_interest_rate_curve(
        self,
        platform: str,
        asset: str,
        min_borrow_rate: float,
        max_borrow_rate: float,
        optimal_borrow_rate: float,
        optimal_utilization_rate: float,
        degen_borrow_rate: float,
        degen_utilization_rate: float,
    ) -> None:
        self._append(
            InterestRateCurve(
                platform=platform.upper(),
                asset=asset.upper(),
                rate_name=rate_name(platform, asset),
                min_borrow_rate=min_borrow_rate,
                max_borrow_rate=max_borrow_rate,
                optimal_borrow_rate=optimal_borrow_rate,
                optimal_utilization_rate=optimal_utilization_rate,
                degen_borrow_rate=degen_borrow_rate,
                degen_utilization_rate=degen_utilization_rate,
            )
        )

    def get_interest_rate_curve(self, matcher: Matcher) -> list[InterestRateCurve]:
        return self._get(InterestRateCurve, matcher)

    def delete_interest_rate_curve(self, matcher: Matcher) -> int:
        return self._delete(InterestRateCurve, matcher)
