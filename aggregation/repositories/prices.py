"""Token prices, tShare price history and token balances."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional

from aggregation.matchers import All, ByCompositeField, ByField, Matcher
from aggregation.moving_average import MovingAverageCalculator
from aggregation.outlier_guard import OutlierGuard
from aggregation.queries import Page, fetch_page
from aggregation.repositories.base import Repository
from aggregation.upsert import upsert
from backend.db.models import HistoricTsharePrice, TokenBalance, TokenPrice

logger = logging.getLogger(__name__)

# Pseudo-platform for prices that have no venue; such rows are keyed by (asset, platform).
NA_PLATFORM = "NA"


def derive_asset_identifier(platform: str, asset: str) -> str:
    """Build the unique price key for ``asset`` quoted on ``platform``.

    Legacy LP names carry a venue prefix (``ORCA-ORCA-USDC``); only the
    second and third chunks are kept, anything after them is dropped.
    """
    chunks = asset.split("-")
    if len(chunks) >= 3:
        return f"{platform}-{chunks[1]}-{chunks[2]}"
    return f"{platform}-{asset}"


def token_price_matcher(platform: str, asset: str) -> Matcher:
    if platform == NA_PLATFORM:
        return ByCompositeField(("asset", "platform"), [(asset, platform)])
    return ByField("asset_identifier", [derive_asset_identifier(platform, asset)])


def _price_window(row: TokenPrice) -> MovingAverageCalculator:
    return MovingAverageCalculator(
        period_start=row.period_start,
        period_end=row.period_end,
        observed_values=row.period_observed_prices,
        running_average=row.period_running_average,
        last_period_average=row.last_period_average,
    )


def _store_price_window(row: TokenPrice, calculator: MovingAverageCalculator) -> None:
    row.period_start = calculator.period_start
    row.period_end = calculator.period_end
    # fresh list so the ORM sees the change
    row.period_observed_prices = list(calculator.observed_values)
    row.period_running_average = calculator.running_average
    row.last_period_average = calculator.last_period_average


class PriceRepository(Repository):
    """Writes and reads for ``token_price``, ``historic_tshare_price`` and ``token_balance``."""

    @property
    def guard(self) -> OutlierGuard:
        return OutlierGuard(self._settings.oob_limit)

    def put_token_price(
        self,
        asset: str,
        platform: str,
        price: float,
        coin_in_lp: float,
        pc_in_lp: float,
        token_mint: str,
    ) -> None:
        """Record a price sample, folding it into the asset's moving-average window.

        Samples deviating beyond the OOB limit are stored as the latest raw
        ``price`` and flip ``feed_stopped`` but never enter the window. The
        ``token_mint`` of an existing row is never overwritten.
        """
        asset_identifier = derive_asset_identifier(platform, asset)
        matcher = token_price_matcher(platform, asset)
        guard = self.guard
        window = self._settings.moving_average_window

        with self._transaction() as session:
            now = self._clock.now_utc()

            def create() -> TokenPrice:
                calculator = MovingAverageCalculator.open_window(now, window, price)
                return TokenPrice(
                    asset=asset,
                    platform=platform,
                    asset_identifier=asset_identifier,
                    price=price,
                    coin_in_lp=coin_in_lp,
                    pc_in_lp=pc_in_lp,
                    period_start=calculator.period_start,
                    period_end=calculator.period_end,
                    period_observed_prices=list(calculator.observed_values),
                    period_running_average=calculator.running_average,
                    last_period_average=calculator.last_period_average,
                    feed_stopped=False,
                    token_mint=token_mint,
                )

            def observe(row: TokenPrice) -> None:
                calculator = _price_window(row)
                previous = calculator.last_value()
                if previous is None:
                    previous = calculator.running_average
                decision = guard.evaluate(previous, price)

                row.price = price
                row.coin_in_lp = coin_in_lp
                row.pc_in_lp = pc_in_lp

                if not decision.accepted:
                    logger.warning(
                        "Rejected out-of-bounds price for %s: %s deviates %.2f%% from %s (limit %.2f%%).",
                        row.asset_identifier,
                        price,
                        decision.deviation_pct,
                        previous,
                        decision.limit,
                    )
                    row.feed_stopped = True
                    return

                update = calculator.observe_or_roll_over(now, price, window)
                if update.rolled_over:
                    logger.info(
                        "Price window rolled over for %s; last period average %s.",
                        row.asset_identifier,
                        calculator.last_period_average,
                    )
                _store_price_window(row, calculator)
                row.feed_stopped = False

            upsert(session, TokenPrice, matcher, create=create, mutate=observe)

    def get_token_price(self, matcher: Matcher, limit: Optional[int] = None) -> list[TokenPrice]:
        return self._get(TokenPrice, matcher, limit=limit)

    def delete_token_price(self, matcher: Matcher) -> int:
        return self._delete(TokenPrice, matcher)

    def put_historic_tshare_price(
        self,
        farm_name: str,
        price: float,
        total_supply: float,
        holder_count: float,
        scraped_at: datetime,
    ) -> None:
        self._append(
            HistoricTsharePrice(
                farm_name=farm_name,
                price=price,
                total_supply=total_supply,
                holder_count=holder_count,
                scraped_at=scraped_at,
            )
        )

    def get_historic_tshare_price(self, matcher: Matcher = All()) -> list[HistoricTsharePrice]:
        return self._get(HistoricTsharePrice, matcher)

    def delete_historic_tshare_price(self, matcher: Matcher) -> int:
        return self._delete(HistoricTsharePrice, matcher)

    def query_paginated_historic_prices(
        self,
        matcher: Matcher,
        started_at: datetime,
        ended_at: datetime,
        page: Optional[int] = None,
        per_page: Optional[int] = None,
        sort_by_time: bool = False,
    ) -> Page[HistoricTsharePrice]:
        """tShare prices scraped within ``[started_at, ended_at]``."""
        order_by = HistoricTsharePrice.scraped_at.asc() if sort_by_time else None
        with self._transaction() as session:
            return fetch_page(
                session,
                HistoricTsharePrice,
                matcher,
                page=page,
                per_page=per_page,
                order_by=order_by,
                where=(HistoricTsharePrice.scraped_at.between(started_at, ended_at),),
            )

    def put_token_balance(
        self,
        token_account: str,
        token_mint: str,
        identifier: str,
        balance: float,
        scraped_at: datetime,
    ) -> None:
        self._append(
            TokenBalance(
                token_account=token_account,
                token_mint=token_mint,
                identifier=identifier,
                balance=balance,
                scraped_at=scraped_at,
            )
        )

    def get_token_balance(self, matcher: Matcher) -> list[TokenBalance]:
        return self._get(TokenBalance, matcher)

    def delete_token_balance(self, matcher: Matcher) -> int:
        return self._delete(TokenBalance, matcher)
