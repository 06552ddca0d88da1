"""Vault accounts, TVL, yields, lending optimizer splits and staking analytics."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional, Sequence

from aggregation.common import ensure_utc
from aggregation.errors import PrecisionLossError
from aggregation.matchers import All, ByField, Matcher
from aggregation.repositories.base import Repository
from aggregation.upsert import upsert
from backend.db.models import (
    AdvertisedYield,
    DepositTracking,
    LendingOptimizerDistribution,
    RealizeYield,
    StakingAnalytic,
    Vault,
    VaultTvl,
)

logger = logging.getLogger(__name__)

MAX_STORED_UINT = 2**63 - 1


class VaultRepository(Repository):
    def put_vault_account(
        self,
        farm_name: str,
        account_address: str,
        account_data: bytes,
        scraped_at: datetime,
        last_compound_ts: Optional[datetime] = None,
    ) -> None:
        last_compound_ts_unix = int(ensure_utc(last_compound_ts).timestamp()) if last_compound_ts else 0

        def create() -> Vault:
            return Vault(
                farm_name=farm_name,
                account_address=account_address,
                account_data=account_data,
                scraped_at=scraped_at,
                last_compound_ts=last_compound_ts,
                last_compound_ts_unix=last_compound_ts_unix,
            )

        def refresh(row: Vault) -> None:
            row.farm_name = farm_name
            row.account_data = account_data
            row.scraped_at = scraped_at
            row.last_compound_ts = last_compound_ts
            row.last_compound_ts_unix = last_compound_ts_unix

        with self._transaction() as session:
            upsert(session, Vault, ByField("account_address", [account_address]), create=create, mutate=refresh)

    def get_vault_account(self, matcher: Matcher) -> list[Vault]:
        return self._get(Vault, matcher)

    def delete_vault_account(self, matcher: Matcher) -> int:
        return self._delete(Vault, matcher)

    def put_vault_tvl(
        self,
        farm_name: str,
        total_shares: float,
        total_underlying: float,
        value_locked: float,
        scraped_at: datetime,
    ) -> None:
        self._append(
            VaultTvl(
                farm_name=farm_name,
                total_shares=total_shares,
                total_underlying=total_underlying,
                value_locked=value_locked,
                scraped_at=scraped_at,
            )
        )

    def get_vault_tvl(self, matcher: Matcher, limit: Optional[int] = None) -> list[VaultTvl]:
        return self._get_time_series(VaultTvl, matcher, VaultTvl.scraped_at, limit)

    def delete_vault_tvl(self, matcher: Matcher) -> int:
        return self._delete(VaultTvl, matcher)

    def put_deposit_tracking_account(
        self,
        owner_address: str,
        account_address: str,
        account_data: bytes,
        vault_account_address: str,
        scraped_at: datetime,
        current_balance: float,
        current_shares: float,
        balance_usd_value: float,
    ) -> None:
        """Upsert by tracking account; owner and vault never change after creation."""

        def create() -> DepositTracking:
            return DepositTracking(
                owner_address=owner_address,
                account_address=account_address,
                account_data=account_data,
                vault_account_address=vault_account_address,
                scraped_at=scraped_at,
                current_balance=current_balance,
                current_shares=current_shares,
                balance_usd_value=balance_usd_value,
            )

        def refresh(row: DepositTracking) -> None:
            row.account_data = account_data
            row.scraped_at = scraped_at
            row.current_balance = current_balance
            row.current_shares = current_shares
            row.balance_usd_value = balance_usd_value

        with self._transaction() as session:
            upsert(
                session,
                DepositTracking,
                ByField("account_address", [account_address]),
                create=create,
                mutate=refresh,
            )

    def get_deposit_tracking_account(self, matcher: Matcher) -> list[DepositTracking]:
        return self._get(DepositTracking, matcher)

    def delete_deposit_tracking_account(self, matcher: Matcher) -> int:
        return self._delete(DepositTracking, matcher)

    def put_realize_yield(
        self,
        vault_address: str,
        farm_name: str,
        total_deposited_balance: float,
        apr: float,
        gain_per_second: float,
        scraped_at: datetime,
    ) -> None:
        self._append(
            RealizeYield(
                vault_address=vault_address,
                farm_name=farm_name,
                total_deposited_balance=total_deposited_balance,
                gain_per_second=gain_per_second,
                apr=apr,
                scraped_at=scraped_at,
            )
        )

    def get_realize_yield(self, matcher: Matcher, limit: Optional[int] = None) -> list[RealizeYield]:
        return self._get_time_series(RealizeYield, matcher, RealizeYield.scraped_at, limit)

    def delete_realize_yield(self, matcher: Matcher) -> int:
        return self._delete(RealizeYield, matcher)

    def put_advertised_yield(
        self,
        vault_address: str,
        farm_name: str,
        apr: float,
        scraped_at: datetime,
    ) -> None:
        def create() -> AdvertisedYield:
            return AdvertisedYield(
                vault_address=vault_address,
                farm_name=farm_name,
                apr=apr,
                scraped_at=scraped_at,
            )

        def refresh(row: AdvertisedYield) -> None:
            row.vault_address = vault_address
            row.apr = apr
            row.scraped_at = scraped_at

        with self._transaction() as session:
            upsert(session, AdvertisedYield, ByField("farm_name", [farm_name]), create=create, mutate=refresh)

    def get_advertised_yield(self, matcher: Matcher) -> list[AdvertisedYield]:
        return self._get(AdvertisedYield, matcher)

    def delete_advertised_yield(self, matcher: Matcher) -> int:
        return self._delete(AdvertisedYield, matcher)

    def put_lending_optimizer_distribution(
        self,
        vault_name: str,
        standalone_vault_platforms: Sequence[str],
        standalone_vault_deposited_balances: Sequence[float],
    ) -> None:
        if len(standalone_vault_platforms) != len(standalone_vault_deposited_balances):
            raise ValueError(
                "standalone vault platforms and deposited balances must have equal length: "
                f"{len(standalone_vault_platforms)} != {len(standalone_vault_deposited_balances)}"
            )
        platforms = list(standalone_vault_platforms)
        balances = [float(balance) for balance in standalone_vault_deposited_balances]

        def create() -> LendingOptimizerDistribution:
            return LendingOptimizerDistribution(
                vault_name=vault_name,
                standalone_vault_platforms=platforms,
                standalone_vault_deposited_balances=balances,
            )

        def refresh(row: LendingOptimizerDistribution) -> None:
            row.standalone_vault_platforms = list(platforms)
            row.standalone_vault_deposited_balances = list(balances)

        with self._transaction() as session:
            upsert(
                session,
                LendingOptimizerDistribution,
                ByField("vault_name", [vault_name]),
                create=create,
                mutate=refresh,
            )

    def get_lending_optimizer_distribution(self, matcher: Matcher) -> list[LendingOptimizerDistribution]:
        return self._get(LendingOptimizerDistribution, matcher)

    def delete_lending_optimizer_distribution(self, matcher: Matcher) -> int:
        return self._delete(LendingOptimizerDistribution, matcher)

    def put_staking_analytic(
        self,
        tokens_staked: float,
        tokens_locked: float,
        stulip_total_supply: float,
        apy: float,
        price_float: float,
        price_uint: int,
        active_unstakes: int,
        scraped_at: datetime,
    ) -> None:
        if price_uint < 0 or price_uint > MAX_STORED_UINT:
            raise PrecisionLossError(
                f"price_uint {price_uint} does not fit a signed 64-bit column",
                entity=StakingAnalytic.__tablename__,
            )
        self._append(
            StakingAnalytic(
                tokens_staked=tokens_staked,
                tokens_locked=tokens_locked,
                stulip_total_supply=stulip_total_supply,
                apy=apy,
                price_float=price_float,
                price_uint=price_uint,
                active_unstakes=active_unstakes,
                scraped_at=scraped_at,
            )
        )

    def get_staking_analytic(self, matcher: Matcher = All()) -> list[StakingAnalytic]:
        return self._get(StakingAnalytic, matcher)

    def delete_staking_analytic(self, matcher: Matcher = All()) -> int:
        return self._delete(StakingAnalytic, matcher)
