"""Vault, deposit tracking, yield, optimizer and staking writes."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from aggregation.common import FixedClock
from aggregation.errors import PrecisionLossError
from aggregation.matchers import All, ByField
from aggregation.repositories import MAX_STORED_UINT
from aggregation.store import AnalyticsStore

COMPOUND_TS = datetime(2026, 1, 1, 0, 0, 10, tzinfo=timezone.utc)


def test_vault_account_upserts_by_address(store: AnalyticsStore, clock: FixedClock) -> None:
    store.vaults.put_vault_account("RAY-USDC", "vault1", b"\x01\x02", clock.now_utc())
    vault = store.vaults.get_vault_account(ByField("account_address", ["vault1"]))[0]
    assert vault.last_compound_ts is None
    assert vault.last_compound_ts_unix == 0
    assert vault.account_data == b"\x01\x02"

    store.vaults.put_vault_account("RAY-USDC-V2", "vault1", b"\x03", clock.advance(60), COMPOUND_TS)
    vaults = store.vaults.get_vault_account(All())
    assert len(vaults) == 1
    assert vaults[0].farm_name == "RAY-USDC-V2"
    assert vaults[0].account_data == b"\x03"
    assert vaults[0].last_compound_ts == COMPOUND_TS
    assert vaults[0].last_compound_ts_unix == int(COMPOUND_TS.timestamp())
    assert vaults[0].to_dict()["account_data"] == "03"

    assert store.vaults.delete_vault_account(ByField("farm_name", ["RAY-USDC-V2"])) == 1


def test_vault_tvl_is_a_time_series(store: AnalyticsStore, clock: FixedClock) -> None:
    for value_locked in (10.0, 20.0, 30.0):
        store.vaults.put_vault_tvl("RAY-USDC", 1.0, 2.0, value_locked, clock.advance(60))

    matcher = ByField("farm_name", ["RAY-USDC"])
    assert [row.value_locked for row in store.vaults.get_vault_tvl(matcher)] == [10.0, 20.0, 30.0]
    assert [row.value_locked for row in store.vaults.get_vault_tvl(matcher, limit=1)] == [30.0]
    assert store.vaults.delete_vault_tvl(matcher) == 3


def test_deposit_tracking_keeps_owner_on_update(store: AnalyticsStore, clock: FixedClock) -> None:
    store.vaults.put_deposit_tracking_account("owner1", "dt1", b"a", "vault1", clock.now_utc(), 1.0, 1.0, 1.0)
    store.vaults.put_deposit_tracking_account("owner2", "dt1", b"b", "vault2", clock.advance(5), 2.0, 3.0, 4.0)

    rows = store.vaults.get_deposit_tracking_account(ByField("owner_address", ["owner1"]))
    assert len(rows) == 1
    row = rows[0]
    assert row.vault_account_address == "vault1"
    assert (row.current_balance, row.current_shares, row.balance_usd_value) == (2.0, 3.0, 4.0)
    assert row.account_data == b"b"
    assert store.vaults.delete_deposit_tracking_account(ByField("account_address", ["dt1"])) == 1


def test_realize_and_advertised_yield(store: AnalyticsStore, clock: FixedClock) -> None:
    store.vaults.put_realize_yield("vault1", "RAY-USDC", 100.0, 0.12, 0.001, clock.advance(1))
    store.vaults.put_realize_yield("vault1", "RAY-USDC", 110.0, 0.13, 0.002, clock.advance(1))
    newest = store.vaults.get_realize_yield(ByField("vault_address", ["vault1"]), limit=1)
    assert [row.apr for row in newest] == [0.13]

    store.vaults.put_advertised_yield("vault1", "RAY-USDC", 0.5, clock.now_utc())
    store.vaults.put_advertised_yield("vault2", "RAY-USDC", 0.6, clock.advance(1))
    advertised = store.vaults.get_advertised_yield(All())
    assert len(advertised) == 1
    assert (advertised[0].vault_address, advertised[0].apr) == ("vault2", 0.6)

    assert store.vaults.delete_realize_yield(All()) == 2
    assert store.vaults.delete_advertised_yield(ByField("farm_name", ["RAY-USDC"])) == 1


def test_lending_optimizer_distribution_replaces_split(store: AnalyticsStore) -> None:
    store.vaults.put_lending_optimizer_distribution("USDC", ["TULIP", "SOLEND"], [10.0, 20.0])
    store.vaults.put_lending_optimizer_distribution("USDC", ["MANGO"], [5])

    rows = store.vaults.get_lending_optimizer_distribution(ByField("vault_name", ["USDC"]))
    assert len(rows) == 1
    assert rows[0].standalone_vault_platforms == ["MANGO"]
    assert rows[0].standalone_vault_deposited_balances == [5.0]

    with pytest.raises(ValueError, match="equal length"):
        store.vaults.put_lending_optimizer_distribution("USDC", ["MANGO"], [])
    assert store.vaults.delete_lending_optimizer_distribution(All()) == 1


def test_staking_analytic_price_uint_range(store: AnalyticsStore, clock: FixedClock) -> None:
    store.vaults.put_staking_analytic(1.0, 2.0, 3.0, 0.1, 1.5, MAX_STORED_UINT, 4, clock.now_utc())
    rows = store.vaults.get_staking_analytic()
    assert rows[0].price_uint == 2**63 - 1

    with pytest.raises(PrecisionLossError, match="staking_analytic: price_uint"):
        store.vaults.put_staking_analytic(1.0, 2.0, 3.0, 0.1, 1.5, 2**63, 4, clock.now_utc())
    assert len(store.vaults.get_staking_analytic()) == 1
    assert store.vaults.delete_staking_analytic() == 1


def test_naive_timestamps_are_rejected(store: AnalyticsStore) -> None:
    with pytest.raises(Exception, match="Naive datetime"):
        store.vaults.put_vault_tvl("RAY-USDC", 1.0, 1.0, 1.0, datetime(2026, 1, 1) + timedelta(hours=1))
