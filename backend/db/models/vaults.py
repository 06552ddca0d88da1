"""Vault, yield and staking model definitions."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional

from sqlalchemy import (
    BigInteger,
    CheckConstraint,
    Double,
    Index,
    LargeBinary,
    PrimaryKeyConstraint,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from backend.db.base import Base
from backend.db.types import FloatArray, IdentityKey, TextArray, UtcDateTime

logger = logging.getLogger(__name__)


class Vault(Base):
    """Raw vault account state keyed by account address."""

    __tablename__ = "vault"
    __table_args__ = (
        PrimaryKeyConstraint("id", name="pk_vault"),
        UniqueConstraint("account_address", name="uq_vault_account_address"),
    )
    __matchable_fields__ = ("farm_name", "account_address")

    id: Mapped[int] = mapped_column(IdentityKey, primary_key=True, autoincrement=True)
    account_address: Mapped[str] = mapped_column(String, nullable=False)
    account_data: Mapped[bytes] = mapped_column(LargeBinary, nullable=False)
    farm_name: Mapped[str] = mapped_column(String, nullable=False)
    scraped_at: Mapped[datetime] = mapped_column(UtcDateTime, nullable=False)
    last_compound_ts: Mapped[Optional[datetime]] = mapped_column(UtcDateTime, nullable=True)
    last_compound_ts_unix: Mapped[int] = mapped_column(BigInteger, nullable=False)


class VaultTvl(Base):
    """Append-only total value locked samples."""

    __tablename__ = "vault_tvl"
    __table_args__ = (
        PrimaryKeyConstraint("id", name="pk_vault_tvl"),
        Index("idx_vault_tvl_farm_scraped", "farm_name", "scraped_at"),
    )
    __matchable_fields__ = ("farm_name",)

    id: Mapped[int] = mapped_column(IdentityKey, primary_key=True, autoincrement=True)
    farm_name: Mapped[str] = mapped_column(String, nullable=False)
    total_shares: Mapped[float] = mapped_column(Double, nullable=False)
    total_underlying: Mapped[float] = mapped_column(Double, nullable=False)
    value_locked: Mapped[float] = mapped_column(Double, nullable=False)
    scraped_at: Mapped[datetime] = mapped_column(UtcDateTime, nullable=False)


class DepositTracking(Base):
    """Per-depositor tracking account state."""

    __tablename__ = "deposit_tracking"
    __table_args__ = (
        PrimaryKeyConstraint("id", name="pk_deposit_tracking"),
        UniqueConstraint("account_address", name="uq_deposit_tracking_account_address"),
        Index("idx_deposit_tracking_owner", "owner_address"),
    )
    __matchable_fields__ = ("owner_address", "account_address", "vault_account_address")

    id: Mapped[int] = mapped_column(IdentityKey, primary_key=True, autoincrement=True)
    owner_address: Mapped[str] = mapped_column(String, nullable=False)
    account_address: Mapped[str] = mapped_column(String, nullable=False)
    account_data: Mapped[bytes] = mapped_column(LargeBinary, nullable=False)
    vault_account_address: Mapped[str] = mapped_column(String, nullable=False)
    scraped_at: Mapped[datetime] = mapped_column(UtcDateTime, nullable=False)
    current_balance: Mapped[float] = mapped_column(Double, nullable=False)
    current_shares: Mapped[float] = mapped_column(Double, nullable=False)
    balance_usd_value: Mapped[float] = mapped_column(Double, nullable=False)


class RealizeYield(Base):
    """Append-only realized yield samples."""

    __tablename__ = "realize_yield"
    __table_args__ = (
        PrimaryKeyConstraint("id", name="pk_realize_yield"),
        Index("idx_realize_yield_farm_scraped", "farm_name", "scraped_at"),
    )
    __matchable_fields__ = ("vault_address", "farm_name")

    id: Mapped[int] = mapped_column(IdentityKey, primary_key=True, autoincrement=True)
    vault_address: Mapped[str] = mapped_column(String, nullable=False)
    farm_name: Mapped[str] = mapped_column(String, nullable=False)
    total_deposited_balance: Mapped[float] = mapped_column(Double, nullable=False)
    gain_per_second: Mapped[float] = mapped_column(Double, nullable=False)
    apr: Mapped[float] = mapped_column(Double, nullable=False)
    scraped_at: Mapped[datetime] = mapped_column(UtcDateTime, nullable=False)


class AdvertisedYield(Base):
    """Latest advertised APR per farm."""

    __tablename__ = "advertised_yield"
    __table_args__ = (
        PrimaryKeyConstraint("id", name="pk_advertised_yield"),
        UniqueConstraint("farm_name", name="uq_advertised_yield_farm_name"),
    )
    __matchable_fields__ = ("farm_name",)

    id: Mapped[int] = mapped_column(IdentityKey, primary_key=True, autoincrement=True)
    vault_address: Mapped[str] = mapped_column(String, nullable=False)
    farm_name: Mapped[str] = mapped_column(String, nullable=False)
    apr: Mapped[float] = mapped_column(Double, nullable=False)
    scraped_at: Mapped[datetime] = mapped_column(UtcDateTime, nullable=False)


class LendingOptimizerDistribution(Base):
    """Current deposit split of a lending optimizer vault across platforms."""

    __tablename__ = "lending_optimizer_distribution"
    __table_args__ = (
        PrimaryKeyConstraint("id", name="pk_lending_optimizer_distribution"),
        UniqueConstraint("vault_name", name="uq_lending_optimizer_distribution_vault_name"),
    )
    __matchable_fields__ = ("vault_name",)

    id: Mapped[int] = mapped_column(IdentityKey, primary_key=True, autoincrement=True)
    vault_name: Mapped[str] = mapped_column(String, nullable=False)
    standalone_vault_platforms: Mapped[list[str]] = mapped_column(TextArray, nullable=False)
    standalone_vault_deposited_balances: Mapped[list[float]] = mapped_column(
        FloatArray,
        nullable=False,
    )


class StakingAnalytic(Base):
    """Append-only staking program analytics."""

    __tablename__ = "staking_analytic"
    __table_args__ = (
        PrimaryKeyConstraint("id", name="pk_staking_analytic"),
        CheckConstraint("price_uint >= 0", name="ck_staking_analytic_price_uint_nonneg"),
    )

    id: Mapped[int] = mapped_column(IdentityKey, primary_key=True, autoincrement=True)
    tokens_staked: Mapped[float] = mapped_column(Double, nullable=False)
    tokens_locked: Mapped[float] = mapped_column(Double, nullable=False)
    stulip_total_supply: Mapped[float] = mapped_column(Double, nullable=False)
    apy: Mapped[float] = mapped_column(Double, nullable=False)
    price_float: Mapped[float] = mapped_column(Double, nullable=False)
    price_uint: Mapped[int] = mapped_column(BigInteger, nullable=False)
    active_unstakes: Mapped[int] = mapped_column(BigInteger, nullable=False)
    scraped_at: Mapped[datetime] = mapped_column(UtcDateTime, nullable=False)
