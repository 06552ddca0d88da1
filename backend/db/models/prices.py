"""Token price model definitions."""

from __future__ import annotations

import logging
from datetime import datetime

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Double,
    Index,
    PrimaryKeyConstraint,
    String,
    false,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column

from backend.db.base import Base
from backend.db.types import FloatArray, IdentityKey, UtcDateTime

logger = logging.getLogger(__name__)


class TokenPrice(Base):
    """Latest observed price per asset identifier with its moving-average window."""

    __tablename__ = "token_price"
    __table_args__ = (
        PrimaryKeyConstraint("id", name="pk_token_price"),
        CheckConstraint("period_end >= period_start", name="ck_token_price_period_order"),
        Index("idx_token_price_asset_platform", "asset", "platform"),
        # "NA" rows are keyed by the raw (asset, platform) label, every other row by asset_identifier
        Index(
            "uq_token_price_asset_identifier",
            "asset_identifier",
            unique=True,
            postgresql_where=text("platform <> 'NA'"),
            sqlite_where=text("platform <> 'NA'"),
        ),
        Index(
            "uq_token_price_na_asset_platform",
            "asset",
            "platform",
            unique=True,
            postgresql_where=text("platform = 'NA'"),
            sqlite_where=text("platform = 'NA'"),
        ),
    )
    __matchable_fields__ = ("asset", "asset_identifier", "platform")

    id: Mapped[int] = mapped_column(IdentityKey, primary_key=True, autoincrement=True)
    asset: Mapped[str] = mapped_column(String, nullable=False)
    price: Mapped[float] = mapped_column(Double, nullable=False)
    platform: Mapped[str] = mapped_column(String, nullable=False)
    coin_in_lp: Mapped[float] = mapped_column(Double, nullable=False)
    pc_in_lp: Mapped[float] = mapped_column(Double, nullable=False)
    asset_identifier: Mapped[str] = mapped_column(String, nullable=False)
    period_start: Mapped[datetime] = mapped_column(UtcDateTime, nullable=False)
    period_end: Mapped[datetime] = mapped_column(UtcDateTime, nullable=False)
    period_observed_prices: Mapped[list[float]] = mapped_column(FloatArray, nullable=False)
    period_running_average: Mapped[float] = mapped_column(Double, nullable=False)
    last_period_average: Mapped[float] = mapped_column(Double, nullable=False)
    feed_stopped: Mapped[bool] = mapped_column(Boolean, nullable=False, server_default=false())
    token_mint: Mapped[str] = mapped_column(String, nullable=False)


class HistoricTsharePrice(Base):
    """Append-only history of vault share (tShare) prices."""

    __tablename__ = "historic_tshare_price"
    __table_args__ = (
        PrimaryKeyConstraint("id", name="pk_historic_tshare_price"),
        Index("idx_historic_tshare_price_farm_scraped", "farm_name", "scraped_at"),
    )
    __matchable_fields__ = ("farm_name",)

    id: Mapped[int] = mapped_column(IdentityKey, primary_key=True, autoincrement=True)
    farm_name: Mapped[str] = mapped_column(String, nullable=False)
    price: Mapped[float] = mapped_column(Double, nullable=False)
    total_supply: Mapped[float] = mapped_column(Double, nullable=False)
    holder_count: Mapped[float] = mapped_column(Double, nullable=False)
    scraped_at: Mapped[datetime] = mapped_column(UtcDateTime, nullable=False)


class TokenBalance(Base):
    """Append-only token account balance samples."""

    __tablename__ = "token_balance"
    __table_args__ = (
        PrimaryKeyConstraint("id", name="pk_token_balance"),
        Index("idx_token_balance_account", "token_account"),
    )
    __matchable_fields__ = ("token_account", "identifier")

    id: Mapped[int] = mapped_column(IdentityKey, primary_key=True, autoincrement=True)
    token_account: Mapped[str] = mapped_column(String, nullable=False)
    token_mint: Mapped[str] = mapped_column(String, nullable=False)
    identifier: Mapped[str] = mapped_column(String, nullable=False)
    balance: Mapped[float] = mapped_column(Double, nullable=False)
    scraped_at: Mapped[datetime] = mapped_column(UtcDateTime, nullable=False)
