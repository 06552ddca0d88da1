"""Lending interest rate model definitions."""

from __future__ import annotations

import logging
from datetime import datetime

from sqlalchemy import (
    CheckConstraint,
    Double,
    Index,
    PrimaryKeyConstraint,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from backend.db.base import Base
from backend.db.types import FloatArray, IdentityKey, UtcDateTime

logger = logging.getLogger(__name__)

_UPPER_KEYS = frozenset({"platform", "asset", "rate_name"})


class InterestRate(Base):
    """Append-only lending/borrow rate samples per platform and asset."""

    __tablename__ = "interest_rate"
    __table_args__ = (
        PrimaryKeyConstraint("id", name="pk_interest_rate"),
        CheckConstraint("platform = upper(platform)", name="ck_interest_rate_platform_upper"),
        CheckConstraint("asset = upper(asset)", name="ck_interest_rate_asset_upper"),
        Index("idx_interest_rate_platform_asset_scraped", "platform", "asset", "scraped_at"),
    )
    __matchable_fields__ = ("asset", "platform")
    __case_insensitive_fields__ = _UPPER_KEYS

    id: Mapped[int] = mapped_column(IdentityKey, primary_key=True, autoincrement=True)
    platform: Mapped[str] = mapped_column(String, nullable=False)
    asset: Mapped[str] = mapped_column(String, nullable=False)
    lending_rate: Mapped[float] = mapped_column(Double, nullable=False)
    borrow_rate: Mapped[float] = mapped_column(Double, nullable=False)
    utilization_rate: Mapped[float] = mapped_column(Double, nullable=False)
    available_amount: Mapped[float] = mapped_column(Double, nullable=False)
    borrowed_amount: Mapped[float] = mapped_column(Double, nullable=False)
    scraped_at: Mapped[datetime] = mapped_column(UtcDateTime, nullable=False)


class InterestRateCurve(Base):
    """Reserve interest rate curve parameters."""

    __tablename__ = "interest_rate_curve"
    __table_args__ = (
        PrimaryKeyConstraint("id", name="pk_interest_rate_curve"),
        CheckConstraint("rate_name = upper(rate_name)", name="ck_interest_rate_curve_rate_name_upper"),
    )
    __matchable_fields__ = ("asset", "platform", "rate_name")
    __case_insensitive_fields__ = _UPPER_KEYS

    id: Mapped[int] = mapped_column(IdentityKey, primary_key=True, autoincrement=True)
    platform: Mapped[str] = mapped_column(String, nullable=False)
    asset: Mapped[str] = mapped_column(String, nullable=False)
    rate_name: Mapped[str] = mapped_column(String, nullable=False)
    min_borrow_rate: Mapped[float] = mapped_column(Double, nullable=False)
    max_borrow_rate: Mapped[float] = mapped_column(Double, nullable=False)
    optimal_borrow_rate: Mapped[float] = mapped_column(Double, nullable=False)
    optimal_utilization_rate: Mapped[float] = mapped_column(Double, nullable=False)
    degen_borrow_rate: Mapped[float] = mapped_column(Double, nullable=False)
    degen_utilization_rate: Mapped[float] = mapped_column(Double, nullable=False)


class InterestRateMovingAverage(Base):
    """Windowed moving average of lending rates, one row per PLATFORM-ASSET."""

    __tablename__ = "interest_rate_moving_average"
    __table_args__ = (
        PrimaryKeyConstraint("id", name="pk_interest_rate_moving_average"),
        UniqueConstraint("rate_name", name="uq_interest_rate_moving_average_rate_name"),
        CheckConstraint(
            "period_end >= period_start",
            name="ck_interest_rate_moving_average_period_order",
        ),
    )
    __matchable_fields__ = ("asset", "platform", "rate_name")
    __case_insensitive_fields__ = _UPPER_KEYS

    id: Mapped[int] = mapped_column(IdentityKey, primary_key=True, autoincrement=True)
    platform: Mapped[str] = mapped_column(String, nullable=False)
    asset: Mapped[str] = mapped_column(String, nullable=False)
    rate_name: Mapped[str] = mapped_column(String, nullable=False)
    period_start: Mapped[datetime] = mapped_column(UtcDateTime, nullable=False)
    period_end: Mapped[datetime] = mapped_column(UtcDateTime, nullable=False)
    period_running_average: Mapped[float] = mapped_column(Double, nullable=False)
    period_observed_rates: Mapped[list[float]] = mapped_column(FloatArray, nullable=False)
    last_period_running_average: Mapped[float] = mapped_column(Double, nullable=False)
