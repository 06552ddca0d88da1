"""Leveraged farming position model definitions."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional

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
from backend.db.types import IdentityKey, IntArray, TextArray, UtcDateTime

logger = logging.getLogger(__name__)


class V1ObligationAccount(Base):
    """Registry of known obligation accounts and their authority."""

    __tablename__ = "v1_obligation_account"
    __table_args__ = (
        PrimaryKeyConstraint("id", name="pk_v1_obligation_account"),
        UniqueConstraint("account", name="uq_v1_obligation_account_account"),
    )
    __matchable_fields__ = ("account", "authority")

    id: Mapped[int] = mapped_column(IdentityKey, primary_key=True, autoincrement=True)
    account: Mapped[str] = mapped_column(String, nullable=False)
    authority: Mapped[str] = mapped_column(String, nullable=False)


class V1ObligationLtv(Base):
    """Latest loan-to-value sample per obligation account."""

    __tablename__ = "v1_obligation_ltv"
    __table_args__ = (
        PrimaryKeyConstraint("id", name="pk_v1_obligation_ltv"),
        UniqueConstraint("account_address", name="uq_v1_obligation_ltv_account_address"),
        Index("idx_v1_obligation_ltv_ltv", "ltv"),
    )
    __matchable_fields__ = ("authority", "user_farm", "account_address")

    id: Mapped[int] = mapped_column(IdentityKey, primary_key=True, autoincrement=True)
    authority: Mapped[str] = mapped_column(String, nullable=False)
    user_farm: Mapped[str] = mapped_column(String, nullable=False)
    account_address: Mapped[str] = mapped_column(String, nullable=False)
    ltv: Mapped[float] = mapped_column(Double, nullable=False)
    scraped_at: Mapped[datetime] = mapped_column(UtcDateTime, nullable=False)
    leveraged_farm: Mapped[str] = mapped_column(String, nullable=False)


class V1UserFarm(Base):
    """User farm account and the obligations it owns."""

    __tablename__ = "v1_user_farm"
    __table_args__ = (
        PrimaryKeyConstraint("id", name="pk_v1_user_farm"),
        UniqueConstraint("account_address", name="uq_v1_user_farm_account_address"),
        Index("idx_v1_user_farm_authority", "authority"),
    )
    __matchable_fields__ = ("authority", "account_address")

    id: Mapped[int] = mapped_column(IdentityKey, primary_key=True, autoincrement=True)
    account_address: Mapped[str] = mapped_column(String, nullable=False)
    authority: Mapped[str] = mapped_column(String, nullable=False)
    obligations: Mapped[list[str]] = mapped_column(TextArray, nullable=False)
    obligation_indexes: Mapped[list[int]] = mapped_column(IntArray, nullable=False)
    leveraged_farm: Mapped[str] = mapped_column(String, nullable=False)


class V1LiquidatedPosition(Base):
    """Liquidation lifecycle record keyed by liquidation event id.

    Opened with ``ended_at`` NULL; closing it is the only allowed mutation.
    """

    __tablename__ = "v1_liquidated_position"
    __table_args__ = (
        PrimaryKeyConstraint("id", name="pk_v1_liquidated_position"),
        UniqueConstraint(
            "liquidation_event_id",
            name="uq_v1_liquidated_position_liquidation_event_id",
        ),
        CheckConstraint(
            "ended_at IS NULL OR ended_at >= started_at",
            name="ck_v1_liquidated_position_ended_after_started",
        ),
    )
    __matchable_fields__ = (
        "liquidation_event_id",
        "temp_liquidation_account",
        "authority",
        "user_farm",
        "obligation",
    )

    id: Mapped[int] = mapped_column(IdentityKey, primary_key=True, autoincrement=True)
    liquidation_event_id: Mapped[str] = mapped_column(String, nullable=False)
    temp_liquidation_account: Mapped[str] = mapped_column(String, nullable=False)
    authority: Mapped[str] = mapped_column(String, nullable=False)
    user_farm: Mapped[str] = mapped_column(String, nullable=False)
    obligation: Mapped[str] = mapped_column(String, nullable=False)
    started_at: Mapped[datetime] = mapped_column(UtcDateTime, nullable=False)
    ended_at: Mapped[Optional[datetime]] = mapped_column(UtcDateTime, nullable=True)
    leveraged_farm: Mapped[str] = mapped_column(String, nullable=False)
