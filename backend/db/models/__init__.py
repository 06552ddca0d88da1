"""Model module imports for SQLAlchemy metadata registration."""

from __future__ import annotations

import logging

from backend.db.models.positions import (
    V1LiquidatedPosition,
    V1ObligationAccount,
    V1ObligationLtv,
    V1UserFarm,
)
from backend.db.models.prices import HistoricTsharePrice, TokenBalance, TokenPrice
from backend.db.models.rates import InterestRate, InterestRateCurve, InterestRateMovingAverage
from backend.db.models.vaults import (
    AdvertisedYield,
    DepositTracking,
    LendingOptimizerDistribution,
    RealizeYield,
    StakingAnalytic,
    Vault,
    VaultTvl,
)

logger = logging.getLogger(__name__)

__all__ = [
    "AdvertisedYield",
    "DepositTracking",
    "HistoricTsharePrice",
    "InterestRate",
    "InterestRateCurve",
    "InterestRateMovingAverage",
    "LendingOptimizerDistribution",
    "RealizeYield",
    "StakingAnalytic",
    "TokenBalance",
    "TokenPrice",
    "V1LiquidatedPosition",
    "V1ObligationAccount",
    "V1ObligationLtv",
    "V1UserFarm",
    "Vault",
    "VaultTvl",
]
