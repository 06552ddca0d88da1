"""Per-domain repositories over the analytics schema."""

from aggregation.repositories.base import Repository
from aggregation.repositories.positions import PositionRepository
from aggregation.repositories.prices import (
    NA_PLATFORM,
    PriceRepository,
    derive_asset_identifier,
    token_price_matcher,
)
from aggregation.repositories.rates import RateRepository, rate_name
from aggregation.repositories.vaults import MAX_STORED_UINT, VaultRepository

__all__ = [
    "MAX_STORED_UINT",
    "NA_PLATFORM",
    "PositionRepository",
    "PriceRepository",
    "RateRepository",
    "Repository",
    "VaultRepository",
    "derive_asset_identifier",
    "rate_name",
    "token_price_matcher",
]
