"""Out-of-bounds (OOB) check applied to incoming price samples."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

logger = logging.getLogger(__name__)

DEFAULT_OOB_LIMIT = 25.0


def resolve_oob_limit(limit: Optional[float]) -> float:
    """Unset or zero limits fall back to the default percentage."""
    if limit is None or limit == 0:
        return DEFAULT_OOB_LIMIT
    if limit < 0:
        raise ValueError(f"OOB limit must be positive, got {limit}")
    return float(limit)


def deviation_pct(previous: float, candidate: float) -> float:
    """Relative deviation of ``candidate`` from ``previous`` in percent."""
    if previous == 0:
        return 0.0
    return abs(candidate - previous) / abs(previous) * 100.0


@dataclass(frozen=True)
class OutlierDecision:
    accepted: bool
    deviation_pct: float
    limit: float


@dataclass(frozen=True)
class OutlierGuard:
    """Rejects samples deviating more than ``oob_limit`` percent from the last accepted one."""

    oob_limit: float = DEFAULT_OOB_LIMIT

    def __post_init__(self) -> None:
        object.__setattr__(self, "oob_limit", resolve_oob_limit(self.oob_limit))

    def evaluate(self, previous: Optional[float], candidate: float) -> OutlierDecision:
        if previous is None:
            return OutlierDecision(accepted=True, deviation_pct=0.0, limit=self.oob_limit)
        deviation = deviation_pct(previous, candidate)
        return OutlierDecision(
            accepted=deviation <= self.oob_limit,
            deviation_pct=deviation,
            limit=self.oob_limit,
        )
