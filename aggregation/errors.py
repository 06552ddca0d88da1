"""Error taxonomy raised by the aggregation engine."""

from __future__ import annotations

from typing import Optional


class AggregationError(RuntimeError):
    """Base error; always names the entity and the matcher involved."""

    def __init__(self, message: str, *, entity: str, matcher: Optional[str] = None) -> None:
        self.entity = entity
        self.matcher = matcher
        detail = f"{entity}: {message}"
        if matcher:
            detail = f"{detail} (matcher={matcher})"
        super().__init__(detail)


class PeriodFinishedError(AggregationError):
    """An observation arrived after the window closed and before a rollover."""

    def __init__(self, *, entity: str = "moving_average", matcher: Optional[str] = None) -> None:
        super().__init__("observation period finished", entity=entity, matcher=matcher)


class DuplicateOpenRecordError(AggregationError):
    """A lifecycle record with the same idempotency token already exists."""


class DuplicateRecordError(AggregationError):
    """A create-only record already exists for the natural key."""


class NotFoundError(AggregationError):
    """A mutation or a required read matched zero rows."""


class PrecisionLossError(AggregationError):
    """A value does not fit the store's native integer width."""
