"""Shared helpers for the aggregation engine."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Protocol


class Clock(Protocol):
    """Anything that can report the current UTC time."""

    def now_utc(self) -> datetime:
        """Return current UTC timestamp."""


@dataclass(frozen=True)
class SystemClock:
    """Injectable UTC clock backed by the wall clock."""

    def now_utc(self) -> datetime:
        """Return current UTC timestamp."""
        return datetime.now(tz=timezone.utc)


@dataclass
class FixedClock:
    """Manually advanced clock for deterministic window tests."""

    current: datetime = field(default_factory=lambda: datetime(2026, 1, 1, tzinfo=timezone.utc))

    def now_utc(self) -> datetime:
        return self.current

    def advance(self, seconds: float) -> datetime:
        self.current = self.current + timedelta(seconds=seconds)
        return self.current


def ensure_utc(ts: datetime) -> datetime:
    """Normalize a timestamp to aware UTC; naive values are taken as UTC."""
    if ts.tzinfo is None:
        return ts.replace(tzinfo=timezone.utc)
    return ts.astimezone(timezone.utc)


def utc_iso(ts: datetime) -> str:
    """Normalize timestamp to UTC RFC3339 string."""
    return ensure_utc(ts).isoformat().replace("+00:00", "Z")
