"""Portable column types shared by the analytics schema."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Optional

from sqlalchemy import JSON, BigInteger, DateTime, Double, Integer, Text
from sqlalchemy.dialects.postgresql import ARRAY
from sqlalchemy.types import TypeDecorator

logger = logging.getLogger(__name__)


class UtcDateTime(TypeDecorator):
    """Timezone-aware timestamp that always round-trips as UTC.

    SQLite drops the offset on storage, so naive values read back are tagged
    as UTC instead of leaking naive datetimes into window comparisons.
    """

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: Optional[datetime], dialect: Any) -> Optional[datetime]:
        if value is None:
            return None
        if value.tzinfo is None:
            raise ValueError(f"Naive datetime is not allowed for UTC column: {value!r}")
        value = value.astimezone(timezone.utc)
        if dialect.name == "sqlite":
            return value.replace(tzinfo=None)
        return value

    def process_result_value(self, value: Optional[datetime], dialect: Any) -> Optional[datetime]:
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)


# Identity keys are BIGINT on PostgreSQL; SQLite only autoincrements INTEGER keys.
IdentityKey = BigInteger().with_variant(Integer(), "sqlite")

FloatArray = ARRAY(Double()).with_variant(JSON(), "sqlite")
TextArray = ARRAY(Text()).with_variant(JSON(), "sqlite")
IntArray = ARRAY(Integer()).with_variant(JSON(), "sqlite")
