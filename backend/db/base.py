"""SQLAlchemy declarative base and shared metadata for analytics models."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, ClassVar

from sqlalchemy import MetaData
from sqlalchemy.orm import DeclarativeBase

logger = logging.getLogger(__name__)

metadata = MetaData()


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy declarative models.

    ``__matchable_fields__`` lists the columns a matcher may filter on and
    ``__case_insensitive_fields__`` the subset the writer stores upper-cased.
    """

    metadata = metadata

    __matchable_fields__: ClassVar[tuple[str, ...]] = ()
    __case_insensitive_fields__: ClassVar[frozenset[str]] = frozenset()

    def to_dict(self) -> dict[str, Any]:
        """Column values keyed by column name, timestamps as ISO-8601."""
        payload: dict[str, Any] = {}
        for column in self.__table__.columns:
            value = getattr(self, column.key)
            if isinstance(value, datetime):
                value = value.isoformat()
            elif isinstance(value, (bytes, bytearray)):
                value = value.hex()
            elif isinstance(value, (list, tuple)):
                value = list(value)
            payload[column.key] = value
        return payload
