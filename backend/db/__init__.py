"""Database package for ORM models, sessions and migrations."""

from __future__ import annotations

import logging

from backend.db.base import Base
from backend.db import models
from backend.db.session import (
    build_session_factory,
    create_analytics_engine,
    init_schema,
    transaction_scope,
)

logger = logging.getLogger(__name__)

__all__ = [
    "Base",
    "build_session_factory",
    "create_analytics_engine",
    "init_schema",
    "models",
    "transaction_scope",
]
