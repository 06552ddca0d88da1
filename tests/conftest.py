"""Pytest fixtures shared across unit and integration tests."""

from __future__ import annotations

import os
from typing import Any, Iterator

import pytest
from sqlalchemy import Engine
from sqlalchemy.orm import Session, sessionmaker

from aggregation.common import FixedClock
from aggregation.config import StoreSettings
from aggregation.store import AnalyticsStore
from backend.db.session import (
    build_session_factory,
    create_analytics_engine,
    drop_schema,
    init_schema,
)


@pytest.fixture
def engine() -> Iterator[Engine]:
    """Fresh in-memory SQLite engine with the analytics schema."""
    engine = create_analytics_engine("sqlite+pysqlite:///:memory:")
    init_schema(engine)
    try:
        yield engine
    finally:
        engine.dispose()


@pytest.fixture
def session_factory(engine: Engine) -> sessionmaker[Session]:
    return build_session_factory(engine)


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock()


@pytest.fixture
def store(session_factory: sessionmaker[Session], clock: FixedClock) -> AnalyticsStore:
    return AnalyticsStore(session_factory, settings=StoreSettings(), clock=clock)


@pytest.fixture(scope="session")
def pg_url() -> str:
    """SQLAlchemy URL for the integration database."""
    host = os.getenv("TEST_DB_HOST")
    port = os.getenv("TEST_DB_PORT")
    dbname = os.getenv("TEST_DB_NAME")
    user = os.getenv("TEST_DB_USER")
    password = os.getenv("TEST_DB_PASSWORD")

    if not all([host, port, dbname, user, password]):
        pytest.skip("Integration DB env vars are missing; set TEST_DB_HOST/PORT/NAME/USER/PASSWORD")

    return f"postgresql+psycopg://{user}:{password}@{host}:{port}/{dbname}"


@pytest.fixture
def pg_engine(pg_url: str) -> Iterator[Engine]:
    """PostgreSQL engine with a freshly created schema, dropped afterwards."""
    engine = create_analytics_engine(pg_url, pool_size=8)
    drop_schema(engine)
    init_schema(engine)
    try:
        yield engine
    finally:
        drop_schema(engine)
        engine.dispose()


@pytest.fixture
def pg_store(pg_engine: Engine, clock: FixedClock) -> Any:
    return AnalyticsStore.from_engine(pg_engine, clock=clock)
