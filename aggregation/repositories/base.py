"""Shared plumbing for the per-domain repositories."""

from __future__ import annotations

import logging
from contextlib import AbstractContextManager
from typing import Any, Optional, TypeVar

from sqlalchemy import select
from sqlalchemy.orm import Session, sessionmaker

from aggregation.common import Clock, SystemClock
from aggregation.config import StoreSettings
from aggregation.errors import NotFoundError
from aggregation.matchers import Matcher, compile_matcher
from aggregation.queries import fetch_rows, fetch_time_series
from backend.db.session import transaction_scope

logger = logging.getLogger(__name__)

RowT = TypeVar("RowT")


class Repository:
    """One unit of work per call, each in its own session and transaction.

    Instances hold no per-call state and are safe to share across threads.
    """

    def __init__(
        self,
        session_factory: sessionmaker[Session],
        *,
        clock: Optional[Clock] = None,
        settings: Optional[StoreSettings] = None,
    ) -> None:
        self._session_factory = session_factory
        self._clock = clock or SystemClock()
        self._settings = settings or StoreSettings()

    def _transaction(self) -> AbstractContextManager[Session]:
        return transaction_scope(self._session_factory)

    def _append(self, row: Any) -> None:
        with self._transaction() as session:
            session.add(row)

    def _get(
        self,
        model: type[RowT],
        matcher: Matcher,
        *,
        order_by: Optional[Any] = None,
        limit: Optional[int] = None,
    ) -> list[RowT]:
        with self._transaction() as session:
            return fetch_rows(session, model, matcher, order_by=order_by, limit=limit)

    def _get_time_series(
        self,
        model: type[RowT],
        matcher: Matcher,
        time_column: Any,
        limit: Optional[int] = None,
    ) -> list[RowT]:
        with self._transaction() as session:
            return fetch_time_series(session, model, matcher, time_column, limit=limit)

    def _delete(self, model: Any, matcher: Matcher) -> int:
        """Delete every matching row; matching nothing is an error."""
        with self._transaction() as session:
            rows = session.scalars(select(model).where(compile_matcher(model, matcher))).all()
            if not rows:
                raise NotFoundError(
                    "no rows matched delete",
                    entity=model.__tablename__,
                    matcher=matcher.describe(),
                )
            for row in rows:
                session.delete(row)
        logger.info("Deleted %d %s row(s) for %s.", len(rows), model.__tablename__, matcher.describe())
        return len(rows)
