"""Filtered, ordered and optionally paged reads."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Generic, Optional, Sequence, TypeVar

from sqlalchemy import Select, func, select
from sqlalchemy.orm import Session
from sqlalchemy.sql.elements import ColumnElement

from aggregation.matchers import Matcher, compile_matcher

logger = logging.getLogger(__name__)

RowT = TypeVar("RowT")


@dataclass(frozen=True)
class Page(Generic[RowT]):
    """One page of rows; ``total`` is 0 when paging was not requested."""

    rows: list[RowT] = field(default_factory=list)
    total: int = 0


def build_select(
    model: type[RowT],
    matcher: Matcher,
    *,
    where: Sequence[ColumnElement[bool]] = (),
) -> Select[tuple[RowT]]:
    return select(model).where(compile_matcher(model, matcher), *where)


def fetch_rows(
    session: Session,
    model: type[RowT],
    matcher: Matcher,
    *,
    order_by: Optional[Any] = None,
    limit: Optional[int] = None,
    where: Sequence[ColumnElement[bool]] = (),
) -> list[RowT]:
    """Matching rows ordered by ``order_by`` (primary key when omitted)."""
    statement = build_select(model, matcher, where=where)
    statement = statement.order_by(order_by if order_by is not None else model.id)  # type: ignore[attr-defined]
    if limit is not None:
        statement = statement.limit(limit)
    return list(session.scalars(statement).all())


def fetch_time_series(
    session: Session,
    model: type[RowT],
    matcher: Matcher,
    time_column: Any,
    *,
    limit: Optional[int] = None,
) -> list[RowT]:
    """Ascending by time; with ``limit`` the most recent rows first instead."""
    if limit is not None:
        return fetch_rows(session, model, matcher, order_by=time_column.desc(), limit=limit)
    return fetch_rows(session, model, matcher, order_by=time_column.asc())


def fetch_page(
    session: Session,
    model: type[RowT],
    matcher: Matcher,
    *,
    page: Optional[int] = None,
    per_page: Optional[int] = None,
    order_by: Optional[Any] = None,
    where: Sequence[ColumnElement[bool]] = (),
) -> Page[RowT]:
    """Return one 1-based page plus the total match count when both ``page`` and ``per_page`` are given."""
    if page is None or per_page is None:
        return Page(rows=fetch_rows(session, model, matcher, order_by=order_by, where=where), total=0)
    if page < 1:
        raise ValueError(f"page must be >= 1, got {page}")
    if per_page < 1:
        raise ValueError(f"per_page must be >= 1, got {per_page}")

    count_statement = (
        select(func.count())
        .select_from(model)
        .where(compile_matcher(model, matcher), *where)
    )
    total = int(session.scalar(count_statement) or 0)

    statement = build_select(model, matcher, where=where)
    statement = (
        statement.order_by(order_by if order_by is not None else model.id)  # type: ignore[attr-defined]
        .offset((page - 1) * per_page)
        .limit(per_page)
    )
    return Page(rows=list(session.scalars(statement).all()), total=total)
