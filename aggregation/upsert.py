"""Generic read-decide-mutate-write template shared by every aggregate kind."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Generic, TypeVar

from sqlalchemy import select
from sqlalchemy.orm import Session

from aggregation.matchers import Matcher, compile_matcher

logger = logging.getLogger(__name__)

RowT = TypeVar("RowT")


@dataclass(frozen=True)
class UpsertOutcome(Generic[RowT]):
    row: RowT
    created: bool


def upsert(
    session: Session,
    model: type[RowT],
    matcher: Matcher,
    *,
    create: Callable[[], RowT],
    mutate: Callable[[RowT], None],
    lock: bool = True,
) -> UpsertOutcome[RowT]:
    """Insert ``create()`` when nothing matches, otherwise ``mutate`` the first match.

    Must run inside the caller's transaction. The first match is locked
    (``SELECT ... FOR UPDATE`` where the dialect supports it) so concurrent
    writers of the same key serialize on the row. When several rows match,
    the lowest id wins.
    """
    statement = (
        select(model)
        .where(compile_matcher(model, matcher))
        .order_by(model.id)  # type: ignore[attr-defined]
        .limit(1)
    )
    if lock:
        statement = statement.with_for_update()
    existing = session.scalars(statement).first()

    if existing is None:
        row = create()
        session.add(row)
        session.flush()
        logger.debug("Created %s row id=%s for %s.", model.__tablename__, row.id, matcher.describe())  # type: ignore[attr-defined]
        return UpsertOutcome(row=row, created=True)

    mutate(existing)
    session.flush()
    return UpsertOutcome(row=existing, created=False)
