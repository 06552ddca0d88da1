"""Entity matchers and their compilation to SQLAlchemy filter clauses.

Every entity shares the same closed variant set:

    ByField("platform", ["tulip"])                       platform IN ('TULIP')
    ByCompositeField(("asset", "platform"), [("a", "p")]) (asset = 'a' AND platform = 'p') OR ...
    All()                                                  no constraint

Fields listed in a model's ``__case_insensitive_fields__`` are upper-cased
before compiling so lookups agree with how the writer stores them.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Iterable, Union

from sqlalchemy import and_, false, or_, true
from sqlalchemy.sql.elements import ColumnElement

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ByField:
    """Match rows whose ``field`` is any of ``values``."""

    field: str
    values: tuple[str, ...]

    def __init__(self, field: str, values: Iterable[str]) -> None:
        if isinstance(values, str):
            values = (values,)
        object.__setattr__(self, "field", field)
        object.__setattr__(self, "values", tuple(values))

    def describe(self) -> str:
        return f"ByField({self.field}={list(self.values)!r})"


@dataclass(frozen=True)
class ByCompositeField:
    """Match rows equal to any one of ``pairs`` across ``fields``."""

    fields: tuple[str, ...]
    pairs: tuple[tuple[str, ...], ...]

    def __init__(self, fields: Iterable[str], pairs: Iterable[Iterable[str]]) -> None:
        object.__setattr__(self, "fields", tuple(fields))
        object.__setattr__(self, "pairs", tuple(tuple(pair) for pair in pairs))

    def describe(self) -> str:
        names = ",".join(self.fields)
        return f"ByCompositeField(({names})={[list(pair) for pair in self.pairs]!r})"


@dataclass(frozen=True)
class All:
    """Match every row of the entity."""

    def describe(self) -> str:
        return "All"


Matcher = Union[ByField, ByCompositeField, All]


def describe(matcher: Matcher) -> str:
    """Stable human-readable matcher rendering for logs and errors."""
    return matcher.describe()


def _column(model: Any, field_name: str) -> Any:
    if field_name not in model.__matchable_fields__:
        raise ValueError(f"{model.__tablename__} cannot be matched on field '{field_name}'")
    return getattr(model, field_name)


def canonical_value(model: Any, field_name: str, value: str) -> str:
    """Apply the entity's canonical form to one key component."""
    if field_name in model.__case_insensitive_fields__:
        return value.upper()
    return value


def compile_matcher(model: Any, matcher: Matcher) -> ColumnElement[bool]:
    """Compile a matcher into a WHERE clause for ``model``."""
    if isinstance(matcher, All):
        return true()

    if isinstance(matcher, ByField):
        column = _column(model, matcher.field)
        values = [canonical_value(model, matcher.field, value) for value in matcher.values]
        if not values:
            return false()
        return column.in_(values)

    if isinstance(matcher, ByCompositeField):
        columns = [_column(model, field_name) for field_name in matcher.fields]
        clauses = []
        for pair in matcher.pairs:
            if len(pair) != len(columns):
                raise ValueError(
                    f"{matcher.describe()} has a {len(pair)}-tuple for {len(columns)} fields"
                )
            clauses.append(
                and_(
                    *(
                        column == canonical_value(model, field_name, value)
                        for column, field_name, value in zip(columns, matcher.fields, pair)
                    )
                )
            )
        if not clauses:
            return false()
        return or_(*clauses)

    raise TypeError(f"Unsupported matcher type: {type(matcher).__name__}")
