"""Unit tests for matcher compilation."""

from __future__ import annotations

import pytest
from sqlalchemy import select
from sqlalchemy.dialects import postgresql

from aggregation.matchers import All, ByCompositeField, ByField, compile_matcher, describe
from backend.db.models import InterestRate, StakingAnalytic, TokenPrice


def _sql(model, matcher) -> str:
    statement = select(model.id).where(compile_matcher(model, matcher))
    return str(statement.compile(dialect=postgresql.dialect(), compile_kwargs={"literal_binds": True}))


def test_by_field_wraps_single_string_value() -> None:
    matcher = ByField("asset", "SOL")
    assert matcher.values == ("SOL",)
    assert describe(matcher) == "ByField(asset=['SOL'])"


def test_by_field_compiles_to_in_list() -> None:
    sql = _sql(TokenPrice, ByField("asset", ["SOL", "RAY"]))
    assert "token_price.asset IN ('SOL', 'RAY')" in sql


def test_case_insensitive_fields_are_upper_cased() -> None:
    sql = _sql(InterestRate, ByField("platform", ["tulip"]))
    assert "interest_rate.platform IN ('TULIP')" in sql


def test_token_price_keys_are_case_preserving() -> None:
    sql = _sql(TokenPrice, ByField("asset", ["usdc"]))
    assert "'usdc'" in sql


def test_composite_matcher_is_or_of_per_pair_ands() -> None:
    matcher = ByCompositeField(("asset", "platform"), [("SOL", "NA"), ("RAY", "ORCA")])
    sql = _sql(TokenPrice, matcher)
    assert "token_price.asset = 'SOL' AND token_price.platform = 'NA'" in sql
    assert "token_price.asset = 'RAY' AND token_price.platform = 'ORCA'" in sql
    assert " OR " in sql


def test_all_is_unconstrained_and_empty_sets_match_nothing() -> None:
    assert "WHERE true" in _sql(TokenPrice, All())
    assert "WHERE false" in _sql(TokenPrice, ByField("asset", []))
    assert "WHERE false" in _sql(TokenPrice, ByCompositeField(("asset", "platform"), []))


def test_unknown_field_and_arity_mismatch_are_rejected() -> None:
    with pytest.raises(ValueError, match="cannot be matched on field 'token_mint'"):
        compile_matcher(TokenPrice, ByField("token_mint", ["x"]))
    with pytest.raises(ValueError, match="cannot be matched"):
        compile_matcher(StakingAnalytic, ByField("apy", ["1"]))
    with pytest.raises(ValueError, match="2 fields"):
        compile_matcher(TokenPrice, ByCompositeField(("asset", "platform"), [("SOL",)]))


def test_unsupported_matcher_type() -> None:
    with pytest.raises(TypeError, match="Unsupported matcher type: str"):
        compile_matcher(TokenPrice, "asset")  # type: ignore[arg-type]
