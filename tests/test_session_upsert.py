from __future__ import annotations

from datetime import datetime, timezone

import pytest
from sqlalchemy import func, select
from sqlalchemy.orm import Session, sessionmaker

from aggregation.matchers import ByField
from aggregation.upsert import upsert
from backend.db.models import TokenBalance
from backend.db.session import normalize_database_url, transaction_scope


SCRAPED_AT = datetime(2026, 1, 1, tzinfo=timezone.utc)


def _balance(account: str, balance: float) -> TokenBalance:
    return TokenBalance(
        token_account=account,
        token_mint="mint1",
        identifier="USDC",
        balance=balance,
        scraped_at=SCRAPED_AT,
    )


def _count(session_factory: sessionmaker[Session]) -> int:
    with transaction_scope(session_factory) as session:
        return session.scalar(select(func.count()).select_from(TokenBalance))


@pytest.mark.parametrize(
    ("url", "expected"),
    [
        ("postgresql://u:p@h:5432/db", "postgresql+psycopg://u:p@h:5432/db"),
        ("postgres://u:p@h/db", "postgresql+psycopg://u:p@h/db"),
        ("postgresql+psycopg://u:p@h/db", "postgresql+psycopg://u:p@h/db"),
        ("sqlite:///analytics.db", "sqlite:///analytics.db"),
    ],
)
def test_normalize_database_url(url: str, expected: str) -> None:
    assert normalize_database_url(url) == expected


def test_transaction_scope_commits_and_rolls_back(session_factory: sessionmaker[Session]) -> None:
    with transaction_scope(session_factory) as session:
        session.add(_balance("acct1", 1.0))
    assert _count(session_factory) == 1

    with pytest.raises(RuntimeError, match="boom"):
        with transaction_scope(session_factory) as session:
            session.add(_balance("acct2", 2.0))
            session.flush()
            raise RuntimeError("boom")
    assert _count(session_factory) == 1


def test_upsert_creates_then_mutates(session_factory: sessionmaker[Session]) -> None:
    matcher = ByField("token_account", ["acct1"])

    def bump(row: TokenBalance) -> None:
        row.balance += 5.0

    with transaction_scope(session_factory) as session:
        outcome = upsert(session, TokenBalance, matcher, create=lambda: _balance("acct1", 1.0), mutate=bump)
    assert outcome.created
    assert outcome.row.id is not None

    with transaction_scope(session_factory) as session:
        outcome = upsert(session, TokenBalance, matcher, create=lambda: _balance("acct1", 99.0), mutate=bump)
    assert not outcome.created
    assert outcome.row.balance == 6.0
    assert _count(session_factory) == 1


def test_upsert_mutates_lowest_id_when_several_rows_match(session_factory: sessionmaker[Session]) -> None:
    with transaction_scope(session_factory) as session:
        session.add_all([_balance("acct1", 1.0), _balance("acct1", 2.0)])

    def zero(row: TokenBalance) -> None:
        row.balance = 0.0

    with transaction_scope(session_factory) as session:
        outcome = upsert(
            session,
            TokenBalance,
            ByField("token_account", ["acct1"]),
            create=lambda: _balance("acct1", 3.0),
            mutate=zero,
            lock=False,
        )

    with transaction_scope(session_factory) as session:
        balances = list(session.scalars(select(TokenBalance.balance).order_by(TokenBalance.id)))
    assert not outcome.created
    assert balances == [0.0, 2.0]
