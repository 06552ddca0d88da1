#!/usr/bin/env python3
"""Operator CLI for the farm analytics store."""

from __future__ import annotations

import argparse
from datetime import datetime, timezone
import json
import logging
from pathlib import Path
import sys
from typing import Any, Optional, Sequence

# Ensure repository root is importable when script is executed by path.
ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from aggregation.config import load_aggregation_config
from aggregation.errors import AggregationError
from aggregation.matchers import All, ByField, Matcher
from aggregation.repositories import token_price_matcher
from aggregation.store import AnalyticsStore
from backend.db.session import init_schema

logger = logging.getLogger("analytics_cli")


def _parse_ts(value: str) -> datetime:
    normalized = value.strip().replace("Z", "+00:00")
    try:
        ts = datetime.fromisoformat(normalized)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"Invalid timestamp: {value}") from exc
    if ts.tzinfo is None:
        raise argparse.ArgumentTypeError("Timestamp must include timezone offset.")
    return ts.astimezone(timezone.utc)


def _field_matcher(field: str, values: Optional[Sequence[str]]) -> Matcher:
    return ByField(field, values) if values else All()


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Farm analytics store CLI")
    parser.add_argument("--database-url", help="SQLAlchemy URL (defaults to DATABASE_URL)")

    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("init-schema", help="Create every analytics table that is missing")

    price_cmd = subparsers.add_parser("put-token-price", help="Record one token price sample")
    price_cmd.add_argument("--asset", required=True)
    price_cmd.add_argument("--platform", required=True)
    price_cmd.add_argument("--price", required=True, type=float)
    price_cmd.add_argument("--coin-in-lp", type=float, default=0.0)
    price_cmd.add_argument("--pc-in-lp", type=float, default=0.0)
    price_cmd.add_argument("--token-mint", required=True)

    rate_cmd = subparsers.add_parser("put-interest-rate", help="Record one lending rate sample")
    rate_cmd.add_argument("--platform", required=True)
    rate_cmd.add_argument("--asset", required=True)
    rate_cmd.add_argument("--lending-rate", required=True, type=float)
    rate_cmd.add_argument("--borrow-rate", type=float, default=0.0)
    rate_cmd.add_argument("--utilization-rate", type=float, default=0.0)
    rate_cmd.add_argument("--available-amount", type=float, default=0.0)
    rate_cmd.add_argument("--borrowed-amount", type=float, default=0.0)
    rate_cmd.add_argument("--scraped-at", type=_parse_ts, default=None)

    prices_cmd = subparsers.add_parser("token-prices", help="List token prices")
    prices_cmd.add_argument("--asset", action="append")
    prices_cmd.add_argument("--limit", type=int, default=None)

    averages_cmd = subparsers.add_parser(
        "rate-averages",
        help="List rate moving averages with their latest sample",
    )
    averages_cmd.add_argument("--rate-name", action="append")

    liquidations_cmd = subparsers.add_parser("liquidations", help="List liquidated positions")
    liquidations_cmd.add_argument("--authority", action="append")
    liquidations_cmd.add_argument("--page", type=int, default=None)
    liquidations_cmd.add_argument("--per-page", type=int, default=None)

    return parser


def _dispatch(args: argparse.Namespace, store: AnalyticsStore) -> Any:
    if args.command == "init-schema":
        init_schema(store.engine)
        return {"status": "ok"}

    if args.command == "put-token-price":
        store.prices.put_token_price(
            args.asset,
            args.platform,
            args.price,
            args.coin_in_lp,
            args.pc_in_lp,
            args.token_mint,
        )
        rows = store.prices.get_token_price(token_price_matcher(args.platform, args.asset))
        return rows[0].to_dict()

    if args.command == "put-interest-rate":
        scraped_at = args.scraped_at or store.clock.now_utc()
        store.rates.put_interest_rate(
            args.platform,
            args.asset,
            args.borrow_rate,
            args.utilization_rate,
            args.lending_rate,
            args.available_amount,
            args.borrowed_amount,
            scraped_at,
        )
        averages = store.rates.get_interest_rate_moving_average(
            ByField("rate_name", [f"{args.platform}-{args.asset}"])
        )
        return averages[0].to_dict()

    if args.command == "token-prices":
        rows = store.prices.get_token_price(_field_matcher("asset", args.asset), args.limit)
        return [row.to_dict() for row in rows]

    if args.command == "rate-averages":
        pairs = store.rates.get_interest_rate_with_moving_average(
            _field_matcher("rate_name", args.rate_name)
        )
        return [
            {"moving_average": average.to_dict(), "latest_rate": rate.to_dict()}
            for average, rate in pairs
        ]

    page = store.positions.query_paginated_v1_liquidated_positions(
        _field_matcher("authority", args.authority),
        page=args.page,
        per_page=args.per_page,
    )
    return {"rows": [row.to_dict() for row in page.rows], "total": page.total}


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)

    config = load_aggregation_config(database_url=args.database_url)
    logging.basicConfig(
        level=getattr(logging, config.log_level),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    store = AnalyticsStore.from_config(config)

    try:
        payload = _dispatch(args, store)
    except AggregationError as exc:
        logger.error("Command %s failed: %s", args.command, exc)
        print(json.dumps({"error": str(exc), "entity": exc.entity}, sort_keys=True))
        return 2
    finally:
        store.close()

    print(json.dumps(payload, sort_keys=True, default=str))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
