"""Unit tests for scripts/analytics_cli.py."""

from __future__ import annotations

import argparse
import importlib.util
import json
from pathlib import Path
import runpy
import sys
from typing import Any

import pytest


ROOT = Path(__file__).resolve().parents[1]
SCRIPT_PATH = ROOT / "scripts" / "analytics_cli.py"


def _load_cli_module(module_name: str) -> Any:
    spec = importlib.util.spec_from_file_location(module_name, SCRIPT_PATH)
    assert spec is not None and spec.loader is not None
    module = importlib.util.module_from_spec(spec)
    sys.modules[module_name] = module
    spec.loader.exec_module(module)
    return module


@pytest.fixture
def cli() -> Any:
    return _load_cli_module("analytics_cli_under_test")


@pytest.fixture
def db_url(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> str:
    url = f"sqlite:///{tmp_path / 'analytics.db'}"
    monkeypatch.setenv("DATABASE_URL", url)
    monkeypatch.delenv("LOG_LEVEL", raising=False)
    return url


def _run(cli: Any, capsys: pytest.CaptureFixture[str], *argv: str) -> tuple[int, Any]:
    code = cli.main(list(argv))
    return code, json.loads(capsys.readouterr().out.strip())


def test_import_main_guard_branch_executes(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(sys, "argv", [str(SCRIPT_PATH), "--help"])
    with pytest.raises(SystemExit) as excinfo:
        runpy.run_path(str(SCRIPT_PATH), run_name="__main__")
    assert excinfo.value.code == 0


def test_parse_ts(cli: Any) -> None:
    parsed = cli._parse_ts("2026-01-01T10:00:00Z")
    assert parsed.isoformat() == "2026-01-01T10:00:00+00:00"
    with pytest.raises(argparse.ArgumentTypeError, match="Invalid timestamp"):
        cli._parse_ts("yesterday")
    with pytest.raises(argparse.ArgumentTypeError, match="timezone offset"):
        cli._parse_ts("2026-01-01T10:00:00")


def test_build_parser_parses_commands(cli: Any) -> None:
    parser = cli._build_parser()
    args = parser.parse_args(["token-prices", "--asset", "SOL", "--asset", "RAY", "--limit", "3"])
    assert (args.command, args.asset, args.limit) == ("token-prices", ["SOL", "RAY"], 3)
    args = parser.parse_args(["liquidations", "--page", "2", "--per-page", "10"])
    assert (args.page, args.per_page, args.authority) == (2, 10, None)


def test_put_and_list_token_prices(cli: Any, db_url: str, capsys: pytest.CaptureFixture[str]) -> None:
    assert _run(cli, capsys, "init-schema") == (0, {"status": "ok"})

    code, row = _run(
        cli,
        capsys,
        "put-token-price",
        "--asset",
        "ORCA-ORCA-USDC",
        "--platform",
        "ORCA",
        "--price",
        "1.5",
        "--token-mint",
        "mint1",
    )
    assert code == 0
    assert row["asset_identifier"] == "ORCA-ORCA-USDC"
    assert row["period_observed_prices"] == [1.5]

    code, rows = _run(cli, capsys, "token-prices", "--asset", "ORCA-ORCA-USDC")
    assert code == 0
    assert [item["price"] for item in rows] == [1.5]


def test_rate_averages_and_error_exit_code(cli: Any, db_url: str, capsys: pytest.CaptureFixture[str]) -> None:
    _run(cli, capsys, "init-schema")

    code, payload = _run(cli, capsys, "rate-averages")
    assert code == 2
    assert payload["entity"] == "interest_rate_moving_average"

    code, average = _run(
        cli,
        capsys,
        "put-interest-rate",
        "--platform",
        "tulip",
        "--asset",
        "usdc",
        "--lending-rate",
        "0.07",
        "--scraped-at",
        "2026-01-01T00:00:00Z",
    )
    assert code == 0
    assert average["rate_name"] == "TULIP-USDC"

    code, pairs = _run(cli, capsys, "rate-averages", "--rate-name", "tulip-usdc")
    assert code == 0
    assert pairs[0]["latest_rate"]["lending_rate"] == 0.07
    assert pairs[0]["latest_rate"]["scraped_at"] == "2026-01-01T00:00:00+00:00"


def test_liquidations_paging_payload(cli: Any, db_url: str, capsys: pytest.CaptureFixture[str]) -> None:
    _run(cli, capsys, "init-schema")
    assert _run(cli, capsys, "liquidations") == (0, {"rows": [], "total": 0})
    assert _run(cli, capsys, "liquidations", "--page", "1", "--per-page", "5") == (0, {"rows": [], "total": 0})
