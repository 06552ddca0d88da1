"""Schema contract alignment checks between ORM metadata and the migration DDL."""

from __future__ import annotations

import importlib.util
from pathlib import Path
import re
import sys
import types
from typing import Any

import pytest

import backend.db.models  # noqa: F401  # Ensure all mapped classes are registered.
from backend.db.base import Base


MIGRATION_PATH = (
    Path(__file__).resolve().parents[1]
    / "backend"
    / "db"
    / "migrations"
    / "versions"
    / "0001_initial_schema.py"
)


def _load_migration(monkeypatch: pytest.MonkeyPatch) -> Any:
    fake_alembic = types.ModuleType("alembic")
    fake_alembic.op = types.SimpleNamespace(execute=lambda statement: None)
    monkeypatch.setitem(sys.modules, "alembic", fake_alembic)

    spec = importlib.util.spec_from_file_location("migration_0001_contract", MIGRATION_PATH)
    assert spec is not None and spec.loader is not None
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


def _ddl_tables(module: Any) -> dict[str, dict[str, Any]]:
    pattern = re.compile(r"CREATE TABLE (\w+) \((.*)\);", re.S)

    tables: dict[str, dict[str, Any]] = {}
    for ddl in module.TABLE_DDL:
        match = pattern.search(ddl)
        assert match is not None, ddl
        table_name, body = match.groups()

        columns: dict[str, bool] = {}
        constraints: set[str] = set()
        for raw_line in body.splitlines():
            line = raw_line.strip().rstrip(",")
            if not line:
                continue
            if line.startswith("CONSTRAINT"):
                constraints.add(line.split()[1])
                continue
            columns[line.split()[0]] = "NOT NULL" in line
        tables[table_name] = {"columns": columns, "constraints": constraints}

    return tables


def test_orm_tables_and_columns_match_migration(monkeypatch: pytest.MonkeyPatch) -> None:
    """ORM models must cover every migrated table and column exactly."""

    ddl = _ddl_tables(_load_migration(monkeypatch))
    mapped_tables = Base.metadata.tables

    assert sorted(set(ddl) - set(mapped_tables)) == []
    assert sorted(set(mapped_tables) - set(ddl)) == []

    mismatches: dict[str, dict[str, list[str]]] = {}
    for table_name, table in sorted(mapped_tables.items()):
        ddl_columns = ddl[table_name]["columns"]
        orm_columns = {column.name: not column.nullable for column in table.columns}
        if ddl_columns != orm_columns:
            mismatches[table_name] = {
                "missing_columns": sorted(set(ddl_columns) - set(orm_columns)),
                "extra_columns": sorted(set(orm_columns) - set(ddl_columns)),
                "nullability": sorted(
                    name
                    for name in set(ddl_columns) & set(orm_columns)
                    if ddl_columns[name] != orm_columns[name] and name != "id"
                ),
            }
            if not any(mismatches[table_name].values()):
                del mismatches[table_name]

    assert mismatches == {}


def test_named_constraints_and_indexes_match_migration(monkeypatch: pytest.MonkeyPatch) -> None:
    module = _load_migration(monkeypatch)
    ddl = _ddl_tables(module)

    for table_name, table in Base.metadata.tables.items():
        orm_constraints = {constraint.name for constraint in table.constraints if constraint.name}
        assert orm_constraints == ddl[table_name]["constraints"], table_name

    ddl_indexes = {
        statement.split(" ON ")[0].split()[-1]: statement.startswith("CREATE UNIQUE INDEX")
        for statement in module.INDEX_DDL
    }
    orm_indexes = {index.name: index.unique for table in Base.metadata.tables.values() for index in table.indexes}
    assert orm_indexes == ddl_indexes
