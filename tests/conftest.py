from collections import Counter

import pytest
from sqlalchemy import create_engine

from core.ports import ColumnInfo
from uuidpk.config import UuidPolicy


class FakeCatalog:
    """In-memory SchemaCatalog: {table: (pk name or None, [(column, sql type), ...])}."""

    def __init__(self, tables=None, failing=()):
        self.tables = dict(tables or {})
        self.failing = set(failing)
        self.calls = Counter()

    def _check(self, op, table):
        self.calls[(op, table)] += 1
        if table in self.failing:
            raise ConnectionError(f"lost connection while reading {table}")

    def table_exists(self, name):
        self._check("table_exists", name)
        return name in self.tables

    def primary_key_name(self, table):
        self._check("primary_key_name", table)
        return self.tables[table][0]

    def columns(self, table):
        self._check("columns", table)
        return [ColumnInfo(n, t) for n, t in self.tables[table][1]]


@pytest.fixture
def fake_catalog():
    return FakeCatalog({
        "users": ("id", [("id", "uuid"), ("name", "varchar(255)")]),
        "categories": ("id", [("id", "VARCHAR(36)"), ("title", "text")]),
        "legacy_items": ("id", [("id", "integer"), ("sku", "varchar(255)")]),
        "people": ("id", [("id", "uuid")]),
        "named_things": ("name", [("name", "varchar(255)")]),
        "join_rows": (None, [("a_id", "uuid"), ("b_id", "uuid")]),
    })


@pytest.fixture
def uuid_policy():
    return UuidPolicy(primary_key_type="uuid")


@pytest.fixture
def integer_policy():
    return UuidPolicy(primary_key_type="integer")


@pytest.fixture
def engine(tmp_path):
    eng = create_engine(f"sqlite:///{tmp_path / 'app.db'}", future=True)
    yield eng
    eng.dispose()
