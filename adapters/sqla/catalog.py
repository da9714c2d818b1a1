# adapters/sqla/catalog.py
from __future__ import annotations
from typing import List, Optional, Tuple, Union

from sqlalchemy import inspect as sa_inspect
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.engine.reflection import Inspector
from sqlalchemy.exc import CompileError

from core.ports import ColumnInfo
from uuidpk.inflection import pluralize as _pluralize


class SQLAlchemyCatalog:
    """
    SchemaCatalog over SQLAlchemy reflection.

    A fresh Inspector is taken for every call: Inspector memoizes reflection
    results, and tables created earlier in the same migration must be visible.
    """

    def __init__(self, bind: Union[Engine, Connection]) -> None:
        self.bind = bind

    def _inspector(self) -> Inspector:
        return sa_inspect(self.bind)

    @property
    def dialect_name(self) -> str:
        return self.bind.dialect.name

    def table_names(self) -> List[str]:
        return sorted(self._inspector().get_table_names())

    def table_exists(self, name: str) -> bool:
        return self._inspector().has_table(name)

    def primary_key_name(self, table: str) -> Optional[str]:
        pk = self._inspector().get_pk_constraint(table) or {}
        cols = pk.get("constrained_columns") or []
        # composite keys have no single referenced column
        return cols[0] if len(cols) == 1 else None

    def columns(self, table: str) -> List[ColumnInfo]:
        if self.dialect_name == "sqlite":
            declared = self._sqlite_declared_types(table)
            if declared:
                return [ColumnInfo(name, sql_type) for name, sql_type in declared]
        return [
            ColumnInfo(c["name"], self._render_type(c.get("type")))
            for c in self._inspector().get_columns(table)
        ]

    def pluralize(self, name: str) -> str:
        return _pluralize(name)

    def _sqlite_declared_types(self, table: str) -> List[Tuple[str, str]]:
        # reflection maps unknown declarations through type affinity (uuid -> NUMERIC);
        # table_info keeps the text from CREATE TABLE
        sql = f"PRAGMA table_info({self.bind.dialect.identifier_preparer.quote(table)})"
        if isinstance(self.bind, Connection):
            rows = self.bind.exec_driver_sql(sql).fetchall()
        else:
            with self.bind.connect() as conn:
                rows = conn.exec_driver_sql(sql).fetchall()
        # cid, name, type, notnull, dflt_value, pk
        return [(row[1], row[2] or "") for row in rows]

    def _render_type(self, sa_type) -> str:
        if sa_type is None:
            return ""
        try:
            return str(sa_type.compile(dialect=self.bind.dialect))
        except CompileError:
            # NullType and friends have no DDL form
            return ""
