# uuidpk/schema_dump.py
from __future__ import annotations
from dataclasses import dataclass, field
from typing import List, Optional

from adapters.sqla.catalog import SQLAlchemyCatalog
from uuidpk.schema_cache import SchemaTypeCache
from uuidpk.type_mapping import PrimaryKeyKind, classify_sql_type


@dataclass
class TableReport:
    name: str
    primary_key: Optional[str]
    primary_key_kind: PrimaryKeyKind
    columns: List[tuple] = field(default_factory=list)  # (name, rendered type)


@dataclass
class SchemaReport:
    tables: List[TableReport] = field(default_factory=list)

    def kinds(self) -> dict:
        return {t.name: t.primary_key_kind for t in self.tables}

    def format_plan(self) -> str:
        if not self.tables:
            return "No tables found."
        lines: List[str] = []
        for t in self.tables:
            pk = t.primary_key or "-"
            lines.append(f"{t.name} (primary key: {pk}, {t.primary_key_kind.value})")
            for name, rendered in t.columns:
                lines.append(f"  - {name} : {rendered}")
        return "\n".join(lines)


def render_column_type(sql_type: str) -> str:
    """UUID-shaped columns show up as `uuid` whatever the dialect stores them as."""
    if classify_sql_type(sql_type) is PrimaryKeyKind.UUID:
        return "uuid"
    return sql_type or "?"


def dump_schema(catalog: SQLAlchemyCatalog, exclude: tuple = ()) -> SchemaReport:
    cache = SchemaTypeCache()
    report = SchemaReport()
    for name in catalog.table_names():
        if name in exclude:
            continue
        report.tables.append(TableReport(
            name=name,
            primary_key=catalog.primary_key_name(name),
            primary_key_kind=cache.lookup_or_compute(name, catalog),
            columns=[(c.name, render_column_type(c.sql_type)) for c in catalog.columns(name)],
        ))
    return report
