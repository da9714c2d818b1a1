# core/ports.py
from __future__ import annotations
from dataclasses import dataclass
from typing import Any, List, Optional, Protocol


@dataclass(frozen=True)
class ColumnInfo:
    name: str
    sql_type: str  # declared SQL type as rendered by the database


class SchemaCatalog(Protocol):
    """Read-only view of the live schema. Calls must be idempotent."""
    def table_exists(self, name: str) -> bool: ...
    def primary_key_name(self, table: str) -> Optional[str]: ...
    def columns(self, table: str) -> List[ColumnInfo]: ...


class ReferenceColumns(Protocol):
    """A table definition that can declare reference columns (create/change table)."""
    def references(self, name: str, **options: Any) -> Any: ...


class ReferenceStatements(Protocol):
    """Schema statements that add reference columns to an existing table."""
    def add_reference(self, table_name: str, ref_name: str, **options: Any) -> Any: ...
