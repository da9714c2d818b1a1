# uuidpk/schema_cache.py
from __future__ import annotations
import logging
from typing import Dict, Optional

from core.ports import SchemaCatalog
from uuidpk.type_mapping import PrimaryKeyKind, classify_sql_type

logger = logging.getLogger(__name__)


class CacheInvariantError(RuntimeError):
    """A memoized primary key kind was about to change within one run."""


class SchemaTypeCache:
    """
    Primary key kinds seen during ONE migration run.

    Build a new cache per run and drop it afterwards. Entries are
    first-write-wins: a table resolved early in the run keeps its kind even if
    the schema changes later in the same run.
    """

    def __init__(self) -> None:
        self._kinds: Dict[str, PrimaryKeyKind] = {}

    def __contains__(self, table_name: str) -> bool:
        return table_name in self._kinds

    def __len__(self) -> int:
        return len(self._kinds)

    def get(self, table_name: str) -> Optional[PrimaryKeyKind]:
        return self._kinds.get(table_name)

    def snapshot(self) -> Dict[str, PrimaryKeyKind]:
        return dict(self._kinds)

    def has_uuid_table(self) -> bool:
        return any(kind is PrimaryKeyKind.UUID for kind in self._kinds.values())

    def remember(self, table_name: str, kind: PrimaryKeyKind) -> PrimaryKeyKind:
        current = self._kinds.get(table_name)
        if current is None:
            self._kinds[table_name] = kind
            return kind
        if current is not kind:
            raise CacheInvariantError(
                f"{table_name!r} already cached as {current.value}, refusing {kind.value}"
            )
        return current

    def lookup_or_compute(self, table_name: str, catalog: SchemaCatalog) -> PrimaryKeyKind:
        cached = self._kinds.get(table_name)
        if cached is not None:
            return cached
        try:
            kind = self._introspect(table_name, catalog)
        except Exception as e:
            logger.warning(
                "Primary key introspection failed for %s (treating as unknown): %s", table_name, e
            )
            kind = PrimaryKeyKind.UNKNOWN
        return self.remember(table_name, kind)

    @staticmethod
    def _introspect(table_name: str, catalog: SchemaCatalog) -> PrimaryKeyKind:
        # forward references and typos land here
        if not catalog.table_exists(table_name):
            return PrimaryKeyKind.UNKNOWN

        pk_name = catalog.primary_key_name(table_name)
        if not pk_name:
            return PrimaryKeyKind.UNKNOWN

        pk_column = next((c for c in catalog.columns(table_name) if c.name == pk_name), None)
        if pk_column is None:
            return PrimaryKeyKind.UNKNOWN
        return classify_sql_type(pk_column.sql_type)
