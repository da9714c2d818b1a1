# uuidpk/loader.py
from __future__ import annotations
import logging
from pathlib import Path

from pydantic import ValidationError

from uuidpk.meta_models import ModelMeta, Table
from uuidpk.references import UuidSchemaStatements
from uuidpk.runner import Migration

logger = logging.getLogger(__name__)


class InvalidMetaError(Exception):
    pass


def load_meta(path: str | Path = "schema.meta.json") -> ModelMeta:
    meta_path = Path(path)
    if not meta_path.exists():
        raise InvalidMetaError(f"Meta file not found at {meta_path}")

    try:
        raw = meta_path.read_text(encoding="utf-8")
    except OSError as e:
        raise InvalidMetaError(f"Failed to read meta at {meta_path}: {e}") from e

    try:
        meta = ModelMeta.model_validate_json(raw)
    except ValidationError as e:
        raise InvalidMetaError(f"Meta validation failed for {meta_path}: {e}") from e

    logger.info("Loaded meta from %s with %d tables", str(meta_path.resolve()), len(meta.tables))
    return meta


class MetaMigration(Migration):
    """Creates every table of a ModelMeta, in file order, through the UUID-aware DSL."""

    def __init__(self, meta: ModelMeta, name: str = "meta") -> None:
        self.meta = meta
        self.version = meta.version
        self.name = name

    def up(self, schema: UuidSchemaStatements) -> None:
        for table in self.meta.tables:
            self._create(schema, table)

    def down(self, schema: UuidSchemaStatements) -> None:
        for table in reversed(self.meta.tables):
            schema.drop_table(table.tableName, if_exists=True)

    @staticmethod
    def _create(schema: UuidSchemaStatements, table: Table) -> None:
        pk = table.primaryKeyType.value if table.primaryKeyType else True
        with schema.create_table(table.tableName, id=pk) as t:
            for col in table.columns:
                t.column(
                    col.columnName,
                    col.dataType.value,
                    null=col.isNullable if col.isNullable is not None else True,
                    unique=bool(col.isUnique),
                    default=col.defaultValue,
                    limit=col.length,
                    precision=col.precision,
                    scale=col.scale,
                )
            for ref in table.references:
                options = {
                    "polymorphic": ref.polymorphic,
                    "index": ref.index,
                    "foreign_key": ref.foreignKey,
                    "null": ref.isNullable if ref.isNullable is not None else True,
                }
                if ref.toTable:
                    options["to_table"] = ref.toTable
                if ref.dataType is not None:
                    options["type"] = ref.dataType.value.lower()
                t.references(ref.name, **options)
            if table.timestamps:
                t.timestamps()
