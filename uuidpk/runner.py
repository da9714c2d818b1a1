# uuidpk/runner.py
from __future__ import annotations
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

from sqlalchemy.engine import Engine

from adapters.sqla.catalog import SQLAlchemyCatalog
from uuidpk.config import UuidPolicy
from uuidpk.migration import SchemaStatements
from uuidpk.references import ForeignKeyTypeResolver, UuidSchemaStatements
from uuidpk.schema_cache import SchemaTypeCache
from uuidpk.type_mapping import PrimaryKeyKind

logger = logging.getLogger(__name__)

DIRECTIONS = ("up", "down")


class IrreversibleMigration(RuntimeError):
    pass


class Migration:
    """
    One schema change. Subclasses implement `up(schema)` and optionally `down(schema)`.

    `schema` is a UuidSchemaStatements: create_table / add_reference /
    drop_table ... with reference types inferred from the live schema.
    """
    version: str = ""
    name: Optional[str] = None

    @property
    def label(self) -> str:
        name = self.name or type(self).__name__
        return f"{self.version} {name}".strip()

    def up(self, schema: UuidSchemaStatements) -> None:
        raise NotImplementedError

    def down(self, schema: UuidSchemaStatements) -> None:
        raise IrreversibleMigration(f"{self.label} cannot be reverted")


@dataclass
class RunResult:
    direction: str
    applied: List[str] = field(default_factory=list)
    statements: List[str] = field(default_factory=list)
    resolved: Dict[str, PrimaryKeyKind] = field(default_factory=dict)


class MigrationRunner:
    """
    Runs migrations one after another inside a single transaction.

    Each call to `run` gets its own SchemaTypeCache, catalog and resolver;
    nothing learned about the schema survives into the next run.
    """

    def __init__(self, engine: Engine, policy: Optional[UuidPolicy] = None) -> None:
        self.engine = engine
        self.policy = policy or UuidPolicy.from_settings()

    def run(self, migrations: Sequence[Migration], direction: str = "up") -> RunResult:
        if direction not in DIRECTIONS:
            raise ValueError(f"direction must be one of {DIRECTIONS}, got {direction!r}")

        ordered = list(migrations) if direction == "up" else list(reversed(migrations))
        result = RunResult(direction=direction)
        cache = SchemaTypeCache()

        with self.engine.begin() as conn:
            resolver = ForeignKeyTypeResolver(SQLAlchemyCatalog(conn), cache, self.policy)
            statements = SchemaStatements(conn, default_primary_key=self.policy.primary_key_type)
            schema = UuidSchemaStatements(statements, resolver)

            for migration in ordered:
                logger.info("== %s: %s", migration.label, "migrating" if direction == "up" else "reverting")
                getattr(migration, direction)(schema)
                result.applied.append(migration.label)

            result.statements = list(statements.executed)

        result.resolved = cache.snapshot()
        logger.info("Ran %d migration(s) %s, %d statement(s)",
                    len(result.applied), direction, len(result.statements))
        return result
