# uuidpk/references.py
#
# Foreign key type inference for reference columns.
#
# ForeignKeyTypeResolver decides whether `<name>_id` must be UUID-shaped by
# looking at the primary key of the referenced table. The wrappers below put
# it in front of any DSL object exposing `references` / `add_reference`
# without touching that object's class.

from __future__ import annotations
import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterator, Optional

from core.ports import ReferenceColumns, ReferenceStatements, SchemaCatalog
from uuidpk.config import UuidPolicy
from uuidpk.inflection import pluralize
from uuidpk.polymorphic import PolymorphicPolicy
from uuidpk.schema_cache import SchemaTypeCache
from uuidpk.type_mapping import PrimaryKeyKind, is_default_placeholder

logger = logging.getLogger(__name__)


@dataclass
class ReferenceDeclaration:
    column_base_name: str
    explicit_target_table: Optional[str] = None
    is_polymorphic: bool = False
    explicit_type_override: Any = None
    other_options: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_call(cls, name: Any, options: Dict[str, Any]) -> "ReferenceDeclaration":
        opts = dict(options)
        to_table = opts.pop("to_table", None)
        return cls(
            column_base_name=str(name),
            explicit_target_table=str(to_table) if to_table else None,
            is_polymorphic=bool(opts.pop("polymorphic", False)),
            explicit_type_override=opts.pop("type", None),
            other_options=opts,
        )

    @property
    def has_explicit_type(self) -> bool:
        return not is_default_placeholder(self.explicit_type_override)

    def to_options(self) -> Dict[str, Any]:
        opts = dict(self.other_options)
        if self.explicit_target_table is not None:
            opts["to_table"] = self.explicit_target_table
        if self.is_polymorphic:
            opts["polymorphic"] = True
        if self.explicit_type_override is not None:
            opts["type"] = self.explicit_type_override
        return opts


class ForeignKeyTypeResolver:
    """
    Decides the storage type of a reference column.

    Order of precedence:
      1. an explicit, non-placeholder `type` is kept as is
      2. polymorphic references follow PolymorphicPolicy
      3. otherwise the referenced table's primary key decides (via the cache)
    Unknown or failing lookups leave the declaration untouched.
    """

    def __init__(
        self,
        catalog: SchemaCatalog,
        cache: Optional[SchemaTypeCache] = None,
        policy: Optional[UuidPolicy] = None,
    ) -> None:
        self.catalog = catalog
        self.cache = cache if cache is not None else SchemaTypeCache()
        self.policy = policy or UuidPolicy.from_settings()
        self.polymorphic = PolymorphicPolicy(self.policy, self.cache)
        self._pluralize: Callable[[str], str] = getattr(catalog, "pluralize", None) or pluralize

    def target_table(self, decl: ReferenceDeclaration) -> str:
        return decl.explicit_target_table or self._pluralize(decl.column_base_name)

    def resolve_kind(self, decl: ReferenceDeclaration) -> Optional[PrimaryKeyKind]:
        """Primary key kind the column must match, or None when the author already chose."""
        if decl.has_explicit_type:
            return None
        if decl.is_polymorphic:
            return self.polymorphic.resolve()
        return self.cache.lookup_or_compute(self.target_table(decl), self.catalog)

    def resolve(self, decl: ReferenceDeclaration) -> ReferenceDeclaration:
        kind = self.resolve_kind(decl)
        if kind is PrimaryKeyKind.UUID:
            decl.explicit_type_override = "uuid"
        logger.debug(
            "Reference %s resolved: kind=%s type=%s",
            decl.column_base_name, kind.value if kind else "explicit", decl.explicit_type_override,
        )
        return decl

    def apply(self, name: Any, options: Dict[str, Any]) -> Dict[str, Any]:
        """Options to forward for a `references(name, **options)` style call."""
        return self.resolve(ReferenceDeclaration.from_call(name, options)).to_options()


class UuidTableDefinition:
    """Table definition whose `references` / `belongs_to` get UUID-aware types."""

    def __init__(self, table: ReferenceColumns, resolver: ForeignKeyTypeResolver) -> None:
        self._table = table
        self._resolver = resolver

    def references(self, name: Any, **options: Any) -> Any:
        return self._table.references(name, **self._resolver.apply(name, options))

    belongs_to = references

    def __getattr__(self, attr: str) -> Any:
        return getattr(self._table, attr)


class UuidSchemaStatements:
    """Schema statements whose reference operations get UUID-aware types."""

    def __init__(self, statements: ReferenceStatements, resolver: ForeignKeyTypeResolver) -> None:
        self._statements = statements
        self._resolver = resolver

    @property
    def resolver(self) -> ForeignKeyTypeResolver:
        return self._resolver

    def add_reference(self, table_name: str, ref_name: Any, **options: Any) -> Any:
        return self._statements.add_reference(
            table_name, ref_name, **self._resolver.apply(ref_name, options)
        )

    add_belongs_to = add_reference

    @contextmanager
    def create_table(self, name: str, **options: Any) -> Iterator[UuidTableDefinition]:
        with self._statements.create_table(name, **options) as t:
            yield UuidTableDefinition(t, self._resolver)

    @contextmanager
    def change_table(self, name: str) -> Iterator[UuidTableDefinition]:
        with self._statements.change_table(name) as t:
            yield UuidTableDefinition(t, self._resolver)

    def __getattr__(self, attr: str) -> Any:
        return getattr(self._statements, attr)
