# uuidpk/type_mapping.py
from __future__ import annotations
import re
from enum import Enum

from sqlalchemy import types
from sqlalchemy.dialects import mysql, postgresql


class PrimaryKeyKind(str, Enum):
    UUID = "uuid"
    INTEGER = "integer"
    UNKNOWN = "unknown"


# Exactly the literal `uuid` or a 36-wide varchar (hyphenated UUID width).
# A plain `varchar(255)` name column must never match.
_UUID_SQL_TYPE = re.compile(r"\A(?:uuid|varchar\(\s*36\s*\))\Z", re.IGNORECASE)
_INTEGER_SQL_TYPE = re.compile(
    r"\A(?:tiny|small|medium|big)?int(?:eger)?(?:\(\s*\d+\s*\))?(?:\s+unsigned)?\Z"
    r"|\A(?:big)?serial\Z",
    re.IGNORECASE,
)

# Tags the DSL falls back to when the author did not pick a type.
DEFAULT_REFERENCE_TYPE = "bigint"
DEFAULT_TYPE_PLACEHOLDERS = frozenset({"integer", "bigint"})


def classify_sql_type(sql_type: str | None) -> PrimaryKeyKind:
    """Classify a declared SQL type string as a primary key storage kind."""
    declared = (sql_type or "").strip()
    if _UUID_SQL_TYPE.match(declared):
        return PrimaryKeyKind.UUID
    if _INTEGER_SQL_TYPE.match(declared):
        return PrimaryKeyKind.INTEGER
    return PrimaryKeyKind.UNKNOWN


def is_default_placeholder(type_tag) -> bool:
    if type_tag is None:
        return True
    return isinstance(type_tag, str) and type_tag.strip().lower() in DEFAULT_TYPE_PLACEHOLDERS


def uuid_type(dialect: str = "generic") -> types.TypeEngine:
    """Native UUID storage per dialect: PG has one, everyone else gets VARCHAR(36)."""
    if (dialect or "generic").lower().startswith("postgres"):
        return postgresql.UUID(as_uuid=True)
    return types.String(36)


def sqlalchemy_type(
    type_tag,
    *,
    length: int | None = None,
    precision: int | None = None,
    scale: int | None = None,
    dialect: str = "generic",
) -> types.TypeEngine:
    """
    Map a DSL type tag -> SQLAlchemy Column type.
    `dialect` should start with 'sqlite', 'postgres', 'mysql', or 'generic'.
    SQLAlchemy types (classes or instances) pass through untouched.
    """
    if isinstance(type_tag, types.TypeEngine):
        return type_tag
    if isinstance(type_tag, type) and issubclass(type_tag, types.TypeEngine):
        return type_tag()

    tag = (type_tag or DEFAULT_REFERENCE_TYPE).strip().lower()
    d = (dialect or "generic").lower()

    if tag == "uuid":
        return uuid_type(d)

    if tag in ("string", "varchar"):
        return types.String(length or 255)

    if tag == "text":
        return types.Text()

    if tag == "integer":
        return types.Integer()

    if tag == "bigint":
        return types.BigInteger()

    if tag == "decimal":
        return types.Numeric(precision or 18, scale or 6)

    if tag == "float":
        return types.Float()

    if tag == "boolean":
        return types.Boolean()

    if tag == "date":
        return types.Date()

    if tag in ("datetime", "timestamp"):
        return types.DateTime()

    if tag == "json":
        if d.startswith("postgres"):
            return postgresql.JSONB(none_as_null=True)
        if d.startswith("mysql"):
            return mysql.JSON()
        return types.JSON(none_as_null=True)

    if tag in ("binary", "blob"):
        return types.LargeBinary()

    raise ValueError(f"Unsupported column type: {type_tag!r}")
