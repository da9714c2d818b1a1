# uuidpk/types.py
import re
import uuid

from sqlalchemy.dialects.postgresql import UUID as PG_UUID
from sqlalchemy.types import String, TypeDecorator

from uuidpk.ids import UUID_PATTERN

_UUID_RE = re.compile(UUID_PATTERN, re.IGNORECASE)


def is_uuid_string(value: str) -> bool:
    return bool(_UUID_RE.match(value))


def cast_uuid(value):
    """
    Normalize a UUID-ish value.

    Valid UUIDs (objects or strings) come back as uuid.UUID. Anything else is
    kept as its string form so manually assigned legacy ids still round-trip.
    """
    if value is None:
        return None
    if isinstance(value, uuid.UUID):
        return value
    text = str(value)
    if is_uuid_string(text):
        return uuid.UUID(text)
    return text


class GUID(TypeDecorator):
    """Platform-independent GUID/UUID.

    - PostgreSQL: uses UUID type (as_uuid=True)
    - Others (SQLite, MySQL, etc.): stores as VARCHAR(36) string
    """
    impl = String(36)
    cache_ok = True

    def load_dialect_impl(self, dialect):
        if dialect.name == "postgresql":
            return dialect.type_descriptor(PG_UUID(as_uuid=True))
        return dialect.type_descriptor(String(36))

    def process_bind_param(self, value, dialect):
        value = cast_uuid(value)
        if value is None:
            return None
        if dialect.name == "postgresql":
            # the driver rejects malformed values itself
            return value
        return str(value)

    def process_result_value(self, value, dialect):
        return cast_uuid(value)
