"""UUIDv7 identifiers (RFC 9562): millisecond time prefix, random tail."""

from __future__ import annotations

import uuid

import uuid6

UUID_PATTERN = r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$"


def new_identifier() -> uuid.UUID:
    """Return a new time-ordered UUIDv7."""
    return uuid.UUID(bytes=uuid6.uuid7().bytes)


def new_identifier_str() -> str:
    """Return a new UUIDv7 in its canonical 36-character form."""
    return str(new_identifier())
