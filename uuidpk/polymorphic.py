# uuidpk/polymorphic.py
from __future__ import annotations
import logging

from uuidpk.config import UuidPolicy
from uuidpk.schema_cache import SchemaTypeCache
from uuidpk.type_mapping import PrimaryKeyKind

logger = logging.getLogger(__name__)


class PolymorphicPolicy:
    """
    Storage kind for type-erased references (``<name>_id`` + ``<name>_type``).

    There is no single table to inspect, so the application-wide convention
    decides. With ``infer_polymorphic_from_observed`` on, a UUID table already
    seen in this run also tips the verdict to UUID; that answer depends on
    statement order, which is why it is off by default.
    """

    def __init__(self, policy: UuidPolicy, cache: SchemaTypeCache) -> None:
        self.policy = policy
        self.cache = cache

    def resolve(self) -> PrimaryKeyKind:
        if self.policy.uuid_by_default:
            return PrimaryKeyKind.UUID
        if self.policy.infer_polymorphic_from_observed and self.cache.has_uuid_table():
            logger.debug("Polymorphic reference typed as uuid from tables observed this run")
            return PrimaryKeyKind.UUID
        return PrimaryKeyKind.INTEGER
