"""
Declarative mixin giving models a UUIDv7 primary key.

    class User(UuidPrimaryKeyMixin, Base):
        __tablename__ = "users"
        name: Mapped[str]

    class LegacyItem(UuidPrimaryKeyMixin, Base):
        __tablename__ = "legacy_items"
        __use_integer_primary_key__ = True   # keeps an autoincrement integer id

The id is assigned right before INSERT, and only when the model has none, so
manually chosen ids and bulk loads with ids are left alone.
"""

from __future__ import annotations

import logging
from typing import Any

from sqlalchemy import Integer, event
from sqlalchemy.orm import Mapped, declared_attr, mapped_column

from uuidpk.ids import new_identifier
from uuidpk.types import GUID

logger = logging.getLogger(__name__)


class UuidPrimaryKeyMixin:
    __use_integer_primary_key__ = False

    @declared_attr
    def id(cls) -> Mapped[Any]:
        if cls.__use_integer_primary_key__:
            return mapped_column(Integer, primary_key=True, autoincrement=True)
        return mapped_column(GUID(), primary_key=True)

    @classmethod
    def uses_uuid_primary_key(cls) -> bool:
        return not cls.__use_integer_primary_key__


@event.listens_for(UuidPrimaryKeyMixin, "before_insert", propagate=True)
def assign_uuidv7_if_needed(mapper, connection, target) -> None:
    if not type(target).uses_uuid_primary_key() or target.id is not None:
        return
    target.id = new_identifier()
    logger.debug("Assigned UUIDv7 %s to %s", target.id, type(target).__name__)
