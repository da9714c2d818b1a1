# uuidpk/db.py
from __future__ import annotations

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine

from uuidpk.config import get_settings


def build_engine(url: str | None = None) -> Engine:
    # SQL echo follows LOG_LEVEL=DEBUG
    settings = get_settings()
    return create_engine(
        url or settings.DATABASE_URL,
        pool_pre_ping=True,
        future=True,
        echo=settings.LOG_LEVEL == "DEBUG",
    )
