from __future__ import annotations
import os
from dataclasses import dataclass
from functools import lru_cache

from dotenv import load_dotenv

load_dotenv()

PRIMARY_KEY_TYPES = ("uuid", "integer")


class Settings:
    DATABASE_URL: str
    DIALECT: str
    LOG_LEVEL: str
    PRIMARY_KEY_TYPE: str
    POLYMORPHIC_INFER: bool

    def __init__(self) -> None:
        self.DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./app.db")
        self.DIALECT = os.getenv("DIALECT", "sqlite").lower()
        self.LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
        self.PRIMARY_KEY_TYPE = os.getenv("PRIMARY_KEY_TYPE", "uuid").strip().lower()
        self.POLYMORPHIC_INFER = os.getenv("POLYMORPHIC_INFER") == "1"


@lru_cache
def get_settings() -> Settings:
    return Settings()


@dataclass(frozen=True)
class UuidPolicy:
    """
    Application-wide primary key convention.

    Read-only while migrations run. Built once from settings and handed to
    the resolver, so tests can build independent policies side by side.
    """
    primary_key_type: str = "uuid"
    infer_polymorphic_from_observed: bool = False

    def __post_init__(self) -> None:
        if self.primary_key_type not in PRIMARY_KEY_TYPES:
            raise ValueError(
                f"primary_key_type must be one of {PRIMARY_KEY_TYPES}, got {self.primary_key_type!r}"
            )

    @property
    def uuid_by_default(self) -> bool:
        return self.primary_key_type == "uuid"

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> "UuidPolicy":
        s = settings or get_settings()
        return cls(
            primary_key_type=s.PRIMARY_KEY_TYPE,
            infer_polymorphic_from_observed=s.POLYMORPHIC_INFER,
        )
