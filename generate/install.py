# generate/install.py
from __future__ import annotations
import logging
from pathlib import Path
from typing import List

logger = logging.getLogger(__name__)

MIXIN_TEMPLATE = '''\
# models/uuid_primary_key.py
# (written by `uuidpk install` - you can modify it later if needed)
from sqlalchemy import event
from sqlalchemy.orm import Mapped, declared_attr, mapped_column

from uuidpk.ids import new_identifier
from uuidpk.types import GUID


class HasUuidv7PrimaryKey:
    @declared_attr
    def id(cls) -> Mapped[object]:
        return mapped_column(GUID(), primary_key=True)


@event.listens_for(HasUuidv7PrimaryKey, "before_insert", propagate=True)
def _assign_uuidv7_if_needed(mapper, connection, target):
    if target.id is None:
        target.id = new_identifier()
'''

ENV_LINE = "PRIMARY_KEY_TYPE=uuid\n"


def install(root: Path, models_dir: str = "models", force: bool = False) -> List[Path]:
    """Write the model mixin and default the app to UUID primary keys. Returns written files."""
    root = Path(root)
    written: List[Path] = []

    target = root / models_dir / "uuid_primary_key.py"
    if target.exists() and not force:
        logger.warning("%s already exists, leaving it alone (use --force to overwrite)", target)
    else:
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(MIXIN_TEMPLATE, encoding="utf-8")
        written.append(target)

    env_file = root / ".env"
    env = env_file.read_text(encoding="utf-8") if env_file.exists() else ""
    if "PRIMARY_KEY_TYPE=" not in env:
        if env and not env.endswith("\n"):
            env += "\n"
        env_file.write_text(env + ENV_LINE, encoding="utf-8")
        written.append(env_file)

    for path in written:
        logger.info("create %s", path)
    return written
