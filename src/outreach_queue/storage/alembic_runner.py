"""Run the task store migrations programmatically."""

from __future__ import annotations

import logging
from pathlib import Path

from sqlalchemy.engine import Engine

from alembic import command
from alembic.config import Config
from alembic.runtime.migration import MigrationContext

logger = logging.getLogger(__name__)

PROJECT_ROOT = Path(__file__).resolve().parents[3]


def alembic_config(db_path: Path) -> Config:
    config = Config(str(PROJECT_ROOT / "alembic.ini"))
    config.set_main_option("script_location", str(PROJECT_ROOT / "alembic"))
    config.set_main_option("sqlalchemy.url", f"sqlite:///{db_path}")
    return config


def upgrade_head(db_path: Path, *, engine: Engine | None = None) -> None:
    """Upgrade the SQLite task store at ``db_path`` to the head revision.

    When ``engine`` is given the migration runs on one of its connections, so
    the store's pragmas (WAL, busy timeout, foreign keys) apply to it as well.
    """

    config = alembic_config(db_path)
    if engine is None:
        command.upgrade(config, "head")
        return

    with engine.begin() as connection:
        before = MigrationContext.configure(connection).get_current_revision()
        config.attributes["connection"] = connection
        command.upgrade(config, "head")
        after = MigrationContext.configure(connection).get_current_revision()
    if before != after:
        logger.info("Task store %s migrated %s -> %s", db_path, before or "<empty>", after)
