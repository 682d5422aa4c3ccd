"""Apply the Alembic revisions under ``stockplanner/migrations`` at startup.

The upgrade runs on one connection inside one transaction, so a failing
revision leaves the schema as it was. The same scripts serve the
``alembic`` CLI through ``alembic.ini``.
"""

from __future__ import annotations

import logging
from pathlib import Path

from alembic import command
from alembic.config import Config
from alembic.runtime.migration import MigrationContext
from alembic.script import ScriptDirectory
from sqlalchemy import Engine

log = logging.getLogger("stockplanner.migrations")

MIGRATIONS_DIR = Path(__file__).resolve().parent.parent / "migrations"


def alembic_config() -> Config:
    cfg = Config()
    cfg.set_main_option("script_location", str(MIGRATIONS_DIR))
    return cfg


def head_revision() -> str | None:
    return ScriptDirectory.from_config(alembic_config()).get_current_head()


def run_migrations(engine: Engine) -> str | None:
    """Upgrade the database to the latest revision and return that revision."""
    cfg = alembic_config()
    with engine.begin() as conn:
        before = MigrationContext.configure(conn).get_current_revision()
        cfg.attributes["connection"] = conn
        command.upgrade(cfg, "head")
        revision = MigrationContext.configure(conn).get_current_revision()

    if revision != before:
        log.info("migrations_applied from=%s to=%s", before, revision)
    return revision
