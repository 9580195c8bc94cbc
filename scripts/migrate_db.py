"""
Database migration entrypoint for the settlement worker.

Runs Alembic migrations up to the latest head revision.  The database
URI comes from ``DATABASE_URL`` (or ``STATE_STORE_URI``) when set,
otherwise from ``alembic.ini``.  Run this in deployment pipelines
before the first reconciliation run of a release.
"""

from __future__ import annotations

import os
import pathlib

from alembic import command
from alembic.config import Config


def run_migrations() -> None:
    base_dir = pathlib.Path(__file__).resolve().parents[1]
    cfg = Config(str(base_dir / "alembic.ini"))
    cfg.set_main_option("script_location", str(base_dir / "alembic"))
    db_url = os.getenv("DATABASE_URL") or os.getenv("STATE_STORE_URI")
    if db_url:
        cfg.set_main_option("sqlalchemy.url", db_url)
    command.upgrade(cfg, "head")


if __name__ == "__main__":
    run_migrations()
