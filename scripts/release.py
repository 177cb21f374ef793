"""
Release step of a deploy: migrate the schema to head, then seed roles and the admin.

Refuses to run without database configuration, or against sqlite when
ENV is production. Safe to run on every deploy.

Usage:
  python scripts/release.py
"""

from __future__ import annotations

import os
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from alembic import command  # noqa: E402
from alembic.config import Config  # noqa: E402
from dotenv import load_dotenv  # noqa: E402

from app.quill.config import is_production  # noqa: E402
from scripts import init_db  # noqa: E402
from scripts._db_utils import resolve_database_url  # noqa: E402


def alembic_config(db_url: str) -> Config:
    cfg = Config(str(ROOT / "alembic.ini"))
    cfg.set_main_option("script_location", str(ROOT / "migrations"))
    # ini values go through configparser interpolation
    cfg.set_main_option("sqlalchemy.url", db_url.replace("%", "%%"))
    return cfg


def run_release() -> str:
    """Migrate and seed; returns the database URL that was used."""
    load_dotenv()
    if not (os.environ.get("DATABASE_URL") or "").strip() and not (os.environ.get("DB_CONNECTION") or "").strip():
        raise RuntimeError("No database configured. Set DATABASE_URL, or DB_CONNECTION and the other DB_* variables.")

    db_url = resolve_database_url()
    env = os.environ.get("ENV")
    if is_production(env) and db_url.startswith("sqlite"):
        raise RuntimeError("Refusing to release onto sqlite in production. Configure MySQL or Postgres.")

    print(f"Release (ENV={env or 'unset'}): upgrading schema to head...", flush=True)
    command.upgrade(alembic_config(db_url), "head")
    print("Seeding permissions, roles and admin user...", flush=True)
    init_db.seed_only(database_url=db_url)
    print("Release done.", flush=True)
    return db_url


if __name__ == "__main__":
    run_release()
