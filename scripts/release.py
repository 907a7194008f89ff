"""
Apply Alembic migrations against DATABASE_URL. Runs before every deploy.

Usage:
  python scripts/release.py
"""

from __future__ import annotations

import os
import sys
from pathlib import Path

from alembic import command
from alembic.config import Config

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))


def alembic_config(db_url: str) -> Config:
    cfg = Config(str(ROOT / "alembic.ini"))
    cfg.set_main_option("script_location", str(ROOT / "migrations"))
    cfg.set_main_option("sqlalchemy.url", db_url)
    return cfg


def run_release(environ: dict[str, str] | None = None) -> None:
    environ = os.environ if environ is None else environ
    db_url = (environ.get("DATABASE_URL") or "").strip()
    if not db_url:
        raise RuntimeError("DATABASE_URL must be set before migrating.")
    env = (environ.get("ENV") or "").strip().lower()
    if env in ("prod", "production") and db_url.startswith("sqlite"):
        raise RuntimeError("Production migrations need a Postgres DATABASE_URL, not sqlite.")

    print(f"Migrating to head (ENV={env or '-'})", flush=True)
    command.upgrade(alembic_config(db_url), "head")
    print("Migrations applied.", flush=True)


if __name__ == "__main__":
    run_release()
