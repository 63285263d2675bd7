"""
Release phase: apply Alembic migrations, then seed users/products.

Seeding goes through the app's own session_scope, after migrations, so the
app factory sees an up-to-date schema. Existing users keep their passwords.

Usage (from the repo root):
  python -m scripts.release [--skip-seed]
"""

from __future__ import annotations

import argparse
import os
from pathlib import Path

from alembic import command
from alembic.config import Config
from alembic.script import ScriptDirectory
from flask import Flask

from app.batchflow import create_app
from app.batchflow.db import session_scope
from scripts.init_db import seed_credentials, seed_data

ROOT = Path(__file__).resolve().parents[1]


def _alembic_config(db_url: str) -> Config:
    cfg = Config(str(ROOT / "alembic.ini"))
    cfg.set_main_option("script_location", str(ROOT / "migrations"))
    cfg.set_main_option("sqlalchemy.url", db_url)
    return cfg


def migrate(db_url: str) -> str:
    """Upgrade to head; returns the head revision id."""
    cfg = _alembic_config(db_url)
    command.upgrade(cfg, "head")
    return ScriptDirectory.from_config(cfg).get_current_head() or "(none)"


def seed(app: Flask) -> dict[str, int]:
    with session_scope(app) as s:
        return seed_data(s, **seed_credentials())


def run_release(*, seed_db: bool = True) -> None:
    db_url = (os.environ.get("DATABASE_URL") or "").strip()
    if not db_url:
        raise RuntimeError("DATABASE_URL is required for a release (refusing to fall back to SQLite).")
    env = (os.environ.get("ENV") or "").strip().lower()
    if env in ("prod", "production") and db_url.startswith("sqlite"):
        raise RuntimeError("Refusing to run release on sqlite DATABASE_URL in production. Set DATABASE_URL to Postgres.")

    print(f"=== BatchFlow release (ENV={env or '(unset)'}) ===", flush=True)
    head = migrate(db_url)
    print(f"Migrations at head {head}.", flush=True)

    if not seed_db:
        print("Seed skipped.", flush=True)
        return

    app = create_app()
    try:
        created = seed(app)
    finally:
        app.extensions["sqlalchemy_engine"].dispose()
    print(f"Seeded {created['users']} users, {created['products']} products (existing rows kept).", flush=True)


def main() -> None:
    parser = argparse.ArgumentParser()
    parser.add_argument("--skip-seed", action="store_true", help="Only apply migrations")
    args = parser.parse_args()
    run_release(seed_db=not args.skip_seed)


if __name__ == "__main__":
    main()
