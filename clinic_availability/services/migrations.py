"""Alembic configuration shared by the CLI and start-up upgrade."""

from __future__ import annotations

from pathlib import Path

from alembic import command
from alembic.config import Config
from flask import Flask

PROJECT_ROOT = Path(__file__).resolve().parents[2]


def has_migrations() -> bool:
    return (PROJECT_ROOT / "alembic.ini").exists() and (PROJECT_ROOT / "migrations").exists()


def alembic_config(app: Flask) -> Config:
    cfg = Config(str(PROJECT_ROOT / "alembic.ini"))
    cfg.set_main_option("script_location", str(PROJECT_ROOT / "migrations"))
    cfg.set_main_option("sqlalchemy.url", app.config["SQLALCHEMY_DATABASE_URI"])
    cfg.attributes["configure_logger"] = False
    return cfg


def run_migrations(app: Flask) -> None:
    """Upgrade the database to the latest revision."""

    command.upgrade(alembic_config(app), "head")
