"""Run Alembic migrations when the app starts."""

from __future__ import annotations

import os

from flask import Flask

from clinic_availability.services.migrations import has_migrations, run_migrations


def auto_upgrade(app: Flask) -> None:
    """Upgrade to head unless ``CLINIC_AUTO_MIGRATE`` is not ``1``.

    A failed upgrade is logged; ``ensure_base_tables`` still creates the
    schema afterwards.
    """

    if os.getenv("CLINIC_AUTO_MIGRATE", "1") != "1":
        return
    if not has_migrations():
        return
    try:
        run_migrations(app)
    except Exception as exc:  # pragma: no cover
        app.logger.warning("Auto migration skipped: %s", exc)
