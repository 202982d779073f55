"""Connection helper for the availability store."""

from __future__ import annotations

import sqlite3

from clinic_availability.extensions import db as sa_db


def db() -> sqlite3.Connection:
    """Pooled sqlite3 connection with PRAGMAs applied and ``sqlite3.Row`` rows.

    Callers must ``close()`` it to hand it back to the pool.
    """

    return sa_db.raw_connection()
