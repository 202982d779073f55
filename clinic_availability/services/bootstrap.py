"""Bootstrap helper to ensure the scheduling tables exist for first-time runs."""

from __future__ import annotations

import sqlite3
from pathlib import Path
from typing import Iterable


def _execute_statements(conn: sqlite3.Connection, statements: Iterable[str]) -> None:
    for stmt in statements:
        conn.execute(stmt)


def ensure_base_tables(db_path: Path) -> None:
    db_path.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(db_path)
    conn.execute("PRAGMA foreign_keys=ON")
    try:
        # Legacy weekly template: one working day per weekday, optional sessions and breaks.
        _execute_statements(
            conn,
            [
                """
                CREATE TABLE IF NOT EXISTS working_days (
                    id TEXT PRIMARY KEY,
                    doctor_id TEXT NOT NULL,
                    day TEXT NOT NULL,
                    start_time TEXT NOT NULL,
                    end_time TEXT NOT NULL,
                    is_available INTEGER NOT NULL DEFAULT 1,
                    created_at TEXT NOT NULL DEFAULT (datetime('now')),
                    UNIQUE(doctor_id, day)
                )
                """,
                """
                CREATE TABLE IF NOT EXISTS schedule_sessions (
                    id TEXT PRIMARY KEY,
                    doctor_id TEXT NOT NULL,
                    working_day_id TEXT NOT NULL,
                    start_time TEXT NOT NULL,
                    end_time TEXT NOT NULL,
                    session_type TEXT NOT NULL DEFAULT 'CLINIC',
                    max_patients INTEGER,
                    notes TEXT,
                    FOREIGN KEY(working_day_id) REFERENCES working_days(id) ON DELETE CASCADE
                )
                """,
                """
                CREATE TABLE IF NOT EXISTS availability_breaks (
                    id TEXT PRIMARY KEY,
                    doctor_id TEXT NOT NULL,
                    working_day_id TEXT,
                    day_of_week TEXT,
                    start_time TEXT NOT NULL,
                    end_time TEXT NOT NULL,
                    reason TEXT,
                    FOREIGN KEY(working_day_id) REFERENCES working_days(id) ON DELETE CASCADE
                )
                """,
            ],
        )
        # Newer template schema; read through the same mapper layer.
        _execute_statements(
            conn,
            [
                """
                CREATE TABLE IF NOT EXISTS availability_templates (
                    id TEXT PRIMARY KEY,
                    doctor_id TEXT NOT NULL,
                    name TEXT NOT NULL DEFAULT 'Standard',
                    is_active INTEGER NOT NULL DEFAULT 1,
                    created_at TEXT NOT NULL DEFAULT (datetime('now'))
                )
                """,
                """
                CREATE TABLE IF NOT EXISTS availability_template_slots (
                    id TEXT PRIMARY KEY,
                    template_id TEXT NOT NULL,
                    day_of_week INTEGER NOT NULL,
                    start_time TEXT NOT NULL,
                    end_time TEXT NOT NULL,
                    slot_type TEXT,
                    FOREIGN KEY(template_id) REFERENCES availability_templates(id) ON DELETE CASCADE,
                    CHECK(day_of_week BETWEEN 0 AND 6)
                )
                """,
            ],
        )
        _execute_statements(
            conn,
            [
                """
                CREATE TABLE IF NOT EXISTS availability_overrides (
                    id TEXT PRIMARY KEY,
                    doctor_id TEXT NOT NULL,
                    start_date TEXT NOT NULL,
                    end_date TEXT NOT NULL,
                    start_time TEXT,
                    end_time TEXT,
                    is_blocked INTEGER NOT NULL DEFAULT 1,
                    reason TEXT,
                    created_at TEXT NOT NULL DEFAULT (datetime('now'))
                )
                """,
                """
                CREATE INDEX IF NOT EXISTS idx_overrides_doctor_dates
                ON availability_overrides(doctor_id, start_date, end_date)
                """,
                """
                CREATE TABLE IF NOT EXISTS schedule_blocks (
                    id TEXT PRIMARY KEY,
                    doctor_id TEXT NOT NULL,
                    start_date TEXT NOT NULL,
                    end_date TEXT NOT NULL,
                    start_time TEXT,
                    end_time TEXT,
                    block_type TEXT NOT NULL DEFAULT 'OTHER',
                    reason TEXT,
                    created_by TEXT,
                    created_at TEXT NOT NULL DEFAULT (datetime('now'))
                )
                """,
                """
                CREATE INDEX IF NOT EXISTS idx_blocks_doctor_dates
                ON schedule_blocks(doctor_id, start_date, end_date)
                """,
                """
                CREATE TABLE IF NOT EXISTS slot_configurations (
                    doctor_id TEXT PRIMARY KEY,
                    default_duration INTEGER NOT NULL,
                    buffer_time INTEGER NOT NULL DEFAULT 0,
                    slot_interval INTEGER NOT NULL,
                    updated_at TEXT NOT NULL DEFAULT (datetime('now'))
                )
                """,
            ],
        )
        _execute_statements(
            conn,
            [
                """
                CREATE TABLE IF NOT EXISTS appointments (
                    id TEXT PRIMARY KEY,
                    doctor_id TEXT NOT NULL,
                    patient_name TEXT,
                    appointment_date TEXT NOT NULL,
                    time TEXT NOT NULL,
                    duration_minutes INTEGER,
                    status TEXT NOT NULL DEFAULT 'SCHEDULED',
                    created_at TEXT NOT NULL DEFAULT (datetime('now')),
                    updated_at TEXT NOT NULL DEFAULT (datetime('now')),
                    CHECK(status IN ('PENDING','SCHEDULED','CANCELLED','COMPLETED'))
                )
                """,
                """
                CREATE INDEX IF NOT EXISTS idx_appointments_doctor_date
                ON appointments(doctor_id, appointment_date)
                """,
            ],
        )
        conn.commit()
    finally:
        conn.close()
