"""SQLite-backed store for doctor schedules, overrides, blocks and appointments.

Reads return engine value types via :mod:`schedule_mappers`; nothing
outside this module sees a database row.
"""

from __future__ import annotations

from datetime import date
import sqlite3
import uuid
from typing import Sequence

from clinic_availability.services.database import db
from clinic_availability.services.schedule_mappers import (
    appointment_from_row,
    block_from_row,
    override_from_row,
    schedule_from_legacy_rows,
    schedule_from_template_rows,
)
from clinic_availability.services.schedule_types import (
    Appointment,
    AvailabilityBreak,
    AvailabilityOverride,
    DoctorSchedule,
    ScheduleBlock,
    ScheduleSession,
    SlotConfiguration,
    WorkingDay,
)


def _new_id(prefix: str) -> str:
    return f"{prefix}-{uuid.uuid4()}"


def _slot_config_row(conn: sqlite3.Connection, doctor_id: str) -> sqlite3.Row | None:
    return conn.execute(
        "SELECT default_duration, buffer_time, slot_interval FROM slot_configurations WHERE doctor_id=?",
        (doctor_id,),
    ).fetchone()


def load_doctor_schedule(doctor_id: str) -> DoctorSchedule | None:
    """Return the doctor's recurring schedule, or None when nothing is configured.

    The legacy working-day tables win when both schemas hold data.
    """

    conn = db()
    try:
        config_row = _slot_config_row(conn, doctor_id)
        working_day_rows = conn.execute(
            "SELECT * FROM working_days WHERE doctor_id=? ORDER BY day",
            (doctor_id,),
        ).fetchall()
        if working_day_rows:
            session_rows = conn.execute(
                "SELECT * FROM schedule_sessions WHERE doctor_id=? ORDER BY start_time",
                (doctor_id,),
            ).fetchall()
            break_rows = conn.execute(
                "SELECT * FROM availability_breaks WHERE doctor_id=? ORDER BY start_time",
                (doctor_id,),
            ).fetchall()
            return schedule_from_legacy_rows(
                doctor_id, working_day_rows, session_rows, break_rows, config_row
            )

        template = conn.execute(
            """
            SELECT id FROM availability_templates
            WHERE doctor_id=? AND is_active=1
            ORDER BY created_at DESC
            LIMIT 1
            """,
            (doctor_id,),
        ).fetchone()
        if template:
            slot_rows = conn.execute(
                "SELECT * FROM availability_template_slots WHERE template_id=?",
                (template["id"],),
            ).fetchall()
            return schedule_from_template_rows(doctor_id, template["id"], slot_rows, config_row)

        if config_row is not None:
            return schedule_from_legacy_rows(doctor_id, [], [], [], config_row)
        return None
    finally:
        conn.close()


def load_overrides(doctor_id: str, start: date, end: date) -> list[AvailabilityOverride]:
    """Overrides whose date range intersects ``[start, end]``."""

    conn = db()
    try:
        rows = conn.execute(
            """
            SELECT * FROM availability_overrides
            WHERE doctor_id=? AND start_date <= ? AND end_date >= ?
            ORDER BY start_date ASC
            """,
            (doctor_id, end.isoformat(), start.isoformat()),
        ).fetchall()
        return [override_from_row(row) for row in rows]
    finally:
        conn.close()


def load_blocks(doctor_id: str, start: date, end: date) -> list[ScheduleBlock]:
    conn = db()
    try:
        rows = conn.execute(
            """
            SELECT * FROM schedule_blocks
            WHERE doctor_id=? AND start_date <= ? AND end_date >= ?
            ORDER BY start_date ASC
            """,
            (doctor_id, end.isoformat(), start.isoformat()),
        ).fetchall()
        return [block_from_row(row) for row in rows]
    finally:
        conn.close()


def load_appointments(doctor_id: str, start: date, end: date) -> list[Appointment]:
    """All appointments in range regardless of status; the engine skips non-occupying ones."""

    conn = db()
    try:
        rows = conn.execute(
            """
            SELECT * FROM appointments
            WHERE doctor_id=? AND appointment_date >= ? AND appointment_date <= ?
            ORDER BY appointment_date ASC, time ASC
            """,
            (doctor_id, start.isoformat(), end.isoformat()),
        ).fetchall()
        return [appointment_from_row(row) for row in rows]
    finally:
        conn.close()


def save_weekly_template(
    doctor_id: str,
    working_days: Sequence[WorkingDay],
    sessions: Sequence[ScheduleSession] = (),
    breaks: Sequence[AvailabilityBreak] = (),
) -> None:
    """Replace the doctor's weekly template wholesale (delete, then recreate)."""

    conn = db()
    try:
        conn.execute("BEGIN IMMEDIATE")
        conn.execute("DELETE FROM schedule_sessions WHERE doctor_id=?", (doctor_id,))
        conn.execute("DELETE FROM availability_breaks WHERE doctor_id=?", (doctor_id,))
        conn.execute("DELETE FROM working_days WHERE doctor_id=?", (doctor_id,))

        id_by_day: dict[str, str] = {}
        for wd in working_days:
            wd_id = _new_id("wd")
            id_by_day[wd.day] = wd_id
            conn.execute(
                """
                INSERT INTO working_days(id, doctor_id, day, start_time, end_time, is_available)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (wd_id, doctor_id, wd.day, wd.start_time, wd.end_time, 1 if wd.is_available else 0),
            )
        for session in sessions:
            wd_id = id_by_day.get(session.day)
            if wd_id is None:
                continue
            conn.execute(
                """
                INSERT INTO schedule_sessions(
                    id, doctor_id, working_day_id, start_time, end_time, session_type, max_patients, notes
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    _new_id("session"),
                    doctor_id,
                    wd_id,
                    session.start_time,
                    session.end_time,
                    session.session_type,
                    session.max_patients,
                    session.notes,
                ),
            )
        for br in breaks:
            conn.execute(
                """
                INSERT INTO availability_breaks(
                    id, doctor_id, working_day_id, day_of_week, start_time, end_time, reason
                ) VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    _new_id("break"),
                    doctor_id,
                    id_by_day.get(br.day_of_week or ""),
                    br.day_of_week,
                    br.start_time,
                    br.end_time,
                    br.reason,
                ),
            )
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()


def save_slot_configuration(doctor_id: str, config: SlotConfiguration) -> None:
    conn = db()
    try:
        conn.execute(
            """
            INSERT OR REPLACE INTO slot_configurations(
                doctor_id, default_duration, buffer_time, slot_interval, updated_at
            ) VALUES (?, ?, ?, ?, datetime('now'))
            """,
            (doctor_id, config.default_duration, config.buffer_time, config.slot_interval),
        )
        conn.commit()
    finally:
        conn.close()


def add_override(doctor_id: str, override: AvailabilityOverride) -> str:
    override_id = _new_id("override")
    conn = db()
    try:
        conn.execute(
            """
            INSERT INTO availability_overrides(
                id, doctor_id, start_date, end_date, start_time, end_time, is_blocked, reason
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                override_id,
                doctor_id,
                override.start_date.isoformat(),
                override.end_date.isoformat(),
                override.start_time,
                override.end_time,
                1 if override.is_blocked else 0,
                override.reason,
            ),
        )
        conn.commit()
        return override_id
    finally:
        conn.close()


def add_block(doctor_id: str, block: ScheduleBlock) -> str:
    block_id = _new_id("block")
    conn = db()
    try:
        conn.execute(
            """
            INSERT INTO schedule_blocks(
                id, doctor_id, start_date, end_date, start_time, end_time, block_type, reason, created_by
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                block_id,
                doctor_id,
                block.start_date.isoformat(),
                block.end_date.isoformat(),
                block.start_time,
                block.end_time,
                block.block_type,
                block.reason,
                block.created_by,
            ),
        )
        conn.commit()
        return block_id
    finally:
        conn.close()


def delete_override(override_id: str) -> bool:
    conn = db()
    try:
        cur = conn.execute("DELETE FROM availability_overrides WHERE id=?", (override_id,))
        conn.commit()
        return cur.rowcount > 0
    finally:
        conn.close()


def delete_block(block_id: str) -> bool:
    conn = db()
    try:
        cur = conn.execute("DELETE FROM schedule_blocks WHERE id=?", (block_id,))
        conn.commit()
        return cur.rowcount > 0
    finally:
        conn.close()
