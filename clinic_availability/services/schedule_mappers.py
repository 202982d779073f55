"""Translate stored rows into the engine's plain value types.

Two storage schemas are in use while the template migration is rolled
out: the legacy ``working_days`` / ``schedule_sessions`` /
``availability_breaks`` tables and the ``availability_templates`` /
``availability_template_slots`` pair. Both end up as the same
:class:`~clinic_availability.services.schedule_types.DoctorSchedule`.
"""

from __future__ import annotations

from datetime import date
from typing import Any, Iterable, Mapping

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

Row = Mapping[str, Any]

# Template slots number weekdays from Sunday.
TEMPLATE_DAY_NAMES = ("Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday")


def _opt(value: Any) -> Any:
    if value is None:
        return None
    if isinstance(value, str) and not value.strip():
        return None
    return value


def _as_date(value: Any) -> date:
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value)[:10])


def working_day_from_row(row: Row) -> WorkingDay:
    return WorkingDay(
        id=row["id"],
        day=row["day"],
        start_time=row["start_time"],
        end_time=row["end_time"],
        is_available=bool(row["is_available"]),
    )


def session_from_row(row: Row, day_by_working_day: Mapping[str, str]) -> ScheduleSession | None:
    day = day_by_working_day.get(row["working_day_id"])
    if day is None:
        return None
    return ScheduleSession(
        id=row["id"],
        working_day_id=row["working_day_id"],
        day=day,
        start_time=row["start_time"],
        end_time=row["end_time"],
        session_type=row["session_type"] or "CLINIC",
        max_patients=row["max_patients"],
        notes=_opt(row["notes"]),
    )


def break_from_row(row: Row) -> AvailabilityBreak:
    return AvailabilityBreak(
        id=row["id"],
        working_day_id=_opt(row["working_day_id"]),
        day_of_week=_opt(row["day_of_week"]),
        start_time=row["start_time"],
        end_time=row["end_time"],
        reason=_opt(row["reason"]),
    )


def override_from_row(row: Row) -> AvailabilityOverride:
    return AvailabilityOverride(
        id=row["id"],
        start_date=_as_date(row["start_date"]),
        end_date=_as_date(row["end_date"]),
        start_time=_opt(row["start_time"]),
        end_time=_opt(row["end_time"]),
        is_blocked=bool(row["is_blocked"]),
        reason=_opt(row["reason"]),
    )


def block_from_row(row: Row) -> ScheduleBlock:
    return ScheduleBlock(
        id=row["id"],
        start_date=_as_date(row["start_date"]),
        end_date=_as_date(row["end_date"]),
        start_time=_opt(row["start_time"]),
        end_time=_opt(row["end_time"]),
        block_type=row["block_type"] or "OTHER",
        reason=_opt(row["reason"]),
        created_by=_opt(row["created_by"]),
    )


def slot_configuration_from_row(row: Row | None) -> SlotConfiguration | None:
    if row is None:
        return None
    return SlotConfiguration(
        default_duration=int(row["default_duration"]),
        buffer_time=int(row["buffer_time"]),
        slot_interval=int(row["slot_interval"]),
    )


def appointment_from_row(row: Row) -> Appointment:
    return Appointment(
        id=row["id"],
        appointment_date=_as_date(row["appointment_date"]),
        time=row["time"],
        status=(row["status"] or "SCHEDULED").upper(),
        duration=row["duration_minutes"],
    )


def schedule_from_legacy_rows(
    doctor_id: str,
    working_day_rows: Iterable[Row],
    session_rows: Iterable[Row],
    break_rows: Iterable[Row],
    slot_config_row: Row | None = None,
) -> DoctorSchedule:
    working_days = [working_day_from_row(row) for row in working_day_rows]
    day_by_id = {wd.id: wd.day for wd in working_days if wd.id}
    sessions = []
    for row in session_rows:
        session = session_from_row(row, day_by_id)
        if session is not None:
            sessions.append(session)
    return DoctorSchedule(
        doctor_id=doctor_id,
        working_days=tuple(working_days),
        sessions=tuple(sessions),
        breaks=tuple(break_from_row(row) for row in break_rows),
        slot_configuration=slot_configuration_from_row(slot_config_row),
    )


def schedule_from_template_rows(
    doctor_id: str,
    template_id: str,
    slot_rows: Iterable[Row],
    slot_config_row: Row | None = None,
) -> DoctorSchedule:
    """Build a schedule from template slots.

    Slots are grouped per weekday into one synthetic working day spanning
    the earliest start to the latest end, and each slot becomes a session.
    The template schema carries no breaks.
    """

    by_day: dict[int, list[Row]] = {}
    for row in slot_rows:
        by_day.setdefault(int(row["day_of_week"]), []).append(row)

    working_days: list[WorkingDay] = []
    sessions: list[ScheduleSession] = []
    for day_index in sorted(by_day):
        day_slots = sorted(by_day[day_index], key=lambda r: r["start_time"])
        day_name = TEMPLATE_DAY_NAMES[day_index]
        working_day_id = f"wd-{template_id}-{day_index}"
        working_days.append(
            WorkingDay(
                id=working_day_id,
                day=day_name,
                start_time=day_slots[0]["start_time"],
                end_time=max(r["end_time"] for r in day_slots),
                is_available=True,
            )
        )
        for row in day_slots:
            sessions.append(
                ScheduleSession(
                    id=row["id"],
                    working_day_id=working_day_id,
                    day=day_name,
                    start_time=row["start_time"],
                    end_time=row["end_time"],
                    session_type=row["slot_type"] or "CLINIC",
                )
            )
    return DoctorSchedule(
        doctor_id=doctor_id,
        working_days=tuple(working_days),
        sessions=tuple(sessions),
        breaks=(),
        slot_configuration=slot_configuration_from_row(slot_config_row),
    )
