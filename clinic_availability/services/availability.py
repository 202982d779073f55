"""Availability engine: bookable slots for a date and available dates for a range.

Every function here is pure. Callers fetch the doctor's schedule,
overrides, blocks and appointments once and pass plain values in; nothing
in this module touches the database or the Flask app.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, timedelta
import logging
from typing import Iterator, Sequence

from clinic_availability.services.conflicts import mark_conflicts, occupying_windows
from clinic_availability.services.intervals import TimeWindow, parse_time
from clinic_availability.services.precedence import (
    base_windows,
    covers,
    exclusion_windows,
    is_day_blocked,
    resolve_windows,
    sessions_for,
)
from clinic_availability.services.schedule_types import (
    Appointment,
    AvailabilityBreak,
    AvailabilityOverride,
    ScheduleBlock,
    ScheduleSession,
    Slot,
    SlotConfiguration,
    WorkingDay,
)
from clinic_availability.services.slot_generator import breaks_for_day, generate_slots

logger = logging.getLogger(__name__)

REASON_NOT_WORKING = "Doctor does not work on this day"
REASON_DAY_BLOCKED = "Doctor is unavailable on this date"
REASON_BLOCKED_PERIOD = "Time falls within blocked period"
REASON_BOOKED = "Time slot is already booked"
REASON_NOT_AVAILABLE = "Time slot is not available"


@dataclass(frozen=True)
class SlotCheck:
    is_available: bool
    reason: str | None = None


@dataclass(frozen=True)
class CalendarDay:
    date: date
    has_availability: bool
    available_slots_count: int
    sessions: list[dict[str, str]] = field(default_factory=list)

    def as_dict(self) -> dict[str, object]:
        return {
            "date": self.date.isoformat(),
            "hasAvailability": self.has_availability,
            "availableSlotsCount": self.available_slots_count,
            "sessions": list(self.sessions),
        }


def iter_dates(start: date, end: date) -> Iterator[date]:
    current = start
    while current <= end:
        yield current
        current += timedelta(days=1)


def resolve_slots_for_date(
    doctor_id: str,
    day: date,
    working_days: Sequence[WorkingDay],
    sessions: Sequence[ScheduleSession],
    overrides: Sequence[AvailabilityOverride],
    blocks: Sequence[ScheduleBlock],
    breaks: Sequence[AvailabilityBreak],
    occupying_appointments: Sequence[Appointment],
    slot_config: SlotConfiguration,
) -> list[Slot]:
    """Return the ordered candidate slots for ``doctor_id`` on ``day``.

    Each slot carries ``is_available``; a slot overlapping an occupying
    appointment is kept but flagged unavailable. An empty list means the
    doctor has no bookable time that day. Malformed times raise
    :class:`~clinic_availability.services.intervals.ParseError`.
    """

    windows = resolve_windows(day, working_days, sessions, overrides, blocks)
    if not windows:
        return []
    day_breaks = breaks_for_day(day, breaks, working_days)
    candidates = generate_slots(windows, day_breaks, slot_config)
    if not candidates:
        return []
    return mark_conflicts(candidates, occupying_appointments, slot_config, day)


def _day_view(
    day: date,
    overrides: Sequence[AvailabilityOverride],
    blocks: Sequence[ScheduleBlock],
    appointments: Sequence[Appointment],
) -> tuple[list[AvailabilityOverride], list[ScheduleBlock], list[Appointment]]:
    day_overrides = [ov for ov in overrides if covers(ov, day)]
    day_blocks = [block for block in blocks if covers(block, day)]
    day_appointments = [
        appt for appt in appointments if appt.appointment_date == day and appt.is_occupying
    ]
    return day_overrides, day_blocks, day_appointments


def _slots_for_day_view(
    doctor_id: str,
    day: date,
    working_days: Sequence[WorkingDay],
    sessions: Sequence[ScheduleSession],
    all_overrides: Sequence[AvailabilityOverride],
    all_blocks: Sequence[ScheduleBlock],
    breaks: Sequence[AvailabilityBreak],
    all_appointments: Sequence[Appointment],
    slot_config: SlotConfiguration,
) -> list[Slot] | None:
    """Slots for one day of a range scan, or None when that day failed."""

    day_overrides, day_blocks, day_appointments = _day_view(
        day, all_overrides, all_blocks, all_appointments
    )
    try:
        return resolve_slots_for_date(
            doctor_id,
            day,
            working_days,
            sessions,
            day_overrides,
            day_blocks,
            breaks,
            day_appointments,
            slot_config,
        )
    except Exception as exc:
        logger.warning("Availability for doctor %s on %s skipped: %s", doctor_id, day.isoformat(), exc)
        return None


def resolve_available_dates(
    doctor_id: str,
    date_range: tuple[date, date],
    working_days: Sequence[WorkingDay],
    sessions: Sequence[ScheduleSession],
    all_overrides: Sequence[AvailabilityOverride],
    all_blocks: Sequence[ScheduleBlock],
    breaks: Sequence[AvailabilityBreak],
    all_appointments: Sequence[Appointment],
    slot_config: SlotConfiguration,
) -> list[date]:
    """Dates in the inclusive range with at least one available slot.

    Data for the whole range is passed in once and narrowed per day in
    memory. A day whose computation fails is logged and counted as
    unavailable instead of aborting the scan.
    """

    start, end = date_range
    available: list[date] = []
    for day in iter_dates(start, end):
        slots = _slots_for_day_view(
            doctor_id,
            day,
            working_days,
            sessions,
            all_overrides,
            all_blocks,
            breaks,
            all_appointments,
            slot_config,
        )
        if slots and any(slot.is_available for slot in slots):
            available.append(day)
    return available


def resolve_availability_calendar(
    doctor_id: str,
    date_range: tuple[date, date],
    working_days: Sequence[WorkingDay],
    sessions: Sequence[ScheduleSession],
    all_overrides: Sequence[AvailabilityOverride],
    all_blocks: Sequence[ScheduleBlock],
    breaks: Sequence[AvailabilityBreak],
    all_appointments: Sequence[Appointment],
    slot_config: SlotConfiguration,
) -> list[CalendarDay]:
    """One :class:`CalendarDay` per date with available-slot counts and sessions."""

    start, end = date_range
    calendar: list[CalendarDay] = []
    for day in iter_dates(start, end):
        slots = _slots_for_day_view(
            doctor_id,
            day,
            working_days,
            sessions,
            all_overrides,
            all_blocks,
            breaks,
            all_appointments,
            slot_config,
        ) or []
        count = sum(1 for slot in slots if slot.is_available)
        day_sessions = [
            {"startTime": s.start_time, "endTime": s.end_time, "sessionType": s.session_type}
            for s in sessions_for(day, sessions)
        ]
        calendar.append(
            CalendarDay(
                date=day,
                has_availability=count > 0,
                available_slots_count=count,
                sessions=day_sessions,
            )
        )
    return calendar


def check_slot_availability(
    doctor_id: str,
    day: date,
    time: str,
    duration: int,
    working_days: Sequence[WorkingDay],
    sessions: Sequence[ScheduleSession],
    overrides: Sequence[AvailabilityOverride],
    blocks: Sequence[ScheduleBlock],
    breaks: Sequence[AvailabilityBreak],
    appointments: Sequence[Appointment],
    slot_config: SlotConfiguration,
) -> SlotCheck:
    """Say whether ``time`` for ``duration`` minutes is bookable, and why not."""

    start = parse_time(time)
    requested = TimeWindow(start, start + duration)
    slots = resolve_slots_for_date(
        doctor_id,
        day,
        working_days,
        sessions,
        overrides,
        blocks,
        breaks,
        appointments,
        slot_config,
    )
    for slot in slots:
        if (
            slot.is_available
            and parse_time(slot.start_time) == requested.start
            and slot.duration == duration
        ):
            return SlotCheck(True)

    if is_day_blocked(day, overrides, blocks):
        return SlotCheck(False, REASON_DAY_BLOCKED)
    if not base_windows(day, working_days, sessions, overrides):
        return SlotCheck(False, REASON_NOT_WORKING)
    if any(excl.overlaps(requested) for excl in exclusion_windows(day, overrides, blocks)):
        return SlotCheck(False, REASON_BLOCKED_PERIOD)
    if any(requested.overlaps(busy) for busy in occupying_windows(appointments, slot_config, day)):
        return SlotCheck(False, REASON_BOOKED)
    return SlotCheck(False, REASON_NOT_AVAILABLE)
