"""Appointment conflict detection for candidate slots."""

from __future__ import annotations

from dataclasses import replace
from datetime import date
from typing import Iterable, Sequence

from clinic_availability.services.intervals import TimeWindow, parse_clock, parse_time
from clinic_availability.services.schedule_types import Appointment, Slot, SlotConfiguration


def appointment_window(appointment: Appointment, config: SlotConfiguration) -> TimeWindow:
    start = parse_clock(appointment.time)
    duration = appointment.duration if appointment.duration else config.default_duration
    return TimeWindow(start, start + duration)


def occupying_windows(
    appointments: Iterable[Appointment],
    config: SlotConfiguration,
    day: date | None = None,
) -> list[TimeWindow]:
    """Windows taken by appointments that still hold their slot.

    Cancelled and completed appointments are skipped, as are appointments on
    another date when ``day`` is given.
    """

    windows = []
    for appt in appointments:
        if not appt.is_occupying:
            continue
        if day is not None and appt.appointment_date != day:
            continue
        windows.append(appointment_window(appt, config))
    return windows


def mark_conflicts(
    slots: Sequence[Slot],
    appointments: Iterable[Appointment],
    config: SlotConfiguration,
    day: date | None = None,
) -> list[Slot]:
    busy = occupying_windows(appointments, config, day)
    if not busy:
        return list(slots)
    marked = []
    for slot in slots:
        window = TimeWindow(parse_time(slot.start_time), parse_time(slot.end_time))
        taken = any(window.overlaps(other) for other in busy)
        marked.append(replace(slot, is_available=slot.is_available and not taken))
    return marked


def has_conflict(candidate: TimeWindow, existing: TimeWindow, buffer_minutes: int = 0) -> bool:
    """True when ``candidate`` overlaps ``existing`` widened by the buffer on both sides."""

    if buffer_minutes < 0:
        raise ValueError("buffer_minutes cannot be negative")
    widened = TimeWindow(existing.start - buffer_minutes, existing.end + buffer_minutes)
    return candidate.overlaps(widened)


def find_conflicts(
    candidate: TimeWindow,
    existing: Iterable[TimeWindow],
    buffer_minutes: int = 0,
) -> list[TimeWindow]:
    return [other for other in existing if has_conflict(candidate, other, buffer_minutes)]
