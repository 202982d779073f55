"""Cut resolved availability windows into fixed-length candidate slots."""

from __future__ import annotations

from datetime import date
from typing import Iterable, Sequence

from clinic_availability.services.intervals import TimeWindow, format_minutes, subtract_windows
from clinic_availability.services.precedence import weekday_name, working_day_for
from clinic_availability.services.schedule_types import (
    AvailabilityBreak,
    Slot,
    SlotConfiguration,
    WorkingDay,
)


def breaks_for_day(
    day: date,
    breaks: Iterable[AvailabilityBreak],
    working_days: Sequence[WorkingDay] = (),
) -> list[AvailabilityBreak]:
    """Breaks tied to the date's weekday, by name or by working-day id."""

    name = weekday_name(day)
    working_day = working_day_for(day, working_days)
    working_day_id = working_day.id if working_day else None
    selected = []
    for br in breaks:
        if br.day_of_week == name:
            selected.append(br)
        elif working_day_id is not None and br.working_day_id == working_day_id:
            selected.append(br)
    return selected


def slots_for_window(window: TimeWindow, config: SlotConfiguration) -> list[Slot]:
    if not config.is_usable:
        return []
    duration = config.default_duration
    slots: list[Slot] = []
    cursor = window.start
    while cursor + duration + config.buffer_time <= window.end:
        slots.append(
            Slot(
                start_time=format_minutes(cursor),
                end_time=format_minutes(cursor + duration),
                duration=duration,
                is_available=True,
                session_type=window.label,
            )
        )
        cursor += config.slot_interval
    return slots


def generate_slots(
    windows: Iterable[TimeWindow],
    breaks: Iterable[AvailabilityBreak],
    config: SlotConfiguration,
) -> list[Slot]:
    """Subtract breaks from ``windows`` and slot what remains, in time order.

    An unusable configuration (non-positive duration or interval, negative
    buffer) yields no slots rather than an error.
    """

    if not config.is_usable:
        return []
    break_windows = [TimeWindow.from_strings(br.start_time, br.end_time) for br in breaks]
    open_windows = subtract_windows(windows, break_windows)
    slots: list[Slot] = []
    seen: set[tuple[str, str]] = set()
    for window in open_windows:
        for slot in slots_for_window(window, config):
            # Sessions with different types may overlap; keep the first slot per interval.
            key = (slot.start_time, slot.end_time)
            if key in seen:
                continue
            seen.add(key)
            slots.append(slot)
    # "HH:mm" strings sort chronologically; sort is stable across windows.
    slots.sort(key=lambda slot: slot.start_time)
    return slots
