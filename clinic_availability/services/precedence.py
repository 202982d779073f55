"""Resolve a doctor's effective availability windows for one date.

Precedence, highest first:

1. a whole-day ScheduleBlock covering the date empties the day;
2. a whole-day blocking AvailabilityOverride empties the day;
3. time-bounded blocks and blocking overrides are collected as exclusions;
4. base windows come from the weekday's sessions, else from time-bounded
   granting overrides, else from the working day itself;
5. the exclusions from step 3 are subtracted from the base windows.

Breaks are not applied here; the slot generator handles them.
"""

from __future__ import annotations

from datetime import date
from typing import Iterable, Sequence

from clinic_availability.services.intervals import TimeWindow, merge_windows, subtract_windows
from clinic_availability.services.schedule_types import (
    WEEKDAYS,
    AvailabilityOverride,
    ScheduleBlock,
    ScheduleSession,
    WorkingDay,
)


def weekday_name(day: date) -> str:
    return WEEKDAYS[day.weekday()]


def covers(entry: AvailabilityOverride | ScheduleBlock, day: date) -> bool:
    return entry.start_date <= day <= entry.end_date


def working_day_for(day: date, working_days: Iterable[WorkingDay]) -> WorkingDay | None:
    name = weekday_name(day)
    for working_day in working_days:
        if working_day.day == name:
            return working_day
    return None


def sessions_for(day: date, sessions: Iterable[ScheduleSession]) -> list[ScheduleSession]:
    name = weekday_name(day)
    return [session for session in sessions if session.day == name]


def is_day_blocked(
    day: date,
    overrides: Sequence[AvailabilityOverride],
    blocks: Sequence[ScheduleBlock],
) -> bool:
    """True when a whole-day block or blocking override covers ``day``."""

    if any(covers(block, day) and not block.is_time_bounded for block in blocks):
        return True
    return any(
        covers(ov, day) and ov.is_blocked and not ov.is_time_bounded for ov in overrides
    )


def exclusion_windows(
    day: date,
    overrides: Sequence[AvailabilityOverride],
    blocks: Sequence[ScheduleBlock],
) -> list[TimeWindow]:
    windows = [
        TimeWindow.from_strings(block.start_time, block.end_time)
        for block in blocks
        if covers(block, day) and block.is_time_bounded
    ]
    windows.extend(
        TimeWindow.from_strings(ov.start_time, ov.end_time)
        for ov in overrides
        if covers(ov, day) and ov.is_blocked and ov.is_time_bounded
    )
    return windows


def base_windows(
    day: date,
    working_days: Sequence[WorkingDay],
    sessions: Sequence[ScheduleSession],
    overrides: Sequence[AvailabilityOverride],
) -> list[TimeWindow]:
    day_sessions = sessions_for(day, sessions)
    if day_sessions:
        return merge_windows(
            TimeWindow.from_strings(s.start_time, s.end_time, s.session_type)
            for s in day_sessions
        )

    grants = [
        TimeWindow.from_strings(ov.start_time, ov.end_time)
        for ov in overrides
        if covers(ov, day) and not ov.is_blocked and ov.is_time_bounded
    ]
    if grants:
        return merge_windows(grants)

    working_day = working_day_for(day, working_days)
    if working_day is None or not working_day.is_available:
        return []
    return [TimeWindow.from_strings(working_day.start_time, working_day.end_time)]


def resolve_windows(
    day: date,
    working_days: Sequence[WorkingDay],
    sessions: Sequence[ScheduleSession],
    overrides: Sequence[AvailabilityOverride],
    blocks: Sequence[ScheduleBlock],
) -> list[TimeWindow]:
    """Return the day's availability windows before break subtraction."""

    if is_day_blocked(day, overrides, blocks):
        return []
    exclusions = exclusion_windows(day, overrides, blocks)
    base = base_windows(day, working_days, sessions, overrides)
    if not base:
        return []
    return subtract_windows(base, exclusions)
