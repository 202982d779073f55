"""Time-of-day arithmetic for availability windows.

Times are handled as minutes since midnight. Windows are half-open
``[start, end)`` so two windows that only touch never overlap.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
import re
from typing import Iterable

MINUTES_PER_DAY = 24 * 60

_HHMM = re.compile(r"^(\d{1,2}):(\d{2})$")
_CLOCK_12H = re.compile(r"^(\d{1,2}):(\d{2})\s*([AaPp][Mm])$")


class ParseError(ValueError):
    """Raised when a time-of-day string cannot be understood."""


def parse_time(value: str) -> int:
    """Convert ``HH:mm`` to minutes since midnight (``24:00`` means end of day)."""

    if not isinstance(value, str):
        raise ParseError(f"invalid_time:{value!r}")
    match = _HHMM.fullmatch(value.strip())
    if not match:
        raise ParseError(f"invalid_time:{value!r}")
    hour, minute = int(match.group(1)), int(match.group(2))
    if hour == 24 and minute == 0:
        return MINUTES_PER_DAY
    if hour > 23 or minute > 59:
        raise ParseError(f"invalid_time:{value!r}")
    return hour * 60 + minute


def parse_clock(value: str) -> int:
    """Like :func:`parse_time` but also accepts ``h:mm AM/PM``."""

    if isinstance(value, str):
        match = _CLOCK_12H.fullmatch(value.strip())
        if match:
            hour, minute = int(match.group(1)), int(match.group(2))
            if not 1 <= hour <= 12 or minute > 59:
                raise ParseError(f"invalid_time:{value!r}")
            period = match.group(3).upper()
            if period == "PM" and hour != 12:
                hour += 12
            elif period == "AM" and hour == 12:
                hour = 0
            return hour * 60 + minute
    return parse_time(value)


def format_minutes(total: int) -> str:
    hour, minute = divmod(total, 60)
    return f"{hour:02d}:{minute:02d}"


@dataclass(frozen=True)
class TimeWindow:
    """A half-open ``[start, end)`` span of minutes on one calendar day."""

    start: int
    end: int
    label: str | None = None

    @classmethod
    def from_strings(cls, start: str, end: str, label: str | None = None) -> "TimeWindow":
        return cls(parse_time(start), parse_time(end), label)

    @property
    def duration(self) -> int:
        return max(self.end - self.start, 0)

    @property
    def is_empty(self) -> bool:
        return self.end <= self.start

    def overlaps(self, other: "TimeWindow") -> bool:
        return self.start < other.end and other.start < self.end

    def contains(self, other: "TimeWindow") -> bool:
        return self.start <= other.start and other.end <= self.end

    def __str__(self) -> str:
        return f"{format_minutes(self.start)}-{format_minutes(self.end)}"


def overlaps(a_start: int, a_end: int, b_start: int, b_end: int) -> bool:
    return a_start < b_end and b_start < a_end


def merge_windows(windows: Iterable[TimeWindow]) -> list[TimeWindow]:
    """Union overlapping or touching windows that carry the same label."""

    merged: list[TimeWindow] = []
    for window in sorted(windows, key=lambda w: (w.label or "", w.start, w.end)):
        if window.is_empty:
            continue
        last = merged[-1] if merged else None
        if last is not None and last.label == window.label and window.start <= last.end:
            merged[-1] = replace(last, end=max(last.end, window.end))
        else:
            merged.append(window)
    merged.sort(key=lambda w: (w.start, w.end))
    return merged


def subtract_window(window: TimeWindow, exclusions: Iterable[TimeWindow]) -> list[TimeWindow]:
    """Return what is left of ``window`` once every exclusion is removed."""

    if window.is_empty:
        return []
    remaining = [window]
    for excl in sorted(exclusions, key=lambda w: (w.start, w.end)):
        if excl.is_empty:
            continue
        pieces: list[TimeWindow] = []
        for piece in remaining:
            if not piece.overlaps(excl):
                pieces.append(piece)
                continue
            if piece.start < excl.start:
                pieces.append(replace(piece, end=excl.start))
            if excl.end < piece.end:
                pieces.append(replace(piece, start=excl.end))
        remaining = pieces
        if not remaining:
            break
    return remaining


def subtract_windows(base: Iterable[TimeWindow], exclusions: Iterable[TimeWindow]) -> list[TimeWindow]:
    """Subtract all exclusions from every base window, sorted by start time."""

    exclusions = list(exclusions)
    result: list[TimeWindow] = []
    for window in base:
        result.extend(subtract_window(window, exclusions))
    result.sort(key=lambda w: (w.start, w.end))
    return result
