"""Plain value types consumed and produced by the availability engine.

These are deliberately free of any database or Flask coupling; the store
and mapper modules translate rows into them.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date

WEEKDAYS = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday")

SESSION_TYPES = ("CLINIC", "WARD_ROUNDS", "SURGERY", "TELECONSULT", "ADMIN", "OTHER")

BLOCK_TYPES = (
    "LEAVE",
    "SURGERY",
    "ADMIN",
    "EMERGENCY",
    "CONFERENCE",
    "BURNOUT_PROTECTION",
    "TRAINING",
    "OTHER",
)

NON_OCCUPYING_STATUSES = frozenset({"CANCELLED", "COMPLETED"})


@dataclass(frozen=True)
class WorkingDay:
    """Default weekly template entry for one weekday."""

    day: str
    start_time: str
    end_time: str
    is_available: bool = True
    id: str | None = None


@dataclass(frozen=True)
class ScheduleSession:
    """Typed sub-interval of a working day (clinic, surgery, ...)."""

    day: str
    start_time: str
    end_time: str
    session_type: str = "CLINIC"
    max_patients: int | None = None
    notes: str | None = None
    working_day_id: str | None = None
    id: str | None = None


@dataclass(frozen=True)
class AvailabilityBreak:
    start_time: str
    end_time: str
    day_of_week: str | None = None
    working_day_id: str | None = None
    reason: str | None = None
    id: str | None = None


@dataclass(frozen=True)
class AvailabilityOverride:
    """Doctor-set exception for a date range.

    Without time bounds a blocking override removes the whole day. With
    bounds it either removes that window (``is_blocked``) or grants it as
    the only window of the day.
    """

    start_date: date
    end_date: date
    is_blocked: bool = True
    start_time: str | None = None
    end_time: str | None = None
    reason: str | None = None
    id: str | None = None

    @property
    def is_time_bounded(self) -> bool:
        return bool(self.start_time and self.end_time)


@dataclass(frozen=True)
class ScheduleBlock:
    """Staff-created hard exclusion; never grants availability."""

    start_date: date
    end_date: date
    start_time: str | None = None
    end_time: str | None = None
    block_type: str = "OTHER"
    reason: str | None = None
    created_by: str | None = None
    id: str | None = None

    @property
    def is_time_bounded(self) -> bool:
        return bool(self.start_time and self.end_time)


@dataclass(frozen=True)
class SlotConfiguration:
    default_duration: int = 30
    buffer_time: int = 0
    slot_interval: int = 15

    @property
    def is_usable(self) -> bool:
        return self.default_duration > 0 and self.slot_interval > 0 and self.buffer_time >= 0


@dataclass(frozen=True)
class Appointment:
    appointment_date: date
    time: str
    status: str = "SCHEDULED"
    duration: int | None = None
    id: str | None = None

    @property
    def is_occupying(self) -> bool:
        return is_occupying_status(self.status)


@dataclass(frozen=True)
class Slot:
    start_time: str
    end_time: str
    duration: int
    is_available: bool = True
    session_type: str | None = None

    def as_dict(self) -> dict[str, object]:
        data: dict[str, object] = {
            "startTime": self.start_time,
            "endTime": self.end_time,
            "duration": self.duration,
            "isAvailable": self.is_available,
        }
        if self.session_type:
            data["sessionType"] = self.session_type
        return data


@dataclass(frozen=True)
class DoctorSchedule:
    """Everything about a doctor's recurring schedule that rarely changes."""

    doctor_id: str
    working_days: tuple[WorkingDay, ...] = ()
    sessions: tuple[ScheduleSession, ...] = ()
    breaks: tuple[AvailabilityBreak, ...] = ()
    slot_configuration: SlotConfiguration | None = None


def is_occupying_status(status: str | None) -> bool:
    return (status or "").strip().upper() not in NON_OCCUPYING_STATUSES
