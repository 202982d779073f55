"""Doctor availability use cases: validate requests, load data, run the engine."""

from __future__ import annotations

from datetime import date
import re
from typing import Any, Mapping

from flask import current_app

from clinic_availability.services import availability_store as store
from clinic_availability.services.availability import (
    CalendarDay,
    SlotCheck,
    check_slot_availability,
    resolve_availability_calendar,
    resolve_available_dates,
    resolve_slots_for_date,
)
from clinic_availability.services.intervals import parse_time
from clinic_availability.services.schedule_types import (
    BLOCK_TYPES,
    SESSION_TYPES,
    WEEKDAYS,
    AvailabilityBreak,
    AvailabilityOverride,
    DoctorSchedule,
    ScheduleBlock,
    ScheduleSession,
    Slot,
    SlotConfiguration,
    WorkingDay,
)

_TIME_RE = re.compile(r"^([01][0-9]|2[0-3]):[0-5][0-9]$")


class AvailabilityError(Exception):
    """Base exception for availability operations."""


class DoctorNotFound(AvailabilityError):
    """Raised when a doctor id is not one of the configured doctors."""


class InvalidDateRange(AvailabilityError):
    """Raised for past dates, inverted ranges or ranges that are too long."""


class InvalidConfigurationError(AvailabilityError):
    """Raised when a slot configuration is outside the accepted bounds."""


class BlockConflict(AvailabilityError):
    """Raised when a new schedule block collides with an existing one."""


def _slugify(label: str) -> str:
    keep = []
    for ch in label.lower():
        if ch.isalnum():
            keep.append(ch)
        elif ch in {" ", "-", "_"}:
            keep.append("-")
    slug = "".join(keep).strip("-")
    return slug or "doctor"


def doctor_choices() -> list[tuple[str, str]]:
    doctors = current_app.config.get("CLINIC_DOCTORS", [])
    if not doctors:
        doctors = ["On Call"]
    return [(_slugify(name), name) for name in doctors]


def ensure_doctor(doctor_id: str) -> str:
    """Return the doctor's display label or raise :class:`DoctorNotFound`."""

    for slug, label in doctor_choices():
        if slug == doctor_id:
            return label
    raise DoctorNotFound(doctor_id)


def _today(today: date | None) -> date:
    return today or date.today()


def parse_day(value: Any, field: str = "date") -> date:
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value or "").strip())
    except ValueError as exc:
        raise AvailabilityError(f"invalid_{field}") from exc


def _require_time(value: Any, field: str) -> str:
    text = str(value or "").strip()
    if not _TIME_RE.fullmatch(text):
        raise AvailabilityError(f"invalid_time:{field}")
    return text


def _require_bool(value: Any, field: str) -> bool:
    if not isinstance(value, bool):
        raise AvailabilityError(f"invalid_{field}")
    return value


def validate_day(day: date, *, today: date | None = None) -> None:
    if day < _today(today):
        raise InvalidDateRange("date_in_past")


def validate_date_range(start: date, end: date, *, today: date | None = None) -> None:
    if start > end:
        raise InvalidDateRange("start_after_end")
    if start < _today(today):
        raise InvalidDateRange("start_in_past")
    max_days = int(current_app.config.get("AVAILABILITY_MAX_RANGE_DAYS", 90))
    if (end - start).days + 1 > max_days:
        raise InvalidDateRange(f"range_exceeds_{max_days}_days")


def validate_slot_configuration(config: SlotConfiguration) -> SlotConfiguration:
    if not 1 <= config.default_duration <= 240:
        raise InvalidConfigurationError("default_duration_out_of_range")
    if not 0 <= config.buffer_time <= 60:
        raise InvalidConfigurationError("buffer_time_out_of_range")
    if not 1 <= config.slot_interval <= 60:
        raise InvalidConfigurationError("slot_interval_out_of_range")
    if config.slot_interval > config.default_duration:
        raise InvalidConfigurationError("slot_interval_exceeds_duration")
    return config


def default_slot_configuration() -> SlotConfiguration:
    cfg = current_app.config
    return SlotConfiguration(
        default_duration=int(cfg.get("AVAILABILITY_DEFAULT_DURATION", 30)),
        buffer_time=int(cfg.get("AVAILABILITY_DEFAULT_BUFFER", 0)),
        slot_interval=int(cfg.get("AVAILABILITY_DEFAULT_INTERVAL", 15)),
    )


def _effective_config(schedule: DoctorSchedule, duration: int | None = None) -> SlotConfiguration:
    config = schedule.slot_configuration or default_slot_configuration()
    if duration:
        config = SlotConfiguration(
            default_duration=duration,
            buffer_time=config.buffer_time,
            slot_interval=config.slot_interval,
        )
    return config


def get_slots_for_date(
    doctor_id: str,
    day: date,
    *,
    duration: int | None = None,
    today: date | None = None,
) -> list[Slot]:
    ensure_doctor(doctor_id)
    validate_day(day, today=today)
    schedule = store.load_doctor_schedule(doctor_id) or DoctorSchedule(doctor_id=doctor_id)
    config = _effective_config(schedule, duration)
    return resolve_slots_for_date(
        doctor_id,
        day,
        schedule.working_days,
        schedule.sessions,
        store.load_overrides(doctor_id, day, day),
        store.load_blocks(doctor_id, day, day),
        schedule.breaks,
        store.load_appointments(doctor_id, day, day),
        config,
    )


def get_available_dates(
    doctor_id: str,
    start: date,
    end: date,
    *,
    today: date | None = None,
) -> list[date]:
    """Dates with bookable time, fetching the whole range's data once."""

    ensure_doctor(doctor_id)
    validate_date_range(start, end, today=today)
    schedule = store.load_doctor_schedule(doctor_id) or DoctorSchedule(doctor_id=doctor_id)
    return resolve_available_dates(
        doctor_id,
        (start, end),
        schedule.working_days,
        schedule.sessions,
        store.load_overrides(doctor_id, start, end),
        store.load_blocks(doctor_id, start, end),
        schedule.breaks,
        store.load_appointments(doctor_id, start, end),
        _effective_config(schedule),
    )


def get_availability_calendar(
    doctor_id: str,
    start: date,
    end: date,
    *,
    today: date | None = None,
) -> list[CalendarDay]:
    ensure_doctor(doctor_id)
    validate_date_range(start, end, today=today)
    schedule = store.load_doctor_schedule(doctor_id) or DoctorSchedule(doctor_id=doctor_id)
    return resolve_availability_calendar(
        doctor_id,
        (start, end),
        schedule.working_days,
        schedule.sessions,
        store.load_overrides(doctor_id, start, end),
        store.load_blocks(doctor_id, start, end),
        schedule.breaks,
        store.load_appointments(doctor_id, start, end),
        _effective_config(schedule),
    )


def validate_appointment_time(
    doctor_id: str,
    day: date,
    time: str,
    duration: int,
    *,
    today: date | None = None,
) -> SlotCheck:
    ensure_doctor(doctor_id)
    if day < _today(today):
        return SlotCheck(False, "Appointment date cannot be in the past")
    schedule = store.load_doctor_schedule(doctor_id)
    if schedule is None or not (schedule.working_days or schedule.sessions):
        return SlotCheck(False, "Doctor has no availability configured")
    return check_slot_availability(
        doctor_id,
        day,
        _require_time(time, "time"),
        duration,
        schedule.working_days,
        schedule.sessions,
        store.load_overrides(doctor_id, day, day),
        store.load_blocks(doctor_id, day, day),
        schedule.breaks,
        store.load_appointments(doctor_id, day, day),
        _effective_config(schedule, duration),
    )


def get_all_doctors_availability(day: date, *, today: date | None = None) -> list[dict[str, Any]]:
    """Per-doctor slot summary for ``day``; one doctor's failure is reported, not raised."""

    validate_day(day, today=today)
    summary: list[dict[str, Any]] = []
    for doctor_id, label in doctor_choices():
        entry: dict[str, Any] = {
            "doctorId": doctor_id,
            "doctorLabel": label,
            "availableSlots": 0,
            "nextSlot": None,
        }
        try:
            slots = get_slots_for_date(doctor_id, day, today=today)
        except Exception as exc:
            current_app.logger.warning("Availability summary failed for %s on %s: %s", doctor_id, day, exc)
            entry["error"] = str(exc)
            summary.append(entry)
            continue
        open_slots = [slot for slot in slots if slot.is_available]
        entry["availableSlots"] = len(open_slots)
        entry["nextSlot"] = open_slots[0].start_time if open_slots else None
        summary.append(entry)
    return summary


def _time_span(start: str, end: str, label: str) -> tuple[int, int]:
    start_min = parse_time(_require_time(start, f"{label}_start"))
    end_min = parse_time(_require_time(end, f"{label}_end"))
    if end_min <= start_min:
        raise AvailabilityError(f"end_before_start:{label}")
    return start_min, end_min


def _parse_slot_configuration(data: Mapping[str, Any]) -> SlotConfiguration:
    try:
        config = SlotConfiguration(
            default_duration=int(data.get("defaultDuration", 30)),
            buffer_time=int(data.get("bufferTime", 0)),
            slot_interval=int(data.get("slotInterval", 15)),
        )
    except (TypeError, ValueError) as exc:
        raise InvalidConfigurationError("slot_configuration_not_numeric") from exc
    return validate_slot_configuration(config)


def set_doctor_availability(doctor_id: str, payload: Mapping[str, Any]) -> DoctorSchedule:
    """Validate and store a weekly template, replacing the previous one."""

    ensure_doctor(doctor_id)
    working_days: list[WorkingDay] = []
    sessions: list[ScheduleSession] = []
    breaks: list[AvailabilityBreak] = []
    seen: set[str] = set()

    for item in payload.get("workingDays") or []:
        day = str(item.get("day") or "")
        if day not in WEEKDAYS:
            raise AvailabilityError(f"invalid_day:{day}")
        if day in seen:
            raise AvailabilityError(f"duplicate_day:{day}")
        seen.add(day)
        start, end = item.get("startTime"), item.get("endTime")
        day_start, day_end = _time_span(start, end, day)
        working_days.append(
            WorkingDay(
                day=day,
                start_time=start,
                end_time=end,
                is_available=_require_bool(item.get("isAvailable", True), "is_available"),
            )
        )

        for session in item.get("sessions") or []:
            s_start, s_end = _time_span(session.get("startTime"), session.get("endTime"), f"{day}_session")
            if s_start < day_start or s_end > day_end:
                raise AvailabilityError(f"session_outside_working_hours:{day}")
            session_type = str(session.get("sessionType") or "CLINIC").upper()
            if session_type not in SESSION_TYPES:
                raise AvailabilityError(f"invalid_session_type:{session_type}")
            sessions.append(
                ScheduleSession(
                    day=day,
                    start_time=session["startTime"],
                    end_time=session["endTime"],
                    session_type=session_type,
                    max_patients=session.get("maxPatients"),
                    notes=session.get("notes"),
                )
            )

        for br in item.get("breaks") or []:
            b_start, b_end = _time_span(br.get("startTime"), br.get("endTime"), f"{day}_break")
            if b_start < day_start or b_end > day_end:
                raise AvailabilityError(f"break_outside_working_hours:{day}")
            breaks.append(
                AvailabilityBreak(
                    day_of_week=day,
                    start_time=br["startTime"],
                    end_time=br["endTime"],
                    reason=br.get("reason"),
                )
            )

    config = None
    if payload.get("slotConfiguration"):
        config = _parse_slot_configuration(payload["slotConfiguration"])

    store.save_weekly_template(doctor_id, working_days, sessions, breaks)
    if config is not None:
        store.save_slot_configuration(doctor_id, config)
    current_app.logger.info("Weekly template saved for %s (%d days)", doctor_id, len(working_days))
    return DoctorSchedule(
        doctor_id=doctor_id,
        working_days=tuple(working_days),
        sessions=tuple(sessions),
        breaks=tuple(breaks),
        slot_configuration=config,
    )


def _bounded_dates(payload: Mapping[str, Any]) -> tuple[date, date]:
    start = parse_day(payload.get("startDate"), "start_date")
    end = parse_day(payload.get("endDate") or payload.get("startDate"), "end_date")
    if start > end:
        raise InvalidDateRange("start_after_end")
    return start, end


def _optional_hours(payload: Mapping[str, Any]) -> tuple[str | None, str | None]:
    start_time = payload.get("startTime") or None
    end_time = payload.get("endTime") or None
    if start_time is None and end_time is None:
        return None, None
    if start_time is None or end_time is None:
        raise AvailabilityError("both_times_required")
    _time_span(start_time, end_time, "custom_hours")
    return start_time, end_time


def _shares_day(a: ScheduleBlock, start: date, end: date) -> bool:
    return a.start_date <= end and start <= a.end_date


def add_schedule_block(doctor_id: str, payload: Mapping[str, Any], *, actor_id: str | None = None) -> str:
    """Create a staff block after checking it against existing blocks.

    A whole-day block cannot share a date with a partial block (either
    way round) and partial blocks on a shared date may not overlap in time.
    """

    ensure_doctor(doctor_id)
    start, end = _bounded_dates(payload)
    block_type = str(payload.get("blockType") or "").upper()
    if block_type not in BLOCK_TYPES:
        raise AvailabilityError(f"invalid_block_type:{block_type}")
    start_time, end_time = _optional_hours(payload)
    if start_time and start != end:
        raise AvailabilityError("custom_hours_single_day_only")

    new_block = ScheduleBlock(
        start_date=start,
        end_date=end,
        start_time=start_time,
        end_time=end_time,
        block_type=block_type,
        reason=payload.get("reason"),
        created_by=actor_id,
    )
    for existing in store.load_blocks(doctor_id, start, end):
        if not _shares_day(existing, start, end):
            continue
        if not new_block.is_time_bounded and existing.is_time_bounded:
            raise BlockConflict(f"partial_block_exists:{existing.id}")
        if new_block.is_time_bounded and not existing.is_time_bounded:
            raise BlockConflict(f"full_day_block_exists:{existing.id}")
        if new_block.is_time_bounded and existing.is_time_bounded:
            new_start, new_end = parse_time(start_time), parse_time(end_time)
            old_start, old_end = parse_time(existing.start_time), parse_time(existing.end_time)
            if new_start < old_end and old_start < new_end:
                raise BlockConflict(f"block_time_overlap:{existing.id}")

    block_id = store.add_block(doctor_id, new_block)
    current_app.logger.info("Schedule block %s created for %s (%s)", block_id, doctor_id, block_type)
    return block_id


def add_availability_override(doctor_id: str, payload: Mapping[str, Any]) -> str:
    ensure_doctor(doctor_id)
    start, end = _bounded_dates(payload)
    start_time, end_time = _optional_hours(payload)
    override = AvailabilityOverride(
        start_date=start,
        end_date=end,
        start_time=start_time,
        end_time=end_time,
        is_blocked=_require_bool(payload.get("isBlocked", True), "is_blocked"),
        reason=payload.get("reason"),
    )
    override_id = store.add_override(doctor_id, override)
    current_app.logger.info("Availability override %s created for %s", override_id, doctor_id)
    return override_id
