from datetime import date, timedelta

import pytest

from clinic_availability.services import availability_queries as queries
from clinic_availability.services.availability_queries import (
    AvailabilityError,
    BlockConflict,
    DoctorNotFound,
    InvalidConfigurationError,
    InvalidDateRange,
)
from clinic_availability.services.schedule_types import SlotConfiguration

from conftest import DOCTOR, OTHER_DOCTOR

TODAY = date(2030, 1, 1)
MONDAY = date(2030, 1, 7)
TUESDAY = MONDAY + timedelta(days=1)


@pytest.fixture
def ctx(app):
    with app.app_context():
        yield app


def test_doctor_choices_from_config(ctx):
    assert queries.doctor_choices() == [(DOCTOR, "Dr. Lina"), (OTHER_DOCTOR, "Dr. Omar")]
    assert queries.ensure_doctor(DOCTOR) == "Dr. Lina"
    with pytest.raises(DoctorNotFound):
        queries.ensure_doctor("dr-nobody")


def test_slots_for_weekday_template(ctx, weekday_template):
    slots = queries.get_slots_for_date(DOCTOR, MONDAY, today=TODAY)
    assert len(slots) == 14
    assert slots[0].start_time == "09:00"


def test_requested_duration_overrides_configuration(ctx, weekday_template):
    slots = queries.get_slots_for_date(DOCTOR, MONDAY, duration=60, today=TODAY)
    assert {slot.duration for slot in slots} == {60}
    assert [slot.start_time for slot in slots][:3] == ["09:00", "09:30", "10:00"]


def test_doctor_without_schedule_has_no_slots(ctx):
    assert queries.get_slots_for_date(OTHER_DOCTOR, MONDAY, today=TODAY) == []


def test_past_date_rejected(ctx, weekday_template):
    with pytest.raises(InvalidDateRange):
        queries.get_slots_for_date(DOCTOR, date(2029, 12, 31), today=TODAY)


def test_booked_slot_marked(ctx, weekday_template, add_appointment):
    add_appointment("a-1", MONDAY, "10:00")
    add_appointment("a-2", MONDAY, "11:00", status="CANCELLED")
    slots = {s.start_time: s.is_available for s in queries.get_slots_for_date(DOCTOR, MONDAY, today=TODAY)}
    assert slots["10:00"] is False
    assert slots["11:00"] is True


class TestDateRanges:
    def test_available_dates_skip_weekend_and_blocks(self, ctx, weekday_template):
        queries.add_schedule_block(DOCTOR, {"startDate": TUESDAY.isoformat(), "blockType": "LEAVE"})
        dates = queries.get_available_dates(DOCTOR, MONDAY, MONDAY + timedelta(days=6), today=TODAY)
        assert dates == [MONDAY, MONDAY + timedelta(days=2), MONDAY + timedelta(days=3), MONDAY + timedelta(days=4)]

    def test_inverted_range(self, ctx):
        with pytest.raises(InvalidDateRange):
            queries.get_available_dates(DOCTOR, TUESDAY, MONDAY, today=TODAY)

    def test_range_limit(self, ctx):
        queries.get_available_dates(DOCTOR, MONDAY, MONDAY + timedelta(days=89), today=TODAY)
        with pytest.raises(InvalidDateRange):
            queries.get_available_dates(DOCTOR, MONDAY, MONDAY + timedelta(days=90), today=TODAY)

    def test_calendar(self, ctx, weekday_template):
        calendar = queries.get_availability_calendar(DOCTOR, MONDAY, MONDAY + timedelta(days=6), today=TODAY)
        assert [day.available_slots_count for day in calendar] == [14, 14, 14, 14, 14, 0, 0]


class TestValidateAppointmentTime:
    def test_open(self, ctx, weekday_template):
        assert queries.validate_appointment_time(DOCTOR, MONDAY, "09:30", 30, today=TODAY).is_available

    def test_past(self, ctx, weekday_template):
        check = queries.validate_appointment_time(DOCTOR, date(2029, 1, 1), "09:30", 30, today=TODAY)
        assert not check.is_available
        assert "past" in check.reason

    def test_no_schedule(self, ctx):
        check = queries.validate_appointment_time(OTHER_DOCTOR, MONDAY, "09:30", 30, today=TODAY)
        assert check.reason == "Doctor has no availability configured"

    def test_malformed_time(self, ctx, weekday_template):
        with pytest.raises(AvailabilityError):
            queries.validate_appointment_time(DOCTOR, MONDAY, "9.30", 30, today=TODAY)


class TestSetDoctorAvailability:
    def _payload(self, **config):
        return {
            "workingDays": [
                {
                    "day": "Monday",
                    "startTime": "08:00",
                    "endTime": "12:00",
                    "sessions": [{"startTime": "08:00", "endTime": "10:00", "sessionType": "surgery"}],
                    "breaks": [{"startTime": "10:00", "endTime": "10:15"}],
                }
            ],
            "slotConfiguration": {"defaultDuration": 30, "bufferTime": 0, "slotInterval": 30, **config},
        }

    def test_saves_and_serves(self, ctx):
        schedule = queries.set_doctor_availability(OTHER_DOCTOR, self._payload())
        assert schedule.sessions[0].session_type == "SURGERY"
        slots = queries.get_slots_for_date(OTHER_DOCTOR, MONDAY, today=TODAY)
        assert [s.start_time for s in slots] == ["08:00", "08:30", "09:00", "09:30"]
        assert {s.session_type for s in slots} == {"SURGERY"}

    @pytest.mark.parametrize(
        "config",
        [
            {"defaultDuration": 0},
            {"defaultDuration": 241},
            {"bufferTime": 61},
            {"bufferTime": -1},
            {"slotInterval": 0},
            {"slotInterval": 45},
            {"defaultDuration": "abc"},
        ],
    )
    def test_bad_configuration(self, ctx, config):
        with pytest.raises(InvalidConfigurationError):
            queries.set_doctor_availability(OTHER_DOCTOR, self._payload(**config))

    def test_bad_configuration_saves_nothing(self, ctx):
        with pytest.raises(InvalidConfigurationError):
            queries.set_doctor_availability(OTHER_DOCTOR, self._payload(slotInterval=90))
        assert queries.get_slots_for_date(OTHER_DOCTOR, MONDAY, today=TODAY) == []

    @pytest.mark.parametrize(
        "working_day",
        [
            {"day": "Funday", "startTime": "09:00", "endTime": "17:00"},
            {"day": "Monday", "startTime": "9:00", "endTime": "17:00"},
            {"day": "Monday", "startTime": "17:00", "endTime": "09:00"},
            {"day": "Monday", "startTime": "09:00", "endTime": "12:00",
             "breaks": [{"startTime": "11:30", "endTime": "12:30"}]},
            {"day": "Monday", "startTime": "09:00", "endTime": "12:00",
             "sessions": [{"startTime": "08:00", "endTime": "10:00"}]},
        ],
    )
    def test_bad_template(self, ctx, working_day):
        with pytest.raises(AvailabilityError):
            queries.set_doctor_availability(DOCTOR, {"workingDays": [working_day]})

    def test_duplicate_day(self, ctx):
        day = {"day": "Monday", "startTime": "09:00", "endTime": "12:00"}
        with pytest.raises(AvailabilityError):
            queries.set_doctor_availability(DOCTOR, {"workingDays": [day, day]})

    def test_available_flag_must_be_boolean(self, ctx):
        day = {"day": "Monday", "startTime": "09:00", "endTime": "12:00", "isAvailable": "no"}
        with pytest.raises(AvailabilityError):
            queries.set_doctor_availability(DOCTOR, {"workingDays": [day]})

    def test_stored_bad_configuration_yields_no_slots(self, ctx, weekday_template):
        from clinic_availability.services import availability_store

        availability_store.save_slot_configuration(DOCTOR, SlotConfiguration(0, 0, 15))
        assert queries.get_slots_for_date(DOCTOR, MONDAY, today=TODAY) == []


class TestScheduleBlocks:
    def test_partial_block_removes_time(self, ctx, weekday_template):
        queries.add_schedule_block(
            DOCTOR,
            {"startDate": MONDAY.isoformat(), "startTime": "09:00", "endTime": "10:00", "blockType": "admin"},
            actor_id="frontdesk",
        )
        slots = queries.get_slots_for_date(DOCTOR, MONDAY, today=TODAY)
        assert slots[0].start_time == "10:00"

    def test_invalid_type(self, ctx):
        with pytest.raises(AvailabilityError):
            queries.add_schedule_block(DOCTOR, {"startDate": MONDAY.isoformat(), "blockType": "NAP"})

    def test_custom_hours_need_single_day(self, ctx):
        payload = {
            "startDate": MONDAY.isoformat(),
            "endDate": TUESDAY.isoformat(),
            "startTime": "09:00",
            "endTime": "10:00",
            "blockType": "ADMIN",
        }
        with pytest.raises(AvailabilityError):
            queries.add_schedule_block(DOCTOR, payload)

    def test_both_bounds_required(self, ctx):
        payload = {"startDate": MONDAY.isoformat(), "startTime": "09:00", "blockType": "ADMIN"}
        with pytest.raises(AvailabilityError):
            queries.add_schedule_block(DOCTOR, payload)

    def test_end_after_start(self, ctx):
        payload = {"startDate": MONDAY.isoformat(), "startTime": "10:00", "endTime": "09:00", "blockType": "ADMIN"}
        with pytest.raises(AvailabilityError):
            queries.add_schedule_block(DOCTOR, payload)

    def test_full_day_over_partial_conflicts(self, ctx):
        queries.add_schedule_block(
            DOCTOR, {"startDate": MONDAY.isoformat(), "startTime": "09:00", "endTime": "10:00", "blockType": "ADMIN"}
        )
        with pytest.raises(BlockConflict):
            queries.add_schedule_block(
                DOCTOR,
                {"startDate": (MONDAY - timedelta(days=1)).isoformat(), "endDate": TUESDAY.isoformat(),
                 "blockType": "LEAVE"},
            )

    def test_partial_inside_full_day_conflicts(self, ctx):
        queries.add_schedule_block(
            DOCTOR, {"startDate": MONDAY.isoformat(), "endDate": TUESDAY.isoformat(), "blockType": "LEAVE"}
        )
        with pytest.raises(BlockConflict):
            queries.add_schedule_block(
                DOCTOR,
                {"startDate": TUESDAY.isoformat(), "startTime": "09:00", "endTime": "10:00", "blockType": "ADMIN"},
            )

    def test_overlapping_partials_conflict_but_touching_ones_do_not(self, ctx):
        first = {"startDate": MONDAY.isoformat(), "startTime": "09:00", "endTime": "10:00", "blockType": "ADMIN"}
        queries.add_schedule_block(DOCTOR, first)
        queries.add_schedule_block(DOCTOR, {**first, "startTime": "10:00", "endTime": "11:00"})
        with pytest.raises(BlockConflict):
            queries.add_schedule_block(DOCTOR, {**first, "startTime": "09:30", "endTime": "10:30"})

    def test_full_day_blocks_may_overlap(self, ctx):
        payload = {"startDate": MONDAY.isoformat(), "endDate": TUESDAY.isoformat(), "blockType": "LEAVE"}
        queries.add_schedule_block(DOCTOR, payload)
        queries.add_schedule_block(DOCTOR, {**payload, "blockType": "CONFERENCE"})


class TestOverrides:
    def test_granting_override_opens_saturday(self, ctx, weekday_template):
        saturday = MONDAY + timedelta(days=5)
        queries.add_availability_override(
            DOCTOR,
            {"startDate": saturday.isoformat(), "isBlocked": False, "startTime": "10:00", "endTime": "11:00"},
        )
        slots = queries.get_slots_for_date(DOCTOR, saturday, today=TODAY)
        assert [s.start_time for s in slots] == ["10:00", "10:30"]

    def test_blocking_override_clears_range(self, ctx, weekday_template):
        queries.add_availability_override(
            DOCTOR, {"startDate": MONDAY.isoformat(), "endDate": TUESDAY.isoformat(), "reason": "Holiday"}
        )
        dates = queries.get_available_dates(DOCTOR, MONDAY, MONDAY + timedelta(days=2), today=TODAY)
        assert dates == [MONDAY + timedelta(days=2)]

    def test_inverted_dates(self, ctx):
        with pytest.raises(InvalidDateRange):
            queries.add_availability_override(
                DOCTOR, {"startDate": TUESDAY.isoformat(), "endDate": MONDAY.isoformat()}
            )

    @pytest.mark.parametrize("flag", ["false", 0, "no"])
    def test_blocked_flag_must_be_boolean(self, ctx, flag):
        with pytest.raises(AvailabilityError):
            queries.add_availability_override(DOCTOR, {"startDate": MONDAY.isoformat(), "isBlocked": flag})

    def test_bad_date(self, ctx):
        with pytest.raises(AvailabilityError):
            queries.add_availability_override(DOCTOR, {"startDate": "07/01/2030"})


def test_all_doctors_summary(ctx, weekday_template, add_appointment):
    add_appointment("a-1", MONDAY, "09:00")
    summary = queries.get_all_doctors_availability(MONDAY, today=TODAY)
    by_doctor = {entry["doctorId"]: entry for entry in summary}
    assert by_doctor[DOCTOR]["availableSlots"] == 13
    assert by_doctor[DOCTOR]["nextSlot"] == "09:30"
    assert by_doctor[OTHER_DOCTOR]["availableSlots"] == 0
    assert by_doctor[OTHER_DOCTOR]["nextSlot"] is None


def test_all_doctors_summary_survives_one_failure(ctx, monkeypatch):
    real = queries.get_slots_for_date

    def flaky(doctor_id, day, **kwargs):
        if doctor_id == DOCTOR:
            raise RuntimeError("boom")
        return real(doctor_id, day, **kwargs)

    monkeypatch.setattr(queries, "get_slots_for_date", flaky)
    summary = queries.get_all_doctors_availability(MONDAY, today=TODAY)
    assert summary[0]["error"] == "boom"
    assert summary[1]["doctorId"] == OTHER_DOCTOR


def test_grant_override_works_without_weekly_template(ctx):
    queries.add_availability_override(
        OTHER_DOCTOR,
        {"startDate": MONDAY.isoformat(), "isBlocked": False, "startTime": "09:00", "endTime": "10:00"},
    )
    assert queries.get_available_dates(OTHER_DOCTOR, MONDAY, TUESDAY, today=TODAY) == [MONDAY]
    calendar = queries.get_availability_calendar(OTHER_DOCTOR, MONDAY, TUESDAY, today=TODAY)
    assert [day.available_slots_count for day in calendar] == [3, 0]
