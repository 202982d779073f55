from __future__ import annotations

from flask import Blueprint, jsonify, request

from clinic_availability.extensions import limiter
from clinic_availability.services import availability_store
from clinic_availability.services.availability_queries import (
    AvailabilityError,
    BlockConflict,
    DoctorNotFound,
    add_availability_override,
    add_schedule_block,
    ensure_doctor,
    get_all_doctors_availability,
    get_availability_calendar,
    get_available_dates,
    get_slots_for_date,
    parse_day,
    set_doctor_availability,
    validate_appointment_time,
)
from clinic_availability.services.errors import record_exception
from clinic_availability.services.intervals import ParseError

bp = Blueprint("availability", __name__)


def _fail(errors: list[str], status: int):
    return jsonify({"success": False, "errors": errors}), status


def _domain_error(exc: Exception):
    if isinstance(exc, DoctorNotFound):
        return _fail([f"doctor_not_found:{exc}"], 404)
    if isinstance(exc, BlockConflict):
        return _fail([str(exc)], 409)
    return _fail([str(exc)], 400)


def _json_body() -> dict:
    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        raise AvailabilityError("json_body_required")
    return payload


@bp.route("/doctors/<doctor_id>/slots", methods=["GET"], endpoint="slots")
def slots_for_date(doctor_id: str):
    try:
        day = parse_day(request.args.get("date"))
        duration = request.args.get("duration", type=int)
        slots = get_slots_for_date(doctor_id, day, duration=duration)
        return jsonify(
            {
                "success": True,
                "doctorId": doctor_id,
                "date": day.isoformat(),
                "slots": [slot.as_dict() for slot in slots],
            }
        )
    except (AvailabilityError, ParseError) as exc:
        return _domain_error(exc)
    except Exception as exc:
        record_exception("availability.slots", exc)
        return _fail(["server_error"], 500)


@bp.route("/doctors/<doctor_id>/available-dates", methods=["GET"], endpoint="available_dates")
@limiter.limit("60 per minute")
def available_dates(doctor_id: str):
    try:
        start = parse_day(request.args.get("start"), "start")
        end = parse_day(request.args.get("end"), "end")
        dates = get_available_dates(doctor_id, start, end)
        return jsonify({"success": True, "doctorId": doctor_id, "dates": [d.isoformat() for d in dates]})
    except (AvailabilityError, ParseError) as exc:
        return _domain_error(exc)
    except Exception as exc:
        record_exception("availability.available_dates", exc)
        return _fail(["server_error"], 500)


@bp.route("/doctors/<doctor_id>/availability", methods=["GET"], endpoint="calendar")
def availability_calendar(doctor_id: str):
    try:
        start = parse_day(request.args.get("start"), "start")
        end = parse_day(request.args.get("end"), "end")
        calendar = get_availability_calendar(doctor_id, start, end)
        return jsonify({"success": True, "doctorId": doctor_id, "days": [day.as_dict() for day in calendar]})
    except (AvailabilityError, ParseError) as exc:
        return _domain_error(exc)
    except Exception as exc:
        record_exception("availability.calendar", exc)
        return _fail(["server_error"], 500)


@bp.route("/doctors/availability", methods=["GET"], endpoint="all_doctors")
def all_doctors_availability():
    try:
        day = parse_day(request.args.get("date"))
        return jsonify({"success": True, "date": day.isoformat(), "doctors": get_all_doctors_availability(day)})
    except AvailabilityError as exc:
        return _domain_error(exc)
    except Exception as exc:
        record_exception("availability.all_doctors", exc)
        return _fail(["server_error"], 500)


@bp.route("/doctors/<doctor_id>/availability", methods=["POST"], endpoint="set_template")
def set_template(doctor_id: str):
    try:
        schedule = set_doctor_availability(doctor_id, _json_body())
        return jsonify(
            {
                "success": True,
                "doctorId": doctor_id,
                "workingDays": len(schedule.working_days),
                "sessions": len(schedule.sessions),
                "breaks": len(schedule.breaks),
            }
        ), 201
    except (AvailabilityError, ParseError) as exc:
        return _domain_error(exc)
    except Exception as exc:
        record_exception("availability.set_template", exc)
        return _fail(["server_error"], 500)


@bp.route("/doctors/<doctor_id>/blocks", methods=["POST"], endpoint="add_block")
def create_block(doctor_id: str):
    try:
        payload = _json_body()
        block_id = add_schedule_block(doctor_id, payload, actor_id=payload.get("createdBy"))
        return jsonify({"success": True, "id": block_id}), 201
    except (AvailabilityError, ParseError) as exc:
        return _domain_error(exc)
    except Exception as exc:
        record_exception("availability.add_block", exc)
        return _fail(["server_error"], 500)


@bp.route("/doctors/<doctor_id>/blocks/<block_id>", methods=["DELETE"], endpoint="delete_block")
def remove_block(doctor_id: str, block_id: str):
    try:
        ensure_doctor(doctor_id)
        if not availability_store.delete_block(block_id):
            return _fail(["block_not_found"], 404)
        return jsonify({"success": True})
    except AvailabilityError as exc:
        return _domain_error(exc)
    except Exception as exc:
        record_exception("availability.delete_block", exc)
        return _fail(["server_error"], 500)


@bp.route("/doctors/<doctor_id>/overrides", methods=["POST"], endpoint="add_override")
def create_override(doctor_id: str):
    try:
        override_id = add_availability_override(doctor_id, _json_body())
        return jsonify({"success": True, "id": override_id}), 201
    except (AvailabilityError, ParseError) as exc:
        return _domain_error(exc)
    except Exception as exc:
        record_exception("availability.add_override", exc)
        return _fail(["server_error"], 500)


@bp.route("/doctors/<doctor_id>/overrides/<override_id>", methods=["DELETE"], endpoint="delete_override")
def remove_override(doctor_id: str, override_id: str):
    try:
        ensure_doctor(doctor_id)
        if not availability_store.delete_override(override_id):
            return _fail(["override_not_found"], 404)
        return jsonify({"success": True})
    except AvailabilityError as exc:
        return _domain_error(exc)
    except Exception as exc:
        record_exception("availability.delete_override", exc)
        return _fail(["server_error"], 500)


@bp.route("/doctors/<doctor_id>/validate-slot", methods=["POST"], endpoint="validate_slot")
def validate_slot(doctor_id: str):
    """Check one requested start time and duration against the doctor's calendar."""
    try:
        payload = _json_body()
        day = parse_day(payload.get("date"))
        try:
            duration = int(payload.get("duration") or 0)
        except (TypeError, ValueError):
            return _fail(["invalid_duration"], 400)
        if duration <= 0:
            return _fail(["invalid_duration"], 400)
        check = validate_appointment_time(doctor_id, day, payload.get("time") or "", duration)
        return jsonify({"success": True, "isAvailable": check.is_available, "reason": check.reason})
    except (AvailabilityError, ParseError) as exc:
        return _domain_error(exc)
    except Exception as exc:
        record_exception("availability.validate_slot", exc)
        return _fail(["server_error"], 500)
