import json
from datetime import date, timedelta

from conftest import DOCTOR, next_weekday

MONDAY = next_weekday(date.today() + timedelta(days=1), 0)


def test_slots_command(app, weekday_template, add_appointment):
    add_appointment("a-1", MONDAY, "09:00")
    runner = app.test_cli_runner()
    result = runner.invoke(args=["availability", "slots", DOCTOR, MONDAY.isoformat(), "--available-only"])
    assert result.exit_code == 0, result.output
    slots = json.loads(result.output)
    assert len(slots) == 13
    assert slots[0]["startTime"] == "09:30"


def test_dates_command(app, weekday_template):
    runner = app.test_cli_runner()
    end = MONDAY + timedelta(days=2)
    result = runner.invoke(args=["availability", "dates", DOCTOR, MONDAY.isoformat(), end.isoformat()])
    assert result.exit_code == 0, result.output
    assert json.loads(result.output) == [(MONDAY + timedelta(days=i)).isoformat() for i in range(3)]


def test_unknown_doctor_fails(app):
    runner = app.test_cli_runner()
    result = runner.invoke(args=["availability", "slots", "dr-who", MONDAY.isoformat()])
    assert result.exit_code != 0
    assert "dr-who" in result.output


def test_db_upgrade_is_idempotent(app):
    runner = app.test_cli_runner()
    result = runner.invoke(args=["db", "upgrade"])
    assert result.exit_code == 0, result.output
