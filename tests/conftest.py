import os
import pathlib
import shutil
import sys
from datetime import date, timedelta

import pytest

root = pathlib.Path(__file__).resolve().parents[1]
if str(root) not in sys.path:
    sys.path.insert(0, str(root))

from clinic_availability import create_app
from clinic_availability.services import availability_store
from clinic_availability.services.database import db as raw_db
from clinic_availability.services.schedule_types import (
    AvailabilityBreak,
    SlotConfiguration,
    WorkingDay,
)

DOCTOR = "dr-lina"
OTHER_DOCTOR = "dr-omar"


def next_weekday(start: date, weekday: int) -> date:
    """First date on or after ``start`` falling on ``weekday`` (Monday is 0)."""
    return start + timedelta(days=(weekday - start.weekday()) % 7)


@pytest.fixture(scope="session")
def _template_db(tmp_path_factory):
    """Migrate a database once per session; each ``app`` copies it."""
    db_path = tmp_path_factory.mktemp("template") / "app.db"
    old_db = os.environ.get("CLINIC_DB_PATH")
    old_key = os.environ.get("CLINIC_SECRET_KEY")
    os.environ["CLINIC_DB_PATH"] = str(db_path)
    os.environ["CLINIC_SECRET_KEY"] = "test-secret"
    try:
        _app = create_app()
        with _app.app_context():
            pass
    finally:
        if old_db is None:
            os.environ.pop("CLINIC_DB_PATH", None)
        else:
            os.environ["CLINIC_DB_PATH"] = old_db
        if old_key is None:
            os.environ.pop("CLINIC_SECRET_KEY", None)
        else:
            os.environ["CLINIC_SECRET_KEY"] = old_key
    return db_path


@pytest.fixture
def app(tmp_path, monkeypatch, _template_db):
    db_path = tmp_path / "app.db"
    shutil.copy2(_template_db, db_path)
    monkeypatch.setenv("CLINIC_DB_PATH", str(db_path))
    monkeypatch.setenv("CLINIC_SECRET_KEY", "test-secret")
    monkeypatch.setenv("CLINIC_AUTO_MIGRATE", "0")
    monkeypatch.setenv("CLINIC_DOCTORS", "Dr. Lina,Dr. Omar")
    app = create_app()
    app.config.update(TESTING=True)
    yield app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def weekday_template(app):
    """Dr. Lina works 09:00-17:00 Monday to Friday with a 12:00-13:00 lunch break."""
    days = ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday"]
    with app.app_context():
        availability_store.save_weekly_template(
            DOCTOR,
            [WorkingDay(day=d, start_time="09:00", end_time="17:00") for d in days],
            breaks=[
                AvailabilityBreak(day_of_week=d, start_time="12:00", end_time="13:00", reason="Lunch")
                for d in days
            ],
        )
        availability_store.save_slot_configuration(
            DOCTOR, SlotConfiguration(default_duration=30, buffer_time=0, slot_interval=30)
        )
    return DOCTOR


@pytest.fixture
def add_appointment(app):
    def _add(appt_id, day, time, *, doctor_id=DOCTOR, status="SCHEDULED", duration=None):
        with app.app_context():
            conn = raw_db()
            try:
                conn.execute(
                    """
                    INSERT INTO appointments(id, doctor_id, patient_name, appointment_date, time,
                                             duration_minutes, status)
                    VALUES (?, ?, ?, ?, ?, ?, ?)
                    """,
                    (appt_id, doctor_id, "Test Patient", day.isoformat(), time, duration, status),
                )
                conn.commit()
            finally:
                conn.close()

    return _add
