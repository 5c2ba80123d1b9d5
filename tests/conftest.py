"""Shared fixtures: in-memory store, booking service pinned to a Monday."""
from datetime import date

import pytest

from hospital_scheduler.booking import BookingService
from hospital_scheduler.store import HospitalDB

MONDAY = date(2025, 1, 6)
TUESDAY = date(2025, 1, 7)


@pytest.fixture
def db():
    database = HospitalDB(":memory:")
    database.init_schema()
    yield database
    database.close()


@pytest.fixture
def service(db):
    return BookingService(db, clock=lambda: MONDAY)


@pytest.fixture
def doctor(db):
    """Works Mondays and Wednesdays, one half-hour window (three slots)."""
    return db.create_doctor(
        name="Dr. Meera Rao",
        available_days=["Monday", "Wednesday"],
        available_time=["09:00 AM - 09:30 AM"],
        fee=500,
        specialty="Cardiology",
    )


@pytest.fixture
def patient(db):
    return db.create_patient(name="Arun Kumar", age=42, gender="Male", phone="9876543210", place="Kochi")
