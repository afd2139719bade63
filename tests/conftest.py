from datetime import date
from decimal import Decimal

import pytest

from app import create_app
from booking_engine.availability import replace_calendar
from config import Config
from models import db
from models.service import Service

MONDAY = date(2026, 10, 19)
TUESDAY = date(2026, 10, 20)
SUNDAY = date(2026, 10, 25)

WEEKDAYS_9_TO_5 = [
    {"day": day, "isAvailable": True, "slots": [{"start": "09:00", "end": "17:00"}]}
    for day in ("monday", "tuesday", "wednesday", "thursday", "friday")
] + [
    {"day": "saturday", "isAvailable": True, "slots": [{"start": "10:00", "end": "14:00"}]},
    {"day": "sunday", "isAvailable": False, "slots": []},
]


@pytest.fixture
def app(tmp_path):
    class TestConfig(Config):
        TESTING = True
        SQLALCHEMY_DATABASE_URI = "sqlite:///" + str(tmp_path / "bookings-test.db")
        SQLALCHEMY_ENGINE_OPTIONS = {"connect_args": {"check_same_thread": False, "timeout": 30}}
        BOOKING_LOCK_TIMEOUT_SECONDS = 10
        BOOKING_RETRY_BACKOFF_SECONDS = 0
        CANCELLED_SLOT_HOLD_MINUTES = 0

    app = create_app(TestConfig)
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def make_service(app):
    def _make(name="Haircut", price="20.00", duration=30, working_hours=WEEKDAYS_9_TO_5, exceptions=None):
        service = Service(name=name, price=Decimal(price), duration=duration)
        db.session.add(service)
        db.session.commit()
        if working_hours is not None:
            replace_calendar(service.id, working_hours, exceptions or [])
        return service

    return _make


@pytest.fixture
def customer():
    return {"name": "Ada Lovelace", "email": "ada@example.com", "phone": "555-0100"}
