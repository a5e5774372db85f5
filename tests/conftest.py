"""
Shared fixtures: a throwaway SQLite database per test plus small factories
for businesses, services and staff.
"""
import os
import tempfile
import uuid
from datetime import date

# Must be set before booking_engine.config.settings is first imported
os.environ.setdefault(
    "DATABASE_URL",
    f"sqlite:///{os.path.join(tempfile.mkdtemp(prefix='salon-scheduler-'), 'bootstrap.db')}",
)

import pytest
from sqlalchemy.orm import sessionmaker

from booking_engine.config.database import build_engine
from booking_engine.models import Base, Business, BusinessHours, Reservation, Service, StaffMember
from booking_engine.services.reservation.reservation_lifecycle import Actor, ActorRole
from booking_engine.utils.time_math import Weekday, minutes_to_clock, time_to_minutes

WEEKDAY_HOURS = {
    day: {"open": "09:00", "close": "18:00"}
    for day in ("monday", "tuesday", "wednesday", "thursday", "friday")
}


# A week far enough ahead that the same-day cutoff never applies
@pytest.fixture
def monday():
    return date(2030, 1, 7)


@pytest.fixture
def tuesday():
    return date(2030, 1, 8)


@pytest.fixture
def sunday():
    return date(2030, 1, 13)


@pytest.fixture
def engine(tmp_path):
    engine = build_engine(f"sqlite:///{tmp_path / 'scheduler.db'}")
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def owner():
    return Actor(user_id=uuid.uuid4(), role=ActorRole.OWNER)


@pytest.fixture
def client_actor():
    return Actor(user_id=uuid.uuid4(), role=ActorRole.CLIENT)


@pytest.fixture
def make_client():
    def _make():
        return Actor(user_id=uuid.uuid4(), role=ActorRole.CLIENT)
    return _make


@pytest.fixture
def make_business(db, owner):
    """Factory for a business with Mon-Fri 09:00-18:00 hours by default"""

    def _make(hours=None, **fields):
        business = Business(owner_id=fields.pop("owner_id", owner.user_id), name=fields.pop("name", "Studio Nine"), **fields)
        db.add(business)
        db.flush()

        for day_name, day_hours in (WEEKDAY_HOURS if hours is None else hours).items():
            db.add(BusinessHours(
                business_id=business.id,
                day_of_week=int(Weekday.from_name(day_name)),
                open_time=day_hours.get("open"),
                close_time=day_hours.get("close"),
                is_closed=day_hours.get("closed", False),
            ))

        db.commit()
        return business

    return _make


@pytest.fixture
def make_service(db):
    def _make(business, duration_minutes=60, name="Haircut", **fields):
        service = Service(business_id=business.id, name=name, duration_minutes=duration_minutes, **fields)
        db.add(service)
        db.commit()
        return service

    return _make


@pytest.fixture
def make_staff(db):
    def _make(business, name="Alex", user_id=None, **fields):
        staff = StaffMember(business_id=business.id, name=name, user_id=user_id, **fields)
        db.add(staff)
        db.commit()
        return staff

    return _make


@pytest.fixture
def business(make_business):
    return make_business()


@pytest.fixture
def service(make_service, business):
    return make_service(business)


@pytest.fixture
def make_reservation(db):
    """Insert a reservation directly, bypassing the booking rules"""

    def _make(business, service, day, start, status="confirmed", resource_id=None, client_id=None):
        start_minutes = time_to_minutes(start)
        reservation = Reservation(
            business_id=business.id,
            service_id=service.id,
            resource_id=resource_id,
            client_id=client_id or uuid.uuid4(),
            appointment_date=day,
            start_time=minutes_to_clock(start_minutes),
            end_time=minutes_to_clock(start_minutes + service.duration_minutes),
            duration_minutes=service.duration_minutes,
            status=status,
        )
        db.add(reservation)
        db.commit()
        return reservation

    return _make
