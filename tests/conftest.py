"""Shared test fixtures for booking-core tests."""

from datetime import date, datetime, time, timedelta
from decimal import Decimal
from typing import Generator

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from bookingcore.database import Base
from bookingcore.domain.bookings.service import BookingService
from bookingcore.domain.scheduling.service import ScheduleService
from bookingcore.models import AppointmentType, CancellationPolicy, Question, Resource, StaffMember, User
from bookingcore.models_schedule import WorkingHours
from bookingcore.shared.enums import ScopeKind, UserRole
from bookingcore.shared.refs import ProviderRef

# Monday 2026-03-02 08:00 UTC
NOW = datetime(2026, 3, 2, 8, 0)
# Tuesday of the following week, inside the 30 day booking window
BOOKING_DATE = date(2026, 3, 10)


def at(hour: int, minute: int = 0, on: date = BOOKING_DATE) -> datetime:
    return datetime.combine(on, time(hour, minute))


class FixedClock:
    """Injectable "now" for services."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def set(self, now: datetime) -> None:
        self.now = now


class RecordingSender:
    """Notification sender that keeps every event."""

    def __init__(self):
        self.events = []

    def send(self, event) -> None:
        self.events.append(event)

    @property
    def types(self) -> list[str]:
        return [event.type for event in self.events]


class FailingSender:
    def __init__(self):
        self.calls = 0

    def send(self, event) -> None:
        self.calls += 1
        raise RuntimeError("smtp unavailable")


@pytest.fixture
def engine():
    """In-memory SQLite shared by every connection of one test."""
    test_engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=test_engine)
    yield test_engine
    Base.metadata.drop_all(bind=test_engine)
    test_engine.dispose()


@pytest.fixture
def db_session(engine) -> Generator[Session, None, None]:
    session = sessionmaker(autocommit=False, autoflush=False, bind=engine)()
    yield session
    session.close()


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock(NOW)


@pytest.fixture
def sender() -> RecordingSender:
    return RecordingSender()


@pytest.fixture
def organizer(db_session) -> User:
    user = User(email="organizer@example.com", full_name="Olivia Organizer", role=UserRole.ORGANIZER)
    db_session.add(user)
    db_session.commit()
    return user


@pytest.fixture
def customer(db_session) -> User:
    user = User(email="customer@example.com", full_name="Casey Customer", role=UserRole.CUSTOMER)
    db_session.add(user)
    db_session.commit()
    return user


@pytest.fixture
def other_customer(db_session) -> User:
    user = User(email="other@example.com", full_name="Other Customer", role=UserRole.CUSTOMER)
    db_session.add(user)
    db_session.commit()
    return user


@pytest.fixture
def appointment_type(db_session, organizer) -> AppointmentType:
    """30 minute consultation, one seat per slot, Mon-Fri 09:00-17:00."""
    appointment = AppointmentType(
        organizer_id=organizer.id,
        title="Consultation",
        duration_minutes=30,
        max_bookings_per_slot=1,
        buffer_time_minutes=0,
        min_advance_booking_minutes=120,
        max_advance_booking_days=30,
        confirmation_message="See you soon",
    )
    db_session.add(appointment)
    db_session.flush()
    for day in range(1, 6):
        db_session.add(
            WorkingHours(
                scope_kind=ScopeKind.APPOINTMENT_TYPE,
                scope_id=appointment.id,
                day_of_week=day,
                is_working=True,
                start_time=time(9, 0),
                end_time=time(17, 0),
            )
        )
    db_session.commit()
    return appointment


@pytest.fixture
def paid_appointment_type(db_session, organizer) -> AppointmentType:
    """Paid session: 100.00, refund 80% minus a 10.00 fee until 24h before start."""
    appointment = AppointmentType(
        organizer_id=organizer.id,
        title="Paid Session",
        duration_minutes=60,
        max_bookings_per_slot=1,
        requires_payment=True,
        price=Decimal("100.00"),
        currency="USD",
    )
    db_session.add(appointment)
    db_session.flush()
    db_session.add(
        CancellationPolicy(
            appointment_type_id=appointment.id,
            allow_cancellation=True,
            cancellation_deadline_hours=24,
            refund_percentage=80,
            cancellation_fee=Decimal("10.00"),
        )
    )
    for day in range(1, 6):
        db_session.add(
            WorkingHours(
                scope_kind=ScopeKind.APPOINTMENT_TYPE,
                scope_id=appointment.id,
                day_of_week=day,
                start_time=time(9, 0),
                end_time=time(17, 0),
            )
        )
    db_session.commit()
    return appointment


@pytest.fixture
def required_question(db_session, appointment_type) -> Question:
    question = Question(
        appointment_type_id=appointment_type.id,
        question_text="What would you like to discuss?",
        is_required=True,
        order=1,
    )
    db_session.add(question)
    db_session.commit()
    return question


@pytest.fixture
def staff(db_session, organizer) -> StaffMember:
    member = StaffMember(organizer_id=organizer.id, name="Sam Stylist")
    db_session.add(member)
    db_session.commit()
    return member


@pytest.fixture
def resource(db_session, organizer) -> Resource:
    room = Resource(organizer_id=organizer.id, name="Room A")
    db_session.add(room)
    db_session.commit()
    return room


@pytest.fixture
def staff_ref(staff) -> ProviderRef:
    return ProviderRef.staff(staff.id)


@pytest.fixture
def booking_service(db_session, sender, clock) -> BookingService:
    return BookingService(db_session, notifier=sender, clock=clock)


@pytest.fixture
def schedule_service(db_session, clock) -> ScheduleService:
    return ScheduleService(db_session, clock=clock)


@pytest.fixture
def book(booking_service, appointment_type, staff_ref, customer):
    """Create a booking on BOOKING_DATE at hour:minute."""

    def _book(hour: int, minute: int = 0, **overrides):
        params = {
            "appointment_type_id": appointment_type.id,
            "provider": staff_ref,
            "on_date": BOOKING_DATE,
            "start_time": at(hour, minute),
            "customer_id": customer.id,
        }
        params.update(overrides)
        return booking_service.create_booking(**params)

    return _book


@pytest.fixture
def paid_booking(booking_service, paid_appointment_type, staff_ref, customer):
    """Paid booking at 10:00 on BOOKING_DATE with a confirmed payment."""
    booking = booking_service.create_booking(
        appointment_type_id=paid_appointment_type.id,
        provider=staff_ref,
        on_date=BOOKING_DATE,
        start_time=at(10),
        customer_id=customer.id,
    )
    return booking_service.confirm_payment(booking.id, "ch_test_123", customer.id)


def hours_before(moment: datetime, hours: float) -> datetime:
    return moment - timedelta(hours=hours)
