"""Two sessions racing for the last seat of a slot on a file-backed database."""

import threading
from datetime import time

import pytest
from conftest import BOOKING_DATE, NOW, FixedClock, RecordingSender, at
from sqlalchemy.orm import sessionmaker

from bookingcore.database import Base, build_engine
from bookingcore.domain.bookings.service import BookingService
from bookingcore.errors import Conflict
from bookingcore.models import AppointmentType, StaffMember, User
from bookingcore.models_booking import Booking
from bookingcore.models_schedule import WorkingHours
from bookingcore.shared.enums import BookingStatus, ScopeKind, UserRole
from bookingcore.shared.refs import ProviderRef
from bookingcore.shared.validators import day_of_week


@pytest.fixture
def file_engine(tmp_path):
    engine = build_engine(f"sqlite:///{tmp_path / 'bookings.db'}")
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def seeded(file_engine):
    """One single-seat type, one staff member and two customers."""
    session = sessionmaker(autocommit=False, autoflush=False, bind=file_engine)()
    organizer = User(email="organizer@example.com", full_name="Olivia Organizer", role=UserRole.ORGANIZER)
    first = User(email="first@example.com", full_name="First Customer", role=UserRole.CUSTOMER)
    second = User(email="second@example.com", full_name="Second Customer", role=UserRole.CUSTOMER)
    session.add_all([organizer, first, second])
    session.flush()

    appointment = AppointmentType(
        organizer_id=organizer.id,
        title="Consultation",
        duration_minutes=30,
        max_bookings_per_slot=1,
        min_advance_booking_minutes=0,
    )
    member = StaffMember(organizer_id=organizer.id, name="Sam Stylist")
    session.add_all([appointment, member])
    session.flush()
    session.add(
        WorkingHours(
            scope_kind=ScopeKind.APPOINTMENT_TYPE,
            scope_id=appointment.id,
            day_of_week=day_of_week(BOOKING_DATE),
            is_working=True,
            start_time=time(9, 0),
            end_time=time(17, 0),
        )
    )
    session.commit()

    ids = {
        "appointment_type": appointment.id,
        "staff": member.id,
        "customers": [first.id, second.id],
    }
    session.close()
    return ids


class TestConcurrentBooking:
    def test_last_seat_goes_to_one_session(self, file_engine, seeded):
        Session = sessionmaker(autocommit=False, autoflush=False, bind=file_engine)
        barrier = threading.Barrier(2)
        outcomes = []
        lock = threading.Lock()

        def attempt(customer_id):
            session = Session()
            service = BookingService(session, notifier=RecordingSender(), clock=FixedClock(NOW))
            barrier.wait()
            try:
                service.create_booking(
                    appointment_type_id=seeded["appointment_type"],
                    provider=ProviderRef.staff(seeded["staff"]),
                    on_date=BOOKING_DATE,
                    start_time=at(10),
                    customer_id=customer_id,
                )
                result = "booked"
            except Conflict:
                result = "conflict"
            finally:
                session.close()
            with lock:
                outcomes.append(result)

        threads = [threading.Thread(target=attempt, args=(cid,)) for cid in seeded["customers"]]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(timeout=30)

        check = Session()
        live = check.query(Booking).filter(Booking.status != BookingStatus.CANCELLED).count()
        check.close()

        assert sorted(outcomes) == ["booked", "conflict"]
        assert live == 1
