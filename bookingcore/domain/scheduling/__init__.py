"""
Scheduling Domain

Weekly working hours, date exceptions, slot generation and the capacity gate.

Layout:
- availability.py  effective window + slot generation (pure) and scope resolution
- overlap.py       half-open overlap test and capacity check over bookings
- repository.py    schedule and catalog queries
- service.py       schedule management and display-only slot listing
- router.py        HTTP endpoints

Availability read here for display is non-locking and may be stale;
the booking transaction re-checks it under lock.
"""
