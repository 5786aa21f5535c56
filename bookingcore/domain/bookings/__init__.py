"""
Bookings Domain

Atomic booking commit, payment bookkeeping, cancellation and refunds,
reschedule and organizer actions. Every mutating operation is one
transaction that locks the rows it evaluates before writing.
"""
