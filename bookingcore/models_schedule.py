"""
Schedule Models: weekly working hours and per-date exceptions
"""

from sqlalchemy import (
    Boolean,
    Column,
    Date,
    DateTime,
    Enum as SQLEnum,
    Integer,
    String,
    Time,
    UniqueConstraint,
)
from sqlalchemy.sql import func

from .database import Base
from .shared.enums import ScopeKind
from .shared.refs import ScheduleScope


class WorkingHours(Base):
    """Weekly template row; at most one per (scope, day_of_week)"""

    __tablename__ = "working_hours"
    __table_args__ = (
        UniqueConstraint("scope_kind", "scope_id", "day_of_week", name="uq_working_hours_scope_day"),
    )

    id = Column(Integer, primary_key=True, index=True)
    scope_kind = Column(SQLEnum(ScopeKind, native_enum=False, length=20), nullable=False)
    scope_id = Column(Integer, nullable=False, index=True)
    day_of_week = Column(Integer, nullable=False)  # 0 = Sunday ... 6 = Saturday
    is_working = Column(Boolean, default=True, nullable=False)
    start_time = Column(Time, nullable=True)
    end_time = Column(Time, nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    @property
    def scope(self) -> ScheduleScope:
        return ScheduleScope(self.scope_kind, self.scope_id)


class AvailabilityException(Base):
    """
    Date-specific override of the weekly template.

    is_available=False blocks the whole day. is_available=True with its own
    start/end replaces the working window for that date.
    """

    __tablename__ = "availability_exceptions"
    __table_args__ = (
        UniqueConstraint("scope_kind", "scope_id", "date", name="uq_availability_exception_scope_date"),
    )

    id = Column(Integer, primary_key=True, index=True)
    scope_kind = Column(SQLEnum(ScopeKind, native_enum=False, length=20), nullable=False)
    scope_id = Column(Integer, nullable=False, index=True)
    date = Column(Date, nullable=False, index=True)
    is_available = Column(Boolean, default=False, nullable=False)
    start_time = Column(Time, nullable=True)
    end_time = Column(Time, nullable=True)
    reason = Column(String(500), nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    @property
    def scope(self) -> ScheduleScope:
        return ScheduleScope(self.scope_kind, self.scope_id)
