"""Scheduling domain schemas - Pydantic models for validation"""

from datetime import date, datetime, time
from typing import Optional

from pydantic import BaseModel, Field


class WorkingHoursItem(BaseModel):
    """One weekly row; times as HH:MM"""

    dayOfWeek: int = Field(..., ge=0, le=6)
    isWorking: bool = True
    startTime: Optional[str] = None
    endTime: Optional[str] = None


class WorkingHoursUpdate(BaseModel):
    hours: list[WorkingHoursItem]


class WorkingHoursResponse(BaseModel):
    dayOfWeek: int
    isWorking: bool
    startTime: Optional[time] = None
    endTime: Optional[time] = None


class AvailabilityExceptionUpsert(BaseModel):
    isAvailable: bool = False
    startTime: Optional[str] = None
    endTime: Optional[str] = None
    reason: Optional[str] = None


class AvailabilityExceptionResponse(BaseModel):
    id: int
    date: date
    isAvailable: bool
    startTime: Optional[time] = None
    endTime: Optional[time] = None
    reason: Optional[str] = None
    affectedBookings: int = 0


class SlotResponse(BaseModel):
    start: datetime
    end: datetime
    capacityRemaining: int
    isAvailable: bool


class AvailableSlotsResponse(BaseModel):
    appointmentTypeId: int
    date: date
    providerType: Optional[str] = None
    providerId: Optional[int] = None
    slots: list[SlotResponse]
