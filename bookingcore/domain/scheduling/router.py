"""Scheduling router - FastAPI endpoints for availability and schedule management"""

import logging
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import get_current_user_id
from ...database import get_db
from ...errors import ValidationError
from ...shared.enums import ProviderKind, ScopeKind
from ...shared.refs import ProviderRef, ScheduleScope
from .schemas import (
    AvailabilityExceptionResponse,
    AvailabilityExceptionUpsert,
    AvailableSlotsResponse,
    SlotResponse,
    WorkingHoursResponse,
    WorkingHoursUpdate,
)
from .service import ScheduleService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Scheduling"])


def get_schedule_service(db: Session = Depends(get_db)) -> ScheduleService:
    """Dependency injection for ScheduleService"""
    return ScheduleService(db)


# ============================================================================
# PUBLIC AVAILABILITY
# ============================================================================


@router.get("/availability/{appointment_type_id}/slots", response_model=AvailableSlotsResponse)
async def get_available_slots(
    appointment_type_id: int,
    on_date: date = Query(..., alias="date"),
    providerType: Optional[ProviderKind] = Query(None),
    providerId: Optional[int] = Query(None),
    service: ScheduleService = Depends(get_schedule_service),
):
    """List slots for a date, optionally for one staff member or resource"""
    if (providerType is None) != (providerId is None):
        raise ValidationError("providerType and providerId must be provided together")

    provider = ProviderRef(providerType, providerId) if providerType is not None else None
    slots = service.list_available_slots(appointment_type_id, on_date, provider)

    return AvailableSlotsResponse(
        appointmentTypeId=appointment_type_id,
        date=on_date,
        providerType=providerType.value if providerType else None,
        providerId=providerId,
        slots=[
            SlotResponse(
                start=s["start"],
                end=s["end"],
                capacityRemaining=s["capacity_remaining"],
                isAvailable=s["is_available"],
            )
            for s in slots
        ],
    )


# ============================================================================
# SCHEDULE MANAGEMENT (ORGANIZER)
# ============================================================================


@router.put(
    "/schedules/{scope_kind}/{scope_id}/working-hours",
    response_model=list[WorkingHoursResponse],
)
async def set_working_hours(
    scope_kind: ScopeKind,
    scope_id: int,
    data: WorkingHoursUpdate,
    current_user_id: int = Depends(get_current_user_id),
    service: ScheduleService = Depends(get_schedule_service),
):
    """Replace the weekly working hours of an appointment type, staff member or resource"""
    rows = [
        {
            "day_of_week": item.dayOfWeek,
            "is_working": item.isWorking,
            "start_time": item.startTime,
            "end_time": item.endTime,
        }
        for item in data.hours
    ]
    saved = service.set_working_hours(ScheduleScope(scope_kind, scope_id), rows, current_user_id)
    return [
        WorkingHoursResponse(
            dayOfWeek=wh.day_of_week,
            isWorking=wh.is_working,
            startTime=wh.start_time,
            endTime=wh.end_time,
        )
        for wh in saved
    ]


@router.put(
    "/schedules/{scope_kind}/{scope_id}/exceptions/{exception_date}",
    response_model=AvailabilityExceptionResponse,
)
async def upsert_availability_exception(
    scope_kind: ScopeKind,
    scope_id: int,
    exception_date: date,
    data: AvailabilityExceptionUpsert,
    current_user_id: int = Depends(get_current_user_id),
    service: ScheduleService = Depends(get_schedule_service),
):
    """Block a date or replace its working window"""
    exception, affected = service.upsert_availability_exception(
        ScheduleScope(scope_kind, scope_id),
        exception_date,
        current_user_id,
        is_available=data.isAvailable,
        start_time=data.startTime,
        end_time=data.endTime,
        reason=data.reason,
    )
    return AvailabilityExceptionResponse(
        id=exception.id,
        date=exception.date,
        isAvailable=exception.is_available,
        startTime=exception.start_time,
        endTime=exception.end_time,
        reason=exception.reason,
        affectedBookings=affected,
    )
