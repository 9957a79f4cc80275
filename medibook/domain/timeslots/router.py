"""Timeslot router - FastAPI endpoints for timeslots"""

import datetime as dt
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import Caller, get_current_caller, require_roles
from ...database import get_db
from ...models import Role
from .schemas import TimeslotCreate, TimeslotResponse, TimeslotUpdate
from .service import TimeslotService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/timeslots", tags=["Timeslots"])


def get_timeslot_service(db: Session = Depends(get_db)) -> TimeslotService:
    """Dependency injection for TimeslotService"""
    return TimeslotService(db)


@router.post("", response_model=TimeslotResponse, status_code=201)
async def create_timeslot(
    data: TimeslotCreate,
    caller: Caller = Depends(require_roles(Role.admin, Role.doctor)),
    service: TimeslotService = Depends(get_timeslot_service),
):
    """Publish a timeslot for a doctor profile (admin or the owning doctor)"""
    return TimeslotResponse.model_validate(service.create_timeslot(data, caller))


@router.get("", response_model=list[TimeslotResponse])
async def list_timeslots(
    date: Optional[dt.date] = Query(None, description="Only timeslots on this day"),
    doctor_id: Optional[int] = Query(None),
    caller: Caller = Depends(get_current_caller),
    service: TimeslotService = Depends(get_timeslot_service),
):
    """List timeslots visible to the caller, ordered by date and start time"""
    timeslots = service.list_timeslots(caller, on_date=date, doctor_id=doctor_id)
    return [TimeslotResponse.model_validate(t) for t in timeslots]


@router.get("/{timeslot_id}", response_model=TimeslotResponse)
async def get_timeslot(
    timeslot_id: int,
    caller: Caller = Depends(get_current_caller),
    service: TimeslotService = Depends(get_timeslot_service),
):
    return TimeslotResponse.model_validate(service.get_timeslot(timeslot_id, caller))


@router.put("/{timeslot_id}", response_model=TimeslotResponse)
async def update_timeslot(
    timeslot_id: int,
    data: TimeslotUpdate,
    caller: Caller = Depends(get_current_caller),
    service: TimeslotService = Depends(get_timeslot_service),
):
    return TimeslotResponse.model_validate(service.update_timeslot(timeslot_id, data, caller))


@router.delete("/{timeslot_id}")
async def delete_timeslot(
    timeslot_id: int,
    caller: Caller = Depends(get_current_caller),
    service: TimeslotService = Depends(get_timeslot_service),
):
    """Delete a timeslot unless a confirmed appointment holds it"""
    return service.delete_timeslot(timeslot_id, caller)
