"""Appointment router - FastAPI endpoints for appointments"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import Caller, get_current_caller, require_roles
from ...database import get_db
from ...models import AppointmentStatus, Role
from .schemas import AppointmentCreate, AppointmentResponse, AppointmentUpdate
from .service import AppointmentService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/appointments", tags=["Appointments"])


def get_appointment_service(db: Session = Depends(get_db)) -> AppointmentService:
    """Dependency injection for AppointmentService"""
    return AppointmentService(db)


@router.post("", response_model=AppointmentResponse, status_code=201)
async def create_appointment(
    data: AppointmentCreate,
    caller: Caller = Depends(require_roles(Role.customer)),
    service: AppointmentService = Depends(get_appointment_service),
):
    """Book an available timeslot (customers only)"""
    return AppointmentResponse.model_validate(service.create_appointment(data, caller))


@router.get("", response_model=list[AppointmentResponse])
async def list_appointments(
    status: Optional[AppointmentStatus] = Query(None),
    caller: Caller = Depends(get_current_caller),
    service: AppointmentService = Depends(get_appointment_service),
):
    appointments = service.list_appointments(caller, status=status)
    return [AppointmentResponse.model_validate(a) for a in appointments]


@router.get("/{appointment_id}", response_model=AppointmentResponse)
async def get_appointment(
    appointment_id: int,
    caller: Caller = Depends(get_current_caller),
    service: AppointmentService = Depends(get_appointment_service),
):
    """Get an appointment with its timeslot, doctor and customer"""
    return AppointmentResponse.model_validate(service.get_appointment(appointment_id, caller))


@router.put("/{appointment_id}", response_model=AppointmentResponse)
async def update_appointment(
    appointment_id: int,
    data: AppointmentUpdate,
    caller: Caller = Depends(get_current_caller),
    service: AppointmentService = Depends(get_appointment_service),
):
    """Reschedule, cancel, or edit notes (admin or the booking customer)"""
    appointment = service.update_appointment(appointment_id, data, caller)
    return AppointmentResponse.model_validate(appointment)


@router.delete("/{appointment_id}")
async def delete_appointment(
    appointment_id: int,
    caller: Caller = Depends(get_current_caller),
    service: AppointmentService = Depends(get_appointment_service),
):
    """Delete an appointment, freeing its timeslot if it was confirmed"""
    return service.delete_appointment(appointment_id, caller)
