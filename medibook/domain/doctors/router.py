"""Doctor router - FastAPI endpoints for doctor profiles"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import Caller, get_current_caller, require_roles
from ...database import get_db
from ...models import Role
from .schemas import DoctorCreate, DoctorResponse, DoctorUpdate
from .service import DoctorService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/doctors", tags=["Doctors"])


def get_doctor_service(db: Session = Depends(get_db)) -> DoctorService:
    """Dependency injection for DoctorService"""
    return DoctorService(db)


@router.post("", response_model=DoctorResponse, status_code=201)
async def create_doctor(
    data: DoctorCreate,
    caller: Caller = Depends(require_roles(Role.admin)),
    service: DoctorService = Depends(get_doctor_service),
):
    """Create a doctor profile for an existing doctor account (admin only)"""
    doctor = service.create_doctor(data, caller)
    return DoctorResponse.model_validate(doctor)


@router.get("", response_model=list[DoctorResponse])
async def list_doctors(
    specialty: Optional[str] = Query(None),
    city: Optional[str] = Query(None),
    caller: Caller = Depends(get_current_caller),
    service: DoctorService = Depends(get_doctor_service),
):
    """List doctor profiles with their account name and email"""
    doctors = service.list_doctors(caller, specialty=specialty, city=city)
    return [DoctorResponse.model_validate(d) for d in doctors]


@router.get("/{doctor_id}", response_model=DoctorResponse)
async def get_doctor(
    doctor_id: int,
    caller: Caller = Depends(get_current_caller),
    service: DoctorService = Depends(get_doctor_service),
):
    return DoctorResponse.model_validate(service.get_doctor(doctor_id, caller))


@router.put("/{doctor_id}", response_model=DoctorResponse)
async def update_doctor(
    doctor_id: int,
    data: DoctorUpdate,
    caller: Caller = Depends(get_current_caller),
    service: DoctorService = Depends(get_doctor_service),
):
    """Update a profile (admin or the doctor who owns it)"""
    return DoctorResponse.model_validate(service.update_doctor(doctor_id, data, caller))


@router.delete("/{doctor_id}")
async def delete_doctor(
    doctor_id: int,
    caller: Caller = Depends(require_roles(Role.admin)),
    service: DoctorService = Depends(get_doctor_service),
):
    """Delete a profile with its timeslots and their appointments (admin only)"""
    return service.delete_doctor(doctor_id, caller)
