"""Appointment domain schemas - Pydantic models for validation"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, field_validator

from ...models import AppointmentStatus
from ...security_utils import sanitize_text
from ..timeslots.schemas import TimeslotResponse
from ..users.schemas import UserSummary


def _clean_notes(v):
    if v is None:
        return v
    return sanitize_text(v) or None


class AppointmentCreate(BaseModel):
    """Schema for booking a timeslot (customers only)"""

    timeslot_id: int
    notes: Optional[str] = None

    @field_validator("notes")
    @classmethod
    def validate_notes(cls, v):
        return _clean_notes(v)


class AppointmentUpdate(BaseModel):
    """Reschedule, cancel, or edit notes; only provided fields change"""

    timeslot_id: Optional[int] = None
    notes: Optional[str] = None
    status: Optional[AppointmentStatus] = None

    @field_validator("notes")
    @classmethod
    def validate_notes(cls, v):
        return _clean_notes(v)


class AppointmentResponse(BaseModel):
    id: int
    timeslot_id: int
    customer_id: int
    booking_date: Optional[datetime] = None
    status: AppointmentStatus
    notes: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    timeslot: Optional[TimeslotResponse] = None
    customer: Optional[UserSummary] = None

    class Config:
        from_attributes = True
