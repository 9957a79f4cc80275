"""Timeslot domain schemas - Pydantic models for validation"""

import datetime as dt
from typing import Optional

from pydantic import BaseModel, field_validator, model_validator

from ...models import TimeslotStatus
from ..users.schemas import UserSummary


def _manual_status(v):
    # "booked" is only ever set by an appointment
    if v == TimeslotStatus.booked:
        raise ValueError("Status must be available or unavailable")
    return v


class TimeslotCreate(BaseModel):
    """Schema for publishing a timeslot"""

    doctor_id: int
    date: dt.date
    start_time: dt.time
    end_time: dt.time
    status: TimeslotStatus = TimeslotStatus.available

    @field_validator("status")
    @classmethod
    def validate_status(cls, v):
        return _manual_status(v)

    @model_validator(mode="after")
    def check_time_range(self):
        if self.end_time <= self.start_time:
            raise ValueError("end_time must be after start_time")
        return self


class TimeslotUpdate(BaseModel):
    """Schema for updating a timeslot; doctor_id is not movable"""

    date: Optional[dt.date] = None
    start_time: Optional[dt.time] = None
    end_time: Optional[dt.time] = None
    status: Optional[TimeslotStatus] = None

    @field_validator("status")
    @classmethod
    def validate_status(cls, v):
        if v is None:
            return v
        return _manual_status(v)


class TimeslotDoctorInfo(BaseModel):
    id: int
    specialty: str
    user: Optional[UserSummary] = None

    class Config:
        from_attributes = True


class TimeslotResponse(BaseModel):
    id: int
    doctor_id: int
    date: dt.date
    start_time: dt.time
    end_time: dt.time
    status: TimeslotStatus
    created_at: Optional[dt.datetime] = None
    updated_at: Optional[dt.datetime] = None
    doctor: Optional[TimeslotDoctorInfo] = None

    class Config:
        from_attributes = True
