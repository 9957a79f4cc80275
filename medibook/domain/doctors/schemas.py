"""Doctor domain schemas - Pydantic models for validation"""

from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from ...shared.validators import validate_required_text, validate_url

REQUIRED_TEXT_FIELDS = (
    "specialty",
    "degree",
    "address_line1",
    "city",
    "state",
    "postal_code",
)


class DoctorCreate(BaseModel):
    """Schema for attaching a profile to a doctor account (admin only)"""

    user_id: int
    specialty: str
    degree: str
    experience: int = Field(ge=0)
    about: Optional[str] = None
    fees: Decimal = Field(ge=0, max_digits=8, decimal_places=2)
    address_line1: str
    address_line2: Optional[str] = None
    city: str
    state: str
    postal_code: str
    profile_image_url: Optional[str] = None

    @field_validator(*REQUIRED_TEXT_FIELDS)
    @classmethod
    def validate_required(cls, v, info):
        return validate_required_text(v, info.field_name)

    @field_validator("profile_image_url")
    @classmethod
    def validate_profile_image_url(cls, v):
        return validate_url(v)


class DoctorUpdate(BaseModel):
    """Schema for updating a profile; user_id is not accepted"""

    specialty: Optional[str] = None
    degree: Optional[str] = None
    experience: Optional[int] = Field(default=None, ge=0)
    about: Optional[str] = None
    fees: Optional[Decimal] = Field(default=None, ge=0, max_digits=8, decimal_places=2)
    address_line1: Optional[str] = None
    address_line2: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    postal_code: Optional[str] = None
    profile_image_url: Optional[str] = None

    @field_validator(*REQUIRED_TEXT_FIELDS)
    @classmethod
    def validate_required(cls, v, info):
        if v is None:
            return v
        return validate_required_text(v, info.field_name)

    @field_validator("profile_image_url")
    @classmethod
    def validate_profile_image_url(cls, v):
        return validate_url(v)


class DoctorUserInfo(BaseModel):
    """Account details shown next to a doctor profile"""

    name: str
    email: str
    profile_image_url: Optional[str] = None

    class Config:
        from_attributes = True


class DoctorResponse(BaseModel):
    id: int
    user_id: int
    specialty: str
    degree: str
    experience: int
    about: Optional[str] = None
    fees: float
    address_line1: str
    address_line2: Optional[str] = None
    city: str
    state: str
    postal_code: str
    profile_image_url: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    user: Optional[DoctorUserInfo] = None

    class Config:
        from_attributes = True
