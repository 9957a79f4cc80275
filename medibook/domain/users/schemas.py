"""User domain schemas - Pydantic models for validation"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, field_validator

from ...models import Role
from ...shared.validators import (
    validate_email,
    validate_password,
    validate_required_text,
    validate_url,
)


class UserCreate(BaseModel):
    """Schema for registration and admin-created accounts"""

    name: str
    email: str
    password: str
    role: Role

    @field_validator("name")
    @classmethod
    def validate_name(cls, v):
        return validate_required_text(v, "Name")

    @field_validator("email")
    @classmethod
    def validate_email_field(cls, v):
        return validate_email(v)

    @field_validator("password")
    @classmethod
    def validate_password_field(cls, v):
        return validate_password(v)


class LoginRequest(BaseModel):
    email: str
    password: str

    @field_validator("email")
    @classmethod
    def validate_email_field(cls, v):
        return validate_email(v)

    @field_validator("password")
    @classmethod
    def validate_password_present(cls, v):
        if not v:
            raise ValueError("Password is required")
        return v


class UserUpdate(BaseModel):
    """Schema for updating a user; only provided fields change"""

    name: Optional[str] = None
    email: Optional[str] = None
    password: Optional[str] = None
    role: Optional[Role] = None
    profile_image_url: Optional[str] = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, v):
        if v is None:
            return v
        return validate_required_text(v, "Name")

    @field_validator("email")
    @classmethod
    def validate_email_field(cls, v):
        if v is None:
            return v
        return validate_email(v)

    @field_validator("password")
    @classmethod
    def validate_password_field(cls, v):
        if v is None:
            return v
        return validate_password(v)

    @field_validator("profile_image_url")
    @classmethod
    def validate_profile_image_url(cls, v):
        return validate_url(v)


class UserResponse(BaseModel):
    id: int
    name: str
    email: str
    role: Role
    profile_image_url: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class UserSummary(BaseModel):
    """Name and email only, embedded in other resources"""

    name: str
    email: str

    class Config:
        from_attributes = True


class AuthResponse(BaseModel):
    user: UserResponse
    token: str
