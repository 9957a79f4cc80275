"""Message domain schemas - Pydantic models for validation"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from ...security_utils import sanitize_text
from ..users.schemas import UserSummary

MAX_CONTENT_LENGTH = 5000


class MessageCreate(BaseModel):
    receiver_id: int
    content: str = Field(max_length=MAX_CONTENT_LENGTH)

    @field_validator("content")
    @classmethod
    def validate_content(cls, v):
        cleaned = sanitize_text(v)
        if not cleaned:
            raise ValueError("Content cannot be empty")
        return cleaned


class MessageResponse(BaseModel):
    id: int
    sender_id: int
    receiver_id: int
    content: str
    is_read: bool
    timestamp: Optional[datetime] = None
    sender: Optional[UserSummary] = None
    receiver: Optional[UserSummary] = None

    class Config:
        from_attributes = True


class MarkReadResponse(BaseModel):
    message: str
    is_read: bool
