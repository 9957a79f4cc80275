"""Message router - FastAPI endpoints for direct messages"""

import logging

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import Caller, get_current_caller
from ...database import get_db
from .schemas import MarkReadResponse, MessageCreate, MessageResponse
from .service import MessageService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/messages", tags=["Messages"])


def get_message_service(db: Session = Depends(get_db)) -> MessageService:
    """Dependency injection for MessageService"""
    return MessageService(db)


@router.post("", response_model=MessageResponse, status_code=201)
async def send_message(
    data: MessageCreate,
    caller: Caller = Depends(get_current_caller),
    service: MessageService = Depends(get_message_service),
):
    """Send a message to another user"""
    return MessageResponse.model_validate(service.send_message(data, caller))


@router.get("", response_model=list[MessageResponse])
async def list_messages(
    unread_only: bool = Query(False, description="Only unread messages addressed to the caller"),
    caller: Caller = Depends(get_current_caller),
    service: MessageService = Depends(get_message_service),
):
    messages = service.list_messages(caller, unread_only=unread_only)
    return [MessageResponse.model_validate(m) for m in messages]


@router.get("/{message_id}", response_model=MessageResponse)
async def get_message(
    message_id: int,
    caller: Caller = Depends(get_current_caller),
    service: MessageService = Depends(get_message_service),
):
    return MessageResponse.model_validate(service.get_message(message_id, caller))


@router.put("/{message_id}/read", response_model=MarkReadResponse)
async def mark_message_read(
    message_id: int,
    caller: Caller = Depends(get_current_caller),
    service: MessageService = Depends(get_message_service),
):
    """Mark a message as read (receiver or admin)"""
    return service.mark_read(message_id, caller)


@router.delete("/{message_id}")
async def delete_message(
    message_id: int,
    caller: Caller = Depends(get_current_caller),
    service: MessageService = Depends(get_message_service),
):
    return service.delete_message(message_id, caller)
