"""Message service - Direct messages between users"""

import logging

from sqlalchemy.orm import Session

from ...auth import Caller
from ...exceptions import NotFoundError
from ...models import Message, User
from ...shared.permissions import Action, Resource, ensure_allowed
from .repository import MessageRepository
from .schemas import MessageCreate

logger = logging.getLogger(__name__)


class MessageService:
    """Service layer for message business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = MessageRepository()

    def send_message(self, data: MessageCreate, caller: Caller) -> Message:
        ensure_allowed(caller, Resource.message, Action.create)

        if not self.db.get(User, caller.user_id):
            raise NotFoundError("User not found")

        if not self.db.get(User, data.receiver_id):
            raise NotFoundError("Receiver not found")

        message = self.repo.create_message(
            self.db,
            sender_id=caller.user_id,
            receiver_id=data.receiver_id,
            content=data.content,
        )
        logger.info(f"✉️ Message {message.id} sent from {caller.user_id} to {data.receiver_id}")
        return self._get_or_404(message.id)

    def list_messages(self, caller: Caller, unread_only: bool = False) -> list[Message]:
        """Admins see every message; everyone else the ones they sent or received"""
        ensure_allowed(caller, Resource.message, Action.list)

        participant_id = None if caller.is_admin else caller.user_id
        unread_for = caller.user_id if unread_only else None
        return self.repo.list_messages(self.db, participant_id=participant_id, unread_for=unread_for)

    def get_message(self, message_id: int, caller: Caller) -> Message:
        message = self._get_or_404(message_id)
        ensure_allowed(
            caller,
            Resource.message,
            Action.read,
            owner_ids=[message.sender_id, message.receiver_id],
        )
        return message

    def mark_read(self, message_id: int, caller: Caller) -> dict:
        message = self._get_or_404(message_id)
        # Only the receiver owns the read flag
        ensure_allowed(caller, Resource.message, Action.mark_read, owner_ids=[message.receiver_id])

        self.repo.mark_read(self.db, message)
        logger.info(f"📖 Message {message_id} marked read by {caller.user_id}")
        return {"message": "Message marked as read", "is_read": True}

    def delete_message(self, message_id: int, caller: Caller) -> dict:
        message = self._get_or_404(message_id)
        ensure_allowed(
            caller,
            Resource.message,
            Action.delete,
            owner_ids=[message.sender_id, message.receiver_id],
        )

        self.repo.delete_message(self.db, message)
        logger.info(f"🗑️ Message {message_id} deleted by {caller.user_id}")
        return {"message": "Message deleted successfully"}

    def _get_or_404(self, message_id: int) -> Message:
        message = self.repo.get_message_by_id(self.db, message_id)
        if not message:
            raise NotFoundError("Message not found")
        return message
