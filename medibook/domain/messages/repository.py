"""Message repository - Database operations for messages"""

from typing import Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session, joinedload

from ...models import Message


class MessageRepository:
    """Repository for message database operations"""

    @staticmethod
    def get_message_by_id(db: Session, message_id: int) -> Optional[Message]:
        return (
            db.query(Message)
            .options(joinedload(Message.sender), joinedload(Message.receiver))
            .filter(Message.id == message_id)
            .first()
        )

    @staticmethod
    def list_messages(
        db: Session,
        participant_id: Optional[int] = None,
        unread_for: Optional[int] = None,
    ) -> list[Message]:
        """
        List messages newest first.

        Args:
            participant_id: only messages this user sent or received
            unread_for: only unread messages received by this user
        """
        query = db.query(Message).options(joinedload(Message.sender), joinedload(Message.receiver))

        if participant_id is not None:
            query = query.filter(
                or_(Message.sender_id == participant_id, Message.receiver_id == participant_id)
            )
        if unread_for is not None:
            query = query.filter(Message.receiver_id == unread_for, Message.is_read.is_(False))

        return query.order_by(Message.timestamp.desc(), Message.id.desc()).all()

    @staticmethod
    def create_message(db: Session, **message_data) -> Message:
        message = Message(**message_data)
        db.add(message)
        db.commit()
        db.refresh(message)
        return message

    @staticmethod
    def mark_read(db: Session, message: Message) -> Message:
        message.is_read = True
        db.commit()
        db.refresh(message)
        return message

    @staticmethod
    def delete_message(db: Session, message: Message) -> None:
        db.delete(message)
        db.commit()
