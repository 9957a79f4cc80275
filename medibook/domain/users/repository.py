"""User repository - Database operations for users"""

from typing import Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session

from ...models import Appointment, AppointmentStatus, Doctor, Message, TimeslotStatus, User
from ..doctors.repository import DoctorRepository


class UserRepository:
    """Repository for user database operations"""

    @staticmethod
    def get_user_by_id(db: Session, user_id: int) -> Optional[User]:
        return db.get(User, user_id)

    @staticmethod
    def get_user_by_email(db: Session, email: str) -> Optional[User]:
        return db.query(User).filter(User.email == email.lower()).first()

    @staticmethod
    def list_users(db: Session) -> list[User]:
        return db.query(User).order_by(User.id).all()

    @staticmethod
    def create_user(db: Session, **user_data) -> User:
        """Create a user; caller commits"""
        user = User(**user_data)
        db.add(user)
        db.flush()
        return user

    @staticmethod
    def update_user(db: Session, user: User, **updates) -> User:
        for key, value in updates.items():
            if hasattr(user, key):
                setattr(user, key, value)
        db.flush()
        return user

    @staticmethod
    def delete_user_cascade(db: Session, user: User) -> None:
        """
        Delete a user and every row that depends on it.

        Order: messages, the user's own appointments (releasing the timeslots of
        confirmed ones), the doctor profile with its timeslots and their
        appointments, then the user. Caller commits.
        """
        messages = db.query(Message).filter(
            or_(Message.sender_id == user.id, Message.receiver_id == user.id)
        )
        for message in messages.all():
            db.delete(message)

        for appointment in db.query(Appointment).filter(Appointment.customer_id == user.id).all():
            timeslot = appointment.timeslot
            if (
                appointment.status == AppointmentStatus.confirmed
                and timeslot is not None
                and timeslot.status == TimeslotStatus.booked
            ):
                timeslot.status = TimeslotStatus.available
            db.delete(appointment)
        db.flush()

        doctor = db.query(Doctor).filter(Doctor.user_id == user.id).first()
        if doctor is not None:
            DoctorRepository.delete_doctor_cascade(db, doctor)

        db.delete(user)
        db.flush()
