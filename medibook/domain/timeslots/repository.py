"""Timeslot repository - Database operations for timeslots"""

import datetime as dt
from typing import Optional

from sqlalchemy.orm import Session, joinedload

from ...models import Appointment, AppointmentStatus, Doctor, Timeslot, TimeslotStatus


class TimeslotRepository:
    """Repository for timeslot database operations"""

    @staticmethod
    def get_timeslot_by_id(db: Session, timeslot_id: int) -> Optional[Timeslot]:
        return (
            db.query(Timeslot)
            .options(joinedload(Timeslot.doctor).joinedload(Doctor.user))
            .filter(Timeslot.id == timeslot_id)
            .first()
        )

    @staticmethod
    def list_timeslots(
        db: Session,
        doctor_id: Optional[int] = None,
        status: Optional[TimeslotStatus] = None,
        on_date: Optional[dt.date] = None,
    ) -> list[Timeslot]:
        query = db.query(Timeslot).options(joinedload(Timeslot.doctor).joinedload(Doctor.user))

        if doctor_id is not None:
            query = query.filter(Timeslot.doctor_id == doctor_id)
        if status is not None:
            query = query.filter(Timeslot.status == status)
        if on_date is not None:
            query = query.filter(Timeslot.date == on_date)

        return query.order_by(Timeslot.date, Timeslot.start_time, Timeslot.id).all()

    @staticmethod
    def create_timeslot(db: Session, **timeslot_data) -> Timeslot:
        """Create a timeslot; caller commits"""
        timeslot = Timeslot(**timeslot_data)
        db.add(timeslot)
        db.flush()
        return timeslot

    @staticmethod
    def update_timeslot(db: Session, timeslot: Timeslot, **updates) -> Timeslot:
        for key, value in updates.items():
            if hasattr(timeslot, key):
                setattr(timeslot, key, value)
        db.flush()
        return timeslot

    @staticmethod
    def has_confirmed_appointment(db: Session, timeslot_id: int) -> bool:
        return (
            db.query(Appointment.id)
            .filter(
                Appointment.timeslot_id == timeslot_id,
                Appointment.status == AppointmentStatus.confirmed,
            )
            .first()
            is not None
        )

    @staticmethod
    def delete_timeslot(db: Session, timeslot: Timeslot) -> None:
        """Delete a timeslot and the canceled appointments that still point at it; caller commits"""
        canceled = db.query(Appointment).filter(
            Appointment.timeslot_id == timeslot.id,
            Appointment.status == AppointmentStatus.canceled,
        )
        for appointment in canceled.all():
            db.delete(appointment)
        db.flush()

        db.delete(timeslot)
        db.flush()

    # ------------------------------------------------------------------
    # Booking primitives (used inside the appointment transaction)
    # ------------------------------------------------------------------

    @staticmethod
    def lock_timeslot(db: Session, timeslot_id: int) -> Optional[Timeslot]:
        """SELECT ... FOR UPDATE on backends that support it; a plain read on SQLite"""
        return db.query(Timeslot).filter(Timeslot.id == timeslot_id).with_for_update().first()

    @staticmethod
    def transition_status(
        db: Session, timeslot_id: int, from_status: TimeslotStatus, to_status: TimeslotStatus
    ) -> bool:
        """
        Move a timeslot from one status to another only if it is still in ``from_status``.

        Returns:
            True when exactly one row changed. False means another transaction
            got there first and the caller must roll back.
        """
        rowcount = (
            db.query(Timeslot)
            .filter(Timeslot.id == timeslot_id, Timeslot.status == from_status)
            .update({Timeslot.status: to_status}, synchronize_session="fetch")
        )
        return rowcount == 1
