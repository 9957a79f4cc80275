"""Doctor repository - Database operations for doctor profiles"""

from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session, joinedload

from ...models import Appointment, Doctor, Timeslot


class DoctorRepository:
    """Repository for doctor profile database operations"""

    @staticmethod
    def get_doctor_by_id(db: Session, doctor_id: int) -> Optional[Doctor]:
        return (
            db.query(Doctor)
            .options(joinedload(Doctor.user))
            .filter(Doctor.id == doctor_id)
            .first()
        )

    @staticmethod
    def get_doctor_by_user_id(db: Session, user_id: int) -> Optional[Doctor]:
        return db.query(Doctor).filter(Doctor.user_id == user_id).first()

    @staticmethod
    def list_doctors(
        db: Session, specialty: Optional[str] = None, city: Optional[str] = None
    ) -> list[Doctor]:
        """List profiles, optionally filtered by specialty and/or city (case-insensitive)"""
        query = db.query(Doctor).options(joinedload(Doctor.user))

        if specialty:
            query = query.filter(func.lower(Doctor.specialty) == specialty.strip().lower())
        if city:
            query = query.filter(func.lower(Doctor.city) == city.strip().lower())

        return query.order_by(Doctor.id).all()

    @staticmethod
    def create_doctor(db: Session, **doctor_data) -> Doctor:
        """Create a profile; caller commits"""
        doctor = Doctor(**doctor_data)
        db.add(doctor)
        db.flush()
        return doctor

    @staticmethod
    def update_doctor(db: Session, doctor: Doctor, **updates) -> Doctor:
        for key, value in updates.items():
            if hasattr(doctor, key):
                setattr(doctor, key, value)
        db.flush()
        return doctor

    @staticmethod
    def delete_doctor_cascade(db: Session, doctor: Doctor) -> None:
        """
        Delete a profile with its timeslots and every appointment on them.

        Appointments go first, then timeslots, then the profile, flushing between
        steps so foreign keys never point at a removed row. Caller commits.
        """
        timeslot_ids = [
            row.id for row in db.query(Timeslot.id).filter(Timeslot.doctor_id == doctor.id).all()
        ]

        if timeslot_ids:
            appointments = db.query(Appointment).filter(Appointment.timeslot_id.in_(timeslot_ids))
            for appointment in appointments.all():
                db.delete(appointment)
            db.flush()

            for timeslot in db.query(Timeslot).filter(Timeslot.id.in_(timeslot_ids)).all():
                db.delete(timeslot)
            db.flush()

        db.delete(doctor)
        db.flush()
