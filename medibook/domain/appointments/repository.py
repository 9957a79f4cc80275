"""Appointment repository - Database operations for appointments"""

from typing import Optional

from sqlalchemy.orm import Session, joinedload

from ...models import Appointment, AppointmentStatus, Doctor, Timeslot


def _with_details(query):
    return query.options(
        joinedload(Appointment.timeslot).joinedload(Timeslot.doctor).joinedload(Doctor.user),
        joinedload(Appointment.customer),
    )


class AppointmentRepository:
    """Repository for appointment database operations"""

    @staticmethod
    def get_appointment_by_id(db: Session, appointment_id: int) -> Optional[Appointment]:
        """Get an appointment with its timeslot, doctor and customer loaded"""
        return _with_details(db.query(Appointment)).filter(Appointment.id == appointment_id).first()

    @staticmethod
    def list_appointments(
        db: Session,
        customer_id: Optional[int] = None,
        doctor_id: Optional[int] = None,
        status: Optional[AppointmentStatus] = None,
    ) -> list[Appointment]:
        query = _with_details(db.query(Appointment))

        if customer_id is not None:
            query = query.filter(Appointment.customer_id == customer_id)
        if doctor_id is not None:
            query = query.join(Appointment.timeslot).filter(Timeslot.doctor_id == doctor_id)
        if status is not None:
            query = query.filter(Appointment.status == status)

        return query.order_by(Appointment.booking_date.desc(), Appointment.id.desc()).all()

    @staticmethod
    def create_appointment(db: Session, **appointment_data) -> Appointment:
        """Insert an appointment inside the booking transaction; caller commits"""
        appointment = Appointment(**appointment_data)
        db.add(appointment)
        db.flush()
        return appointment

    @staticmethod
    def delete_appointment(db: Session, appointment: Appointment) -> None:
        db.delete(appointment)
        db.flush()
