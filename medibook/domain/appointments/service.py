"""
Appointment service - Booking, rescheduling and cancellation

A timeslot is booked by exactly one confirmed appointment. Every operation
that moves a timeslot between available and booked does so in the same
transaction as the appointment write, through a guarded update that only
succeeds if the timeslot is still in the expected status. The partial unique
index on confirmed appointments is the last line of defence; a violation is
reported as the same conflict.
"""

import logging
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ...auth import Caller
from ...exceptions import ConflictError, NotFoundError
from ...models import Appointment, AppointmentStatus, Role, TimeslotStatus, User
from ...shared.permissions import Action, Resource, ensure_allowed
from ..doctors.repository import DoctorRepository
from ..timeslots.repository import TimeslotRepository
from .repository import AppointmentRepository
from .schemas import AppointmentCreate, AppointmentUpdate

logger = logging.getLogger(__name__)

TIMESLOT_NOT_AVAILABLE = "Timeslot is not available"
NEW_TIMESLOT_NOT_AVAILABLE = "New timeslot is not available"


class AppointmentService:
    """Service layer for appointment business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = AppointmentRepository()
        self.timeslot_repo = TimeslotRepository()
        self.doctor_repo = DoctorRepository()

    # ------------------------------------------------------------------
    # Booking
    # ------------------------------------------------------------------

    def create_appointment(self, data: AppointmentCreate, caller: Caller) -> Appointment:
        """
        Book an available timeslot for the calling customer.

        Raises:
            NotFoundError: the calling user or the timeslot does not exist
            ConflictError: the timeslot is not (or no longer) available
        """
        ensure_allowed(caller, Resource.appointment, Action.create)
        # The token can outlive the account it was issued for
        if not self.db.get(User, caller.user_id):
            raise NotFoundError("User not found")

        try:
            timeslot = self.timeslot_repo.lock_timeslot(self.db, data.timeslot_id)
            if not timeslot:
                raise NotFoundError("Timeslot not found")
            if timeslot.status != TimeslotStatus.available:
                raise ConflictError(TIMESLOT_NOT_AVAILABLE)

            if not self.timeslot_repo.transition_status(
                self.db, data.timeslot_id, TimeslotStatus.available, TimeslotStatus.booked
            ):
                logger.warning(f"⚠️ Timeslot {data.timeslot_id} was booked concurrently")
                raise ConflictError(TIMESLOT_NOT_AVAILABLE)

            appointment = self.repo.create_appointment(
                self.db,
                timeslot_id=data.timeslot_id,
                customer_id=caller.user_id,
                status=AppointmentStatus.confirmed,
                notes=data.notes,
            )
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            logger.warning(f"⚠️ Duplicate confirmed appointment for timeslot {data.timeslot_id}")
            raise ConflictError(TIMESLOT_NOT_AVAILABLE) from e
        except Exception:
            self.db.rollback()
            raise

        logger.info(
            f"✅ Appointment {appointment.id} booked: timeslot {data.timeslot_id} "
            f"for customer {caller.user_id}"
        )
        return self._get_or_404(appointment.id)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def list_appointments(
        self, caller: Caller, status: Optional[AppointmentStatus] = None
    ) -> list[Appointment]:
        """Customers see their bookings, doctors the bookings on their timeslots, admins all"""
        ensure_allowed(caller, Resource.appointment, Action.list)

        if caller.role == Role.doctor:
            doctor = self.doctor_repo.get_doctor_by_user_id(self.db, caller.user_id)
            if not doctor:
                raise NotFoundError("Doctor profile not found")
            return self.repo.list_appointments(self.db, doctor_id=doctor.id, status=status)
        if caller.role == Role.customer:
            return self.repo.list_appointments(self.db, customer_id=caller.user_id, status=status)
        return self.repo.list_appointments(self.db, status=status)

    def get_appointment(self, appointment_id: int, caller: Caller) -> Appointment:
        appointment = self._get_or_404(appointment_id)
        ensure_allowed(
            caller,
            Resource.appointment,
            Action.read,
            owner_ids=[appointment.customer_id, self._doctor_user_id(appointment)],
        )
        return appointment

    # ------------------------------------------------------------------
    # Changes
    # ------------------------------------------------------------------

    def update_appointment(
        self, appointment_id: int, data: AppointmentUpdate, caller: Caller
    ) -> Appointment:
        """
        Reschedule, cancel, or edit notes.

        Moving to another timeslot books the new one and frees the old one;
        canceling frees the current one. Both happen in one transaction with
        the appointment write. Canceled is terminal.
        """
        appointment = self._get_or_404(appointment_id)
        ensure_allowed(
            caller, Resource.appointment, Action.update, owner_ids=[appointment.customer_id]
        )

        updates = data.model_dump(exclude_unset=True)
        new_timeslot_id = updates.get("timeslot_id")
        new_status = updates.get("status")
        rescheduling = new_timeslot_id is not None and new_timeslot_id != appointment.timeslot_id

        if appointment.status == AppointmentStatus.canceled and (
            rescheduling or new_status == AppointmentStatus.confirmed
        ):
            raise ConflictError("Canceled appointment cannot be changed")

        try:
            if rescheduling:
                self._reschedule(appointment, new_timeslot_id)

            if (
                new_status == AppointmentStatus.canceled
                and appointment.status == AppointmentStatus.confirmed
            ):
                self.timeslot_repo.transition_status(
                    self.db, appointment.timeslot_id, TimeslotStatus.booked, TimeslotStatus.available
                )
                appointment.status = AppointmentStatus.canceled

            if "notes" in updates:
                appointment.notes = updates["notes"]

            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            raise ConflictError(NEW_TIMESLOT_NOT_AVAILABLE) from e
        except Exception:
            self.db.rollback()
            raise

        logger.info(f"✅ Appointment {appointment_id} updated by {caller.user_id}: {sorted(updates)}")
        return self._get_or_404(appointment_id)

    def delete_appointment(self, appointment_id: int, caller: Caller) -> dict:
        appointment = self._get_or_404(appointment_id)
        ensure_allowed(
            caller, Resource.appointment, Action.delete, owner_ids=[appointment.customer_id]
        )

        try:
            if appointment.status == AppointmentStatus.confirmed:
                # No row changes when the timeslot is already gone
                self.timeslot_repo.transition_status(
                    self.db, appointment.timeslot_id, TimeslotStatus.booked, TimeslotStatus.available
                )
            self.repo.delete_appointment(self.db, appointment)
            self.db.commit()
        except Exception:
            self.db.rollback()
            logger.exception(f"❌ Failed to delete appointment {appointment_id}")
            raise

        logger.info(f"🗑️ Appointment {appointment_id} deleted by {caller.user_id}")
        return {"message": "Appointment deleted successfully"}

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _reschedule(self, appointment: Appointment, new_timeslot_id: int) -> None:
        new_timeslot = self.timeslot_repo.lock_timeslot(self.db, new_timeslot_id)
        if not new_timeslot or new_timeslot.status != TimeslotStatus.available:
            raise ConflictError(NEW_TIMESLOT_NOT_AVAILABLE)

        if not self.timeslot_repo.transition_status(
            self.db, new_timeslot_id, TimeslotStatus.available, TimeslotStatus.booked
        ):
            raise ConflictError(NEW_TIMESLOT_NOT_AVAILABLE)

        if appointment.status == AppointmentStatus.confirmed:
            self.timeslot_repo.transition_status(
                self.db, appointment.timeslot_id, TimeslotStatus.booked, TimeslotStatus.available
            )

        old_timeslot_id = appointment.timeslot_id
        appointment.timeslot_id = new_timeslot_id
        self.db.flush()
        logger.info(
            f"🔁 Appointment {appointment.id} moved from timeslot {old_timeslot_id} "
            f"to {new_timeslot_id}"
        )

    @staticmethod
    def _doctor_user_id(appointment: Appointment) -> Optional[int]:
        timeslot = appointment.timeslot
        if timeslot is None or timeslot.doctor is None:
            return None
        return timeslot.doctor.user_id

    def _get_or_404(self, appointment_id: int) -> Appointment:
        appointment = self.repo.get_appointment_by_id(self.db, appointment_id)
        if not appointment:
            raise NotFoundError("Appointment not found")
        return appointment
