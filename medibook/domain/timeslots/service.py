"""Timeslot service - Role-scoped timeslot registry"""

import datetime as dt
import logging
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ...auth import Caller
from ...exceptions import BadRequestError, ConflictError, ForbiddenError, NotFoundError
from ...models import Role, Timeslot, TimeslotStatus
from ...shared.permissions import Action, Resource, ensure_allowed
from ..doctors.repository import DoctorRepository
from .repository import TimeslotRepository
from .schemas import TimeslotCreate, TimeslotUpdate

logger = logging.getLogger(__name__)

TIMESLOT_IN_USE = "Cannot delete timeslot with existing appointment"


class TimeslotService:
    """Service layer for timeslot business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = TimeslotRepository()
        self.doctor_repo = DoctorRepository()

    def create_timeslot(self, data: TimeslotCreate, caller: Caller) -> Timeslot:
        doctor = self.doctor_repo.get_doctor_by_id(self.db, data.doctor_id)
        if not doctor:
            raise NotFoundError("Doctor not found")
        ensure_allowed(caller, Resource.timeslot, Action.create, owner_ids=[doctor.user_id])

        timeslot = self.repo.create_timeslot(self.db, **data.model_dump())
        self.db.commit()
        self.db.refresh(timeslot)

        logger.info(
            f"📅 Timeslot {timeslot.id} created for doctor {doctor.id} "
            f"({timeslot.date} {timeslot.start_time}-{timeslot.end_time}) by {caller.user_id}"
        )
        return timeslot

    def list_timeslots(
        self,
        caller: Caller,
        on_date: Optional[dt.date] = None,
        doctor_id: Optional[int] = None,
    ) -> list[Timeslot]:
        """
        List timeslots visible to the caller.

        Doctors see their own profile's timeslots, customers see available ones,
        admins see everything. The optional filters narrow that set further.
        """
        ensure_allowed(caller, Resource.timeslot, Action.list)

        status = None
        if caller.role == Role.doctor:
            own = self.doctor_repo.get_doctor_by_user_id(self.db, caller.user_id)
            if not own:
                raise NotFoundError("Doctor profile not found")
            if doctor_id is not None and doctor_id != own.id:
                return []
            doctor_id = own.id
        elif caller.role == Role.customer:
            status = TimeslotStatus.available

        return self.repo.list_timeslots(self.db, doctor_id=doctor_id, status=status, on_date=on_date)

    def get_timeslot(self, timeslot_id: int, caller: Caller) -> Timeslot:
        timeslot = self._get_or_404(timeslot_id)

        if caller.role == Role.customer and timeslot.status != TimeslotStatus.available:
            raise ForbiddenError("Forbidden: Timeslot is not available.")
        ensure_allowed(caller, Resource.timeslot, Action.read, owner_ids=[timeslot.doctor.user_id])
        return timeslot

    def update_timeslot(self, timeslot_id: int, data: TimeslotUpdate, caller: Caller) -> Timeslot:
        timeslot = self._get_or_404(timeslot_id)
        ensure_allowed(caller, Resource.timeslot, Action.update, owner_ids=[timeslot.doctor.user_id])

        updates = {k: v for k, v in data.model_dump(exclude_unset=True).items() if v is not None}

        new_status = updates.get("status")
        if (
            new_status is not None
            and new_status != timeslot.status
            and timeslot.status == TimeslotStatus.booked
        ):
            raise ConflictError("Cannot change the status of a booked timeslot")

        start_time = updates.get("start_time", timeslot.start_time)
        end_time = updates.get("end_time", timeslot.end_time)
        if end_time <= start_time:
            raise BadRequestError("end_time must be after start_time")

        self.repo.update_timeslot(self.db, timeslot, **updates)
        self.db.commit()
        self.db.refresh(timeslot)

        logger.info(f"✅ Timeslot {timeslot.id} updated by {caller.user_id}: {sorted(updates)}")
        return timeslot

    def delete_timeslot(self, timeslot_id: int, caller: Caller) -> dict:
        timeslot = self._get_or_404(timeslot_id)
        ensure_allowed(caller, Resource.timeslot, Action.delete, owner_ids=[timeslot.doctor.user_id])

        try:
            # Hold the row so a booking cannot land between the check and the delete
            self.repo.lock_timeslot(self.db, timeslot_id)
            if self.repo.has_confirmed_appointment(self.db, timeslot_id):
                raise ConflictError(TIMESLOT_IN_USE)

            self.repo.delete_timeslot(self.db, timeslot)
            self.db.commit()
        except IntegrityError as e:
            # A confirmed appointment still references the row
            self.db.rollback()
            logger.warning(f"⚠️ Timeslot {timeslot_id} was booked while being deleted")
            raise ConflictError(TIMESLOT_IN_USE) from e
        except ConflictError:
            self.db.rollback()
            raise
        except Exception:
            self.db.rollback()
            logger.exception(f"❌ Failed to delete timeslot {timeslot_id}")
            raise

        logger.info(f"🗑️ Timeslot {timeslot_id} deleted by {caller.user_id}")
        return {"message": "Timeslot deleted successfully"}

    def _get_or_404(self, timeslot_id: int) -> Timeslot:
        timeslot = self.repo.get_timeslot_by_id(self.db, timeslot_id)
        if not timeslot:
            raise NotFoundError("Timeslot not found")
        return timeslot
