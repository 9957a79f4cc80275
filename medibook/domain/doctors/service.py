"""Doctor service - Profile management business logic"""

import logging
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ...auth import Caller
from ...exceptions import BadRequestError, ConflictError, NotFoundError
from ...models import Doctor, Role, User
from ...shared.permissions import Action, Resource, ensure_allowed
from .repository import DoctorRepository
from .schemas import DoctorCreate, DoctorUpdate

logger = logging.getLogger(__name__)

PROFILE_EXISTS = "Doctor profile already exists for this user"

# Columns that may be cleared with an explicit null
NULLABLE_FIELDS = {"about", "address_line2", "profile_image_url"}


class DoctorService:
    """Service layer for doctor profile business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = DoctorRepository()

    def create_doctor(self, data: DoctorCreate, caller: Caller) -> Doctor:
        """
        Attach a profile to an existing doctor account.

        Raises:
            NotFoundError: user_id does not exist
            BadRequestError: the account's role is not doctor
            ConflictError: the account already has a profile
        """
        ensure_allowed(caller, Resource.doctor, Action.create)

        user = self.db.get(User, data.user_id)
        if not user:
            raise NotFoundError("User not found")
        if user.role != Role.doctor:
            raise BadRequestError("User role is not doctor")
        if self.repo.get_doctor_by_user_id(self.db, user.id):
            raise ConflictError(PROFILE_EXISTS)

        try:
            doctor = self.repo.create_doctor(self.db, **data.model_dump())
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            raise ConflictError(PROFILE_EXISTS) from e

        self.db.refresh(doctor)
        logger.info(f"🩺 Doctor profile {doctor.id} created for user {user.id} by {caller.user_id}")
        return doctor

    def list_doctors(
        self, caller: Caller, specialty: Optional[str] = None, city: Optional[str] = None
    ) -> list[Doctor]:
        ensure_allowed(caller, Resource.doctor, Action.list)
        return self.repo.list_doctors(self.db, specialty=specialty, city=city)

    def get_doctor(self, doctor_id: int, caller: Caller) -> Doctor:
        doctor = self._get_or_404(doctor_id)
        ensure_allowed(caller, Resource.doctor, Action.read)
        return doctor

    def update_doctor(self, doctor_id: int, data: DoctorUpdate, caller: Caller) -> Doctor:
        doctor = self._get_or_404(doctor_id)
        ensure_allowed(caller, Resource.doctor, Action.update, owner_ids=[doctor.user_id])

        updates = {
            k: v
            for k, v in data.model_dump(exclude_unset=True).items()
            if v is not None or k in NULLABLE_FIELDS
        }
        self.repo.update_doctor(self.db, doctor, **updates)
        self.db.commit()
        self.db.refresh(doctor)

        logger.info(f"✅ Doctor profile {doctor.id} updated by {caller.user_id}: {sorted(updates)}")
        return doctor

    def delete_doctor(self, doctor_id: int, caller: Caller) -> dict:
        doctor = self._get_or_404(doctor_id)
        ensure_allowed(caller, Resource.doctor, Action.delete)

        try:
            self.repo.delete_doctor_cascade(self.db, doctor)
            self.db.commit()
        except Exception:
            self.db.rollback()
            logger.exception(f"❌ Failed to delete doctor profile {doctor_id}")
            raise

        logger.info(f"🗑️ Doctor profile {doctor_id} deleted by {caller.user_id}")
        return {"message": "Doctor deleted successfully"}

    def _get_or_404(self, doctor_id: int) -> Doctor:
        doctor = self.repo.get_doctor_by_id(self.db, doctor_id)
        if not doctor:
            raise NotFoundError("Doctor not found")
        return doctor
