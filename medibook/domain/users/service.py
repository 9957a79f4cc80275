"""User service - Registration, login and account management"""

import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ...auth import Caller, issue_token
from ...exceptions import ConflictError, ForbiddenError, NotFoundError
from ...models import Role, User
from ...security_utils import hash_password, log_security_event, mask_email, verify_password
from ...shared.permissions import Action, Resource, ensure_allowed
from ..doctors.repository import DoctorRepository
from .repository import UserRepository
from .schemas import LoginRequest, UserCreate, UserUpdate

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS = "Invalid credentials"


class UserService:
    """Service layer for user business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = UserRepository()

    # ------------------------------------------------------------------
    # Authentication
    # ------------------------------------------------------------------

    def register(self, data: UserCreate, ip_address: str = None) -> tuple[User, str]:
        """Create an account and return it with a fresh bearer token"""
        user = self._create(data)
        log_security_event("register", user_id=user.id, ip_address=ip_address)
        return user, issue_token(user.id, user.role)

    def login(self, data: LoginRequest, ip_address: str = None) -> tuple[User, str]:
        """
        Check email + password.

        An unknown email and a wrong password produce the same error so the
        response never reveals whether an account exists.
        """
        user = self.repo.get_user_by_email(self.db, data.email)
        if user is None or not verify_password(data.password, user.password_hash):
            log_security_event(
                "failed_auth", ip_address=ip_address, details={"email": mask_email(data.email)}
            )
            raise ConflictError(INVALID_CREDENTIALS)

        log_security_event("login", user_id=user.id, ip_address=ip_address)
        return user, issue_token(user.id, user.role)

    # ------------------------------------------------------------------
    # Directory
    # ------------------------------------------------------------------

    def create_user(self, data: UserCreate, caller: Caller) -> User:
        ensure_allowed(caller, Resource.user, Action.create)
        user = self._create(data)
        logger.info(f"👤 Admin {caller.user_id} created user {user.id} ({user.role.value})")
        return user

    def list_users(self, caller: Caller) -> list[User]:
        ensure_allowed(caller, Resource.user, Action.list)
        return self.repo.list_users(self.db)

    def get_user(self, user_id: int, caller: Caller) -> User:
        user = self._get_or_404(user_id)
        ensure_allowed(caller, Resource.user, Action.read, owner_ids=[user.id])
        return user

    def update_user(self, user_id: int, data: UserUpdate, caller: Caller) -> User:
        user = self._get_or_404(user_id)
        ensure_allowed(caller, Resource.user, Action.update, owner_ids=[user.id])

        updates = data.model_dump(exclude_unset=True)
        # None means "not provided" for every column here; name/email/role are NOT NULL
        updates = {k: v for k, v in updates.items() if v is not None or k == "profile_image_url"}

        if "role" in updates and updates["role"] != user.role and not caller.is_admin:
            logger.warning(f"🚫 User {caller.user_id} tried to change role of user {user.id}")
            raise ForbiddenError("Forbidden: Only admins can change user roles.")

        if (
            updates.get("role", user.role) != Role.doctor
            and user.role == Role.doctor
            and DoctorRepository.get_doctor_by_user_id(self.db, user.id)
        ):
            raise ConflictError("Cannot change role of a user with a doctor profile")

        if "email" in updates and updates["email"] != user.email:
            existing = self.repo.get_user_by_email(self.db, updates["email"])
            if existing and existing.id != user.id:
                raise ConflictError("Email is already in use by another user")

        if "password" in updates:
            updates["password_hash"] = hash_password(updates.pop("password"))

        try:
            self.repo.update_user(self.db, user, **updates)
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            raise ConflictError("Email is already in use by another user") from e

        self.db.refresh(user)
        logger.info(f"✅ User {user.id} updated by {caller.user_id}: {sorted(updates)}")
        return user

    def delete_user(self, user_id: int, caller: Caller) -> dict:
        user = self._get_or_404(user_id)
        ensure_allowed(caller, Resource.user, Action.delete, owner_ids=[user.id])

        try:
            self.repo.delete_user_cascade(self.db, user)
            self.db.commit()
        except Exception:
            self.db.rollback()
            logger.exception(f"❌ Failed to delete user {user_id}")
            raise

        logger.info(f"🗑️ User {user_id} deleted by {caller.user_id}")
        return {"message": "User deleted successfully"}

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _get_or_404(self, user_id: int) -> User:
        user = self.repo.get_user_by_id(self.db, user_id)
        if not user:
            raise NotFoundError("User not found")
        return user

    def _create(self, data: UserCreate) -> User:
        if self.repo.get_user_by_email(self.db, data.email):
            raise ConflictError("User already exists")

        try:
            user = self.repo.create_user(
                self.db,
                name=data.name,
                email=data.email,
                password_hash=hash_password(data.password),
                role=data.role,
            )
            self.db.commit()
        except IntegrityError as e:
            # Same email inserted between the check and the insert
            self.db.rollback()
            raise ConflictError("User already exists") from e

        self.db.refresh(user)
        logger.info(f"🆕 User {user.id} registered as {user.role.value}")
        return user
