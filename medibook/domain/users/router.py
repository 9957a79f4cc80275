"""User router - Authentication and user directory endpoints"""

import logging

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from ...auth import Caller, get_current_caller, require_roles
from ...config import AUTH_RATE_LIMIT, AUTH_RATE_LIMIT_WINDOW
from ...database import get_db
from ...models import Role
from ...rate_limiter import client_ip, create_rate_limiter
from .schemas import AuthResponse, LoginRequest, UserCreate, UserResponse, UserUpdate
from .service import UserService

logger = logging.getLogger(__name__)

auth_router = APIRouter(prefix="/auth", tags=["Authentication"])
router = APIRouter(prefix="/users", tags=["Users"])

rate_limit_auth = create_rate_limiter(
    limit=AUTH_RATE_LIMIT, window_seconds=AUTH_RATE_LIMIT_WINDOW, key_prefix="auth"
)


def get_user_service(db: Session = Depends(get_db)) -> UserService:
    """Dependency injection for UserService"""
    return UserService(db)


# ============================================================================
# AUTHENTICATION (public)
# ============================================================================


@auth_router.post(
    "/register",
    response_model=AuthResponse,
    status_code=201,
    dependencies=[Depends(rate_limit_auth)],
)
async def register(
    data: UserCreate,
    request: Request,
    service: UserService = Depends(get_user_service),
):
    """Register a new user and return a bearer token"""
    user, token = service.register(data, ip_address=client_ip(request))
    return AuthResponse(user=UserResponse.model_validate(user), token=token)


@auth_router.post("/login", response_model=AuthResponse, dependencies=[Depends(rate_limit_auth)])
async def login(
    data: LoginRequest,
    request: Request,
    service: UserService = Depends(get_user_service),
):
    """Exchange email + password for a bearer token"""
    user, token = service.login(data, ip_address=client_ip(request))
    return AuthResponse(user=UserResponse.model_validate(user), token=token)


# ============================================================================
# SELF-SERVICE
# ============================================================================


@router.get("/me", response_model=UserResponse)
async def get_my_profile(
    caller: Caller = Depends(get_current_caller),
    service: UserService = Depends(get_user_service),
):
    return service.get_user(caller.user_id, caller)


@router.put("/me", response_model=UserResponse)
async def update_my_profile(
    data: UserUpdate,
    caller: Caller = Depends(get_current_caller),
    service: UserService = Depends(get_user_service),
):
    return service.update_user(caller.user_id, data, caller)


@router.delete("/me")
async def delete_my_account(
    caller: Caller = Depends(get_current_caller),
    service: UserService = Depends(get_user_service),
):
    return service.delete_user(caller.user_id, caller)


# ============================================================================
# ADMINISTRATION
# ============================================================================


@router.get("", response_model=list[UserResponse])
async def list_users(
    caller: Caller = Depends(require_roles(Role.admin)),
    service: UserService = Depends(get_user_service),
):
    """List every user (admin only)"""
    return service.list_users(caller)


@router.post("", response_model=UserResponse, status_code=201)
async def create_user(
    data: UserCreate,
    caller: Caller = Depends(require_roles(Role.admin)),
    service: UserService = Depends(get_user_service),
):
    """Create a user with any role (admin only)"""
    return service.create_user(data, caller)


@router.get("/{user_id}", response_model=UserResponse)
async def get_user(
    user_id: int,
    caller: Caller = Depends(get_current_caller),
    service: UserService = Depends(get_user_service),
):
    """Get a user by ID (admin or the user themselves)"""
    return service.get_user(user_id, caller)


@router.put("/{user_id}", response_model=UserResponse)
async def update_user(
    user_id: int,
    data: UserUpdate,
    caller: Caller = Depends(get_current_caller),
    service: UserService = Depends(get_user_service),
):
    """Update a user (admin or the user themselves)"""
    return service.update_user(user_id, data, caller)


@router.delete("/{user_id}")
async def delete_user(
    user_id: int,
    caller: Caller = Depends(get_current_caller),
    service: UserService = Depends(get_user_service),
):
    """Delete a user and everything that depends on it (admin or the user themselves)"""
    return service.delete_user(user_id, caller)
