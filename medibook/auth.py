import logging
from dataclasses import dataclass
from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from .exceptions import ForbiddenError, UnauthenticatedError
from .models import Role
from .security_utils import create_access_token, decode_access_token

logger = logging.getLogger(__name__)

# auto_error=False so a missing header is reported as 401 by us, not 403 by FastAPI
security = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class Caller:
    """Identity extracted from the bearer token, passed explicitly to every service call"""

    user_id: int
    role: Role

    @property
    def is_admin(self) -> bool:
        return self.role == Role.admin


def issue_token(user_id: int, role: Role) -> str:
    return create_access_token({"user_id": user_id, "role": Role(role).value})


def caller_from_token(token: str) -> Caller:
    """Decode a bearer token into a Caller, raising 401 on anything unusable"""
    payload = decode_access_token(token)
    if not payload:
        raise UnauthenticatedError("Invalid or expired token")

    user_id = payload.get("user_id")
    role = payload.get("role")
    if not isinstance(user_id, int) or isinstance(user_id, bool):
        logger.warning(f"⚠️ Token missing user_id claim. Available claims: {list(payload.keys())}")
        raise UnauthenticatedError("Invalid token claims")
    try:
        return Caller(user_id=user_id, role=Role(role))
    except ValueError as e:
        logger.warning(f"⚠️ Token carries unknown role: {role!r}")
        raise UnauthenticatedError("Invalid token claims") from e


async def get_current_caller(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> Caller:
    """Authenticate the request from its Authorization: Bearer header"""
    if not credentials:
        raise UnauthenticatedError(
            "Not authenticated. Please provide a valid Bearer token in the Authorization header."
        )

    token = credentials.credentials
    if len(token.split(".")) != 3:
        logger.warning(f"⚠️ Malformed token received: token length {len(token)}")
        raise UnauthenticatedError("Invalid token format. Expected a valid JWT token.")

    caller = caller_from_token(token)
    logger.debug(f"✅ Caller authenticated: user_id={caller.user_id} role={caller.role.value}")
    return caller


def require_roles(*roles: Role):
    """
    Create a dependency that only lets the listed roles through

    Example usage:
        @router.post("", dependencies=[Depends(require_roles(Role.admin))])
    """
    allowed = set(roles)

    async def role_checker(caller: Caller = Depends(get_current_caller)) -> Caller:
        if caller.role not in allowed:
            logger.warning(
                f"🚫 Unauthorized access attempt by user {caller.user_id} with role {caller.role.value}"
            )
            raise ForbiddenError(
                f"Forbidden: Requires one of the following roles: {', '.join(r.value for r in roles)}"
            )
        return caller

    return role_checker
