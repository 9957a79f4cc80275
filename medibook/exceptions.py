"""Typed API errors.

Services raise these instead of bare ``HTTPException`` so every failure carries
one well-known status code. FastAPI's own handler renders them as
``{"detail": message}``; anything that is not an ``HTTPException`` is turned
into a generic 500 in ``main.py``.
"""

from typing import Optional

from fastapi import HTTPException, status


class NotFoundError(HTTPException):
    def __init__(self, detail: str = "Not found"):
        super().__init__(status_code=status.HTTP_404_NOT_FOUND, detail=detail)


class ForbiddenError(HTTPException):
    def __init__(self, detail: str = "Forbidden: Access is denied."):
        super().__init__(status_code=status.HTTP_403_FORBIDDEN, detail=detail)


class ConflictError(HTTPException):
    """A state precondition does not hold (duplicate email, timeslot taken, ...)"""

    def __init__(self, detail: str):
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)


class BadRequestError(HTTPException):
    def __init__(self, detail: str):
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)


class UnauthenticatedError(HTTPException):
    def __init__(self, detail: str = "Not authenticated", headers: Optional[dict] = None):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
            headers=headers or {"WWW-Authenticate": "Bearer"},
        )
