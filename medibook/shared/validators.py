"""Shared validation utilities"""

import re
from typing import Optional
from urllib.parse import urlparse

MIN_PASSWORD_LENGTH = 6


def validate_email(email: Optional[str]) -> Optional[str]:
    """
    Validate email format.

    Args:
        email: Email address string

    Returns:
        Lowercase email address

    Raises:
        ValueError: If email format is invalid
    """
    if not email:
        raise ValueError("Valid email is required")

    email = email.strip().lower()

    # Basic email validation pattern
    email_pattern = r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$"

    if not re.match(email_pattern, email):
        raise ValueError("Invalid email format")

    return email


def validate_required_text(value: Optional[str], field_name: str = "Value") -> str:
    """Strip surrounding whitespace and reject empty strings"""
    if value is None or not value.strip():
        raise ValueError(f"{field_name} cannot be empty")
    return value.strip()


def validate_password(password: str) -> str:
    if len(password) < MIN_PASSWORD_LENGTH:
        raise ValueError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters long")
    return password


def validate_url(url: Optional[str]) -> Optional[str]:
    """Accept only absolute http(s) URLs"""
    if not url:
        return url

    parsed = urlparse(url.strip())
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise ValueError("Must be a valid http(s) URL")

    return url.strip()
