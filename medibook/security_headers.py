"""
Response hardening for a JSON-only API

Every response (except excluded paths such as the interactive docs) gets:
- framing, MIME sniffing and referrer lockdown
- a Content-Security-Policy that allows nothing to load
- HSTS when ENVIRONMENT=production
- Cache-Control: no-store, since responses carry patient data
"""

import logging
from typing import Callable, Optional

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

from .config import ENVIRONMENT

logger = logging.getLogger(__name__)

HSTS_VALUE = "max-age=31536000; includeSubDomains; preload"

DISABLED_BROWSER_FEATURES = (
    "accelerometer",
    "camera",
    "geolocation",
    "gyroscope",
    "magnetometer",
    "microphone",
    "payment",
    "usb",
)


def build_security_headers(production: bool) -> dict[str, str]:
    """Header name -> value applied to every API response"""
    headers = {
        "X-Frame-Options": "DENY",
        "X-Content-Type-Options": "nosniff",
        "Referrer-Policy": "no-referrer",
        "Content-Security-Policy": "; ".join(
            [
                "default-src 'none'",
                "frame-ancestors 'none'",
                "base-uri 'none'",
                "form-action 'none'",
            ]
        ),
        "Permissions-Policy": ", ".join(f"{feature}=()" for feature in DISABLED_BROWSER_FEATURES),
        "X-Permitted-Cross-Domain-Policies": "none",
        "Cross-Origin-Opener-Policy": "same-origin",
    }
    if production:
        headers["Strict-Transport-Security"] = HSTS_VALUE
    return headers


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Adds the hardening headers to every response outside ``exclude_paths``"""

    def __init__(self, app, exclude_paths: Optional[list[str]] = None):
        super().__init__(app)
        self.exclude_paths = tuple(exclude_paths or ())
        self.headers = build_security_headers(ENVIRONMENT == "production")

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        response = await call_next(request)

        if request.url.path.startswith(self.exclude_paths):
            return response

        response.headers.update(self.headers)
        response.headers.setdefault("Cache-Control", "no-store")
        return response
