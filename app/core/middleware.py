"""Edge middleware: security headers, sensitive path blocking and the admin gate."""

import logging
import re
import time
from typing import Callable
from urllib.parse import urlencode

from fastapi import Request, Response
from fastapi.responses import PlainTextResponse, RedirectResponse
from starlette.middleware.base import BaseHTTPMiddleware

from app.core.cookies import SessionCookies
from app.core.security import read_unverified_claims

logger = logging.getLogger(__name__)

ADMIN_PREFIX = "/admin"
LOGIN_PATH = "/admin/login"
# Must always reach its route so both cookies get cleared
LOGOUT_PATH = "/admin/logout"

# Paths that never receive injected headers
STATIC_PREFIXES = ("/static/",)
FAVICON_PATH = "/favicon.ico"

SENSITIVE_PATTERNS = [
    re.compile(r"\.env"),
    re.compile(r"\.git"),
    re.compile(r"node_modules"),
    re.compile(r"\.config"),
    re.compile(r"package\.json$"),
    re.compile(r"pyproject\.toml$"),
    re.compile(r"alembic\.ini$"),
]

SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "X-XSS-Protection": "1; mode=block",
    "Referrer-Policy": "strict-origin-when-cross-origin",
    "Permissions-Policy": (
        "accelerometer=(), "
        "camera=(), "
        "geolocation=(), "
        "gyroscope=(), "
        "magnetometer=(), "
        "microphone=(), "
        "payment=(), "
        "usb=()"
    ),
}


def is_sensitive_path(path: str) -> bool:
    return any(pattern.search(path) for pattern in SENSITIVE_PATTERNS)


def is_protected_admin_path(path: str) -> bool:
    """Admin paths except the login sub-tree and logout."""
    in_admin = path == ADMIN_PREFIX or path.startswith(ADMIN_PREFIX + "/")
    in_login = path == LOGIN_PATH or path.startswith(LOGIN_PATH + "/")
    is_logout = path.rstrip("/") == LOGOUT_PATH
    return in_admin and not in_login and not is_logout


def token_problem(token: str, now: float) -> str | None:
    """
    Coarse structural check of an access token. Returns a reason string when the
    token must be discarded, None when it may pass.

    The signature is NOT verified here; admin routes verify it themselves.
    """
    try:
        claims = read_unverified_claims(token)
    except ValueError as e:
        return str(e)

    exp = claims.get("exp")
    if exp is None:
        return None
    if isinstance(exp, bool) or not isinstance(exp, (int, float)):
        return "Token exp claim is not numeric"
    if exp < now:
        return "Token expired"
    return None


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Add security headers to all responses."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        response = await call_next(request)

        path = request.url.path
        if path == FAVICON_PATH or path.startswith(STATIC_PREFIXES):
            return response

        for header, value in SECURITY_HEADERS.items():
            response.headers[header] = value

        # Cache control for API and admin responses
        if path.startswith("/api/") or path.startswith(ADMIN_PREFIX):
            response.headers["Cache-Control"] = "no-store, no-cache, must-revalidate"
            response.headers["Pragma"] = "no-cache"

        return response


class AdminGateMiddleware(BaseHTTPMiddleware):
    """
    Request filter evaluated before any route logic.

    Blocks sensitive file paths and keeps requests without a plausible,
    unexpired access token out of the admin area.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        path = request.url.path

        if is_sensitive_path(path):
            return PlainTextResponse("Not Found", status_code=404)

        if not is_protected_admin_path(path):
            return await call_next(request)

        token = SessionCookies.read_access_token(request)
        if not token:
            query = urlencode({"redirect": path})
            return RedirectResponse(f"{LOGIN_PATH}?{query}")

        problem = token_problem(token, time.time())
        if problem:
            logger.info(f"Discarding access token at {path}: {problem}")
            response = RedirectResponse(LOGIN_PATH)
            SessionCookies.expire_access_token(response)
            return response

        return await call_next(request)
