"""
Session cookie handling.

This is the only module that writes or clears the session cookies.
"""

from typing import Optional

from fastapi import Request, Response

from app.core.config import settings

ACCESS_TOKEN_COOKIE = "access-token"
REFRESH_TOKEN_COOKIE = "refresh-token"


class SessionCookies:
    """Persists an authenticated session as cookies and clears it on logout."""

    @staticmethod
    def _set(response: Response, key: str, value: str, max_age: int) -> None:
        response.set_cookie(
            key=key,
            value=value,
            max_age=max_age,
            path="/",
            samesite="strict",
            secure=settings.is_production,
            httponly=True,
        )

    @staticmethod
    def persist(response: Response, session) -> None:
        """Write the access and refresh tokens of an AdminSession."""
        SessionCookies._set(
            response,
            ACCESS_TOKEN_COOKIE,
            session.access_token,
            settings.SESSION_COOKIE_MAX_AGE,
        )
        SessionCookies._set(
            response,
            REFRESH_TOKEN_COOKIE,
            session.refresh_token,
            settings.REFRESH_TOKEN_EXPIRE_DAYS * 24 * 60 * 60,
        )

    @staticmethod
    def clear(response: Response) -> None:
        """Empty both slots, whether or not a session exists."""
        SessionCookies._set(response, ACCESS_TOKEN_COOKIE, "", 0)
        SessionCookies._set(response, REFRESH_TOKEN_COOKIE, "", 0)

    @staticmethod
    def expire_access_token(response: Response) -> None:
        SessionCookies._set(response, ACCESS_TOKEN_COOKIE, "", 0)

    @staticmethod
    def read_access_token(request: Request) -> Optional[str]:
        return request.cookies.get(ACCESS_TOKEN_COOKIE) or None

    @staticmethod
    def read_refresh_token(request: Request) -> Optional[str]:
        return request.cookies.get(REFRESH_TOKEN_COOKIE) or None
