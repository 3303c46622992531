from typing import Optional

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from app.core.cookies import SessionCookies
from app.core.database import get_db
from app.core.exceptions import NotAuthenticatedError
from app.schemas.auth import AdminSession
from app.services.auth_service import AuthService

__all__ = ["get_db", "get_current_admin", "get_optional_admin"]


def get_optional_admin(
    request: Request,
    db: Session = Depends(get_db),
) -> Optional[AdminSession]:
    """The current admin session, or None when the request is anonymous."""
    return AuthService.get_session(db, SessionCookies.read_access_token(request))


def get_current_admin(
    session: Optional[AdminSession] = Depends(get_optional_admin),
) -> AdminSession:
    """
    Dependency for every admin route.

    Passing the edge gate only means the cookie looked plausible; the token is
    verified here (signature, expiry, revocation, active account) before any
    route logic runs.
    """
    if session is None:
        raise NotAuthenticatedError()
    return session
