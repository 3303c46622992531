import logging
from typing import Optional

from fastapi import APIRouter, Depends, Request, Response, status
from fastapi.responses import JSONResponse, RedirectResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.api.deps import get_db, get_current_admin, get_optional_admin
from app.core.cookies import SessionCookies
from app.core.exceptions import NotFoundError, RefreshFailedError, ValidationError
from app.core.rate_limit import LoginAttemptLimiter, get_login_limiter, limiter
from app.core.sanitization import sanitize_email, validate_email
from app.schemas.auth import (
    AdminSession,
    AdminUserResponse,
    LoginRequest,
    LoginStatusResponse,
    MagicLinkRequest,
    MessageResponse,
    SessionResponse,
)
from app.services.auth_service import AuthService
from app.services.magic_link_service import MagicLinkSender, get_magic_link_sender

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["Admin Authentication"])


def _session_response(session: AdminSession) -> SessionResponse:
    return SessionResponse(
        user_id=session.user_id,
        email=session.email,
        expires_at=session.expires_at,
    )


def _checked_email(raw: str) -> str:
    email = sanitize_email(raw)
    if not validate_email(email):
        raise ValidationError("Please enter a valid email address")
    return email


@router.get("/login", response_model=LoginStatusResponse)
def login_status(
    redirect: Optional[str] = None,
    session: Optional[AdminSession] = Depends(get_optional_admin),
):
    """
    Login entry point. Reports whether the caller is already signed in and
    echoes the page the gate bounced them from.
    """
    return LoginStatusResponse(
        authenticated=session is not None,
        email=session.email if session else None,
        redirect=redirect,
    )


@router.post("/login", response_model=SessionResponse)
@limiter.limit("10/minute")
def login(
    request: Request,
    response: Response,
    data: LoginRequest,
    db: Session = Depends(get_db),
    login_limiter: LoginAttemptLimiter = Depends(get_login_limiter),
):
    """
    Password sign-in. On success the session is persisted as cookies.
    """
    if not data.email or not data.password:
        raise ValidationError("Please fill in all fields")
    email = _checked_email(data.email)

    session = AuthService.sign_in(db, email, data.password, login_limiter)
    SessionCookies.persist(response, session)

    return _session_response(session)


@router.post("/login/magic-link", response_model=MessageResponse)
@limiter.limit("5/minute")
def request_magic_link(
    request: Request,
    data: MagicLinkRequest,
    db: Session = Depends(get_db),
    sender: MagicLinkSender = Depends(get_magic_link_sender),
):
    """Send a one-time sign-in link. The answer is the same for unknown emails."""
    email = _checked_email(data.email)

    AuthService.sign_in_with_magic_link(db, email, sender)

    return MessageResponse(message="Magic link sent. Check your email.")


@router.get("/login/magic")
def consume_magic_link(
    token: str,
    db: Session = Depends(get_db),
):
    """Landing URL of a magic link: opens the session and goes to the dashboard."""
    session = AuthService.verify_magic_link(db, token)

    redirect = RedirectResponse("/admin", status_code=status.HTTP_303_SEE_OTHER)
    SessionCookies.persist(redirect, session)
    return redirect


@router.post("/login/refresh", response_model=SessionResponse)
@limiter.limit("30/minute")
def refresh_session(
    request: Request,
    response: Response,
    db: Session = Depends(get_db),
):
    """
    Rotate the session using the refresh-token cookie.
    A failed refresh clears both cookies so the client falls back to login.
    """
    try:
        session = AuthService.refresh_session(db, SessionCookies.read_refresh_token(request))
    except RefreshFailedError as e:
        failed = JSONResponse(
            status_code=e.status_code,
            content={"detail": e.detail, "error_code": e.error_code},
        )
        SessionCookies.clear(failed)
        return failed

    SessionCookies.persist(response, session)
    return _session_response(session)


@router.post("/logout", response_model=MessageResponse)
def logout(
    request: Request,
    response: Response,
    db: Session = Depends(get_db),
):
    """
    Sign out. Cookies are cleared even if revoking the session server-side fails.
    """
    try:
        AuthService.sign_out(
            db,
            SessionCookies.read_access_token(request),
            SessionCookies.read_refresh_token(request),
        )
    except SQLAlchemyError as e:
        db.rollback()
        logger.warning(f"Server-side sign-out failed, clearing cookies anyway: {e}")

    SessionCookies.clear(response)
    return MessageResponse(message="Logged out successfully")


@router.get("/me", response_model=AdminUserResponse)
def get_current_admin_info(
    session: AdminSession = Depends(get_current_admin),
    db: Session = Depends(get_db),
):
    """Get the signed-in admin's account."""
    user = AuthService.get_user_by_id(db, session.user_id)
    if user is None:
        raise NotFoundError("Admin")
    return AdminUserResponse.model_validate(user)
