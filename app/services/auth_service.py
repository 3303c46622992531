import logging
from datetime import datetime, timedelta
from typing import Optional
from uuid import UUID

from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.exceptions import (
    InvalidCredentialsError,
    RateLimitedError,
    RefreshFailedError,
)
from app.core.rate_limit import LoginAttemptLimiter
from app.core.sanitization import sanitize_email
from app.core.security import (
    TOKEN_TYPE_ACCESS,
    TOKEN_TYPE_REFRESH,
    blacklist_token,
    create_access_token,
    create_refresh_token,
    generate_one_time_token,
    hash_token,
    is_token_blacklisted,
    revoke_refresh_token,
    rotate_refresh_token,
    store_refresh_token,
    timestamp_to_utc,
    validate_refresh_token,
    verify_password,
    verify_token,
)
from app.models import AdminUser, MagicLinkToken
from app.schemas.auth import AdminSession
from app.services.magic_link_service import MagicLinkSender, build_magic_link

logger = logging.getLogger(__name__)


class AuthService:
    """Credential store for the admin area: sign-in, sessions, refresh and sign-out."""

    @staticmethod
    def get_user_by_email(db: Session, email: str) -> Optional[AdminUser]:
        """Get an admin by email address."""
        return db.query(AdminUser).filter(AdminUser.email == email).first()

    @staticmethod
    def get_user_by_id(db: Session, user_id: UUID) -> Optional[AdminUser]:
        """Get an admin by ID."""
        return db.query(AdminUser).filter(AdminUser.id == user_id).first()

    @staticmethod
    def _open_session(db: Session, user: AdminUser) -> AdminSession:
        """Issue an access/refresh token pair for an authenticated admin."""
        token_data = {"sub": str(user.id), "email": user.email}
        access_token, expires_at = create_access_token(data=token_data)
        refresh_token, refresh_expires_at = create_refresh_token(data=token_data)

        store_refresh_token(db, user.id, refresh_token, refresh_expires_at)

        return AdminSession(
            user_id=user.id,
            email=user.email,
            access_token=access_token,
            refresh_token=refresh_token,
            expires_at=expires_at,
        )

    @staticmethod
    def sign_in_with_password(db: Session, email: str, password: str) -> AdminSession:
        """
        Authenticate an admin by email and password.
        Every failure raises the same InvalidCredentialsError.
        """
        user = AuthService.get_user_by_email(db, sanitize_email(email))
        if not user or not user.is_active:
            raise InvalidCredentialsError()
        if not user.password_hash:
            raise InvalidCredentialsError()  # Magic-link-only admins cannot use passwords
        if not verify_password(password, user.password_hash):
            raise InvalidCredentialsError()

        return AuthService._open_session(db, user)

    @staticmethod
    def sign_in(
        db: Session,
        email: str,
        password: str,
        limiter: LoginAttemptLimiter,
    ) -> AdminSession:
        """
        Rate-limited password sign-in.

        The limiter is consulted before the credential store is touched, and the
        outcome is recorded exactly once per attempt.
        """
        identity = sanitize_email(email)

        if not limiter.check_allowed(identity):
            logger.warning(f"Sign-in rejected for {identity}: too many failed attempts")
            raise RateLimitedError()

        try:
            session = AuthService.sign_in_with_password(db, identity, password)
        except Exception:
            limiter.record_outcome(identity, success=False)
            logger.info(f"Failed sign-in for {identity}")
            raise

        limiter.record_outcome(identity, success=True)
        logger.info(f"Admin {identity} signed in")
        return session

    @staticmethod
    def sign_in_with_magic_link(db: Session, email: str, sender: MagicLinkSender) -> None:
        """
        Send a one-time sign-in link.

        Unknown or inactive identities get the same silent success so the
        response never reveals which accounts exist.
        """
        identity = sanitize_email(email)
        user = AuthService.get_user_by_email(db, identity)
        if not user or not user.is_active:
            logger.info(f"Magic link requested for unknown identity {identity}")
            return

        token = generate_one_time_token()
        db.add(MagicLinkToken(
            user_id=user.id,
            token_hash=hash_token(token),
            expires_at=datetime.utcnow() + timedelta(minutes=settings.MAGIC_LINK_EXPIRE_MINUTES),
        ))
        db.commit()

        sender.send(user.email, build_magic_link(token))

    @staticmethod
    def verify_magic_link(db: Session, token: str) -> AdminSession:
        """Consume a one-time link token and open a session."""
        now = datetime.utcnow()
        link = db.query(MagicLinkToken).filter(
            MagicLinkToken.token_hash == hash_token(token),
            MagicLinkToken.used_at.is_(None),
            MagicLinkToken.expires_at > now,
        ).first()
        if not link:
            raise InvalidCredentialsError()

        # Conditional write so two concurrent clicks cannot both succeed
        claimed = db.query(MagicLinkToken).filter(
            MagicLinkToken.id == link.id,
            MagicLinkToken.used_at.is_(None),
        ).update({"used_at": now}, synchronize_session=False)
        db.commit()
        if claimed != 1:
            raise InvalidCredentialsError()

        user = AuthService.get_user_by_id(db, link.user_id)
        if not user or not user.is_active:
            raise InvalidCredentialsError()

        logger.info(f"Admin {user.email} signed in with magic link")
        return AuthService._open_session(db, user)

    @staticmethod
    def get_session(db: Session, access_token: Optional[str]) -> Optional[AdminSession]:
        """
        Resolve the session behind an access token.
        Returns None for missing, forged, expired or revoked tokens.
        """
        if not access_token:
            return None

        payload = verify_token(access_token, expected_type=TOKEN_TYPE_ACCESS)
        if payload is None:
            return None

        jti = payload.get("jti")
        if jti and is_token_blacklisted(db, jti):
            return None

        try:
            user_id = UUID(payload.get("sub", ""))
        except ValueError:
            return None

        user = AuthService.get_user_by_id(db, user_id)
        if user is None or not user.is_active:
            return None

        return AdminSession(
            user_id=user.id,
            email=user.email,
            access_token=access_token,
            expires_at=timestamp_to_utc(payload["exp"]),
        )

    @staticmethod
    def refresh_session(db: Session, refresh_token: Optional[str]) -> AdminSession:
        """
        Exchange a refresh token for a new token pair (rotation).
        Raises RefreshFailedError if the refresh token is unusable.
        """
        if not refresh_token:
            raise RefreshFailedError()

        payload = verify_token(refresh_token, expected_type=TOKEN_TYPE_REFRESH)
        if not payload:
            raise RefreshFailedError()

        jti = payload.get("jti")
        if jti and is_token_blacklisted(db, jti):
            raise RefreshFailedError()

        if not validate_refresh_token(db, refresh_token):
            raise RefreshFailedError()

        try:
            user = AuthService.get_user_by_id(db, UUID(payload.get("sub", "")))
        except ValueError:
            raise RefreshFailedError()
        if user is None or not user.is_active:
            raise RefreshFailedError()

        token_data = {"sub": str(user.id), "email": user.email}
        new_refresh_token, _ = rotate_refresh_token(db, refresh_token, token_data)
        access_token, expires_at = create_access_token(data=token_data)

        return AdminSession(
            user_id=user.id,
            email=user.email,
            access_token=access_token,
            refresh_token=new_refresh_token,
            expires_at=expires_at,
        )

    @staticmethod
    def sign_out(
        db: Session,
        access_token: Optional[str],
        refresh_token: Optional[str],
    ) -> None:
        """Revoke the session server-side. Cookie clearing is the caller's job."""
        if access_token:
            payload = verify_token(access_token, expected_type=TOKEN_TYPE_ACCESS)
            if payload and payload.get("jti"):
                blacklist_token(
                    db,
                    jti=payload["jti"],
                    user_id=UUID(payload["sub"]),
                    token_type=TOKEN_TYPE_ACCESS,
                    expires_at=timestamp_to_utc(payload["exp"]),
                )

        if refresh_token:
            revoke_refresh_token(db, refresh_token)
