"""
Rate limiting for the admin sign-in flow.

Two independent layers:
- slowapi limiters throttle raw request volume per client IP.
- LoginAttemptLimiter counts failed sign-ins per identity (email) and locks the
  identity out after too many failures inside the lockout window.
"""

import logging
import threading
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Optional, Protocol

from fastapi import Request
from slowapi import Limiter
from slowapi.util import get_remote_address
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.config import settings

logger = logging.getLogger(__name__)


def get_ip_address(request: Request) -> str:
    """Get IP address for rate limiting public routes."""
    return get_remote_address(request)


# Per-IP limiter for the whole API
limiter = Limiter(
    key_func=get_ip_address,
    default_limits=["1000/minute"],
)

# Stricter limiter for unauthenticated routes
public_limiter = Limiter(
    key_func=get_ip_address,
    default_limits=["100/minute"],
)


@dataclass
class AttemptRecord:
    failure_count: int
    last_failure_at: datetime


class AttemptStore(Protocol):
    """Storage for per-identity failure records."""

    def get(self, identity: str) -> Optional[AttemptRecord]: ...

    def delete(self, identity: str) -> None: ...

    def increment(self, identity: str, now: datetime) -> AttemptRecord:
        """Count one more failure as a single atomic step and return the new record."""
        ...


class MemoryAttemptStore:
    """
    Process-local attempt store.
    Does not survive restarts and is not shared between server processes.
    """

    def __init__(self):
        self._records: dict[str, AttemptRecord] = {}
        self._lock = threading.Lock()

    def get(self, identity: str) -> Optional[AttemptRecord]:
        with self._lock:
            record = self._records.get(identity)
            if record is None:
                return None
            return AttemptRecord(record.failure_count, record.last_failure_at)

    def delete(self, identity: str) -> None:
        with self._lock:
            self._records.pop(identity, None)

    def increment(self, identity: str, now: datetime) -> AttemptRecord:
        with self._lock:
            record = self._records.get(identity)
            count = record.failure_count + 1 if record else 1
            self._records[identity] = AttemptRecord(count, now)
            return AttemptRecord(count, now)

    def clear(self) -> None:
        with self._lock:
            self._records.clear()


class DatabaseAttemptStore:
    """Attempt store backed by the login_attempts table, shared by all processes."""

    def __init__(self, session_factory: Callable[[], Session]):
        self._session_factory = session_factory

    def get(self, identity: str) -> Optional[AttemptRecord]:
        from app.models.login_attempt import LoginAttempt

        db = self._session_factory()
        try:
            row = db.query(LoginAttempt).filter(LoginAttempt.identity == identity).first()
            if row is None:
                return None
            return AttemptRecord(row.failure_count, row.last_failure_at)
        finally:
            db.close()

    def delete(self, identity: str) -> None:
        from app.models.login_attempt import LoginAttempt

        db = self._session_factory()
        try:
            db.query(LoginAttempt).filter(LoginAttempt.identity == identity).delete()
            db.commit()
        finally:
            db.close()

    def increment(self, identity: str, now: datetime) -> AttemptRecord:
        """
        Add one failure with UPDATE ... SET failure_count = failure_count + 1,
        so concurrent processes never overwrite each other's counts.
        """
        from app.models.login_attempt import LoginAttempt

        db = self._session_factory()
        try:
            if not self._bump(db, identity, now):
                db.add(LoginAttempt(identity=identity, failure_count=1, last_failure_at=now))
                try:
                    db.commit()
                except IntegrityError:
                    # Another process created the row first
                    db.rollback()
                    self._bump(db, identity, now)
                    db.commit()
            else:
                db.commit()

            row = db.query(LoginAttempt).filter(LoginAttempt.identity == identity).one()
            return AttemptRecord(row.failure_count, row.last_failure_at)
        finally:
            db.close()

    @staticmethod
    def _bump(db: Session, identity: str, now: datetime) -> int:
        from app.models.login_attempt import LoginAttempt

        return (
            db.query(LoginAttempt)
            .filter(LoginAttempt.identity == identity)
            .update(
                {
                    LoginAttempt.failure_count: LoginAttempt.failure_count + 1,
                    LoginAttempt.last_failure_at: now,
                },
                synchronize_session=False,
            )
        )


class LoginAttemptLimiter:
    """Failure counter with expiry, keyed by identity."""

    def __init__(
        self,
        store: AttemptStore,
        max_attempts: int = 5,
        lockout_window: timedelta = timedelta(minutes=15),
        clock: Callable[[], datetime] = datetime.utcnow,
    ):
        self.store = store
        self.max_attempts = max_attempts
        self.lockout_window = lockout_window
        self._clock = clock

    def check_allowed(self, identity: str) -> bool:
        """Return False while the identity is locked out."""
        record = self.store.get(identity)
        if record is None:
            return True

        # Stale record: the lockout window has passed since the last failure
        if self._clock() - record.last_failure_at > self.lockout_window:
            self.store.delete(identity)
            return True

        return record.failure_count < self.max_attempts

    def record_outcome(self, identity: str, success: bool) -> None:
        """Reset the counter on success, count the failure otherwise."""
        if success:
            self.store.delete(identity)
            return

        record = self.store.increment(identity, self._clock())

        if record.failure_count >= self.max_attempts:
            logger.warning(f"Sign-in locked for {identity} after {record.failure_count} failures")


def build_login_limiter() -> LoginAttemptLimiter:
    """Create the limiter configured by settings."""
    if settings.LOGIN_ATTEMPT_BACKEND == "database":
        from app.core.database import SessionLocal

        store: AttemptStore = DatabaseAttemptStore(SessionLocal)
    else:
        store = MemoryAttemptStore()

    return LoginAttemptLimiter(
        store=store,
        max_attempts=settings.LOGIN_MAX_ATTEMPTS,
        lockout_window=timedelta(minutes=settings.LOGIN_LOCKOUT_MINUTES),
    )


login_limiter = build_login_limiter()


def get_login_limiter() -> LoginAttemptLimiter:
    """Dependency returning the shared login limiter."""
    return login_limiter
