from sqlalchemy import Column, String, Integer, DateTime

from app.core.database import Base


class LoginAttempt(Base):
    """Failed sign-in counter per identity, shared across server processes."""

    __tablename__ = "login_attempts"

    identity = Column(String(255), primary_key=True)
    failure_count = Column(Integer, nullable=False, default=0)
    last_failure_at = Column(DateTime, nullable=False)

    def __repr__(self):
        return f"<LoginAttempt {self.identity}: {self.failure_count}>"
