from pydantic_settings import BaseSettings
from typing import Optional


class Settings(BaseSettings):
    # Environment
    ENVIRONMENT: str = "development"

    # Database
    DATABASE_URL: str
    DB_POOL_TIMEOUT_SECONDS: int = 10
    DB_STATEMENT_TIMEOUT_MS: int = 15000

    # JWT
    SECRET_KEY: str
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60
    REFRESH_TOKEN_EXPIRE_DAYS: int = 7

    # Session cookies
    SESSION_COOKIE_MAX_AGE: int = 3600

    # CORS
    FRONTEND_URL: str = "http://localhost:3000"

    # Public base URL used to build magic links
    SITE_URL: str = "http://localhost:8000"

    # Admin sign-in throttling (per identity)
    LOGIN_MAX_ATTEMPTS: int = 5
    LOGIN_LOCKOUT_MINUTES: int = 15
    LOGIN_ATTEMPT_BACKEND: str = "memory"  # "memory" or "database"

    # Magic link sign-in
    MAGIC_LINK_EXPIRE_MINUTES: int = 15
    MAGIC_LINK_WEBHOOK_URL: Optional[str] = None
    MAGIC_LINK_TIMEOUT_SECONDS: float = 10.0

    # Public blog
    POSTS_PER_PAGE: int = 6

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT == "production"

    def validate_required_secrets(self) -> list[str]:
        """Validate that critical secrets are set. Returns list of errors."""
        errors = []
        if not self.SECRET_KEY or len(self.SECRET_KEY) < 16:
            errors.append("SECRET_KEY must be set and at least 16 characters")
        if not self.DATABASE_URL:
            errors.append("DATABASE_URL must be set")
        if self.LOGIN_ATTEMPT_BACKEND not in ("memory", "database"):
            errors.append("LOGIN_ATTEMPT_BACKEND must be 'memory' or 'database'")
        if self.is_production and not self.SITE_URL.startswith("https://"):
            errors.append("SITE_URL must use https in production")
        return errors

    class Config:
        env_file = ".env"
        case_sensitive = True


settings = Settings()
