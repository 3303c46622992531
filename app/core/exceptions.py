"""Custom exceptions and error handling for the portfolio site API."""

from fastapi import HTTPException, status


GENERIC_CREDENTIALS_MESSAGE = "Invalid credentials. Please try again."


class SiteException(HTTPException):
    """Base exception for the portfolio site API."""

    def __init__(
        self,
        status_code: int,
        detail: str,
        error_code: str | None = None,
    ):
        super().__init__(status_code=status_code, detail=detail)
        self.error_code = error_code


# Authentication Errors (401)
class InvalidCredentialsError(SiteException):
    """Raised for any sign-in failure. Never says whether the account exists."""

    def __init__(self, detail: str = GENERIC_CREDENTIALS_MESSAGE):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
            error_code="INVALID_CREDENTIALS",
        )


class RefreshFailedError(SiteException):
    """Raised when a refresh credential is invalid, revoked or expired."""

    def __init__(self, detail: str = "Session expired. Please sign in again."):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
            error_code="REFRESH_FAILED",
        )


class NotAuthenticatedError(SiteException):
    """Raised when an admin route is hit without a valid session."""

    def __init__(self, detail: str = "Could not validate credentials"):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
            error_code="NOT_AUTHENTICATED",
        )


# Resource Errors (404, 409)
class NotFoundError(SiteException):
    """Raised when a resource is not found."""

    def __init__(self, resource: str = "Resource", detail: str | None = None):
        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=detail or f"{resource} not found",
            error_code="NOT_FOUND",
        )


class SlugConflictError(SiteException):
    """Raised when another post already uses the requested slug."""

    def __init__(
        self,
        detail: str = "A post with this slug already exists. Please choose a different slug.",
    ):
        super().__init__(
            status_code=status.HTTP_409_CONFLICT,
            detail=detail,
            error_code="SLUG_CONFLICT",
        )


class PublishStateConflictError(SiteException):
    """Raised when a publish toggle was based on a stale published value."""

    def __init__(
        self,
        detail: str = "This post was changed by someone else. Reload and try again.",
    ):
        super().__init__(
            status_code=status.HTTP_409_CONFLICT,
            detail=detail,
            error_code="PUBLISH_STATE_CONFLICT",
        )


# Validation Errors (400)
class ValidationError(SiteException):
    """Raised when input validation fails."""

    def __init__(self, detail: str = "Invalid input"):
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=detail,
            error_code="VALIDATION_ERROR",
        )


# Rate Limiting (429)
class RateLimitedError(SiteException):
    """Raised when an identity has too many failed sign-in attempts."""

    def __init__(self, detail: str = "Too many login attempts. Please try again later."):
        super().__init__(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail=detail,
            error_code="RATE_LIMITED",
        )


# Server Errors (500, 503)
class StoreError(SiteException):
    """
    Raised when the data store rejects or fails an operation.
    The raw store message is kept for the admin surface only.
    """

    def __init__(self, detail: str = "The data store could not complete the operation"):
        super().__init__(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=detail,
            error_code="STORE_ERROR",
        )


class MagicLinkDeliveryError(SiteException):
    """Raised when the magic link delivery channel fails."""

    def __init__(self, detail: str = "Sign-in link could not be sent. Please try again later."):
        super().__init__(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=detail,
            error_code="MAGIC_LINK_DELIVERY_FAILED",
        )
