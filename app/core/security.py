import base64
import binascii
import hashlib
import json
import secrets
from datetime import datetime, timedelta, timezone
from typing import Optional
from uuid import UUID, uuid4

from jose import JWTError, jwt
from passlib.context import CryptContext
from sqlalchemy.orm import Session

from app.core.config import settings

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

# Token type constants
TOKEN_TYPE_ACCESS = "access"
TOKEN_TYPE_REFRESH = "refresh"


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a plain password against a hashed password."""
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password: str) -> str:
    """Hash a password using bcrypt."""
    return pwd_context.hash(password)


def hash_token(token: str) -> str:
    """Create SHA-256 hash of a token for storage."""
    return hashlib.sha256(token.encode()).hexdigest()


def generate_one_time_token() -> str:
    """Random URL-safe token for magic links."""
    return secrets.token_urlsafe(32)


def create_access_token(
    data: dict,
    expires_delta: Optional[timedelta] = None,
) -> tuple[str, datetime]:
    """
    Create a JWT access token.
    Returns (token, expires_at).
    """
    to_encode = data.copy()

    if expires_delta:
        expire = datetime.utcnow() + expires_delta
    else:
        expire = datetime.utcnow() + timedelta(
            minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES
        )

    to_encode.update({
        "exp": expire,
        "type": TOKEN_TYPE_ACCESS,
        # Unique token ID for blacklisting on sign-out
        "jti": str(uuid4()),
    })

    encoded_jwt = jwt.encode(
        to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM
    )
    return encoded_jwt, expire


def create_refresh_token(data: dict) -> tuple[str, datetime]:
    """
    Create a JWT refresh token.
    Returns (token, expires_at).
    """
    to_encode = data.copy()
    expire = datetime.utcnow() + timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS)

    to_encode.update({
        "exp": expire,
        "type": TOKEN_TYPE_REFRESH,
        "jti": str(uuid4()),
    })

    encoded_jwt = jwt.encode(
        to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM
    )
    return encoded_jwt, expire


def timestamp_to_utc(value: float) -> datetime:
    """Convert an epoch timestamp (JWT exp) into a naive UTC datetime."""
    return datetime.fromtimestamp(value, tz=timezone.utc).replace(tzinfo=None)


def verify_token(token: str, expected_type: Optional[str] = None) -> Optional[dict]:
    """
    Verify a JWT token and return the payload if valid.

    Args:
        token: The JWT token to verify
        expected_type: If provided, verify the token type matches
    """
    try:
        payload = jwt.decode(
            token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM]
        )

        # Verify token type if specified
        if expected_type and payload.get("type") != expected_type:
            return None

        return payload
    except JWTError:
        return None


def read_unverified_claims(token: str) -> dict:
    """
    Decode the payload segment of a JWT-shaped token WITHOUT checking the signature.

    Only the shape is inspected: three dot-separated segments and a base64url
    payload holding a JSON object. Raises ValueError otherwise.
    """
    parts = token.split(".")
    if len(parts) != 3:
        raise ValueError("Token must have three segments")

    segment = parts[1]
    segment += "=" * (-len(segment) % 4)
    try:
        raw = base64.urlsafe_b64decode(segment.encode("ascii"))
        claims = json.loads(raw)
    except (binascii.Error, UnicodeError, json.JSONDecodeError, RecursionError) as e:
        raise ValueError(f"Token payload is not decodable: {e}")

    if not isinstance(claims, dict):
        raise ValueError("Token payload is not a key-value record")
    return claims


def is_token_blacklisted(db: Session, jti: str) -> bool:
    """Check if a token is blacklisted."""
    from app.models.token_blacklist import TokenBlacklist

    return db.query(TokenBlacklist).filter(TokenBlacklist.jti == jti).first() is not None


def blacklist_token(
    db: Session,
    jti: str,
    user_id: UUID,
    token_type: str,
    expires_at: datetime,
) -> None:
    """Add a token to the blacklist."""
    from app.models.token_blacklist import TokenBlacklist

    if is_token_blacklisted(db, jti):
        return

    blacklisted = TokenBlacklist(
        jti=jti,
        user_id=user_id,
        token_type=token_type,
        expires_at=expires_at,
    )
    db.add(blacklisted)
    db.commit()


def store_refresh_token(
    db: Session,
    user_id: UUID,
    token: str,
    expires_at: datetime,
) -> None:
    """Store a refresh token hash for rotation tracking."""
    from app.models.token_blacklist import RefreshToken

    refresh_token = RefreshToken(
        user_id=user_id,
        token_hash=hash_token(token),
        expires_at=expires_at,
    )
    db.add(refresh_token)
    db.commit()


def validate_refresh_token(db: Session, token: str) -> bool:
    """Validate that a refresh token is still valid (not revoked)."""
    from app.models.token_blacklist import RefreshToken

    token_hash = hash_token(token)
    refresh = db.query(RefreshToken).filter(
        RefreshToken.token_hash == token_hash,
        RefreshToken.is_revoked == False,  # noqa: E712
        RefreshToken.expires_at > datetime.utcnow(),
    ).first()

    return refresh is not None


def revoke_refresh_token(db: Session, token: str) -> None:
    """Revoke a single refresh token."""
    from app.models.token_blacklist import RefreshToken

    db.query(RefreshToken).filter(
        RefreshToken.token_hash == hash_token(token)
    ).update({
        "is_revoked": True,
        "rotated_at": datetime.utcnow(),
    })
    db.commit()


def rotate_refresh_token(
    db: Session,
    old_token: str,
    token_data: dict,
) -> tuple[str, datetime]:
    """
    Rotate a refresh token - invalidate old one and create new one.
    Returns (new_token, expires_at).
    """
    revoke_refresh_token(db, old_token)

    new_token, expires_at = create_refresh_token(token_data)
    store_refresh_token(db, UUID(token_data["sub"]), new_token, expires_at)

    return new_token, expires_at


def revoke_all_user_tokens(db: Session, user_id: UUID) -> None:
    """Revoke all refresh tokens for a user (e.g., on password reset)."""
    from app.models.token_blacklist import RefreshToken

    db.query(RefreshToken).filter(
        RefreshToken.user_id == user_id,
        RefreshToken.is_revoked == False,  # noqa: E712
    ).update({"is_revoked": True})
    db.commit()


def cleanup_expired_tokens(db: Session) -> int:
    """
    Remove expired blacklist entries, refresh tokens and magic links.
    Returns number of rows removed.
    """
    from app.models.token_blacklist import TokenBlacklist, RefreshToken, MagicLinkToken

    now = datetime.utcnow()

    blacklist_deleted = db.query(TokenBlacklist).filter(
        TokenBlacklist.expires_at < now
    ).delete()

    refresh_deleted = db.query(RefreshToken).filter(
        RefreshToken.expires_at < now
    ).delete()

    magic_deleted = db.query(MagicLinkToken).filter(
        MagicLinkToken.expires_at < now
    ).delete()

    db.commit()
    return blacklist_deleted + refresh_deleted + magic_deleted
