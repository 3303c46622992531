"""Tests for token helpers, token storage and the admin seed script."""

import base64
import json
from datetime import datetime, timedelta

import pytest

from app.core.security import (
    TOKEN_TYPE_ACCESS,
    TOKEN_TYPE_REFRESH,
    blacklist_token,
    cleanup_expired_tokens,
    create_access_token,
    create_refresh_token,
    is_token_blacklisted,
    read_unverified_claims,
    store_refresh_token,
    validate_refresh_token,
    verify_password,
    verify_token,
)
from app.models import MagicLinkToken, RefreshToken, TokenBlacklist
from scripts.seed_admin import upsert_admin


class TestTokens:
    def test_access_token_round_trip(self):
        token, expires_at = create_access_token({"sub": "abc"})

        payload = verify_token(token, expected_type=TOKEN_TYPE_ACCESS)

        assert payload["sub"] == "abc"
        assert payload["jti"]
        assert expires_at > datetime.utcnow()

    def test_type_mismatch(self):
        token, _ = create_refresh_token({"sub": "abc"})

        assert verify_token(token, expected_type=TOKEN_TYPE_ACCESS) is None
        assert verify_token(token, expected_type=TOKEN_TYPE_REFRESH) is not None

    def test_expired_token_fails_verification(self):
        token, _ = create_access_token({"sub": "abc"}, expires_delta=timedelta(seconds=-10))

        assert verify_token(token) is None

    def test_tampered_token_fails_verification(self):
        token, _ = create_access_token({"sub": "abc"})
        header, _, signature = token.split(".")
        forged = base64.urlsafe_b64encode(json.dumps({"sub": "evil"}).encode()).decode().rstrip("=")

        assert verify_token(f"{header}.{forged}.{signature}") is None


class TestReadUnverifiedClaims:
    def test_reads_payload(self):
        token, _ = create_access_token({"sub": "abc"})

        assert read_unverified_claims(token)["sub"] == "abc"

    @pytest.mark.parametrize("token", ["", "one", "a.b", "a.b.c.d"])
    def test_wrong_segment_count(self, token):
        with pytest.raises(ValueError):
            read_unverified_claims(token)

    def test_payload_must_be_object(self):
        payload = base64.urlsafe_b64encode(b'"just a string"').decode().rstrip("=")

        with pytest.raises(ValueError):
            read_unverified_claims(f"x.{payload}.y")

    def test_too_deeply_nested_payload(self):
        payload = base64.urlsafe_b64encode(b"[" * 2900).decode().rstrip("=")

        with pytest.raises(ValueError):
            read_unverified_claims(f"x.{payload}.y")


class TestTokenStore:
    """Test blacklist and refresh token persistence."""

    def test_blacklist_is_idempotent(self, db_session, admin_user):
        expires = datetime.utcnow() + timedelta(hours=1)

        blacklist_token(db_session, "jti-1", admin_user.id, TOKEN_TYPE_ACCESS, expires)
        blacklist_token(db_session, "jti-1", admin_user.id, TOKEN_TYPE_ACCESS, expires)

        assert is_token_blacklisted(db_session, "jti-1")
        assert db_session.query(TokenBlacklist).count() == 1

    def test_expired_refresh_token_is_invalid(self, db_session, admin_user):
        store_refresh_token(db_session, admin_user.id, "old", datetime.utcnow() - timedelta(days=1))

        assert validate_refresh_token(db_session, "old") is False

    def test_cleanup_removes_only_expired_rows(self, db_session, admin_user):
        past = datetime.utcnow() - timedelta(days=1)
        future = datetime.utcnow() + timedelta(days=1)
        blacklist_token(db_session, "gone", admin_user.id, TOKEN_TYPE_ACCESS, past)
        blacklist_token(db_session, "kept", admin_user.id, TOKEN_TYPE_ACCESS, future)
        store_refresh_token(db_session, admin_user.id, "r-gone", past)
        store_refresh_token(db_session, admin_user.id, "r-kept", future)
        db_session.add(MagicLinkToken(user_id=admin_user.id, token_hash="m-gone", expires_at=past))
        db_session.commit()

        removed = cleanup_expired_tokens(db_session)

        assert removed == 3
        assert db_session.query(TokenBlacklist).count() == 1
        assert db_session.query(RefreshToken).count() == 1
        assert db_session.query(MagicLinkToken).count() == 0


class TestSeedAdmin:
    """Test the admin provisioning script."""

    def test_creates_admin(self, db_session):
        admin, created = upsert_admin(
            db_session, " New@Example.com ", password="a-long-enough-password", name="New Admin"
        )

        assert created is True
        assert admin.email == "new@example.com"
        assert verify_password("a-long-enough-password", admin.password_hash)

    def test_magic_link_only_admin(self, db_session):
        admin, _ = upsert_admin(db_session, "links@example.com")

        assert admin.password_hash is None

    def test_password_change_revokes_sessions(self, db_session, admin_user):
        store_refresh_token(db_session, admin_user.id, "live", datetime.utcnow() + timedelta(days=1))

        admin, created = upsert_admin(db_session, admin_user.email, password="a-brand-new-password")

        assert created is False
        assert validate_refresh_token(db_session, "live") is False
        assert verify_password("a-brand-new-password", admin.password_hash)

    def test_rejects_short_password(self, db_session):
        with pytest.raises(ValueError):
            upsert_admin(db_session, "a@example.com", password="short")

    def test_rejects_bad_email(self, db_session):
        with pytest.raises(ValueError):
            upsert_admin(db_session, "not-an-email", password="a-long-enough-password")
