"""Tests for session cookie writing and clearing."""

from datetime import datetime
from uuid import uuid4

from fastapi import Response

from app.core.config import settings
from app.core.cookies import SessionCookies
from app.schemas.auth import AdminSession


def make_session() -> AdminSession:
    return AdminSession(
        user_id=uuid4(),
        email="admin@example.com",
        access_token="access.token.value",
        refresh_token="refresh.token.value",
        expires_at=datetime(2030, 1, 1),
    )


def cookie_header(response: Response, name: str) -> str:
    headers = [
        value.decode()
        for key, value in response.raw_headers
        if key == b"set-cookie" and value.decode().startswith(f"{name}=")
    ]
    assert len(headers) == 1
    return headers[0]


class TestSessionCookies:
    def test_persist_writes_both_tokens(self):
        response = Response()

        SessionCookies.persist(response, make_session())

        access = cookie_header(response, "access-token")
        refresh = cookie_header(response, "refresh-token")
        assert access.startswith("access-token=access.token.value")
        assert refresh.startswith("refresh-token=refresh.token.value")
        assert "Max-Age=3600" in access
        assert f"Max-Age={settings.REFRESH_TOKEN_EXPIRE_DAYS * 86400}" in refresh
        for header in (access, refresh):
            assert "Path=/" in header
            assert "HttpOnly" in header
            assert "SameSite=strict" in header
            assert "Secure" not in header

    def test_secure_flag_in_production(self, monkeypatch):
        monkeypatch.setattr(settings, "ENVIRONMENT", "production")
        response = Response()

        SessionCookies.persist(response, make_session())

        assert "Secure" in cookie_header(response, "access-token")
        assert "Secure" in cookie_header(response, "refresh-token")

    def test_clear_empties_both_slots(self):
        response = Response()

        SessionCookies.clear(response)

        for name in ("access-token", "refresh-token"):
            header = cookie_header(response, name)
            assert "Max-Age=0" in header
            assert "Path=/" in header

    def test_expire_access_token_only(self):
        response = Response()

        SessionCookies.expire_access_token(response)

        names = [
            value.decode().split("=", 1)[0]
            for key, value in response.raw_headers
            if key == b"set-cookie"
        ]
        assert names == ["access-token"]
