"""
Tests for authentication (JWT sessions, Bearer and cookie transport).
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

import jwt
import pytest
from fastapi import HTTPException

from backend.auth import create_jwt, decode_jwt, get_current_user, user_from_token
from backend.config import settings


class TestJWT:
    """Test JWT creation and validation."""

    def test_create_jwt(self):
        token = create_jwt("user-1")

        assert isinstance(token, str)
        assert len(token) > 0

    def test_decode_jwt(self):
        payload = decode_jwt(create_jwt("user-1", name="Ada"))

        assert payload["sub"] == "user-1"
        assert payload["name"] == "Ada"
        assert "exp" in payload
        assert "iat" in payload

    def test_name_is_optional(self):
        assert "name" not in decode_jwt(create_jwt("user-1"))

    def test_decode_expired_jwt(self):
        """Test decoding an expired JWT token raises exception."""
        # Token that expired 1 hour ago
        payload = {
            "sub": "user-1",
            "exp": datetime.now(UTC) - timedelta(hours=1),
            "iat": datetime.now(UTC) - timedelta(hours=2),
        }
        token = jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)

        with pytest.raises(HTTPException) as exc_info:
            decode_jwt(token)

        assert exc_info.value.status_code == 401
        assert "expired" in exc_info.value.detail.lower()

    def test_decode_invalid_jwt(self):
        with pytest.raises(HTTPException) as exc_info:
            decode_jwt("invalid.token.here")

        assert exc_info.value.status_code == 401

    def test_wrong_secret(self):
        token = jwt.encode({"sub": "user-1"}, "some-other-secret", algorithm=settings.JWT_ALGORITHM)

        with pytest.raises(HTTPException):
            decode_jwt(token)

    def test_token_without_subject(self):
        token = jwt.encode(
            {"exp": datetime.now(UTC) + timedelta(hours=1)}, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM
        )

        with pytest.raises(HTTPException) as exc_info:
            user_from_token(token)

        assert exc_info.value.status_code == 401


class TestCurrentUser:
    async def test_bearer_token(self):
        user = await get_current_user(authorization=f"Bearer {create_jwt('user-1', name='Ada')}")

        assert user.id == "user-1"
        assert user.name == "Ada"

    async def test_session_cookie(self):
        user = await get_current_user(session=create_jwt("user-2"))

        assert user.id == "user-2"
        assert user.name is None

    async def test_bearer_wins_over_cookie(self):
        user = await get_current_user(
            session=create_jwt("cookie-user"),
            authorization=f"Bearer {create_jwt('bearer-user')}",
        )

        assert user.id == "bearer-user"

    async def test_unauthenticated(self):
        with pytest.raises(HTTPException) as exc_info:
            await get_current_user()

        assert exc_info.value.status_code == 401

    async def test_non_bearer_header_falls_back_to_cookie(self):
        user = await get_current_user(session=create_jwt("user-3"), authorization="Basic abc")

        assert user.id == "user-3"


class TestHealth:
    async def test_health(self, async_client):
        res = await async_client.get("/health")

        assert res.status_code == 200
        assert res.json() == {"status": "ok"}
