"""
Tests for session tokens and request authentication.

Run with: pytest backend/tests/test_security.py -v
"""

import uuid
from datetime import timedelta

import jwt
import pytest

from qclab.config import settings
from qclab.core.deps import get_auth_context
from qclab.core.security import create_access_token, decode_access_token
from qclab.main import app


class TestTokens:

    def test_round_trip_subject(self):
        user_id = uuid.uuid4()
        payload = decode_access_token(create_access_token(user_id))
        assert payload["sub"] == str(user_id)

    def test_expired_token_rejected(self):
        token = create_access_token(uuid.uuid4(), expires_delta=timedelta(seconds=-1))
        with pytest.raises(jwt.ExpiredSignatureError):
            decode_access_token(token)


@pytest.fixture
def real_auth(api):
    """Resolve sessions for real instead of using the test AuthContext."""
    app.dependency_overrides.pop(get_auth_context, None)
    return api


class TestAuthentication:

    async def test_missing_token_is_401(self, real_auth):
        resp = await real_auth.get("/api/v1/profile")
        assert resp.status_code == 401
        body = resp.json()
        assert body["success"] is False
        assert body["error"]["message"] == "Unauthorized"

    async def test_garbage_token_is_401(self, real_auth):
        resp = await real_auth.get(
            "/api/v1/profile", headers={"Authorization": "Bearer not-a-jwt"}
        )
        assert resp.status_code == 401

    async def test_unknown_profile_is_401(self, real_auth):
        token = create_access_token(uuid.uuid4())
        resp = await real_auth.get(
            "/api/v1/profile", headers={"Authorization": f"Bearer {token}"}
        )
        assert resp.status_code == 401

    async def test_bearer_token_resolves_profile(self, real_auth, profile_id, lab_id):
        token = create_access_token(profile_id)
        resp = await real_auth.get(
            "/api/v1/profile", headers={"Authorization": f"Bearer {token}"}
        )
        assert resp.status_code == 200
        data = resp.json()["data"]
        assert data["email"] == "tech@example.com"
        assert data["qc_role"] == "lab_assistant"
        assert data["laboratory_id"] == str(lab_id)

    async def test_session_cookie_resolves_profile(self, real_auth, profile_id):
        real_auth.cookies.set(settings.SESSION_COOKIE_NAME, create_access_token(profile_id))
        resp = await real_auth.get("/api/v1/profile")
        assert resp.status_code == 200


async def test_health(api):
    resp = await api.get("/api/health")
    assert resp.status_code == 200
    assert resp.json()["status"] == "healthy"
    assert "X-Request-ID" in resp.headers
