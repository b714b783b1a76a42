"""Tests for caller identity resolution."""

from datetime import datetime, timedelta, timezone

import jwt
import pytest
from fastapi import HTTPException

from creatorsubs.core import auth
from creatorsubs.core.auth import verify_token

SECRET = "test-secret"


def _token(sub="creator-1", **claims):
    return jwt.encode({"sub": sub, **claims}, SECRET, algorithm="HS256")


def test_no_secret_skips_validation(monkeypatch):
    monkeypatch.setattr(auth.settings, "AUTH_SECRET_KEY", None)
    assert verify_token("anything") is None


def test_valid_token():
    assert verify_token(_token(), secret=SECRET) == "creator-1"


def test_expired_token():
    expired = _token(exp=datetime.now(timezone.utc) - timedelta(minutes=1))
    with pytest.raises(HTTPException) as exc_info:
        verify_token(expired, secret=SECRET)
    assert exc_info.value.status_code == 401
    assert exc_info.value.detail == "Token expired"


def test_wrong_signature():
    with pytest.raises(HTTPException) as exc_info:
        verify_token(_token(), secret="other-secret")
    assert exc_info.value.detail == "Invalid token"


def test_bearer_token_identifies_caller(client, monkeypatch):
    monkeypatch.setattr(auth.settings, "AUTH_SECRET_KEY", SECRET)
    resp = client.get("/v1/subscriptions/me", headers={"Authorization": f"Bearer {_token(sub='fan-9')}"})
    assert resp.status_code == 200
    assert resp.json()["data"] == []


def test_bad_bearer_token_rejected(client, monkeypatch):
    monkeypatch.setattr(auth.settings, "AUTH_SECRET_KEY", SECRET)
    resp = client.get("/v1/subscriptions/me", headers={"Authorization": "Bearer not-a-jwt"})
    assert resp.status_code == 401
    assert resp.json()["error"]["code"] == "unauthorized"


def test_header_fallback_can_be_disabled(client, monkeypatch):
    monkeypatch.setattr(auth.settings, "ALLOW_USER_ID_HEADER", False)
    resp = client.get("/v1/subscriptions/me", headers={"X-User-Id": "fan-1"})
    assert resp.status_code == 401
