"""Tests for password hashing and JWT handling."""
from datetime import timedelta

import pytest
from fastapi import HTTPException
from jose import jwt

from tms.auth.jwt import create_access_token, create_user_token, verify_token
from tms.auth.passwords import hash_password, verify_password


class TestPasswords:
    def test_hash_and_verify(self):
        hashed = hash_password("Secret#123")
        assert hashed != "Secret#123"
        assert verify_password("Secret#123", hashed)
        assert not verify_password("secret#123", hashed)

    def test_garbage_hash_does_not_verify(self):
        assert verify_password("Secret#123", "not-a-bcrypt-hash") is False

    def test_long_passwords_are_accepted(self):
        long_password = "A#1" + "x" * 100
        assert verify_password(long_password, hash_password(long_password))


class TestTokens:
    def test_user_token_round_trip(self, admin):
        data = verify_token(create_user_token(admin))
        assert data.user_id == admin.id
        assert data.role == "Admin"

    def test_expired_token_rejected(self):
        token = create_access_token({"sub": 1}, expires_delta=timedelta(seconds=-5))
        with pytest.raises(HTTPException) as exc:
            verify_token(token)
        assert exc.value.status_code == 401

    def test_token_without_subject_rejected(self):
        with pytest.raises(HTTPException):
            verify_token(create_access_token({"role": "User"}))

    def test_foreign_signature_rejected(self, user):
        forged = jwt.encode({"sub": str(user.id), "role": "Admin"}, "wrong-secret", algorithm="HS256")
        with pytest.raises(HTTPException):
            verify_token(forged)


class TestAuthDependencies:
    def test_missing_token(self, client):
        resp = client.get("/api/users/me")
        assert resp.status_code == 401
        assert resp.json()["detail"] == "Not authenticated"

    def test_bearer_token(self, client, user, user_headers):
        resp = client.get("/api/users/me", headers=user_headers)
        assert resp.status_code == 200
        assert resp.json()["email"] == "john@example.com"

    def test_cookie_token(self, client, user):
        client.cookies.set("token", create_user_token(user))
        resp = client.get("/api/users/me")
        assert resp.status_code == 200

    def test_deleted_user_token(self, client, db, user, user_headers):
        db.delete(user)
        db.commit()
        resp = client.get("/api/users/me", headers=user_headers)
        assert resp.status_code == 401

    def test_admin_route_forbidden_for_user(self, client, user_headers):
        resp = client.get("/api/users", headers=user_headers)
        assert resp.status_code == 403
        assert resp.json()["detail"] == "Admin access required"
