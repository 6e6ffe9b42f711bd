"""Tests for auth and the user directory endpoints."""
from datetime import datetime, timedelta, timezone

import jwt

from radr.config import settings
from tests.conftest import create_test_user


class TestAuth:

    def test_health_needs_no_auth(self, client):
        assert client.get("/api/health").json() == {"status": "ok"}

    def test_missing_and_garbage_tokens(self, client):
        assert client.get("/api/users/me").status_code == 401
        assert client.get("/api/users/me", headers={"Authorization": "Bearer garbage"}).status_code == 401

    def test_expired_token(self, client, db):
        alice = create_test_user(db, "alice")
        past = datetime.now(timezone.utc) - timedelta(hours=1)
        token = jwt.encode({"sub": alice["user_id"], "username": "alice", "exp": past},
                           settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)
        assert client.get("/api/users/me", headers={"Authorization": f"Bearer {token}"}).status_code == 401

    def test_token_signed_with_other_secret(self, client, db):
        alice = create_test_user(db, "alice")
        token = jwt.encode({"sub": alice["user_id"], "username": "alice"}, "not-the-secret", algorithm="HS256")
        assert client.get("/api/users/me", headers={"Authorization": f"Bearer {token}"}).status_code == 401


class TestDirectory:

    def test_me(self, client, db):
        alice = create_test_user(db, "alice", name="Alice", country="PT")
        body = client.get("/api/users/me", headers=alice["headers"]).json()
        assert body["user_id"] == alice["user_id"]
        assert body["name"] == "Alice"
        assert body["country"] == "PT"
        assert body["is_admin"] is False

    def test_search_lists_directory(self, client, db):
        alice = create_test_user(db, "alice")
        create_test_user(db, "bob")
        body = client.get("/api/users/search", headers=alice["headers"]).json()
        assert [u["username"] for u in body] == ["alice", "bob"]

    def test_admin_creates_user(self, client, db):
        admin = create_test_user(db, "root", is_admin=True)
        resp = client.post("/api/users/", headers=admin["headers"], json={"username": "dave", "name": "Dave"})
        assert resp.status_code == 201
        assert resp.json()["username"] == "dave"
        dup = client.post("/api/users/", headers=admin["headers"], json={"username": "dave"})
        assert dup.status_code == 409

    def test_non_admin_cannot_create_user(self, client, db):
        alice = create_test_user(db, "alice")
        resp = client.post("/api/users/", headers=alice["headers"], json={"username": "eve"})
        assert resp.status_code == 403
        assert resp.json()["detail"] == "Admins only"
