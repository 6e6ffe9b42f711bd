"""Pytest fixtures — per-test SQLite database, recording notifier, fake clock."""
import os

# Settings are read at import time; keep tests off the PostgreSQL default
os.environ.setdefault("DATABASE_URL", "sqlite://")

import pytest
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from fastapi.testclient import TestClient

from radr.auth import create_token
from radr.database import Base, get_db
from radr.dependencies import get_dispatcher, get_presence_store
from radr.main import app
from radr.services.events import EventDispatcher
from radr.services.notifier import Notifier
from radr.services.presence import PresenceStore

# Import all models so they register with Base.metadata
from radr.models.user import User                          # noqa: F401
from radr.models.group import RadrGroup, RadrGroupMember   # noqa: F401
from radr.models.message import RadrMessage                # noqa: F401


class RecordingNotifier(Notifier):
    """Keeps every push instead of sending it."""

    def __init__(self):
        self.pushes = []

    def notify(self, user_id, title, body, data=None):
        self.pushes.append({"user_id": user_id, "title": title, "body": body, "data": data or {}})

    def for_user(self, user_id):
        return [p for p in self.pushes if p["user_id"] == user_id]


class FakeClock:
    def __init__(self, now: float = 1_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture(scope="function")
def db_engine(tmp_path):
    """Create a fresh SQLite engine for each test."""
    engine = create_engine(f"sqlite:///{tmp_path / 'test.db'}", connect_args={"check_same_thread": False})

    # Enable WAL mode for better concurrency, and enforce foreign keys
    @event.listens_for(engine, "connect")
    def _set_sqlite_pragma(dbapi_conn, connection_record):
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture(scope="function")
def session_factory(db_engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=db_engine)


@pytest.fixture(scope="function")
def db(session_factory):
    """Yield a database session, closed after the test."""
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture(scope="function")
def notifier():
    return RecordingNotifier()


@pytest.fixture(scope="function")
def clock():
    return FakeClock()


@pytest.fixture(scope="function")
def presence_store(clock):
    return PresenceStore(ttl_seconds=120, clock=clock)


@pytest.fixture(scope="function")
def client(session_factory, notifier, presence_store):
    """FastAPI TestClient with the database, dispatcher and presence store overridden."""

    def _override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    dispatcher = EventDispatcher(notifier)
    app.dependency_overrides[get_db] = _override_get_db
    app.dependency_overrides[get_dispatcher] = lambda: dispatcher
    app.dependency_overrides[get_presence_store] = lambda: presence_store
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


# ---------------------------------------------------------------------------
# Helpers: directory entries with bearer headers, and groups via the API
# ---------------------------------------------------------------------------
def create_test_user(db, username: str = "tester", name: str = None, country: str = None, is_admin: bool = False) -> dict:
    """Helper — insert a directory user and mint a token for them."""
    user = User(username=username, name=name, country=country, is_admin=is_admin)
    db.add(user)
    db.commit()
    db.refresh(user)
    token = create_token(user.user_id, user.username, is_admin=is_admin)
    return {
        "user_id": user.user_id,
        "username": user.username,
        "token": token,
        "headers": {"Authorization": f"Bearer {token}"},
    }


TEST_KEY = "AAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAA="  # 32 zero bytes


def create_test_group(
    client: TestClient,
    headers: dict,
    target_name: str = "Cafe",
    lat: float = 10.0,
    lng: float = 20.0,
    radius_km: float = 1.0,
    usernames: list = None,
    encryption_key: str = TEST_KEY,
) -> dict:
    """Helper — POST /api/radr/groups and return response JSON."""
    resp = client.post("/api/radr/groups", headers=headers, json={
        "target_name": target_name,
        "target_lat": lat,
        "target_lng": lng,
        "target_radius_km": radius_km,
        "encryption_key": encryption_key,
        "usernames": usernames or [],
    })
    assert resp.status_code == 201, resp.text
    return resp.json()
