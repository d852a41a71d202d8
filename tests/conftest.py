"""pytest configuration and fixtures."""

import itertools
from typing import Any, Dict, List

import pytest
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool

from campusknot.config import settings
from campusknot.live.hub import ConnectionHub
from campusknot.utils.cache import RedisClient
from campusknot.utils.database import Base, Database, UserDB
from campusknot.utils.security import hash_password

# Hashing is slow; every fixture user shares one password
TEST_PASSWORD = "secret123"
TEST_PASSWORD_HASH = hash_password(TEST_PASSWORD)

_emails = itertools.count(1)


class FakeConnection:
    """Live connection double that records every frame sent to it."""

    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.frames: List[Dict[str, Any]] = []

    async def send_json(self, data: Any) -> None:
        if self.fail:
            raise RuntimeError("connection closed")
        self.frames.append(data)

    def events(self, name: str) -> List[Dict[str, Any]]:
        return [frame["data"] for frame in self.frames if frame["event"] == name]


@pytest.fixture(autouse=True)
def test_settings(monkeypatch, tmp_path):
    """Keep tests local: no Redis, no email transport, media in a temp dir."""
    monkeypatch.setattr(settings, "ENVIRONMENT", "development")
    monkeypatch.setattr(settings, "REDIS_URL", None)
    monkeypatch.setattr(settings, "SENDGRID_API_KEY", None)
    monkeypatch.setattr(settings, "SMTP_EMAIL", None)
    monkeypatch.setattr(settings, "SMTP_PASSWORD", None)
    monkeypatch.setattr(settings, "STORAGE_PATH", str(tmp_path / "uploads"))
    RedisClient.reset()
    yield settings
    RedisClient.reset()


@pytest.fixture
def engine():
    """In-memory SQLite engine shared by every session in a test."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Database.use_engine(engine)
    Base.metadata.create_all(engine)
    yield engine
    Database.dispose()


@pytest.fixture
def session(engine):
    session = Database.get_session()
    yield session
    session.close()


@pytest.fixture
def hub():
    return ConnectionHub()


@pytest.fixture
def make_user(session):
    """Factory for stored users."""

    def _make_user(**overrides: Any) -> UserDB:
        n = next(_emails)
        values: Dict[str, Any] = {
            "name": f"Student {n}",
            "email": f"student{n}@nitk.edu.in",
            "password_hash": TEST_PASSWORD_HASH,
            "age": 20,
            "gender": "female",
            "branch": "CSE",
            "year": "2nd",
            "bio": "",
            "photo": "",
            "show_me": "all",
            "interests": [],
            "green_flags": [],
            "red_flags": [],
            "is_verified": True,
            "is_active": True,
        }
        values.update(overrides)
        user = UserDB(**values)
        session.add(user)
        session.commit()
        return user

    return _make_user
