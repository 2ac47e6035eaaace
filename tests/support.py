"""Shared harness: app wired to an in-memory SQLite store and a controllable clock."""

import unittest
from collections.abc import Generator
from datetime import timedelta
from typing import Any
from unittest.mock import patch

from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from app.api.session import get_clock
from app.core.config import Settings
from app.core.database import get_db
from app.core.security import utcnow
from app.main import create_app
from app.models import Base

TEST_SECRET = "test-secret-key-that-is-long-enough-for-hs256"


def make_settings(**overrides: Any) -> Settings:
    values: dict[str, Any] = {"SECRET_KEY": TEST_SECRET, "LOG_LEVEL": "WARNING"}
    values.update(overrides)
    return Settings(_env_file=None, **values)


def registration(email: str = "ada@example.com", role: str = "member", **kwargs: str) -> dict:
    body = {
        "email": email,
        "password": "secret",
        "firstName": "Ada",
        "lastName": "Lovelace",
        "role": role,
    }
    body.update(kwargs)
    return body


class ApiTestCase(unittest.TestCase):
    """Fresh database, app and client per test. self.now drives the app's clock."""

    settings_overrides: dict[str, Any] = {}

    def setUp(self) -> None:
        # Cheap bcrypt rounds keep the suite fast; hashes stay valid bcrypt.
        rounds = patch("app.core.security.BCRYPT_ROUNDS", 4)
        rounds.start()
        self.addCleanup(rounds.stop)

        self.engine = create_engine(
            "sqlite://",
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
        Base.metadata.create_all(self.engine)
        self.SessionTesting = sessionmaker(bind=self.engine, autocommit=False, autoflush=False)

        self.now = utcnow()
        self.app = create_app(make_settings(**self.settings_overrides))
        self.app.dependency_overrides[get_db] = self._get_test_db
        self.app.dependency_overrides[get_clock] = lambda: self._clock
        self.client = TestClient(self.app)

    def tearDown(self) -> None:
        self.client.close()
        self.engine.dispose()

    def _get_test_db(self) -> Generator[Session, None, None]:
        db = self.SessionTesting()
        try:
            yield db
        finally:
            db.close()

    def _clock(self):
        return self.now

    def advance(self, **delta: float) -> None:
        self.now = self.now + timedelta(**delta)

    @property
    def cookie_name(self) -> str:
        return self.app.state.identity.cookie.name

    def register(self, client: TestClient | None = None, **kwargs: str):
        return (client or self.client).post("/users/register", json=registration(**kwargs))

    def login(self, email: str = "ada@example.com", password: str = "secret", client: TestClient | None = None):
        return (client or self.client).post(
            "/users/login", json={"email": email, "password": password}
        )
