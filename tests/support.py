"""Shared helpers: in-memory SQLite store, fixed-key settings, and a wired TestClient."""

import unittest
from collections.abc import Generator

from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from app.core.config import Settings, get_settings
from app.core.database import get_db
from app.main import app
from app.models import Base

TEST_SECRET = "test-secret-not-for-production"
API = "/api/v1"


def make_settings(**overrides: object) -> Settings:
    """Settings with a fixed signing key, ignoring any local .env file."""
    values: dict[str, object] = {
        "DATABASE_URL": "sqlite://",
        "JWT_SECRET": TEST_SECRET,
        "OWNER_OPEN_ID": None,
        "_env_file": None,
    }
    values.update(overrides)
    return Settings(**values)


def make_engine() -> Engine:
    """Fresh in-memory SQLite database with the users table created."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    return engine


class DatabaseTestCase(unittest.TestCase):
    """Gives each test its own empty store, a session on it, and default settings."""

    def setUp(self) -> None:
        self.engine = make_engine()
        self.db: Session = sessionmaker(autocommit=False, autoflush=False, bind=self.engine)()
        self.settings = make_settings()

    def tearDown(self) -> None:
        self.db.close()
        Base.metadata.drop_all(bind=self.engine)
        self.engine.dispose()


class ApiTestCase(DatabaseTestCase):
    """DatabaseTestCase plus a TestClient whose get_db/get_settings point at the test store."""

    def setUp(self) -> None:
        super().setUp()

        def override_get_db() -> Generator[Session, None, None]:
            yield self.db

        app.dependency_overrides[get_db] = override_get_db
        app.dependency_overrides[get_settings] = lambda: self.settings
        self.client = TestClient(app)

    def tearDown(self) -> None:
        self.client.close()
        app.dependency_overrides.clear()
        super().tearDown()

    def register(self, email: str, password: str = "longenough1", name: str = "Test User"):
        return self.client.post(
            f"{API}/auth/register",
            json={"email": email, "password": password, "name": name},
        )

    def login(self, email: str, password: str = "longenough1"):
        return self.client.post(f"{API}/auth/login", json={"email": email, "password": password})

    def bootstrap(self, email: str, password: str = "longenough1", name: str = "Admin"):
        return self.client.post(
            f"{API}/auth/bootstrap",
            json={"email": email, "password": password, "name": name},
        )
