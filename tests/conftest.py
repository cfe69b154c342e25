# tests/conftest.py
from __future__ import annotations

import os
from collections.abc import Generator, Iterator
from datetime import UTC, datetime, timedelta

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

os.environ.setdefault("PYTEST_RUNNING", "true")

from runsight_stage.core.security import create_access_token
from runsight_stage.core.settings import Settings
from runsight_stage.db.session import Base
from runsight_stage.db.session import get_db as app_get_session
from runsight_stage.main import create_app
from runsight_stage.models import User

TEST_DB_URL = "sqlite://"


class FakeClock:
    """Manually advanced clock usable as both a wall clock and a monotonic clock."""

    def __init__(self, start: datetime | None = None) -> None:
        self.current = start or datetime(2026, 1, 1, 12, 0, tzinfo=UTC)

    def __call__(self) -> datetime:
        return self.current

    def advance(self, **kwargs: float) -> None:
        self.current += timedelta(**kwargs)


class FakeMonotonic:
    def __init__(self, start: float = 1000.0) -> None:
        self.value = start

    def __call__(self) -> float:
        return self.value

    def advance(self, seconds: float) -> None:
        self.value += seconds


def make_settings(**overrides: object) -> Settings:
    """Settings for tests: fixed secret, generous strict limits unless overridden."""
    values: dict[str, object] = {
        "secret_key": "test-secret-key",
        "strict_rate_limit_burst": 50,
        "strict_rate_limit_per_minute": 600.0,
        "pairing_verify_rate_limit_per_minute": 600.0,
        "trust_proxy_headers": True,
    }
    values.update(overrides)
    return Settings(**values)


@pytest.fixture(scope="session")
def engine() -> Generator[Engine, None, None]:
    engine = create_engine(
        TEST_DB_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture()
def db_session(engine: Engine) -> Iterator[Session]:
    SessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.rollback()
        session.close()

        # Services commit on their own, so empty every table between tests.
        with engine.begin() as cleanup_conn:
            for table in reversed(Base.metadata.sorted_tables):
                cleanup_conn.execute(table.delete())


@pytest.fixture()
def test_settings() -> Settings:
    return make_settings()


@pytest.fixture()
def app(test_settings: Settings) -> FastAPI:
    """A fresh application per test so limiter state never leaks between tests."""
    return create_app(test_settings)


@pytest.fixture(autouse=True)
def override_session_dependency(app: FastAPI, db_session: Session) -> Iterator[None]:
    def _get_session_override() -> Generator[Session, None, None]:
        yield db_session

    app.dependency_overrides[app_get_session] = _get_session_override
    try:
        yield
    finally:
        app.dependency_overrides.pop(app_get_session, None)


@pytest.fixture()
def client(app: FastAPI) -> Iterator[TestClient]:
    with TestClient(app, base_url="http://test") as test_client:
        yield test_client


@pytest.fixture()
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def fake_monotonic() -> FakeMonotonic:
    return FakeMonotonic()


def _create_user(db_session: Session, email: str, full_name: str) -> User:
    user = User(email=email, full_name=full_name)
    db_session.add(user)
    db_session.commit()
    db_session.refresh(user)
    return user


@pytest.fixture()
def test_user(db_session: Session) -> User:
    """Create and return a persisted test user."""
    return _create_user(db_session, "runner@example.com", "Test Runner")


@pytest.fixture()
def other_user(db_session: Session) -> User:
    """Create and return a second persisted user."""
    return _create_user(db_session, "other@example.com", "Other Runner")


@pytest.fixture()
def auth_token(test_user: User, test_settings: Settings) -> dict[str, str]:
    """Return authorization headers for the primary test user."""
    token = create_access_token(test_user.id, config=test_settings)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture()
def other_auth_token(other_user: User, test_settings: Settings) -> dict[str, str]:
    """Return authorization headers for the secondary test user."""
    token = create_access_token(other_user.id, config=test_settings)
    return {"Authorization": f"Bearer {token}"}
