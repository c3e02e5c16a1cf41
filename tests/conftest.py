"""
Pytest configuration and shared fixtures.

Every test gets a fresh in-memory SQLite database. Service tests use the `db`
session directly; API tests go through `client`, whose requests open their
own sessions on the same database.
"""
import os
from datetime import datetime, timezone

# Provide minimal env for Settings during import.
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("AUTO_CREATE_DB", "false")
os.environ.setdefault("JWT_SECRET", "test-secret")
os.environ.setdefault("RATE_LIMIT", "10000/minute")

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from itassets.config import settings  # noqa: E402
from itassets.db import Base, get_db  # noqa: E402
from itassets.models import models  # noqa: E402,F401
from itassets.schemas.assets import AssetCreate  # noqa: E402
from itassets.schemas.users import UserCreate  # noqa: E402
from itassets.services import assets as asset_service  # noqa: E402
from itassets.services import users as user_service  # noqa: E402


@pytest.fixture
def session_factory():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )
    Base.metadata.create_all(bind=engine)
    factory = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)
    yield factory
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client(session_factory):
    from itassets.main import app

    def _get_test_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = _get_test_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.pop(get_db, None)


@pytest.fixture
def reports_dir(tmp_path, monkeypatch):
    monkeypatch.setattr(settings, "reports_dir", str(tmp_path / "reports"))
    return tmp_path / "reports"


@pytest.fixture
def now():
    return datetime.now(timezone.utc)


@pytest.fixture
def make_asset(db):
    def _make(**overrides):
        data = {
            "name": "Dell 24in Monitor",
            "description": "Second floor desk 12",
            "category": "MONITOR",
            "condition": "NEW",
            "owner": None,
            "photo_url": None,
        }
        data.update(overrides)
        return asset_service.create_asset(db, AssetCreate(**data))

    return _make


@pytest.fixture
def make_user(db):
    counter = {"n": 0}

    def _make(**overrides):
        counter["n"] += 1
        data = {
            "email": f"user{counter['n']}@example.com",
            "password": "secret123",
            "role": "EMPLOYEE",
            "full_name": f"User {counter['n']}",
        }
        data.update(overrides)
        return user_service.create_user(db, UserCreate(**data))

    return _make
