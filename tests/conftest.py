"""
Shared pytest fixtures.

Uses a SQLite file database so no Postgres is required for tests. Every test
that touches the store works under its own email, so records never collide.
"""
import os
import uuid
from datetime import date

os.environ.setdefault("DATABASE_URL", "sqlite:///./test_momentum.db")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from momentum_engine.core import clock
from momentum_engine.db.base import Base, get_db
from momentum_engine.main import app
import momentum_engine.models  # noqa: F401

SQLITE_URL = "sqlite:///./test_momentum.db"
# Check-ins may not be dated after local today; tests use far-future dates.
PINNED_TODAY = date(2099, 12, 31)

engine = create_engine(SQLITE_URL, connect_args={"check_same_thread": False})
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def override_get_db():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture(scope="session", autouse=True)
def create_tables():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(autouse=True)
def pinned_today(monkeypatch):
    monkeypatch.setattr(clock, "today", lambda: PINNED_TODAY)
    return PINNED_TODAY


@pytest.fixture()
def db():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture()
def client(db):
    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture()
def email():
    return f"user-{uuid.uuid4().hex[:12]}@example.com"
