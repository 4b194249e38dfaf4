"""Shared fixtures: in-memory database, API client, auth and CSRF headers."""

import os

os.environ["ENVIRONMENT"] = "dev"
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["PUBLIC_BASE_URL"] = "https://punktual.co"
os.environ.setdefault("SUPABASE_JWT_SECRET", "test-jwt-secret")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from punktual import auth, database, models
from punktual.main import app


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    models.Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def client(session_factory, monkeypatch):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[database.get_db] = override_get_db
    # Background click counting opens its own session
    monkeypatch.setattr(database, "SessionLocal", session_factory)
    app.state.last_export.clear()
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers():
    token = auth.create_access_token("user-1", email="ana@example.com")
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def other_auth_headers():
    token = auth.create_access_token("user-2")
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def csrf_headers(client):
    response = client.get("/api/csrf-token")
    return {"x-csrf-token": response.json()["token"]}


@pytest.fixture
def launch_event():
    return {
        "title": "Launch",
        "startDate": "2025-06-01",
        "startTime": "09:00",
        "endDate": "2025-06-01",
        "endTime": "10:00",
    }
