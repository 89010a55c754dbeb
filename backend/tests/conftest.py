"""Shared pytest fixtures for backend tests."""

from __future__ import annotations

import os
from typing import Iterator

os.environ.setdefault("DATABASE_URL", "sqlite+pysqlite:///:memory:")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from app.database import get_db
from app.main import app
from app.models import Base
from app.services.realtime import build_gateway, get_gateway
from wayfarer.realtime import SessionGateway


@pytest.fixture()
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture()
def test_engine() -> Iterator[Engine]:
    """Provide an in-memory SQLite engine for isolated tests."""

    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )
    Base.metadata.create_all(engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(engine)
        engine.dispose()


@pytest.fixture()
def session_factory(test_engine) -> sessionmaker[Session]:
    """Return a session factory bound to the test engine."""

    return sessionmaker(bind=test_engine, future=True, expire_on_commit=False)


@pytest.fixture()
def db_session(session_factory) -> Iterator[Session]:
    """Yield a SQLAlchemy session for unit tests."""

    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def gateway(session_factory) -> SessionGateway:
    """A gateway with empty presence tables reading from the test database."""

    return build_gateway(session_factory)


@pytest.fixture()
def client(session_factory, gateway) -> Iterator[TestClient]:
    """Yield a FastAPI TestClient with database and gateway dependencies overridden."""

    def override_get_db() -> Iterator[Session]:
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_gateway] = lambda: gateway
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
