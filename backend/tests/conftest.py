"""
Test configuration and shared fixtures for the practice portal test suite.

Each test gets its own in-memory SQLite database built from the models, so
tests are isolated without needing a PostgreSQL server.
"""

import os
from contextlib import contextmanager
from typing import Generator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

# Keep external services switched off regardless of the developer's shell
os.environ["RESEND_API_KEY"] = ""
os.environ["MODEL_GATEWAY_API_KEY"] = ""
os.environ["INVITATION_SWEEP_ENABLED"] = "false"
os.environ["DATABASE_URL"] = "sqlite://"

from core.database import Base, get_db, get_session_factory
import models  # noqa: F401  (registers all tables)
import services  # noqa: F401  (registers change feed listeners)
from services.change_feed import change_feed


@pytest.fixture(scope="function")
def db_engine():
    """
    Create a fresh database schema for one test.

    Defaults to in-memory SQLite; set TEST_DATABASE_URL to run against
    PostgreSQL. StaticPool keeps a single SQLite connection so every session
    (and the TestClient's worker threads) sees the same database.
    """
    test_database_url = os.getenv("TEST_DATABASE_URL")
    if test_database_url:
        engine = create_engine(test_database_url, echo=False)
    else:
        engine = create_engine(
            "sqlite://",
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
            echo=False,
        )
    Base.metadata.create_all(bind=engine)

    yield engine

    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture(scope="function")
def session_factory(db_engine):
    return sessionmaker(bind=db_engine, autoflush=False, expire_on_commit=False)


@pytest.fixture(scope="function")
def db_session(session_factory) -> Generator[Session, None, None]:
    """Provide a database session for a test."""
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def client(session_factory) -> Generator[TestClient, None, None]:
    """
    Create a test client whose requests use the test database.

    Every request gets its own session, as in production.
    """
    from main import app

    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_session_factory] = lambda: session_factory
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.pop(get_db, None)
        app.dependency_overrides.pop(get_session_factory, None)


@pytest.fixture
def db_context(session_factory):
    """Replacement for core.database.get_db_context bound to the test database."""
    @contextmanager
    def _context():
        session = session_factory()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    return _context


@pytest.fixture(autouse=True)
def reset_change_feed():
    """Drop any subscriptions a test left behind."""
    yield
    for subscription in list(change_feed._subscriptions):
        subscription.unsubscribe()
