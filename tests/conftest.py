"""Pytest configuration and shared fixtures."""

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

from dna.config import DEFAULT_DNA, DNAConfigCache
from erp.api.deps import get_db, get_dna_cache, get_dna_config
from erp.api.main import app
from erp.db.session import init_db, make_engine

from tests.factories import create_user


@pytest.fixture
def engine(tmp_path):
    """SQLite file database per test, with all tables created."""
    engine = make_engine(f"sqlite:///{tmp_path / 'erp-test.db'}")
    init_db(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


@pytest.fixture
def db_session(session_factory):
    """A session on the test database; uncommitted work is rolled back."""
    session = session_factory()
    yield session
    session.rollback()
    session.close()


@pytest.fixture
def dna_config():
    """DNA configuration in effect for a test (built-in defaults)."""
    return DEFAULT_DNA


@pytest.fixture
def users(db_session):
    """One committed user per role, keyed by lowercase role name."""
    created = {
        "staff": create_user(db_session, email="staff@example.com", name="John Staff", role="STAFF"),
        "manager": create_user(db_session, email="manager@example.com", name="Jane Manager", role="MANAGER"),
        "director": create_user(db_session, email="director@example.com", name="Bob Director", role="DIRECTOR"),
        "ceo": create_user(db_session, email="ceo@example.com", name="Alice CEO", role="CEO"),
    }
    db_session.commit()
    return created


@pytest.fixture
def client(session_factory, dna_config):
    """API client bound to the test database and DNA configuration.

    The app lifespan does not run, so nothing touches the configured
    database or DNA file.
    """
    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_dna_config] = lambda: dna_config
    app.dependency_overrides[get_dna_cache] = lambda: DNAConfigCache(None, dna_config)
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
