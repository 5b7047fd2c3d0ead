"""
Test configuration and fixtures.

Every test gets its own SQLite file so storage-backed tests stay isolated and
worker-thread aggregations can open sessions of their own.
"""
import os
import tempfile
import uuid
from dataclasses import dataclass

# Settings are read at import time; point them at a scratch database first.
os.environ.setdefault(
    "DATABASE_URL",
    "sqlite:///" + os.path.join(tempfile.gettempdir(), "device_history_test.db"),
)

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

from device_history.database import Base, build_engine, get_db
from device_history.dependencies import get_session_factory
from device_history.main import app
from device_history.models import Department, Domain, User


@dataclass
class Directory:
    """Seeded organization: two domains, one department and four users."""
    acme: Domain
    globex: Domain
    ops: Department
    admin: User
    alice: User
    bob: User
    carol: User


@pytest.fixture
def engine(tmp_path):
    """Engine bound to a fresh SQLite file with all tables created."""
    test_engine = build_engine(f"sqlite:///{tmp_path / 'history.db'}")
    Base.metadata.create_all(bind=test_engine)
    yield test_engine
    test_engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db_session(session_factory):
    """Database session for a single test."""
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def directory(db_session) -> Directory:
    acme = Domain(id=uuid.uuid4(), name="acme")
    globex = Domain(id=uuid.uuid4(), name="globex")
    ops = Department(id=uuid.uuid4(), domain_id=acme.id, name="ops")
    db_session.add_all([acme, globex, ops])
    db_session.flush()

    admin = User(id=uuid.uuid4(), username="root", role="superAdmin", domain_id=acme.id)
    alice = User(id=uuid.uuid4(), username="alice", role="user", domain_id=acme.id, department_id=ops.id)
    bob = User(id=uuid.uuid4(), username="bob", role="user", domain_id=acme.id, department_id=ops.id)
    carol = User(id=uuid.uuid4(), username="carol", role="user", domain_id=globex.id)
    db_session.add_all([admin, alice, bob, carol])
    db_session.commit()
    return Directory(acme, globex, ops, admin, alice, bob, carol)


@pytest.fixture
def client(session_factory):
    """
    API client wired to the test database.
    
    Each request gets its own session, as it would in production.
    """
    def _get_test_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = _get_test_db
    app.dependency_overrides[get_session_factory] = lambda: session_factory
    yield TestClient(app)
    app.dependency_overrides.clear()
