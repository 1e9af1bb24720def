"""
Pytest fixtures for testing
"""
from datetime import date

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, JSON
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.pool import StaticPool

from ourlittleworld.auth import hash_password
from ourlittleworld.infrastructure.db.session import Base, get_db
from ourlittleworld.infrastructure.db.models import Couple, User

PASSWORD = "secret123"


@pytest.fixture
def db_engine():
    """In-memory SQLite engine for tests, with JSONB remapped to JSON.

    StaticPool keeps a single connection so the TestClient threadpool sees the same database.
    """
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    # SQLite has no JSONB; remap to JSON for tests
    for table in Base.metadata.tables.values():
        for col in table.columns:
            if isinstance(col.type, JSONB):
                col.type = JSON()
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return sessionmaker(bind=db_engine)


@pytest.fixture
def db_session(session_factory) -> Session:
    """Create database session for tests"""
    session = session_factory()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


def make_user(db: Session, email: str, full_name: str | None = None, couple: Couple | None = None) -> User:
    user = User(
        email=email,
        password_hash=hash_password(PASSWORD),
        full_name=full_name,
        couple_id=couple.id if couple else None,
    )
    db.add(user)
    db.commit()
    return user


@pytest.fixture
def couple(db_session) -> Couple:
    world = Couple(
        invite_code="ABCD2345",
        couple_name="Our Little World",
        start_date=date(2024, 1, 1),
        partner_1_nickname="Bear",
        world_theme="blush",
    )
    db_session.add(world)
    db_session.commit()
    return world


@pytest.fixture
def partner_a(db_session, couple) -> User:
    return make_user(db_session, "alex@example.com", "Alex", couple)


@pytest.fixture
def partner_b(db_session, couple) -> User:
    return make_user(db_session, "sam@example.com", "Sam", couple)


@pytest.fixture
def outsider(db_session) -> User:
    """Member of a different world"""
    other = Couple(invite_code="ZZZZ9999", couple_name="Elsewhere")
    db_session.add(other)
    db_session.commit()
    return make_user(db_session, "olly@example.com", "Olly", other)


@pytest.fixture
def app(session_factory):
    """FastAPI app whose get_db yields sessions on the test engine"""
    from ourlittleworld.main import create_app

    application = create_app()

    def _get_test_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    application.dependency_overrides[get_db] = _get_test_db
    return application


@pytest.fixture
def client(app):
    """Test client for FastAPI"""
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def login(client):
    """login(email) signs the test client in as that user"""
    def _login(email: str, password: str = PASSWORD) -> None:
        response = client.post("/api/v1/auth/login", json={"email": email, "password": password})
        assert response.status_code == 200, response.text
    return _login


@pytest.fixture
def user_factory(db_session):
    def _make(email: str, full_name: str | None = None, couple: Couple | None = None) -> User:
        return make_user(db_session, email, full_name, couple)
    return _make
