import os

os.environ.setdefault('DATABASE_URL', 'sqlite:///:memory:')
os.environ.setdefault('BCRYPT_ROUNDS', '4')

from datetime import datetime, timezone  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from backend.auth.dependencies import get_session_manager  # noqa: E402
from backend.auth.service import AuthService  # noqa: E402
from backend.auth.sessions import InMemorySessionStore, SessionManager  # noqa: E402
from backend.auth.user_store import UserProfile  # noqa: E402
from backend.database import Base, get_db  # noqa: E402
from backend.models.user import User  # noqa: E402


def make_profile(**overrides) -> UserProfile:
    fields = {
        'fullname': 'A B',
        'email': 'A@X.com',
        'phone': '1',
        'cet_roll_number': 'R1',
        'category': 'C1',
    }
    fields.update(overrides)
    return UserProfile(**fields)


class FakeClock:
    def __init__(self, start) -> None:
        self.now = start

    def __call__(self):
        return self.now


@pytest.fixture
def user_engine():
    engine = create_engine(
        'sqlite://',
        connect_args={'check_same_thread': False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine, tables=[User.__table__])
    try:
        yield engine
    finally:
        Base.metadata.drop_all(bind=engine, tables=[User.__table__])
        engine.dispose()


@pytest.fixture
def session_factory(user_engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=user_engine)


@pytest.fixture
def user_db(session_factory):
    db = session_factory()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def session_manager() -> SessionManager:
    return SessionManager(InMemorySessionStore(), ttl_seconds=24 * 60 * 60)


@pytest.fixture
def auth_service(user_db, session_manager) -> AuthService:
    return AuthService(user_db, session_manager)


@pytest.fixture
def client(session_factory, session_manager):
    from backend.main import app

    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_session_manager] = lambda: session_manager
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def profile_factory():
    return make_profile


@pytest.fixture
def fake_clock():
    return FakeClock(datetime(2026, 1, 5, 9, 0, tzinfo=timezone.utc))
