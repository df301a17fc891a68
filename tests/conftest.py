"""
Pytest global configuration for the LMS Identity API.

- API tested in isolation with FastAPI's TestClient
- Database: throwaway SQLite file per test (aiosqlite for the app, plain
  sqlite3 for setup/seeding); the upsert uses the SQLite ON CONFLICT
  dialect the same way it uses PostgreSQL's in production
- Identity: StaticIdentityVerifier with a fixed token table
"""

import os

os.environ.setdefault("AUTH_VERIFIER", "static")
os.environ.setdefault("LOG_LEVEL", "WARNING")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import Session
from sqlalchemy.pool import NullPool

import lms_api.database.models  # noqa: F401 - registers all models in Base.metadata
import lms_api.database.session as db_session_module
from lms_api.api.main import app
from lms_api.core.auth import get_identity_verifier
from lms_api.core.identity import StaticIdentityVerifier
from lms_api.database.models.user import User
from lms_api.database.session import Base, get_db
from lms_api.utils.enums import UserRole

# ============================================================================
# IDENTITY
# ============================================================================

TOKENS = {
    "student-token": {"uid": "uid-student", "email": "student@example.com", "name": "Student"},
    "instructor-token": {"uid": "uid-instructor", "email": "instructor@example.com", "name": "Instructor"},
    "admin-token": {"uid": "uid-admin", "email": "admin@example.com", "name": "Admin"},
    "new-token": {
        "uid": "uid-new",
        "email": "new@example.com",
        "name": "New User",
        "picture": "https://example.com/new.png",
        "email_verified": True,
    },
    "signup-token": {"uid": "uid-signup", "email": "a@x.com", "name": "A"},
    "noemail-token": {"uid": "uid-phone"},
}


def auth(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def verifier():
    return StaticIdentityVerifier.from_claims(TOKENS)


# ============================================================================
# DATABASE FIXTURES
# ============================================================================

@pytest.fixture
def sync_engine(tmp_path):
    """Sync engine on a fresh SQLite file; creates and drops the schema."""
    engine = create_engine(f"sqlite:///{tmp_path / 'test.db'}")
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def test_db_engine(sync_engine):
    """Async engine on the same file, used by the app and service tests."""
    return create_async_engine(
        f"sqlite+aiosqlite:///{sync_engine.url.database}",
        poolclass=NullPool,
    )


@pytest.fixture
def session_factory(test_db_engine):
    return async_sessionmaker(
        test_db_engine,
        class_=AsyncSession,
        autoflush=False,
        expire_on_commit=False,
    )


@pytest.fixture
async def db_session(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def seed_user(sync_engine):
    """Insert a user row directly; returns its id."""

    def _seed(firebase_uid, email, role=UserRole.STUDENT, is_active=True, **fields):
        with Session(sync_engine, expire_on_commit=False) as session:
            user = User(
                firebase_uid=firebase_uid,
                email=email,
                role=role,
                is_active=is_active,
                **fields,
            )
            session.add(user)
            session.commit()
            return user.id

    return _seed


@pytest.fixture
def fetch_user(sync_engine):
    """Read a user row by email straight from the database."""

    def _fetch(email):
        with Session(sync_engine, expire_on_commit=False) as session:
            return session.query(User).filter(User.email == email).one_or_none()

    return _fetch


@pytest.fixture
def count_users(sync_engine):
    def _count():
        with Session(sync_engine) as session:
            return session.query(User).count()

    return _count


# ============================================================================
# FASTAPI CLIENT
# ============================================================================

@pytest.fixture
def test_client(test_db_engine, session_factory, verifier, monkeypatch):
    """
    TestClient wired to the SQLite database and the static verifier.

    Lifespan is not run (no Firebase, no PostgreSQL); the dependencies it
    would provide are overridden instead.
    """

    async def override_get_db():
        session = session_factory()
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_identity_verifier] = lambda: verifier
    monkeypatch.setattr(db_session_module, "async_engine", test_db_engine)

    client = TestClient(app, raise_server_exceptions=False)
    yield client

    app.dependency_overrides.clear()


@pytest.fixture
def student(seed_user):
    return seed_user("uid-student", "student@example.com", name="Student")


@pytest.fixture
def instructor(seed_user):
    return seed_user("uid-instructor", "instructor@example.com", role=UserRole.INSTRUCTOR)


@pytest.fixture
def admin(seed_user):
    return seed_user("uid-admin", "admin@example.com", role=UserRole.ADMIN)
