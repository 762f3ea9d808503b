"""
Shared fixtures.

- engine / db: SQLite in-memory (StaticPool) with all tables created
- client: FastAPI TestClient with get_db bound to the same engine
- make_enrollment / make_admin: helpers that go through the registrar
"""

import os

# prima di importare app.*: settings viene letto all'import
os.environ.setdefault("ENV", "test")
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("EMAIL_ENABLED", "0")
os.environ.setdefault("JWT_SECRET", "test-secret")

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from app import registrar  # noqa: E402
from app.db import get_db  # noqa: E402
from app.main import app  # noqa: E402
from models import Base  # noqa: E402
from models.enrollments import EnrollmentRole  # noqa: E402

ADMIN_PASSWORD = "admin-password-123"


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autocommit=False, autoflush=False)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def client(session_factory):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def sent_emails(monkeypatch):
    """Cattura le email di benvenuto / reset invece di inviarle."""
    outbox = []

    def fake_welcome(**kwargs):
        outbox.append(("welcome", kwargs))
        return True

    def fake_reset(**kwargs):
        outbox.append(("reset", kwargs))
        return True

    monkeypatch.setattr("routers.enrollments.send_welcome_email", fake_welcome)
    monkeypatch.setattr("routers.auth_enrollment.send_password_reset_email", fake_reset)
    return outbox


def enrollment_data(**overrides):
    data = {
        "first_name": "John",
        "last_name": "Smith",
        "email": "john@x.com",
        "sponsor_name": "Admin User",
        "package": "Entry Pack",
    }
    data.update(overrides)
    return data


@pytest.fixture
def make_enrollment(db):
    def _make(password=None, role=EnrollmentRole.USER, **overrides):
        created = registrar.create_enrollment(
            db, enrollment_data(**overrides), password=password, role=role
        )
        return created.enrollment

    return _make


@pytest.fixture
def admin(make_enrollment):
    return make_enrollment(
        first_name="Ada",
        last_name="Admin",
        email="admin@x.com",
        sponsor_name="Company",
        package="Pro Pack",
        password=ADMIN_PASSWORD,
        role=EnrollmentRole.ADMIN,
    )


def auth_header(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def admin_headers(client, admin):
    resp = client.post(
        "/api/enrollments/login",
        json={"email": "admin@x.com", "password": ADMIN_PASSWORD},
    )
    assert resp.status_code == 200, resp.text
    return auth_header(resp.json()["token"])
