# tests/conftest.py
"""
Shared fixtures. Engine tests run against a real file-backed SQLite database
so row versions, the partial unique index and concurrent sessions behave as
they do in production.
"""

import sys
import os
import tempfile
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

_TMP_DIR = tempfile.mkdtemp(prefix="gatepass-tests-")
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_TMP_DIR, 'test.db')}"
os.environ["LOG_DIR"] = os.path.join(_TMP_DIR, "logs")
os.environ.pop("API_KEY", None)
os.environ.pop("NOTIFY_WEBHOOK_URL", None)
os.environ.pop("BADGE_RENDERER_URL", None)

import pytest
from datetime import datetime, timedelta
from app.database import Base, SessionLocal, engine
from app.models import User, Visitor, Pass, CheckLog, Appointment  # noqa


@pytest.fixture
def db():
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def make_user(db):
    counter = {"n": 0}

    def _make(role="employee", name=None, is_active=True):
        counter["n"] += 1
        user = User(
            name=name or f"{role.title()} {counter['n']}",
            email=f"{role}{counter['n']}@example.com",
            role=role,
            is_active=is_active,
            created_at=datetime.utcnow(),
        )
        db.add(user)
        db.commit()
        return user

    return _make


@pytest.fixture
def admin(make_user):
    return make_user("admin")


@pytest.fixture
def guard(make_user):
    return make_user("security")


@pytest.fixture
def host(make_user):
    return make_user("employee")


@pytest.fixture
def make_visitor(db, host):
    def _make(status="pending", host_user=None, name="Jane Visitor"):
        now = datetime.utcnow()
        visitor = Visitor(
            name=name,
            email=f"{name.split()[0].lower()}@visitor.example.com",
            phone="+15550000000",
            company="Acme",
            purpose="Meeting",
            host_id=(host_user or host).id,
            status=status,
            expected_arrival=now,
            expected_departure=now + timedelta(hours=4),
            created_at=now,
            updated_at=now,
        )
        db.add(visitor)
        db.commit()
        return visitor

    return _make


@pytest.fixture
def approved_visitor(make_visitor):
    return make_visitor("approved")
