import os
import sys
import tempfile
from datetime import time

PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

# Must be set before residence_service is imported anywhere.
_TMP_DIR = tempfile.mkdtemp(prefix="residence-tests-")
os.environ["DATABASE_URL"] = os.getenv(
    "TEST_DATABASE_URL", "sqlite:///" + os.path.join(_TMP_DIR, "residence_test.db")
)
os.environ["UPLOAD_DIR"] = os.path.join(_TMP_DIR, "uploads")
os.environ["TESTING"] = "1"
os.environ.pop("REDIS_URL", None)

import pytest

from residence_service import models
from residence_service.database import Base, SessionLocal, engine


@pytest.fixture(autouse=True)
def reset_db():
    """
    Drop & recreate all tables around each test.
    """
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def make_user():
    """
    Factory inserting a user straight into the database.

    The password hash is a placeholder; tests that log in go through
    /auth/register instead.
    """
    counter = {"n": 0}

    def _make(role=models.UserRole.RESIDENT, is_active=True, first_name="Test"):
        counter["n"] += 1
        session = SessionLocal()
        try:
            user = models.User(
                email=f"{role.value}{counter['n']}@example.com",
                password_hash="not-a-real-hash",
                first_name=first_name,
                last_name=f"User{counter['n']}",
                role=role,
                apartment_number=f"A-{counter['n']}",
                is_active=is_active,
            )
            session.add(user)
            session.commit()
            session.refresh(user)
            return user
        finally:
            session.close()

    return _make


@pytest.fixture
def make_facility():
    counter = {"n": 0}

    def _make(
        name=None,
        requires_approval=False,
        opens=time(8, 0),
        closes=time(20, 0),
        is_active=True,
        capacity=10,
    ):
        counter["n"] += 1
        session = SessionLocal()
        try:
            facility = models.Facility(
                name=name or f"Facility {counter['n']}",
                capacity=capacity,
                requires_approval=requires_approval,
                operating_hours_start=opens,
                operating_hours_end=closes,
                is_active=is_active,
            )
            session.add(facility)
            session.commit()
            session.refresh(facility)
            return facility
        finally:
            session.close()

    return _make
