import os

# Must be set before the application modules read their configuration
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["DB_LOG_SLOW_QUERIES"] = "false"
os.environ["REDIS_URL"] = ""
os.environ.setdefault("SECRET_KEY", "test-secret-key")

import datetime as dt
import itertools
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from medibook.auth import issue_token
from medibook.database import Base, enable_sqlite_foreign_keys, get_db
from medibook.main import app
from medibook.models import Doctor, Role, Timeslot, TimeslotStatus, User
from medibook.rate_limiter import reset_rate_limits
from medibook.security_utils import hash_password

engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
enable_sqlite_foreign_keys(engine)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

DEFAULT_PASSWORD = "password123"


@pytest.fixture
def db():
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def client(db):
    def override_get_db():
        session = TestingSessionLocal()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    reset_rate_limits()
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def make_user(db):
    counter = itertools.count(1)

    def _make(role=Role.customer, name=None, email=None, password=DEFAULT_PASSWORD):
        n = next(counter)
        user = User(
            name=name or f"{role.value.title()} {n}",
            email=email or f"{role.value}{n}@example.com",
            password_hash=hash_password(password),
            role=role,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _make


@pytest.fixture
def make_doctor(db, make_user):
    def _make(user=None, **overrides):
        user = user or make_user(Role.doctor)
        fields = {
            "specialty": "Cardiology",
            "degree": "MD",
            "experience": 10,
            "fees": Decimal("150.00"),
            "address_line1": "1 Main St",
            "city": "Springfield",
            "state": "IL",
            "postal_code": "62701",
        }
        fields.update(overrides)
        doctor = Doctor(user_id=user.id, **fields)
        db.add(doctor)
        db.commit()
        db.refresh(doctor)
        return doctor

    return _make


@pytest.fixture
def make_timeslot(db):
    def _make(
        doctor,
        date=dt.date(2030, 1, 15),
        start=dt.time(9, 0),
        end=dt.time(10, 0),
        status=TimeslotStatus.available,
    ):
        timeslot = Timeslot(
            doctor_id=doctor.id, date=date, start_time=start, end_time=end, status=status
        )
        db.add(timeslot)
        db.commit()
        db.refresh(timeslot)
        return timeslot

    return _make


@pytest.fixture
def auth_headers():
    def _headers(user):
        return {"Authorization": f"Bearer {issue_token(user.id, user.role)}"}

    return _headers


@pytest.fixture
def admin(make_user):
    return make_user(Role.admin)


@pytest.fixture
def customer(make_user):
    return make_user(Role.customer)
