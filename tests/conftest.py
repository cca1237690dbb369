"""
Shared fixtures: an in-memory SQLite database behind the app's get_db
dependency, seeded users and cases, and logged-in TestClients.
"""
import os

os.environ["DATABASE_URL"] = "sqlite://"
os.environ.setdefault("SESSION_SECRET", "test-secret")

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from database import Base, get_db  # noqa: E402
from main import app  # noqa: E402
from models import Case, User, UserRole  # noqa: E402
from routers.auth import get_password_hash  # noqa: E402

PASSWORD = "123456"
PASSWORD_HASH = get_password_hash(PASSWORD)

engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db_session():
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def client(db_session):
    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


def _make_user(db, username: str, role: UserRole) -> User:
    user = User(username=username, password_hash=PASSWORD_HASH, role=role.value)
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture
def student(db_session) -> User:
    return _make_user(db_session, "brandon", UserRole.STUDENT)


@pytest.fixture
def other_student(db_session) -> User:
    return _make_user(db_session, "maria", UserRole.STUDENT)


@pytest.fixture
def professor(db_session) -> User:
    return _make_user(db_session, "dr_lee", UserRole.PROFESSOR)


@pytest.fixture
def make_case(db_session):
    def _make_case(name: str = "Blurry vision at distance") -> Case:
        case = Case(case_name=name, instructions="Work up the patient.", created_by="dr_lee")
        db_session.add(case)
        db_session.commit()
        db_session.refresh(case)
        return case

    return _make_case


@pytest.fixture
def login(client):
    """Log a user in on a fresh client so several users can act side by side."""

    def _login(user: User) -> TestClient:
        user_client = TestClient(app)
        response = user_client.post(f"/auth/{user.role}", json={"username": user.username, "password": PASSWORD})
        assert response.status_code == 200, response.text
        return user_client

    return _login


@pytest.fixture
def student_client(login, student) -> TestClient:
    return login(student)


@pytest.fixture
def professor_client(login, professor) -> TestClient:
    return login(professor)
