import os

# Settings are read at import time
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["JWT_SECRET"] = "test-secret"
os.environ["JWT_AUDIENCE"] = "authenticated"
os.environ["PROVISION_BACKOFF_SECONDS"] = "0"

import pytest
from fastapi.testclient import TestClient
from jose import jwt
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from timbel.config.settings import Settings
from timbel.database import Base, SessionLocal, get_db
from timbel.models import Department, Team, User, UserRole

engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
# Timed reads and the push channel open their own sessions
SessionLocal.configure(bind=engine)


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
def org(db):
    """Two departments: D1 with teams T1 and T2, D2 with team T3"""
    d1 = Department(id="D1", name="Engineering")
    d2 = Department(id="D2", name="Sales")
    db.add_all([d1, d2])
    db.flush()
    db.add_all([
        Team(id="T1", name="Platform", department_id="D1"),
        Team(id="T2", name="Product", department_id="D1"),
        Team(id="T3", name="Domestic", department_id="D2"),
    ])
    db.commit()
    return {"departments": ["D1", "D2"], "teams": ["T1", "T2", "T3"]}


@pytest.fixture
def make_user(db):
    def _make_user(user_id, role=UserRole.MEMBER, department_id=None, team_id=None, full_name=None):
        user = User(
            id=user_id,
            email=f"{user_id}@example.com",
            full_name=full_name or user_id.capitalize(),
            role=role.value if isinstance(role, UserRole) else role,
            department_id=department_id,
            team_id=team_id,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user
    return _make_user


@pytest.fixture
def people(org, make_user):
    """A small organization covering every role"""
    return {
        "super": make_user("super", UserRole.SUPER),
        "admin": make_user("admin", UserRole.ADMIN, "D2", "T3"),
        "manager": make_user("manager", UserRole.MANAGER, "D1", "T1"),
        "leader": make_user("leader", UserRole.TEAM_LEADER, "D1", "T1"),
        "alice": make_user("alice", UserRole.MEMBER, "D1", "T1"),
        "bob": make_user("bob", UserRole.MEMBER, "D1", "T2"),
        "carol": make_user("carol", UserRole.MEMBER, "D2", "T3"),
    }


def make_token(user_id, email=None, full_name=None, audience="authenticated", secret="test-secret"):
    claims = {
        "sub": user_id,
        "email": email or f"{user_id}@example.com",
        "aud": audience,
        "role": "authenticated",
    }
    if full_name:
        claims["user_metadata"] = {"full_name": full_name}
    return jwt.encode(claims, secret, algorithm=Settings.JWT_ALGORITHM)


def auth_headers(user_id, **kwargs):
    return {"Authorization": f"Bearer {make_token(user_id, **kwargs)}"}


@pytest.fixture
def client(db):
    from main import app

    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def headers():
    return auth_headers


@pytest.fixture
def token():
    return make_token
