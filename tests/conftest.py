import os
from datetime import date, timedelta

# The application engine is built at import time; keep it off PostgreSQL
os.environ["DATABASE_URL"] = "sqlite://"

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from clientdesk.core.database import Base, get_db
from clientdesk.core.security import create_access_token
from clientdesk.models.client import Client
from clientdesk.models.user import User
from clientdesk.schemas.project import ProjectCreate, ProjectMemberCreate
from clientdesk.services.project import ProjectService
from main import app

# Test database
SQLALCHEMY_DATABASE_URL = "sqlite://"

engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def override_get_db():
    try:
        db = TestingSessionLocal()
        yield db
    finally:
        db.close()


app.dependency_overrides[get_db] = override_get_db


def auth_headers(user: User) -> dict:
    token = create_access_token(subject=str(user.id))
    return {"Authorization": f"Bearer {token}"}


def make_user(db, username: str, role: str, **kwargs) -> User:
    user = User(
        email=f"{username}@example.com",
        username=username,
        full_name=kwargs.pop("full_name", username.replace("_", " ").title()),
        role=role,
        is_active=kwargs.pop("is_active", True),
        **kwargs,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture(scope="function")
def db():
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def admin(db):
    return make_user(db, "admin", "admin")


@pytest.fixture
def manager(db):
    return make_user(db, "manager", "project_manager")


@pytest.fixture
def other_manager(db):
    return make_user(db, "other_manager", "project_manager")


@pytest.fixture
def employee(db):
    return make_user(db, "employee", "employee")


@pytest.fixture
def outsider(db):
    return make_user(db, "outsider", "employee")


@pytest.fixture
def acme(db):
    record = Client(
        name="Jane Doe",
        company_name="Acme Corp",
        email="billing@acme.example.com",
        phone="555-0100",
    )
    db.add(record)
    db.commit()
    db.refresh(record)
    return record


@pytest.fixture
def client_user(db, acme):
    return make_user(db, "acme_contact", "client", client_id=acme.id)


@pytest.fixture
def make_project(db, admin, acme):
    def factory(manager_id: int, members=(), title: str = "Website Redesign", **kwargs):
        start = kwargs.pop("start_date", date.today())
        payload = ProjectCreate(
            title=title,
            client_id=acme.id,
            manager_id=manager_id,
            start_date=start,
            deadline=kwargs.pop("deadline", start + timedelta(days=30)),
            team_members=[ProjectMemberCreate(user_id=user_id) for user_id in members],
            **kwargs,
        )
        return ProjectService.create_project(db, payload, admin)

    return factory


@pytest.fixture
def project(make_project, manager, employee):
    return make_project(manager.id, members=[employee.id])
