from __future__ import annotations

from dataclasses import dataclass

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from greythr.core.security import get_token_signer
from greythr.db.session import Base, get_session, get_session_factory
from greythr.domains.employees import service as employee_service
from greythr.main import app
from greythr.realtime.hub import ChannelHub

engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def override_get_session():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


app.dependency_overrides[get_session] = override_get_session
app.dependency_overrides[get_session_factory] = lambda: TestingSessionLocal


@dataclass
class Account:
    user_id: int
    employee_id: int
    name: str
    email: str
    role: str
    token: str

    @property
    def headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.token}"}


def create_account(
    name: str,
    email: str,
    role: str = "employee",
    department: str | None = "Engineering",
    password: str = "password",
) -> Account:
    with TestingSessionLocal() as db:
        user, employee = employee_service.create_user_with_employee(
            db, name=name, email=email, password=password, role=role, department=department
        )
        return Account(
            user_id=user.id,
            employee_id=employee.id,
            name=user.name,
            email=user.email,
            role=user.role,
            token=get_token_signer().issue(user.id, user.role),
        )


@pytest.fixture(autouse=True)
def reset_database():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    app.state.hub = ChannelHub()
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def client():
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def db():
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def admin() -> Account:
    return create_account("Admin User", "admin@greyhr.com", role="admin", department="Administration")


@pytest.fixture
def hr() -> Account:
    return create_account("HR User", "hr@greyhr.com", role="hr", department="Human Resources")


@pytest.fixture
def employee() -> Account:
    return create_account("Employee User", "employee@greyhr.com")


@pytest.fixture
def colleague() -> Account:
    return create_account("Grace Hopper", "grace@greyhr.com")


@pytest.fixture
def session_factory():
    return TestingSessionLocal
