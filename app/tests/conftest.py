import os

# settings are read once and cached; point them at an in-memory database first
os.environ["DATABASE_URL"] = "sqlite://"
os.environ.setdefault("JWT_SECRET_KEY", "test-secret")
os.environ.setdefault("ENVIRONMENT", "test")

import uuid
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

# FORCE model registration
import app.models  # noqa

from app.core.rate_limit import BID_POST_LIMITER
from app.core.security import create_access_token
from app.db.base import Base, utcnow
from app.db.session import get_db
from app.main import create_app
from app.models.bid import Bid
from app.models.enums import BidStatus, ProjectStatus, UserRole
from app.models.project import Project
from app.models.user import User
from app.policies.rbac import Principal

engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)


# PostgreSQL always enforces foreign keys; make SQLite do the same
@event.listens_for(engine, "connect")
def _enable_sqlite_fks(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


TestingSessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False)


@pytest.fixture(autouse=True)
def _reset_rate_limiter():
    BID_POST_LIMITER.reset()
    yield
    BID_POST_LIMITER.reset()


@pytest.fixture(scope="function")
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
    app = create_app()

    def override_get_db():
        s = TestingSessionLocal()
        try:
            yield s
        finally:
            s.close()

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as c:
        yield c


# ---------------------------------------------------------------------
# factories
# ---------------------------------------------------------------------


@pytest.fixture
def make_user(db):
    def _make(role: UserRole = UserRole.CUSTOMER, name: str = None) -> User:
        uid = uuid.uuid4()
        u = User(
            id=uid,
            name=name or f"{role.value} {uid.hex[:6]}",
            email=f"{uid.hex[:12]}@example.com",
            role=role.value,
        )
        db.add(u)
        db.commit()
        return u

    return _make


@pytest.fixture
def make_project(db):
    def _make(customer: User, status: ProjectStatus = ProjectStatus.IN_BIDDING, **fields) -> Project:
        now = utcnow()
        p = Project(
            id=uuid.uuid4(),
            customer_id=customer.id,
            title=fields.pop("title", "Test Project"),
            status=status.value,
            created_at=fields.pop("created_at", now),
            updated_at=now,
            **fields,
        )
        db.add(p)
        db.commit()
        return p

    return _make


@pytest.fixture
def make_bid(db):
    def _make(
        project: Project,
        merchant: User,
        price="1000.00",
        days: int = 10,
        status: BidStatus = BidStatus.pending,
    ) -> Bid:
        b = Bid(
            id=uuid.uuid4(),
            project_id=project.id,
            merchant_id=merchant.id,
            price=Decimal(price),
            days=days,
            status=status.value,
        )
        db.add(b)
        db.commit()
        return b

    return _make


def principal_for(user: User) -> Principal:
    return Principal(user_id=str(user.id), role=UserRole(user.role), display_name=user.name)


def auth_headers(user: User) -> dict:
    token = create_access_token(
        subject=str(user.id),
        claims={"role": user.role, "display_name": user.name},
    )
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def principal_of():
    return principal_for


@pytest.fixture
def headers_for():
    return auth_headers
