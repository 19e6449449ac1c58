"""
Test configuration and fixtures.

Provides:
- SQLite in-memory database, schema created per test
- Companies, crews, a storm session and an issue type
- Users and Actors for every role
- HTTPX AsyncClient factory with session cookie and CSRF header
"""
import os
import uuid
from typing import AsyncGenerator, Generator

import pytest

os.environ["TESTING"] = "1"
os.environ.setdefault("ENV", "test")
os.environ.setdefault("DATABASE_URL", "sqlite+pysqlite:///:memory:")

from httpx import AsyncClient, ASGITransport
from sqlalchemy.orm import Session

from app.main import app
from app.core.deps import COOKIE_NAME, CSRF_HEADER, CSRF_HEADER_VALUE, get_db
from app.core.security import create_session_token
from app.db.base import Base
from app.db.enums import Role, TicketPriority
from app.db.models import Company, Crew, IssueType, StormSession, User
from app.db.session import SessionLocal, engine
from app.schemas.auth import Actor
from app.services import actor_service, ticketing_service


# =============================================================================
# Database Fixtures
# =============================================================================

@pytest.fixture(scope="function")
def db() -> Generator[Session, None, None]:
    """
    Fresh schema per test.

    App code commits freely; dropping all tables afterwards isolates tests.
    """
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def company_a(db: Session) -> Company:
    company = Company(name="Alpha Line Services")
    db.add(company)
    db.commit()
    return company


@pytest.fixture
def company_b(db: Session) -> Company:
    company = Company(name="Bravo Electric")
    db.add(company)
    db.commit()
    return company


@pytest.fixture
def crew_a1(db: Session, company_a: Company) -> Crew:
    crew = Crew(company_id=company_a.id, name="Alpha 1", crew_lead="J. Rivera")
    db.add(crew)
    db.commit()
    return crew


@pytest.fixture
def crew_a2(db: Session, company_a: Company) -> Crew:
    crew = Crew(company_id=company_a.id, name="Alpha 2")
    db.add(crew)
    db.commit()
    return crew


@pytest.fixture
def crew_b1(db: Session, company_b: Company) -> Crew:
    crew = Crew(company_id=company_b.id, name="Bravo 1")
    db.add(crew)
    db.commit()
    return crew


@pytest.fixture
def storm_session(db: Session) -> StormSession:
    storm_session = StormSession(name="Hurricane Test")
    db.add(storm_session)
    db.commit()
    return storm_session


@pytest.fixture
def issue_type(db: Session) -> IssueType:
    issue_type = IssueType(name="Wire Down", code="WIRE_DOWN", default_priority=TicketPriority.P1.value)
    db.add(issue_type)
    db.commit()
    return issue_type


# =============================================================================
# Users & Actors
# =============================================================================

def make_user(db: Session, role: Role | None, company: Company | None = None) -> User:
    user = User(
        id=uuid.uuid4(),
        email=f"{(role.value if role else 'pending').lower()}-{uuid.uuid4().hex[:8]}@test.com",
        first_name="Test",
        last_name=role.value.title() if role else "Pending",
        role=role.value if role else None,
        company_id=company.id if company else None,
        token_version=1,
        is_active=True,
    )
    db.add(user)
    db.commit()
    return user


@pytest.fixture
def admin_user(db: Session) -> User:
    return make_user(db, Role.ADMIN)


@pytest.fixture
def manager_user(db: Session) -> User:
    return make_user(db, Role.MANAGER)


@pytest.fixture
def utility_user(db: Session) -> User:
    return make_user(db, Role.UTILITY)


@pytest.fixture
def contractor_a_user(db: Session, company_a: Company) -> User:
    return make_user(db, Role.CONTRACTOR, company_a)


@pytest.fixture
def contractor_b_user(db: Session, company_b: Company) -> User:
    return make_user(db, Role.CONTRACTOR, company_b)


@pytest.fixture
def admin(admin_user: User) -> Actor:
    return actor_service.actor_from_user(admin_user)


@pytest.fixture
def manager(manager_user: User) -> Actor:
    return actor_service.actor_from_user(manager_user)


@pytest.fixture
def utility(utility_user: User) -> Actor:
    return actor_service.actor_from_user(utility_user)


@pytest.fixture
def contractor_a(contractor_a_user: User) -> Actor:
    return actor_service.actor_from_user(contractor_a_user)


@pytest.fixture
def contractor_b(contractor_b_user: User) -> Actor:
    return actor_service.actor_from_user(contractor_b_user)


# =============================================================================
# Ticket Fixtures
# =============================================================================

@pytest.fixture
def ticket(db: Session, manager: Actor, storm_session: StormSession, issue_type: IssueType):
    """A fresh, unassigned ticket in CREATED."""
    return ticketing_service.create_ticket(
        db,
        actor=manager,
        session_id=storm_session.id,
        issue_type_id=issue_type.id,
        title="Primary down on Elm St",
        address_text="100 Elm St",
    )


# =============================================================================
# Client Fixtures
# =============================================================================

@pytest.fixture(scope="function")
async def client(db: Session) -> AsyncGenerator[AsyncClient, None]:
    """
    Create unauthenticated AsyncClient for testing public endpoints.
    """
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test"
    ) as c:
        yield c

    app.dependency_overrides.clear()


@pytest.fixture(scope="function")
async def client_for(db: Session):
    """
    Factory for authenticated AsyncClients with session cookie and CSRF header.

    Usage:
        api = client_for(manager_user)
        await api.get("/tickets")
    """
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    clients: list[AsyncClient] = []

    def _make(user: User) -> AsyncClient:
        token = create_session_token(user.id, user.token_version)
        c = AsyncClient(
            transport=ASGITransport(app=app),
            base_url="http://test",
            cookies={COOKIE_NAME: token},
            headers={CSRF_HEADER: CSRF_HEADER_VALUE},
        )
        clients.append(c)
        return c

    yield _make

    for c in clients:
        await c.aclose()
    app.dependency_overrides.clear()
