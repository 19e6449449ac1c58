"""Tests for session-cookie authentication and actor resolution."""

import pytest
from httpx import AsyncClient, ASGITransport

from app.core.deps import COOKIE_NAME
from app.core.errors import ForbiddenError
from app.core.policies import REASON_NO_ROLE
from app.core.security import create_session_token
from app.db.enums import Role
from app.main import app
from app.services import actor_service

from conftest import make_user


def test_actor_from_user(contractor_a_user, company_a):
    actor = actor_service.actor_from_user(contractor_a_user)
    assert actor.id == contractor_a_user.id
    assert actor.role == Role.CONTRACTOR
    assert actor.company_id == company_a.id


def test_actor_is_immutable(contractor_a):
    with pytest.raises(Exception):
        contractor_a.company_id = None


def test_user_without_role_is_forbidden(db):
    user = make_user(db, None)
    with pytest.raises(ForbiddenError) as exc_info:
        actor_service.actor_from_user(user)
    assert exc_info.value.reason == REASON_NO_ROLE


@pytest.mark.asyncio
async def test_missing_cookie_is_401(client: AsyncClient):
    response = await client.get("/tickets")
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_invalid_token_is_401(client: AsyncClient):
    client.cookies.set(COOKIE_NAME, "not-a-jwt")
    response = await client.get("/auth/me")
    assert response.status_code == 401
    assert response.json()["detail"] == "Invalid session"


@pytest.mark.asyncio
async def test_me_returns_role_and_company(client_for, contractor_a_user, company_a):
    response = await client_for(contractor_a_user).get("/auth/me")
    assert response.status_code == 200
    data = response.json()
    assert data["role"] == "CONTRACTOR"
    assert data["company_id"] == str(company_a.id)
    assert data["email"] == contractor_a_user.email


@pytest.mark.asyncio
async def test_revoked_token_version_is_401(db, client_for, manager_user):
    api = client_for(manager_user)
    manager_user.token_version += 1
    db.commit()

    response = await api.get("/auth/me")
    assert response.status_code == 401
    assert response.json()["detail"] == "Session revoked"


@pytest.mark.asyncio
async def test_inactive_user_is_401(db, client_for, manager_user):
    api = client_for(manager_user)
    manager_user.is_active = False
    db.commit()

    response = await api.get("/tickets")
    assert response.status_code == 401
    assert response.json()["detail"] == "Account disabled"


@pytest.mark.asyncio
async def test_pending_user_gets_no_role_reason(db, client_for):
    response = await client_for(make_user(db, None)).get("/tickets")
    assert response.status_code == 403
    assert response.json() == {"detail": REASON_NO_ROLE, "code": "forbidden"}


@pytest.mark.asyncio
async def test_mutation_requires_csrf_header(db, client_for, manager_user):
    # client_for installs the get_db override; this client omits the CSRF header
    token = create_session_token(manager_user.id, manager_user.token_version)
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
        cookies={COOKIE_NAME: token},
    ) as c:
        response = await c.post("/companies", json={"name": "No CSRF"})
    assert response.status_code == 403
    assert "CSRF" in response.json()["detail"]
