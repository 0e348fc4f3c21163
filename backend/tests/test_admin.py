"""
Tests for agent management endpoints.
"""
import pytest
from sqlalchemy import select

from core.roles import ADMIN_ROLE, AGENT_ROLE, DEFAULT_ROLE
from db.models.user import User as UserModel

from conftest import auth_headers, create_user


async def _role_of(session, user_id):
    session.expire_all()
    return (await session.execute(select(UserModel.role).where(UserModel.id == user_id))).scalar_one()


class TestAdminAccess:
    """Only admins reach /admin routes."""

    @pytest.mark.asyncio
    async def test_anonymous_is_forbidden(self, async_client):
        response = await async_client.get("/admin/agents")
        assert response.status_code == 403
        assert response.json() == {"message": "Not authorized"}

    @pytest.mark.asyncio
    @pytest.mark.parametrize("role", [DEFAULT_ROLE, AGENT_ROLE])
    async def test_non_admin_is_forbidden(self, async_client, db_session, role):
        user = await create_user(db_session, role=role)
        response = await async_client.get("/admin/agents", headers=auth_headers(user))
        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_role_is_read_from_database(self, async_client, db_session):
        """A token minted while the user was admin stops working once they are demoted."""
        admin = await create_user(db_session, role=ADMIN_ROLE)
        headers = auth_headers(admin)
        admin.role = DEFAULT_ROLE
        await db_session.commit()

        response = await async_client.get("/admin/agents", headers=headers)
        assert response.status_code == 403


class TestAgents:
    """GET/POST/DELETE /admin/agents"""

    @pytest.mark.asyncio
    async def test_list_agents(self, async_client, db_session):
        admin = await create_user(db_session, role=ADMIN_ROLE)
        agent = await create_user(db_session, role=AGENT_ROLE)
        await create_user(db_session, role=DEFAULT_ROLE)

        response = await async_client.get("/admin/agents", headers=auth_headers(admin))
        assert response.status_code == 200
        agents = response.json()["agents"]
        assert [a["id"] for a in agents] == [agent.id]
        assert agents[0]["role"] == AGENT_ROLE
        assert agents[0]["createdAt"].endswith("Z")

    @pytest.mark.asyncio
    async def test_assign_agent(self, async_client, db_session):
        admin = await create_user(db_session, role=ADMIN_ROLE)
        user = await create_user(db_session, email="promote@example.com")

        response = await async_client.post("/admin/agents", json={"email": "Promote@Example.com"}, headers=auth_headers(admin))
        assert response.status_code == 200
        data = response.json()
        assert data["message"] == "promote@example.com is now an agent"
        assert data["agent"]["id"] == user.id
        assert await _role_of(db_session, user.id) == AGENT_ROLE

    @pytest.mark.asyncio
    async def test_assign_is_idempotent(self, async_client, db_session):
        admin = await create_user(db_session, role=ADMIN_ROLE)
        await create_user(db_session, email="agent@example.com", role=AGENT_ROLE)

        response = await async_client.post("/admin/agents", json={"email": "agent@example.com"}, headers=auth_headers(admin))
        assert response.status_code == 200
        assert response.json()["message"] == "agent@example.com is already an agent"

    @pytest.mark.asyncio
    async def test_assign_unknown_email(self, async_client, db_session):
        admin = await create_user(db_session, role=ADMIN_ROLE)
        response = await async_client.post("/admin/agents", json={"email": "ghost@example.com"}, headers=auth_headers(admin))
        assert response.status_code == 404
        assert response.json()["message"] == "No user found with email: ghost@example.com"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("body", [{}, {"email": "   "}, {"email": "nope"}])
    async def test_assign_bad_email(self, async_client, db_session, body):
        admin = await create_user(db_session, role=ADMIN_ROLE)
        response = await async_client.post("/admin/agents", json=body, headers=auth_headers(admin))
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_admin_cannot_become_agent(self, async_client, db_session):
        admin = await create_user(db_session, role=ADMIN_ROLE)
        other = await create_user(db_session, email="boss@example.com", role=ADMIN_ROLE)

        response = await async_client.post("/admin/agents", json={"email": "boss@example.com"}, headers=auth_headers(admin))
        assert response.status_code == 400
        assert await _role_of(db_session, other.id) == ADMIN_ROLE

    @pytest.mark.asyncio
    async def test_revoke_agent(self, async_client, db_session):
        admin = await create_user(db_session, role=ADMIN_ROLE)
        agent = await create_user(db_session, email="agent@example.com", role=AGENT_ROLE)

        response = await async_client.delete(f"/admin/agents/{agent.id}", headers=auth_headers(admin))
        assert response.status_code == 200
        assert response.json()["message"] == "agent@example.com is no longer an agent"
        assert await _role_of(db_session, agent.id) == DEFAULT_ROLE

    @pytest.mark.asyncio
    async def test_revoke_plain_user(self, async_client, db_session):
        admin = await create_user(db_session, role=ADMIN_ROLE)
        user = await create_user(db_session)
        response = await async_client.delete(f"/admin/agents/{user.id}", headers=auth_headers(admin))
        assert response.status_code == 200
        assert response.json()["message"] == "User is not currently an agent"

    @pytest.mark.asyncio
    async def test_revoke_admin_refused(self, async_client, db_session):
        admin = await create_user(db_session, role=ADMIN_ROLE)
        response = await async_client.delete(f"/admin/agents/{admin.id}", headers=auth_headers(admin))
        assert response.status_code == 400
        assert response.json()["message"] == "Administrators cannot be downgraded"

    @pytest.mark.asyncio
    async def test_revoke_unknown_user(self, async_client, db_session):
        admin = await create_user(db_session, role=ADMIN_ROLE)
        response = await async_client.delete("/admin/agents/does-not-exist", headers=auth_headers(admin))
        assert response.status_code == 404
