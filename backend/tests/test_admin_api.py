"""Tests for the admin account management endpoints."""

import pytest
from sqlalchemy import func, select

from authgate.models.issued_token import IssuedToken
from authgate.models.principal import Principal
from tests.conftest import TEST_PASSWORD

pytestmark = pytest.mark.asyncio


class TestAdminAccess:
    async def test_requires_authentication(self, async_client):
        response = await async_client.get("/admin/users")
        assert response.status_code == 401

    async def test_user_role_forbidden(self, async_client, user_headers):
        response = await async_client.get("/admin/users", headers=user_headers)

        assert response.status_code == 403
        assert response.json()["detail"] == "Insufficient permissions"

    async def test_admin_allowed(self, async_client, admin_headers):
        response = await async_client.get("/admin/users", headers=admin_headers)
        assert response.status_code == 200


class TestListUsers:
    async def test_lists_all(self, async_client, admin_headers, user):
        response = await async_client.get("/admin/users", headers=admin_headers)

        data = response.json()
        assert data["total"] == 2
        assert {item["email"] for item in data["items"]} == {"admin@authgate.io", user.email}
        assert all("password_hash" not in item for item in data["items"])

    async def test_locked_filter(self, async_client, admin_headers, principal_factory):
        await principal_factory(email="locked@x.com", account_non_locked=False)

        locked = await async_client.get("/admin/users?locked=true", headers=admin_headers)
        unlocked = await async_client.get("/admin/users?locked=false", headers=admin_headers)

        assert [item["email"] for item in locked.json()["items"]] == ["locked@x.com"]
        assert "locked@x.com" not in [item["email"] for item in unlocked.json()["items"]]


class TestLockUnlock:
    async def test_lock_revokes_sessions(self, async_client, admin_headers, auth_service, user):
        tokens = await auth_service.authenticate(user.email, TEST_PASSWORD)
        user_auth = {"Authorization": f"Bearer {tokens.access_token}"}

        response = await async_client.post(f"/admin/users/{user.email}/lock", headers=admin_headers)

        assert response.status_code == 200
        assert response.json()["account_non_locked"] is False
        assert (await async_client.get("/users/me", headers=user_auth)).status_code == 401

        login = await async_client.post(
            "/auth/authenticate", json={"email": user.email, "password": TEST_PASSWORD}
        )
        assert login.status_code == 423

    async def test_unlock_resets_counter(
        self, async_client, admin_headers, db_session, principal_factory
    ):
        locked = await principal_factory(email="locked@x.com", account_non_locked=False)
        locked.failed_attempts = 5
        await db_session.commit()

        response = await async_client.post(
            f"/admin/users/{locked.email}/unlock", headers=admin_headers
        )

        assert response.status_code == 200
        assert response.json()["account_non_locked"] is True
        assert response.json()["failed_attempts"] == 0

        login = await async_client.post(
            "/auth/authenticate", json={"email": locked.email, "password": TEST_PASSWORD}
        )
        assert login.status_code == 200

    @pytest.mark.parametrize("action", ["lock", "unlock"])
    async def test_unknown_user(self, async_client, admin_headers, action):
        response = await async_client.post(
            f"/admin/users/ghost@x.com/{action}", headers=admin_headers
        )
        assert response.status_code == 404


class TestDeleteUser:
    async def test_deletes_user_and_tokens(
        self, async_client, admin_headers, auth_service, db_session, user
    ):
        await auth_service.authenticate(user.email, TEST_PASSWORD)
        user_id = user.id

        response = await async_client.delete(f"/admin/users/{user.email}", headers=admin_headers)

        assert response.status_code == 200
        principals = await db_session.execute(
            select(func.count(Principal.id)).where(Principal.id == user_id)
        )
        assert principals.scalar() == 0
        tokens = await db_session.execute(
            select(func.count(IssuedToken.id)).where(IssuedToken.principal_id == user_id)
        )
        assert tokens.scalar() == 0

    async def test_unknown_user(self, async_client, admin_headers):
        response = await async_client.delete("/admin/users/ghost@x.com", headers=admin_headers)
        assert response.status_code == 404
