"""Integration tests for the user administration endpoints."""

import pytest
from httpx import AsyncClient

from app.modules.users.schemas import Role

from tests.conftest import auth_headers, make_account

ROOT = auth_headers("root-token")
ALICE = auth_headers("alice-token")


@pytest.fixture()
def root(store):
    return make_account(store, "root@example.com", role=Role.SUPERADMIN, display_name="Root")


@pytest.mark.asyncio
async def test_status_of_new_account(client: AsyncClient, store, root):
    response = await client.get("/api/v1/users/me", headers=ALICE)

    assert response.status_code == 200
    assert response.json() == {
        "approved": False,
        "role": "user",
        "email": "alice@example.com",
        "display_name": "Alice",
        "landing_path": None,
    }


@pytest.mark.asyncio
async def test_resource_catalog(client: AsyncClient, root):
    response = await client.get("/api/v1/users/resources", headers=ROOT)

    body = response.json()
    assert body["actions"] == ["view", "add", "edit", "delete"]
    assert body["resources"][0] == {"resource_id": "dashboard", "name": "Dashboard", "path": "/admin"}
    assert len(body["resources"]) == 12


class TestListUsers:
    @pytest.mark.asyncio
    async def test_superadmin_lists_users(self, client: AsyncClient, store, root):
        make_account(store, "alice@example.com")

        response = await client.get("/api/v1/users", headers=ROOT)

        assert response.status_code == 200
        assert [u["email"] for u in response.json()["users"]] == ["root@example.com", "alice@example.com"]

    @pytest.mark.asyncio
    async def test_pending_user_is_refused(self, client: AsyncClient, root):
        response = await client.get("/api/v1/users", headers=ALICE)

        assert response.status_code == 403
        assert response.json()["detail"] == "Account is pending approval"

    @pytest.mark.asyncio
    async def test_user_without_view_grant_is_refused(self, client: AsyncClient, store, root):
        make_account(store, "alice@example.com", grants=[{"resource_id": "tickets", "actions": ["view"]}])

        response = await client.get("/api/v1/users", headers=ALICE)

        assert response.status_code == 403
        assert response.json()["detail"] == "Insufficient permissions. Required: view on /admin/users"

    @pytest.mark.asyncio
    async def test_user_with_view_grant_lists(self, client: AsyncClient, store, root):
        make_account(store, "alice@example.com", grants=[{"resource_id": "users", "actions": ["view"]}])

        response = await client.get("/api/v1/users", headers=ALICE)

        assert response.status_code == 200


class TestCreateUser:
    @pytest.mark.asyncio
    async def test_superadmin_creates_admin(self, client: AsyncClient, store, root):
        response = await client.post("/api/v1/users", headers=ROOT, json={
            "email": "Ops@Example.com",
            "display_name": "Ops",
            "role": "admin",
            "permission_grants": [{"resource_id": "stations", "actions": ["view", "edit"]}],
        })

        assert response.status_code == 200
        user = response.json()["user"]
        assert user["email"] == "ops@example.com"
        assert user["approved"] is True
        assert store.find_by_email("ops@example.com").role == Role.ADMIN

    @pytest.mark.asyncio
    async def test_admin_without_grants_is_rejected(self, client: AsyncClient, store, root):
        response = await client.post("/api/v1/users", headers=ROOT, json={
            "email": "ops@example.com", "display_name": "Ops", "role": "admin",
        })

        assert response.status_code == 400
        assert store.find_by_email("ops@example.com") is None

    @pytest.mark.asyncio
    async def test_unknown_resource_in_grants_is_rejected(self, client: AsyncClient, root):
        response = await client.post("/api/v1/users", headers=ROOT, json={
            "email": "ops@example.com",
            "display_name": "Ops",
            "permission_grants": [{"resource_id": "jobs", "actions": ["view"]}],
        })

        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_pending_user_cannot_create(self, client: AsyncClient, root):
        response = await client.post("/api/v1/users", headers=ALICE, json={
            "email": "friend@example.com", "display_name": "Friend",
        })

        assert response.status_code == 403


    @pytest.mark.asyncio
    async def test_add_only_holder_cannot_overwrite_existing_account(self, client: AsyncClient, store, root):
        make_account(store, "alice@example.com", grants=[{"resource_id": "users", "actions": ["add"]}])

        response = await client.post("/api/v1/users", headers=ALICE, json={
            "email": "root@example.com", "display_name": "Renamed",
        })

        assert response.status_code == 403
        assert store.find_by_email("root@example.com").display_name == "Root"


class TestUpdateUser:
    @pytest.mark.asyncio
    async def test_superadmin_approves_user(self, client: AsyncClient, store, root):
        alice = make_account(store, "alice@example.com", approved=False)

        response = await client.put(f"/api/v1/users/{alice.id}", headers=ROOT, json={
            "approved": True,
            "permission_grants": [{"resource_id": "tickets", "actions": ["view"]}],
        })

        assert response.status_code == 200
        user = response.json()["user"]
        assert user["approved"] is True
        assert user["permission_grants"] == [{"resource_id": "tickets", "actions": ["view"]}]

    @pytest.mark.asyncio
    async def test_approved_user_reaches_granted_page(self, client: AsyncClient, store, root):
        alice = make_account(store, "alice@example.com", approved=False)
        await client.put(f"/api/v1/users/{alice.id}", headers=ROOT, json={
            "approved": True,
            "permission_grants": [{"resource_id": "tickets", "actions": ["view"]}],
        })

        response = await client.get(
            "/api/v1/auth/page-access", params={"path": "/admin/tickets"}, headers=ALICE
        )

        assert response.json()["allowed"] is True

    @pytest.mark.asyncio
    async def test_user_cannot_approve_self(self, client: AsyncClient, store, root):
        alice = make_account(store, "alice@example.com", approved=False)

        response = await client.put(f"/api/v1/users/{alice.id}", headers=ALICE, json={"approved": True})

        assert response.status_code == 403
        assert store.find_by_email("alice@example.com").approved is False


class TestDeleteUser:
    @pytest.mark.asyncio
    async def test_superadmin_deletes(self, client: AsyncClient, store, root):
        alice = make_account(store, "alice@example.com")

        response = await client.delete(f"/api/v1/users/{alice.id}", headers=ROOT)

        assert response.status_code == 204
        assert store.find_by_id(alice.id) is None

    @pytest.mark.asyncio
    async def test_admin_cannot_delete(self, client: AsyncClient, store, root):
        make_account(store, "alice@example.com", role=Role.ADMIN, grants=[{"resource_id": "users", "actions": ["delete"]}])
        bob = make_account(store, "bob@example.com")

        response = await client.delete(f"/api/v1/users/{bob.id}", headers=ALICE)

        assert response.status_code == 403


class TestPromoteSuperadmin:
    @pytest.mark.asyncio
    async def test_superadmin_promotes(self, client: AsyncClient, store, root):
        make_account(store, "alice@example.com", approved=False)

        response = await client.post(
            "/api/v1/users/promote-superadmin", headers=ROOT, json={"email": "alice@example.com"}
        )

        assert response.status_code == 200
        user = response.json()["user"]
        assert user["role"] == "superadmin"
        assert user["approved"] is True
        assert len(user["permission_grants"]) == 12

    @pytest.mark.asyncio
    async def test_non_superadmin_cannot_promote(self, client: AsyncClient, store, root):
        make_account(store, "alice@example.com", role=Role.ADMIN, grants=[{"resource_id": "users", "actions": ["edit"]}])

        response = await client.post(
            "/api/v1/users/promote-superadmin", headers=ALICE, json={"email": "alice@example.com"}
        )

        assert response.status_code == 403
        assert store.find_by_email("alice@example.com").role == Role.ADMIN


@pytest.mark.asyncio
async def test_health_and_readiness(client: AsyncClient, store):
    assert (await client.get("/health")).json() == {"status": "healthy"}
    assert (await client.get("/ready")).status_code == 200

    store.unavailable = True
    response = await client.get("/ready")

    assert response.status_code == 503
    assert response.json()["checks"]["account_store"] == "unavailable"
