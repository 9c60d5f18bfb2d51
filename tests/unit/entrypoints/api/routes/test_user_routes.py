"""Tests for the signed-in user routes."""

import asyncio

from conftest import PASSWORD, World
from fastapi.testclient import TestClient

from yaas.core.auth.jwt import decode_token
from yaas.core.rbac.types import Role


class TestLogin:
    """Test POST /auth/authorize."""

    def test_login(self, client: TestClient, sync_world: World) -> None:
        """Should return a session in the default org."""
        response = client.post(
            "/auth/authorize", json={"email": "alice@example.com", "password": PASSWORD}
        )

        assert response.status_code == 200
        body = response.json()
        assert body["org_id"] == str(sync_world.org_a.id)
        assert body["user"]["email"] == "alice@example.com"
        assert body["orgs"] == [{"org_id": str(sync_world.org_a.id), "roles": ["OrgAdmin"]}]

    def test_wrong_password(self, client: TestClient, sync_world: World) -> None:
        """Should be a 401 in the standard error shape."""
        response = client.post(
            "/auth/authorize", json={"email": "alice@example.com", "password": "nope-nope"}
        )

        assert response.status_code == 401
        assert response.json() == {
            "status_code": 401,
            "error": "invalid_credentials",
            "message": "Invalid email or password",
        }


class TestProfile:
    """Test GET /user and GET /user/authz."""

    def test_profile(self, client: TestClient, sync_world: World) -> None:
        """Should return the caller's profile."""
        response = client.get("/user", headers=sync_world.auth_header(sync_world.bob))

        assert response.status_code == 200
        assert response.json()["id"] == str(sync_world.bob.id)

    def test_requires_session(self, client: TestClient) -> None:
        """Anonymous callers get 401."""
        assert client.get("/user").status_code == 401

    def test_authz_member(self, client: TestClient, sync_world: World) -> None:
        """Should describe an OrgMember's standing."""
        response = client.get(
            "/user/authz", headers=sync_world.auth_header(sync_world.bob, sync_world.org_a)
        )

        body = response.json()
        assert body["org_id"] == str(sync_world.org_a.id)
        assert body["role"] == "OrgMember"
        assert body["is_superadmin"] is False
        assert body["org_count"] == 1
        assert body["actions"] == ["read", "use_app"]

    def test_authz_super_admin(self, client: TestClient, sync_world: World) -> None:
        """SuperAdmin may do everything."""
        response = client.get("/user/authz", headers=sync_world.auth_header(sync_world.root))

        body = response.json()
        assert body["role"] == "SuperAdmin"
        assert body["is_superadmin"] is True
        assert "administer" in body["actions"]

    def test_authz_without_org(self, client: TestClient, sync_world: World) -> None:
        """A user without memberships has no role."""
        response = client.get("/user/authz", headers=sync_world.auth_header(sync_world.dave))

        body = response.json()
        assert body["org_id"] is None
        assert body["role"] is None
        assert body["org_count"] == 0
        assert body["actions"] == []


class TestSwitchOrg:
    """Test PUT /user/auth-context."""

    def test_switch(self, client: TestClient, sync_world: World) -> None:
        """Should return a token whose org is the new one."""
        asyncio.run(
            sync_world.store.add_member(
                sync_world.org_b.id, sync_world.bob.id, frozenset({Role.ORG_MEMBER})
            )
        )

        response = client.put(
            "/user/auth-context",
            json={"org_id": str(sync_world.org_b.id)},
            headers=sync_world.auth_header(sync_world.bob, sync_world.org_a),
        )

        assert response.status_code == 200
        token = response.json()["access_token"]
        assert decode_token(token).oid == str(sync_world.org_b.id)

        authz = client.get("/user/authz", headers={"Authorization": f"Bearer {token}"})
        assert authz.json()["org_id"] == str(sync_world.org_b.id)

    def test_switch_to_foreign_org(self, client: TestClient, sync_world: World) -> None:
        """Not a member means 403."""
        response = client.put(
            "/user/auth-context",
            json={"org_id": str(sync_world.org_b.id)},
            headers=sync_world.auth_header(sync_world.bob, sync_world.org_a),
        )

        assert response.status_code == 403
        assert response.json()["error"] == "not_a_member"


class TestChangePassword:
    """Test POST /user/change-password."""

    def test_change_password(self, client: TestClient, sync_world: World) -> None:
        """The new password works for login afterwards."""
        response = client.post(
            "/user/change-password",
            json={"current_password": PASSWORD, "new_password": "another-fine-password"},
            headers=sync_world.auth_header(sync_world.bob),
        )
        assert response.status_code == 204

        login = client.post(
            "/auth/authorize",
            json={"email": "bob@example.com", "password": "another-fine-password"},
        )
        assert login.status_code == 200

    def test_wrong_current_password(self, client: TestClient, sync_world: World) -> None:
        """The current password must be right."""
        response = client.post(
            "/user/change-password",
            json={"current_password": "wrong-one", "new_password": "another-fine-password"},
            headers=sync_world.auth_header(sync_world.bob),
        )
        assert response.status_code == 401
