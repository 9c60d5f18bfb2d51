"""Tests for the OAuth endpoints."""

from urllib.parse import parse_qs, urlsplit

from conftest import PASSWORD, WIKI_REDIRECT, World
from fastapi.testclient import TestClient
from httpx import Response

from yaas.core.auth.jwt import decode_token


def authorize(
    client: TestClient, world: World, headers: dict[str, str] | None = None, **overrides: str
) -> Response:
    body = {
        "client_id": str(world.wiki.id),
        "redirect_uri": WIKI_REDIRECT,
        "scope": "profile",
        "state": "af0ifjsldkj",
    }
    body.update(overrides)
    return client.post(
        "/oauth/authorize",
        json=body,
        headers=headers if headers is not None else world.auth_header(world.bob, world.org_a),
        follow_redirects=False,
    )


def query_of(location: str) -> dict[str, str]:
    return {k: v[0] for k, v in parse_qs(urlsplit(location).query).items()}


def redeem(client: TestClient, world: World, code: str, **overrides: str) -> Response:
    body = {
        "client_id": str(world.wiki.id),
        "client_secret": world.wiki_secret,
        "code": code,
        "redirect_uri": WIKI_REDIRECT,
    }
    body.update(overrides)
    return client.post("/oauth/token", json=body)


class TestAuthorizationCodeFlow:
    """End-to-end login, authorize and exchange."""

    def test_full_flow(self, client: TestClient, sync_world: World) -> None:
        """OrgMember of A authorizes the wiki and the wiki redeems the code."""
        login = client.post(
            "/auth/authorize", json={"email": "bob@example.com", "password": PASSWORD}
        )
        assert login.status_code == 200
        session = login.json()["access_token"]

        response = authorize(
            client, sync_world, headers={"Authorization": f"Bearer {session}"}
        )
        assert response.status_code == 303
        location = response.headers["location"]
        assert location.startswith(WIKI_REDIRECT + "?")
        params = query_of(location)
        assert params["state"] == "af0ifjsldkj"

        token = redeem(client, sync_world, params["code"])
        assert token.status_code == 200
        body = token.json()
        assert body["token_type"] == "bearer"
        assert body["scope"] == "profile"
        payload = decode_token(body["access_token"], expected_type="app")
        assert payload.sub == str(sync_world.bob.id)
        assert payload.oid == str(sync_world.org_a.id)

    def test_code_is_single_use(self, client: TestClient, sync_world: World) -> None:
        """The second redemption is invalid_grant."""
        code = query_of(authorize(client, sync_world).headers["location"])["code"]
        assert redeem(client, sync_world, code).status_code == 200

        replay = redeem(client, sync_world, code)
        assert replay.status_code == 400
        assert replay.json()["error"] == "invalid_grant"
        assert "error_description" in replay.json()


class TestAuthorizeErrors:
    """Test how authorize failures are delivered."""

    def test_redirect_mismatch_goes_to_registered_uri(
        self, client: TestClient, sync_world: World
    ) -> None:
        """The attacker's URI is never used."""
        response = authorize(client, sync_world, redirect_uri="https://evil.example.com/cb")

        assert response.status_code == 303
        location = response.headers["location"]
        assert location.startswith(WIKI_REDIRECT + "?")
        params = query_of(location)
        assert params["error"] == "invalid_request"
        assert params["state"] == "af0ifjsldkj"
        assert "code" not in params

    def test_unknown_client_is_not_redirected(
        self, client: TestClient, sync_world: World
    ) -> None:
        """Without a verified client there is nowhere safe to redirect."""
        response = authorize(client, sync_world, client_id="not-a-client")

        assert response.status_code == 400
        assert response.json() == {
            "error": "unauthorized_client",
            "error_description": response.json()["error_description"],
            "state": "af0ifjsldkj",
        }

    def test_no_session(self, client: TestClient, sync_world: World) -> None:
        """Anonymous callers must log in."""
        response = authorize(client, sync_world, headers={})

        assert response.status_code == 401
        assert response.json()["error"] == "authentication_required"
        assert response.headers["www-authenticate"] == "Bearer"

    def test_invalid_session(self, client: TestClient, sync_world: World) -> None:
        """A bad token is the same as no token."""
        response = authorize(client, sync_world, headers={"Authorization": "Bearer nonsense"})
        assert response.status_code == 401

    def test_app_not_bound(self, client: TestClient, sync_world: World) -> None:
        """Org B cannot use the wiki; the denial goes back to the app."""
        response = authorize(
            client, sync_world, headers=sync_world.auth_header(sync_world.carol, sync_world.org_b)
        )

        assert response.status_code == 303
        assert query_of(response.headers["location"])["error"] == "access_denied"

    def test_missing_state(self, client: TestClient, sync_world: World) -> None:
        """Missing state is an invalid request delivered to the app."""
        response = authorize(client, sync_world, state="")

        assert response.status_code == 303
        params = query_of(response.headers["location"])
        assert params["error"] == "invalid_request"
        assert "state" not in params


class TestTokenErrors:
    """Test token endpoint failures."""

    def test_wrong_secret(self, client: TestClient, sync_world: World) -> None:
        """Bad client credentials are a 401 and keep the code alive."""
        code = query_of(authorize(client, sync_world).headers["location"])["code"]

        bad = redeem(client, sync_world, code, client_secret="wrong")  # pragma: allowlist secret
        assert bad.status_code == 401
        assert bad.json()["error"] == "invalid_client"
        assert bad.headers["www-authenticate"] == "Basic"

        assert redeem(client, sync_world, code).status_code == 200

    def test_missing_fields(self, client: TestClient, sync_world: World) -> None:
        """An empty body is an invalid request."""
        response = client.post("/oauth/token", json={})
        assert response.status_code == 400
        assert response.json()["error"] == "invalid_request"
        assert "www-authenticate" not in response.headers

    def test_unknown_code(self, client: TestClient, sync_world: World) -> None:
        """A made-up code is invalid_grant."""
        response = redeem(client, sync_world, "made-up")
        assert response.status_code == 400
        assert response.json()["error"] == "invalid_grant"
