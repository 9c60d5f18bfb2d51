"""Tests for first-run setup and health."""

from conftest import PASSWORD, make_client
from fastapi.testclient import TestClient

from yaas.adapters.memory import InMemoryStore


def setup_body(**overrides: str) -> dict[str, str]:
    body = {"email": "admin@example.com", "password": PASSWORD, "name": "Admin"}
    body.update(overrides)
    return body


class TestSetup:
    """Test POST /setup."""

    def test_setup_once(self, store: InMemoryStore) -> None:
        """The first call creates the superuser; the second is a conflict."""
        client = make_client(store)

        first = client.post("/setup", json=setup_body())
        assert first.status_code == 201
        assert first.json()["email"] == "admin@example.com"

        second = client.post("/setup", json=setup_body(email="other@example.com"))
        assert second.status_code == 409

    def test_superuser_can_log_in(self, store: InMemoryStore) -> None:
        """The created superuser can log in into its home org."""
        client = make_client(store)
        client.post("/setup", json=setup_body())

        login = client.post(
            "/auth/authorize", json={"email": "admin@example.com", "password": PASSWORD}
        )
        assert login.status_code == 200
        assert login.json()["org_id"] is not None

    def test_setup_key_required(self, store: InMemoryStore) -> None:
        """A configured key must be presented."""
        client = make_client(store, setup_key="let-me-in")

        assert client.post("/setup", json=setup_body()).status_code == 403
        assert client.post("/setup", json=setup_body(setup_key="wrong")).status_code == 403
        assert client.post("/setup", json=setup_body(setup_key="let-me-in")).status_code == 201

    def test_weak_password(self, store: InMemoryStore) -> None:
        """A short password is a validation error."""
        client = make_client(store)

        response = client.post("/setup", json=setup_body(password="short"))
        assert response.status_code == 400
        assert response.json()["error"] == "validation_error"


def test_health(client: TestClient) -> None:
    """Health check should respond without auth."""
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "healthy"}
