"""Pytest configuration and shared fixtures."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass

import pytest
import pytest_asyncio
from fastapi.testclient import TestClient

from yaas.adapters.memory import InMemoryStore
from yaas.core.auth.jwt import create_session_token
from yaas.core.auth.password import hash_password
from yaas.core.auth.tokens import generate_client_secret, hash_secret
from yaas.core.auth.types import App, Organization, User
from yaas.core.rbac.types import Role
from yaas.entrypoints.api.app import app
from yaas.entrypoints.api.deps import Settings, bind_stores

PASSWORD = "correct-horse-battery"  # pragma: allowlist secret
WIKI_REDIRECT = "https://wiki.example.com/callback"
CHAT_REDIRECT = "https://chat.example.com/oauth/cb"

_password_hash: str | None = None


def password_hash() -> str:
    """bcrypt is slow, so every seeded user shares one hash."""
    global _password_hash
    if _password_hash is None:
        _password_hash = hash_password(PASSWORD)
    return _password_hash


@dataclass
class World:
    """A seeded store with two tenants.

    Org A has an OrgAdmin (alice) and an OrgMember (bob) and may use the
    wiki app. Org B has an OrgAdmin (carol) and may use the chat app.
    Dave belongs to no org. Root is the platform SuperAdmin.
    """

    store: InMemoryStore
    root: User
    root_org: Organization
    org_a: Organization
    org_b: Organization
    alice: User
    bob: User
    carol: User
    dave: User
    wiki: App
    wiki_secret: str
    chat: App
    chat_secret: str

    def session(self, user: User, org: Organization | None = None) -> str:
        """Session token for `user` with `org` selected."""
        return create_session_token(user.id, org.id if org else None)

    def auth_header(self, user: User, org: Organization | None = None) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.session(user, org)}"}


async def seed_world() -> World:
    """Build the standard two-tenant world in a fresh in-memory store."""
    store = InMemoryStore()
    pw = password_hash()

    root = await store.bootstrap_superuser("root@example.com", "Root", pw, "Superuser")
    assert root is not None
    root_org = await store.get_org((await store.list_user_memberships(root.id))[0].org_id)
    assert root_org is not None

    alice = await store.create_user("alice@example.com", "Alice", password_hash=pw)
    bob = await store.create_user("bob@example.com", "Bob", password_hash=pw)
    carol = await store.create_user("carol@example.com", "Carol", password_hash=pw)
    dave = await store.create_user("dave@example.com", "Dave", password_hash=pw)

    org_a = await store.create_org("Org A", alice.id)
    await store.add_member(org_a.id, alice.id, frozenset({Role.ORG_ADMIN}))
    await store.add_member(org_a.id, bob.id, frozenset({Role.ORG_MEMBER}))

    org_b = await store.create_org("Org B", carol.id)
    await store.add_member(org_b.id, carol.id, frozenset({Role.ORG_ADMIN}))

    wiki_secret = generate_client_secret()
    wiki = await store.create_app("Wiki", hash_secret(wiki_secret), WIKI_REDIRECT)
    await store.bind_app(org_a.id, wiki.id)

    chat_secret = generate_client_secret()
    chat = await store.create_app("Chat", hash_secret(chat_secret), CHAT_REDIRECT)
    await store.bind_app(org_b.id, chat.id)

    return World(
        store=store,
        root=root,
        root_org=root_org,
        org_a=org_a,
        org_b=org_b,
        alice=alice,
        bob=bob,
        carol=carol,
        dave=dave,
        wiki=wiki,
        wiki_secret=wiki_secret,
        chat=chat,
        chat_secret=chat_secret,
    )


@pytest.fixture
def anyio_backend() -> str:
    """Configure anyio to use asyncio backend."""
    return "asyncio"


@pytest.fixture
def store() -> InMemoryStore:
    """Return an empty in-memory store."""
    return InMemoryStore()


@pytest_asyncio.fixture
async def world() -> World:
    """Return the seeded two-tenant world."""
    return await seed_world()


@pytest.fixture
def sync_world() -> World:
    """Seeded world for tests that drive the app through TestClient."""
    return asyncio.run(seed_world())


def make_client(store: InMemoryStore, setup_key: str | None = None) -> TestClient:
    """TestClient over the real app, wired to `store` instead of PostgreSQL."""
    bind_stores(app, store, store, store, store)
    configured = Settings()
    configured.setup_key = setup_key
    app.state.settings = configured
    return TestClient(app)


@pytest.fixture
def client(sync_world: World) -> TestClient:
    """API client over the seeded world."""
    return make_client(sync_world.store)
