"""In-memory store for development and tests."""

from __future__ import annotations

import asyncio
from datetime import datetime
from typing import Any
from uuid import UUID, uuid4

from yaas.core.auth.tokens import is_expired, utcnow
from yaas.core.auth.types import (
    App,
    OauthCode,
    Organization,
    OrgApp,
    OrgMembership,
    OrgStatus,
    User,
    UserStatus,
    normalize_email,
)
from yaas.core.exceptions import Conflict
from yaas.core.rbac.types import Role


class InMemoryStore:
    """Single-process implementation of every storage protocol.

    Implements IdentityStore, OrgDirectory, AppRegistry and OAuthCodeStore.
    All mutations run under one asyncio lock, which is what makes
    `consume_code` atomic within the event loop.

    Attributes:
        users: Users keyed by ID, including soft-deleted ones.
        orgs: Organizations keyed by ID.
        members: Memberships keyed by ID.
        apps: Apps keyed by ID.
        org_apps: Bindings keyed by ID.
        codes: Live authorization codes keyed by code value.
    """

    def __init__(self) -> None:
        self.users: dict[UUID, User] = {}
        self.passwords: dict[UUID, str] = {}
        self.superusers: set[UUID] = set()
        self.orgs: dict[UUID, Organization] = {}
        self.members: dict[UUID, OrgMembership] = {}
        self.apps: dict[UUID, App] = {}
        self.org_apps: dict[UUID, OrgApp] = {}
        self.codes: dict[str, OauthCode] = {}
        self._lock = asyncio.Lock()

    @staticmethod
    def _touch(model: Any, **changes: Any) -> Any:
        changes = {k: v for k, v in changes.items() if v is not None}
        changes["updated_at"] = utcnow()
        return model.model_copy(update=changes)

    # IdentityStore
    async def get_user_by_id(self, user_id: UUID) -> User | None:
        user = self.users.get(user_id)
        return user if user and user.deleted_at is None else None

    async def get_user_by_email(self, email: str) -> User | None:
        email = normalize_email(email)
        for user in self.users.values():
            if user.email == email and user.deleted_at is None:
                return user
        return None

    def _live_users(self) -> list[User]:
        users = [u for u in self.users.values() if u.deleted_at is None]
        return sorted(users, key=lambda u: u.created_at)

    async def list_users(self, limit: int, offset: int) -> list[User]:
        return self._live_users()[offset : offset + limit]

    async def count_users(self) -> int:
        return len(self._live_users())

    def _insert_user(self, email: str, name: str, status: UserStatus) -> User:
        email = normalize_email(email)
        if any(u.email == email and u.deleted_at is None for u in self.users.values()):
            raise Conflict("User with this email already exists")
        now = utcnow()
        user = User(
            id=uuid4(), email=email, name=name, status=status, created_at=now, updated_at=now
        )
        self.users[user.id] = user
        return user

    async def create_user(
        self,
        email: str,
        name: str,
        status: UserStatus = UserStatus.ACTIVE,
        password_hash: str | None = None,
    ) -> User:
        async with self._lock:
            user = self._insert_user(email, name, status)
            if password_hash is not None:
                self.passwords[user.id] = password_hash
            return user

    async def update_user(
        self,
        user_id: UUID,
        name: str | None = None,
        status: UserStatus | None = None,
    ) -> User | None:
        async with self._lock:
            user = await self.get_user_by_id(user_id)
            if user is None:
                return None
            updated: User = self._touch(user, name=name, status=status)
            self.users[user_id] = updated
            return updated

    async def delete_user(self, user_id: UUID) -> bool:
        async with self._lock:
            user = await self.get_user_by_id(user_id)
            if user is None:
                return False
            self.users[user_id] = user.model_copy(update={"deleted_at": utcnow()})
            return True

    async def get_password_hash(self, user_id: UUID) -> str | None:
        if await self.get_user_by_id(user_id) is None:
            return None
        return self.passwords.get(user_id)

    async def set_password_hash(self, user_id: UUID, password_hash: str) -> None:
        async with self._lock:
            self.passwords[user_id] = password_hash

    async def is_superuser(self, user_id: UUID) -> bool:
        return user_id in self.superusers

    async def has_superuser(self) -> bool:
        for user_id in self.superusers:
            if await self.get_user_by_id(user_id) is not None:
                return True
        return False

    async def bootstrap_superuser(
        self,
        email: str,
        name: str,
        password_hash: str,
        org_name: str,
    ) -> User | None:
        async with self._lock:
            if await self.has_superuser():
                return None
            user = self._insert_user(email, name, UserStatus.ACTIVE)
            self.passwords[user.id] = password_hash
            self.superusers.add(user.id)
            org = self._insert_org(org_name, user.id)
            self._insert_member(org.id, user.id, frozenset({Role.SUPER_ADMIN}), UserStatus.ACTIVE)
            return user

    # OrgDirectory
    async def get_org(self, org_id: UUID) -> Organization | None:
        org = self.orgs.get(org_id)
        return org if org and org.deleted_at is None else None

    def _live_orgs(self) -> list[Organization]:
        orgs = [o for o in self.orgs.values() if o.deleted_at is None]
        return sorted(orgs, key=lambda o: (o.name, str(o.id)))

    async def list_orgs(self, limit: int, offset: int) -> list[Organization]:
        return self._live_orgs()[offset : offset + limit]

    async def count_orgs(self) -> int:
        return len(self._live_orgs())

    def _insert_org(self, name: str, owner_id: UUID) -> Organization:
        now = utcnow()
        org = Organization(
            id=uuid4(), name=name, owner_id=owner_id, created_at=now, updated_at=now
        )
        self.orgs[org.id] = org
        return org

    async def create_org(self, name: str, owner_id: UUID) -> Organization:
        async with self._lock:
            return self._insert_org(name, owner_id)

    async def update_org(
        self,
        org_id: UUID,
        name: str | None = None,
        status: OrgStatus | None = None,
    ) -> Organization | None:
        async with self._lock:
            org = await self.get_org(org_id)
            if org is None:
                return None
            updated: Organization = self._touch(org, name=name, status=status)
            self.orgs[org_id] = updated
            return updated

    async def delete_org(self, org_id: UUID) -> bool:
        async with self._lock:
            org = await self.get_org(org_id)
            if org is None:
                return False
            self.orgs[org_id] = org.model_copy(update={"deleted_at": utcnow()})
            return True

    async def get_membership(self, org_id: UUID, user_id: UUID) -> OrgMembership | None:
        for member in self.members.values():
            if member.org_id == org_id and member.user_id == user_id and member.deleted_at is None:
                return member
        return None

    async def get_membership_by_id(self, member_id: UUID) -> OrgMembership | None:
        member = self.members.get(member_id)
        return member if member and member.deleted_at is None else None

    def _org_members(self, org_id: UUID) -> list[OrgMembership]:
        members = [
            m for m in self.members.values() if m.org_id == org_id and m.deleted_at is None
        ]
        return sorted(members, key=lambda m: m.created_at)

    async def list_org_members(self, org_id: UUID, limit: int, offset: int) -> list[OrgMembership]:
        return self._org_members(org_id)[offset : offset + limit]

    async def count_org_members(self, org_id: UUID) -> int:
        return len(self._org_members(org_id))

    async def list_user_memberships(self, user_id: UUID) -> list[OrgMembership]:
        result = []
        for member in self.members.values():
            if member.user_id != user_id or member.deleted_at is not None:
                continue
            org = await self.get_org(member.org_id)
            if org is not None and org.is_active:
                result.append(member)
        return sorted(result, key=lambda m: m.created_at)

    def _insert_member(
        self,
        org_id: UUID,
        user_id: UUID,
        roles: frozenset[Role],
        status: UserStatus,
    ) -> OrgMembership:
        existing = next(
            (m for m in self.members.values() if m.org_id == org_id and m.user_id == user_id),
            None,
        )
        if existing is not None and existing.deleted_at is None:
            raise Conflict("User is already a member of this organization")
        now = utcnow()
        member = OrgMembership(
            id=existing.id if existing else uuid4(),
            org_id=org_id,
            user_id=user_id,
            roles=frozenset(roles),
            status=status,
            created_at=now,
            updated_at=now,
        )
        self.members[member.id] = member
        return member

    async def add_member(
        self,
        org_id: UUID,
        user_id: UUID,
        roles: frozenset[Role],
        status: UserStatus = UserStatus.ACTIVE,
    ) -> OrgMembership:
        async with self._lock:
            return self._insert_member(org_id, user_id, roles, status)

    async def update_member(
        self,
        member_id: UUID,
        roles: frozenset[Role] | None = None,
        status: UserStatus | None = None,
    ) -> OrgMembership | None:
        async with self._lock:
            member = await self.get_membership_by_id(member_id)
            if member is None:
                return None
            updated: OrgMembership = self._touch(
                member, roles=frozenset(roles) if roles is not None else None, status=status
            )
            self.members[member_id] = updated
            return updated

    async def remove_member(self, member_id: UUID) -> bool:
        async with self._lock:
            member = await self.get_membership_by_id(member_id)
            if member is None:
                return False
            self.members[member_id] = member.model_copy(update={"deleted_at": utcnow()})
            return True

    # AppRegistry
    async def get_app(self, app_id: UUID) -> App | None:
        app = self.apps.get(app_id)
        return app if app and app.deleted_at is None else None

    def _live_apps(self) -> list[App]:
        apps = [a for a in self.apps.values() if a.deleted_at is None]
        return sorted(apps, key=lambda a: (a.name, str(a.id)))

    async def list_apps(self, limit: int, offset: int) -> list[App]:
        return self._live_apps()[offset : offset + limit]

    async def count_apps(self) -> int:
        return len(self._live_apps())

    async def create_app(self, name: str, secret_hash: str, redirect_uri: str) -> App:
        async with self._lock:
            now = utcnow()
            app = App(
                id=uuid4(),
                name=name,
                secret_hash=secret_hash,
                redirect_uri=redirect_uri,
                created_at=now,
                updated_at=now,
            )
            self.apps[app.id] = app
            return app

    async def update_app(
        self,
        app_id: UUID,
        name: str | None = None,
        redirect_uri: str | None = None,
        secret_hash: str | None = None,
    ) -> App | None:
        async with self._lock:
            app = await self.get_app(app_id)
            if app is None:
                return None
            updated: App = self._touch(
                app, name=name, redirect_uri=redirect_uri, secret_hash=secret_hash
            )
            self.apps[app_id] = updated
            return updated

    async def delete_app(self, app_id: UUID) -> bool:
        async with self._lock:
            app = await self.get_app(app_id)
            if app is None:
                return False
            now = utcnow()
            self.apps[app_id] = app.model_copy(update={"deleted_at": now})
            for binding_id, binding in list(self.org_apps.items()):
                if binding.app_id == app_id and binding.deleted_at is None:
                    self.org_apps[binding_id] = binding.model_copy(update={"deleted_at": now})
            return True

    async def get_org_app(self, org_id: UUID, app_id: UUID) -> OrgApp | None:
        for binding in self.org_apps.values():
            if binding.org_id == org_id and binding.app_id == app_id and binding.deleted_at is None:
                return binding
        return None

    async def list_org_apps(self, org_id: UUID) -> list[OrgApp]:
        bindings = []
        for binding in self.org_apps.values():
            if binding.org_id == org_id and binding.deleted_at is None:
                if await self.get_app(binding.app_id) is not None:
                    bindings.append(binding)
        return sorted(bindings, key=lambda b: b.created_at)

    async def bind_app(self, org_id: UUID, app_id: UUID) -> OrgApp:
        async with self._lock:
            existing = next(
                (b for b in self.org_apps.values() if b.org_id == org_id and b.app_id == app_id),
                None,
            )
            if existing is not None and existing.deleted_at is None:
                raise Conflict("App is already bound to this organization")
            binding = OrgApp(
                id=existing.id if existing else uuid4(),
                org_id=org_id,
                app_id=app_id,
                created_at=utcnow(),
            )
            self.org_apps[binding.id] = binding
            return binding

    async def unbind_app(self, org_id: UUID, app_id: UUID) -> bool:
        async with self._lock:
            binding = await self.get_org_app(org_id, app_id)
            if binding is None:
                return False
            self.org_apps[binding.id] = binding.model_copy(update={"deleted_at": utcnow()})
            return True

    # OAuthCodeStore
    async def create_code(
        self,
        code: str,
        state: str,
        redirect_uri: str,
        scope: str,
        app_id: UUID,
        org_id: UUID,
        user_id: UUID,
        created_at: datetime,
        expires_at: datetime,
    ) -> OauthCode:
        async with self._lock:
            if code in self.codes:
                raise Conflict("Authorization code collision")
            record = OauthCode(
                id=uuid4(),
                code=code,
                state=state,
                redirect_uri=redirect_uri,
                scope=scope,
                app_id=app_id,
                org_id=org_id,
                user_id=user_id,
                created_at=created_at,
                expires_at=expires_at,
            )
            self.codes[code] = record
            return record

    async def get_code(self, code: str) -> OauthCode | None:
        return self.codes.get(code)

    async def consume_code(self, code: str, now: datetime) -> OauthCode | None:
        async with self._lock:
            record = self.codes.get(code)
            if record is None or is_expired(record.expires_at, now):
                return None
            del self.codes[code]
            return record

    async def delete_expired(self, now: datetime) -> int:
        async with self._lock:
            expired = [c for c, r in self.codes.items() if is_expired(r.expires_at, now)]
            for code in expired:
                del self.codes[code]
            return len(expired)
