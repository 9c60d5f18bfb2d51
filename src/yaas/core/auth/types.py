"""Auth domain types."""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from uuid import UUID

from pydantic import BaseModel, EmailStr

from yaas.core.rbac.types import Role


def normalize_email(email: str) -> str:
    """Canonical form used for storage and lookup."""
    return email.strip().lower()


class UserStatus(str, Enum):
    """User and membership status."""

    ACTIVE = "active"
    DISABLED = "disabled"
    PENDING = "pending"


class OrgStatus(str, Enum):
    """Organization status."""

    ACTIVE = "active"
    DISABLED = "disabled"


class User(BaseModel):
    """User domain model."""

    id: UUID
    email: EmailStr
    name: str
    status: UserStatus = UserStatus.ACTIVE
    created_at: datetime
    updated_at: datetime | None = None
    deleted_at: datetime | None = None

    @property
    def is_active(self) -> bool:
        """Active and not tombstoned."""
        return self.status == UserStatus.ACTIVE and self.deleted_at is None


class Organization(BaseModel):
    """Organization domain model."""

    id: UUID
    name: str
    status: OrgStatus = OrgStatus.ACTIVE
    owner_id: UUID
    created_at: datetime
    updated_at: datetime | None = None
    deleted_at: datetime | None = None

    @property
    def is_active(self) -> bool:
        """Active and not tombstoned."""
        return self.status == OrgStatus.ACTIVE and self.deleted_at is None


class OrgMembership(BaseModel):
    """User's membership in an organization."""

    id: UUID
    org_id: UUID
    user_id: UUID
    roles: frozenset[Role]
    status: UserStatus = UserStatus.ACTIVE
    created_at: datetime
    updated_at: datetime | None = None
    deleted_at: datetime | None = None

    @property
    def is_active(self) -> bool:
        """Enabled and not tombstoned."""
        return self.status == UserStatus.ACTIVE and self.deleted_at is None


class App(BaseModel):
    """A registered third-party application. Its id is the OAuth client_id."""

    id: UUID
    name: str
    secret_hash: str
    redirect_uri: str
    created_at: datetime
    updated_at: datetime | None = None
    deleted_at: datetime | None = None


class OrgApp(BaseModel):
    """Binding that allows an org to use an app."""

    id: UUID
    org_id: UUID
    app_id: UUID
    created_at: datetime
    deleted_at: datetime | None = None


class OauthCode(BaseModel):
    """A single-use authorization code."""

    id: UUID
    code: str
    state: str
    redirect_uri: str
    scope: str
    app_id: UUID
    org_id: UUID
    user_id: UUID
    created_at: datetime
    expires_at: datetime


class TokenPayload(BaseModel):
    """JWT token payload claims."""

    sub: str  # user_id
    typ: str  # "session" or "app"
    oid: str | None = None  # org_id
    aid: str | None = None  # app_id, app tokens only
    scope: str = ""
    exp: int
    iat: int


@dataclass(frozen=True)
class Subject:
    """An authenticated principal."""

    user_id: UUID
    is_superadmin: bool = False


@dataclass(frozen=True)
class AuthContext:
    """A subject together with its selected current org.

    Passed explicitly into the evaluator and issuer instead of being read
    from ambient session state.
    """

    subject: Subject
    org_id: UUID | None
