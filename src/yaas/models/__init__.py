"""SQLAlchemy models describing the yaas database schema."""

from yaas.models.app import App, OauthCode, OrgApp
from yaas.models.base import Base, BaseModel, metadata
from yaas.models.org import Org, OrgMember
from yaas.models.user import Password, Superuser, User

__all__ = [
    "App",
    "Base",
    "BaseModel",
    "OauthCode",
    "Org",
    "OrgApp",
    "OrgMember",
    "Password",
    "Superuser",
    "User",
    "metadata",
]
