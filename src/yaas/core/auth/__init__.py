"""Auth domain types and utilities."""

from yaas.core.auth.context import AuthContextManager
from yaas.core.auth.jwt import (
    TokenError,
    create_app_token,
    create_session_token,
    decode_token,
)
from yaas.core.auth.password import hash_password, verify_password
from yaas.core.auth.repository import IdentityStore, OrgDirectory
from yaas.core.auth.types import (
    App,
    AuthContext,
    OauthCode,
    Organization,
    OrgApp,
    OrgMembership,
    OrgStatus,
    Subject,
    TokenPayload,
    User,
    UserStatus,
)

__all__ = [
    "App",
    "AuthContext",
    "AuthContextManager",
    "IdentityStore",
    "OauthCode",
    "OrgApp",
    "OrgDirectory",
    "OrgMembership",
    "OrgStatus",
    "Organization",
    "Subject",
    "TokenError",
    "TokenPayload",
    "User",
    "UserStatus",
    "create_app_token",
    "create_session_token",
    "decode_token",
    "hash_password",
    "verify_password",
]
