"""JWT creation and validation for session and application tokens."""

import os
from datetime import UTC, datetime, timedelta
from uuid import UUID

import jwt

from yaas.core.auth.types import TokenPayload


class TokenError(Exception):
    """Raised when token validation fails."""

    pass


# Configuration
SECRET_KEY = os.environ.get("JWT_SECRET_KEY", "dev-secret-change-in-production")
ALGORITHM = "HS256"
SESSION_TOKEN_EXPIRE_DAYS = 14
APP_TOKEN_EXPIRE_MINUTES = 60

SESSION_TOKEN_TYPE = "session"
APP_TOKEN_TYPE = "app"
SESSION_SCOPE = "auth"


def _encode(claims: dict[str, object], lifetime: timedelta) -> str:
    now = datetime.now(UTC)
    claims["iat"] = int(now.timestamp())
    claims["exp"] = int((now + lifetime).timestamp())
    return jwt.encode(claims, SECRET_KEY, algorithm=ALGORITHM)


def create_session_token(user_id: UUID, org_id: UUID | None = None) -> str:
    """Create a signed session token.

    The `oid` claim carries the session's current org, so switching orgs
    means issuing a new token. The signature makes the selection
    tamper-evident.

    Args:
        user_id: Authenticated user.
        org_id: Currently selected org, None when not yet selected.

    Returns:
        Encoded JWT string
    """
    claims: dict[str, object] = {
        "sub": str(user_id),
        "typ": SESSION_TOKEN_TYPE,
        "scope": SESSION_SCOPE,
    }
    if org_id is not None:
        claims["oid"] = str(org_id)
    return _encode(claims, timedelta(days=SESSION_TOKEN_EXPIRE_DAYS))


def create_app_token(user_id: UUID, org_id: UUID, app_id: UUID, scope: str) -> str:
    """Create the bearer credential handed to an application.

    Args:
        user_id: User who authorized the app.
        org_id: Org the authorization was granted in.
        app_id: Application (client) the token was issued to.
        scope: Scope string exactly as granted.

    Returns:
        Encoded JWT string
    """
    claims: dict[str, object] = {
        "sub": str(user_id),
        "typ": APP_TOKEN_TYPE,
        "oid": str(org_id),
        "aid": str(app_id),
        "scope": scope,
    }
    return _encode(claims, timedelta(minutes=APP_TOKEN_EXPIRE_MINUTES))


def decode_token(token: str, expected_type: str | None = None) -> TokenPayload:
    """Decode and validate a JWT token.

    Args:
        token: Encoded JWT string
        expected_type: If given, the `typ` claim must match.

    Returns:
        Decoded token payload

    Raises:
        TokenError: If token is invalid, expired or of the wrong type
    """
    try:
        claims = jwt.decode(
            token,
            SECRET_KEY,
            algorithms=[ALGORITHM],
            options={"require": ["sub", "typ", "exp", "iat"]},
        )
    except jwt.ExpiredSignatureError:
        raise TokenError("Token has expired") from None
    except jwt.InvalidTokenError as e:
        raise TokenError(f"Invalid token: {e}") from None

    payload = TokenPayload(
        sub=claims["sub"],
        typ=claims["typ"],
        oid=claims.get("oid"),
        aid=claims.get("aid"),
        scope=claims.get("scope", ""),
        exp=claims["exp"],
        iat=claims["iat"],
    )
    if expected_type is not None and payload.typ != expected_type:
        raise TokenError("Invalid token: wrong token type")
    return payload
