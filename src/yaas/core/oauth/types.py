"""Authorization code grant domain types."""

from dataclasses import dataclass
from uuid import UUID

MAX_PARAM_LENGTH = 250
BEARER_TOKEN_TYPE = "bearer"


@dataclass(frozen=True)
class AuthorizeRequest:
    """Parameters of an authorize call, exactly as the client sent them."""

    client_id: str
    redirect_uri: str
    scope: str
    state: str


@dataclass(frozen=True)
class AuthorizationGrant:
    """Result of a successful authorize call."""

    code: str
    state: str


@dataclass(frozen=True)
class TokenRequest:
    """Parameters of a token exchange call."""

    client_id: str
    client_secret: str
    code: str
    redirect_uri: str


@dataclass(frozen=True)
class TokenResponse:
    """Result of a successful token exchange."""

    access_token: str
    scope: str
    token_type: str = BEARER_TOKEN_TYPE


def parse_client_id(client_id: str) -> UUID | None:
    """Parse a client_id into an app ID, None if it is not a valid UUID."""
    try:
        return UUID(client_id)
    except (TypeError, ValueError, AttributeError):
        return None
