"""Authorization code grant: issuance and exchange."""

from yaas.core.oauth.exchange import TokenExchangeValidator
from yaas.core.oauth.issuer import AuthorizationCodeIssuer
from yaas.core.oauth.repository import AppRegistry, OAuthCodeStore
from yaas.core.oauth.types import (
    AuthorizationGrant,
    AuthorizeRequest,
    TokenRequest,
    TokenResponse,
)

__all__ = [
    "AppRegistry",
    "AuthorizationCodeIssuer",
    "AuthorizationGrant",
    "AuthorizeRequest",
    "OAuthCodeStore",
    "TokenExchangeValidator",
    "TokenRequest",
    "TokenResponse",
]
