"""OAuth2 authorization code grant endpoints."""

from typing import Annotated
from urllib.parse import urlencode, urlsplit, urlunsplit

import structlog
from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse, RedirectResponse
from pydantic import BaseModel

from yaas.core.exceptions import OAuthError
from yaas.core.oauth.exchange import TokenExchangeValidator
from yaas.core.oauth.issuer import AuthorizationCodeIssuer
from yaas.core.oauth.types import AuthorizeRequest, TokenRequest
from yaas.entrypoints.api.deps import get_exchange_validator, get_issuer
from yaas.entrypoints.api.middleware.session_auth import OptionalSessionDep

logger = structlog.get_logger()

router = APIRouter(prefix="/oauth", tags=["oauth"])


class AuthorizeBody(BaseModel):
    """Authorize request body. Fields are validated by the issuer."""

    client_id: str = ""
    redirect_uri: str = ""
    scope: str = ""
    state: str = ""


class TokenBody(BaseModel):
    """Token exchange request body."""

    client_id: str = ""
    client_secret: str = ""
    code: str = ""
    redirect_uri: str = ""


class TokenResponseBody(BaseModel):
    """Successful token exchange."""

    access_token: str
    scope: str
    token_type: str


def with_query(uri: str, params: dict[str, str]) -> str:
    """Append query parameters to a URI, keeping any it already has."""
    parts = urlsplit(uri)
    query = urlencode(params)
    if parts.query:
        query = f"{parts.query}&{query}"
    return urlunsplit((parts.scheme, parts.netloc, parts.path, query, parts.fragment))


def oauth_error_response(error: OAuthError) -> JSONResponse:
    """Render an OAuth error as a response body."""
    headers = {"WWW-Authenticate": "Basic"} if error.status_code == 401 else None
    return JSONResponse(status_code=error.status_code, content=error.to_params(), headers=headers)


@router.post("/authorize", response_model=None)
async def authorize(
    body: AuthorizeBody,
    session: OptionalSessionDep,
    issuer: Annotated[AuthorizationCodeIssuer, Depends(get_issuer)],
) -> RedirectResponse | JSONResponse:
    """Issue an authorization code and redirect back to the client.

    Errors are delivered to the app's registered redirect URI once the
    client and redirect URI have been verified. Before that they are
    returned directly, since the redirect target cannot be trusted.
    """
    request = AuthorizeRequest(
        client_id=body.client_id,
        redirect_uri=body.redirect_uri,
        scope=body.scope,
        state=body.state,
    )
    try:
        grant = await issuer.issue(session.auth if session else None, request)
    except OAuthError as e:
        if e.redirect_uri is not None:
            return RedirectResponse(with_query(e.redirect_uri, e.to_params()), status_code=303)
        return oauth_error_response(e)

    return RedirectResponse(
        with_query(request.redirect_uri, {"code": grant.code, "state": grant.state}),
        status_code=303,
    )


@router.post("/token", response_model=TokenResponseBody)
async def token(
    body: TokenBody,
    exchange: Annotated[TokenExchangeValidator, Depends(get_exchange_validator)],
) -> TokenResponseBody | JSONResponse:
    """Exchange an authorization code for an access token."""
    try:
        result = await exchange.exchange(
            TokenRequest(
                client_id=body.client_id,
                client_secret=body.client_secret,
                code=body.code,
                redirect_uri=body.redirect_uri,
            )
        )
    except OAuthError as e:
        return oauth_error_response(e)

    return TokenResponseBody(
        access_token=result.access_token,
        scope=result.scope,
        token_type=result.token_type,
    )
