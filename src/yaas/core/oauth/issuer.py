"""Authorization code issuance."""

import structlog

from yaas.core.auth.tokens import code_expiry, generate_code, utcnow
from yaas.core.auth.types import AuthContext
from yaas.core.exceptions import AuthenticationRequired, OAuthError, OAuthErrorCode
from yaas.core.oauth.repository import AppRegistry, OAuthCodeStore
from yaas.core.oauth.types import (
    MAX_PARAM_LENGTH,
    AuthorizationGrant,
    AuthorizeRequest,
    parse_client_id,
)
from yaas.core.rbac.evaluator import AccessEvaluator
from yaas.core.rbac.types import Action

logger = structlog.get_logger()


def _valid_param(value: str) -> bool:
    return bool(value) and len(value) <= MAX_PARAM_LENGTH


class AuthorizationCodeIssuer:
    """Validates authorize requests and mints single-use codes."""

    def __init__(
        self,
        apps: AppRegistry,
        codes: OAuthCodeStore,
        evaluator: AccessEvaluator,
    ) -> None:
        """Initialize the issuer.

        Args:
            apps: Registry used to resolve the client and its org bindings.
            codes: Store new codes are persisted to.
            evaluator: Access evaluator for the app-usage check.
        """
        self._apps = apps
        self._codes = codes
        self._evaluator = evaluator

    async def issue(
        self,
        context: AuthContext | None,
        request: AuthorizeRequest,
    ) -> AuthorizationGrant:
        """Issue an authorization code.

        Checks run in a fixed order and stop at the first failure:
        client, redirect URI, parameters, authentication, org binding,
        role. Errors raised after the redirect URI has been verified carry
        the registered redirect URI so they can be delivered to the client.

        Args:
            context: Caller's subject and current org, None if anonymous.
            request: The authorize parameters.

        Returns:
            A fresh code and the caller's state, unchanged.

        Raises:
            OAuthError: On any protocol validation or authorization failure.
            AuthenticationRequired: If there is no authenticated subject.
        """
        state = request.state or None

        app_id = parse_client_id(request.client_id)
        app = await self._apps.get_app(app_id) if app_id else None
        if app is None:
            logger.info("oauth_authorize_rejected", reason="unknown_client")
            raise OAuthError(OAuthErrorCode.UNAUTHORIZED_CLIENT, state=state)

        # Exact match only: no prefix, wildcard or normalization.
        if request.redirect_uri != app.redirect_uri:
            logger.info("oauth_authorize_rejected", reason="redirect_mismatch", app_id=str(app.id))
            raise OAuthError(
                OAuthErrorCode.INVALID_REQUEST,
                state=state,
                redirect_uri=app.redirect_uri,
            )

        if not _valid_param(request.scope) or not _valid_param(request.state):
            raise OAuthError(
                OAuthErrorCode.INVALID_REQUEST,
                state=state,
                redirect_uri=app.redirect_uri,
            )

        if context is None:
            raise AuthenticationRequired("Login required before authorizing an application")

        subject = context.subject
        denied = OAuthError(
            OAuthErrorCode.ACCESS_DENIED,
            state=state,
            redirect_uri=app.redirect_uri,
        )

        if context.org_id is None:
            logger.info("oauth_authorize_rejected", reason="no_org", app_id=str(app.id))
            raise denied

        binding = await self._apps.get_org_app(context.org_id, app.id)
        if binding is None:
            logger.info(
                "oauth_authorize_rejected",
                reason="app_not_bound",
                app_id=str(app.id),
                org_id=str(context.org_id),
            )
            raise denied

        if not await self._evaluator.can(subject, Action.USE_APP, context.org_id):
            logger.info(
                "oauth_authorize_rejected",
                reason="role",
                app_id=str(app.id),
                org_id=str(context.org_id),
            )
            raise denied

        issued_at = utcnow()
        record = await self._codes.create_code(
            code=generate_code(),
            state=request.state,
            redirect_uri=request.redirect_uri,
            scope=request.scope,
            app_id=app.id,
            org_id=context.org_id,
            user_id=subject.user_id,
            created_at=issued_at,
            expires_at=code_expiry(issued_at),
        )

        logger.info(
            "oauth_code_issued",
            code_id=str(record.id),
            app_id=str(app.id),
            org_id=str(context.org_id),
            user_id=str(subject.user_id),
        )
        return AuthorizationGrant(code=record.code, state=request.state)
