"""Authorization code to access token exchange."""

import structlog

from yaas.core.auth.jwt import create_app_token
from yaas.core.auth.repository import IdentityStore
from yaas.core.auth.tokens import is_expired, secret_matches, utcnow
from yaas.core.auth.types import Subject
from yaas.core.exceptions import (
    Expired,
    InvalidClient,
    InvalidGrant,
    OAuthError,
    OAuthErrorCode,
)
from yaas.core.oauth.repository import AppRegistry, OAuthCodeStore
from yaas.core.oauth.types import TokenRequest, TokenResponse, parse_client_id
from yaas.core.rbac.evaluator import AccessEvaluator
from yaas.core.rbac.types import Action

logger = structlog.get_logger()


class TokenExchangeValidator:
    """Consumes authorization codes exactly once and mints access tokens."""

    def __init__(
        self,
        codes: OAuthCodeStore,
        apps: AppRegistry,
        identity: IdentityStore,
        evaluator: AccessEvaluator,
    ) -> None:
        """Initialize the validator."""
        self._codes = codes
        self._apps = apps
        self._identity = identity
        self._evaluator = evaluator

    async def exchange(self, request: TokenRequest) -> TokenResponse:
        """Exchange a code for an access token.

        Every grant failure is reported as the same `invalid_grant` so the
        response never reveals whether a code was unknown, consumed,
        expired or mismatched. A client authentication failure never
        consumes the code.

        Raises:
            OAuthError: invalid_request, invalid_client or invalid_grant.
        """
        if not all((request.client_id, request.client_secret, request.code, request.redirect_uri)):
            raise OAuthError(OAuthErrorCode.INVALID_REQUEST)

        try:
            return await self._redeem(request)
        except InvalidClient as e:
            logger.warning("oauth_exchange_rejected", reason=e.message)
            raise OAuthError(OAuthErrorCode.INVALID_CLIENT) from e
        except InvalidGrant as e:
            logger.info("oauth_exchange_rejected", reason=e.message, error=e.error)
            raise OAuthError(OAuthErrorCode.INVALID_GRANT) from e

    async def _redeem(self, request: TokenRequest) -> TokenResponse:
        """Validate and consume the code.

        Raises:
            InvalidGrant: If the code is unknown, consumed or mismatched,
                or access was lost since issuance.
            Expired: If the code is past its expiry.
            InvalidClient: If the client id or secret is wrong.
        """
        record = await self._codes.get_code(request.code)
        if record is None:
            raise InvalidGrant("unknown_code")

        now = utcnow()
        if is_expired(record.expires_at, now):
            raise Expired(f"code {record.id} expired")

        app = await self._apps.get_app(record.app_id)
        if (
            app is None
            or parse_client_id(request.client_id) != app.id
            or not secret_matches(request.client_secret, app.secret_hash)
        ):
            raise InvalidClient(f"client mismatch for code {record.id}")

        if request.redirect_uri != record.redirect_uri:
            raise InvalidGrant(f"redirect mismatch for code {record.id}")

        # The grant must still be valid at redemption time, not only at issuance.
        user = await self._identity.get_user_by_id(record.user_id)
        if user is None or not user.is_active:
            raise InvalidGrant(f"user inactive for code {record.id}")
        subject = Subject(
            user_id=user.id,
            is_superadmin=await self._identity.is_superuser(user.id),
        )
        binding = await self._apps.get_org_app(record.org_id, app.id)
        if binding is None or not await self._evaluator.can(subject, Action.USE_APP, record.org_id):
            raise InvalidGrant(f"access revoked for code {record.id}")

        # Consumed last; any earlier failure leaves the code live.
        access_token = create_app_token(
            user_id=record.user_id,
            org_id=record.org_id,
            app_id=record.app_id,
            scope=record.scope,
        )

        consumed = await self._codes.consume_code(record.code, now)
        if consumed is None:
            raise InvalidGrant(f"code {record.id} already consumed")

        logger.info(
            "oauth_code_exchanged",
            code_id=str(record.id),
            app_id=str(record.app_id),
            org_id=str(record.org_id),
            user_id=str(record.user_id),
        )
        return TokenResponse(access_token=access_token, scope=record.scope)
