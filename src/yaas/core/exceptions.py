"""Domain-specific exceptions.

All exceptions in the yaas system inherit from YaasError, making it easy
to catch all system errors while still being able to handle specific
error types. The API layer maps each kind to a status code; the OAuth
endpoints render OAuthError in the authorization-code grant's own shape.
"""

from __future__ import annotations

from enum import Enum


class YaasError(Exception):
    """Base exception for all yaas errors."""

    status_code = 500
    error = "internal_error"

    def __init__(self, message: str = "") -> None:
        """Initialize with a human readable message."""
        super().__init__(message or self.__class__.__doc__ or self.error)
        self.message = message or self.error


class ValidationError(YaasError):
    """Malformed or mismatched input (missing fields, bad values)."""

    status_code = 400
    error = "validation_error"


class AuthenticationRequired(YaasError):
    """No active session. The caller must log in and retry."""

    status_code = 401
    error = "authentication_required"


class InvalidCredentials(AuthenticationRequired):
    """Email/password login failed."""

    error = "invalid_credentials"


class AuthorizationDenied(YaasError):
    """Role or org-scope check failed."""

    status_code = 403
    error = "forbidden"


class NotAMember(AuthorizationDenied):
    """Subject has no live, active membership in the requested org."""

    error = "not_a_member"


class NoOrgMembership(AuthorizationDenied):
    """Subject has no active membership in any org."""

    error = "no_org_membership"


class NotFound(YaasError):
    """Entity missing or soft-deleted."""

    status_code = 404
    error = "not_found"


class Conflict(YaasError):
    """Uniqueness violation, e.g. duplicate membership or binding."""

    status_code = 409
    error = "conflict"


class InvalidGrant(YaasError):
    """Unknown, consumed, expired or mismatched authorization code."""

    status_code = 400
    error = "invalid_grant"


class Expired(InvalidGrant):
    """Code is past its expiry."""

    error = "expired"


class InvalidClient(YaasError):
    """Client authentication failed."""

    status_code = 401
    error = "invalid_client"


class OAuthErrorCode(str, Enum):
    """Authorization code grant error vocabulary."""

    INVALID_REQUEST = "invalid_request"
    INVALID_CLIENT = "invalid_client"
    INVALID_GRANT = "invalid_grant"
    UNAUTHORIZED_CLIENT = "unauthorized_client"
    ACCESS_DENIED = "access_denied"


# Descriptions are fixed per code so responses never reveal which check failed.
OAUTH_ERROR_DESCRIPTIONS: dict[OAuthErrorCode, str] = {
    OAuthErrorCode.INVALID_REQUEST: "The request is missing a parameter or is otherwise malformed.",
    OAuthErrorCode.INVALID_CLIENT: "Client authentication failed.",
    OAuthErrorCode.INVALID_GRANT: "The authorization code is invalid or has expired.",
    OAuthErrorCode.UNAUTHORIZED_CLIENT: "The client is not authorized to request a code.",
    OAuthErrorCode.ACCESS_DENIED: "The user or organization may not use this application.",
}


class OAuthError(YaasError):
    """An error surfaced in OAuth's own shape.

    Attributes:
        code: The OAuth error code.
        state: Opaque state echoed back to the client, if any.
        redirect_uri: Trusted redirect target for the error, or None when
            the error must be returned as a response body instead.
    """

    status_code = 400

    def __init__(
        self,
        code: OAuthErrorCode,
        state: str | None = None,
        redirect_uri: str | None = None,
        description: str | None = None,
    ) -> None:
        """Initialize the OAuth error.

        Args:
            code: OAuth error code.
            state: Opaque client state to echo.
            redirect_uri: Registered redirect URI to deliver the error to.
            description: Override for the generic error description.
        """
        self.code = code
        self.error = code.value
        self.description = description or OAUTH_ERROR_DESCRIPTIONS[code]
        self.state = state
        self.redirect_uri = redirect_uri
        super().__init__(self.description)
        if code is OAuthErrorCode.INVALID_CLIENT:
            self.status_code = 401

    @property
    def redirectable(self) -> bool:
        """Whether the error can be delivered to a trusted redirect URI."""
        return self.redirect_uri is not None

    def to_params(self) -> dict[str, str]:
        """Render as OAuth error parameters."""
        params = {"error": self.error, "error_description": self.description}
        if self.state is not None:
            params["state"] = self.state
        return params
