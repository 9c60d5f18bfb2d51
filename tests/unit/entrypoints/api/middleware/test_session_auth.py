"""Tests for session authentication dependencies."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

import pytest
from fastapi.security import HTTPAuthorizationCredentials

from yaas.core.auth.types import AuthContext, Subject
from yaas.core.exceptions import AuthenticationRequired, AuthorizationDenied
from yaas.entrypoints.api.middleware.session_auth import (
    SessionContext,
    optional_session,
    require_platform_admin,
    require_session,
)


def _credentials(token: str = "session-token") -> HTTPAuthorizationCredentials:
    return HTTPAuthorizationCredentials(scheme="Bearer", credentials=token)


def _context(is_superadmin: bool = False) -> tuple[AuthContext, MagicMock]:
    user = MagicMock()
    user.id = uuid4()
    subject = Subject(user_id=user.id, is_superadmin=is_superadmin)
    return AuthContext(subject=subject, org_id=uuid4()), user


class TestRequireSession:
    """Tests for require_session."""

    @pytest.mark.asyncio
    async def test_missing_token(self) -> None:
        """No credentials is a 401."""
        service = AsyncMock()

        with pytest.raises(AuthenticationRequired, match="Missing authentication token"):
            await require_session(service, None)

        service.authenticate_session.assert_not_called()

    @pytest.mark.asyncio
    async def test_valid_token(self) -> None:
        """A verified token yields the session context."""
        context, user = _context()
        service = AsyncMock()
        service.authenticate_session.return_value = (context, user)

        session = await require_session(service, _credentials("abc"))

        service.authenticate_session.assert_awaited_once_with("abc")
        assert session.user is user
        assert session.subject == context.subject
        assert session.org_id == context.org_id

    @pytest.mark.asyncio
    async def test_rejected_token(self) -> None:
        """Service rejections propagate."""
        service = AsyncMock()
        service.authenticate_session.side_effect = AuthenticationRequired("Token has expired")

        with pytest.raises(AuthenticationRequired, match="expired"):
            await require_session(service, _credentials())


class TestOptionalSession:
    """Tests for optional_session."""

    @pytest.mark.asyncio
    async def test_missing_token(self) -> None:
        """No credentials is anonymous."""
        assert await optional_session(AsyncMock(), None) is None

    @pytest.mark.asyncio
    async def test_invalid_token(self) -> None:
        """A bad token is treated as anonymous."""
        service = AsyncMock()
        service.authenticate_session.side_effect = AuthenticationRequired("Invalid token")

        assert await optional_session(service, _credentials()) is None

    @pytest.mark.asyncio
    async def test_valid_token(self) -> None:
        """A good token resolves the session."""
        context, user = _context()
        service = AsyncMock()
        service.authenticate_session.return_value = (context, user)

        session = await optional_session(service, _credentials())

        assert session is not None
        assert session.auth is context


class TestRequirePlatformAdmin:
    """Tests for require_platform_admin."""

    @pytest.mark.asyncio
    async def test_allows_super_admin(self) -> None:
        """SuperAdmins pass through."""
        context, user = _context(is_superadmin=True)
        session = SessionContext(auth=context, user=user)
        evaluator = AsyncMock()
        evaluator.can.return_value = True

        assert await require_platform_admin(session, evaluator) is session

    @pytest.mark.asyncio
    async def test_denies_others(self) -> None:
        """Everyone else is a 403."""
        context, user = _context()
        evaluator = AsyncMock()
        evaluator.can.return_value = False

        with pytest.raises(AuthorizationDenied):
            await require_platform_admin(SessionContext(auth=context, user=user), evaluator)
