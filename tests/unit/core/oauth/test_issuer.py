"""Tests for authorization code issuance."""

from datetime import timedelta

import pytest
from conftest import CHAT_REDIRECT, WIKI_REDIRECT, World

from yaas.core.auth.types import AuthContext, Subject, UserStatus
from yaas.core.exceptions import AuthenticationRequired, OAuthError, OAuthErrorCode
from yaas.core.oauth.issuer import AuthorizationCodeIssuer
from yaas.core.oauth.types import AuthorizeRequest
from yaas.core.rbac.evaluator import AccessEvaluator


def make_issuer(world: World) -> AuthorizationCodeIssuer:
    return AuthorizationCodeIssuer(world.store, world.store, AccessEvaluator(world.store))


def bob_in_a(world: World) -> AuthContext:
    return AuthContext(subject=Subject(world.bob.id), org_id=world.org_a.id)


def wiki_request(world: World, **overrides: str) -> AuthorizeRequest:
    params = {
        "client_id": str(world.wiki.id),
        "redirect_uri": WIKI_REDIRECT,
        "scope": "profile",
        "state": "xyz-123",
    }
    params.update(overrides)
    return AuthorizeRequest(**params)


class TestIssueSuccess:
    """Test successful issuance."""

    @pytest.mark.asyncio
    async def test_issues_code(self, world: World) -> None:
        """Should store a code bound to app, org, user and redirect."""
        grant = await make_issuer(world).issue(bob_in_a(world), wiki_request(world))

        assert grant.state == "xyz-123"
        record = world.store.codes[grant.code]
        assert record.app_id == world.wiki.id
        assert record.org_id == world.org_a.id
        assert record.user_id == world.bob.id
        assert record.redirect_uri == WIKI_REDIRECT
        assert record.scope == "profile"
        assert record.expires_at - record.created_at == timedelta(minutes=10)

    @pytest.mark.asyncio
    async def test_state_returned_unchanged(self, world: World) -> None:
        """State is opaque and must round-trip byte for byte."""
        state = "a b&c=d/é"
        grant = await make_issuer(world).issue(bob_in_a(world), wiki_request(world, state=state))
        assert grant.state == state

    @pytest.mark.asyncio
    async def test_codes_are_distinct(self, world: World) -> None:
        """Every authorize call gets a fresh code."""
        issuer = make_issuer(world)
        first = await issuer.issue(bob_in_a(world), wiki_request(world))
        second = await issuer.issue(bob_in_a(world), wiki_request(world))
        assert first.code != second.code

    @pytest.mark.asyncio
    async def test_super_admin_in_bound_org(self, world: World) -> None:
        """SuperAdmin may authorize in any org that has the app bound."""
        context = AuthContext(subject=Subject(world.root.id, True), org_id=world.org_a.id)
        grant = await make_issuer(world).issue(context, wiki_request(world))
        assert grant.code in world.store.codes


class TestIssueClientChecks:
    """Test client and redirect validation."""

    @pytest.mark.asyncio
    async def test_unknown_client(self, world: World) -> None:
        """An unknown client gets an error that is not redirected."""
        request = wiki_request(world, client_id="00000000-0000-0000-0000-000000000000")
        with pytest.raises(OAuthError) as exc_info:
            await make_issuer(world).issue(bob_in_a(world), request)

        assert exc_info.value.code is OAuthErrorCode.UNAUTHORIZED_CLIENT
        assert not exc_info.value.redirectable
        assert not world.store.codes

    @pytest.mark.asyncio
    async def test_malformed_client_id(self, world: World) -> None:
        """A client_id that is not an app ID is an unknown client."""
        with pytest.raises(OAuthError) as exc_info:
            await make_issuer(world).issue(bob_in_a(world), wiki_request(world, client_id="wiki"))
        assert exc_info.value.code is OAuthErrorCode.UNAUTHORIZED_CLIENT

    @pytest.mark.asyncio
    async def test_deleted_client(self, world: World) -> None:
        """A soft-deleted app is unknown."""
        await world.store.delete_app(world.wiki.id)
        with pytest.raises(OAuthError) as exc_info:
            await make_issuer(world).issue(bob_in_a(world), wiki_request(world))
        assert exc_info.value.code is OAuthErrorCode.UNAUTHORIZED_CLIENT

    @pytest.mark.parametrize(
        "redirect_uri",
        [
            "https://evil.example.com/callback",
            WIKI_REDIRECT + "/extra",
            WIKI_REDIRECT + "?next=x",
            WIKI_REDIRECT.upper(),
            WIKI_REDIRECT[:-1],
        ],
    )
    @pytest.mark.asyncio
    async def test_redirect_mismatch(self, world: World, redirect_uri: str) -> None:
        """Anything but an exact match is refused and reported to the registered URI."""
        with pytest.raises(OAuthError) as exc_info:
            await make_issuer(world).issue(
                bob_in_a(world), wiki_request(world, redirect_uri=redirect_uri)
            )

        error = exc_info.value
        assert error.code is OAuthErrorCode.INVALID_REQUEST
        assert error.redirect_uri == WIKI_REDIRECT
        assert error.state == "xyz-123"
        assert not world.store.codes

    @pytest.mark.asyncio
    async def test_other_apps_redirect(self, world: World) -> None:
        """Another app's registered URI is still a mismatch."""
        with pytest.raises(OAuthError) as exc_info:
            await make_issuer(world).issue(
                bob_in_a(world), wiki_request(world, redirect_uri=CHAT_REDIRECT)
            )
        assert exc_info.value.redirect_uri == WIKI_REDIRECT


class TestIssueParameters:
    """Test scope and state validation."""

    @pytest.mark.parametrize(
        "overrides",
        [{"scope": ""}, {"state": ""}, {"scope": "s" * 251}, {"state": "s" * 251}],
    )
    @pytest.mark.asyncio
    async def test_invalid_params(self, world: World, overrides: dict[str, str]) -> None:
        """Empty or oversized scope and state are invalid requests."""
        with pytest.raises(OAuthError) as exc_info:
            await make_issuer(world).issue(bob_in_a(world), wiki_request(world, **overrides))
        assert exc_info.value.code is OAuthErrorCode.INVALID_REQUEST
        assert exc_info.value.redirectable

    @pytest.mark.asyncio
    async def test_max_length_accepted(self, world: World) -> None:
        """Exactly 250 characters is allowed."""
        grant = await make_issuer(world).issue(
            bob_in_a(world), wiki_request(world, scope="s" * 250, state="t" * 250)
        )
        assert grant.state == "t" * 250


class TestIssueAuthorization:
    """Test authentication and access checks."""

    @pytest.mark.asyncio
    async def test_requires_session(self, world: World) -> None:
        """Anonymous callers must log in first."""
        with pytest.raises(AuthenticationRequired):
            await make_issuer(world).issue(None, wiki_request(world))

    @pytest.mark.asyncio
    async def test_client_checked_before_session(self, world: World) -> None:
        """An unknown client is reported even to anonymous callers."""
        with pytest.raises(OAuthError):
            await make_issuer(world).issue(None, wiki_request(world, client_id="nope"))

    @pytest.mark.asyncio
    async def test_app_not_bound_to_org(self, world: World) -> None:
        """Carol's org may not use the wiki."""
        context = AuthContext(subject=Subject(world.carol.id), org_id=world.org_b.id)
        with pytest.raises(OAuthError) as exc_info:
            await make_issuer(world).issue(context, wiki_request(world))

        assert exc_info.value.code is OAuthErrorCode.ACCESS_DENIED
        assert exc_info.value.redirect_uri == WIKI_REDIRECT
        assert not world.store.codes

    @pytest.mark.asyncio
    async def test_no_current_org(self, world: World) -> None:
        """A subject without an org cannot authorize."""
        context = AuthContext(subject=Subject(world.dave.id), org_id=None)
        with pytest.raises(OAuthError) as exc_info:
            await make_issuer(world).issue(context, wiki_request(world))
        assert exc_info.value.code is OAuthErrorCode.ACCESS_DENIED

    @pytest.mark.asyncio
    async def test_not_a_member_of_context_org(self, world: World) -> None:
        """A context naming a foreign org grants nothing."""
        context = AuthContext(subject=Subject(world.carol.id), org_id=world.org_a.id)
        with pytest.raises(OAuthError) as exc_info:
            await make_issuer(world).issue(context, wiki_request(world))
        assert exc_info.value.code is OAuthErrorCode.ACCESS_DENIED

    @pytest.mark.asyncio
    async def test_disabled_membership(self, world: World) -> None:
        """A disabled member cannot use the org's apps."""
        member = await world.store.get_membership(world.org_a.id, world.bob.id)
        assert member is not None
        await world.store.update_member(member.id, status=UserStatus.DISABLED)

        with pytest.raises(OAuthError) as exc_info:
            await make_issuer(world).issue(bob_in_a(world), wiki_request(world))
        assert exc_info.value.code is OAuthErrorCode.ACCESS_DENIED

    @pytest.mark.asyncio
    async def test_unbound_after_unbind(self, world: World) -> None:
        """Unbinding revokes future authorizations."""
        await world.store.unbind_app(world.org_a.id, world.wiki.id)
        with pytest.raises(OAuthError) as exc_info:
            await make_issuer(world).issue(bob_in_a(world), wiki_request(world))
        assert exc_info.value.code is OAuthErrorCode.ACCESS_DENIED
