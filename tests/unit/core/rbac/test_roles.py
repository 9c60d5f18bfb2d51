"""Tests for role and action types."""

import pytest

from yaas.core.exceptions import ValidationError
from yaas.core.rbac.types import Action, Role


class TestRoleHierarchy:
    """Test role ordering."""

    def test_super_admin_satisfies_everything(self) -> None:
        """SuperAdmin should satisfy every role requirement."""
        for required in Role:
            assert Role.SUPER_ADMIN.satisfies(required)

    def test_org_member_only_satisfies_itself(self) -> None:
        """OrgMember should not satisfy OrgAdmin or SuperAdmin."""
        assert Role.ORG_MEMBER.satisfies(Role.ORG_MEMBER)
        assert not Role.ORG_MEMBER.satisfies(Role.ORG_ADMIN)
        assert not Role.ORG_MEMBER.satisfies(Role.SUPER_ADMIN)

    def test_org_admin_between(self) -> None:
        """OrgAdmin should sit between member and super admin."""
        assert Role.ORG_ADMIN.satisfies(Role.ORG_MEMBER)
        assert not Role.ORG_ADMIN.satisfies(Role.SUPER_ADMIN)

    def test_highest(self) -> None:
        """Should pick the most privileged role."""
        assert Role.highest({Role.ORG_MEMBER, Role.ORG_ADMIN}) is Role.ORG_ADMIN
        assert Role.highest(set()) is None


class TestRoleParsing:
    """Test stored role parsing and serialization."""

    def test_parse_known(self) -> None:
        """Should parse the stored names exactly."""
        assert Role.parse("SuperAdmin") is Role.SUPER_ADMIN
        assert Role.parse(" OrgAdmin ") is Role.ORG_ADMIN

    @pytest.mark.parametrize("value", ["orgadmin", "Owner", "", "Org Admin"])
    def test_parse_unknown_raises(self, value: str) -> None:
        """Unknown names are a validation error, not a silent default."""
        with pytest.raises(ValidationError):
            Role.parse(value)

    def test_parse_set(self) -> None:
        """Should split the delimited column."""
        assert Role.parse_set("OrgAdmin,OrgMember") == {Role.ORG_ADMIN, Role.ORG_MEMBER}
        assert Role.parse_set("") == frozenset()
        assert Role.parse_set(None) == frozenset()

    def test_parse_set_rejects_unknown_member(self) -> None:
        """One bad entry fails the whole set."""
        with pytest.raises(ValidationError):
            Role.parse_set("OrgAdmin,Janitor")

    def test_serialize_orders_highest_first(self) -> None:
        """Serialization should be deterministic."""
        assert Role.serialize_set({Role.ORG_MEMBER, Role.SUPER_ADMIN}) == "SuperAdmin,OrgMember"

    def test_serialized_set_parses_back(self) -> None:
        """A serialized set should parse to the same roles."""
        roles = frozenset({Role.ORG_ADMIN, Role.ORG_MEMBER})
        assert Role.parse_set(Role.serialize_set(roles)) == roles


class TestActions:
    """Test action requirements."""

    def test_min_roles(self) -> None:
        """Each action should map to its least privileged role."""
        assert Action.READ.min_role is Role.ORG_MEMBER
        assert Action.USE_APP.min_role is Role.ORG_MEMBER
        assert Action.MANAGE.min_role is Role.ORG_ADMIN
        assert Action.ADMINISTER.min_role is Role.SUPER_ADMIN

    def test_only_administer_is_platform_wide(self) -> None:
        """Administer is the only action not scoped to an org."""
        assert [a for a in Action if a.platform_wide] == [Action.ADMINISTER]
