"""RBAC domain types."""

from collections.abc import Iterable
from enum import Enum

from yaas.core.exceptions import ValidationError

ROLE_DELIMITER = ","


class Role(str, Enum):
    """Membership roles, strictly ordered SuperAdmin > OrgAdmin > OrgMember."""

    SUPER_ADMIN = "SuperAdmin"
    ORG_ADMIN = "OrgAdmin"
    ORG_MEMBER = "OrgMember"

    @property
    def rank(self) -> int:
        """Position in the hierarchy, higher means more privileged."""
        return _ROLE_RANKS[self]

    def satisfies(self, required: "Role") -> bool:
        """Whether this role is at least as privileged as `required`."""
        return self.rank >= required.rank

    @classmethod
    def parse(cls, value: str) -> "Role":
        """Parse a single stored role name.

        Raises:
            ValidationError: If the name is not a known role.
        """
        try:
            return cls(value.strip())
        except ValueError:
            raise ValidationError(f"Invalid role: {value!r}") from None

    @classmethod
    def parse_set(cls, value: str | None) -> frozenset["Role"]:
        """Parse the delimited roles column into a role set."""
        if not value:
            return frozenset()
        return frozenset(cls.parse(part) for part in value.split(ROLE_DELIMITER) if part.strip())

    @staticmethod
    def serialize_set(roles: Iterable["Role"]) -> str:
        """Serialize a role set for storage, highest role first."""
        ordered = sorted(set(roles), key=lambda r: r.rank, reverse=True)
        return ROLE_DELIMITER.join(r.value for r in ordered)

    @staticmethod
    def highest(roles: Iterable["Role"]) -> "Role | None":
        """Return the most privileged role in `roles`, if any."""
        return max(roles, key=lambda r: r.rank, default=None)


_ROLE_RANKS = {
    Role.ORG_MEMBER: 1,
    Role.ORG_ADMIN: 2,
    Role.SUPER_ADMIN: 3,
}


class Action(str, Enum):
    """Actions checked by the access evaluator."""

    READ = "read"
    USE_APP = "use_app"
    MANAGE = "manage"
    ADMINISTER = "administer"

    @property
    def min_role(self) -> Role:
        """Least privileged role allowed to perform this action."""
        return _ACTION_MIN_ROLES[self]

    @property
    def platform_wide(self) -> bool:
        """Whether the action is not scoped to a single org."""
        return self is Action.ADMINISTER


_ACTION_MIN_ROLES = {
    Action.READ: Role.ORG_MEMBER,
    Action.USE_APP: Role.ORG_MEMBER,
    Action.MANAGE: Role.ORG_ADMIN,
    Action.ADMINISTER: Role.SUPER_ADMIN,
}
