"""Access control evaluation.

The evaluator holds no state of its own. Every answer is computed from the
org directory at call time, so a single instance is safe to share across
concurrent requests.
"""

from uuid import UUID

import structlog

from yaas.core.auth.repository import OrgDirectory
from yaas.core.auth.types import Subject
from yaas.core.exceptions import AuthorizationDenied
from yaas.core.rbac.types import Action, Role

logger = structlog.get_logger()


class AccessEvaluator:
    """Answers "may subject S perform action A in org O"."""

    def __init__(self, directory: OrgDirectory) -> None:
        """Initialize with the org directory.

        Args:
            directory: Source of orgs and memberships.
        """
        self._directory = directory

    async def effective_role(self, subject: Subject, org_id: UUID | None) -> Role | None:
        """Compute the subject's effective role in an org.

        SuperAdmin comes only from the platform flag and applies to every
        org, with or without a membership row. Otherwise the highest role
        of a live, active membership in a live, active org is returned. A
        SuperAdmin role stored on a membership without the platform flag
        counts as OrgAdmin for that org.

        Args:
            subject: The authenticated principal.
            org_id: Org to evaluate, None for platform scope.

        Returns:
            The effective role, or None if the subject has no standing.
        """
        if subject.is_superadmin:
            return Role.SUPER_ADMIN
        if org_id is None:
            return None

        membership = await self._directory.get_membership(org_id, subject.user_id)
        if membership is None or not membership.is_active:
            return None

        org = await self._directory.get_org(org_id)
        if org is None or not org.is_active:
            return None

        role = Role.highest(membership.roles)
        if role is Role.SUPER_ADMIN:
            return Role.ORG_ADMIN
        return role

    async def can(self, subject: Subject, action: Action, org_scope: UUID | None) -> bool:
        """Check whether the subject may perform `action` within `org_scope`."""
        if action.platform_wide:
            return subject.is_superadmin

        role = await self.effective_role(subject, org_scope)
        allowed = role is not None and role.satisfies(action.min_role)
        if not allowed:
            logger.debug(
                "access_denied",
                user_id=str(subject.user_id),
                action=action.value,
                org_id=str(org_scope) if org_scope else None,
            )
        return allowed

    async def require(self, subject: Subject, action: Action, org_scope: UUID | None) -> None:
        """Like `can`, but raise instead of returning False.

        Raises:
            AuthorizationDenied: If the check fails.
        """
        if not await self.can(subject, action, org_scope):
            raise AuthorizationDenied(f"Not allowed to {action.value.replace('_', ' ')}")

    async def permitted_actions(self, subject: Subject, org_id: UUID | None) -> list[Action]:
        """List the actions the subject may perform in an org."""
        role = await self.effective_role(subject, org_id)
        actions = []
        for action in Action:
            if action.platform_wide:
                if subject.is_superadmin:
                    actions.append(action)
            elif role is not None and role.satisfies(action.min_role):
                actions.append(action)
        return actions
