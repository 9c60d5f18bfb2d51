"""Per-session selection of the current organization.

The selection travels inside the signed session token (`oid` claim), so it
survives across requests and cannot be altered by the client.
"""

from uuid import UUID

import structlog

from yaas.core.auth.jwt import create_session_token
from yaas.core.auth.repository import OrgDirectory
from yaas.core.auth.types import AuthContext, OrgMembership, Subject
from yaas.core.exceptions import NoOrgMembership, NotAMember

logger = structlog.get_logger()


class AuthContextManager:
    """Resolves and switches a subject's current org."""

    def __init__(self, directory: OrgDirectory) -> None:
        """Initialize with the org directory."""
        self._directory = directory

    async def _active_memberships(self, user_id: UUID) -> list[OrgMembership]:
        memberships = await self._directory.list_user_memberships(user_id)
        active = [m for m in memberships if m.is_active]
        return sorted(active, key=lambda m: (m.created_at, str(m.id)))

    async def current_org(self, subject: Subject, selected: UUID | None = None) -> UUID:
        """Resolve the subject's current org.

        Args:
            subject: The authenticated principal.
            selected: Org carried by the session, if any.

        Returns:
            `selected` when it is still an active membership, otherwise the
            earliest-joined active membership.

        Raises:
            NoOrgMembership: If the subject has no active membership.
        """
        memberships = await self._active_memberships(subject.user_id)
        if selected is not None and any(m.org_id == selected for m in memberships):
            return selected
        if not memberships:
            raise NoOrgMembership("User has no active org membership")
        if selected is not None:
            logger.info(
                "stale_org_selection",
                user_id=str(subject.user_id),
                org_id=str(selected),
            )
        return memberships[0].org_id

    async def resolve(self, subject: Subject, selected: UUID | None = None) -> AuthContext:
        """Build the explicit auth context for a request.

        Subjects without any membership (e.g. a freshly set up SuperAdmin)
        get a context with no current org rather than an error.
        """
        try:
            org_id: UUID | None = await self.current_org(subject, selected)
        except NoOrgMembership:
            org_id = None
        return AuthContext(subject=subject, org_id=org_id)

    async def switch(self, subject: Subject, org_id: UUID) -> str:
        """Switch the subject's current org.

        Returns:
            A new session token carrying the selection.

        Raises:
            NotAMember: If the subject has no live, active membership there.
        """
        membership = await self._directory.get_membership(org_id, subject.user_id)
        if membership is None or not membership.is_active:
            raise NotAMember("User is not a member of this organization")

        org = await self._directory.get_org(org_id)
        if org is None or not org.is_active:
            raise NotAMember("User is not a member of this organization")

        logger.info("org_switched", user_id=str(subject.user_id), org_id=str(org_id))
        return create_session_token(subject.user_id, org_id)
