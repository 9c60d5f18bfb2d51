"""Organization and membership models."""

from uuid import UUID

from sqlalchemy import ForeignKey, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from yaas.models.base import BaseModel, SoftDeleteMixin, TimestampMixin


class Org(TimestampMixin, SoftDeleteMixin, BaseModel):
    """A tenant."""

    __tablename__ = "orgs"

    name: Mapped[str] = mapped_column(String(100), nullable=False)
    status: Mapped[str] = mapped_column(String(10), nullable=False, server_default="active")
    owner_id: Mapped[UUID] = mapped_column(ForeignKey("users.id"), nullable=False, index=True)


class OrgMember(TimestampMixin, SoftDeleteMixin, BaseModel):
    """A user's membership in an org."""

    __tablename__ = "org_members"

    org_id: Mapped[UUID] = mapped_column(ForeignKey("orgs.id"), nullable=False, index=True)
    user_id: Mapped[UUID] = mapped_column(ForeignKey("users.id"), nullable=False, index=True)
    # Comma-delimited Role values, parsed by Role.parse_set
    roles: Mapped[str] = mapped_column(String(250), nullable=False)
    status: Mapped[str] = mapped_column(String(10), nullable=False, server_default="active")

    __table_args__ = (UniqueConstraint("org_id", "user_id"),)
