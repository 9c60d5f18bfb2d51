"""Application, org binding and authorization code models."""

from datetime import datetime
from uuid import UUID

from sqlalchemy import DateTime, ForeignKey, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from yaas.models.base import BaseModel, SoftDeleteMixin, TimestampMixin


class App(TimestampMixin, SoftDeleteMixin, BaseModel):
    """A registered OAuth client."""

    __tablename__ = "apps"

    name: Mapped[str] = mapped_column(String(100), nullable=False)
    # SHA-256 hex digest of the client secret, never the secret itself
    secret: Mapped[str] = mapped_column(String(200), nullable=False)
    redirect_uri: Mapped[str] = mapped_column(String(250), nullable=False)


class OrgApp(SoftDeleteMixin, BaseModel):
    """Permission for an org to use an app."""

    __tablename__ = "org_apps"

    org_id: Mapped[UUID] = mapped_column(ForeignKey("orgs.id"), nullable=False, index=True)
    app_id: Mapped[UUID] = mapped_column(ForeignKey("apps.id"), nullable=False, index=True)

    __table_args__ = (UniqueConstraint("org_id", "app_id"),)


class OauthCode(BaseModel):
    """A single-use authorization code. Rows are deleted when consumed or swept."""

    __tablename__ = "oauth_codes"

    code: Mapped[str] = mapped_column(String(64), nullable=False, unique=True)
    state: Mapped[str] = mapped_column(String(250), nullable=False)
    redirect_uri: Mapped[str] = mapped_column(String(250), nullable=False)
    scope: Mapped[str] = mapped_column(String(250), nullable=False)
    app_id: Mapped[UUID] = mapped_column(ForeignKey("apps.id"), nullable=False)
    org_id: Mapped[UUID] = mapped_column(ForeignKey("orgs.id"), nullable=False)
    user_id: Mapped[UUID] = mapped_column(ForeignKey("users.id"), nullable=False)
    expires_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, index=True
    )
