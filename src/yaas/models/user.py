"""User, password and superuser models."""

from datetime import datetime
from uuid import UUID

from sqlalchemy import DateTime, ForeignKey, Index, String, func, text
from sqlalchemy.orm import Mapped, mapped_column

from yaas.models.base import Base, BaseModel, SoftDeleteMixin, TimestampMixin


class User(TimestampMixin, SoftDeleteMixin, BaseModel):
    """A person who can log in."""

    __tablename__ = "users"

    email: Mapped[str] = mapped_column(String(250), nullable=False)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    status: Mapped[str] = mapped_column(String(10), nullable=False, server_default="active")

    __table_args__ = (
        # Email is only unique among users that have not been deleted
        Index(
            "uq_users_email_active",
            "email",
            unique=True,
            postgresql_where=text("deleted_at IS NULL"),
        ),
    )


class Password(Base):
    """A user's password hash, kept apart from the user row."""

    __tablename__ = "passwords"

    user_id: Mapped[UUID] = mapped_column(ForeignKey("users.id"), primary_key=True)
    password_hash: Mapped[str] = mapped_column(String(200), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )


class Superuser(SoftDeleteMixin, BaseModel):
    """Platform-wide SuperAdmin flag."""

    __tablename__ = "superusers"

    user_id: Mapped[UUID] = mapped_column(ForeignKey("users.id"), nullable=False, unique=True)
