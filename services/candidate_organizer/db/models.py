"""
SQLAlchemy database models for Candidate Organizer authentication.

All models use:
- UUIDv7 primary keys (time-sortable) where rows are user-facing
- snake_case column names
- Plural table names
- TIMESTAMPTZ with UTC for all timestamps
"""

import uuid
from datetime import UTC, datetime
from enum import StrEnum

from sqlalchemy import DateTime, Enum, String, Uuid
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

BOOTSTRAP_ADMIN_CLAIM = "bootstrap_admin"


def generate_uuid7() -> uuid.UUID:
    """Generate a UUIDv7 (time-sortable UUID)."""
    import time

    timestamp_ms = int(time.time() * 1000)
    rand_bytes = uuid.uuid4().bytes[6:]

    uuid_bytes = (
        timestamp_ms.to_bytes(6, "big")
        + bytes([0x70 | (rand_bytes[0] & 0x0F)])  # Version 7
        + bytes([0x80 | (rand_bytes[1] & 0x3F)])  # Variant
        + rand_bytes[2:]
    )
    return uuid.UUID(bytes=uuid_bytes)


def utc_now() -> datetime:
    """Get current UTC datetime."""
    return datetime.now(UTC)


class UserRole(StrEnum):
    """The only two roles a user can hold."""

    ADMIN = "admin"
    USER = "user"


class Base(DeclarativeBase):
    """Base class for all models."""


class User(Base):
    """User account, created on first successful Google login.

    Email is unique across all users. Role is fixed at creation and only
    changes through an explicit promotion.
    """

    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=generate_uuid7)
    email: Mapped[str] = mapped_column(String(255), unique=True, index=True, nullable=False)
    display_name: Mapped[str] = mapped_column(String(255), default="", nullable=False)
    role: Mapped[UserRole] = mapped_column(
        Enum(
            UserRole,
            name="user_role",
            native_enum=False,
            create_constraint=True,
            validate_strings=True,
            length=16,
            values_callable=lambda roles: [r.value for r in roles],
        ),
        default=UserRole.USER,
        nullable=False,
    )
    workspace_domain: Mapped[str] = mapped_column(String(255), default="", nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, nullable=False
    )

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN


class BootstrapClaim(Base):
    """Sentinel row marking that the first-admin slot has been taken.

    The primary key on ``name`` serializes concurrent first logins: only one
    transaction can insert the ``bootstrap_admin`` row.
    """

    __tablename__ = "bootstrap_claims"

    name: Mapped[str] = mapped_column(String(63), primary_key=True)
    # Not a foreign key: the claim is inserted before the user row and must
    # outlive that user if it is ever deleted.
    user_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    claimed_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, nullable=False
    )
