"""
User Model

Represents a registered reader.

Accounts are never hard-deleted: closing an account sets deleted_at,
and every query that aggregates over users (profiles, book stats)
treats such rows as absent.
"""

import uuid
from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import DateTime, String, Text, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from readshelf.database import Base

if TYPE_CHECKING:
    from readshelf.models.tag import TagKey
    from readshelf.models.user_book import UserBook


class User(Base):
    """
    User model.

    Table: users

    Relationships:
    - library: One-to-Many with UserBook
    - tag_keys: One-to-Many with TagKey (per-user taxonomies)

    Example:
        user = User(
            username="reader",
            email="reader@example.com",
            password_hash=hash_password("secret123"),
        )
    """

    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )

    username: Mapped[str] = mapped_column(
        String(40),
        unique=True,
        index=True,
        nullable=False,
        comment="Unique username for profile URLs"
    )

    email: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        index=True,
        nullable=False,
        comment="User's email address"
    )

    password_hash: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        comment="Bcrypt password hash"
    )

    display_name: Mapped[str | None] = mapped_column(
        String(100),
        nullable=True,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    # Soft delete marker; NULL means the account is active
    deleted_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        comment="When the account was closed"
    )

    library: Mapped[list["UserBook"]] = relationship(
        "UserBook",
        back_populates="user",
        cascade="all, delete-orphan",
    )

    tag_keys: Mapped[list["TagKey"]] = relationship(
        "TagKey",
        back_populates="user",
        cascade="all, delete-orphan",
    )

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None

    def __repr__(self) -> str:
        return f"User(id={self.id}, username='{self.username}')"
