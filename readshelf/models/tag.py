"""
Tag Models

Per-user taxonomies ("labels") applied to books in a reader's library.

- TagKey: a named taxonomy owned by a user (e.g. "Status", "Format")
- TagValue: one entry of a taxonomy (e.g. "Finished", "Want to Read")
- BookTagValue: assigns a value to a (user, book) pair

The "status" key is special: its values drive the reads and
want-to-read counters in book_stats. It is created on demand with the
default values listed in STATUS_VALUES.
"""

import uuid
from datetime import datetime
from enum import StrEnum
from typing import TYPE_CHECKING

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, String, UniqueConstraint, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from readshelf.database import Base

if TYPE_CHECKING:
    from readshelf.models.user import User


STATUS_KEY_SLUG = "status"


class StatusSlug(StrEnum):
    """Slugs of the default status values."""

    WANT_TO_READ = "want-to-read"
    OWNED_TO_READ = "owned-to-read"
    CURRENTLY_READING = "currently-reading"
    FINISHED = "finished"
    DNF = "dnf"


# Display names for the default status values, in menu order
STATUS_VALUES: list[tuple[str, StatusSlug]] = [
    ("Want to Read", StatusSlug.WANT_TO_READ),
    ("Owned to Read", StatusSlug.OWNED_TO_READ),
    ("Currently Reading", StatusSlug.CURRENTLY_READING),
    ("Finished", StatusSlug.FINISHED),
    ("DNF", StatusSlug.DNF),
]


class TagMode(StrEnum):
    """How many values of a key a single book may carry."""

    SELECT_ONE = "select_one"
    SELECT_MULTIPLE = "select_multiple"


class TagKey(Base):
    """
    A user-owned taxonomy.

    Table: tag_keys
    """

    __tablename__ = "tag_keys"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    slug: Mapped[str] = mapped_column(String(100), nullable=False)
    mode: Mapped[str] = mapped_column(
        String(20),
        default=TagMode.SELECT_ONE.value,
        nullable=False,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    user: Mapped["User"] = relationship("User", back_populates="tag_keys")
    values: Mapped[list["TagValue"]] = relationship(
        "TagValue",
        back_populates="key",
        cascade="all, delete-orphan",
    )

    __table_args__ = (
        UniqueConstraint("user_id", "slug", name="uq_tag_key_user_slug"),
        CheckConstraint(
            f"mode IN ('{TagMode.SELECT_ONE.value}', '{TagMode.SELECT_MULTIPLE.value}')",
            name="ck_tag_key_mode",
        ),
    )

    def __repr__(self) -> str:
        return f"TagKey(id={self.id}, user_id={self.user_id}, slug='{self.slug}')"


class TagValue(Base):
    """
    One value of a TagKey.

    Table: tag_values
    """

    __tablename__ = "tag_values"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    tag_key_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("tag_keys.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    slug: Mapped[str] = mapped_column(String(255), nullable=False)

    key: Mapped["TagKey"] = relationship("TagKey", back_populates="values")

    __table_args__ = (
        UniqueConstraint("tag_key_id", "slug", name="uq_tag_value_key_slug"),
    )

    def __repr__(self) -> str:
        return f"TagValue(id={self.id}, slug='{self.slug}')"


class BookTagValue(Base):
    """
    Assignment of a tag value to a book in a user's library.

    Table: book_tag_values
    """

    __tablename__ = "book_tag_values"

    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        primary_key=True,
    )
    book_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("books.id", ondelete="CASCADE"),
        primary_key=True,
        index=True,
    )
    tag_key_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("tag_keys.id", ondelete="CASCADE"),
        primary_key=True,
    )
    tag_value_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("tag_values.id", ondelete="CASCADE"),
        primary_key=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    value: Mapped["TagValue"] = relationship("TagValue")

    def __repr__(self) -> str:
        return (
            f"<BookTagValue(user_id={self.user_id}, book_id={self.book_id}, "
            f"tag_value_id={self.tag_value_id})>"
        )
