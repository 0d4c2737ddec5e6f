"""
Book Model

A catalog entry: one row per distinct work, keyed internally by UUID and
externally by its Open Library id.

Books are created lazily by the library write path the first time a
reader shelves them; the stats row for a book lives in book_stats.
"""

import uuid
from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import DateTime, String, Text, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from readshelf.database import Base

if TYPE_CHECKING:
    from readshelf.models.book_stats import BookStats
    from readshelf.models.user_book import UserBook


class Book(Base):
    """
    Book model.

    Table: books

    Indexes:
    - open_library_id: Unique index for lookups from the write paths

    Example:
        book = Book(open_library_id="OL45883W", title="Dune")
    """

    __tablename__ = "books"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )

    open_library_id: Mapped[str] = mapped_column(
        String(50),
        unique=True,
        index=True,
        nullable=False,
        comment="Open Library work id"
    )

    title: Mapped[str] = mapped_column(
        String(500),
        nullable=False,
        comment="Book title"
    )

    cover_url: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    readers: Mapped[list["UserBook"]] = relationship(
        "UserBook",
        back_populates="book",
        cascade="all, delete-orphan",
    )

    # Derived counters; absent until the first refresh of this book
    stats: Mapped["BookStats | None"] = relationship(
        "BookStats",
        back_populates="book",
        uselist=False,
        cascade="all, delete-orphan",
    )

    def __repr__(self) -> str:
        return f"Book(id={self.id}, open_library_id='{self.open_library_id}', title='{self.title}')"
