"""
BookStats Model

Precomputed per-book counters used by catalog listings.

Every column is derived from user_books, users and the status tags.
Rows are written only by readshelf.services.book_stats (single-book
refresh and full backfill), always through an upsert keyed on book_id.
Readers join this table directly and compute averages themselves as
rating_sum / NULLIF(rating_count, 0).
"""

import uuid
from datetime import datetime
from decimal import Decimal

from sqlalchemy import DateTime, ForeignKey, Integer, Numeric, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from readshelf.database import Base


class BookStats(Base):
    """
    Derived statistics row, one per book.

    Table: book_stats
    """

    __tablename__ = "book_stats"

    book_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("books.id", ondelete="CASCADE"),
        primary_key=True,
    )

    reads_count: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        index=True,
        default=0,
        server_default="0",
        comment="Active readers whose status is finished",
    )
    want_to_read_count: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
        server_default="0",
        comment="Active readers whose status is want-to-read",
    )
    rating_sum: Mapped[Decimal] = mapped_column(
        Numeric,
        nullable=False,
        default=0,
        server_default="0",
        comment="Sum of ratings from active readers",
    )
    rating_count: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        index=True,
        default=0,
        server_default="0",
        comment="Number of ratings from active readers",
    )
    review_count: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
        server_default="0",
        comment="Number of non-empty reviews from active readers",
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    book = relationship("Book", back_populates="stats")

    @property
    def counters(self) -> tuple[int, int, Decimal, int, int]:
        """The five counters, in column order."""
        return (
            self.reads_count,
            self.want_to_read_count,
            self.rating_sum,
            self.rating_count,
            self.review_count,
        )

    def __repr__(self) -> str:
        return (
            f"BookStats(book_id={self.book_id}, reads={self.reads_count}, "
            f"want_to_read={self.want_to_read_count}, ratings={self.rating_count}, "
            f"reviews={self.review_count})"
        )
