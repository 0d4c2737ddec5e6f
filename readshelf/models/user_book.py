"""
UserBook Model

A reader's relationship to a book: the library entry carrying an
optional rating and review.

Business Rules:
- At most one row per (user, book)
- Rating is 1-5 when present
"""

import uuid
from datetime import UTC, datetime

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    ForeignKey,
    Integer,
    Text,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from readshelf.database import Base


class UserBook(Base):
    """
    Library entry model.

    Attributes:
        id: Primary key
        user_id: Foreign key to users table
        book_id: Foreign key to books table
        rating: Optional 1-5 star rating
        review_text: Optional review body
        date_added: When the book entered the library
    """

    __tablename__ = "user_books"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )

    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    book_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("books.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    rating: Mapped[int | None] = mapped_column(
        Integer,
        nullable=True,
        comment="Rating from 1-5 stars",
    )
    review_text: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
        comment="Review text content",
    )

    date_added: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        nullable=False,
    )

    user = relationship("User", back_populates="library")
    book = relationship("Book", back_populates="readers")

    __table_args__ = (
        UniqueConstraint("user_id", "book_id", name="uq_user_book"),
        CheckConstraint(
            "rating IS NULL OR (rating >= 1 AND rating <= 5)",
            name="ck_user_book_rating_range",
        ),
    )

    def __repr__(self) -> str:
        return f"<UserBook(user_id={self.user_id}, book_id={self.book_id}, rating={self.rating})>"
