"""
SQLAlchemy Models Package

Model Relationships:
- User <-> Book: Many-to-Many through UserBook (the reader's library)
- User -> TagKey -> TagValue: per-user taxonomies
- BookTagValue: assigns a TagValue to a (user, book) pair
- Book -> BookStats: One-to-One derived counters

Import all models here so they are available as
`from readshelf.models import Book` and so Alembic discovers them.
"""

from readshelf.models.user import User
from readshelf.models.book import Book
from readshelf.models.user_book import UserBook
from readshelf.models.tag import BookTagValue, TagKey, TagValue
from readshelf.models.book_stats import BookStats

__all__ = [
    "User",
    "Book",
    "UserBook",
    "TagKey",
    "TagValue",
    "BookTagValue",
    "BookStats",
]
