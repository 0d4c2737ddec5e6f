"""
Tags Service

Helpers for the per-user "status" taxonomy.

Every reader gets a "Status" tag key (mode select_one) the first time a
status is set, seeded with the default values from STATUS_VALUES. A
book carries at most one status per reader, so setting a status
replaces the previous assignment.

These helpers flush but never commit; the calling route owns the
transaction and schedules the book stats refresh after committing.
"""

import uuid

from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from readshelf.models import BookTagValue, TagKey, TagValue
from readshelf.models.tag import STATUS_KEY_SLUG, STATUS_VALUES, TagMode


class UnknownStatusError(ValueError):
    """Raised when a status slug is not one of the user's status values."""

    def __init__(self, slug: str):
        self.slug = slug
        super().__init__(f"Unknown status '{slug}'")


def get_status_key(db: Session, user_id: uuid.UUID) -> TagKey | None:
    """Get the user's status tag key with its values loaded, if it exists."""
    stmt = (
        select(TagKey)
        .options(selectinload(TagKey.values))
        .where(TagKey.user_id == user_id, TagKey.slug == STATUS_KEY_SLUG)
    )
    return db.execute(stmt).scalar_one_or_none()


def ensure_status_label(db: Session, user_id: uuid.UUID) -> TagKey:
    """
    Get the user's status tag key, creating it with default values if needed.

    Idempotent: an existing key is returned untouched, even if the user
    has since removed some of the default values.
    """
    key = get_status_key(db, user_id)
    if key is not None:
        return key

    key = TagKey(
        user_id=user_id,
        name="Status",
        slug=STATUS_KEY_SLUG,
        mode=TagMode.SELECT_ONE.value,
        values=[TagValue(name=name, slug=slug.value) for name, slug in STATUS_VALUES],
    )
    db.add(key)
    db.flush()
    return key


def get_status(db: Session, user_id: uuid.UUID, book_id: uuid.UUID) -> TagValue | None:
    """Get the status value a user assigned to a book, if any."""
    stmt = (
        select(TagValue)
        .join(BookTagValue, BookTagValue.tag_value_id == TagValue.id)
        .join(TagKey, TagKey.id == BookTagValue.tag_key_id)
        .where(
            BookTagValue.user_id == user_id,
            BookTagValue.book_id == book_id,
            TagKey.slug == STATUS_KEY_SLUG,
        )
    )
    return db.execute(stmt).scalars().first()


def set_status(
    db: Session,
    user_id: uuid.UUID,
    book_id: uuid.UUID,
    status_slug: str,
) -> TagValue:
    """
    Assign a status to a book in the user's library.

    Args:
        db: Database session
        user_id: Owner of the library
        book_id: Book being tagged
        status_slug: Slug of one of the user's status values

    Returns:
        The assigned TagValue

    Raises:
        UnknownStatusError: If the slug is not one of the user's status values
    """
    key = ensure_status_label(db, user_id)

    value = next((v for v in key.values if v.slug == status_slug), None)
    if value is None:
        raise UnknownStatusError(status_slug)

    clear_status(db, user_id, book_id, key=key)
    db.add(
        BookTagValue(
            user_id=user_id,
            book_id=book_id,
            tag_key_id=key.id,
            tag_value_id=value.id,
        )
    )
    db.flush()
    return value


def clear_status(
    db: Session,
    user_id: uuid.UUID,
    book_id: uuid.UUID,
    key: TagKey | None = None,
) -> int:
    """
    Remove the user's status assignment for a book.

    Returns:
        Number of assignments removed
    """
    if key is None:
        key = get_status_key(db, user_id)
        if key is None:
            return 0

    assignments = db.execute(
        select(BookTagValue).where(
            BookTagValue.user_id == user_id,
            BookTagValue.book_id == book_id,
            BookTagValue.tag_key_id == key.id,
        )
    ).scalars().all()

    for assignment in assignments:
        db.delete(assignment)
    db.flush()
    return len(assignments)
