"""
Book Stats Service

Maintains the precomputed book_stats table:
- reads_count: active readers whose status tag is "finished"
- want_to_read_count: active readers whose status tag is "want-to-read"
- rating_sum / rating_count: ratings left by active readers
- review_count: non-empty reviews left by active readers

"Active" means the owning user has not been soft-deleted.

Two statements write the table, and nothing else does:
- refresh_book_stats(): aggregate one book and upsert its row
- backfill_book_stats(): the same aggregation over every book at once

Both are a single INSERT ... SELECT ... ON CONFLICT DO UPDATE, so a
reader never observes a partially written row. Each counter is a pure
function of the committed user-level rows, which makes refreshes
idempotent and lets concurrent refreshes of one book race safely: the
last commit wins and is correct.

Write paths do not call the aggregator directly. They schedule one of
the fire-and-forget dispatchers (refresh_by_book_id,
refresh_by_open_library_id) as a background task; failures are logged
and swallowed, and the periodic backfill repairs whatever was missed.
"""

import logging
import uuid
from collections.abc import Iterable

from sqlalchemy import Insert, Select, and_, case, distinct, func, select, true
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from readshelf.database import SessionLocal
from readshelf.models import Book, BookStats, BookTagValue, TagKey, TagValue, User, UserBook
from readshelf.models.tag import STATUS_KEY_SLUG, StatusSlug

logger = logging.getLogger(__name__)

COUNTER_COLUMNS = (
    "reads_count",
    "want_to_read_count",
    "rating_sum",
    "rating_count",
    "review_count",
)

# SQLSTATE raised by PostgreSQL when statement_timeout cancels a query
QUERY_CANCELED_SQLSTATE = "57014"


# =============================================================================
# Aggregation Query
# =============================================================================


def _aggregate_stats() -> Select:
    """
    Build the per-book aggregation, grouped by book id.

    The soft-delete filter lives in the users join condition, not in a
    WHERE clause: a book whose readers are all deleted must still produce
    a row (with zero counters) so its old counters get overwritten.
    Tag keys are joined through users.id, so a deleted reader's status
    tags fall away with the reader.
    """
    active_reader = User.id.is_not(None)

    return (
        select(
            Book.id,
            func.count(
                distinct(case((TagValue.slug == StatusSlug.FINISHED.value, User.id)))
            ),
            func.count(
                distinct(case((TagValue.slug == StatusSlug.WANT_TO_READ.value, User.id)))
            ),
            func.coalesce(func.sum(case((active_reader, UserBook.rating))), 0),
            func.count(case((active_reader, UserBook.rating))),
            func.count(
                case(
                    (
                        and_(
                            active_reader,
                            UserBook.review_text.is_not(None),
                            UserBook.review_text != "",
                        ),
                        1,
                    )
                )
            ),
        )
        .select_from(Book)
        .outerjoin(UserBook, UserBook.book_id == Book.id)
        .outerjoin(
            User,
            and_(User.id == UserBook.user_id, User.deleted_at.is_(None)),
        )
        .outerjoin(
            TagKey,
            and_(TagKey.user_id == User.id, TagKey.slug == STATUS_KEY_SLUG),
        )
        .outerjoin(
            BookTagValue,
            and_(
                BookTagValue.user_id == User.id,
                BookTagValue.book_id == UserBook.book_id,
                BookTagValue.tag_key_id == TagKey.id,
            ),
        )
        .outerjoin(TagValue, TagValue.id == BookTagValue.tag_value_id)
        .group_by(Book.id)
    )


def _upsert_stats(db: Session, aggregate: Select) -> Insert:
    """
    Wrap an aggregation in an upsert into book_stats.

    PostgreSQL serves production and SQLite serves the test suite; both
    dialects share the ON CONFLICT syntax.
    """
    dialect = db.get_bind().dialect.name
    if dialect == "postgresql":
        insert = postgresql.insert
    elif dialect == "sqlite":
        insert = sqlite.insert
    else:
        raise NotImplementedError(f"book_stats upsert is not supported on {dialect}")

    stmt = insert(BookStats).from_select(["book_id", *COUNTER_COLUMNS], aggregate)
    return stmt.on_conflict_do_update(
        index_elements=[BookStats.book_id],
        set_={
            **{column: stmt.excluded[column] for column in COUNTER_COLUMNS},
            "updated_at": func.now(),
        },
    )


def is_statement_timeout(exc: SQLAlchemyError) -> bool:
    """Check whether a database error is a statement_timeout cancellation."""
    return getattr(getattr(exc, "orig", None), "pgcode", None) == QUERY_CANCELED_SQLSTATE


# =============================================================================
# Aggregator
# =============================================================================


def refresh_book_stats(db: Session, book_id: uuid.UUID) -> None:
    """
    Recalculate and upsert the book_stats row for one book.

    A book with no library entries gets a row of zeros. An unknown
    book_id writes nothing. No retries: the caller decides what a
    failure means.

    Args:
        db: Database session
        book_id: ID of the book to refresh

    Raises:
        SQLAlchemyError: On any database failure (the session is rolled back)

    Note:
        This function commits the changes to the database.
    """
    stmt = _upsert_stats(db, _aggregate_stats().where(Book.id == book_id))
    try:
        db.execute(stmt)
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        raise


def backfill_book_stats(db: Session, timeout_seconds: int | None = None) -> int:
    """
    Recalculate book_stats for every book in one server-side statement.

    The statement is the single-book aggregation without the book
    predicate, so the row it produces for a book is identical to what
    refresh_book_stats() would write.

    Args:
        db: Database session (one pooled connection for the whole run)
        timeout_seconds: Optional ceiling, enforced on PostgreSQL through a
            transaction-local statement_timeout

    Returns:
        Number of book_stats rows inserted or updated

    Raises:
        SQLAlchemyError: On any database failure, including a timeout
            (see is_statement_timeout)
    """
    try:
        if timeout_seconds and db.get_bind().dialect.name == "postgresql":
            db.execute(
                select(
                    func.set_config(
                        "statement_timeout", str(int(timeout_seconds * 1000)), True
                    )
                )
            )
        # WHERE true keeps SQLite from reading ON CONFLICT as a join constraint
        result = db.execute(_upsert_stats(db, _aggregate_stats().where(true())))
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        raise
    return result.rowcount


# =============================================================================
# Fire-and-forget Dispatchers
# =============================================================================
# These run as FastAPI background tasks after the response has been sent,
# so they open their own session rather than reusing the request session.


def refresh_by_book_id(book_id: uuid.UUID) -> None:
    """
    Refresh one book's stats, logging and swallowing any database error.

    Usage:
        background_tasks.add_task(refresh_by_book_id, book.id)
    """
    db = SessionLocal()
    try:
        refresh_book_stats(db, book_id)
    except SQLAlchemyError as e:
        logger.error(f"bookstats.Refresh({book_id}): {e}")
    finally:
        db.close()


def refresh_by_open_library_id(open_library_id: str) -> None:
    """
    Resolve a book by its Open Library id and refresh its stats.

    An unknown id is a silent no-op: the write paths are not responsible
    for creating catalog books.
    """
    db = SessionLocal()
    try:
        book_id = db.execute(
            select(Book.id).where(Book.open_library_id == open_library_id)
        ).scalar_one_or_none()
    except SQLAlchemyError as e:
        logger.error(f"bookstats.Refresh({open_library_id}): {e}")
        return
    finally:
        db.close()

    if book_id is None:
        return

    refresh_by_book_id(book_id)


def refresh_by_book_ids(book_ids: Iterable[uuid.UUID]) -> None:
    """Refresh several books one after another (e.g. after an account closes)."""
    for book_id in book_ids:
        refresh_by_book_id(book_id)
