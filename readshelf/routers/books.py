"""
Books Router

Catalog read endpoints backed by the precomputed book_stats table.

Endpoints:
- GET /books/popular - Most read and rated books
- GET /books/{open_library_id}/stats - Counters for one book

These are plain reads: they never aggregate user rows themselves, so
they can lag behind recent writes until the next refresh or backfill.
"""

from decimal import Decimal

from fastapi import APIRouter, Query, Request
from sqlalchemy import or_, select

from readshelf.config import get_settings
from readshelf.dependencies import DbSession, get_book_by_open_library_id
from readshelf.models import Book, BookStats
from readshelf.schemas.book import BookStatsResponse, PopularBookResponse
from readshelf.services.rate_limiter import limiter

settings = get_settings()

router = APIRouter(
    prefix="/books",
    tags=["Books"],
)


def average_rating(rating_sum: Decimal | int, rating_count: int) -> float | None:
    """
    Mean rating rounded to 2 decimals, or None without ratings.

    Example:
        >>> average_rating(Decimal(9), 2)
        4.5
    """
    if not rating_count:
        return None
    return round(float(rating_sum) / rating_count, 2)


@router.get(
    "/popular",
    response_model=list[PopularBookResponse],
    summary="Popular books",
    description="Books with at least one read or rating, most read first.",
)
@limiter.limit(settings.rate_limit_default)
def popular_books(
    request: Request,
    db: DbSession,
    limit: int = Query(default=12, ge=1, le=100, description="Maximum number of books"),
) -> list[PopularBookResponse]:
    stmt = (
        select(Book, BookStats)
        .join(BookStats, BookStats.book_id == Book.id)
        .where(or_(BookStats.reads_count > 0, BookStats.rating_count > 0))
        .order_by(
            BookStats.reads_count.desc(),
            BookStats.rating_count.desc(),
            Book.title,
        )
        .limit(limit)
    )

    return [
        PopularBookResponse(
            open_library_id=book.open_library_id,
            title=book.title,
            cover_url=book.cover_url,
            reads_count=stats.reads_count,
            rating_count=stats.rating_count,
            average_rating=average_rating(stats.rating_sum, stats.rating_count),
        )
        for book, stats in db.execute(stmt).all()
    ]


@router.get(
    "/{open_library_id}/stats",
    response_model=BookStatsResponse,
    summary="Book statistics",
    description="Read, want-to-read, rating and review counts for a book.",
)
@limiter.limit(settings.rate_limit_default)
def get_book_stats(
    request: Request,
    open_library_id: str,
    db: DbSession,
) -> BookStatsResponse:
    """
    Get the counters for one book.

    Unknown books and books whose stats were never computed report zeros
    rather than 404, matching how catalog pages render them.
    """
    book = get_book_by_open_library_id(db, open_library_id)
    if book is None or book.stats is None:
        return BookStatsResponse(open_library_id=open_library_id)

    stats = book.stats
    return BookStatsResponse(
        open_library_id=open_library_id,
        reads_count=stats.reads_count,
        want_to_read_count=stats.want_to_read_count,
        rating_count=stats.rating_count,
        review_count=stats.review_count,
        average_rating=average_rating(stats.rating_sum, stats.rating_count),
    )
