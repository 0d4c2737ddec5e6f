"""
Library Router

Write endpoints for the authenticated reader's library.

Endpoints:
- POST /me/books - Add a book to the library (creates the catalog book on first use)
- PATCH /me/books/{open_library_id} - Update rating, review or status
- PUT /me/books/{open_library_id}/status - Set the reading status
- DELETE /me/books/{open_library_id} - Remove a book from the library

Every mutation commits first and then schedules a book stats refresh as
a background task, so the refresh always sees the committed rows and
never delays or fails the response.
"""

import logging
import uuid

from fastapi import APIRouter, BackgroundTasks, HTTPException, Request, Response, status
from sqlalchemy import select

from readshelf.config import get_settings
from readshelf.dependencies import (
    CurrentUser,
    DbSession,
    get_book_by_open_library_id,
    get_library_entry_or_404,
)
from readshelf.models import Book, User, UserBook
from readshelf.schemas.library import (
    LibraryEntryCreate,
    LibraryEntryResponse,
    LibraryEntryUpdate,
    StatusUpdate,
)
from readshelf.services.book_stats import refresh_by_book_id, refresh_by_open_library_id
from readshelf.services.rate_limiter import get_reader_key, limiter
from readshelf.services.tags import UnknownStatusError, clear_status, get_status, set_status

logger = logging.getLogger(__name__)

settings = get_settings()

router = APIRouter(
    prefix="/me/books",
    tags=["Library"],
    responses={
        401: {"description": "Missing or invalid bearer token"},
        404: {"description": "Book not found in the library"},
    },
)


# =============================================================================
# Helper Functions
# =============================================================================


def _get_or_create_entry(db: DbSession, user: User, book: Book) -> UserBook:
    """Get the user's library entry for a book, adding one if missing."""
    stmt = select(UserBook).where(UserBook.user_id == user.id, UserBook.book_id == book.id)
    entry = db.execute(stmt).scalar_one_or_none()

    if entry is None:
        entry = UserBook(user_id=user.id, book_id=book.id)
        db.add(entry)
        db.flush()
    return entry


def _apply_status(db: DbSession, user: User, book_id: uuid.UUID, status_slug: str) -> None:
    # Nothing is committed on failure; the request session discards the flush
    try:
        set_status(db, user.id, book_id, status_slug)
    except UnknownStatusError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e),
        )


def _to_response(db: DbSession, user: User, entry: UserBook) -> LibraryEntryResponse:
    value = get_status(db, user.id, entry.book_id)
    return LibraryEntryResponse(
        open_library_id=entry.book.open_library_id,
        title=entry.book.title,
        cover_url=entry.book.cover_url,
        rating=entry.rating,
        review_text=entry.review_text,
        status_slug=value.slug if value else None,
        date_added=entry.date_added,
    )


# =============================================================================
# Endpoints
# =============================================================================


@router.post(
    "",
    response_model=LibraryEntryResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Add a book to the library",
)
@limiter.limit(settings.rate_limit_write, key_func=get_reader_key)
def add_book(
    request: Request,
    entry_data: LibraryEntryCreate,
    db: DbSession,
    current_user: CurrentUser,
    background_tasks: BackgroundTasks,
) -> LibraryEntryResponse:
    """
    Add a book to the current user's library.

    Adding a book that is already in the library is not an error; the
    existing entry is returned (with its status updated if one is given).

    Raises:
        HTTPException: 400 if the status slug is unknown
    """
    book = get_book_by_open_library_id(db, entry_data.open_library_id)
    if book is None:
        book = Book(
            open_library_id=entry_data.open_library_id,
            title=entry_data.title,
            cover_url=entry_data.cover_url,
        )
        db.add(book)
        db.flush()
        logger.info(f"Added catalog book {book.open_library_id}: {book.title}")

    entry = _get_or_create_entry(db, current_user, book)

    if entry_data.status_slug:
        _apply_status(db, current_user, book.id, entry_data.status_slug)

    db.commit()
    background_tasks.add_task(refresh_by_book_id, book.id)

    return _to_response(db, current_user, entry)


@router.patch(
    "/{open_library_id}",
    response_model=LibraryEntryResponse,
    summary="Update a library entry",
)
@limiter.limit(settings.rate_limit_write, key_func=get_reader_key)
def update_book(
    request: Request,
    open_library_id: str,
    entry_data: LibraryEntryUpdate,
    db: DbSession,
    current_user: CurrentUser,
    background_tasks: BackgroundTasks,
) -> LibraryEntryResponse:
    """
    Update the rating, review or status of a book in the library.

    Only fields present in the body are changed. An explicit null clears
    the rating, the review or the status.

    Raises:
        HTTPException: 400 if the body is empty or the status slug is unknown
        HTTPException: 404 if the book is not in the library
    """
    update_data = entry_data.model_dump(exclude_unset=True)
    if not update_data:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="No fields to update",
        )

    entry = get_library_entry_or_404(db, current_user, open_library_id)

    if "rating" in update_data:
        entry.rating = update_data["rating"]
    if "review_text" in update_data:
        entry.review_text = update_data["review_text"]

    if "status_slug" in update_data:
        if update_data["status_slug"]:
            _apply_status(db, current_user, entry.book_id, update_data["status_slug"])
        else:
            clear_status(db, current_user.id, entry.book_id)

    db.commit()
    background_tasks.add_task(refresh_by_book_id, entry.book_id)

    return _to_response(db, current_user, entry)


@router.put(
    "/{open_library_id}/status",
    response_model=LibraryEntryResponse,
    summary="Set reading status",
)
@limiter.limit(settings.rate_limit_write, key_func=get_reader_key)
def put_status(
    request: Request,
    open_library_id: str,
    status_data: StatusUpdate,
    db: DbSession,
    current_user: CurrentUser,
    background_tasks: BackgroundTasks,
) -> LibraryEntryResponse:
    """
    Set the reading status of a catalog book.

    Tagging a book adds it to the library if it is not there yet.

    Raises:
        HTTPException: 404 if the book is not in the catalog
        HTTPException: 400 if the status slug is unknown
    """
    book = get_book_by_open_library_id(db, open_library_id)
    if book is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Book {open_library_id} not found",
        )

    entry = _get_or_create_entry(db, current_user, book)
    _apply_status(db, current_user, book.id, status_data.status_slug)

    db.commit()
    background_tasks.add_task(refresh_by_book_id, book.id)

    return _to_response(db, current_user, entry)


@router.delete(
    "/{open_library_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
    summary="Remove a book from the library",
)
@limiter.limit(settings.rate_limit_write, key_func=get_reader_key)
def remove_book(
    request: Request,
    open_library_id: str,
    db: DbSession,
    current_user: CurrentUser,
    background_tasks: BackgroundTasks,
) -> None:
    """
    Remove a book from the library along with its status.

    Raises:
        HTTPException: 404 if the book is not in the library
    """
    entry = get_library_entry_or_404(db, current_user, open_library_id)

    clear_status(db, current_user.id, entry.book_id)
    db.delete(entry)
    db.commit()

    background_tasks.add_task(refresh_by_open_library_id, open_library_id)
