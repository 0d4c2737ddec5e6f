"""
Users Router

Account endpoints for the authenticated reader.

Endpoints:
- DELETE /users/me - Close the account (soft delete)
"""

import logging
from datetime import UTC, datetime

from fastapi import APIRouter, BackgroundTasks, Request, Response, status
from sqlalchemy import select

from readshelf.config import get_settings
from readshelf.dependencies import CurrentUser, DbSession
from readshelf.models import UserBook
from readshelf.services.book_stats import refresh_by_book_ids
from readshelf.services.rate_limiter import get_reader_key, limiter

logger = logging.getLogger(__name__)

settings = get_settings()

router = APIRouter(
    prefix="/users",
    tags=["Users"],
)


@router.delete(
    "/me",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
    summary="Close account",
)
@limiter.limit(settings.rate_limit_write, key_func=get_reader_key)
def delete_me(
    request: Request,
    db: DbSession,
    current_user: CurrentUser,
    background_tasks: BackgroundTasks,
) -> None:
    """
    Close the current user's account.

    The user row and library are kept but marked deleted, so the user
    drops out of every aggregate. Each book in the library gets a stats
    refresh so its counters stop including this reader.
    """
    book_ids = list(
        db.execute(select(UserBook.book_id).where(UserBook.user_id == current_user.id)).scalars()
    )

    current_user.deleted_at = datetime.now(UTC)
    db.commit()
    logger.info(f"Closed account {current_user.id} ({len(book_ids)} books to refresh)")

    background_tasks.add_task(refresh_by_book_ids, book_ids)
