"""
FastAPI Dependencies Module

Reusable components injected into route handlers with Depends().

- DbSession: per-request database session
- CurrentUser: the authenticated, non-deleted reader
- Lookup helpers that raise 404 for unknown catalog books and
  library entries
"""

import uuid
from typing import Annotated

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy import select
from sqlalchemy.orm import Session

from readshelf.database import get_db
from readshelf.models import Book, User, UserBook
from readshelf.services.security import verify_token_type

# =============================================================================
# Type Aliases with Annotated
# =============================================================================

DbSession = Annotated[Session, Depends(get_db)]


# =============================================================================
# JWT Authentication
# =============================================================================
# Tokens are issued by the identity service; we only validate them.

oauth2_scheme = OAuth2PasswordBearer(
    tokenUrl="/api/v1/auth/login",
    auto_error=True,
)


def get_current_user(
    token: str = Depends(oauth2_scheme),
    db: Session = Depends(get_db),
) -> User:
    """
    Extract and validate the current user from the bearer token.

    Closed accounts are treated exactly like unknown users.

    Raises:
        HTTPException: 401 if the token is invalid, or the user is
            missing or soft-deleted
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    payload = verify_token_type(token, "access")
    if payload is None:
        raise credentials_exception

    try:
        user_id = uuid.UUID(str(payload.get("sub")))
    except ValueError:
        raise credentials_exception

    stmt = select(User).where(User.id == user_id, User.deleted_at.is_(None))
    user = db.execute(stmt).scalar_one_or_none()

    if user is None:
        raise credentials_exception

    return user


CurrentUser = Annotated[User, Depends(get_current_user)]


# =============================================================================
# Lookup Helpers
# =============================================================================


def get_book_by_open_library_id(db: Session, open_library_id: str) -> Book | None:
    """Get a catalog book by its Open Library id."""
    stmt = select(Book).where(Book.open_library_id == open_library_id)
    return db.execute(stmt).scalar_one_or_none()


def get_library_entry_or_404(db: Session, user: User, open_library_id: str) -> UserBook:
    """Get the user's library entry for a book, or raise 404."""
    stmt = (
        select(UserBook)
        .join(Book, Book.id == UserBook.book_id)
        .where(UserBook.user_id == user.id, Book.open_library_id == open_library_id)
    )
    entry = db.execute(stmt).scalar_one_or_none()

    if entry is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Book {open_library_id} is not in your library",
        )
    return entry
