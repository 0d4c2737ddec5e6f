"""
pytest Fixtures for Readshelf API Tests

Shared fixtures used across all test files.

For database tests, we use:
- session scope for the engine (expensive to create)
- function scope for connections and sessions (isolation between tests)

Every test runs inside one connection-level transaction that is rolled
back afterwards. Book stats refreshes scheduled as background tasks open
their own sessions; those are bound to the same connection so they see
the request's writes and are rolled back with everything else.
"""

# =============================================================================
# TEST ENVIRONMENT SETUP
# =============================================================================
# IMPORTANT: Set environment variables BEFORE importing the app
# This disables rate limiting and the periodic backfill, and sets a test secret key
import os

os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["BOOK_STATS_BACKFILL_ENABLED"] = "false"
os.environ["SECRET_KEY"] = "test-secret-key-for-unit-tests-at-least-32-characters-long"

from collections.abc import Callable, Generator
from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import Connection, create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from readshelf.database import Base, get_db
from readshelf.main import app
from readshelf.models import Book, User, UserBook
from readshelf.services.security import hash_password
from readshelf.services.tags import set_status

# =============================================================================
# DATABASE FIXTURES
# =============================================================================
# SQLite in-memory keeps the suite self-contained. The book stats upsert
# is emitted through the SQLite dialect's ON CONFLICT support, so the
# same aggregation runs here and on PostgreSQL.


@pytest.fixture(scope="session")
def engine():
    """
    Create a SQLite in-memory database engine.

    StaticPool keeps the single connection alive for the entire session;
    without it the in-memory database would disappear between connections.
    """
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    Base.metadata.create_all(bind=engine)

    yield engine

    Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def connection(engine) -> Generator[Connection, None, None]:
    """Open a connection with an outer transaction rolled back after the test."""
    connection = engine.connect()
    transaction = connection.begin()

    yield connection

    transaction.rollback()
    connection.close()


@pytest.fixture(scope="function")
def session_factory(connection: Connection) -> sessionmaker:
    """Session factory bound to the test connection."""
    return sessionmaker(
        autocommit=False,
        autoflush=False,
        bind=connection,
    )


@pytest.fixture(scope="function")
def db_session(session_factory: sessionmaker) -> Generator[Session, None, None]:
    """
    Create a fresh database session for each test.

    Commits inside the code under test do not end the outer transaction,
    so everything is discarded when the connection fixture rolls back.
    """
    session = session_factory()

    yield session

    session.close()


@pytest.fixture(autouse=True)
def background_sessions(session_factory: sessionmaker) -> Generator[sessionmaker, None, None]:
    """Point the fire-and-forget refreshes at the test connection."""
    with patch("readshelf.services.book_stats.SessionLocal", session_factory):
        yield session_factory


@pytest.fixture(scope="function")
def client(db_session: Session) -> Generator[TestClient, None, None]:
    """
    Create a test client with the test database.

    Background tasks run before TestClient returns the response, so a
    test can inspect book_stats right after a write request.
    """

    def override_get_db():
        """Provide test database session instead of real one."""
        try:
            yield db_session
        finally:
            pass  # Session cleanup handled by db_session fixture

    app.dependency_overrides[get_db] = override_get_db

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


# =============================================================================
# SAMPLE DATA FIXTURES
# =============================================================================


def _make_user(db: Session, username: str) -> User:
    user = User(
        username=username,
        email=f"{username}@example.com",
        password_hash=hash_password("SecurePass123"),
        display_name=username.capitalize(),
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture
def make_user(db_session: Session) -> Callable[[str], User]:
    """Factory for additional readers."""
    return lambda username: _make_user(db_session, username)


@pytest.fixture
def sample_user(db_session: Session) -> User:
    """Create a sample reader for testing."""
    return _make_user(db_session, "reader")


@pytest.fixture
def second_user(db_session: Session) -> User:
    """Create a second reader for testing aggregation across users."""
    return _make_user(db_session, "second")


@pytest.fixture
def make_book(db_session: Session) -> Callable[..., Book]:
    """Factory for catalog books."""

    def _make_book(open_library_id: str, title: str = "Untitled") -> Book:
        book = Book(open_library_id=open_library_id, title=title)
        db_session.add(book)
        db_session.commit()
        db_session.refresh(book)
        return book

    return _make_book


@pytest.fixture
def sample_book(make_book) -> Book:
    """Create a sample catalog book for testing."""
    return make_book("OL893415W", "Dune")


@pytest.fixture
def shelve(db_session: Session) -> Callable[..., UserBook]:
    """
    Factory that puts a book in a reader's library.

    Usage:
        shelve(user, book, rating=4, review_text="great", status="finished")
    """

    def _shelve(
        user: User,
        book: Book,
        rating: int | None = None,
        review_text: str | None = None,
        status: str | None = None,
    ) -> UserBook:
        entry = UserBook(
            user_id=user.id,
            book_id=book.id,
            rating=rating,
            review_text=review_text,
        )
        db_session.add(entry)
        db_session.flush()
        if status:
            set_status(db_session, user.id, book.id, status)
        db_session.commit()
        return entry

    return _shelve
