"""
Library Endpoint Tests

Tests for /api/v1/me/books:
- Adding books, with and without a status
- Updating ratings, reviews and statuses
- Setting a status directly
- Removing books
- Book stats refreshed after every write, and writes succeeding even
  when the refresh fails
"""

from unittest.mock import patch

from fastapi import status
from fastapi.testclient import TestClient
from sqlalchemy import select
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

from readshelf.models import Book, BookStats, User, UserBook
from readshelf.services.book_stats import refresh_book_stats
from readshelf.services.security import create_access_token
from readshelf.services.tags import get_status

BASE_URL = "/api/v1/me/books"


def get_auth_header(user: User) -> dict:
    """Helper to create authorization header for a user."""
    token = create_access_token({"sub": str(user.id)})
    return {"Authorization": f"Bearer {token}"}


def get_stats(db: Session, book_id) -> BookStats | None:
    db.expire_all()
    return db.get(BookStats, book_id)


# =============================================================================
# POST /me/books
# =============================================================================


class TestAddBook:
    """Tests for POST /me/books."""

    def test_add_new_book(self, client: TestClient, db_session: Session, sample_user: User):
        """Test adding a book creates the catalog entry, library entry and stats row."""
        response = client.post(
            BASE_URL,
            json={
                "open_library_id": "OL893415W",
                "title": "Dune",
                "status_slug": "finished",
            },
            headers=get_auth_header(sample_user),
        )

        assert response.status_code == status.HTTP_201_CREATED
        data = response.json()
        assert data["open_library_id"] == "OL893415W"
        assert data["title"] == "Dune"
        assert data["status_slug"] == "finished"
        assert data["rating"] is None

        book = db_session.execute(
            select(Book).where(Book.open_library_id == "OL893415W")
        ).scalar_one()
        stats = get_stats(db_session, book.id)
        assert stats.reads_count == 1
        assert stats.want_to_read_count == 0

    def test_add_existing_catalog_book(
        self, client: TestClient, db_session: Session, sample_user: User, sample_book: Book
    ):
        """Test adding a book already in the catalog reuses it."""
        response = client.post(
            BASE_URL,
            json={"open_library_id": sample_book.open_library_id, "title": "Ignored"},
            headers=get_auth_header(sample_user),
        )

        assert response.status_code == status.HTTP_201_CREATED
        assert response.json()["title"] == "Dune"
        assert response.json()["status_slug"] is None
        assert get_stats(db_session, sample_book.id).counters[:2] == (0, 0)

    def test_add_twice_keeps_one_entry(
        self, client: TestClient, db_session: Session, sample_user: User, sample_book: Book
    ):
        """Test re-adding a book updates its status instead of duplicating it."""
        headers = get_auth_header(sample_user)
        payload = {"open_library_id": sample_book.open_library_id, "title": "Dune"}

        client.post(BASE_URL, json={**payload, "status_slug": "want-to-read"}, headers=headers)
        response = client.post(
            BASE_URL, json={**payload, "status_slug": "finished"}, headers=headers
        )

        assert response.status_code == status.HTTP_201_CREATED
        entries = db_session.execute(
            select(UserBook).where(UserBook.user_id == sample_user.id)
        ).scalars().all()
        assert len(entries) == 1
        stats = get_stats(db_session, sample_book.id)
        assert (stats.reads_count, stats.want_to_read_count) == (1, 0)

    def test_add_with_unknown_status(self, client: TestClient, sample_user: User):
        response = client.post(
            BASE_URL,
            json={"open_library_id": "OL1W", "title": "X", "status_slug": "abandoned"},
            headers=get_auth_header(sample_user),
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert "abandoned" in response.json()["detail"]

    def test_add_blank_title(self, client: TestClient, sample_user: User):
        response = client.post(
            BASE_URL,
            json={"open_library_id": "OL1W", "title": "   "},
            headers=get_auth_header(sample_user),
        )

        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY

    def test_add_requires_authentication(self, client: TestClient):
        response = client.post(BASE_URL, json={"open_library_id": "OL1W", "title": "X"})

        assert response.status_code == status.HTTP_401_UNAUTHORIZED

    def test_refresh_failure_does_not_fail_write(
        self, client: TestClient, db_session: Session, sample_user: User, caplog
    ):
        """Test a failing stats refresh is logged while the write still succeeds."""
        error = OperationalError("INSERT INTO book_stats ...", {}, Exception("db down"))

        with patch("readshelf.services.book_stats.refresh_book_stats", side_effect=error):
            response = client.post(
                BASE_URL,
                json={"open_library_id": "OL1W", "title": "X", "status_slug": "finished"},
                headers=get_auth_header(sample_user),
            )

        assert response.status_code == status.HTTP_201_CREATED
        assert "bookstats.Refresh(" in caplog.text
        book = db_session.execute(select(Book).where(Book.open_library_id == "OL1W")).scalar_one()
        assert get_stats(db_session, book.id) is None


# =============================================================================
# PATCH /me/books/{open_library_id}
# =============================================================================


class TestUpdateBook:
    """Tests for PATCH /me/books/{open_library_id}."""

    def test_rate_and_review(
        self, client: TestClient, db_session: Session, sample_user: User, sample_book: Book, shelve
    ):
        """Test rating and reviewing a shelved book updates the stats."""
        shelve(sample_user, sample_book, status="finished")

        response = client.patch(
            f"{BASE_URL}/{sample_book.open_library_id}",
            json={"rating": 4, "review_text": "Worth the hype."},
            headers=get_auth_header(sample_user),
        )

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["rating"] == 4
        assert data["review_text"] == "Worth the hype."
        assert data["status_slug"] == "finished"

        stats = get_stats(db_session, sample_book.id)
        assert stats.rating_count == 1
        assert stats.rating_sum == 4
        assert stats.review_count == 1

    def test_clear_rating(
        self, client: TestClient, db_session: Session, sample_user: User, sample_book: Book, shelve
    ):
        """Test an explicit null removes the rating from the stats."""
        shelve(sample_user, sample_book, rating=5)

        response = client.patch(
            f"{BASE_URL}/{sample_book.open_library_id}",
            json={"rating": None},
            headers=get_auth_header(sample_user),
        )

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["rating"] is None
        assert get_stats(db_session, sample_book.id).rating_count == 0

    def test_blank_review_is_stored_as_null(
        self, client: TestClient, db_session: Session, sample_user: User, sample_book: Book, shelve
    ):
        shelve(sample_user, sample_book, review_text="Draft")

        response = client.patch(
            f"{BASE_URL}/{sample_book.open_library_id}",
            json={"review_text": "   "},
            headers=get_auth_header(sample_user),
        )

        assert response.json()["review_text"] is None
        assert get_stats(db_session, sample_book.id).review_count == 0

    def test_change_status(
        self, client: TestClient, db_session: Session, sample_user: User, sample_book: Book, shelve
    ):
        shelve(sample_user, sample_book, status="want-to-read")

        response = client.patch(
            f"{BASE_URL}/{sample_book.open_library_id}",
            json={"status_slug": "finished"},
            headers=get_auth_header(sample_user),
        )

        assert response.json()["status_slug"] == "finished"
        stats = get_stats(db_session, sample_book.id)
        assert (stats.reads_count, stats.want_to_read_count) == (1, 0)

    def test_clear_status(
        self, client: TestClient, db_session: Session, sample_user: User, sample_book: Book, shelve
    ):
        """Test a null status removes the assignment."""
        shelve(sample_user, sample_book, status="finished")

        response = client.patch(
            f"{BASE_URL}/{sample_book.open_library_id}",
            json={"status_slug": None},
            headers=get_auth_header(sample_user),
        )

        assert response.json()["status_slug"] is None
        assert get_status(db_session, sample_user.id, sample_book.id) is None
        assert get_stats(db_session, sample_book.id).reads_count == 0

    def test_rating_out_of_range(
        self, client: TestClient, sample_user: User, sample_book: Book, shelve
    ):
        shelve(sample_user, sample_book)

        response = client.patch(
            f"{BASE_URL}/{sample_book.open_library_id}",
            json={"rating": 6},
            headers=get_auth_header(sample_user),
        )

        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY

    def test_empty_body(self, client: TestClient, sample_user: User, sample_book: Book, shelve):
        shelve(sample_user, sample_book)

        response = client.patch(
            f"{BASE_URL}/{sample_book.open_library_id}",
            json={},
            headers=get_auth_header(sample_user),
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_unknown_status(
        self, client: TestClient, sample_user: User, sample_book: Book, shelve
    ):
        shelve(sample_user, sample_book)

        response = client.patch(
            f"{BASE_URL}/{sample_book.open_library_id}",
            json={"status_slug": "not-a-status"},
            headers=get_auth_header(sample_user),
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_book_not_in_library(
        self, client: TestClient, sample_user: User, second_user: User, sample_book: Book, shelve
    ):
        """Test another reader's entry cannot be edited."""
        shelve(second_user, sample_book, rating=3)

        response = client.patch(
            f"{BASE_URL}/{sample_book.open_library_id}",
            json={"rating": 1},
            headers=get_auth_header(sample_user),
        )

        assert response.status_code == status.HTTP_404_NOT_FOUND


# =============================================================================
# PUT /me/books/{open_library_id}/status
# =============================================================================


class TestPutStatus:
    """Tests for PUT /me/books/{open_library_id}/status."""

    def test_set_status_adds_book_to_library(
        self, client: TestClient, db_session: Session, sample_user: User, sample_book: Book
    ):
        """Test tagging a catalog book creates the library entry."""
        response = client.put(
            f"{BASE_URL}/{sample_book.open_library_id}/status",
            json={"status_slug": "want-to-read"},
            headers=get_auth_header(sample_user),
        )

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["status_slug"] == "want-to-read"

        entry = db_session.execute(
            select(UserBook).where(
                UserBook.user_id == sample_user.id, UserBook.book_id == sample_book.id
            )
        ).scalar_one_or_none()
        assert entry is not None
        assert get_stats(db_session, sample_book.id).want_to_read_count == 1

    def test_replace_status(
        self, client: TestClient, db_session: Session, sample_user: User, sample_book: Book, shelve
    ):
        """Test a book keeps a single status per reader."""
        shelve(sample_user, sample_book, status="currently-reading")

        client.put(
            f"{BASE_URL}/{sample_book.open_library_id}/status",
            json={"status_slug": "finished"},
            headers=get_auth_header(sample_user),
        )

        assert get_status(db_session, sample_user.id, sample_book.id).slug == "finished"
        assert get_stats(db_session, sample_book.id).reads_count == 1

    def test_unknown_book(self, client: TestClient, sample_user: User):
        response = client.put(
            f"{BASE_URL}/OL-does-not-exist/status",
            json={"status_slug": "finished"},
            headers=get_auth_header(sample_user),
        )

        assert response.status_code == status.HTTP_404_NOT_FOUND

    def test_unknown_status(self, client: TestClient, sample_user: User, sample_book: Book):
        response = client.put(
            f"{BASE_URL}/{sample_book.open_library_id}/status",
            json={"status_slug": "lost"},
            headers=get_auth_header(sample_user),
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST


# =============================================================================
# DELETE /me/books/{open_library_id}
# =============================================================================


class TestRemoveBook:
    """Tests for DELETE /me/books/{open_library_id}."""

    def test_remove_book(
        self, client: TestClient, db_session: Session, sample_user: User, sample_book: Book, shelve
    ):
        """Test removing a book drops its entry, its status and its counters."""
        shelve(sample_user, sample_book, rating=5, review_text="Great", status="finished")
        refresh_book_stats(db_session, sample_book.id)
        assert get_stats(db_session, sample_book.id).reads_count == 1

        response = client.delete(
            f"{BASE_URL}/{sample_book.open_library_id}",
            headers=get_auth_header(sample_user),
        )

        assert response.status_code == status.HTTP_204_NO_CONTENT
        assert get_status(db_session, sample_user.id, sample_book.id) is None
        stats = get_stats(db_session, sample_book.id)
        assert stats.counters[:2] == (0, 0)
        assert stats.rating_count == 0
        assert stats.review_count == 0

    def test_remove_missing_book(self, client: TestClient, sample_user: User, sample_book: Book):
        response = client.delete(
            f"{BASE_URL}/{sample_book.open_library_id}",
            headers=get_auth_header(sample_user),
        )

        assert response.status_code == status.HTTP_404_NOT_FOUND
