"""
User Endpoint Tests

Tests for DELETE /api/v1/users/me and bearer token handling.
"""

from datetime import timedelta

from fastapi import status
from fastapi.testclient import TestClient
from jose import jwt

from readshelf.config import get_settings
from readshelf.models import BookStats, User
from readshelf.services.security import ALGORITHM, create_access_token

settings = get_settings()


def get_auth_header(user: User) -> dict:
    """Helper to create authorization header for a user."""
    token = create_access_token({"sub": str(user.id)})
    return {"Authorization": f"Bearer {token}"}


class TestCloseAccount:
    """Tests for DELETE /users/me."""

    def test_close_account_refreshes_library(
        self, client: TestClient, db_session, sample_user, second_user, make_book, shelve
    ):
        """Test closing an account removes the reader from every book's stats."""
        dune = make_book("OL1W", "Dune")
        emma = make_book("OL2W", "Emma")
        shelve(sample_user, dune, rating=5, review_text="Great", status="finished")
        shelve(sample_user, emma, status="want-to-read")
        shelve(second_user, dune, rating=3, status="finished")

        response = client.delete("/api/v1/users/me", headers=get_auth_header(sample_user))

        assert response.status_code == status.HTTP_204_NO_CONTENT

        db_session.expire_all()
        assert db_session.get(User, sample_user.id).deleted_at is not None

        dune_stats = db_session.get(BookStats, dune.id)
        assert dune_stats.reads_count == 1
        assert dune_stats.rating_sum == 3
        assert dune_stats.rating_count == 1
        assert dune_stats.review_count == 0

        emma_stats = db_session.get(BookStats, emma.id)
        assert emma_stats.want_to_read_count == 0

    def test_closed_account_token_is_rejected(self, client: TestClient, sample_user):
        headers = get_auth_header(sample_user)
        client.delete("/api/v1/users/me", headers=headers)

        response = client.delete("/api/v1/users/me", headers=headers)

        assert response.status_code == status.HTTP_401_UNAUTHORIZED


class TestAuthentication:
    """Tests for bearer token validation."""

    def test_missing_token(self, client: TestClient):
        response = client.delete("/api/v1/users/me")

        assert response.status_code == status.HTTP_401_UNAUTHORIZED

    def test_garbage_token(self, client: TestClient):
        response = client.delete(
            "/api/v1/users/me", headers={"Authorization": "Bearer not-a-jwt"}
        )

        assert response.status_code == status.HTTP_401_UNAUTHORIZED

    def test_expired_token(self, client: TestClient, sample_user):
        token = create_access_token(
            {"sub": str(sample_user.id)}, expires_delta=timedelta(minutes=-1)
        )

        response = client.delete(
            "/api/v1/users/me", headers={"Authorization": f"Bearer {token}"}
        )

        assert response.status_code == status.HTTP_401_UNAUTHORIZED

    def test_wrong_token_type(self, client: TestClient, sample_user):
        token = jwt.encode(
            {"sub": str(sample_user.id), "type": "refresh"},
            settings.secret_key,
            algorithm=ALGORITHM,
        )

        response = client.delete(
            "/api/v1/users/me", headers={"Authorization": f"Bearer {token}"}
        )

        assert response.status_code == status.HTTP_401_UNAUTHORIZED

    def test_subject_is_not_a_uuid(self, client: TestClient):
        token = create_access_token({"sub": "42"})

        response = client.delete(
            "/api/v1/users/me", headers={"Authorization": f"Bearer {token}"}
        )

        assert response.status_code == status.HTTP_401_UNAUTHORIZED
