"""
Library Pydantic Schemas

Schemas for a reader's library entries (the books they shelved, with
their rating, review and status).

Business Rules:
- Rating must be 1-5 or null (validated at schema level)
- Blank reviews are stored as null
- Status slugs are validated against the user's status values in the
  route, since users may customize their taxonomy
"""

from datetime import datetime

from pydantic import BaseModel, Field, field_validator


class LibraryEntryCreate(BaseModel):
    """
    Schema for adding a book to the library.

    The catalog book is created on first use, keyed by its Open Library id.

    Example request body:
    {
        "open_library_id": "OL45883W",
        "title": "Dune",
        "status_slug": "want-to-read"
    }
    """

    open_library_id: str = Field(
        ...,
        min_length=1,
        max_length=50,
        description="Open Library work id",
        examples=["OL45883W"],
    )
    title: str = Field(
        ...,
        min_length=1,
        max_length=500,
        description="Book title",
        examples=["Dune"],
    )
    cover_url: str | None = Field(
        default=None,
        description="Cover image URL",
    )
    status_slug: str | None = Field(
        default=None,
        description="Initial reading status",
        examples=["want-to-read", "finished"],
    )

    @field_validator("open_library_id", "title")
    @classmethod
    def strip_required(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("must not be blank")
        return v


class LibraryEntryUpdate(BaseModel):
    """
    Schema for updating a library entry.

    All fields are optional; only the fields present in the request body
    are applied, so an explicit null clears a rating or review.
    """

    rating: int | None = Field(
        default=None,
        ge=1,
        le=5,
        description="Rating from 1 to 5 stars, or null to clear it",
    )
    review_text: str | None = Field(
        default=None,
        max_length=10000,
        description="Review text, or null to clear it",
    )
    status_slug: str | None = Field(
        default=None,
        description="New reading status",
    )

    @field_validator("review_text")
    @classmethod
    def review_must_not_be_blank(cls, v: str | None) -> str | None:
        """Store whitespace-only reviews as null."""
        if v is not None:
            v = v.strip()
            if not v:
                return None
        return v


class StatusUpdate(BaseModel):
    """Schema for setting a book's reading status."""

    status_slug: str = Field(
        ...,
        min_length=1,
        description="Slug of one of the user's status values",
        examples=["currently-reading"],
    )


class LibraryEntryResponse(BaseModel):
    """Library entry as returned by the API."""

    open_library_id: str
    title: str
    cover_url: str | None = None
    rating: int | None = None
    review_text: str | None = None
    status_slug: str | None = None
    date_added: datetime
