"""
Book Pydantic Schemas

Read-side schemas over the precomputed book_stats table.
"""

from pydantic import BaseModel, ConfigDict, Field


class BookStatsResponse(BaseModel):
    """
    Aggregate statistics for one book.

    All counters are zero for a book that is unknown or has not been
    refreshed yet.
    """

    open_library_id: str
    reads_count: int = Field(default=0, description="Readers who finished the book")
    want_to_read_count: int = Field(default=0, description="Readers who want to read it")
    rating_count: int = Field(default=0, description="Number of ratings")
    review_count: int = Field(default=0, description="Number of written reviews")
    average_rating: float | None = Field(
        default=None,
        description="Mean rating rounded to 2 decimals, null without ratings",
    )


class PopularBookResponse(BaseModel):
    """Catalog book with its headline counters."""

    open_library_id: str
    title: str
    cover_url: str | None = None
    reads_count: int
    rating_count: int
    average_rating: float | None = None

    model_config = ConfigDict(from_attributes=True)
