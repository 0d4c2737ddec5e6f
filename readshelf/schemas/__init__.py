"""
Pydantic Schemas Package

Request and response models for the API, kept separate from the
SQLAlchemy models so the wire format can evolve independently of the
schema.

Schema Naming Convention:
- XxxCreate: Fields required when creating a new record
- XxxUpdate: Fields allowed when updating (all optional)
- XxxResponse: Fields returned in API responses
"""

from readshelf.schemas.book import BookStatsResponse, PopularBookResponse
from readshelf.schemas.library import (
    LibraryEntryCreate,
    LibraryEntryResponse,
    LibraryEntryUpdate,
    StatusUpdate,
)

__all__ = [
    "BookStatsResponse",
    "PopularBookResponse",
    "LibraryEntryCreate",
    "LibraryEntryResponse",
    "LibraryEntryUpdate",
    "StatusUpdate",
]
