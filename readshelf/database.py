"""
Database Configuration Module

This module sets up SQLAlchemy 2.0 with PostgreSQL for the Readshelf API.

We use SYNCHRONOUS SQLAlchemy with psycopg2. Request handlers run in
FastAPI's threadpool and share one connection pool with the background
book stats work.

Session Management Pattern
==========================
Request handlers use the "session per request" pattern through get_db().
Work that outlives the request (fire-and-forget stats refreshes, the
periodic backfill) opens its own session from SessionLocal instead of
borrowing the request session, which is closed once the response is sent.
"""

from collections.abc import Generator

from sqlalchemy import create_engine
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker

from readshelf.config import get_settings

settings = get_settings()


# =============================================================================
# Database Engine
# =============================================================================
# - pool_size / max_overflow: shared by request handlers and background work
# - pool_pre_ping: test connection health before using
# - echo: log SQL in debug mode

engine = create_engine(
    settings.database_url,
    pool_size=settings.db_pool_size,
    max_overflow=settings.db_max_overflow,
    pool_pre_ping=True,
    echo=settings.debug,
)


# =============================================================================
# Session Factory
# =============================================================================
SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
)


# =============================================================================
# Base Model Class
# =============================================================================
class Base(DeclarativeBase):
    """
    Base class for all SQLAlchemy models.

    Alembic uses Base.metadata to discover tables for migrations.
    """
    pass


# =============================================================================
# Dependency Injection
# =============================================================================
def get_db() -> Generator[Session, None, None]:
    """
    Database session dependency for FastAPI.

    Usage in Routes:
        @router.get("/books/popular")
        def popular_books(db: DbSession):
            ...

    Yields:
        SQLAlchemy Session instance
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


# =============================================================================
# Utility Functions
# =============================================================================
def create_tables() -> None:
    """
    Create all database tables.

    Development convenience only; production schemas are managed by Alembic.
    """
    Base.metadata.create_all(bind=engine)
