#!/usr/bin/env python3
"""
Database Seed Script

Populates the database with sample readers and books for development.

USAGE:
    # Make sure you're in the project root with venv activated
    python scripts/seed_data.py

This script:
1. Creates tables if needed and clears existing data
2. Creates sample readers and catalog books
3. Shelves books with statuses, ratings and reviews
4. Closes one account to show soft-deleted readers dropping out of stats
5. Runs a full book stats backfill
"""

import sys
from datetime import UTC, datetime
from pathlib import Path

# Add project root to Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from sqlalchemy import delete
from sqlalchemy.orm import Session

from readshelf.database import SessionLocal, create_tables
from readshelf.models import Book, BookStats, BookTagValue, TagKey, TagValue, User, UserBook
from readshelf.services.book_stats import backfill_book_stats
from readshelf.services.security import hash_password
from readshelf.services.tags import set_status


def clear_data(db: Session) -> None:
    """Clear all existing data from the database."""
    print("Clearing existing data...")
    for model in (BookStats, BookTagValue, TagValue, TagKey, UserBook, Book, User):
        db.execute(delete(model))
    db.commit()
    print("Data cleared.")


def create_users(db: Session) -> dict[str, User]:
    """Create sample readers."""
    print("Creating users...")
    usernames = ["ada", "grace", "linus", "margaret"]

    users = {}
    for username in usernames:
        user = User(
            username=username,
            email=f"{username}@example.com",
            password_hash=hash_password("readshelf-dev"),
            display_name=username.capitalize(),
        )
        db.add(user)
        users[username] = user

    db.commit()
    print(f"Created {len(users)} users.")
    return users


def create_books(db: Session) -> dict[str, Book]:
    """Create sample catalog books keyed by Open Library id."""
    print("Creating books...")
    books_data = [
        ("OL893415W", "Dune"),
        ("OL1168083W", "Nineteen Eighty-Four"),
        ("OL66554W", "Pride and Prejudice"),
        ("OL27448W", "The Lord of the Rings"),
        ("OL46125W", "Foundation"),
        ("OL262758W", "The Hobbit"),
    ]

    books = {}
    for open_library_id, title in books_data:
        book = Book(
            open_library_id=open_library_id,
            title=title,
            cover_url=f"https://covers.openlibrary.org/w/olid/{open_library_id}-M.jpg",
        )
        db.add(book)
        books[open_library_id] = book

    db.commit()
    print(f"Created {len(books)} books.")
    return books


def create_library(db: Session, users: dict[str, User], books: dict[str, Book]) -> int:
    """Shelve books with statuses, ratings and reviews."""
    print("Creating library entries...")
    # (username, open_library_id, status, rating, review)
    entries = [
        ("ada", "OL893415W", "finished", 5, "Spice, sand and politics."),
        ("ada", "OL46125W", "finished", 4, None),
        ("ada", "OL262758W", "want-to-read", None, None),
        ("grace", "OL893415W", "finished", 4, "Slow start, great payoff."),
        ("grace", "OL1168083W", "currently-reading", None, None),
        ("grace", "OL27448W", "want-to-read", None, None),
        ("linus", "OL893415W", "dnf", 2, ""),
        ("linus", "OL66554W", "finished", 5, "Still sharp after two centuries."),
        ("margaret", "OL893415W", "finished", 1, "Not for me."),
        ("margaret", "OL46125W", "finished", 5, None),
    ]

    for username, open_library_id, status_slug, rating, review in entries:
        user = users[username]
        book = books[open_library_id]
        db.add(UserBook(user_id=user.id, book_id=book.id, rating=rating, review_text=review))
        set_status(db, user.id, book.id, status_slug)

    db.commit()
    print(f"Created {len(entries)} library entries.")
    return len(entries)


def seed_database(clear_existing: bool = True) -> None:
    """
    Main function to seed the database.

    Args:
        clear_existing: If True, clears existing data before seeding.
    """
    print("=" * 60)
    print("Starting database seed...")
    print("=" * 60)

    create_tables()

    db = SessionLocal()

    try:
        if clear_existing:
            clear_data(db)

        users = create_users(db)
        books = create_books(db)
        entries = create_library(db, users, books)

        # Closed accounts keep their rows but leave every aggregate
        users["margaret"].deleted_at = datetime.now(UTC)
        db.commit()

        updated = backfill_book_stats(db)

        print("=" * 60)
        print("Database seeding completed successfully!")
        print("=" * 60)
        print("\nSummary:")
        print(f"  - Users: {len(users)} (1 closed)")
        print(f"  - Books: {len(books)}")
        print(f"  - Library entries: {entries}")
        print(f"  - Book stats rows: {updated}")
        print("\nAPI documentation at http://localhost:8001/docs")

    except Exception as e:
        print(f"Error seeding database: {e}")
        db.rollback()
        raise
    finally:
        db.close()


if __name__ == "__main__":
    seed_database()
