#!/usr/bin/env python3
"""
Book Stats Backfill Script

Recomputes book_stats for the whole catalog (or one book) outside the
API process. Use it after a migration that changes how the counters are
derived, or to repair stats without waiting for the next periodic run.

Usage:
    # From project root with venv activated:
    python scripts/backfill_book_stats.py

    # Options:
    python scripts/backfill_book_stats.py --timeout 7200          # Per-run ceiling in seconds
    python scripts/backfill_book_stats.py --timeout 0             # No ceiling
    python scripts/backfill_book_stats.py --open-library-id OL45883W  # Refresh one book
"""

import argparse
import logging
import sys
import time
from pathlib import Path

# Add project root to path for imports
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from readshelf.config import get_settings
from readshelf.database import SessionLocal
from readshelf.models import Book
from readshelf.services.book_stats import (
    backfill_book_stats,
    is_statement_timeout,
    refresh_book_stats,
)

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


def refresh_one(open_library_id: str) -> int:
    """Refresh a single book; returns the process exit code."""
    db = SessionLocal()
    try:
        book_id = db.execute(
            select(Book.id).where(Book.open_library_id == open_library_id)
        ).scalar_one_or_none()
        if book_id is None:
            logger.error(f"No book with Open Library id {open_library_id}")
            return 1

        refresh_book_stats(db, book_id)
        logger.info(f"Refreshed book stats for {open_library_id}")
        return 0
    except SQLAlchemyError as e:
        logger.error(f"bookstats.Refresh({open_library_id}): {e}")
        return 1
    finally:
        db.close()


def backfill_all(timeout_seconds: int | None) -> int:
    """Backfill every book; returns the process exit code."""
    logger.info("Starting book stats backfill...")
    start = time.perf_counter()

    db = SessionLocal()
    try:
        updated = backfill_book_stats(db, timeout_seconds=timeout_seconds)
    except SQLAlchemyError as e:
        if is_statement_timeout(e):
            logger.error(f"Book stats backfill timed out after {timeout_seconds}s")
        else:
            logger.error(f"Book stats backfill failed: {e}")
        return 1
    finally:
        db.close()

    logger.info("=" * 50)
    logger.info("Backfill complete!")
    logger.info(f"Books updated: {updated}")
    logger.info(f"Duration: {time.perf_counter() - start:.3f}s")
    return 0


def main() -> int:
    """Main entry point."""
    settings = get_settings()

    parser = argparse.ArgumentParser(
        description="Recompute precomputed book statistics"
    )
    parser.add_argument(
        "--timeout",
        type=int,
        default=settings.book_stats_backfill_timeout_seconds,
        help="Per-run ceiling in seconds, 0 for none "
             f"(default: {settings.book_stats_backfill_timeout_seconds})"
    )
    parser.add_argument(
        "--open-library-id",
        help="Refresh only this book instead of the whole catalog"
    )

    args = parser.parse_args()

    if args.open_library_id:
        return refresh_one(args.open_library_id)
    return backfill_all(args.timeout or None)


if __name__ == "__main__":
    sys.exit(main())
