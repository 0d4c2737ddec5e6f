"""
Book Stats Poller

Periodic full backfill of book_stats.

Fire-and-forget refreshes can be lost: the process may crash between a
write and its refresh, the database may hiccup, and some code paths
change user-level rows without scheduling a refresh at all. The poller
bounds how stale book_stats can get by running a full backfill once at
startup and then on a fixed cadence (24 hours by default).

Concurrency:
- The loop runs as an asyncio task on the application's event loop.
- Each backfill runs in a worker thread with its own session, so it
  holds a single pooled connection and never blocks request handling.
- The next sleep starts only after the previous run has finished, and a
  non-blocking lock skips any run requested while another is in flight
  (for example the operator script racing the poller in one process).
  Runs therefore never overlap.

Usage:
    # In the FastAPI lifespan handler, once the database is reachable
    poller = start_book_stats_poller(app)
    ...
    if poller:
        await poller.stop()
"""

import asyncio
import contextlib
import logging
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Any

from fastapi import FastAPI
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from readshelf.config import get_settings
from readshelf.database import SessionLocal
from readshelf.services.book_stats import backfill_book_stats, is_statement_timeout

logger = logging.getLogger(__name__)


@dataclass
class BackfillRun:
    """
    Outcome of one backfill run.

    Attributes:
        started_at: When the run began
        duration_seconds: Wall-clock duration of the run
        books_updated: Rows written, None if the run failed
        error: Error message, None if the run succeeded
        timed_out: Whether the failure was the per-run ceiling
    """

    started_at: datetime
    duration_seconds: float = 0.0
    books_updated: int | None = None
    error: str | None = None
    timed_out: bool = False

    @property
    def succeeded(self) -> bool:
        return self.error is None

    def to_dict(self) -> dict[str, Any]:
        """Convert the run summary for the health endpoint."""
        return {
            "started_at": self.started_at.isoformat(),
            "duration_seconds": round(self.duration_seconds, 3),
            "books_updated": self.books_updated,
            "error": self.error,
            "timed_out": self.timed_out,
        }


class BookStatsPoller:
    """
    Runs backfill_book_stats() at startup and then every `interval`.

    Args:
        interval: Time between the end of one run and the start of the next
        timeout_seconds: Optional per-run ceiling passed to the backfill
        session_factory: Session factory; defaults to SessionLocal
    """

    def __init__(
        self,
        interval: timedelta,
        timeout_seconds: int | None = None,
        session_factory: Callable[[], Session] | None = None,
    ):
        self.interval = interval
        self.timeout_seconds = timeout_seconds
        self._session_factory = session_factory
        self._run_lock = threading.Lock()
        self._task: asyncio.Task | None = None
        self.last_run: BackfillRun | None = None

    @property
    def is_running(self) -> bool:
        """Whether the background loop is alive."""
        return self._task is not None and not self._task.done()

    @property
    def backfill_in_progress(self) -> bool:
        return self._run_lock.locked()

    # -------------------------------------------------------------------------
    # Single run
    # -------------------------------------------------------------------------

    def run_once(self) -> BackfillRun | None:
        """
        Run one backfill in the calling thread.

        Returns:
            The run summary, or None if another run was still in progress
        """
        if not self._run_lock.acquire(blocking=False):
            logger.warning("Book stats backfill still in progress - skipping this run")
            return None
        try:
            return self._backfill()
        finally:
            self._run_lock.release()

    def _backfill(self) -> BackfillRun:
        run = BackfillRun(started_at=datetime.now(UTC))
        start = time.perf_counter()
        logger.info("Book stats backfill started")

        session_factory = self._session_factory or SessionLocal
        db = session_factory()
        try:
            run.books_updated = backfill_book_stats(db, timeout_seconds=self.timeout_seconds)
        except SQLAlchemyError as e:
            run.error = str(e)
            run.timed_out = is_statement_timeout(e)
        finally:
            db.close()
            run.duration_seconds = time.perf_counter() - start

        if run.timed_out:
            logger.error(
                f"Book stats backfill timed out after {self.timeout_seconds}s: {run.error}"
            )
        elif run.error is not None:
            logger.error(f"Book stats backfill failed after {run.duration_seconds:.3f}s: {run.error}")
        else:
            logger.info(
                f"Book stats backfill complete: {run.books_updated} books updated "
                f"in {run.duration_seconds:.3f}s"
            )

        self.last_run = run
        return run

    # -------------------------------------------------------------------------
    # Background loop
    # -------------------------------------------------------------------------

    async def _loop(self) -> None:
        try:
            while True:
                await asyncio.to_thread(self.run_once)
                await asyncio.sleep(self.interval.total_seconds())
        except asyncio.CancelledError:
            logger.info("Book stats poller stopped")
            raise

    def start(self) -> None:
        """
        Start the background loop on the running event loop.

        The first backfill starts immediately. Calling start() on a
        running poller does nothing.
        """
        if self.is_running:
            return
        self._task = asyncio.create_task(self._loop(), name="book-stats-poller")
        logger.info(f"Book stats poller started (interval: {self.interval})")

    async def stop(self) -> None:
        """
        Cancel the background loop and wait for it to finish.

        A backfill already running in its worker thread cannot be
        interrupted: stop() returns right away, but that run keeps its
        connection until it completes or hits the per-run ceiling, and
        interpreter exit waits for the thread.
        """
        if self._task is None:
            return
        self._task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._task
        self._task = None


def start_book_stats_poller(app: FastAPI) -> BookStatsPoller | None:
    """
    Start the periodic backfill for an application.

    Call once after the database is ready, from within the running event
    loop. The poller is stored on app.state.book_stats_poller.

    Returns:
        The started poller, or None when periodic backfill is disabled
    """
    settings = get_settings()

    if not settings.book_stats_backfill_enabled:
        logger.info("Periodic book stats backfill disabled")
        app.state.book_stats_poller = None
        return None

    poller = BookStatsPoller(
        interval=settings.book_stats_refresh_interval,
        timeout_seconds=settings.book_stats_backfill_timeout,
    )
    poller.start()
    app.state.book_stats_poller = poller
    return poller
