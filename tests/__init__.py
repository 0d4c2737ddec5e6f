"""
Test Suite for Readshelf API

Test Organization:
- conftest.py: Shared fixtures (test database, client, sample data)
- test_book_stats.py: aggregation, refresh and backfill semantics
- test_book_stats_dispatch.py: fire-and-forget refresh entry points
- test_book_stats_poller.py: periodic backfill driver
- test_me_books.py: /api/v1/me/books write endpoints
- test_books.py: /api/v1/books read endpoints
- test_users.py: /api/v1/users endpoints and authentication
- test_tags.py: status taxonomy helpers
- test_config.py: settings validation
- test_main.py: health and root endpoints
- test_rate_limiter.py: rate limit keys and 429 responses

Running Tests:
    pytest
    pytest tests/test_book_stats.py -v
"""
