"""
Services Package

Business logic kept out of the routers:
- book_stats: aggregation, backfill and fire-and-forget refreshes
- book_stats_poller: periodic backfill driver
- tags: the per-user status taxonomy
- security: password hashing and JWT validation
- rate_limiter: slowapi limiter and 429 handler
"""
