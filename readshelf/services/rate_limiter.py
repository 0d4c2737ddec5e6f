"""
Rate Limiting Service

Request rate limiting with slowapi, stored in Redis so that limits hold
across API instances.

Rate Limit Tiers:
=================
- Default (catalog reads): settings.rate_limit_default
- Library writes: settings.rate_limit_write, keyed per reader
"""

import logging

from fastapi import Request
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address
from starlette.responses import JSONResponse

from readshelf.config import get_settings
from readshelf.services.security import decode_token

logger = logging.getLogger(__name__)
settings = get_settings()


def get_client_ip(request: Request) -> str:
    """
    Get client IP address for rate limiting.

    Honors X-Forwarded-For and X-Real-IP from the load balancer and falls
    back to the direct connection address.
    """
    forwarded_for = request.headers.get("X-Forwarded-For")
    if forwarded_for:
        # First entry is the original client
        return forwarded_for.split(",")[0].strip()

    real_ip = request.headers.get("X-Real-IP")
    if real_ip:
        return real_ip.strip()

    return get_remote_address(request)


def get_reader_key(request: Request) -> str:
    """
    Key write limits by the authenticated reader.

    Falls back to the client IP when the request carries no valid bearer
    token; the route rejects such requests anyway.
    """
    scheme, _, token = request.headers.get("Authorization", "").partition(" ")
    if scheme.lower() == "bearer" and token:
        payload = decode_token(token)
        if payload and payload.get("sub"):
            return f"reader:{payload['sub']}"

    return get_client_ip(request)


def create_limiter() -> Limiter:
    """
    Create and configure the rate limiter.

    Redis storage is only configured while limiting is enabled, so test
    and local runs need no Redis server.
    """
    storage_uri = settings.redis_url if settings.rate_limit_enabled else None

    limiter = Limiter(
        key_func=get_client_ip,
        default_limits=[settings.rate_limit_default],
        storage_uri=storage_uri,
        strategy="fixed-window",
        enabled=settings.rate_limit_enabled,
    )

    logger.info(
        f"Rate limiter initialized - enabled: {settings.rate_limit_enabled}, "
        f"default: {settings.rate_limit_default}"
    )

    return limiter


limiter = create_limiter()


def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """
    Answer 429 Too Many Requests with a JSON body and Retry-After header.
    """
    limit_detail = str(exc.detail)

    response = JSONResponse(
        status_code=429,
        content={
            "error": "rate_limit_exceeded",
            "message": "Too many requests. Please slow down.",
            "detail": limit_detail,
        },
    )
    response.headers["Retry-After"] = str(60)
    response.headers["X-RateLimit-Limit"] = limit_detail

    logger.warning(
        f"Rate limit exceeded for {get_client_ip(request)}: {limit_detail}"
    )

    return response
