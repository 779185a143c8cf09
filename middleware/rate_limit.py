# middleware/rate_limit.py
"""
Rate limiting with slowapi.

The LLM-backed routes (explain, refresh) are the expensive ones:

    from middleware.rate_limit import limiter

    @router.post("/explain")
    @limiter.limit(EXPLAIN_RATE_LIMIT)
    async def explain(request: Request, ...):
        ...
"""
import logging
import os

from fastapi import Request
from slowapi import Limiter
from slowapi.util import get_remote_address

logger = logging.getLogger(__name__)


def _get_rate_limit_key(request: Request) -> str:
    """Bucket by the forwarding proxy's client IP when present, else the peer."""
    forwarded = request.headers.get("X-Forwarded-For", "")
    if forwarded:
        first = forwarded.split(",", 1)[0].strip()
        if first:
            return first
    return get_remote_address(request)


DEFAULT_RATE_LIMIT = os.getenv("RATE_LIMIT_DEFAULT", "60/minute")
EXPLAIN_RATE_LIMIT = os.getenv("RATE_LIMIT_EXPLAIN", "20/minute")
REFRESH_RATE_LIMIT = os.getenv("RATE_LIMIT_REFRESH", "2/minute")

limiter = Limiter(
    key_func=_get_rate_limit_key,
    default_limits=[DEFAULT_RATE_LIMIT],
    storage_uri=os.getenv("REDIS_URL", "memory://"),
    strategy="fixed-window",
    enabled=os.getenv("RATE_LIMIT_ENABLED", "1") == "1",
)
