"""Shared slowapi limiter for the public endpoints.

Requests are keyed on the customer's address: the first X-Forwarded-For hop
when the app sits behind the proxy, the socket peer otherwise. That is the
same address the audit trail records.

Counters live in Redis when CACHE_BACKEND=redis and the server answers a
ping at import time; otherwise each worker keeps its own in-memory counters.
The OTP and agent-login routes add their own tighter limits from settings.
"""

from fastapi import Request
from loguru import logger
from slowapi import Limiter
from slowapi.util import get_remote_address

from .config import settings


def client_key(request: Request) -> str:
    forwarded = request.headers.get("x-forwarded-for", "")
    first_hop = forwarded.split(",")[0].strip()
    return first_hop or get_remote_address(request)


def _resolve_storage() -> str | None:
    """Redis URL for shared counters, or None for in-memory."""
    if settings.cache_backend != "redis" or not settings.redis_url:
        return None

    import redis as redis_lib

    try:
        redis_lib.from_url(settings.redis_url, socket_connect_timeout=2).ping()
    except Exception as e:
        logger.warning("Rate limiter falling back to memory storage, Redis ping failed: {}", e)
        return None
    logger.info("Rate limiter counters stored in Redis")
    return settings.redis_url


limiter = Limiter(
    key_func=client_key,
    default_limits=[settings.rate_limit_default],
    enabled=settings.rate_limit_enabled,
    storage_uri=_resolve_storage(),
)
