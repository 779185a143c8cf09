# services/cache/cache_backend.py
from __future__ import annotations

import json
import logging
import os
import time
from typing import Any, Dict, List, Optional, Tuple, Union

import redis

logger = logging.getLogger(__name__)

JsonValue = Union[Dict[str, Any], List[Any], str, int, float, bool, None]

DEFAULT_TTL_SEC = int(os.getenv("CACHE_DEFAULT_TTL_SEC", "300"))
LOCAL_CACHE_TTL_SEC = int(os.getenv("CACHE_LOCAL_TTL_SEC", "60"))
REDIS_PREFIX = os.getenv("REDIS_PREFIX", "narratives:")
REDIS_URL = os.getenv("REDIS_URL")

# key -> (expires_at_epoch, payload)
_LOCAL: Dict[str, Tuple[float, JsonValue]] = {}

_redis_client = None


def get_redis_client():
    """Lazy redis client; None when REDIS_URL is unset or the URL is bad."""
    global _redis_client
    if _redis_client is not None or not REDIS_URL:
        return _redis_client
    try:
        _redis_client = redis.from_url(
            REDIS_URL,
            decode_responses=True,
            socket_timeout=2,
            socket_connect_timeout=2,
        )
    except Exception:
        logger.warning("cache_redis_init_failed")
        _redis_client = None
    return _redis_client


def _norm_key(key: str) -> str:
    return (key or "").strip().lower()


def _local_get(k: str) -> Optional[JsonValue]:
    hit = _LOCAL.get(k)
    if not hit:
        return None
    expires_at, payload = hit
    if time.time() <= expires_at:
        return payload
    _LOCAL.pop(k, None)
    return None


def cache_get(key: str) -> Optional[JsonValue]:
    """Read-through: local memory first, then redis."""
    k = _norm_key(key)
    if not k:
        return None

    hit = _local_get(k)
    if hit is not None:
        return hit

    r = get_redis_client()
    if not r:
        return None
    try:
        raw = r.get(f"{REDIS_PREFIX}{k}")
        if raw is None:
            return None
        payload: JsonValue = json.loads(raw)
    except Exception:
        logger.warning("cache_redis_get_failed key=%s", k)
        return None
    _LOCAL[k] = (time.time() + LOCAL_CACHE_TTL_SEC, payload)
    return payload


def cache_set(key: str, payload: JsonValue, ttl_seconds: int = DEFAULT_TTL_SEC) -> None:
    """Write-through: local TTL is capped at LOCAL_CACHE_TTL_SEC."""
    k = _norm_key(key)
    if not k:
        return
    ttl_seconds = int(ttl_seconds) if ttl_seconds and ttl_seconds > 0 else DEFAULT_TTL_SEC
    _LOCAL[k] = (time.time() + min(LOCAL_CACHE_TTL_SEC, ttl_seconds), payload)

    r = get_redis_client()
    if not r:
        return
    try:
        r.setex(f"{REDIS_PREFIX}{k}", ttl_seconds, json.dumps(payload, separators=(",", ":")))
    except Exception:
        logger.warning("cache_redis_set_failed key=%s", k)


def cache_delete(*keys: str) -> None:
    normed = [k for k in (_norm_key(key) for key in keys) if k]
    for k in normed:
        _LOCAL.pop(k, None)
    r = get_redis_client()
    if not r or not normed:
        return
    try:
        r.delete(*[f"{REDIS_PREFIX}{k}" for k in normed])
    except Exception:
        logger.warning("cache_redis_delete_failed keys=%s", ",".join(normed))


def clear_local_cache() -> None:
    _LOCAL.clear()
