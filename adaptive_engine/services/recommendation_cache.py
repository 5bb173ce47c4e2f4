"""Redis-backed cache for computed recommendations.

Keys are content-addressed over (student, course, state version). The
version is bumped by every committed attempt, so an entry can only ever be
read back for exactly the inputs it was computed from.
"""

import hashlib
import json
import logging
from typing import Any

import redis

from adaptive_engine.config import settings
from adaptive_engine.schemas.progress import Recommendation

logger = logging.getLogger(__name__)

_pool: redis.ConnectionPool | None = None


def _get_redis() -> redis.Redis:
    """Return a Redis client backed by a shared connection pool."""
    global _pool
    if _pool is None:
        _pool = redis.ConnectionPool.from_url(
            settings.REDIS_URL,
            decode_responses=True,
            max_connections=10,
        )
    return redis.Redis(connection_pool=_pool)


def _make_key(params: dict[str, Any]) -> str:
    """Create a deterministic cache key from a sorted param hash."""
    serialised = json.dumps(params, sort_keys=True, default=str)
    digest = hashlib.sha256(serialised.encode()).hexdigest()[:16]
    return f"recommendation:{digest}"


def _params(student_id: str, course_id: str, version: int) -> dict[str, Any]:
    return {"student_id": student_id, "course_id": course_id, "version": version}


def cache_get(student_id: str, course_id: str, version: int) -> Recommendation | None:
    """Retrieve a cached recommendation (or None on miss/disabled)."""
    if not settings.RECOMMENDATION_CACHE_ENABLED:
        return None
    try:
        r = _get_redis()
        key = _make_key(_params(student_id, course_id, version))
        raw = r.get(key)
        if raw:
            logger.debug("Recommendation cache HIT: %s", key)
            return Recommendation.model_validate_json(raw)
        logger.debug("Recommendation cache MISS: %s", key)
        return None
    except Exception as e:
        logger.warning("Recommendation cache read failed (non-fatal): %s", e)
        return None


def cache_set(
    student_id: str,
    course_id: str,
    version: int,
    recommendation: Recommendation,
    ttl: int | None = None,
) -> None:
    """Store a recommendation in cache."""
    if not settings.RECOMMENDATION_CACHE_ENABLED:
        return
    ttl = ttl or settings.RECOMMENDATION_CACHE_TTL_SECONDS
    try:
        r = _get_redis()
        key = _make_key(_params(student_id, course_id, version))
        r.setex(key, ttl, recommendation.model_dump_json())
        logger.debug("Recommendation cache SET: %s (ttl=%ds)", key, ttl)
    except Exception as e:
        logger.warning("Recommendation cache write failed (non-fatal): %s", e)
