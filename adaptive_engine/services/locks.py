"""Per-(student, course) mutual exclusion for attempt recording.

Two attempts for the same enrollment must fold and transition one after the
other; attempts for different enrollments never wait on each other.

Backends (``LOCK_BACKEND``)
---------------------------
- ``local`` – a ``threading.Lock`` per key, enough for a single process.
- ``redis`` – ``redis-py``'s distributed lock, shared by every worker.
"""

import logging
import threading
from collections.abc import Iterator
from contextlib import contextmanager

import redis
from redis.exceptions import LockError, RedisError

from adaptive_engine.config import settings
from adaptive_engine.core.exceptions import StorageUnavailable

logger = logging.getLogger(__name__)

_registry_guard = threading.Lock()
_local_locks: dict[str, threading.Lock] = {}
_local_users: dict[str, int] = {}

_pool: redis.ConnectionPool | None = None


def _get_redis() -> redis.Redis:
    global _pool
    if _pool is None:
        _pool = redis.ConnectionPool.from_url(settings.REDIS_URL, max_connections=10)
    return redis.Redis(connection_pool=_pool)


def lock_key(student_id: str, course_id: str) -> str:
    return f"lock:attempt:{student_id}:{course_id}"


@contextmanager
def _local_lock(key: str) -> Iterator[None]:
    with _registry_guard:
        lock = _local_locks.setdefault(key, threading.Lock())
        _local_users[key] = _local_users.get(key, 0) + 1
    try:
        with lock:
            yield
    finally:
        with _registry_guard:
            _local_users[key] -= 1
            if not _local_users[key]:
                # last holder gone; drop the entry so the registry stays small
                del _local_users[key]
                del _local_locks[key]


@contextmanager
def _redis_lock(key: str) -> Iterator[None]:
    lock = _get_redis().lock(
        key,
        timeout=settings.LOCK_TIMEOUT_SECONDS,
        blocking_timeout=settings.LOCK_BLOCKING_TIMEOUT_SECONDS,
    )
    try:
        acquired = lock.acquire()
    except RedisError as e:
        logger.error("Lock server unreachable for %s: %s", key, e)
        raise StorageUnavailable("Lock server unreachable") from e
    if not acquired:
        logger.warning("Timed out waiting for %s", key)
        raise StorageUnavailable("Timed out waiting for a concurrent attempt to finish")
    try:
        yield
    finally:
        try:
            lock.release()
        except LockError:
            # lock expired while held; the work itself already committed or rolled back
            logger.warning("Lock %s expired before release", key)


@contextmanager
def enrollment_lock(student_id: str, course_id: str) -> Iterator[None]:
    """Serialise work on one (student, course) pair."""
    key = lock_key(student_id, course_id)
    if settings.LOCK_BACKEND == "redis":
        with _redis_lock(key):
            yield
    else:
        with _local_lock(key):
            yield
