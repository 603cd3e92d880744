"""
Per-user Redis lock for sync tasks.

With acks_late a sync message can be redelivered while the first delivery
is still running; the job row alone cannot stop the second run because both
deliveries see the same RUNNING job. The lock key is `tasklock:<name>` and
its value is the owning Celery task id.
"""

import logging
from contextlib import contextmanager
from typing import Iterator, Optional

import redis

from app.core.config import get_settings

logger = logging.getLogger(__name__)

# Stored when the caller has no task id (task invoked directly)
ANONYMOUS_OWNER = "1"


class TaskLock:
    """SET NX EX lock; only the owner may release it."""

    KEY_PREFIX = "tasklock:"

    def __init__(self, redis_url: Optional[str] = None, client: Optional[redis.Redis] = None):
        self.redis = client or redis.from_url(
            redis_url or get_settings().redis_url,
            decode_responses=True,
        )

    def _key(self, name: str) -> str:
        return f"{self.KEY_PREFIX}{name}"

    def acquire(self, name: str, ttl_seconds: int, owner: Optional[str] = None) -> bool:
        """True if the lock was free and is now held by `owner` for ttl_seconds."""
        acquired = self.redis.set(self._key(name), owner or ANONYMOUS_OWNER, nx=True, ex=ttl_seconds)
        if not acquired:
            logger.debug(f"Lock {name} held by {self.redis.get(self._key(name))}")
        return bool(acquired)

    def release(self, name: str, owner: Optional[str] = None) -> bool:
        """
        Drop the lock. With an owner, refuses if someone else holds it
        (our TTL ran out and another task took over).
        """
        key = self._key(name)
        if owner:
            holder = self.redis.get(key)
            if holder != owner:
                logger.warning(f"Lock {name} not held by {owner}, current holder: {holder}")
                return False
        return bool(self.redis.delete(key))

    def get_ttl(self, name: str) -> int:
        """Seconds until the lock expires; 0 when missing or without expiry."""
        return max(0, self.redis.ttl(self._key(name)))

    @contextmanager
    def lock(self, name: str, ttl_seconds: int, owner: Optional[str] = None) -> Iterator[bool]:
        """
        Hold the lock for the duration of the block if it can be taken.

            with task_lock.lock(f"repo_sync:{user_id}", 660, task_id) as acquired:
                if not acquired:
                    raise Reject(...)
                run_sync()
        """
        acquired = self.acquire(name, ttl_seconds, owner)
        try:
            yield acquired
        finally:
            if acquired:
                self.release(name, owner)


_task_lock: Optional[TaskLock] = None


def get_task_lock() -> TaskLock:
    """Process-wide TaskLock (one Redis connection pool per worker)."""
    global _task_lock
    if _task_lock is None:
        _task_lock = TaskLock()
    return _task_lock
