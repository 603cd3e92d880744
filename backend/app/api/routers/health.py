"""
Sync dispatch health endpoint.

Reports whether sync jobs can be scheduled: always true in local mode,
Redis reachable and queues not backed up in Celery mode.
"""

from fastapi import APIRouter
from datetime import datetime, timezone
import redis

from app.core.config import DEFAULT_QUEUE, DISPATCH_MODE_CELERY, SYNC_QUEUE, get_settings

router = APIRouter(tags=["health"])

# Pending messages above this mean workers are not keeping up
MAX_PENDING_MESSAGES = 1000


@router.get("/queue-health")
async def queue_health():
    """
    Queue health check.

    Reads queue lengths straight from Redis (Celery queues are Redis lists
    named after the queue) instead of broadcasting an inspect to workers.
    """
    settings = get_settings()
    checked_at = datetime.now(timezone.utc).isoformat()

    if settings.sync_dispatch_mode != DISPATCH_MODE_CELERY:
        # Jobs run as asyncio tasks inside the API process
        return {
            "status": "healthy",
            "dispatch_mode": settings.sync_dispatch_mode,
            "checked_at": checked_at,
        }

    r = redis.from_url(settings.redis_url, decode_responses=True)
    try:
        r.ping()
        queues = {name: r.llen(name) or 0 for name in (SYNC_QUEUE, DEFAULT_QUEUE)}
        redis_ok = True
    except redis.RedisError:
        queues = {SYNC_QUEUE: None, DEFAULT_QUEUE: None}
        redis_ok = False

    total_pending = sum(n for n in queues.values() if n)
    is_healthy = redis_ok and total_pending < MAX_PENDING_MESSAGES

    return {
        "status": "healthy" if is_healthy else "degraded",
        "dispatch_mode": settings.sync_dispatch_mode,
        "redis_connected": redis_ok,
        "queues": queues,
        "total_pending": total_pending,
        "checked_at": checked_at,
    }
