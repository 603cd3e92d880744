"""
Celery app for SYNC_DISPATCH_MODE=celery.

Sync jobs are created by the API and executed here. The job row in Supabase
is what clients poll; the Celery result backend only keeps each task's
summary for a day.

Worker:
    celery -A app.celery_app worker -Q high,default --loglevel=info
"""

from celery import Celery
from celery.signals import after_setup_logger, after_setup_task_logger

from app.core.config import DEFAULT_QUEUE, SYNC_QUEUE, get_settings


@after_setup_logger.connect
@after_setup_task_logger.connect
def setup_celery_logging(logger, *args, **kwargs):
    """Workers log through the same console + CSV handlers as the API."""
    from app.core.logging_config import setup_logging
    setup_logging()


REDIS_URL = get_settings().redis_url

app = Celery(
    "taggit",
    broker=REDIS_URL,
    backend=REDIS_URL,
    include=["app.celery_app.repository_tasks"],
)

app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,

    # One sync at a time per worker process; a sync holds its slot for minutes
    worker_prefetch_multiplier=1,
    worker_hijack_root_logger=False,

    # A message is acked only after the job row is terminal; a worker crash
    # redelivers it and the per-user TaskLock keeps the rerun single
    task_acks_late=True,
    task_reject_on_worker_lost=True,
    task_track_started=True,

    result_expires=24 * 60 * 60,
    broker_connection_retry_on_startup=True,

    task_default_queue=DEFAULT_QUEUE,
    task_queues={
        SYNC_QUEUE: {},
        DEFAULT_QUEUE: {},
    },
    task_routes={
        "run_repo_sync_job": {"queue": SYNC_QUEUE},
    },
)
