"""
Celery worker package for repository sync jobs.

`celery -A app.celery_app worker` finds the app here; tasks are registered
through the app's `include` list.
"""

from .celery import app as celery_app

__all__ = ["celery_app"]
