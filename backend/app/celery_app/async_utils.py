"""
Async-to-sync bridge for Celery tasks.

Sync work units are coroutines (httpx is async); Celery tasks are plain
functions. Each call gets a fresh event loop that is fully drained and
closed afterwards.
"""

import asyncio
import logging
from typing import TypeVar, Coroutine, Any

logger = logging.getLogger(__name__)

T = TypeVar('T')


def run_async(coro: Coroutine[Any, Any, T]) -> T:
    """
    Run a coroutine to completion on a private event loop.

    Pending tasks are cancelled and awaited before the loop closes, which
    avoids 'Event loop is closed' errors from httpx AsyncClient teardown.
    """
    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    try:
        return loop.run_until_complete(coro)
    finally:
        try:
            pending = asyncio.all_tasks(loop)
            for task in pending:
                task.cancel()
            if pending:
                loop.run_until_complete(
                    asyncio.gather(*pending, return_exceptions=True)
                )
            loop.run_until_complete(loop.shutdown_asyncgens())
        except RuntimeError as e:
            logger.debug(f"Event loop cleanup failed: {e}")
        finally:
            asyncio.set_event_loop(None)
            loop.close()
