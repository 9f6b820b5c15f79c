"""Bridge from synchronous Celery tasks and signal handlers to async code."""

import asyncio
from typing import Any, Coroutine, Optional, TypeVar

T = TypeVar("T")


def run_async(coro: Coroutine[Any, Any, T], timeout: Optional[float] = None) -> T:
    """Run ``coro`` to completion and return its result.

    Inside a worker process the coroutine is scheduled on the persistent loop
    started by ``worker_process_init`` so pooled database connections stay
    bound to one loop. Elsewhere (tests, shell) a throwaway loop is used.

    Args:
        coro: Coroutine to execute
        timeout: Seconds to wait on the worker loop; defaults to the job time limit
    """
    from src.tasks.signals import get_worker_loop

    loop = get_worker_loop()
    if loop is None:
        return asyncio.run(coro)

    if timeout is None:
        from src.config import get_settings

        timeout = get_settings().celery_task_timeout
    return asyncio.run_coroutine_threadsafe(coro, loop).result(timeout=timeout)
