"""Bounded worker pool for blocking token exchanges."""

from __future__ import annotations

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any, Callable

logger = logging.getLogger(__name__)


class WorkerPool:
    """A fixed-size thread pool shared by every login session.

    Blocking network calls never run on the host's UI thread; sessions
    submit them here instead. The pool size caps the number of threads no
    matter how many logins or refreshes run at once; extra work queues.

    Args:
        max_workers: Maximum number of worker threads.
    """

    def __init__(self, max_workers: int = 4) -> None:
        if max_workers < 1:
            raise ValueError("max_workers must be at least 1")
        self.max_workers = max_workers
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="oauthdesk-worker"
        )
        self._shutdown = False
        self._lock = threading.Lock()

    def __enter__(self) -> WorkerPool:
        return self

    def __exit__(self, *args: object) -> None:
        self.shutdown()

    def submit(self, fn: Callable[..., Any], *args: Any, **kwargs: Any) -> Future:
        """Schedule ``fn(*args, **kwargs)``; the returned future can be cancelled until it starts.

        Raises:
            RuntimeError: If the pool has been shut down.
        """
        with self._lock:
            if self._shutdown:
                raise RuntimeError("WorkerPool has been shut down")
            future = self._executor.submit(fn, *args, **kwargs)
        future.add_done_callback(_log_failure)
        return future

    def shutdown(self, wait: bool = True, cancel_pending: bool = False) -> None:
        """Stop accepting work and release the threads.

        Args:
            wait: Block until running tasks finish.
            cancel_pending: Drop queued tasks that have not started.
        """
        with self._lock:
            if self._shutdown:
                return
            self._shutdown = True
        logger.debug("Shutting down worker pool")
        self._executor.shutdown(wait=wait, cancel_futures=cancel_pending)


def _log_failure(future: Future) -> None:
    if future.cancelled():
        return
    exc = future.exception()
    if exc is not None:
        logger.error("Worker job failed", exc_info=exc)
