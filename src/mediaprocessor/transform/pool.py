"""Compute pool for CPU-bound image work.

Architecture:
    FastAPI (async) -> asyncio.Semaphore(N) -> ThreadPoolExecutor(N) -> decode/resize/encode

Requests beyond the semaphore limit queue for ``queue_timeout`` seconds, then
get 503. Pillow releases the GIL in its codecs and resamplers, so threads give
real parallelism without blocking the event loop.
"""

from __future__ import annotations

import asyncio
import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from typing import TYPE_CHECKING, TypeVar

if TYPE_CHECKING:
    from collections.abc import Callable

    from mediaprocessor.config import Settings

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ComputePool:
    """Manages the semaphore and thread pool for image transformations."""

    def __init__(self, settings: Settings) -> None:
        self._semaphore = asyncio.Semaphore(settings.max_concurrent)
        self._executor = ThreadPoolExecutor(
            max_workers=settings.max_concurrent,
            thread_name_prefix="image-transform",
        )
        self._queue_timeout = settings.queue_timeout
        self._active_count: int = 0
        self._queue_depth: int = 0
        self._counter_lock = threading.Lock()

    async def run(self, func: Callable[..., T], *args: object) -> T:
        """Submit a synchronous function to the thread pool.

        Acquires the semaphore (with timeout) and runs the function in the
        executor. The slot is released when the worker finishes, not when the
        caller stops waiting: a cancelled caller leaves its job running and
        still counted against ``max_concurrent``.

        Raises:
            TimeoutError: If the semaphore cannot be acquired within the timeout.
        """
        with self._counter_lock:
            self._queue_depth += 1
        try:
            await asyncio.wait_for(self._semaphore.acquire(), timeout=self._queue_timeout)
        finally:
            with self._counter_lock:
                self._queue_depth -= 1

        with self._counter_lock:
            self._active_count += 1
        try:
            loop = asyncio.get_running_loop()
            future = loop.run_in_executor(self._executor, func, *args)
        except BaseException:
            self._release_slot()
            raise
        future.add_done_callback(self._on_job_done)
        return await asyncio.shield(future)

    def _on_job_done(self, future: asyncio.Future[object]) -> None:
        if not future.cancelled():
            # Marks the exception retrieved when the caller was cancelled
            future.exception()
        self._release_slot()

    def _release_slot(self) -> None:
        self._semaphore.release()
        with self._counter_lock:
            self._active_count -= 1

    @property
    def active_count(self) -> int:
        """Number of currently running transformations."""
        with self._counter_lock:
            return self._active_count

    @property
    def queue_depth(self) -> int:
        """Number of requests waiting for a semaphore slot."""
        with self._counter_lock:
            return self._queue_depth

    def shutdown(self) -> None:
        """Shut down the thread pool executor."""
        self._executor.shutdown(wait=True)
        logger.info("Compute pool shut down")
