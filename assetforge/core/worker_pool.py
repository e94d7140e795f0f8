"""Bounded worker pool with fail-fast cancellation.

Work items are queued up front; exactly ``min(workers, len(items))``
worker threads pull from the queue until it drains or the shared
cancellation event fires.  The first exception raised by any item sets the
event, so idle workers stop pulling; items already in flight are allowed
to finish (subprocesses are not killed).  :meth:`WorkerPool.run` then
re-raises that first exception unchanged.
"""

from __future__ import annotations

import logging
import os
import queue
import threading
from collections.abc import Callable, Iterable
from concurrent.futures import ThreadPoolExecutor
from typing import Generic, TypeVar

from assetforge.errors import ConfigurationError

logger = logging.getLogger(__name__)

T = TypeVar("T")


def default_workers() -> int:
    """Available processors plus one."""
    return (os.cpu_count() or 1) + 1


class WorkerPool(Generic[T]):
    """Run independent work items on a fixed number of threads.

    Parameters
    ----------
    workers:
        Maximum number of concurrent workers.  Must be at least 1.
    name:
        Label used for thread names and log lines.

    Raises
    ------
    ConfigurationError
        If *workers* is below 1.
    """

    def __init__(self, workers: int | None = None, *, name: str = "pool") -> None:
        if workers is None:
            workers = default_workers()
        if workers < 1:
            raise ConfigurationError("workers must be at least 1")
        self.workers = workers
        self.name = name
        self._cancel = threading.Event()
        self._counter_lock = threading.Lock()
        self._started = 0
        self._completed = 0
        self._first_error: BaseException | None = None
        self._ran = False

    # ------------------------------------------------------------------
    # Counters
    # ------------------------------------------------------------------

    @property
    def started(self) -> int:
        """Number of items whose work function was entered."""
        with self._counter_lock:
            return self._started

    @property
    def completed(self) -> int:
        """Number of items whose work function returned without raising."""
        with self._counter_lock:
            return self._completed

    @property
    def cancelled(self) -> bool:
        return self._cancel.is_set()

    def cancel(self) -> None:
        """Stop workers from pulling further items."""
        self._cancel.set()

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    def run(self, items: Iterable[T], fn: Callable[[T], object]) -> None:
        """Apply *fn* to every item, failing fast on the first error.

        Zero items is a no-op.

        Raises
        ------
        RuntimeError
            If the pool has already been run; create a new pool instead.
        """
        if self._ran:
            raise RuntimeError(f"{self.name}: worker pool already ran")
        self._ran = True
        work: queue.Queue[T] = queue.Queue()
        count = 0
        for item in items:
            work.put(item)
            count += 1
        if count == 0:
            logger.debug("%s: no work items", self.name)
            return

        n = min(self.workers, count)
        logger.debug("%s: %d items on %d workers", self.name, count, n)
        with ThreadPoolExecutor(max_workers=n, thread_name_prefix=self.name) as ex:
            for _ in range(n):
                ex.submit(self._worker, work, fn)

        if self._first_error is not None:
            raise self._first_error

    def _worker(self, work: queue.Queue[T], fn: Callable[[T], object]) -> None:
        while not self._cancel.is_set():
            try:
                item = work.get_nowait()
            except queue.Empty:
                return
            # re-check: cancellation may have fired while this worker pulled
            if self._cancel.is_set():
                return
            with self._counter_lock:
                self._started += 1
            try:
                fn(item)
            except Exception as exc:
                with self._counter_lock:
                    if self._first_error is None:
                        self._first_error = exc
                        logger.debug("%s: cancelling after error on %r: %s", self.name, item, exc)
                self._cancel.set()
                return
            with self._counter_lock:
                self._completed += 1
