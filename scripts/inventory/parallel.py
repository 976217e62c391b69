"""Bounded fan-out of state reads.

A ``ParallelPool`` owns the scan-wide concurrency budget and the cancel
flag. Each supplier call takes its own ``ParallelRunner`` from the pool:
runners share the budget but keep separate results, so many suppliers can
read at once without exceeding the limit on concurrent remote calls.
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Callable, Optional

from scripts.inventory.errors import ScanCancelled

logger = logging.getLogger("inventory.parallel")

Task = Callable[[], Any]

# Blocked calls re-check the cancel flag at this interval (seconds)
POLL_INTERVAL = 0.05


class ParallelPool:
    def __init__(self, max_workers: int, cancel_event: Optional[threading.Event] = None) -> None:
        if max_workers < 1:
            raise ValueError(f"max_workers must be >= 1, got {max_workers}")
        self.max_workers = max_workers
        self._slots = threading.BoundedSemaphore(max_workers)
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="inventory-read"
        )
        self._cancel_event = cancel_event or threading.Event()

    def runner(self) -> "ParallelRunner":
        """Return a fresh sub-runner sharing this pool's budget."""
        return ParallelRunner(self)

    def cancel(self) -> None:
        if not self._cancel_event.is_set():
            logger.warning("Scan cancelled, no further reads will be dispatched")
        self._cancel_event.set()

    @property
    def cancelled(self) -> bool:
        return self._cancel_event.is_set()

    def close(self) -> None:
        self._executor.shutdown(wait=False)

    def __enter__(self) -> "ParallelPool":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def _acquire_slot(self) -> None:
        while not self._slots.acquire(timeout=POLL_INTERVAL):
            if self.cancelled:
                raise ScanCancelled("scan cancelled while waiting for a read slot")
        if self.cancelled:
            self._slots.release()
            raise ScanCancelled("scan cancelled")

    def _release_slot(self) -> None:
        self._slots.release()


class ParallelRunner:
    """Collects the values produced by the tasks of one supplier call.

    ``wait()`` returns every value, or raises the first task error once the
    in-flight tasks have drained. Later errors are discarded, and after a
    failure no further task is dispatched. A runner is single-use.
    """

    def __init__(self, pool: ParallelPool) -> None:
        self._pool = pool
        self._cond = threading.Condition()
        self._results: list[Any] = []
        self._error: Optional[BaseException] = None
        self._pending = 0
        self._waited = False

    def run(self, task: Task) -> None:
        """Submit a task. Blocks while every slot of the pool is busy."""
        if self._waited:
            raise RuntimeError("cannot submit to a runner that has already been waited")
        with self._cond:
            if self._error is not None:
                return
        self._pool._acquire_slot()
        # an earlier task may have failed while we waited for the slot
        with self._cond:
            if self._error is not None:
                self._pool._release_slot()
                return
            self._pending += 1
        try:
            self._pool._executor.submit(self._execute, task)
        except RuntimeError:
            # executor shut down underneath us
            self._pool._release_slot()
            with self._cond:
                self._pending -= 1
                self._cond.notify_all()
            raise ScanCancelled("read pool is closed")

    def _execute(self, task: Task) -> None:
        value: Any = None
        error: Optional[BaseException] = None
        try:
            if not self._pool.cancelled:
                value = task()
        except Exception as exc:
            error = exc
        finally:
            self._pool._release_slot()
        with self._cond:
            self._pending -= 1
            if error is not None:
                if self._error is None:
                    self._error = error
                else:
                    logger.debug("Discarding subsequent task error: %s", error)
            elif value is not None:
                self._results.append(value)
            self._cond.notify_all()

    def wait(self) -> list[Any]:
        with self._cond:
            if self._waited:
                raise RuntimeError("runner has already been waited")
            self._waited = True
            while self._pending and not self._pool.cancelled:
                self._cond.wait(POLL_INTERVAL)
            if self._pool.cancelled:
                raise ScanCancelled("scan cancelled while waiting for reads")
            if self._error is not None:
                raise self._error
            return list(self._results)
