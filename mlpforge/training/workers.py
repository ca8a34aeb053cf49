"""
MLPForge Worker Pool
=====================
Two small threading primitives used by the chunked trainer.

WaitGroup:
    A counter that threads can wait on until it drops back to zero.
    `add(n)` before handing out n pieces of work, `done()` as each one
    finishes, `wait()` to block until all of them have.

WorkerPool:
    A fixed set of threads draining one job queue.

        pool = WorkerPool()
        pool.start(4)
        for job in jobs:
            pool.go(job)      # job is a zero-argument callable
        pool.stop()           # threads exit once the queue is drained
        pool.wait()           # block until every job has finished

    A job that raises does not kill its thread: the exception is logged
    and the first one is re-raised from `wait()`.
"""

from __future__ import annotations

import logging
import queue
import threading
from typing import Callable, Optional

logger = logging.getLogger(__name__)

Job = Callable[[], None]

_STOP = object()


class WaitGroup:
    """Counting barrier: `wait()` returns once the counter is back to zero."""

    def __init__(self):
        self._count = 0
        self._cond = threading.Condition()

    def add(self, delta: int = 1) -> None:
        with self._cond:
            count = self._count + delta
            if count < 0:
                raise ValueError("negative WaitGroup counter")
            self._count = count
            if count == 0:
                self._cond.notify_all()

    def done(self) -> None:
        self.add(-1)

    def wait(self) -> None:
        with self._cond:
            while self._count:
                self._cond.wait()


class WorkerPool:
    """
    Fixed-size pool of daemon threads running submitted jobs.

    Parameters
    ----------
    name : str
        Prefix for the worker thread names (shows up in logs).
    """

    def __init__(self, name: str = "worker"):
        self.name = name
        self._pending = WaitGroup()
        self._input: Optional[queue.Queue] = None
        self._threads: list[threading.Thread] = []
        self._errors: list[BaseException] = []
        self._lock = threading.Lock()

    def start(self, size: int) -> None:
        """Wait for outstanding jobs, then spawn `size` fresh workers."""
        if size < 1:
            raise ValueError(f"Pool size must be >= 1, got {size}")
        self._pending.wait()
        self._input = queue.Queue()
        self._threads = [
            threading.Thread(
                target=self._do_jobs,
                args=(self._input,),
                name=f"{self.name}-{i}",
                daemon=True,
            )
            for i in range(size)
        ]
        for thread in self._threads:
            thread.start()

    def _do_jobs(self, jobs: queue.Queue) -> None:
        while (job := jobs.get()) is not _STOP:
            try:
                job()
            except Exception as e:
                logger.exception(f"Job failed in {threading.current_thread().name}")
                with self._lock:
                    self._errors.append(e)
            finally:
                self._pending.done()

    def go(self, job: Job) -> None:
        """Submit a job. The pool must have been started."""
        if self._input is None:
            raise RuntimeError("WorkerPool.go() called before start()")
        self._pending.add(1)
        self._input.put(job)

    def stop(self) -> None:
        """Let every worker exit once the jobs queued so far are done."""
        if self._input is None:
            return
        for _ in self._threads:
            self._input.put(_STOP)
        self._input = None

    def wait(self) -> None:
        """
        Block until every submitted job has finished.

        Raises
        ------
        Exception
            The first exception raised by a job since the last `wait()`.
        """
        self._pending.wait()
        with self._lock:
            errors, self._errors = self._errors, []
        if errors:
            raise errors[0]

    def __repr__(self) -> str:
        return f"WorkerPool(name={self.name}, size={len(self._threads)})"
