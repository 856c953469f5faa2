"""
=============================================================================
WORKER POOL
=============================================================================

A fixed set of long-lived worker threads pulling jobs from one queue.

=============================================================================
WHY A FIXED POOL?
=============================================================================

    Thread-per-connection (unbounded):
        1000 clients → 1000 threads → memory + scheduler thrash

    Fixed pool:
        1000 clients → N threads busy, the rest wait in the queue

A download can take minutes. With N workers at most N downloads stream
at once; everything else waits its turn instead of starving the machine.

=============================================================================
QUEUE SEMANTICS
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   Acceptor ──submit()──►  [ job | job | job | ... ]  (unbounded)     │
    │                                  │                                   │
    │                   ┌──────────────┼──────────────┐                    │
    │                   ▼              ▼              ▼                    │
    │               Worker-0       Worker-1   ...  Worker-N-1              │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

- submit() never blocks the acceptor (the queue has no maxsize).
- shutdown() closes the pool: further submits raise PoolClosedError,
  one poison pill (None) per worker goes on the queue behind any jobs
  already waiting, and every worker is joined. Queued jobs therefore
  drain before the workers exit.

=============================================================================
FAULT ISOLATION
=============================================================================

A job that raises is logged with its traceback and the worker keeps
running. One bad connection never takes
down a worker, and a dead worker never takes down the pool.

=============================================================================
"""

import queue
import threading
import time
import logging
from typing import Any, Callable, List, Optional


logger = logging.getLogger(__name__)


class PoolClosedError(RuntimeError):
    """Raised by submit() after shutdown() has been called."""


Job = Callable[[], Any]


class Worker(threading.Thread):
    """
    Worker thread that processes jobs from the queue.

    ┌─────────────────────────────────────────────────────────────────────┐
    │   1. job = queue.get()            (blocks)                           │
    │   2. job is None? → exit          (poison pill)                      │
    │   3. try: job()                                                      │
    │      except Exception: log with traceback                            │
    │   4. task_done(), go to 1                                            │
    └─────────────────────────────────────────────────────────────────────┘
    """

    def __init__(self, job_queue: queue.Queue, worker_id: int):
        super().__init__(name=f"Worker-{worker_id}", daemon=True)
        self.job_queue = job_queue
        self.worker_id = worker_id

    def run(self):
        logger.debug(f"Worker {self.worker_id} started")

        while True:
            job = self.job_queue.get()
            try:
                if job is None:
                    break
                self._execute(job)
            finally:
                self.job_queue.task_done()

        logger.debug(f"Worker {self.worker_id} stopped")

    def _execute(self, job: Job):
        start_time = time.time()

        try:
            job()
        except Exception as e:
            elapsed = time.time() - start_time
            logger.exception(f"Worker {self.worker_id} job failed after {elapsed:.3f}s: {e}")


class WorkerPool:
    """
    Fixed-size pool of worker threads.

    =========================================================================
    USAGE
    =========================================================================

        pool = WorkerPool(workers=8)
        pool.start()

        pool.submit(lambda: handle(conn))

        pool.shutdown()   # drains queued jobs, joins every worker

    =========================================================================
    """

    def __init__(self, workers: int = 8):
        if workers < 1:
            raise ValueError("workers must be >= 1")

        self.size = workers
        self._queue: queue.Queue = queue.Queue()
        self._workers: List[Worker] = []
        self._lock = threading.Lock()
        self._started = False
        self._closed = False

    def start(self):
        """Spawn the worker threads."""
        with self._lock:
            if self._started:
                return
            for worker_id in range(self.size):
                worker = Worker(self._queue, worker_id)
                worker.start()
                self._workers.append(worker)
            self._started = True

        logger.info(f"Worker pool started with {self.size} workers")

    def submit(self, job: Job) -> None:
        """
        Queue a job. Never blocks.

        Raises:
            PoolClosedError: If shutdown() has been called.
        """
        with self._lock:
            if self._closed:
                raise PoolClosedError("Worker pool is shut down")
            self._queue.put(job)

    def shutdown(self, timeout: Optional[float] = None):
        """
        Close the queue and join all workers.

        Jobs already queued run to completion before the workers see their
        poison pill.

        Args:
            timeout: Per-worker join timeout. None waits indefinitely.
        """
        with self._lock:
            if self._closed:
                return
            self._closed = True
            workers = list(self._workers)
            for _ in workers:
                self._queue.put(None)

        logger.info("Shutting down worker pool...")

        for worker in workers:
            worker.join(timeout)
            if worker.is_alive():
                logger.warning(f"Worker {worker.worker_id} did not stop within {timeout}s")

        logger.info("Worker pool shutdown complete")
