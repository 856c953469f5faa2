"""
Unit tests for the worker pool.
"""

import threading

import pytest

from downloadserver.core.thread_pool import PoolClosedError, WorkerPool


class TestWorkerPool:
    """Tests for WorkerPool."""

    def test_runs_jobs(self):
        pool = WorkerPool(workers=2)
        pool.start()
        done = threading.Event()

        pool.submit(done.set)

        assert done.wait(2.0)
        pool.shutdown(timeout=2.0)

    def test_jobs_run_concurrently(self):
        """Two workers can hold two jobs at once."""
        pool = WorkerPool(workers=2)
        pool.start()
        barrier = threading.Barrier(2, timeout=2.0)
        passed = []

        def job():
            barrier.wait()
            passed.append(True)

        pool.submit(job)
        pool.submit(job)
        pool.shutdown(timeout=5.0)

        assert passed == [True, True]

    def test_shutdown_drains_queue(self):
        """Jobs queued before shutdown() still run."""
        pool = WorkerPool(workers=1)
        pool.start()
        gate = threading.Event()
        results = []

        pool.submit(gate.wait)
        for i in range(5):
            pool.submit(lambda i=i: results.append(i))

        gate.set()
        pool.shutdown(timeout=5.0)

        assert results == [0, 1, 2, 3, 4]
        assert not any(worker.is_alive() for worker in pool._workers)

    def test_submit_after_shutdown(self):
        pool = WorkerPool(workers=1)
        pool.start()
        pool.shutdown(timeout=2.0)

        with pytest.raises(PoolClosedError):
            pool.submit(lambda: None)

    def test_failing_job_does_not_kill_worker(self):
        pool = WorkerPool(workers=1)
        pool.start()
        done = threading.Event()

        def bad():
            raise RuntimeError("boom")

        pool.submit(bad)
        pool.submit(done.set)

        assert done.wait(2.0)
        assert all(worker.is_alive() for worker in pool._workers)
        pool.shutdown(timeout=2.0)

    def test_shutdown_is_idempotent(self):
        pool = WorkerPool(workers=1)
        pool.start()
        pool.shutdown(timeout=2.0)
        pool.shutdown(timeout=2.0)

    def test_invalid_size(self):
        with pytest.raises(ValueError):
            WorkerPool(workers=0)
