"""
Unit tests for the worker thread pool.
"""

import threading
import time

import pytest

from pagegate.core.thread_pool import ThreadPool


class TestThreadPool:
    def test_runs_tasks(self):
        """Test that submitted tasks run on worker threads."""
        results = []
        done = threading.Event()

        def task(value):
            results.append((value, threading.current_thread().name))
            if len(results) == 3:
                done.set()

        with ThreadPool(min_workers=2, max_workers=2) as pool:
            for i in range(3):
                assert pool.submit(task, args=(i,)) is True
            assert done.wait(timeout=5.0)

        assert sorted(value for value, _ in results) == [0, 1, 2]
        assert all(name.startswith("Worker-") for _, name in results)

    def test_submit_before_start(self):
        with pytest.raises(RuntimeError):
            ThreadPool().submit(print)

    def test_submit_after_shutdown(self):
        pool = ThreadPool(min_workers=1, max_workers=1)
        pool.start()
        pool.shutdown(wait=True, timeout=5.0)

        with pytest.raises(RuntimeError):
            pool.submit(print)

    def test_full_queue_rejects(self):
        """Test that submit() returns False when the queue is full."""
        release = threading.Event()
        started = threading.Event()

        def blocker():
            started.set()
            release.wait(timeout=5.0)

        pool = ThreadPool(min_workers=1, max_workers=1, queue_size=1)
        pool.start()
        try:
            assert pool.submit(blocker) is True
            assert started.wait(timeout=5.0)
            assert pool.submit(blocker) is True
            assert pool.submit(blocker) is False
        finally:
            release.set()
            pool.shutdown(wait=True, timeout=5.0)

    def test_shutdown_with_full_queue_returns(self, caplog):
        """Test that shutdown() honours its timeout when no stop marker fits."""
        release = threading.Event()
        started = threading.Event()

        def blocker():
            started.set()
            release.wait(timeout=5.0)

        pool = ThreadPool(min_workers=1, max_workers=1, queue_size=1)
        pool.start()
        try:
            pool.submit(blocker)
            assert started.wait(timeout=5.0)
            assert pool.submit(blocker) is True

            began = time.monotonic()
            pool.shutdown(wait=True, timeout=0.2)

            assert time.monotonic() - began < 2.0
            assert "not signalled to stop" in caplog.text
        finally:
            release.set()

    def test_scales_up_when_busy(self):
        """Test that a new worker is added when all are busy."""
        release = threading.Event()
        started = threading.Event()

        def blocker():
            started.set()
            release.wait(timeout=5.0)

        pool = ThreadPool(min_workers=1, max_workers=3, queue_size=10)
        pool.start()
        try:
            pool.submit(blocker)
            assert started.wait(timeout=5.0)
            pool.submit(blocker)

            assert pool.stats["workers"]["total"] >= 2
        finally:
            release.set()
            pool.shutdown(wait=True, timeout=5.0)

    def test_task_error_does_not_kill_worker(self):
        done = threading.Event()

        def bad():
            raise ValueError("boom")

        with ThreadPool(min_workers=1, max_workers=1) as pool:
            pool.submit(bad)
            pool.submit(done.set)
            assert done.wait(timeout=5.0)

        assert pool.stats["tasks"]["failed"] == 1

    def test_stale_task_dropped(self):
        """Test that a task waiting longer than its timeout is skipped."""
        ran = []
        release = threading.Event()
        started = threading.Event()

        def blocker():
            started.set()
            release.wait(timeout=5.0)

        pool = ThreadPool(min_workers=1, max_workers=1)
        pool.start()
        try:
            pool.submit(blocker)
            assert started.wait(timeout=5.0)
            pool.submit(ran.append, args=(1,), timeout=0.01)
            time.sleep(0.1)
        finally:
            release.set()
            pool.shutdown(wait=True, timeout=5.0)

        assert ran == []

    @pytest.mark.parametrize("low,high", [(0, 1), (4, 2)])
    def test_invalid_sizes(self, low: int, high: int):
        with pytest.raises(ValueError):
            ThreadPool(min_workers=low, max_workers=high)
