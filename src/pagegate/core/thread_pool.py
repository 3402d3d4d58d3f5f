"""
=============================================================================
WORKER POOL
=============================================================================

Connections are handled on a bounded pool of worker threads:

    accept loop ──submit(conn)──► ┌──────────────┐ ──► Worker-0
                                  │  task queue  │ ──► Worker-1
                                  │  (bounded)   │ ──► ...
                                  └──────────────┘ ──► Worker-N

    - min_workers start with the pool and live until shutdown
    - when no worker is idle and work is queued, one more worker is
      added, up to max_workers
    - a full queue makes submit() return False; the server answers
      503 Service Unavailable

Shutdown puts one ``None`` per worker on the queue; a worker that takes
it exits.

=============================================================================
"""

import logging
import queue
import threading
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional


logger = logging.getLogger(__name__)


class WorkerState(Enum):
    IDLE = "idle"
    BUSY = "busy"
    STOPPED = "stopped"


@dataclass
class Task:
    """A deferred call. ``timeout`` bounds how long it may wait queued."""

    func: Callable[..., Any]
    args: tuple = ()
    kwargs: Dict[str, Any] = field(default_factory=dict)
    timeout: Optional[float] = None
    submitted_at: float = field(default_factory=time.monotonic)


class Worker(threading.Thread):
    """Pulls tasks off the shared queue until it receives ``None``."""

    def __init__(self, task_queue: queue.Queue, worker_id: int):
        super().__init__(name=f"Worker-{worker_id}", daemon=True)
        self.task_queue = task_queue
        self.worker_id = worker_id
        self.state = WorkerState.IDLE
        self.tasks_completed = 0
        self.tasks_failed = 0

    def run(self):
        logger.debug(f"Worker {self.worker_id} started")
        while True:
            task = self.task_queue.get()
            try:
                if task is None:
                    break
                self._execute_task(task)
            finally:
                self.task_queue.task_done()
        self.state = WorkerState.STOPPED
        logger.debug(f"Worker {self.worker_id} stopped")

    def _execute_task(self, task: Task):
        self.state = WorkerState.BUSY
        start_time = time.monotonic()
        try:
            waited = start_time - task.submitted_at
            if task.timeout and waited > task.timeout:
                logger.warning(
                    f"Task dropped after waiting {waited:.2f}s in queue "
                    f"(timeout was {task.timeout}s)"
                )
                self.tasks_failed += 1
                return

            task.func(*task.args, **task.kwargs)
            self.tasks_completed += 1
            logger.debug(
                f"Worker {self.worker_id} completed task in {time.monotonic() - start_time:.3f}s"
            )
        except Exception as e:
            # Task errors stay inside the task; the worker keeps serving.
            logger.exception(f"Worker {self.worker_id} task failed: {e}")
            self.tasks_failed += 1
        finally:
            self.state = WorkerState.IDLE


class ThreadPool:
    """
    Bounded, growing pool of worker threads.

        pool = ThreadPool(min_workers=4, max_workers=16)
        pool.start()
        if not pool.submit(handle, args=(conn,)):
            ...  # queue full
        pool.shutdown(wait=True, timeout=30.0)
    """

    def __init__(
        self,
        min_workers: int = 4,
        max_workers: int = 16,
        queue_size: int = 100,
    ):
        if min_workers < 1 or max_workers < min_workers:
            raise ValueError(
                f"Need 1 <= min_workers <= max_workers, got {min_workers}/{max_workers}"
            )
        self.min_workers = min_workers
        self.max_workers = max_workers
        self.queue_size = queue_size

        self._task_queue: "queue.Queue[Optional[Task]]" = queue.Queue(maxsize=queue_size)
        self._workers: List[Worker] = []
        self._lock = threading.Lock()
        self._started = False
        self._shutdown = False
        self._next_worker_id = 0

    def start(self) -> None:
        if self._started:
            return
        logger.info(f"Starting thread pool with {self.min_workers} workers")
        with self._lock:
            for _ in range(self.min_workers):
                self._spawn_worker_locked()
        self._started = True

    def _spawn_worker_locked(self) -> Worker:
        worker = Worker(self._task_queue, self._next_worker_id)
        self._next_worker_id += 1
        self._workers.append(worker)
        worker.start()
        return worker

    def submit(
        self,
        func: Callable[..., Any],
        args: tuple = (),
        kwargs: Optional[Dict[str, Any]] = None,
        timeout: Optional[float] = None,
    ) -> bool:
        """
        Queue ``func(*args, **kwargs)`` for a worker.

        Returns:
            True if queued, False if the queue is full.

        Raises:
            RuntimeError: The pool is not started or is shutting down.
        """
        if not self._started:
            raise RuntimeError("Thread pool not started")
        if self._shutdown:
            raise RuntimeError("Thread pool is shutting down")

        task = Task(func=func, args=args, kwargs=kwargs or {}, timeout=timeout)
        try:
            self._task_queue.put_nowait(task)
        except queue.Full:
            logger.warning("Task queue full, rejecting task")
            return False

        self._maybe_scale_up()
        return True

    def _maybe_scale_up(self) -> None:
        with self._lock:
            if len(self._workers) >= self.max_workers:
                return
            idle = sum(1 for w in self._workers if w.state == WorkerState.IDLE)
            if idle == 0 and not self._task_queue.empty():
                worker = self._spawn_worker_locked()
                logger.info(
                    f"Scaled up to {len(self._workers)} workers (added Worker-{worker.worker_id})"
                )

    def shutdown(self, wait: bool = True, timeout: Optional[float] = None) -> None:
        """
        Stop all workers after the tasks already queued.

        Args:
            wait: Join the worker threads before returning.
            timeout: Upper bound in seconds for queuing the stop markers
                and joining. A full queue never blocks past it, and with
                wait=False the markers are queued without blocking.
        """
        if self._shutdown:
            return
        self._shutdown = True
        logger.info("Shutting down thread pool...")

        with self._lock:
            workers = list(self._workers)

        deadline = None if timeout is None else time.monotonic() + timeout
        for signalled, _ in enumerate(workers):
            remaining = None if deadline is None else max(0.0, deadline - time.monotonic())
            try:
                self._task_queue.put(None, block=wait, timeout=remaining)
            except queue.Full:
                logger.warning(
                    f"Task queue full, {len(workers) - signalled} workers not signalled to stop"
                )
                break

        if wait:
            for worker in workers:
                remaining = None if deadline is None else max(0.0, deadline - time.monotonic())
                worker.join(timeout=remaining)
                if worker.is_alive():
                    logger.warning(f"Worker {worker.worker_id} did not stop in time")

        logger.info("Thread pool shutdown complete")

    @property
    def stats(self) -> Dict[str, Any]:
        with self._lock:
            workers = list(self._workers)
        return {
            "workers": {
                "total": len(workers),
                "busy": sum(1 for w in workers if w.state == WorkerState.BUSY),
                "idle": sum(1 for w in workers if w.state == WorkerState.IDLE),
            },
            "queue": {"size": self._task_queue.qsize(), "max_size": self.queue_size},
            "tasks": {
                "completed": sum(w.tasks_completed for w in workers),
                "failed": sum(w.tasks_failed for w in workers),
            },
        }

    def __enter__(self) -> "ThreadPool":
        self.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.shutdown(wait=True)
        return False
