"""
=============================================================================
WORKER POOL
=============================================================================

A fixed number of worker threads consuming jobs from one shared queue.

=============================================================================
WHY A POOL?
=============================================================================

Thread-per-connection has no upper bound: 10,000 clients means 10,000
threads. A pool fixes the number of threads at startup; extra connections
wait in the queue instead of exhausting memory.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                          WorkerPool                                  │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   submit(job) ──►  ┌───┬───┬───┬───┬───┐                            │
    │                    │ J │ J │ J │ J │ J │   queue.Queue (FIFO)        │
    │                    └─┬─┴───┴───┴───┴───┘                            │
    │                      │  any idle worker claims the next job          │
    │          ┌───────────┼───────────┐                                   │
    │          ▼           ▼           ▼                                   │
    │     Worker-0    Worker-1    Worker-2      size threads, no more      │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Jobs are claimed in submission order. They do not finish in submission
order: a slow job on Worker-0 can still be running while later jobs finish
on Worker-1.

=============================================================================
THE POISON PILL
=============================================================================

shutdown() puts one None per worker at the BACK of the queue:

    [ J J J J None None None ]

Every job already queued is claimed before any pill, so all of them run
before shutdown() returns. A worker that takes a pill exits its loop.
shutdown() then joins each worker, letting it finish its current job.

=============================================================================
FAILURE ISOLATION
=============================================================================

A job that raises must not take its worker down with it. Otherwise each
crash silently shrinks the pool until nothing is left to serve requests.
Every job runs inside try/except in Worker._execute_job: the error is
logged with its traceback, counted, and the worker goes back to the queue.

=============================================================================
"""

import logging
import queue
import threading
import time
from enum import Enum
from typing import Callable, Optional


logger = logging.getLogger(__name__)

# A unit of deferred work: no arguments, result ignored.
Job = Callable[[], None]


class WorkerState(Enum):
    IDLE = "idle"        # Waiting for a job
    BUSY = "busy"        # Executing a job
    STOPPED = "stopped"  # Thread exited


class Worker(threading.Thread):
    """
    Worker thread that executes jobs from the shared queue.

    ┌─────────────────────────────────────────────────────────────────────┐
    │   1. job = queue.get()          (blocks)                            │
    │   2. job is None?  → exit loop                                      │
    │   3. run job inside try/except  (never raises out of the loop)      │
    │   4. queue.task_done(), back to 1                                   │
    └─────────────────────────────────────────────────────────────────────┘
    """

    def __init__(self, job_queue: "queue.Queue[Optional[Job]]", worker_id: int):
        # daemon=True: a forgotten pool does not keep the process alive
        super().__init__(name=f"Worker-{worker_id}", daemon=True)

        self.job_queue = job_queue
        self.worker_id = worker_id
        self.state = WorkerState.IDLE

        self.jobs_completed = 0
        self.jobs_failed = 0

    def run(self):
        logger.debug(f"Worker {self.worker_id} started")

        while True:
            job = self.job_queue.get()
            try:
                if job is None:
                    logger.debug(f"Worker {self.worker_id} got terminate message")
                    break
                self._execute_job(job)
            finally:
                self.job_queue.task_done()

        self.state = WorkerState.STOPPED
        logger.debug(f"Worker {self.worker_id} stopped")

    def _execute_job(self, job: Job):
        """
        Run one job, catching anything it raises.

        This is the per-job failure boundary of the pool.
        """
        self.state = WorkerState.BUSY
        start_time = time.monotonic()

        try:
            job()
            self.jobs_completed += 1
            logger.debug(
                f"Worker {self.worker_id} finished job in "
                f"{time.monotonic() - start_time:.3f}s"
            )
        except Exception as e:
            self.jobs_failed += 1
            logger.exception(
                f"Worker {self.worker_id} job failed after "
                f"{time.monotonic() - start_time:.3f}s: {e}"
            )
        finally:
            self.state = WorkerState.IDLE


class WorkerPool:
    """
    Fixed-size pool of worker threads.

    ┌─────────────────────────────────────────────────────────────────────┐
    │   pool = WorkerPool(size=4)                                          │
    │   pool.start()                                                       │
    │                                                                      │
    │   pool.submit(lambda: handle(conn))                                  │
    │                                                                      │
    │   pool.shutdown()     # runs everything queued, then joins workers  │
    └─────────────────────────────────────────────────────────────────────┘

    Also a context manager:

        with WorkerPool(2) as pool:
            pool.submit(job)
    """

    def __init__(self, size: int, queue_size: int = 0):
        """
        Args:
            size: Number of worker threads, at least 1.
            queue_size: Maximum number of waiting jobs. 0 means unbounded;
                        with a bound, submit() blocks while the queue is full.

        Raises:
            ValueError: If size < 1.
        """
        if size < 1:
            raise ValueError(f"Worker pool size must be at least 1, got {size}")

        self.size = size
        self._job_queue: "queue.Queue[Optional[Job]]" = queue.Queue(maxsize=queue_size)
        self._workers: list[Worker] = []

        # Guards the started/shutdown flags against submit() racing shutdown()
        self._lock = threading.Lock()
        self._started = False
        self._shutdown = False

    def start(self):
        """
        Spawn the worker threads. Calling it twice is a no-op.

        Raises:
            RuntimeError: If the pool has been shut down.
        """
        with self._lock:
            if self._shutdown:
                raise RuntimeError("Worker pool has been shut down")
            if self._started:
                return

            logger.info(f"Starting worker pool with {self.size} workers")
            for worker_id in range(self.size):
                worker = Worker(self._job_queue, worker_id)
                self._workers.append(worker)
                worker.start()

            self._started = True

    def submit(self, job: Job):
        """
        Queue a job for execution by the next idle worker.

        Returns as soon as the job is queued.

        Raises:
            RuntimeError: If the pool is not started or is shutting down.
        """
        with self._lock:
            if not self._started:
                raise RuntimeError("Worker pool not started")
            if self._shutdown:
                raise RuntimeError("Worker pool is shutting down")
            # Under the lock, so no job can land behind the terminate messages
            self._job_queue.put(job)

    def shutdown(self):
        """
        Stop the pool: one terminate message per worker, then join all.

        Every job submitted before this call runs to completion before it
        returns. Safe to call more than once.
        """
        with self._lock:
            if self._shutdown or not self._started:
                self._shutdown = True
                return
            self._shutdown = True

        logger.info("Sending terminate message to all workers")
        for _ in self._workers:
            self._job_queue.put(None)

        logger.info("Shutting down all workers")
        for worker in self._workers:
            worker.join()
            logger.debug(f"Worker {worker.worker_id} joined")

        logger.info("Worker pool shutdown complete")

    def __enter__(self) -> "WorkerPool":
        self.start()
        return self

    def __exit__(self, exc_type, exc, tb):
        self.shutdown()

    # =========================================================================
    # MONITORING
    # =========================================================================

    @property
    def busy_workers(self) -> int:
        return sum(1 for w in self._workers if w.state == WorkerState.BUSY)

    @property
    def idle_workers(self) -> int:
        return sum(1 for w in self._workers if w.state == WorkerState.IDLE)

    @property
    def alive_workers(self) -> int:
        return sum(1 for w in self._workers if w.is_alive())

    @property
    def queue_size(self) -> int:
        """Jobs waiting to be claimed."""
        return self._job_queue.qsize()

    @property
    def stats(self) -> dict:
        return {
            "workers": {
                "total": len(self._workers),
                "alive": self.alive_workers,
                "busy": self.busy_workers,
                "idle": self.idle_workers,
            },
            "tasks": {
                "queued": self.queue_size,
                "completed": sum(w.jobs_completed for w in self._workers),
                "failed": sum(w.jobs_failed for w in self._workers),
            },
        }
