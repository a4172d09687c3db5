"""
Job orchestrator for the unconstrained execution path.

Jobs are serialized to JSON on submission, kept in a priority queue and
run by a small pool of worker threads, each of which fans its rays out
over ``EngineConfig.n_workers`` joblib workers.

Life cycle of a job::

    queued → running → completed
                    ↘ failed | cancelled | timed_out
    queued → cancelled

Cancellation and the wall-clock timeout are both checked between rays;
a job that stops early discards its partial work. Progress is published
on a bounded event queue without backpressure: when the queue is full
the event is dropped. The final state of a job is always kept on the job
itself.
"""

from __future__ import annotations

import heapq
import itertools
import logging
import queue
import threading
import time
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from acoustic_prop.config import EngineConfig, PropagationRequest
from acoustic_prop.environment.model import Environment
from acoustic_prop.errors import JobCancelled, JobFailed, JobTimeout
from acoustic_prop.execution.pipeline import PropagationResult, run_propagation
from acoustic_prop.execution.serialization import dumps_job, loads_job

logger = logging.getLogger(__name__)


class JobStatus(str, Enum):
    QUEUED = "queued"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"
    TIMED_OUT = "timed_out"

    @property
    def is_terminal(self) -> bool:
        return self not in (JobStatus.QUEUED, JobStatus.RUNNING)


@dataclass(frozen=True)
class JobHandle:
    """Opaque reference to a submitted job."""

    job_id: str


@dataclass(frozen=True)
class JobEvent:
    """Progress or state-change notification of a job."""

    job_id:    str
    status:    JobStatus
    completed: int
    total:     int
    timestamp: float
    message:   str = ""


@dataclass
class _Job:
    handle:      JobHandle
    payload:     str
    priority:    int
    total:       int
    status:      JobStatus = JobStatus.QUEUED
    completed:   int = 0
    result:      Optional[PropagationResult] = None
    error:       Optional[BaseException] = None
    final_event: Optional[JobEvent] = None
    last_event:  float = float("-inf")
    n_dropped:   int = 0
    cancel_flag: threading.Event = field(default_factory=threading.Event)
    done:        threading.Event = field(default_factory=threading.Event)


class JobOrchestrator:
    """Priority job queue with worker threads.

    Parameters
    ----------
    config : EngineConfig, optional
        Worker counts, timeout and event-queue settings.

    Examples
    --------
    >>> with JobOrchestrator(EngineConfig(n_workers=2)) as jobs:
    ...     handle = jobs.submit(environment, request)
    ...     result = jobs.result(handle)
    """

    def __init__(self, config: Optional[EngineConfig] = None):
        self.config   = config or EngineConfig()
        self.events   = queue.Queue(maxsize=self.config.event_queue_size)
        self._jobs    = {}
        self._heap    = []
        self._seq     = itertools.count()
        self._cond    = threading.Condition()
        self._threads = []
        self._stopping = False

    # — Lifecycle ——————————————————————————————————————————————————————————————

    def start(self) -> None:
        """Spawn the worker threads. Calling it twice is a no-op."""
        with self._cond:
            if self._threads:
                return
            self._stopping = False
            for i in range(self.config.n_job_threads):
                thread = threading.Thread(
                    target=self._worker_loop, name=f"acoustic-job-{i}", daemon=True
                )
                self._threads.append(thread)
                thread.start()
        logger.info("Job orchestrator started with %d thread(s)", len(self._threads))

    def shutdown(self, wait: bool = True, cancel_pending: bool = True) -> None:
        """Stop the worker threads.

        Parameters
        ----------
        wait : bool
            Join the threads (running jobs finish first).
        cancel_pending : bool
            Cancel jobs that are still queued. Otherwise the workers drain
            the queue before they exit. Queued jobs are always cancelled
            when no worker was ever started.
        """
        with self._cond:
            self._stopping = True
            if cancel_pending or not self._threads:
                for _, _, job_id in self._heap:
                    job = self._jobs[job_id]
                    self._finish(job, JobStatus.CANCELLED, "orchestrator shut down")
                self._heap.clear()
            self._cond.notify_all()
            threads, self._threads = self._threads, []
        if wait:
            for thread in threads:
                thread.join()
        logger.info("Job orchestrator stopped")

    def __enter__(self) -> "JobOrchestrator":
        self.start()
        return self

    def __exit__(self, *exc) -> None:
        self.shutdown()

    # — Client API —————————————————————————————————————————————————————————————

    def submit(self, environment: Environment, request: PropagationRequest,
               priority: int = 0) -> JobHandle:
        """Serialize and enqueue a request. Higher priority runs first.

        Jobs submitted before :meth:`start` wait in the queue.

        Raises
        ------
        RuntimeError
            After :meth:`shutdown`, until the orchestrator is started again.
        """
        handle = JobHandle(uuid.uuid4().hex)
        job = _Job(
            handle=handle,
            payload=dumps_job(environment, request, priority),
            priority=priority,
            total=request.n_rays,
        )
        with self._cond:
            if self._stopping:
                raise RuntimeError("job orchestrator is shut down")
            self._jobs[handle.job_id] = job
            heapq.heappush(self._heap, (-priority, next(self._seq), handle.job_id))
            self._publish(job, force=True)
            self._cond.notify()
        logger.info("Queued job %s (priority %d)", handle.job_id, priority)
        return handle

    def status(self, handle: JobHandle) -> JobStatus:
        return self._job(handle).status

    def progress(self, handle: JobHandle) -> tuple[int, int]:
        """(completed, total) rays of a job."""
        job = self._job(handle)
        return job.completed, job.total

    def dropped_events(self, handle: JobHandle) -> int:
        """Number of events of a job lost to a full event queue."""
        return self._job(handle).n_dropped

    def final_event(self, handle: JobHandle) -> Optional[JobEvent]:
        """Terminal state event of a finished job, None while it is live."""
        return self._job(handle).final_event

    def queued(self) -> list[JobHandle]:
        """Handles of the queued jobs in the order they will run."""
        with self._cond:
            return [self._jobs[job_id].handle for _, _, job_id in sorted(self._heap)]

    def cancel(self, handle: JobHandle) -> bool:
        """Cancel a job.

        A queued job is removed from the queue at once. A running job is
        flagged and stops before its next ray.

        Returns
        -------
        bool
            False if the job had already reached a terminal state.
        """
        job = self._job(handle)
        with self._cond:
            if job.status is JobStatus.QUEUED:
                self._heap = [item for item in self._heap if item[2] != handle.job_id]
                heapq.heapify(self._heap)
                self._finish(job, JobStatus.CANCELLED, "cancelled while queued")
                return True
            if job.status is JobStatus.RUNNING:
                job.cancel_flag.set()
                logger.info("Cancellation requested for running job %s", handle.job_id)
                return True
        return False

    def result(self, handle: JobHandle, timeout: Optional[float] = None) -> PropagationResult:
        """Block until a job finishes and return its result.

        Parameters
        ----------
        timeout : float, optional
            Seconds to wait. None waits indefinitely.

        Raises
        ------
        TimeoutError
            If the job is still live after ``timeout`` seconds.
        JobFailed, JobCancelled, JobTimeout
            For the corresponding terminal states.
        """
        job = self._job(handle)
        if not job.done.wait(timeout):
            raise TimeoutError(f"job {handle.job_id} still {job.status.value}")

        if job.status is JobStatus.COMPLETED:
            return job.result
        if job.status is JobStatus.CANCELLED:
            raise JobCancelled(f"job {handle.job_id} was cancelled")
        if job.status is JobStatus.TIMED_OUT:
            raise JobTimeout(
                f"job {handle.job_id} exceeded {self.config.job_timeout:.1f} s"
            )
        raise JobFailed(f"job {handle.job_id} failed: {job.error!r}") from job.error

    # — Internals ——————————————————————————————————————————————————————————————

    def _job(self, handle: JobHandle) -> _Job:
        try:
            return self._jobs[handle.job_id]
        except KeyError:
            raise KeyError(f"unknown job {handle.job_id}") from None

    def _publish(self, job: _Job, force: bool = False, message: str = "") -> None:
        now = time.monotonic()
        if not force and now - job.last_event < self.config.progress_interval:
            return
        job.last_event = now
        event = JobEvent(
            job_id=job.handle.job_id,
            status=job.status,
            completed=job.completed,
            total=job.total,
            timestamp=time.time(),
            message=message,
        )
        if job.status.is_terminal:
            job.final_event = event
        try:
            self.events.put_nowait(event)
        except queue.Full:
            job.n_dropped += 1
            logger.debug("Event queue full, dropped event of job %s", job.handle.job_id)

    def _finish(self, job: _Job, status: JobStatus, message: str = "") -> None:
        with self._cond:
            job.status = status
            self._publish(job, force=True, message=message)
            job.done.set()
        logger.info("Job %s %s %s", job.handle.job_id, status.value, message)

    def _worker_loop(self) -> None:
        while True:
            with self._cond:
                while not self._heap and not self._stopping:
                    self._cond.wait()
                if not self._heap:
                    return
                _, _, job_id = heapq.heappop(self._heap)
                job = self._jobs[job_id]
                job.status = JobStatus.RUNNING
                self._publish(job, force=True)
            self._run(job)

    def _run(self, job: _Job) -> None:
        deadline = time.monotonic() + self.config.job_timeout

        def should_cancel() -> bool:
            return job.cancel_flag.is_set() or time.monotonic() >= deadline

        def progress(done: int, total: int) -> None:
            job.completed, job.total = done, total
            self._publish(job)

        try:
            environment, request, _ = loads_job(job.payload)
            result = run_propagation(
                environment, request,
                n_workers=self.config.n_workers,
                progress=progress,
                should_cancel=should_cancel,
            )
        except JobCancelled:
            if job.cancel_flag.is_set():
                self._finish(job, JobStatus.CANCELLED, "cancelled while running")
            else:
                self._finish(job, JobStatus.TIMED_OUT, "wall-clock limit reached")
        except Exception as exc:
            logger.exception("Job %s failed", job.handle.job_id)
            job.error = exc
            self._finish(job, JobStatus.FAILED, str(exc))
        else:
            if time.monotonic() >= deadline:
                self._finish(job, JobStatus.TIMED_OUT, "wall-clock limit reached")
            else:
                job.result = result
                self._finish(job, JobStatus.COMPLETED)
