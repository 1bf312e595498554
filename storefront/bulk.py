"""Bulk ingestion: drive a product ingest across many handles.

A job drains a FIFO queue of handles with a fixed pool of workers, so no
more than ``concurrency`` handles are ever in flight. Each handle is
ingested under a per-attempt timeout and a bounded linear-backoff retry.
One failing handle is counted and logged, never fatal to the batch.

Cancellation is cooperative: it stops workers from taking new handles;
handles already in flight run to completion or timeout.
"""

import asyncio
import logging
import time
from collections import deque
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Deque, Dict, List, Optional, Set, TypeVar

from storefront.config import STATUS_ERROR_PREVIEW, BulkSettings
from storefront.errors import JobConflict, RetriesExhausted, TaskTimeout
from storefront.logging_config import get_logger, log_ingest_event

__all__ = [
    "with_timeout",
    "with_retry",
    "BulkJob",
    "JobManager",
    "IngestFn",
]

logger = get_logger("bulk")

T = TypeVar("T")
IngestFn = Callable[[str], Awaitable[Any]]


def _epoch_ms(ts: Optional[float]) -> Optional[int]:
    return int(ts * 1000) if ts is not None else None


async def with_timeout(aw: Awaitable[T], seconds: float, label: str = "task") -> T:
    """Await ``aw``, failing with TaskTimeout after ``seconds``.

    The awaited operation is cancelled on timeout, so no request is left
    running in the background.
    """
    try:
        return await asyncio.wait_for(aw, timeout=seconds)
    except asyncio.TimeoutError as e:
        raise TaskTimeout(label, seconds) from e


async def with_retry(
    factory: Callable[[], Awaitable[T]],
    retries: int,
    label: str = "task",
    backoff_base: float = 0.3,
) -> T:
    """Run ``factory()`` up to ``retries + 1`` times.

    Between failed attempts sleeps ``backoff_base * (attempt + 1)`` seconds.

    Raises:
        RetriesExhausted: When every attempt failed; carries the last error
    """
    last_error: Optional[Exception] = None
    for attempt in range(retries + 1):
        try:
            return await factory()
        except Exception as e:
            last_error = e
            logger.debug(f"{label}: attempt {attempt + 1}/{retries + 1} failed: {e}")
            if attempt < retries:
                await asyncio.sleep(backoff_base * (attempt + 1))
    raise RetriesExhausted(label, retries + 1, last_error) from last_error


@dataclass
class BulkJob:
    """State of one bulk ingest run."""

    handles: List[str]
    settings: BulkSettings = field(default_factory=BulkSettings)
    queue: Deque[str] = field(init=False)
    in_flight: Set[str] = field(default_factory=set)
    done: int = 0
    failed: int = 0
    errors: Deque[Dict[str, str]] = field(init=False)
    started_at: Optional[float] = None
    ended_at: Optional[float] = None
    running: bool = False
    cancel_requested: bool = False

    def __post_init__(self) -> None:
        self.queue = deque(self.handles)
        self.errors = deque(maxlen=self.settings.error_limit)

    @property
    def total(self) -> int:
        return len(self.handles)

    @property
    def duration_ms(self) -> int:
        if self.started_at is None:
            return 0
        end = self.ended_at if self.ended_at is not None else time.time()
        return int((end - self.started_at) * 1000)

    def snapshot(self) -> Dict[str, Any]:
        """Point-in-time status, shaped for the status endpoint."""
        errors = list(self.errors)
        return {
            "running": self.running,
            "cancelled": self.cancel_requested,
            "total": self.total,
            "done": self.done,
            "failed": self.failed,
            "inFlight": sorted(self.in_flight),
            "queued": len(self.queue),
            "startedAt": _epoch_ms(self.started_at),
            "endedAt": _epoch_ms(self.ended_at),
            "errors_preview": errors[-STATUS_ERROR_PREVIEW:],
        }

    def result(self) -> Dict[str, Any]:
        """Completion summary."""
        return {
            "total": self.total,
            "done": self.done,
            "failed": self.failed,
            "cancelled": self.cancel_requested,
            "duration_ms": self.duration_ms,
            "errors": list(self.errors),
        }


class JobManager:
    """Owns at most one active bulk job.

    Must be driven from a single event loop; job state is mutated only
    by that loop's tasks.
    """

    def __init__(self, ingest: IngestFn, settings: Optional[BulkSettings] = None):
        """
        Args:
            ingest: Coroutine function ingesting one handle; raising marks it failed
            settings: Default settings for jobs started without their own
        """
        self._ingest = ingest
        self.settings = settings or BulkSettings.from_env()
        self.job: Optional[BulkJob] = None
        self._task: Optional["asyncio.Task[Dict[str, Any]]"] = None
        self.peak_in_flight = 0

    @property
    def is_running(self) -> bool:
        return self.job is not None and self.job.running

    async def start(self, handles: List[str], settings: Optional[BulkSettings] = None) -> BulkJob:
        """Start a job in the background and return it immediately.

        Duplicate handles are ingested once and counted once.

        Raises:
            JobConflict: If a job is already running
        """
        if self.is_running:
            raise JobConflict()

        unique = list(dict.fromkeys(h for h in handles if h))
        job = BulkJob(handles=unique, settings=settings or self.settings)
        job.running = True
        job.started_at = time.time()
        self.job = job
        self.peak_in_flight = 0
        self._task = asyncio.create_task(self._drive(job))
        return job

    async def run(self, handles: List[str], settings: Optional[BulkSettings] = None) -> Dict[str, Any]:
        """Start a job and wait for its completion summary."""
        await self.start(handles, settings)
        return await self.wait()

    async def wait(self) -> Dict[str, Any]:
        """Completion summary of the current (or last) job."""
        if self._task is None:
            return {}
        return await self._task

    def status(self) -> Dict[str, Any]:
        if self.job is None:
            return BulkJob(handles=[], settings=self.settings).snapshot()
        return self.job.snapshot()

    def cancel(self) -> str:
        """Request cooperative cancellation of the running job."""
        if not self.is_running:
            return "No bulk job running"
        self.job.cancel_requested = True
        log_ingest_event(
            "job_cancel_requested",
            {
                "message": "Bulk ingest cancellation requested",
                "done": self.job.done,
                "failed": self.job.failed,
                "queued": len(self.job.queue),
            },
            logger_name="bulk",
        )
        return "Cancellation requested"

    async def _drive(self, job: BulkJob) -> Dict[str, Any]:
        s = job.settings
        log_ingest_event(
            "job_start",
            {"message": f"Started bulk ingest of {job.total} products", "total": job.total, **s.describe()},
            logger_name="bulk",
        )

        workers = [
            asyncio.create_task(self._worker(job))
            for _ in range(min(s.concurrency, len(job.queue)))
        ]
        try:
            await asyncio.gather(*workers)
        finally:
            job.running = False
            job.ended_at = time.time()

        summary = job.result()
        log_ingest_event(
            "job_complete",
            {
                "message": f"Bulk ingest finished: {job.done} done, {job.failed} failed of {job.total}",
                **{k: v for k, v in summary.items() if k != "errors"},
            },
            level=logging.WARNING if job.failed else logging.INFO,
            logger_name="bulk",
        )
        return summary

    async def _worker(self, job: BulkJob) -> None:
        s = job.settings
        while job.queue and not job.cancel_requested:
            handle = job.queue.popleft()
            job.in_flight.add(handle)
            self.peak_in_flight = max(self.peak_in_flight, len(job.in_flight))

            def attempt(handle: str = handle) -> Awaitable[Any]:
                return with_timeout(self._ingest(handle), s.timeout, f"fetch {handle}")

            try:
                await with_retry(attempt, s.retries, f"ingest {handle}", s.backoff_base)
            except RetriesExhausted as e:
                job.failed += 1
                job.errors.append({"handle": handle, "error": str(e.last_error or e)})
                log_ingest_event(
                    "task_failed",
                    {"message": f"Ingest failed for {handle}: {e}", "handle": handle, "attempts": e.attempts},
                    level=logging.WARNING,
                    logger_name="bulk",
                )
            else:
                job.done += 1
            finally:
                job.in_flight.discard(handle)

            if job.queue and not job.cancel_requested:
                await asyncio.sleep(s.batch_delay)
