"""Job queue and publishing schedule.

The queue is a flat JSON list of :class:`Job` records. Every operation
reloads the file, mutates the list and writes it back, so the queue file
is always the single source of truth between CLI invocations.
"""

from __future__ import annotations

import json
import logging
from datetime import UTC, datetime
from pathlib import Path

from pydantic import TypeAdapter, ValidationError

from tackle_pipeline.errors import JobNotFoundError
from tackle_pipeline.models import Job, JobOutputs, JobStatus, PageType, utc_now
from tackle_pipeline.store import atomic_write

logger = logging.getLogger(__name__)

_JOBS_ADAPTER = TypeAdapter(list[Job])

_FINISHED = {JobStatus.COMPLETED, JobStatus.FAILED, JobStatus.CANCELLED}


def _as_utc(ts: datetime) -> datetime:
    if ts.tzinfo is None:
        return ts.replace(tzinfo=UTC)
    return ts


def calculate_priority(page_type: PageType | str, topic_key: str) -> int:
    """Priority (1-10) for a new job; higher runs first."""
    page_type = PageType(page_type)
    if page_type == PageType.HOW_TO and "beginner" in topic_key:
        return 10
    if page_type == PageType.LOCATION and (
        "::fl" in topic_key or "florida" in topic_key
    ):
        return 9
    if page_type == PageType.SPECIES:
        return 8
    if page_type == PageType.BLOG:
        return 7
    return 5


class JobQueue:
    """JSON-file backed job queue with daily cap and failure tracking."""

    def __init__(
        self,
        path: Path,
        *,
        daily_publish_cap: int = 20,
        failure_stop_threshold: int = 3,
    ) -> None:
        self._path = path
        self.daily_publish_cap = daily_publish_cap
        self.failure_stop_threshold = failure_stop_threshold

    @property
    def path(self) -> Path:
        return self._path

    # ── Persistence ──────────────────────────────────────────────

    def load(self) -> list[Job]:
        """Return every job in the queue; empty when the file is missing or corrupt."""
        if not self._path.exists():
            return []
        try:
            raw = json.loads(self._path.read_text(encoding="utf-8"))
            return _JOBS_ADAPTER.validate_python(raw)
        except (json.JSONDecodeError, ValidationError):
            logger.warning("Corrupt job queue at %s, starting fresh", self._path)
            return []

    def save(self, jobs: list[Job]) -> None:
        data = _JOBS_ADAPTER.dump_json(jobs, indent=2).decode("utf-8")
        atomic_write(self._path, data)

    # ── Write operations ─────────────────────────────────────────

    def add_job(
        self,
        page_type: PageType | str,
        topic_key: str,
        *,
        priority: int | None = None,
        max_attempts: int = 3,
        scheduled_at: datetime | None = None,
    ) -> Job:
        """Append a new pending job and persist the queue."""
        page_type = PageType(page_type)
        job = Job(
            type=page_type,
            topic_key=topic_key,
            priority=priority if priority is not None else calculate_priority(page_type, topic_key),
            max_attempts=max_attempts,
            scheduled_at=scheduled_at or utc_now(),
        )
        jobs = self.load()
        jobs.append(job)
        self.save(jobs)
        logger.info("Added job: %s (%s:%s)", job.job_id, job.type, job.topic_key)
        return job

    def update_job_status(
        self,
        job_id: str,
        status: JobStatus,
        error: str | None = None,
        outputs: JobOutputs | None = None,
    ) -> Job:
        """Move a job to *status*, stamping times and recording the outcome.

        Entering ``running`` counts as one attempt. Raises
        :class:`JobNotFoundError` for an unknown id.
        """
        jobs = self.load()
        job = next((j for j in jobs if j.job_id == job_id), None)
        if job is None:
            raise JobNotFoundError(job_id)

        job.status = status
        if error is not None:
            job.error = error
        if outputs is not None:
            job.outputs = outputs

        now = utc_now()
        if status == JobStatus.RUNNING:
            job.attempts += 1
            job.run_at = now
        elif status in _FINISHED:
            job.completed_at = now

        self.save(jobs)
        return job

    def requeue_failed(self) -> list[Job]:
        """Return failed jobs with attempts left to ``pending``."""
        jobs = self.load()
        requeued: list[Job] = []
        for job in jobs:
            if job.status == JobStatus.FAILED and job.attempts < job.max_attempts:
                job.status = JobStatus.PENDING
                job.completed_at = None
                requeued.append(job)
        if requeued:
            self.save(jobs)
            logger.info("Requeued %d failed job(s)", len(requeued))
        return requeued

    # ── Read operations ──────────────────────────────────────────

    def get(self, job_id: str) -> Job | None:
        return next((j for j in self.load() if j.job_id == job_id), None)

    def get_next_job(self, now: datetime | None = None) -> Job | None:
        """Highest-priority pending job that is due, oldest first on ties."""
        now = _as_utc(now or utc_now())
        due = [
            j
            for j in self.load()
            if j.status == JobStatus.PENDING and _as_utc(j.scheduled_at) <= now
        ]
        if not due:
            return None
        due.sort(key=lambda j: (-j.priority, _as_utc(j.scheduled_at)))
        return due[0]

    def completed_today(self, now: datetime | None = None) -> int:
        today = _as_utc(now or utc_now()).date()
        return sum(
            1
            for j in self.load()
            if j.status == JobStatus.COMPLETED
            and j.completed_at is not None
            and _as_utc(j.completed_at).date() == today
        )

    def can_publish_today(self, now: datetime | None = None) -> bool:
        """False once today's completed jobs reach the daily cap."""
        return self.completed_today(now) < self.daily_publish_cap

    def check_consecutive_failures(self) -> int:
        """Count trailing failures among the most recently finished jobs."""
        finished = [
            j for j in self.load() if j.status in (JobStatus.COMPLETED, JobStatus.FAILED)
        ]
        finished.sort(
            key=lambda j: _as_utc(j.completed_at or j.run_at or j.scheduled_at),
            reverse=True,
        )
        failures = 0
        for job in finished[: self.failure_stop_threshold]:
            if job.status != JobStatus.FAILED:
                break
            failures += 1
        return failures

    def circuit_open(self) -> bool:
        return self.check_consecutive_failures() >= self.failure_stop_threshold

    def topic_keys(self, statuses: set[JobStatus] | None = None) -> set[str]:
        return {
            j.topic_key for j in self.load() if statuses is None or j.status in statuses
        }

    def stats(self) -> dict[str, int]:
        """Counts by status plus the total, for the ``status`` command."""
        jobs = self.load()
        counts = {"total": len(jobs)}
        for status in JobStatus:
            counts[status.value] = sum(1 for j in jobs if j.status == status)
        return counts
