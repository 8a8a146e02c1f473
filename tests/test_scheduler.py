"""Tests for the JSON-backed job queue."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest

from tackle_pipeline.errors import JobNotFoundError
from tackle_pipeline.models import Job, JobOutputs, JobStatus, PageType
from tackle_pipeline.scheduler import JobQueue, calculate_priority


@pytest.fixture
def queue(tmp_path) -> JobQueue:
    return JobQueue(tmp_path / "_system" / "job-queue.json")


NOW = datetime(2026, 5, 1, 12, 0, tzinfo=UTC)


def _job(topic_key: str, status: JobStatus, completed_at: datetime | None = None, **kw) -> Job:
    return Job(type=PageType.BLOG, topic_key=topic_key, status=status, completed_at=completed_at, **kw)


# ── Priority ─────────────────────────────────────────────────────────────


class TestCalculatePriority:
    @pytest.mark.parametrize(
        ("page_type", "topic_key", "expected"),
        [
            (PageType.HOW_TO, "howto::beginner-knots", 10),
            (PageType.HOW_TO, "howto::advanced-jigging", 5),
            (PageType.LOCATION, "location::florida::tampa", 9),
            (PageType.LOCATION, "location::texas::galveston", 5),
            (PageType.SPECIES, "species::snook::global", 8),
            (PageType.BLOG, "blog::topwater-tips", 7),
        ],
    )
    def test_priorities(self, page_type, topic_key, expected):
        assert calculate_priority(page_type, topic_key) == expected

    def test_accepts_string_type(self):
        assert calculate_priority("species", "species::tarpon::global") == 8


# ── add / update ─────────────────────────────────────────────────────────


class TestAddJob:
    def test_new_job_is_pending(self, queue):
        job = queue.add_job(PageType.BLOG, "blog::topic-1")
        assert job.status == JobStatus.PENDING
        assert job.attempts == 0
        assert job.priority == 7
        assert job.job_id

    def test_persisted(self, queue):
        job = queue.add_job(PageType.SPECIES, "species::snook::global")
        reloaded = JobQueue(queue.path).load()
        assert [j.job_id for j in reloaded] == [job.job_id]

    def test_explicit_priority_wins(self, queue):
        job = queue.add_job(PageType.BLOG, "blog::x", priority=2)
        assert job.priority == 2

    def test_unique_ids(self, queue):
        a = queue.add_job(PageType.BLOG, "blog::a")
        b = queue.add_job(PageType.BLOG, "blog::b")
        assert a.job_id != b.job_id


class TestUpdateJobStatus:
    def test_running_counts_attempt(self, queue):
        job = queue.add_job(PageType.BLOG, "blog::a")
        updated = queue.update_job_status(job.job_id, JobStatus.RUNNING)
        assert updated.attempts == 1
        assert updated.run_at is not None
        assert updated.completed_at is None

    def test_completed_stamps_time_and_outputs(self, queue):
        job = queue.add_job(PageType.BLOG, "blog::a")
        outputs = JobOutputs(slug="a", route_path="/blog/a")
        updated = queue.update_job_status(job.job_id, JobStatus.COMPLETED, outputs=outputs)
        assert updated.completed_at is not None
        assert queue.get(job.job_id).outputs.route_path == "/blog/a"

    def test_failed_records_error(self, queue):
        job = queue.add_job(PageType.BLOG, "blog::a")
        queue.update_job_status(job.job_id, JobStatus.FAILED, error="boom")
        assert queue.get(job.job_id).error == "boom"

    def test_unknown_job_raises(self, queue):
        with pytest.raises(JobNotFoundError):
            queue.update_job_status("missing", JobStatus.RUNNING)


# ── get_next_job ─────────────────────────────────────────────────────────


class TestGetNextJob:
    def test_empty_queue(self, queue):
        assert queue.get_next_job() is None

    def test_highest_priority_first(self, queue):
        queue.add_job(PageType.BLOG, "blog::a", scheduled_at=NOW - timedelta(hours=2))
        species = queue.add_job(PageType.SPECIES, "species::snook::global", scheduled_at=NOW)
        assert queue.get_next_job(now=NOW).job_id == species.job_id

    def test_ties_broken_by_earliest_schedule(self, queue):
        queue.add_job(PageType.BLOG, "blog::late", scheduled_at=NOW - timedelta(minutes=1))
        early = queue.add_job(PageType.BLOG, "blog::early", scheduled_at=NOW - timedelta(hours=1))
        assert queue.get_next_job(now=NOW).job_id == early.job_id

    def test_skips_future_jobs(self, queue):
        queue.add_job(PageType.HOW_TO, "howto::beginner", scheduled_at=NOW + timedelta(days=1))
        due = queue.add_job(PageType.BLOG, "blog::a", scheduled_at=NOW)
        assert queue.get_next_job(now=NOW).job_id == due.job_id

    def test_only_future_jobs_returns_none(self, queue):
        queue.add_job(PageType.BLOG, "blog::a", scheduled_at=NOW + timedelta(seconds=1))
        assert queue.get_next_job(now=NOW) is None

    def test_never_returns_non_pending(self, queue):
        for status in (JobStatus.RUNNING, JobStatus.COMPLETED, JobStatus.FAILED, JobStatus.CANCELLED):
            job = queue.add_job(PageType.HOW_TO, f"howto::beginner-{status}", scheduled_at=NOW)
            queue.update_job_status(job.job_id, status)
        pending = queue.add_job(PageType.BLOG, "blog::a", scheduled_at=NOW)
        result = queue.get_next_job(now=NOW)
        assert result.job_id == pending.job_id
        assert result.status == JobStatus.PENDING


# ── daily cap / circuit breaker ──────────────────────────────────────────


class TestDailyCap:
    def test_cap_reached(self, tmp_path):
        queue = JobQueue(tmp_path / "q.json", daily_publish_cap=2)
        queue.save(
            [
                _job("blog::a", JobStatus.COMPLETED, NOW - timedelta(hours=1)),
                _job("blog::b", JobStatus.COMPLETED, NOW - timedelta(hours=2)),
            ]
        )
        assert queue.can_publish_today(now=NOW) is False

    def test_yesterday_does_not_count(self, tmp_path):
        queue = JobQueue(tmp_path / "q.json", daily_publish_cap=1)
        queue.save([_job("blog::a", JobStatus.COMPLETED, NOW - timedelta(days=1))])
        assert queue.can_publish_today(now=NOW) is True

    def test_failed_jobs_do_not_count(self, tmp_path):
        queue = JobQueue(tmp_path / "q.json", daily_publish_cap=1)
        queue.save([_job("blog::a", JobStatus.FAILED, NOW)])
        assert queue.can_publish_today(now=NOW) is True


class TestConsecutiveFailures:
    def test_counts_trailing_failures(self, tmp_path):
        queue = JobQueue(tmp_path / "q.json", failure_stop_threshold=3)
        queue.save(
            [
                _job("blog::ok", JobStatus.COMPLETED, NOW - timedelta(minutes=10)),
                _job("blog::f1", JobStatus.FAILED, NOW - timedelta(minutes=3)),
                _job("blog::f2", JobStatus.FAILED, NOW - timedelta(minutes=2)),
                _job("blog::f3", JobStatus.FAILED, NOW - timedelta(minutes=1)),
            ]
        )
        assert queue.check_consecutive_failures() == 3
        assert queue.circuit_open() is True

    def test_success_resets(self, tmp_path):
        queue = JobQueue(tmp_path / "q.json", failure_stop_threshold=3)
        queue.save(
            [
                _job("blog::f1", JobStatus.FAILED, NOW - timedelta(minutes=3)),
                _job("blog::f2", JobStatus.FAILED, NOW - timedelta(minutes=2)),
                _job("blog::ok", JobStatus.COMPLETED, NOW - timedelta(minutes=1)),
            ]
        )
        assert queue.check_consecutive_failures() == 0
        assert queue.circuit_open() is False

    def test_cancelled_jobs_ignored(self, tmp_path):
        queue = JobQueue(tmp_path / "q.json", failure_stop_threshold=3)
        queue.save(
            [
                _job("blog::f1", JobStatus.FAILED, NOW - timedelta(minutes=3)),
                _job("blog::c", JobStatus.CANCELLED, NOW - timedelta(minutes=2)),
                _job("blog::f2", JobStatus.FAILED, NOW - timedelta(minutes=1)),
            ]
        )
        assert queue.check_consecutive_failures() == 2


# ── retry / stats / persistence ──────────────────────────────────────────


class TestRequeueFailed:
    def test_requeues_only_jobs_with_attempts_left(self, tmp_path):
        queue = JobQueue(tmp_path / "q.json")
        queue.save(
            [
                _job("blog::retry", JobStatus.FAILED, NOW, attempts=1, max_attempts=3),
                _job("blog::spent", JobStatus.FAILED, NOW, attempts=3, max_attempts=3),
            ]
        )
        requeued = queue.requeue_failed()
        assert [j.topic_key for j in requeued] == ["blog::retry"]
        statuses = {j.topic_key: j.status for j in queue.load()}
        assert statuses == {"blog::retry": JobStatus.PENDING, "blog::spent": JobStatus.FAILED}


class TestPersistence:
    def test_missing_file_is_empty(self, queue):
        assert queue.load() == []

    def test_corrupt_file_is_empty(self, queue, caplog):
        queue.path.parent.mkdir(parents=True)
        queue.path.write_text("{not json", encoding="utf-8")
        assert queue.load() == []
        assert "Corrupt job queue" in caplog.text

    def test_no_temp_file_left_behind(self, queue):
        queue.add_job(PageType.BLOG, "blog::a")
        assert [p.name for p in queue.path.parent.iterdir()] == ["job-queue.json"]

    def test_stats(self, queue):
        a = queue.add_job(PageType.BLOG, "blog::a")
        queue.add_job(PageType.BLOG, "blog::b")
        queue.update_job_status(a.job_id, JobStatus.FAILED, error="x")
        stats = queue.stats()
        assert stats["total"] == 2
        assert stats["pending"] == 1
        assert stats["failed"] == 1
        assert stats["completed"] == 0
