"""Job orchestration: topic key in, published page out.

One job runs the full chain

    topic check → slug → facts → brief → generate → validate → publish → revalidate

and every outcome is written back to the queue. Only the circuit breaker
escapes :meth:`PipelineRunner.run_jobs`; everything else is recorded on
the job and the loop moves on.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

from pydantic import BaseModel

from tackle_pipeline.brief import (
    build_brief,
    generate_topic_key,
    keywords_for_topic,
    parse_topic_key,
    slug_for_topic,
    title_for_topic,
)
from tackle_pipeline.config import PipelineConfig
from tackle_pipeline.dedupe import resolve_slug_collision, topic_key_exists
from tackle_pipeline.errors import (
    CircuitBreakerOpen,
    TopicExistsError,
    ValidationFailedError,
)
from tackle_pipeline.generators import generate_doc
from tackle_pipeline.models import Author, Job, JobOutputs, JobStatus, PageType
from tackle_pipeline.publisher import PublishResult, publish_doc
from tackle_pipeline.revalidation import trigger_revalidation
from tackle_pipeline.scheduler import JobQueue
from tackle_pipeline.sources import gather_facts
from tackle_pipeline.store import TYPE_DIRS, ContentPaths
from tackle_pipeline.topic_index import TopicIndex
from tackle_pipeline.validator import validate_doc

logger = logging.getLogger(__name__)

SEED_STATE = "florida"

# One-off publishes jump the queue and are never retried
FORCE_PUBLISH_PRIORITY = 10


class RunSummary(BaseModel):
    """What one ``run`` invocation did."""

    processed: int = 0
    completed: int = 0
    failed: int = 0
    cancelled: int = 0
    stopped_reason: str = ""


def seed_topic_key(page_type: PageType, n: int) -> str:
    """Synthetic topic key used to seed the queue for testing."""
    if page_type == PageType.SPECIES:
        return generate_topic_key(page_type, species=f"species-{n}")
    if page_type == PageType.HOW_TO:
        return generate_topic_key(page_type, id=f"howto-{n}")
    if page_type == PageType.LOCATION:
        return generate_topic_key(page_type, state=SEED_STATE, city=f"city-{n}")
    return generate_topic_key(page_type, id=f"topic-{n}")


class PipelineRunner:
    """Ties the queue, indexes and pipeline stages to one content directory."""

    def __init__(self, config: PipelineConfig) -> None:
        self.config = config
        self.paths = ContentPaths(config.content_dir, config.content.system_dir)
        self.queue = JobQueue(
            self.paths.job_queue,
            daily_publish_cap=config.schedule.daily_publish_cap,
            failure_stop_threshold=config.schedule.failure_stop_threshold,
        )
        self.topic_index = TopicIndex(self.paths.topic_index)

    # ── Queue ────────────────────────────────────────────────────

    def seed_jobs(self, page_type: PageType | str, count: int) -> list[Job]:
        """Queue *count* new jobs, skipping keys already queued or published."""
        page_type = PageType(page_type)
        taken = self.queue.topic_keys() | {r.topic_key for r in self.topic_index.published()}
        jobs: list[Job] = []
        n = 0
        while len(jobs) < count:
            n += 1
            topic_key = seed_topic_key(page_type, n)
            if topic_key in taken:
                continue
            jobs.append(
                self.queue.add_job(
                    page_type,
                    topic_key,
                    max_attempts=self.config.schedule.default_max_attempts,
                )
            )
        return jobs

    # ── Pipeline ─────────────────────────────────────────────────

    def publish_topic(self, topic_key: str, source_urls: Iterable[str] = ()) -> PublishResult:
        """Run every stage for one topic and return where it was published.

        Raises:
            TopicExistsError: The topic is already published.
            ValidationFailedError: The generated document failed the quality gate.
        """
        if topic_key_exists(topic_key, self.topic_index):
            raise TopicExistsError(f"Topic already exists: {topic_key}")

        parts = parse_topic_key(topic_key)
        page_type = parts.page_type
        state = parts.state if page_type == PageType.LOCATION else None
        slug = resolve_slug_collision(
            slug_for_topic(topic_key), page_type, state=state, paths=self.paths
        )

        title = title_for_topic(topic_key)
        primary_keyword, secondary_keywords = keywords_for_topic(topic_key, slug)
        facts, sources = gather_facts(title, self.config, source_urls)

        brief = build_brief(
            page_type,
            topic_key,
            slug,
            title,
            primary_keyword,
            secondary_keywords,
            facts,
            sources,
            paths=self.paths,
        )
        author = Author(name=self.config.author.name, url=self.config.author.url)
        doc = generate_doc(brief, author)

        result = validate_doc(doc, self.config.validation)
        if not result.passed:
            raise ValidationFailedError(result.errors)

        published = publish_doc(doc, self.paths, topic_key)
        trigger_revalidation(
            [published.route_path, f"/{TYPE_DIRS[page_type]}"],
            self.config.revalidation,
        )
        logger.info("Successfully published: %s", published.route_path)
        return published

    def process_job(self, job: Job, source_urls: Iterable[str] = ()) -> Job:
        """Run *job* and persist its outcome; never raises for a per-job failure."""
        logger.info("Processing job: %s (%s:%s)", job.job_id, job.type, job.topic_key)
        self.queue.update_job_status(job.job_id, JobStatus.RUNNING)

        try:
            published = self.publish_topic(job.topic_key, source_urls)
        except TopicExistsError as exc:
            logger.warning("%s", exc)
            return self.queue.update_job_status(job.job_id, JobStatus.CANCELLED, error=str(exc))
        except Exception as exc:
            logger.error("Job processing failed: %s - %s", job.job_id, exc, exc_info=True)
            errors = exc.errors if isinstance(exc, ValidationFailedError) else [str(exc)]
            try:
                self.topic_index.mark_failed(job.topic_key, str(exc))
            except ValueError:
                logger.warning("Not recording failure for malformed topic key %s", job.topic_key)
            return self.queue.update_job_status(
                job.job_id,
                JobStatus.FAILED,
                error=str(exc),
                outputs=JobOutputs(errors=errors),
            )

        return self.queue.update_job_status(
            job.job_id,
            JobStatus.COMPLETED,
            outputs=JobOutputs(slug=published.slug, route_path=published.route_path),
        )

    def force_publish(self, topic_key: str, source_urls: Iterable[str] = ()) -> Job:
        """Queue *topic_key* as a single-attempt job and run it right away.

        The outcome lands on the returned job the same way a queued run
        records it, so one-off publishes show up in ``status``.
        """
        page_type = parse_topic_key(topic_key).page_type
        job = self.queue.add_job(
            page_type, topic_key, priority=FORCE_PUBLISH_PRIORITY, max_attempts=1
        )
        return self.process_job(job, source_urls)

    def run_jobs(self, limit: int | None = None) -> RunSummary:
        """Process due jobs until *limit*, the daily cap or an empty queue.

        Raises:
            CircuitBreakerOpen: The most recent finished jobs all failed.
        """
        summary = RunSummary()
        while limit is None or summary.processed < limit:
            if self.queue.circuit_open():
                raise CircuitBreakerOpen(
                    self.queue.check_consecutive_failures(), self.queue.failure_stop_threshold
                )

            if not self.queue.can_publish_today():
                logger.info("Daily publish cap reached (%d)", self.queue.daily_publish_cap)
                summary.stopped_reason = "daily-cap"
                break

            job = self.queue.get_next_job()
            if job is None:
                logger.info("No pending jobs")
                summary.stopped_reason = "empty"
                break

            finished = self.process_job(job)
            summary.processed += 1
            if finished.status == JobStatus.COMPLETED:
                summary.completed += 1
            elif finished.status == JobStatus.CANCELLED:
                summary.cancelled += 1
            else:
                summary.failed += 1
        else:
            summary.stopped_reason = "limit"

        logger.info(
            "Run finished: %d processed, %d completed, %d failed, %d cancelled",
            summary.processed,
            summary.completed,
            summary.failed,
            summary.cancelled,
        )
        return summary
