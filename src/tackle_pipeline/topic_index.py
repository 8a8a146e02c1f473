"""Topic index: which topic keys have been generated, and with what result."""

from __future__ import annotations

import json
import logging
from pathlib import Path

from pydantic import TypeAdapter, ValidationError

from tackle_pipeline.models import PageType, TopicIndexRecord, TopicStatus, utc_now
from tackle_pipeline.store import atomic_write

logger = logging.getLogger(__name__)

_RECORDS_ADAPTER = TypeAdapter(list[TopicIndexRecord])

# Topic keys use "howto" where the page type is "how-to"
_KEY_PREFIXES: dict[str, PageType] = {
    "blog": PageType.BLOG,
    "species": PageType.SPECIES,
    "howto": PageType.HOW_TO,
    "how-to": PageType.HOW_TO,
    "location": PageType.LOCATION,
}


def page_type_for_key(topic_key: str) -> PageType:
    """Page type encoded in the first segment of a topic key."""
    prefix = topic_key.split("::", 1)[0]
    try:
        return _KEY_PREFIXES[prefix]
    except KeyError:
        raise ValueError(f"Unknown topic key prefix: {topic_key!r}") from None


class TopicIndex:
    """JSON-backed list of :class:`TopicIndexRecord`, keyed by topic key."""

    def __init__(self, path: Path) -> None:
        self._path = path

    def load(self) -> list[TopicIndexRecord]:
        if not self._path.exists():
            return []
        try:
            raw = json.loads(self._path.read_text(encoding="utf-8"))
            return _RECORDS_ADAPTER.validate_python(raw)
        except (json.JSONDecodeError, ValidationError):
            logger.warning("Corrupt topic index at %s, starting fresh", self._path)
            return []

    def save(self, records: list[TopicIndexRecord]) -> None:
        atomic_write(self._path, _RECORDS_ADAPTER.dump_json(records, indent=2).decode("utf-8"))
        logger.debug("Saved topic index with %d records", len(records))

    def get(self, topic_key: str) -> TopicIndexRecord | None:
        return next((r for r in self.load() if r.topic_key == topic_key), None)

    def upsert(self, record: TopicIndexRecord) -> None:
        """Insert or replace a record by topic key."""
        record.last_updated_at = utc_now()
        records = [r for r in self.load() if r.topic_key != record.topic_key]
        records.append(record)
        self.save(records)

    def published(self) -> list[TopicIndexRecord]:
        return [r for r in self.load() if r.status == TopicStatus.PUBLISHED]

    def mark_published(
        self,
        topic_key: str,
        slug: str,
        content_hash: str,
        sources_used: list[str],
    ) -> TopicIndexRecord:
        existing = self.get(topic_key)
        now = utc_now()
        record = TopicIndexRecord(
            topic_key=topic_key,
            page_type=page_type_for_key(topic_key),
            slug=slug,
            status=TopicStatus.PUBLISHED,
            content_hash=content_hash,
            sources_used=list(sources_used),
            last_published_at=now,
            attempts=(existing.attempts if existing else 0) + 1,
        )
        self.upsert(record)
        logger.info("Marked topic as published: %s -> %s", topic_key, slug)
        return record

    def mark_failed(self, topic_key: str, error: str) -> TopicIndexRecord:
        existing = self.get(topic_key)
        record = TopicIndexRecord(
            topic_key=topic_key,
            page_type=page_type_for_key(topic_key),
            slug=existing.slug if existing else "",
            status=TopicStatus.FAILED,
            content_hash=existing.content_hash if existing else "",
            sources_used=existing.sources_used if existing else [],
            last_published_at=existing.last_published_at if existing else None,
            last_error=error,
            attempts=(existing.attempts if existing else 0) + 1,
        )
        # A failed regeneration never un-publishes a live page
        if existing is not None and existing.status == TopicStatus.PUBLISHED:
            existing.last_error = error
            existing.attempts = record.attempts
            record = existing
        self.upsert(record)
        logger.warning("Marked topic as failed: %s - %s", topic_key, error)
        return record
