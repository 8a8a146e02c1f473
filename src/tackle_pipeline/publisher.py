"""Writes validated documents into the content tree and keeps the indexes in step."""

from __future__ import annotations

import json
import logging
from pathlib import Path

from pydantic import BaseModel, ValidationError

from tackle_pipeline.content_index import ContentIndexStore, entry_for_doc
from tackle_pipeline.dedupe import content_hash, find_duplicate
from tackle_pipeline.errors import DuplicateContentError
from tackle_pipeline.models import (
    CONTENT_DOC_ADAPTER,
    BaseDoc,
    ContentIndex,
    ContentIndexEntry,
    LocationDoc,
    PageType,
)
from tackle_pipeline.store import ContentPaths, atomic_write, route_path
from tackle_pipeline.topic_index import TopicIndex

logger = logging.getLogger(__name__)


class PublishResult(BaseModel):
    route_path: str
    slug: str
    file_path: str


def _state_slug(doc: BaseDoc) -> str:
    return doc.state_slug if isinstance(doc, LocationDoc) else ""


def doc_page_type(doc: BaseDoc) -> PageType:
    return PageType(getattr(doc, "page_type"))


def topic_key_for_doc(doc: BaseDoc) -> str:
    """Best-effort topic key when the caller does not supply one."""
    page_type = doc_page_type(doc)
    if page_type == PageType.SPECIES:
        return f"species::{doc.slug}::global"
    if page_type == PageType.HOW_TO:
        return f"howto::{doc.slug}"
    if isinstance(doc, LocationDoc):
        return f"location::{doc.state_slug}::{doc.city_slug}"
    return f"blog::{doc.slug}"


def publish_doc(doc: BaseDoc, paths: ContentPaths, topic_key: str | None = None) -> PublishResult:
    """Write *doc* to disk, update its type's content index and the topic index.

    Raises:
        DuplicateContentError: Another published topic has an identical body.
    """
    page_type = doc_page_type(doc)
    topic_key = topic_key or topic_key_for_doc(doc)
    topic_index = TopicIndex(paths.topic_index)
    logger.info("Publishing %s:%s", page_type, doc.slug)

    duplicate_of = find_duplicate(doc.body, topic_index.load())
    if duplicate_of is not None and duplicate_of != topic_key:
        raise DuplicateContentError(f"Body of {topic_key} duplicates {duplicate_of}")

    state = _state_slug(doc)
    file_path = paths.doc_path(page_type, doc.slug, state)
    atomic_write(file_path, doc.model_dump_json(indent=2, by_alias=True))
    logger.info("Written to: %s", file_path)

    ContentIndexStore(paths.content_index(page_type), page_type).upsert(entry_for_doc(doc))
    topic_index.mark_published(
        topic_key,
        doc.slug,
        content_hash(doc.body),
        [s.url for s in doc.sources],
    )

    return PublishResult(
        route_path=route_path(page_type, doc.slug, state),
        slug=doc.slug,
        file_path=str(file_path),
    )


def load_doc(path: Path) -> BaseDoc:
    """Parse a published JSON file back into its typed document."""
    raw = json.loads(Path(path).read_text(encoding="utf-8"))
    return CONTENT_DOC_ADAPTER.validate_python(raw)


def rebuild_index(page_type: PageType | str, paths: ContentPaths) -> ContentIndex:
    """Rescan the content directory for *page_type* and rewrite its index."""
    page_type = PageType(page_type)
    entries: list[ContentIndexEntry] = []
    for file_path in paths.iter_doc_files(page_type):
        try:
            doc = load_doc(file_path)
        except (OSError, json.JSONDecodeError, ValidationError):
            logger.warning("Skipping unreadable document: %s", file_path, exc_info=True)
            continue
        if doc_page_type(doc) != page_type:
            logger.warning("Skipping %s: page type %s in %s directory", file_path, doc_page_type(doc), page_type)
            continue
        entries.append(entry_for_doc(doc))

    index = ContentIndexStore(paths.content_index(page_type), page_type).replace_all(entries)
    logger.info("Rebuilt %s index with %d entries", page_type, len(index.entries))
    return index
