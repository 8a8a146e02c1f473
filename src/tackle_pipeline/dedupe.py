"""Duplicate topic, slug and body detection."""

from __future__ import annotations

import hashlib
import logging
import re
from collections.abc import Iterable

from tackle_pipeline.content_index import ContentIndexStore
from tackle_pipeline.models import PageType, TopicIndexRecord, TopicStatus
from tackle_pipeline.store import ContentPaths
from tackle_pipeline.topic_index import TopicIndex

logger = logging.getLogger(__name__)

_PUNCT_RE = re.compile(r"[^\w\s]")
_WS_RE = re.compile(r"\s+")


def normalize_text(text: str) -> str:
    """Lowercase, single-spaced, punctuation-free text for hashing and comparison."""
    text = _WS_RE.sub(" ", text.lower())
    return _PUNCT_RE.sub("", text).strip()


def content_hash(text: str) -> str:
    return hashlib.sha256(normalize_text(text).encode("utf-8")).hexdigest()


def similarity(a: str, b: str) -> float:
    """Jaccard similarity of the two texts' token sets."""
    tokens_a = set(normalize_text(a).split())
    tokens_b = set(normalize_text(b).split())
    union = tokens_a | tokens_b
    if not union:
        return 1.0
    return len(tokens_a & tokens_b) / len(union)


def find_duplicate(text: str, records: Iterable[TopicIndexRecord]) -> str | None:
    """Topic key of a published record with the same content hash, if any."""
    digest = content_hash(text)
    for record in records:
        if record.status == TopicStatus.PUBLISHED and record.content_hash == digest:
            return record.topic_key
    return None


def topic_key_exists(topic_key: str, topic_index: TopicIndex) -> bool:
    """True only for a topic that is already published."""
    record = topic_index.get(topic_key)
    return record is not None and record.status == TopicStatus.PUBLISHED


def existing_slugs(
    page_type: PageType | str,
    paths: ContentPaths,
    state: str | None = None,
) -> set[str]:
    """Slugs taken for *page_type*, from its content index and the published topic records.

    Location slugs are only unique within a state, so *state* narrows both sources.
    """
    page_type = PageType(page_type)
    slugs = ContentIndexStore(paths.content_index(page_type), page_type).slugs(state)

    for record in TopicIndex(paths.topic_index).published():
        if record.page_type != page_type or not record.slug:
            continue
        if state is not None and f"::{state}::" not in record.topic_key:
            continue
        slugs.add(record.slug)
    return slugs


def resolve_slug_collision(
    base_slug: str,
    page_type: PageType | str,
    existing: Iterable[str] | None = None,
    state: str | None = None,
    paths: ContentPaths | None = None,
) -> str:
    """Return *base_slug* if free, else the first free ``base_slug-N`` (N >= 2).

    *existing* is the snapshot of taken slugs; when omitted it is read from
    *paths* via :func:`existing_slugs`.
    """
    if existing is None:
        existing = existing_slugs(page_type, paths, state) if paths is not None else set()
    taken = set(existing)

    if base_slug not in taken:
        return base_slug

    logger.warning("Slug collision detected: %s, appending suffix", base_slug)
    counter = 2
    while f"{base_slug}-{counter}" in taken:
        counter += 1
    return f"{base_slug}-{counter}"
