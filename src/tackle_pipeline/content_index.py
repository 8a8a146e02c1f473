"""Per-type content index files the site reads to render listing pages."""

from __future__ import annotations

import json
import logging
from pathlib import Path

from pydantic import ValidationError

from tackle_pipeline.models import (
    BaseDoc,
    BlogPostDoc,
    ContentIndex,
    ContentIndexEntry,
    HowToDoc,
    LocationDoc,
    PageType,
    utc_now,
)
from tackle_pipeline.store import atomic_write

logger = logging.getLogger(__name__)


def entry_for_doc(doc: BaseDoc) -> ContentIndexEntry:
    """Summarise a document into its listing entry."""
    category = ""
    tags: list[str] = []
    state: str | None = None
    if isinstance(doc, BlogPostDoc):
        category = doc.category_slug
        tags = list(doc.tags)
    elif isinstance(doc, HowToDoc):
        category = doc.category
    elif isinstance(doc, LocationDoc):
        category = doc.state_slug
        state = doc.state_slug

    return ContentIndexEntry(
        slug=doc.slug,
        title=doc.title,
        description=doc.description,
        category=category,
        published_at=doc.dates.published_at,
        updated_at=doc.dates.updated_at,
        word_count=doc.word_count,
        keywords=[doc.primary_keyword, *doc.secondary_keywords],
        tags=tags,
        author=doc.author.name,
        state=state,
        flags=doc.flags.model_copy(),
    )


class ContentIndexStore:
    """Loads and rewrites one page type's content index file."""

    def __init__(self, path: Path, page_type: PageType | str) -> None:
        self._path = path
        self.page_type = PageType(page_type)

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> ContentIndex:
        if not self._path.exists():
            return ContentIndex(page_type=self.page_type)
        try:
            raw = json.loads(self._path.read_text(encoding="utf-8"))
            return ContentIndex.model_validate(raw)
        except (json.JSONDecodeError, ValidationError):
            logger.warning("Corrupt content index at %s, starting fresh", self._path)
            return ContentIndex(page_type=self.page_type)

    def save(self, index: ContentIndex) -> None:
        index.last_updated = utc_now()
        atomic_write(self._path, index.model_dump_json(indent=2, by_alias=True))

    def upsert(self, entry: ContentIndexEntry) -> ContentIndex:
        """Add or replace the entry with the same slug (and state, for locations)."""
        index = self.load()
        index.entries = [
            e for e in index.entries if not (e.slug == entry.slug and e.state == entry.state)
        ]
        index.entries.append(entry)
        index.entries.sort(key=lambda e: e.published_at, reverse=True)
        self.save(index)
        return index

    def replace_all(self, entries: list[ContentIndexEntry]) -> ContentIndex:
        index = ContentIndex(page_type=self.page_type)
        index.entries = sorted(entries, key=lambda e: e.published_at, reverse=True)
        self.save(index)
        return index

    def slugs(self, state: str | None = None) -> set[str]:
        return self.load().slugs(state)
