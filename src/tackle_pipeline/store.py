"""On-disk layout of the content tree and the shared JSON write helper.

Every persisted file is rewritten whole (read → mutate → write). Writes go
through :func:`atomic_write` so a killed process never leaves a truncated
queue or index behind. Nothing here locks: one runner at a time.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

from tackle_pipeline.models import PageType

logger = logging.getLogger(__name__)

JOB_QUEUE_FILENAME = "job-queue.json"
TOPIC_INDEX_FILENAME = "topic-index.json"
INDEX_DIRNAME = "index"

# Content directory and public route prefix for each page type
TYPE_DIRS: dict[PageType, str] = {
    PageType.BLOG: "blog",
    PageType.SPECIES: "species",
    PageType.HOW_TO: "how-to",
    PageType.LOCATION: "locations",
}


def atomic_write(path: Path, text: str) -> None:
    """Write *text* to *path* via a verified temp file and rename."""
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_name(path.name + ".tmp")
    tmp.write_text(text, encoding="utf-8")
    if tmp.read_text(encoding="utf-8") != text:
        tmp.unlink(missing_ok=True)
        raise OSError(f"Write verification failed for {path}")
    os.replace(tmp, path)


class ContentPaths:
    """Resolves every path the pipeline reads or writes under one content root."""

    def __init__(self, content_dir: Path, system_dir: str = "_system") -> None:
        self.root = Path(content_dir)
        self.system = self.root / system_dir

    @property
    def job_queue(self) -> Path:
        return self.system / JOB_QUEUE_FILENAME

    @property
    def topic_index(self) -> Path:
        return self.system / TOPIC_INDEX_FILENAME

    def content_index(self, page_type: PageType | str) -> Path:
        return self.system / INDEX_DIRNAME / f"{PageType(page_type).value}.json"

    def type_dir(self, page_type: PageType | str) -> Path:
        return self.root / TYPE_DIRS[PageType(page_type)]

    def doc_path(self, page_type: PageType | str, slug: str, state_slug: str = "") -> Path:
        if PageType(page_type) == PageType.LOCATION:
            return self.type_dir(page_type) / state_slug / f"{slug}.json"
        return self.type_dir(page_type) / f"{slug}.json"

    def iter_doc_files(self, page_type: PageType | str) -> list[Path]:
        base = self.type_dir(page_type)
        if not base.exists():
            return []
        pattern = "*/*.json" if PageType(page_type) == PageType.LOCATION else "*.json"
        return sorted(p for p in base.glob(pattern) if not p.name.startswith("_"))


def route_path(page_type: PageType | str, slug: str, state_slug: str = "") -> str:
    """Public URL path a published page is served at."""
    prefix = TYPE_DIRS[PageType(page_type)]
    if PageType(page_type) == PageType.LOCATION:
        return f"/{prefix}/{state_slug}/{slug}"
    return f"/{prefix}/{slug}"
