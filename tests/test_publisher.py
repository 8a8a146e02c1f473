"""Tests for writing documents and maintaining the indexes."""

from __future__ import annotations

import json

import pytest

from tackle_pipeline.brief import build_brief
from tackle_pipeline.content_index import ContentIndexStore
from tackle_pipeline.dedupe import content_hash
from tackle_pipeline.errors import DuplicateContentError
from tackle_pipeline.generators import generate_doc
from tackle_pipeline.models import BlogPostDoc, LocationDoc, PageType, TopicStatus
from tackle_pipeline.publisher import load_doc, publish_doc, rebuild_index, topic_key_for_doc
from tackle_pipeline.topic_index import TopicIndex


def _blog(slug: str, sources=None) -> BlogPostDoc:
    title = slug.replace("-", " ").title()
    brief = build_brief(PageType.BLOG, f"blog::{slug}", slug, title, title.lower(), sources=sources)
    return generate_doc(brief)


def _location(state: str, city: str) -> LocationDoc:
    brief = build_brief(
        PageType.LOCATION, f"location::{state}::{city}", city,
        f"Fishing in {city.title()}", f"{city} fishing",
    )
    return generate_doc(brief)


class TestPublishDoc:
    def test_writes_camel_case_json(self, paths):
        doc = _blog("snook-at-night")
        result = publish_doc(doc, paths, "blog::snook-at-night")

        assert result.route_path == "/blog/snook-at-night"
        assert result.slug == "snook-at-night"
        file_path = paths.root / "blog" / "snook-at-night.json"
        assert result.file_path == str(file_path)
        raw = json.loads(file_path.read_text(encoding="utf-8"))
        assert raw["pageType"] == "blog"
        assert "primaryKeyword" in raw
        assert "publishedAt" in raw["dates"]

    def test_round_trip(self, paths):
        doc = _blog("snook-at-night")
        result = publish_doc(doc, paths)
        loaded = load_doc(result.file_path)
        assert isinstance(loaded, BlogPostDoc)
        assert loaded.slug == doc.slug
        assert loaded.body == doc.body

    def test_updates_content_index(self, paths):
        publish_doc(_blog("snook-at-night"), paths)
        publish_doc(_blog("topwater-tips"), paths)
        index = ContentIndexStore(paths.content_index(PageType.BLOG), PageType.BLOG).load()
        assert {e.slug for e in index.entries} == {"snook-at-night", "topwater-tips"}
        raw = json.loads(paths.content_index(PageType.BLOG).read_text(encoding="utf-8"))
        assert raw["pageType"] == "blog"
        assert "publishedAt" in raw["entries"][0]

    def test_republish_replaces_entry(self, paths):
        publish_doc(_blog("snook-at-night"), paths)
        publish_doc(_blog("snook-at-night"), paths)
        index = ContentIndexStore(paths.content_index(PageType.BLOG), PageType.BLOG).load()
        assert [e.slug for e in index.entries] == ["snook-at-night"]

    def test_marks_topic_published(self, paths, sample_sources):
        doc = _blog("snook-at-night", sources=sample_sources)
        publish_doc(doc, paths, "blog::snook-at-night")
        record = TopicIndex(paths.topic_index).get("blog::snook-at-night")
        assert record.status == TopicStatus.PUBLISHED
        assert record.slug == "snook-at-night"
        assert record.content_hash == content_hash(doc.body)
        assert record.sources_used == ["https://example.com/snook"]
        assert record.last_published_at is not None

    def test_location_path(self, paths):
        result = publish_doc(_location("florida", "tampa"), paths)
        assert result.route_path == "/locations/florida/tampa"
        assert (paths.root / "locations" / "florida" / "tampa.json").exists()
        entry = ContentIndexStore(paths.content_index(PageType.LOCATION), PageType.LOCATION).load().entries[0]
        assert entry.state == "florida"

    def test_duplicate_body_rejected(self, paths):
        doc = _blog("snook-at-night")
        publish_doc(doc, paths, "blog::snook-at-night")
        with pytest.raises(DuplicateContentError):
            publish_doc(doc, paths, "blog::another-topic")


class TestTopicKeyForDoc:
    def test_keys(self):
        assert topic_key_for_doc(_blog("a-post")) == "blog::a-post"
        assert topic_key_for_doc(_location("texas", "galveston")) == "location::texas::galveston"


class TestRebuildIndex:
    def test_rescans_directory(self, paths):
        publish_doc(_blog("snook-at-night"), paths)
        publish_doc(_blog("topwater-tips"), paths)
        paths.content_index(PageType.BLOG).unlink()
        (paths.root / "blog" / "broken.json").write_text("{nope", encoding="utf-8")
        (paths.root / "blog" / "_draft.json").write_text("{}", encoding="utf-8")

        index = rebuild_index(PageType.BLOG, paths)

        assert {e.slug for e in index.entries} == {"snook-at-night", "topwater-tips"}
        assert paths.content_index(PageType.BLOG).exists()

    def test_skips_wrong_type(self, paths):
        location = _location("florida", "tampa")
        publish_doc(location, paths)
        misplaced = paths.root / "blog" / "tampa.json"
        misplaced.parent.mkdir(parents=True)
        misplaced.write_text(location.model_dump_json(by_alias=True), encoding="utf-8")
        assert rebuild_index(PageType.BLOG, paths).entries == []

    def test_empty_directory(self, paths):
        assert rebuild_index(PageType.SPECIES, paths).entries == []
