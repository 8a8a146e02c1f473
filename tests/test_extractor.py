"""Tests for heuristic document extraction."""

from __future__ import annotations

import logging

from tackle_pipeline.extractor import (
    MAX_CLAIM_LENGTH,
    MAX_FACTS,
    HeuristicExtractor,
    extract,
    html_to_text,
    normalize_location,
    normalize_species,
    slugify,
)
from tackle_pipeline.models import EntityType, FactScope, RawDocument

GUIDE_HTML = """
<html><head><title>Ignored Title Tag</title></head>
<body>
<h1>Redfish on the Flats</h1>
<p>Redfish typically feed in water less than 3 feet deep on a rising tide.</p>
<h2>Where They Live</h2>
<p>The red drum is common across Florida and Texas estuaries.</p>
<h3>Grass Beds</h3>
<ul>
  <li>Look for tailing fish over shallow grass beds</li>
  <li>Too short</li>
</ul>
<h2>How to Catch Them</h2>
<p>Anglers usually throw gold spoons or soft plastics toward moving schools.</p>
</body></html>
"""


class TestHelpers:
    def test_slugify(self):
        assert slugify("How to Catch Snook!") == "how-to-catch-snook"

    def test_html_to_text_drops_scripts_and_tags(self):
        text = html_to_text("<script>var x = 1;</script><p>Hello <b>there</b></p><p>Second</p>")
        assert text.splitlines() == ["Hello there", "Second"]

    def test_normalize_aliases(self):
        assert normalize_species("Red Drum") == "redfish"
        assert normalize_species("sea trout") == "speckled-trout"
        assert normalize_location("FL") == "florida"
        assert normalize_location("key west") == "key-west"


class TestTitleAndHeadings:
    def test_title_from_h1(self):
        doc = extract(RawDocument(url="https://example.com/a", html=GUIDE_HTML))
        assert doc.title == "Redfish on the Flats"

    def test_title_falls_back_to_title_tag(self):
        html = "<title>Snook Basics</title><p>Body text.</p>"
        doc = extract(RawDocument(url="https://example.com/b", html=html))
        assert doc.title == "Snook Basics"

    def test_two_h2_and_no_h1_uses_first_text_line(self):
        raw = RawDocument(
            url="https://example.com/c",
            html="<h2>Gear</h2><p>Rods and reels.</p><h2>Bait</h2><p>Shrimp.</p>",
            text="Tarpon Fishing Notes\nRods and reels.\nShrimp.",
        )
        doc = extract(raw)
        assert doc.title == "Tarpon Fishing Notes"
        assert [(h.level, h.text) for h in doc.headings] == [(2, "Gear"), (2, "Bait")]

    def test_html_only_skips_heading_lines_for_title(self):
        html = (
            "<h2>Tides</h2><p>Redfish feed on the falling tide.</p>"
            "<h2>Baits</h2><p>Cut mullet works well.</p>"
        )
        doc = extract(RawDocument(url="https://example.com/d", html=html))
        assert doc.title == "Redfish feed on the falling tide."
        assert [h.text for h in doc.headings] == ["Tides", "Baits"]

    def test_html_only_headings_without_body_text(self):
        doc = extract(RawDocument(url="https://example.com/e", html="<h2>Tides</h2><h3>Slack water</h3>"))
        assert doc.title == "Tides"

    def test_title_is_truncated(self):
        doc = extract(RawDocument(url="x", text="T" * 500))
        assert len(doc.title) == 200

    def test_html_headings_in_document_order(self):
        doc = extract(RawDocument(url="https://example.com/a", html=GUIDE_HTML))
        assert [(h.level, h.text) for h in doc.headings] == [
            (1, "Redfish on the Flats"),
            (2, "Where They Live"),
            (3, "Grass Beds"),
            (2, "How to Catch Them"),
        ]
        assert doc.headings[1].id == "where-they-live"

    def test_markdown_headings(self):
        text = "# Title\nintro\n## Section One\nbody\n### Detail\nmore\n#### Too deep"
        doc = extract(RawDocument(url="x", text=text))
        assert [(h.level, h.text) for h in doc.headings] == [
            (1, "Title"),
            (2, "Section One"),
            (3, "Detail"),
        ]


class TestFacts:
    def test_bullets_and_sentences(self):
        doc = extract(RawDocument(url="https://example.com/a", html=GUIDE_HTML))
        claims = {f.claim: f for f in doc.extracted_facts}
        bullet = claims["Look for tailing fish over shallow grass beds"]
        assert bullet.confidence == 0.7
        assert bullet.scope == FactScope.GLOBAL
        assert bullet.supporting_sources == ["https://example.com/a"]
        assert "Too short" not in claims
        sentence = next(f for f in doc.extracted_facts if "rising tide" in f.claim)
        assert sentence.confidence == 0.6

    def test_sorted_by_length(self):
        doc = extract(RawDocument(url="https://example.com/a", html=GUIDE_HTML))
        lengths = [len(f.claim) for f in doc.extracted_facts]
        assert lengths == sorted(lengths)

    def test_bounded_count_and_claim_length(self):
        sentences = " ".join(
            f"Fish number {i} usually weighs {i} pounds and lives in water {'deep ' * 40}"
            + "."
            for i in range(60)
        )
        bullets = "\n".join(f"- Bullet fact number {i} about habitat structure" for i in range(30))
        doc = extract(RawDocument(url="x", text=sentences + "\n" + bullets))
        assert 0 < len(doc.extracted_facts) <= MAX_FACTS
        assert all(len(f.claim) <= MAX_CLAIM_LENGTH for f in doc.extracted_facts)

    def test_regional_scope_inferred(self):
        text = "Snook fishing in florida peaks when water warms above 70 degrees."
        doc = extract(RawDocument(url="x", text=text))
        assert doc.extracted_facts[0].scope == FactScope.REGIONAL


class TestEntities:
    def test_species_and_locations_deduplicated(self):
        doc = extract(RawDocument(url="https://example.com/a", html=GUIDE_HTML))
        species = [e.normalized for e in doc.entities if e.type == EntityType.SPECIES]
        locations = [e.normalized for e in doc.entities if e.type == EntityType.LOCATION]
        assert species == ["redfish"]
        assert set(locations) == {"florida", "texas"}
        assert doc.species_hints == ["redfish"]
        assert set(doc.location_hints) == {"florida", "texas"}


class TestQuality:
    def test_low_quality_still_populated(self, caplog):
        caplog.set_level(logging.WARNING, logger="tackle_pipeline.extractor")
        doc = extract(RawDocument(url="https://example.com/thin", text="Snook\nShort page."))
        assert "Low quality document" in caplog.text
        assert doc.title == "Snook"
        assert doc.word_count == 3
        assert doc.quality_score < 0.3
        assert doc.entities

    def test_score_components(self):
        words = " ".join(["water"] * 250)
        raw = RawDocument(
            url="x",
            text=(
                "# Snook and Redfish Guide\n## Habitat\n## Tackle\n"
                + "\n".join(f"- Snook usually hold near structure number {i}" for i in range(6))
                + "\n" + words
            ),
        )
        doc = HeuristicExtractor().extract(raw)
        assert doc.quality_score == 1.0

    def test_content_type(self):
        doc = extract(RawDocument(url="https://example.com/a", html=GUIDE_HTML))
        assert doc.content_type == "guide"
        plain = extract(RawDocument(url="x", text="Just text"))
        assert plain.content_type == "unknown"

    def test_extract_returns_same_object(self):
        raw = RawDocument(url="x", text="Hello")
        assert extract(raw) is raw
