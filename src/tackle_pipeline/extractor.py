"""Heuristic extraction of structure and facts from fetched documents.

Derives a title, heading outline, a bounded list of short fact claims,
species/location entities and a 0-1 quality score WITHOUT any model calls.
Claims are short truncated paraphrase candidates, never whole passages.

The :class:`Extractor` base class is the seam for swapping in an NER- or
LLM-backed implementation; callers only use :func:`extract`.
"""

from __future__ import annotations

import html as html_lib
import logging
import re
from abc import ABC, abstractmethod

from tackle_pipeline.models import (
    Entity,
    EntityType,
    Fact,
    FactCategory,
    FactScope,
    Heading,
    RawDocument,
)

logger = logging.getLogger(__name__)

MAX_TITLE_LENGTH = 200
MAX_CLAIM_LENGTH = 200
MAX_FACTS = 20

BULLET_CONFIDENCE = 0.7
SENTENCE_CONFIDENCE = 0.6

LOW_QUALITY_SCORE = 0.3
MIN_WORDS = 200
MAX_WORDS = 5000

_H1_RE = re.compile(r"<h1[^>]*>(.*?)</h1>", re.IGNORECASE | re.DOTALL)
_TITLE_RE = re.compile(r"<title[^>]*>(.*?)</title>", re.IGNORECASE | re.DOTALL)
_HTML_HEADING_RE = re.compile(r"<h([1-3])[^>]*>(.*?)</h\1>", re.IGNORECASE | re.DOTALL)
_MD_HEADING_RE = re.compile(r"^(#{1,3})\s+(.+)$")
_LI_RE = re.compile(r"<li[^>]*>(.*?)</li>", re.IGNORECASE | re.DOTALL)
_MD_BULLET_RE = re.compile(r"^\s*[-*•]\s+(.+)$", re.MULTILINE)
_SENTENCE_SPLIT_RE = re.compile(r"[.!?]+")
_TAG_RE = re.compile(r"<[^>]+>")
_SCRIPT_RE = re.compile(r"<(script|style)[^>]*>.*?</\1>", re.IGNORECASE | re.DOTALL)
_BLOCK_END_RE = re.compile(r"</(p|div|li|h[1-6]|tr|section|article)>|<br\s*/?>", re.IGNORECASE)

# A sentence is worth keeping if any of these match
_FACTUAL_INDICATORS: list[re.Pattern[str]] = [
    re.compile(r"\d+"),
    re.compile(r"\b(typically|usually|often|commonly|generally)\b", re.IGNORECASE),
    re.compile(r"\b(inches|feet|pounds|degrees)\b", re.IGNORECASE),
    re.compile(r"\b(habitat|diet|behavior|size)\b", re.IGNORECASE),
]

# Small fixed vocabularies; an NER model would replace these
SPECIES_PATTERNS: list[re.Pattern[str]] = [
    re.compile(r"\b(redfish|red drum)\b"),
    re.compile(r"\b(snook)\b"),
    re.compile(r"\b(tarpon)\b"),
    re.compile(r"\b(speckled trout|sea trout)\b"),
    re.compile(r"\b(flounder)\b"),
    re.compile(r"\b(sheepshead)\b"),
    re.compile(r"\b(bass)\b"),
    re.compile(r"\b(grouper)\b"),
    re.compile(r"\b(snapper)\b"),
]

LOCATION_PATTERNS: list[re.Pattern[str]] = [
    re.compile(r"\b(florida|fl)\b"),
    re.compile(r"\b(miami|tampa|orlando|key west)\b"),
    re.compile(r"\b(texas|tx)\b"),
    re.compile(r"\b(california|ca)\b"),
]

SPECIES_ALIASES: dict[str, str] = {
    "red drum": "redfish",
    "sea trout": "speckled-trout",
}

LOCATION_ALIASES: dict[str, str] = {
    "fl": "florida",
    "tx": "texas",
    "ca": "california",
    "key west": "key-west",
}


# -- Text helpers ----------------------------------------------------------


def clean_text(text: str) -> str:
    """Strip tags, decode entities and collapse whitespace."""
    text = _TAG_RE.sub("", text)
    text = html_lib.unescape(text).replace("\xa0", " ")
    return re.sub(r"\s+", " ", text).strip()


def slugify(text: str) -> str:
    """Lowercase, hyphen-separated, ASCII alphanumerics only."""
    text = clean_text(text).lower()
    return re.sub(r"[^a-z0-9]+", "-", text).strip("-")


def html_to_text(html: str) -> str:
    """Readable plain text from HTML, one block element per line."""
    html = _SCRIPT_RE.sub("", html)
    html = _BLOCK_END_RE.sub("\n", html)
    lines = (clean_text(line) for line in html.splitlines())
    return "\n".join(line for line in lines if line)


def normalize_species(name: str) -> str:
    name = name.lower().strip()
    return SPECIES_ALIASES.get(name, re.sub(r"\s+", "-", name))


def normalize_location(name: str) -> str:
    name = name.lower().strip()
    return LOCATION_ALIASES.get(name, re.sub(r"\s+", "-", name))


def is_factual_claim(text: str) -> bool:
    return any(p.search(text) for p in _FACTUAL_INDICATORS)


def infer_scope(text: str) -> FactScope:
    lower = text.lower()
    if "florida" in lower or "fl " in lower:
        return FactScope.REGIONAL
    if "winter" in lower or "summer" in lower or "season" in lower:
        return FactScope.SEASONAL
    if "miami" in lower or "tampa" in lower:
        return FactScope.LOCATION_SPECIFIC
    return FactScope.GLOBAL


def infer_category(text: str) -> FactCategory:
    lower = text.lower()
    if any(w in lower for w in ("habitat", "water", "depth")):
        return FactCategory.HABITAT
    if any(w in lower for w in ("feed", "eat", "diet")):
        return FactCategory.DIET
    if any(w in lower for w in ("size", "inches", "pounds")):
        return FactCategory.SIZE
    if any(w in lower for w in ("season", "winter", "summer")):
        return FactCategory.SEASON
    if any(w in lower for w in ("technique", "method", "how")):
        return FactCategory.TECHNIQUE
    if any(w in lower for w in ("weather", "wind", "tide")):
        return FactCategory.WEATHER
    return FactCategory.OTHER


# -- Extractors ------------------------------------------------------------


class Extractor(ABC):
    """Turns a fetched :class:`RawDocument` into structured signals."""

    @abstractmethod
    def extract(self, raw: RawDocument) -> RawDocument:
        """Populate derived fields on *raw* in place and return it."""


class HeuristicExtractor(Extractor):
    """Regex and keyword based extractor.

    Fact candidates are sorted by length and capped, which favours concise
    claims rather than relevant ones.
    """

    def extract(self, raw: RawDocument) -> RawDocument:
        logger.info("Extracting from: %s", raw.url)

        if raw.html and not raw.text:
            raw.text = html_to_text(raw.html)
        raw.headings = self.extract_headings(raw)
        raw.title = self.extract_title(raw)
        raw.extracted_facts = self.extract_facts(raw)
        raw.entities = self.extract_entities(raw)
        raw.location_hints = _unique(
            e.normalized for e in raw.entities if e.type == EntityType.LOCATION
        )
        raw.species_hints = _unique(
            e.normalized for e in raw.entities if e.type == EntityType.SPECIES
        )
        raw.word_count = len(raw.text.split())
        raw.quality_score = self.quality_score(raw)
        raw.content_type = self.classify(raw)

        if raw.quality_score < LOW_QUALITY_SCORE or raw.word_count < MIN_WORDS:
            logger.warning(
                "Low quality document: %s (score: %.1f, words: %d)",
                raw.url,
                raw.quality_score,
                raw.word_count,
            )

        return raw

    # -- Structure ---------------------------------------------------------

    def extract_title(self, raw: RawDocument) -> str:
        """H1, then <title>, then the first text line that is not a heading."""
        if raw.html:
            for pattern in (_H1_RE, _TITLE_RE):
                match = pattern.search(raw.html)
                if match:
                    title = clean_text(match.group(1))
                    if title:
                        return title[:MAX_TITLE_LENGTH]
        lines = [line.strip() for line in raw.text.strip().splitlines() if line.strip()]
        if raw.html:
            heading_texts = {h.text for h in raw.headings or self.extract_headings(raw)}
            lines = [line for line in lines if clean_text(line) not in heading_texts] or lines
        first_line = lines[0] if lines else ""
        return first_line[:MAX_TITLE_LENGTH]

    def extract_headings(self, raw: RawDocument) -> list[Heading]:
        headings: list[Heading] = []
        if raw.html:
            for match in _HTML_HEADING_RE.finditer(raw.html):
                text = clean_text(match.group(2))
                if text:
                    headings.append(Heading(level=int(match.group(1)), text=text, id=slugify(text)))
            return headings

        for line in raw.text.splitlines():
            match = _MD_HEADING_RE.match(line.strip())
            if match:
                text = clean_text(match.group(2))
                headings.append(Heading(level=len(match.group(1)), text=text, id=slugify(text)))
        return headings

    # -- Facts -------------------------------------------------------------

    def extract_facts(self, raw: RawDocument) -> list[Fact]:
        facts: list[Fact] = []
        sources = [raw.url] if raw.url else []

        bullets = _LI_RE.findall(raw.html) if raw.html else _MD_BULLET_RE.findall(raw.text)
        for bullet in bullets:
            text = clean_text(bullet)
            if 20 < len(text) < 200:
                facts.append(
                    Fact(
                        claim=text[:MAX_CLAIM_LENGTH],
                        confidence=BULLET_CONFIDENCE,
                        supporting_sources=list(sources),
                        observed_at=raw.fetched_at,
                        scope=FactScope.GLOBAL,
                        category=infer_category(text),
                    )
                )

        for sentence in _SENTENCE_SPLIT_RE.split(raw.text):
            text = clean_text(sentence)
            if 30 < len(text) < 300 and is_factual_claim(text):
                facts.append(
                    Fact(
                        claim=text[:MAX_CLAIM_LENGTH],
                        confidence=SENTENCE_CONFIDENCE,
                        supporting_sources=list(sources),
                        observed_at=raw.fetched_at,
                        scope=infer_scope(text),
                        category=infer_category(text),
                    )
                )

        facts.sort(key=lambda f: len(f.claim))
        return facts[:MAX_FACTS]

    # -- Entities ----------------------------------------------------------

    def extract_entities(self, raw: RawDocument) -> list[Entity]:
        text = raw.text.lower()
        candidates: list[Entity] = []

        for pattern in SPECIES_PATTERNS:
            for match in pattern.finditer(text):
                candidates.append(
                    Entity(
                        text=match.group(0),
                        type=EntityType.SPECIES,
                        confidence=0.8,
                        normalized=normalize_species(match.group(0)),
                    )
                )

        for pattern in LOCATION_PATTERNS:
            for match in pattern.finditer(text):
                candidates.append(
                    Entity(
                        text=match.group(0),
                        type=EntityType.LOCATION,
                        confidence=0.7,
                        normalized=normalize_location(match.group(0)),
                    )
                )

        seen: set[str] = set()
        entities: list[Entity] = []
        for entity in candidates:
            key = entity.normalized or entity.text.lower()
            if key in seen:
                continue
            seen.add(key)
            entities.append(entity)
        return entities

    # -- Scoring -----------------------------------------------------------

    def quality_score(self, raw: RawDocument) -> float:
        checks = [
            len(raw.title) > 10,
            len(raw.headings) >= 2,
            len(raw.extracted_facts) >= 5,
            MIN_WORDS <= raw.word_count <= MAX_WORDS,
            len(raw.entities) >= 2,
        ]
        return round(min(0.2 * sum(checks), 1.0), 2)

    def classify(self, raw: RawDocument) -> str:
        if any("how to" in h.text.lower() for h in raw.headings):
            return "guide"
        if len(raw.headings) >= 3:
            return "article"
        return "unknown"


def _unique(values) -> list[str]:
    seen: dict[str, None] = {}
    for v in values:
        if v:
            seen.setdefault(v, None)
    return list(seen)


_default_extractor: Extractor = HeuristicExtractor()


def extract(raw: RawDocument, extractor: Extractor | None = None) -> RawDocument:
    """Run extraction on *raw* (mutated in place) and return it."""
    return (extractor or _default_extractor).extract(raw)
