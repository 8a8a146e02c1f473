"""Fact sourcing: fetch pages and research answers, then extract facts from them."""

from __future__ import annotations

import hashlib
import logging
import urllib.request
from collections.abc import Iterable
from urllib.parse import urlparse

from tackle_pipeline.config import PipelineConfig
from tackle_pipeline.errors import RateLimitExceededError, ResearchError, SourceNotAllowedError
from tackle_pipeline.extractor import extract, html_to_text
from tackle_pipeline.models import (
    Fact,
    FactCategory,
    FactScope,
    RawDocument,
    Source,
    SourceRegistryEntry,
)
from tackle_pipeline.research import PerplexityClient
from tackle_pipeline.source_registry import (
    APPROVED_SOURCES,
    RateLimiter,
    find_source,
    is_url_allowed,
    normalize_url,
    rate_limiter,
)

logger = logging.getLogger(__name__)

USER_AGENT = "Mozilla/5.0 (compatible; TackleBot/1.0; +https://tackleapp.ai)"
FETCH_TIMEOUT = 15
PERPLEXITY_URL = "https://www.perplexity.ai"

PLACEHOLDER_URL = "https://example.com"


def _source_id(url: str) -> str:
    return hashlib.sha256(url.encode("utf-8")).hexdigest()[:16]


def fetch_url(
    url: str,
    sources: Iterable[SourceRegistryEntry] | None = None,
    timeout: int = FETCH_TIMEOUT,
    limiter: RateLimiter | None = None,
) -> RawDocument:
    """Download *url* from an approved source into a RawDocument.

    The URL is normalized, matched against the active entries of
    *sources* (the built-in registry by default), checked against that
    source's path rules and counted against its per-minute limit before
    any request is made. Network errors propagate; callers decide
    whether a missing source is fatal.

    Raises:
        SourceNotAllowedError: No active source covers the URL, or its path is excluded.
        RateLimitExceededError: The source's requests for this minute are used up.
    """
    url = normalize_url(url)
    source = find_source(url, APPROVED_SOURCES if sources is None else sources)
    if source is None:
        raise SourceNotAllowedError(f"URL is not from an approved source: {url}")
    if not is_url_allowed(url, source):
        raise SourceNotAllowedError(f"URL not allowed: {url}")
    if not (limiter or rate_limiter).acquire(source):
        raise RateLimitExceededError(f"Rate limit exceeded for source: {source.name}")

    req = urllib.request.Request(url, headers={"User-Agent": USER_AGENT})
    with urllib.request.urlopen(req, timeout=timeout) as resp:
        html = resp.read().decode("utf-8", errors="replace")
    logger.debug("Fetched %s from %s (%d chars)", url, source.id, len(html))
    return RawDocument(
        source_id=source.id,
        url=url,
        html=html,
        text=html_to_text(html),
        tags=list(source.tags),
    )


def _tag_entities(doc: RawDocument) -> list[Fact]:
    hints = [*doc.species_hints, *doc.location_hints]
    for fact in doc.extracted_facts:
        fact.entities = list(hints)
    return doc.extracted_facts


def _source_for(doc: RawDocument, label: str | None = None) -> Source:
    return Source(
        label=label or doc.title or doc.url,
        url=doc.url,
        publisher=urlparse(doc.url).netloc or None,
        retrieved_at=doc.fetched_at,
    )


def placeholder_facts() -> tuple[list[Fact], list[Source]]:
    """Single stand-in fact and source, used when no sourcing is configured."""
    fact = Fact(
        claim="Sample fact extracted from source",
        confidence=0.8,
        supporting_sources=[PLACEHOLDER_URL],
        scope=FactScope.GLOBAL,
        category=FactCategory.HABITAT,
    )
    source = Source(label="Example Source", url=PLACEHOLDER_URL)
    return [fact], [source]


def gather_facts(
    title: str,
    config: PipelineConfig,
    urls: Iterable[str] = (),
) -> tuple[list[Fact], list[Source]]:
    """Collect facts and sources for a page titled *title*.

    Explicit *urls* and ``[research].source_urls`` that belong to an
    approved source are fetched and run through the extractor; with a
    Perplexity key the title is researched as well. Rejected URLs and
    individual failures are logged and skipped. When nothing
    yields a fact the placeholder pair is returned.
    """
    facts: list[Fact] = []
    sources: list[Source] = []

    for url in [*urls, *config.research.source_urls]:
        try:
            doc = extract(fetch_url(url, config.research.sources))
        except (SourceNotAllowedError, RateLimitExceededError) as exc:
            logger.warning("Skipping source: %s", exc)
            continue
        except Exception:
            logger.warning("Failed to fetch source: %s", url, exc_info=True)
            continue
        facts.extend(_tag_entities(doc))
        sources.append(_source_for(doc))

    if config.research.is_configured:
        client = PerplexityClient(config.research)
        try:
            result = client.research(f"Key fishing facts about {title}")
        except ResearchError:
            logger.warning("Research failed for %s", title, exc_info=True)
        else:
            doc = extract(RawDocument(source_id=_source_id(title), url=PERPLEXITY_URL, text=result.answer))
            for fact in _tag_entities(doc):
                fact.supporting_sources = list(result.citations) or fact.supporting_sources
            facts.extend(doc.extracted_facts)
            sources.extend(
                Source(label=urlparse(c).netloc or c, url=c, publisher=urlparse(c).netloc or None)
                for c in result.citations
            )

    if not facts:
        logger.info("No sourced facts for %s, using placeholder", title)
        return placeholder_facts()

    logger.info("Gathered %d fact(s) from %d source(s) for %s", len(facts), len(sources), title)
    return facts, sources
