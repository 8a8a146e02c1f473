"""Shared building blocks for the page generators.

Generators are template fillers: each page type supplies prose for its
outline sections and default FAQs, and this module assembles the markdown
body, headings and description the same way for every type.
"""

from __future__ import annotations

import re
from collections.abc import Mapping

from tackle_pipeline.extractor import slugify
from tackle_pipeline.models import (
    Author,
    Brief,
    DocDates,
    DocFlags,
    FaqItem,
    Heading,
    InternalLinks,
    OutlineItem,
    utc_now,
)

APP_CTA = (
    "Ready to catch more fish? Download the Tackle app to log your catches, "
    "track patterns, and discover hot spots near you. Every trip you record "
    "makes the next one easier to plan."
)

MAX_FACTS_PER_SECTION = 5
DESCRIPTION_MIN = 100
DESCRIPTION_MAX = 160

_MD_HEADING_RE = re.compile(r"^(#{1,3}) (.+)$")


def extract_headings(body: str) -> list[Heading]:
    """H1-H3 headings from a markdown body, in order."""
    headings: list[Heading] = []
    for line in body.splitlines():
        match = _MD_HEADING_RE.match(line)
        if match:
            text = match.group(2).strip()
            headings.append(Heading(level=len(match.group(1)), text=text, id=slugify(text)))
    return headings


def generate_description(brief: Brief, body: str, fallback_tail: str) -> str:
    """First body paragraph when it is meta-description sized, else a title-based line."""
    paragraphs = [p.strip() for p in body.split("\n\n") if p.strip()]
    for paragraph in paragraphs:
        if paragraph.startswith("#"):
            continue
        if DESCRIPTION_MIN <= len(paragraph) <= DESCRIPTION_MAX:
            return paragraph
        break
    return f"{brief.title}. {fallback_tail}"[:DESCRIPTION_MAX]


def related_links(links: InternalLinks) -> list[str]:
    """Markdown bullets linking to related pages."""
    lines: list[str] = []
    lines += [f"- [{_label(s)} fishing guide](/species/{s})" for s in links.species_slugs]
    lines += [f"- [{_label(s)}](/how-to/{s})" for s in links.how_to_slugs]
    lines += [f"- [Fishing in {_label(s.split('/')[-1])}](/locations/{s})" for s in links.location_slugs]
    lines += [f"- [{_label(s)}](/blog/{s})" for s in links.post_slugs]
    return lines


def _label(slug: str) -> str:
    return " ".join(w.capitalize() for w in slug.split("-") if w)


def render_section(item: OutlineItem, prose: str) -> str:
    lines = [f"## {item.title}", "", prose.strip()]
    facts = item.key_facts[:MAX_FACTS_PER_SECTION]
    if facts:
        lines += ["", "Key points from our research:", ""]
        lines += [f"- {fact.claim}" for fact in facts]
    return "\n".join(lines)


def render_body(
    brief: Brief,
    intro: str,
    section_prose: Mapping[str, str],
    default_prose: str,
    closing: str = "",
) -> str:
    """Assemble the markdown body for *brief*.

    ``section_prose`` is keyed by outline title; sections without an entry
    fall back to ``default_prose``. Templates may use ``{keyword}`` and
    ``{title}`` placeholders.
    """
    fields = {"keyword": brief.primary_keyword, "title": brief.title}
    parts = [f"# {brief.title}", intro.format(**fields).strip()]

    for item in brief.outline:
        prose = section_prose.get(item.title, default_prose)
        parts.append(render_section(item, prose.format(**fields, section=item.title.lower())))

    links = related_links(brief.internal_links)
    if links:
        parts.append("## Related Guides\n\n" + "\n".join(links))

    if closing:
        parts.append(closing.format(**fields).strip())

    parts.append("## Plan Your Next Trip\n\n" + APP_CTA)

    if brief.disclaimers:
        parts.append("## Before You Go\n\n" + "\n".join(f"- {d}" for d in brief.disclaimers))

    if brief.sources:
        sources = "\n".join(f"- [{s.label}]({s.url})" for s in brief.sources)
        parts.append("## Sources\n\n" + sources)

    return "\n\n".join(parts) + "\n"


def faqs_from_templates(templates: list[tuple[str, str]], **fields: str) -> list[FaqItem]:
    return [
        FaqItem(question=q.format(**fields), answer=a.format(**fields)) for q, a in templates
    ]


def common_fields(brief: Brief, author: Author | None = None) -> dict:
    """Keyword arguments shared by every document type."""
    now = utc_now()
    return {
        "slug": brief.slug,
        "title": brief.title,
        "primary_keyword": brief.primary_keyword,
        "secondary_keywords": list(brief.secondary_keywords),
        "sources": list(brief.sources),
        "related": brief.internal_links.model_copy(deep=True),
        "author": author or Author(name="Tackle Team", url="/about"),
        "dates": DocDates(published_at=now, updated_at=now),
        "flags": DocFlags(),
    }
