"""Topic keys and content briefs.

A topic key names one page independently of its final slug:

    blog::<id>
    species::<species>::<state|global>
    howto::<id>
    location::<state>::<city>

:func:`build_brief` turns a topic plus its gathered facts into the
:class:`Brief` a generator fills in. It shapes data only; nothing here
validates or touches the network.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from tackle_pipeline.config import DEFAULT_DISCLAIMERS, TARGET_WORD_COUNTS
from tackle_pipeline.content_index import ContentIndexStore
from tackle_pipeline.models import (
    Brief,
    ContentIndexEntry,
    Fact,
    FactCategory,
    FactScope,
    InternalLinks,
    OutlineItem,
    PageType,
    Source,
)
from tackle_pipeline.store import ContentPaths
from tackle_pipeline.topic_index import page_type_for_key

logger = logging.getLogger(__name__)

MAX_KEY_FACTS = 15
GLOBAL_SCOPE = "global"

# Substrings that mark an entity hint as a location worth linking from a blog post
_BLOG_LOCATION_HINTS = ("florida", "miami", "tampa")

REQUIRED_SECTIONS: dict[PageType, list[str]] = {
    PageType.SPECIES: ["About", "Habitat", "Techniques", "Where to Find"],
    PageType.HOW_TO: ["Why This Technique Matters", "Step-by-Step", "Tips", "Best Conditions"],
    PageType.LOCATION: ["Best Fishing Spots", "Popular Species", "Fishing Techniques", "Best Times"],
    PageType.BLOG: ["Introduction", "Main Content", "Conclusion"],
}


# -- Topic keys ------------------------------------------------------------


@dataclass
class TopicParts:
    """Identifiers decoded from a topic key."""

    page_type: PageType
    id: str = ""
    species: str = ""
    state: str = ""
    city: str = ""


def generate_topic_key(
    page_type: PageType | str,
    *,
    id: str = "",
    species: str = "",
    state: str = "",
    city: str = "",
) -> str:
    """Build the topic key for a page.

    Species keys fall back to ``global`` when no state is given.
    """
    page_type = PageType(page_type)
    if page_type == PageType.SPECIES:
        return f"species::{species}::{state or GLOBAL_SCOPE}"
    if page_type == PageType.HOW_TO:
        return f"howto::{id}"
    if page_type == PageType.LOCATION:
        return f"location::{state}::{city}"
    return f"blog::{id}"


def parse_topic_key(topic_key: str) -> TopicParts:
    """Inverse of :func:`generate_topic_key`. Raises ``ValueError`` on a bad key."""
    page_type = page_type_for_key(topic_key)
    parts = topic_key.split("::")[1:]
    if not parts or not all(parts):
        raise ValueError(f"Malformed topic key: {topic_key!r}")

    if page_type == PageType.SPECIES:
        state = parts[1] if len(parts) > 1 else GLOBAL_SCOPE
        return TopicParts(page_type, species=parts[0], state=state)
    if page_type == PageType.LOCATION:
        if len(parts) < 2:
            raise ValueError(f"Location topic key needs state and city: {topic_key!r}")
        return TopicParts(page_type, state=parts[0], city=parts[1])
    return TopicParts(page_type, id=parts[0])


def slug_for_topic(topic_key: str) -> str:
    """Base slug before collision resolution."""
    parts = parse_topic_key(topic_key)
    if parts.page_type == PageType.SPECIES:
        if parts.state == GLOBAL_SCOPE:
            return parts.species
        return f"{parts.species}-in-{parts.state}"
    if parts.page_type == PageType.LOCATION:
        return parts.city
    return parts.id


def _words(slug: str) -> str:
    return slug.replace("-", " ").strip()


def _title_case(slug: str) -> str:
    return " ".join(w.capitalize() for w in _words(slug).split())


def title_for_topic(topic_key: str) -> str:
    parts = parse_topic_key(topic_key)
    if parts.page_type == PageType.SPECIES:
        name = _title_case(parts.species)
        if parts.state == GLOBAL_SCOPE:
            return f"{name} Fishing Guide"
        return f"{name} Fishing in {_title_case(parts.state)}"
    if parts.page_type == PageType.LOCATION:
        return f"Fishing in {_title_case(parts.city)}, {_title_case(parts.state)}"
    if parts.page_type == PageType.HOW_TO:
        words = _words(parts.id)
        if words.startswith("how to "):
            return _title_case(parts.id)
        return f"How to {_title_case(parts.id)}"
    return _title_case(parts.id)


def keywords_for_topic(topic_key: str, slug: str) -> tuple[str, list[str]]:
    """Primary keyword and secondary keywords for a topic."""
    parts = parse_topic_key(topic_key)
    if parts.page_type == PageType.SPECIES:
        primary = f"{_words(parts.species)} fishing"
        secondary = [_words(parts.species), slug]
        if parts.state != GLOBAL_SCOPE:
            secondary.append(_words(parts.state))
    elif parts.page_type == PageType.LOCATION:
        primary = f"{_words(parts.city)} fishing"
        secondary = [_words(parts.city), _words(parts.state), slug]
    else:
        primary = _words(slug)
        secondary = [slug, parts.page_type.value]
    return primary, secondary


# -- Outline ---------------------------------------------------------------


def _with(facts: list[Fact], *, categories=(), scopes=()) -> list[Fact]:
    return [f for f in facts if f.category in categories or f.scope in scopes]


def build_outline(page_type: PageType, title: str, facts: list[Fact]) -> list[OutlineItem]:
    """Per-type H2 outline with the facts each section should draw on."""
    confident = [f for f in facts if f.confidence > 0.7]

    if page_type == PageType.SPECIES:
        name = title.split(" ")[0] if title else "This Species"
        return [
            OutlineItem(
                title=f"About {name}",
                description="Introduction to the species, including identification and basic information",
                key_facts=_with(facts, categories=(FactCategory.HABITAT, FactCategory.SIZE)),
            ),
            OutlineItem(
                title="Habitat and Behavior",
                description="Where the species lives and how it behaves",
                key_facts=_with(facts, categories=(FactCategory.HABITAT, FactCategory.BEHAVIOR)),
            ),
            OutlineItem(
                title="Best Techniques",
                description="How to catch this species effectively",
                key_facts=_with(facts, categories=(FactCategory.TECHNIQUE,)),
            ),
            OutlineItem(
                title="Where to Find",
                description="Locations where this species is commonly found",
                key_facts=_with(facts, scopes=(FactScope.LOCATION_SPECIFIC,)),
            ),
        ]

    if page_type == PageType.HOW_TO:
        return [
            OutlineItem(
                title="Why This Technique Matters",
                description="Introduction to why this technique is important",
                key_facts=facts[:3],
            ),
            OutlineItem(
                title="Step-by-Step Guide",
                description="Detailed steps to execute this technique",
                key_facts=_with(facts, categories=(FactCategory.TECHNIQUE,)),
            ),
            OutlineItem(
                title="Tips & Tricks",
                description="Pro tips for success",
                key_facts=confident,
            ),
            OutlineItem(
                title="Best Conditions",
                description="When and where to use this technique",
                key_facts=_with(facts, categories=(FactCategory.WEATHER,), scopes=(FactScope.SEASONAL,)),
            ),
            OutlineItem(
                title="Common Mistakes",
                description="What to avoid when using this technique",
            ),
        ]

    if page_type == PageType.LOCATION:
        return [
            OutlineItem(
                title="Best Fishing Spots",
                description="Top fishing locations in this area",
            ),
            OutlineItem(
                title="Popular Species",
                description="Fish species commonly found here",
                key_facts=[f for f in facts if f.category != FactCategory.TECHNIQUE],
            ),
            OutlineItem(
                title="Fishing Techniques",
                description="Best techniques for this location",
                key_facts=_with(facts, categories=(FactCategory.TECHNIQUE,)),
            ),
            OutlineItem(
                title="Best Times to Fish",
                description="Seasonal patterns and optimal timing",
                key_facts=_with(facts, scopes=(FactScope.SEASONAL,)),
            ),
            OutlineItem(
                title="Local Tips",
                description="Insider knowledge for fishing this location",
            ),
        ]

    return [
        OutlineItem(title="Introduction", description="Overview of the topic", key_facts=facts[:3]),
        OutlineItem(
            title="Main Content",
            description="Detailed information about the topic",
            key_facts=facts[3:10],
        ),
        OutlineItem(title="Practical Tips", description="Actionable advice", key_facts=confident),
        OutlineItem(title="Conclusion", description="Summary and next steps"),
    ]


# -- Internal links --------------------------------------------------------


def match_score(entry: ContentIndexEntry, hints: list[str], primary_keyword: str) -> int:
    """+2 when a keyword contains the primary keyword, +1 per hint hit in keywords or tags."""
    keywords = [k.lower() for k in entry.keywords]
    tags = [t.lower() for t in entry.tags]
    score = 0
    primary = primary_keyword.lower()
    if primary and any(primary in k for k in keywords):
        score += 2
    for hint in hints:
        hint = hint.lower()
        if any(hint in k for k in keywords):
            score += 1
        if any(hint in t for t in tags):
            score += 1
    return score


def _link_slug(entry: ContentIndexEntry) -> str:
    # Location pages are addressed as <state>/<city>
    return f"{entry.state}/{entry.slug}" if entry.state else entry.slug


def select_best_matches(
    entries: list[ContentIndexEntry],
    hints: list[str],
    primary_keyword: str,
    count: int,
    exclude_slug: str | None = None,
) -> list[str]:
    candidates = [e for e in entries if e.slug != exclude_slug and not e.flags.noindex]
    # sorted() is stable, so equal scores keep index order
    ranked = sorted(
        candidates,
        key=lambda e: match_score(e, hints, primary_keyword),
        reverse=True,
    )
    return [_link_slug(e) for e in ranked[:count]]


def pick_internal_links(
    page_type: PageType | str,
    slug: str,
    primary_keyword: str,
    secondary_keywords: list[str],
    key_facts: list[Fact],
    paths: ContentPaths | None = None,
) -> InternalLinks:
    """Choose related pages from the per-type content indexes."""
    page_type = PageType(page_type)
    links = InternalLinks()
    if paths is None:
        return links

    def entries(kind: PageType) -> list[ContentIndexEntry]:
        return ContentIndexStore(paths.content_index(kind), kind).load().entries

    entity_hints = [e for f in key_facts for e in f.entities]
    hints = entity_hints + list(secondary_keywords)

    if page_type == PageType.BLOG:
        links.species_slugs = select_best_matches(entries(PageType.SPECIES), hints, primary_keyword, 2)
        links.how_to_slugs = select_best_matches(entries(PageType.HOW_TO), hints, primary_keyword, 2)
        location_hints = [h for h in entity_hints if any(s in h for s in _BLOG_LOCATION_HINTS)]
        if location_hints:
            links.location_slugs = select_best_matches(
                entries(PageType.LOCATION), location_hints, primary_keyword, 1
            )
        links.post_slugs = select_best_matches(
            entries(PageType.BLOG), hints, primary_keyword, 3, exclude_slug=slug
        )
    elif page_type == PageType.SPECIES:
        links.how_to_slugs = select_best_matches(
            entries(PageType.HOW_TO), [f"catch-{slug}", *hints], primary_keyword, 3
        )
        links.location_slugs = select_best_matches(
            entries(PageType.LOCATION), hints or ["florida"], primary_keyword, 3
        )
        links.post_slugs = select_best_matches(entries(PageType.BLOG), hints, primary_keyword, 3)
    elif page_type == PageType.HOW_TO:
        links.species_slugs = select_best_matches(entries(PageType.SPECIES), hints, primary_keyword, 3)
        links.location_slugs = select_best_matches(entries(PageType.LOCATION), hints, primary_keyword, 3)
        links.how_to_slugs = select_best_matches(
            entries(PageType.HOW_TO), hints, primary_keyword, 3, exclude_slug=slug
        )
    else:
        links.species_slugs = select_best_matches(entries(PageType.SPECIES), [], primary_keyword, 5)
        links.how_to_slugs = select_best_matches(entries(PageType.HOW_TO), hints, primary_keyword, 5)
        links.post_slugs = select_best_matches(entries(PageType.BLOG), hints, primary_keyword, 5)

    total = len(
        set(links.species_slugs + links.how_to_slugs + links.location_slugs + links.post_slugs)
    )
    logger.info("Picked %d internal links for %s:%s", total, page_type, slug)
    return links


# -- Brief -----------------------------------------------------------------


def build_brief(
    page_type: PageType | str,
    topic_key: str,
    slug: str,
    title: str,
    primary_keyword: str,
    secondary_keywords: list[str] | None = None,
    facts: list[Fact] | None = None,
    sources: list[Source] | None = None,
    paths: ContentPaths | None = None,
) -> Brief:
    """Assemble a :class:`Brief`; missing inputs are defaulted, never rejected."""
    page_type = PageType(page_type)
    secondary_keywords = list(secondary_keywords or [])
    logger.info("Building brief for %s:%s", page_type, slug)

    key_facts = sorted(facts or [], key=lambda f: f.confidence, reverse=True)[:MAX_KEY_FACTS]

    state_slug = city_slug = ""
    if page_type == PageType.LOCATION:
        parts = parse_topic_key(topic_key)
        state_slug, city_slug = parts.state, parts.city

    return Brief(
        page_type=page_type,
        topic_key=topic_key,
        slug=slug,
        title=title,
        primary_keyword=primary_keyword,
        secondary_keywords=secondary_keywords,
        outline=build_outline(page_type, title, key_facts),
        key_facts=key_facts,
        sources=list(sources or []),
        internal_links=pick_internal_links(
            page_type, slug, primary_keyword, secondary_keywords, key_facts, paths
        ),
        disclaimers=list(DEFAULT_DISCLAIMERS),
        min_word_count=TARGET_WORD_COUNTS.get(page_type, 1000),
        required_sections=list(REQUIRED_SECTIONS[page_type]),
        state_slug=state_slug,
        city_slug=city_slug,
    )
