"""Pure data models for the content pipeline.

All Pydantic models and enums live here. No I/O, no business logic.
Queue and topic-index records use snake_case on disk; content documents
and content indexes are read by the Next.js site and serialise with
camelCase keys (``model_dump_json(by_alias=True)``).
"""

from __future__ import annotations

import uuid
from datetime import UTC, datetime
from enum import StrEnum
from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter
from pydantic.alias_generators import to_camel


def utc_now() -> datetime:
    return datetime.now(tz=UTC)


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class PageType(StrEnum):
    """Page types the pipeline can generate."""

    BLOG = "blog"
    SPECIES = "species"
    HOW_TO = "how-to"
    LOCATION = "location"


class JobStatus(StrEnum):
    """Lifecycle status of a queued job."""

    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


class FactScope(StrEnum):
    GLOBAL = "global"
    REGIONAL = "regional"
    SEASONAL = "seasonal"
    LOCATION_SPECIFIC = "location-specific"


class FactCategory(StrEnum):
    HABITAT = "habitat"
    BEHAVIOR = "behavior"
    DIET = "diet"
    SIZE = "size"
    SEASON = "season"
    TECHNIQUE = "technique"
    WEATHER = "weather"
    OTHER = "other"


class EntityType(StrEnum):
    SPECIES = "species"
    LOCATION = "location"


class TopicStatus(StrEnum):
    PUBLISHED = "published"
    DRAFT = "draft"
    FAILED = "failed"
    ARCHIVED = "archived"


# ---------------------------------------------------------------------------
# Job queue
# ---------------------------------------------------------------------------


class JobOutputs(BaseModel):
    """What a finished job produced."""

    slug: str = ""
    route_path: str = ""
    errors: list[str] = Field(default_factory=list)


class Job(BaseModel):
    """A single "generate this page" request in the queue."""

    job_id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    type: PageType
    topic_key: str
    priority: int = Field(default=5, ge=1, le=10)
    status: JobStatus = JobStatus.PENDING
    attempts: int = 0
    max_attempts: int = 3
    scheduled_at: datetime = Field(default_factory=utc_now)
    run_at: datetime | None = None
    completed_at: datetime | None = None
    error: str | None = None
    outputs: JobOutputs | None = None


# ---------------------------------------------------------------------------
# Extraction
# ---------------------------------------------------------------------------


class SourceRegistryEntry(BaseModel):
    """A site facts may be fetched from, with its path rules and rate limit."""

    id: str
    name: str
    homepage: str
    allowed_paths: list[str] = Field(default_factory=list)
    disallowed_paths: list[str] = Field(default_factory=list)
    rate_limit_per_min: int = Field(default=10, ge=1)
    fetch_method: Literal["api", "html"] = "html"
    tags: list[str] = Field(default_factory=list)
    notes: str = ""
    status: Literal["active", "paused"] = "active"


class Heading(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    level: int = Field(ge=1, le=3)
    text: str
    id: str = ""


class Fact(BaseModel):
    """A short paraphrased claim harvested from a source document."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    claim: str = Field(max_length=200)
    confidence: float = Field(ge=0.0, le=1.0)
    supporting_sources: list[str] = Field(default_factory=list)
    observed_at: datetime = Field(default_factory=utc_now)
    scope: FactScope = FactScope.GLOBAL
    category: FactCategory = FactCategory.OTHER
    entities: list[str] = Field(default_factory=list)


class Entity(BaseModel):
    text: str
    type: EntityType
    confidence: float = Field(ge=0.0, le=1.0)
    normalized: str = ""


class RawDocument(BaseModel):
    """A fetched source document; the extractor fills in everything derived."""

    source_id: str = ""
    url: str
    fetched_at: datetime = Field(default_factory=utc_now)
    title: str = ""
    html: str | None = None
    text: str = ""
    headings: list[Heading] = Field(default_factory=list)
    extracted_facts: list[Fact] = Field(default_factory=list)
    entities: list[Entity] = Field(default_factory=list)
    location_hints: list[str] = Field(default_factory=list)
    species_hints: list[str] = Field(default_factory=list)
    tags: list[str] = Field(default_factory=list)
    content_type: Literal["article", "guide", "data", "unknown"] = "unknown"
    language: str = "en"
    word_count: int = 0
    quality_score: float = 0.0


# ---------------------------------------------------------------------------
# Brief
# ---------------------------------------------------------------------------


class Source(BaseModel):
    """A cited source."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    label: str
    url: str
    publisher: str | None = None
    retrieved_at: datetime = Field(default_factory=utc_now)
    notes: str | None = None


class OutlineItem(BaseModel):
    level: int = 2
    title: str
    description: str
    key_facts: list[Fact] = Field(default_factory=list)


class InternalLinks(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    species_slugs: list[str] = Field(default_factory=list)
    how_to_slugs: list[str] = Field(default_factory=list)
    location_slugs: list[str] = Field(default_factory=list)
    post_slugs: list[str] = Field(default_factory=list)

    def is_empty(self) -> bool:
        return not (
            self.species_slugs or self.how_to_slugs or self.location_slugs or self.post_slugs
        )


class Brief(BaseModel):
    """Everything a generator needs to template one page."""

    page_type: PageType
    topic_key: str
    slug: str
    title: str
    primary_keyword: str
    secondary_keywords: list[str] = Field(default_factory=list)
    outline: list[OutlineItem] = Field(default_factory=list)
    key_facts: list[Fact] = Field(default_factory=list)
    sources: list[Source] = Field(default_factory=list)
    internal_links: InternalLinks = Field(default_factory=InternalLinks)
    disclaimers: list[str] = Field(default_factory=list)
    min_word_count: int = 1000
    required_sections: list[str] = Field(default_factory=list)
    state_slug: str = ""
    city_slug: str = ""


# ---------------------------------------------------------------------------
# Content documents
# ---------------------------------------------------------------------------


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class FaqItem(_CamelModel):
    question: str
    answer: str


class Author(_CamelModel):
    name: str
    url: str | None = None


class DocDates(_CamelModel):
    published_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)


class DocFlags(_CamelModel):
    draft: bool = False
    noindex: bool = False


class BaseDoc(_CamelModel):
    """Fields shared by every generated page."""

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    slug: str
    title: str
    description: str
    body: str
    hero_image: str | None = None
    headings: list[Heading] = Field(default_factory=list)
    primary_keyword: str
    secondary_keywords: list[str] = Field(default_factory=list)
    faqs: list[FaqItem] = Field(default_factory=list)
    sources: list[Source] = Field(default_factory=list)
    related: InternalLinks = Field(default_factory=InternalLinks)
    author: Author
    dates: DocDates = Field(default_factory=DocDates)
    flags: DocFlags = Field(default_factory=DocFlags)

    @property
    def word_count(self) -> int:
        return len(self.body.split())


class BlogPostDoc(BaseDoc):
    page_type: Literal["blog"] = "blog"
    category_slug: str = "fishing-tips"
    tags: list[str] = Field(default_factory=list)
    featured_image: str | None = None


class SpeciesMeta(_CamelModel):
    scientific_name: str | None = None
    common_names: list[str] = Field(default_factory=list)
    habitats: list[str] = Field(default_factory=list)
    target_depths: str | None = None
    best_seasons: list[str] = Field(default_factory=list)
    best_tides: list[str] = Field(default_factory=list)
    average_size: str | None = None
    max_size: str | None = None


class SpeciesDoc(BaseDoc):
    page_type: Literal["species"] = "species"
    species_meta: SpeciesMeta = Field(default_factory=SpeciesMeta)


class HowToDoc(BaseDoc):
    page_type: Literal["how-to"] = "how-to"
    category: Literal["beginner", "inshore", "pier-bank", "kayak", "advanced"] = "advanced"


class Geo(_CamelModel):
    state: str
    state_code: str
    city: str
    lat: float | None = None
    lon: float | None = None


class LocationDoc(BaseDoc):
    page_type: Literal["location"] = "location"
    state_slug: str
    city_slug: str
    geo: Geo


ContentDoc = Annotated[
    Union[BlogPostDoc, SpeciesDoc, HowToDoc, LocationDoc],
    Field(discriminator="page_type"),
]

CONTENT_DOC_ADAPTER: TypeAdapter[ContentDoc] = TypeAdapter(ContentDoc)


# ---------------------------------------------------------------------------
# Indexes
# ---------------------------------------------------------------------------


class ContentIndexEntry(_CamelModel):
    """Listing metadata for one published page."""

    slug: str
    title: str
    description: str = ""
    category: str = ""
    published_at: datetime
    updated_at: datetime | None = None
    word_count: int = 0
    keywords: list[str] = Field(default_factory=list)
    tags: list[str] = Field(default_factory=list)
    author: str = ""
    state: str | None = None
    flags: DocFlags = Field(default_factory=DocFlags)


class ContentIndex(_CamelModel):
    """Per-type manifest the site uses to render listing pages."""

    version: str = "1.0.0"
    page_type: PageType
    last_updated: datetime = Field(default_factory=utc_now)
    entries: list[ContentIndexEntry] = Field(default_factory=list)

    def slugs(self, state: str | None = None) -> set[str]:
        return {
            e.slug for e in self.entries if state is None or e.state == state
        }


class TopicIndexRecord(BaseModel):
    """Tracks what has been generated for a topic key."""

    topic_key: str
    page_type: PageType
    slug: str = ""
    status: TopicStatus = TopicStatus.DRAFT
    content_hash: str = ""
    sources_used: list[str] = Field(default_factory=list)
    last_published_at: datetime | None = None
    last_updated_at: datetime = Field(default_factory=utc_now)
    last_error: str | None = None
    attempts: int = 0
