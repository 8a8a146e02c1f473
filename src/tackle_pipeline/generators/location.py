"""Location page generator."""

from __future__ import annotations

import logging

from tackle_pipeline.generators.base import (
    common_fields,
    extract_headings,
    faqs_from_templates,
    generate_description,
    render_body,
)
from tackle_pipeline.models import Author, Brief, Geo, LocationDoc

logger = logging.getLogger(__name__)

STATES: dict[str, tuple[str, str]] = {
    "florida": ("Florida", "FL"),
    "texas": ("Texas", "TX"),
    "california": ("California", "CA"),
    "new-york": ("New York", "NY"),
}

INTRO = """\
{title} covers the spots, species and strategies that make this area worth
a trip. Whether you are fishing from a boat, a kayak or the shoreline, the
sections below will help you decide where to start, what to target and how
to make the most of the hours you have on the water."""

SECTIONS = {
    "Best Fishing Spots": """\
The most productive water around here tends to share a few features:
moving current, nearby structure and a steady supply of bait. Bridges,
jetties, docks, grass flats and channel edges all deserve a look. Public
piers and parks give shore anglers plenty of access, while a small boat or
kayak opens up quieter backwaters that see less pressure.""",
    "Popular Species": """\
Anglers here regularly encounter a mix of inshore favourites and seasonal
visitors. Which fish show up depends on water temperature, bait movement and
the time of year, so it pays to check recent reports before you go. Keep a
few versatile lures and a livewell of bait ready and you will be prepared
for most of what swims by.""",
    "Fishing Techniques": """\
Light spinning tackle handles most situations in this area. Work soft
plastics and jigs along drop-offs, drift live bait across flats on a moving
tide, and keep a topwater plug ready for calm mornings. Near heavy cover,
step up your leader and keep fish away from pilings and roots once they are
hooked.""",
    "Best Times to Fish": """\
Tide movement is the biggest factor locally, with the first few hours of an
incoming tide often producing the most action. Early morning and evening
are reliable, especially during warm months when midday heat slows things
down. Cooler months push fish toward deeper and warmer water, so adjust your
spots as the weather changes.""",
    "Local Tips": """\
Talk to the local bait shop, since the staff usually know what has been
biting and where. Launch early on weekends to beat the crowds, respect
private docks and shorelines, and keep an eye on afternoon storms during
summer. Logging each trip helps you learn the water much faster than
relying on memory alone.""",
}

DEFAULT_SECTION = """\
This section covers {section} for this area. Combine it with current
reports and your own observations to plan a productive day."""

FAQ_TEMPLATES = [
    (
        "What are the best fishing spots in {city}?",
        "The best fishing spots in {city} are covered in the Best Fishing Spots section of this guide.",
    ),
    (
        "What fish can I catch in {city}?",
        "Popular species in {city} are listed in the Popular Species section.",
    ),
    (
        "What techniques work best in {city}?",
        "Effective fishing techniques for {city} are covered in the Fishing Techniques section.",
    ),
    (
        "When is the best time to fish in {city}?",
        "The Best Times to Fish section covers seasonal patterns and optimal timing for {city}.",
    ),
    (
        "Do I need a fishing license in {city}?",
        "Fishing license requirements vary. Always check current regulations with official sources before your trip.",
    ),
]


def extract_geo_info(state_slug: str, city_slug: str) -> Geo:
    """State name and code plus a display city name from URL slugs."""
    state, code = STATES.get(state_slug, (state_slug, state_slug.upper()[:2]))
    city = " ".join(w.capitalize() for w in city_slug.split("-") if w)
    return Geo(state=state, state_code=code, city=city)


def generate_location(brief: Brief, author: Author | None = None) -> LocationDoc:
    logger.info("Generating location page: %s/%s", brief.state_slug, brief.slug)
    geo = extract_geo_info(brief.state_slug, brief.city_slug or brief.slug)
    body = render_body(brief, INTRO, SECTIONS, DEFAULT_SECTION)
    return LocationDoc(
        **common_fields(brief, author),
        description=generate_description(
            brief,
            body,
            "Complete fishing guide with best spots, popular species, techniques, and local tips.",
        ),
        body=body,
        headings=extract_headings(body),
        faqs=faqs_from_templates(FAQ_TEMPLATES, city=geo.city),
        state_slug=brief.state_slug,
        city_slug=brief.slug,
        geo=geo,
    )
