"""Species page generator."""

from __future__ import annotations

import logging

from tackle_pipeline.generators.base import (
    common_fields,
    extract_headings,
    faqs_from_templates,
    generate_description,
    render_body,
)
from tackle_pipeline.models import (
    Author,
    Brief,
    FactCategory,
    FactScope,
    SpeciesDoc,
    SpeciesMeta,
)

logger = logging.getLogger(__name__)

INTRO = """\
{title} brings together what anglers need to know before targeting this
fish: how to recognise it, where it lives, what it eats and which approaches
put it in the boat most often. The advice below draws on field notes, guide
interviews and the catch logs that Tackle users share, and it is written for
anglers who want practical answers rather than theory."""

SECTIONS_BY_PREFIX = {
    "About": """\
Start by learning to identify the fish quickly and with confidence. Body
shape, colouring, fin position and mouth structure all help, and markings
can vary with water clarity and age. Knowing what you are looking at makes
it easier to handle the fish properly, to release it in good condition and
to understand how it is likely to behave once hooked.""",
    "Habitat and Behavior": """\
Where this fish spends its time changes with water temperature, tide and
food supply. Look for structure such as grass beds, oyster bars, docks,
drop-offs and mangrove edges, and pay attention to moving water that pushes
bait past ambush points. Feeding often picks up around tide changes and in
low light, while bright midday sun tends to push fish toward deeper or
shaded water.""",
    "Best Techniques": """\
Most anglers succeed with a simple rotation: live or cut bait fished near
structure, soft plastics worked slowly along the bottom, and topwater plugs
when fish are feeding near the surface. Match the size of your offering to
the local forage, use a leader suited to the cover you are fishing, and vary
your retrieve until the fish tell you what they want that day.""",
    "Where to Find": """\
Good fishing for this species is spread across many coastlines and inland
waters, but the best spots share a few traits: reliable bait, moving water
and some form of cover. Check local reports, talk to bait shops and use your
own catch history to narrow down the areas worth your time. Revisit
productive spots under similar conditions to confirm the pattern.""",
}

DEFAULT_SECTION = """\
This section covers {section}. Use it alongside your own observations on the
water, because local conditions always shape how these fish behave and how
they respond to different presentations."""

FAQ_TEMPLATES = [
    (
        "What is {name}?",
        "{name} is a popular game fish. This guide provides detailed information about {name} fishing.",
    ),
    (
        "Where can I find {name}?",
        "{name} can be found in a range of waters. Check the Where to Find section for specific areas and structure to target.",
    ),
    (
        "What is the best technique for catching {name}?",
        "The best techniques for {name} are covered in the Best Techniques section of this guide.",
    ),
    (
        "When is the best time to catch {name}?",
        "The best times to catch {name} vary by time of year and location. Tide changes and low light are good places to start.",
    ),
    (
        "What equipment do I need for {name}?",
        "Equipment recommendations for {name} fishing are included in the techniques section.",
    ),
]


def _sections(brief: Brief) -> dict[str, str]:
    sections: dict[str, str] = {}
    for item in brief.outline:
        for prefix, prose in SECTIONS_BY_PREFIX.items():
            if item.title.startswith(prefix):
                sections[item.title] = prose
    return sections


def extract_species_metadata(brief: Brief) -> SpeciesMeta:
    """Species facts sorted into the structured meta block."""
    facts = brief.key_facts
    habitats = [f.claim for f in facts if f.category == FactCategory.HABITAT][:3]
    seasons = [
        f.claim
        for f in facts
        if f.scope == FactScope.SEASONAL or f.category == FactCategory.SEASON
    ][:3]
    sizes = [f.claim for f in facts if f.category == FactCategory.SIZE][:2]
    return SpeciesMeta(
        common_names=[species_name(brief)],
        habitats=habitats,
        best_seasons=seasons,
        average_size=sizes[0] if sizes else None,
        max_size=sizes[1] if len(sizes) > 1 else None,
    )


def species_name(brief: Brief) -> str:
    words = brief.primary_keyword.split()
    if words and words[-1] == "fishing":
        words = words[:-1]
    return " ".join(words).title() or brief.title


def generate_species(brief: Brief, author: Author | None = None) -> SpeciesDoc:
    logger.info("Generating species page: %s", brief.slug)
    body = render_body(brief, INTRO, _sections(brief), DEFAULT_SECTION)
    return SpeciesDoc(
        **common_fields(brief, author),
        description=generate_description(
            brief,
            body,
            f"Complete guide to {brief.primary_keyword} including habitat, behavior, and fishing techniques.",
        ),
        body=body,
        headings=extract_headings(body),
        faqs=faqs_from_templates(FAQ_TEMPLATES, name=species_name(brief)),
        species_meta=extract_species_metadata(brief),
    )
