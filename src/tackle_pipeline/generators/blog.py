"""Blog post generator."""

from __future__ import annotations

import logging

from tackle_pipeline.generators.base import (
    common_fields,
    extract_headings,
    faqs_from_templates,
    generate_description,
    render_body,
)
from tackle_pipeline.models import Author, BlogPostDoc, Brief

logger = logging.getLogger(__name__)

MAX_TAGS = 5

INTRO = """\
Anglers ask us about {keyword} more than almost anything else, and for good
reason. Getting it right turns a slow morning on the water into a day you
remember. This post pulls together what we have learned from our own trips,
from experienced guides and from the catch logs shared by the Tackle
community, so you can head out with a clear plan instead of guesswork."""

SECTIONS = {
    "Introduction": """\
Before you rig a single line, it helps to understand why {keyword} matters.
Fish respond to light, water temperature, current and food, and every one of
those changes through the day. Anglers who pay attention to those shifts
tend to find fish faster and waste less bait. Think of this section as the
big picture: what is happening under the surface, and how you can read the
clues that the water gives you.""",
    "Main Content": """\
Here is where the details come in. Start with the basics: a rod you are
comfortable casting all day, fresh line, and a small selection of lures or
bait that match what local fish are already eating. Work an area
methodically, change one thing at a time, and keep notes on what happens.
When something works, repeat it and pay attention to the tide, the wind and
the time, because those details are what let you do it again next week.""",
    "Practical Tips": """\
A few habits separate consistent anglers from lucky ones. Arrive early and
scout the water before you cast. Move quietly, since noise and shadows spook
fish in shallow water. Retie after every big fish or any sign of abrasion.
Try a slower retrieve before you switch lures, and do not be afraid to leave
a spot that is not producing. Small adjustments, made on purpose, add up
quickly over a season.""",
    "Conclusion": """\
There is no single secret to {keyword}, only a set of good decisions made
again and again. Keep your approach simple, watch the conditions, and learn
from every outing, whether you catch fish or not. Over time those lessons
build into real confidence on the water, and that confidence is what keeps
the trips fun.""",
}

DEFAULT_SECTION = """\
This part of the guide covers {section}. Take the ideas here to the water,
try them under different conditions, and note which ones fit the places you
fish most often. What works on one shoreline may need a small change on the
next, so stay flexible and keep learning."""

FAQ_TEMPLATES = [
    (
        "What is {keyword}?",
        "This guide covers {keyword} and gives practical, field-tested advice for anglers of every level.",
    ),
    (
        "How can I get better at {keyword}?",
        "Fish often, change one thing at a time, and record each trip so you can spot the patterns that lead to more bites.",
    ),
    (
        "What gear do I need to get started?",
        "A balanced rod and reel, fresh line, a few proven lures or live bait, and basic tools like pliers and a line cutter are enough for most trips.",
    ),
    (
        "When is the best time to go fishing?",
        "Early morning and late evening are reliable starting points, but tide movement and weather often matter more than the clock.",
    ),
    (
        "How can the Tackle app help?",
        "The Tackle app lets you log your catches, track patterns over time, and discover hot spots so every trip builds on the last one.",
    ),
]


def extract_category_from_slug(slug: str) -> str:
    if "tip" in slug or "guide" in slug:
        return "fishing-tips"
    if "gear" in slug or "review" in slug:
        return "gear-reviews"
    if "condition" in slug or "weather" in slug:
        return "conditions"
    return "fishing-tips"


def generate_blog_post(brief: Brief, author: Author | None = None) -> BlogPostDoc:
    logger.info("Generating blog post: %s", brief.slug)
    body = render_body(brief, INTRO, SECTIONS, DEFAULT_SECTION)
    return BlogPostDoc(
        **common_fields(brief, author),
        description=generate_description(
            brief, body, f"Practical tips and techniques for {brief.primary_keyword} from the Tackle team."
        ),
        body=body,
        headings=extract_headings(body),
        faqs=faqs_from_templates(FAQ_TEMPLATES, keyword=brief.primary_keyword),
        category_slug=extract_category_from_slug(brief.slug),
        tags=brief.secondary_keywords[:MAX_TAGS],
    )
