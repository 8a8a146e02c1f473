"""How-to guide generator."""

from __future__ import annotations

import logging

from tackle_pipeline.generators.base import (
    common_fields,
    extract_headings,
    faqs_from_templates,
    generate_description,
    render_body,
)
from tackle_pipeline.models import Author, Brief, HowToDoc

logger = logging.getLogger(__name__)

INTRO = """\
This step-by-step guide walks through {keyword} from the first cast to the
finer points that experienced anglers rely on. Each section builds on the
last, so beginners can follow along in order while seasoned anglers can
jump straight to the tips and conditions that matter most to them."""

SECTIONS = {
    "Why This Technique Matters": """\
Learning {keyword} gives you another reliable option when fish are not
cooperating. It helps you cover water efficiently, present bait or lures in
a natural way and react to changing conditions without starting over. Once
it becomes second nature you will spend less time fiddling with gear and
more time actually fishing.""",
    "Step-by-Step Guide": """\
Begin with your setup: choose a rod and reel you can handle comfortably and
spool fresh line. Rig your terminal tackle carefully and test every knot.
Position yourself so the wind and current work with you, make an accurate
cast, and let the presentation settle before you start the retrieve. Watch
your line closely, set the hook with a smooth sweep when you feel weight,
and keep steady pressure while you bring the fish in.""",
    "Tips & Tricks": """\
Small refinements make a big difference. Keep your hooks sharp, slow down
when the bite is tough, and pay attention to what happens right before each
strike. Practice in calm water before trying it in wind or heavy current.
Write down what worked after every trip, because patterns that seem random
in the moment often become obvious when you look back over your notes.""",
    "Best Conditions": """\
Moving water, stable weather and good visibility are usually the easiest
conditions for {keyword}. A light breeze can help by breaking up the
surface, while strong wind calls for heavier tackle and shorter casts. Early
and late light tend to be productive, and an incoming tide often pushes bait
and fish toward shallow structure.""",
    "Common Mistakes": """\
The most common problems are easy to fix once you know to look for them.
Retrieving too fast, using line that is too heavy for the conditions and
setting the hook too early all cost fish. Another frequent error is staying
in one spot for too long without a bite. Make a few changes, and if nothing
happens, move on.""",
}

DEFAULT_SECTION = """\
This section covers {section}. Try it on your next outing and adjust the
details to suit the water you fish and the species you are targeting."""

FAQ_TEMPLATES = [
    (
        "What is {keyword}?",
        "This guide explains {keyword} in detail with step-by-step instructions.",
    ),
    (
        "How long does it take to learn {keyword}?",
        "The time to learn {keyword} varies. Follow the steps in this guide to get started.",
    ),
    (
        "What equipment do I need for {keyword}?",
        "Equipment requirements are covered in the guide. Check the Step-by-Step Guide section.",
    ),
    (
        "What are common mistakes when doing {keyword}?",
        "Common mistakes are covered in the Common Mistakes section of this guide.",
    ),
    (
        "When is the best time to use this technique?",
        "The Best Conditions section covers when and where to use this technique.",
    ),
]


def determine_category(slug: str) -> str:
    """How-to listing category inferred from slug words."""
    if "beginner" in slug or "basic" in slug or "knot" in slug:
        return "beginner"
    if "inshore" in slug or "flat" in slug or "mangrove" in slug:
        return "inshore"
    if "pier" in slug or "bank" in slug or "shore" in slug:
        return "pier-bank"
    if "kayak" in slug:
        return "kayak"
    return "advanced"


def generate_how_to(brief: Brief, author: Author | None = None) -> HowToDoc:
    logger.info("Generating how-to guide: %s", brief.slug)
    body = render_body(brief, INTRO, SECTIONS, DEFAULT_SECTION)
    return HowToDoc(
        **common_fields(brief, author),
        description=generate_description(
            brief,
            body,
            f"Step-by-step guide with tips, techniques, and best practices for {brief.primary_keyword}.",
        ),
        body=body,
        headings=extract_headings(body),
        faqs=faqs_from_templates(FAQ_TEMPLATES, keyword=brief.primary_keyword),
        category=determine_category(brief.slug),
    )
