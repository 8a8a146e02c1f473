"""Page generators and the page-type dispatch."""

from __future__ import annotations

from collections.abc import Callable

from tackle_pipeline.generators.blog import generate_blog_post
from tackle_pipeline.generators.howto import generate_how_to
from tackle_pipeline.generators.location import generate_location
from tackle_pipeline.generators.species import generate_species
from tackle_pipeline.models import Author, BaseDoc, Brief, PageType

GENERATORS: dict[PageType, Callable[..., BaseDoc]] = {
    PageType.BLOG: generate_blog_post,
    PageType.SPECIES: generate_species,
    PageType.HOW_TO: generate_how_to,
    PageType.LOCATION: generate_location,
}


def generate_doc(brief: Brief, author: Author | None = None) -> BaseDoc:
    """Generate the typed document for *brief*.

    Raises:
        ValueError: If the page type has no generator.
    """
    generator = GENERATORS.get(PageType(brief.page_type))
    if generator is None:
        raise ValueError(f"Unknown page type: {brief.page_type!r}")
    return generator(brief, author)


__all__ = [
    "GENERATORS",
    "generate_blog_post",
    "generate_doc",
    "generate_how_to",
    "generate_location",
    "generate_species",
]
