"""Quality gate for generated documents.

:func:`validate_doc` never raises; it reports every problem it finds so the
runner can record the full list on the failed job. Errors block
publishing, warnings are only logged.
"""

from __future__ import annotations

import logging
import re

from pydantic import BaseModel, Field

from tackle_pipeline.config import ValidationSectionConfig
from tackle_pipeline.models import BaseDoc

logger = logging.getLogger(__name__)

# Below this share of the minimum word count is an error; between it and the minimum a warning
WORD_COUNT_SOFTNESS = 0.8

TITLE_MAX = 60
DESCRIPTION_RANGE = (100, 160)

_BAG_LIMIT_RE = re.compile(
    r"bag limit|daily limit|keep \d+|harvest limit|\d+\s+fish per|limit.*\d+\s+fish", re.IGNORECASE
)
_SIZE_LIMIT_RE = re.compile(
    r"slot limit|size limit|minimum.*\d+\s*inch|maximum.*\d+\s*inch|\d+\s*-\s*\d+\s*inch"
    r"|must be.*\d+\s*inch",
    re.IGNORECASE,
)
_CLOSED_SEASON_RE = re.compile(
    r"closed season|open season|no fishing.*january|no fishing.*june|closed.*december|season runs",
    re.IGNORECASE,
)
_LEGAL_CLAIM_RE = re.compile(
    r"illegal to|must have.*license|violations.*fine|against the law", re.IGNORECASE
)

_REGULATION_CHECKS: list[tuple[re.Pattern[str], str]] = [
    (_BAG_LIMIT_RE, "Content contains bag limit information"),
    (_SIZE_LIMIT_RE, "Content contains size limit information"),
    (_CLOSED_SEASON_RE, "Content contains closed season information"),
    (_LEGAL_CLAIM_RE, "Content makes legal claims"),
]

_APP_CTA_RE = re.compile(r"tackle app|download tackle", re.IGNORECASE)
_VALUE_PROP_RE = re.compile(
    r"log your catches|track patterns|discover hot spots|ai fish id|catch more", re.IGNORECASE
)
_INTERNAL_LINK_RE = re.compile(r"\[[^\]]*\]\(/(?:species|how-to|locations|blog)/[^)]+\)")
_HTML_INTERNAL_LINK_RE = re.compile(
    r"<a[^>]+href=[\"']/(?:species|how-to|locations|blog)/[^\"']+[\"']", re.IGNORECASE
)

RECOMMENDED_SECTIONS: dict[str, list[str]] = {
    "species": ["About", "Habitat", "Techniques"],
    "how-to": ["Step-by-Step", "Tips", "Best Conditions"],
    "location": ["Best Fishing Spots", "Popular Species", "Fishing Techniques"],
    "blog": ["Introduction", "Conclusion"],
}

_REQUIRED_FIELDS = ("slug", "title", "description", "body", "primary_keyword")


class ValidationResult(BaseModel):
    passed: bool
    errors: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)


def count_internal_links(body: str) -> int:
    return len(_INTERNAL_LINK_RE.findall(body)) + len(_HTML_INTERNAL_LINK_RE.findall(body))


def validate_doc(doc: BaseDoc, config: ValidationSectionConfig | None = None) -> ValidationResult:
    """Check *doc* against the quality gates and return every finding."""
    config = config or ValidationSectionConfig()
    page_type = str(getattr(doc, "page_type", ""))
    errors: list[str] = []
    warnings: list[str] = []

    for field in _REQUIRED_FIELDS:
        if not str(getattr(doc, field, "") or "").strip():
            errors.append(f"Missing required field: {field}")

    # -- Length and structure ----------------------------------------------

    word_count = doc.word_count
    min_words = config.min_words_for(page_type)
    if word_count < min_words * WORD_COUNT_SOFTNESS:
        errors.append(f"Word count {word_count} is below minimum {min_words}")
    elif word_count < min_words:
        warnings.append(f"Word count {word_count} is below recommended {min_words}")

    h2_count = sum(1 for h in doc.headings if h.level == 2)
    if h2_count < config.min_h2_sections:
        errors.append(f"Only {h2_count} H2 sections found, minimum is {config.min_h2_sections}")

    if len(doc.faqs) < config.min_faqs:
        errors.append(f"Only {len(doc.faqs)} FAQs found, minimum is {config.min_faqs}")
    elif len(doc.faqs) > config.max_faqs:
        warnings.append(f"More than {config.max_faqs} FAQs found ({len(doc.faqs)})")

    links = count_internal_links(doc.body)
    if links < config.min_internal_links:
        warnings.append(
            f"Only {links} internal links found in body, recommended is {config.min_internal_links}"
        )

    # -- Content rules -----------------------------------------------------

    body_lower = doc.body.lower()
    for phrase in config.forbidden_phrases:
        if phrase.lower() in body_lower:
            errors.append(f'Content contains forbidden phrase: "{phrase}"')

    for pattern, message in _REGULATION_CHECKS:
        if pattern.search(doc.body):
            errors.append(message)

    has_cta = bool(_APP_CTA_RE.search(doc.body))
    if page_type == "blog":
        if not has_cta:
            errors.append("Blog post must include Tackle app CTA")
        elif not _VALUE_PROP_RE.search(doc.body):
            warnings.append("App CTA should include a value proposition")
    elif not has_cta and "download" not in body_lower:
        warnings.append("Content may be missing app download CTA")

    for section in RECOMMENDED_SECTIONS.get(page_type, []):
        if section.lower() not in body_lower:
            warnings.append(f'Content may be missing recommended section: "{section}"')

    low, high = DESCRIPTION_RANGE
    if not low <= len(doc.description) <= high:
        warnings.append(f"Meta description length is {len(doc.description)} (recommended: {low}-{high})")
    if len(doc.title) > TITLE_MAX:
        warnings.append(f"Title length is {len(doc.title)} (recommended: < {TITLE_MAX})")

    passed = not errors
    if not passed:
        logger.error("Validation failed for %s:%s: %s", page_type, doc.slug, "; ".join(errors))
    elif warnings:
        logger.warning("Validation passed with warnings for %s:%s: %s", page_type, doc.slug, "; ".join(warnings))
    else:
        logger.info("Validation passed for %s:%s", page_type, doc.slug)

    return ValidationResult(passed=passed, errors=errors, warnings=warnings)
