"""Approved fact sources: which sites and paths may be fetched, and how often."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Iterable
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

from tackle_pipeline.models import SourceRegistryEntry

logger = logging.getLogger(__name__)

RATE_WINDOW_SECONDS = 60.0

TRACKING_PARAMS = frozenset(
    {
        "utm_source",
        "utm_medium",
        "utm_campaign",
        "utm_term",
        "utm_content",
        "fbclid",
        "gclid",
        "ref",
        "source",
    }
)

# Facts only, never copied prose
APPROVED_SOURCES: list[SourceRegistryEntry] = [
    SourceRegistryEntry(
        id="src-001",
        name="NOAA Weather Service",
        homepage="https://www.weather.gov",
        allowed_paths=["/marine", "/forecasts"],
        disallowed_paths=["/archive", "/historical"],
        rate_limit_per_min=10,
        fetch_method="api",
        tags=["weather-conditions"],
    ),
    SourceRegistryEntry(
        id="src-002",
        name="Weather Underground - Marine",
        homepage="https://www.wunderground.com",
        allowed_paths=["/marine"],
        disallowed_paths=["/premium", "/api"],
        rate_limit_per_min=5,
        tags=["weather-conditions"],
    ),
    SourceRegistryEntry(
        id="src-003",
        name="NOAA Tides & Currents",
        homepage="https://tidesandcurrents.noaa.gov",
        allowed_paths=["/tides", "/predictions"],
        rate_limit_per_min=15,
        fetch_method="api",
        tags=["tides-solunar"],
    ),
    SourceRegistryEntry(
        id="src-004",
        name="Solunar Fishing Times",
        homepage="https://www.solunarforecast.com",
        allowed_paths=["/fishing-times"],
        disallowed_paths=["/premium"],
        rate_limit_per_min=5,
        tags=["tides-solunar"],
    ),
    SourceRegistryEntry(
        id="src-005",
        name="FishBase",
        homepage="https://www.fishbase.se",
        allowed_paths=["/summary"],
        rate_limit_per_min=20,
        fetch_method="api",
        tags=["species-biology"],
    ),
    SourceRegistryEntry(
        id="src-006",
        name="Florida Fish and Wildlife Conservation Commission",
        homepage="https://myfwc.com",
        allowed_paths=["/wildlifehabitats/profiles", "/fishing/saltwater"],
        disallowed_paths=["/regulations", "/licenses"],
        rate_limit_per_min=10,
        tags=["species-biology"],
        notes="Habitat and behavior facts only, no regulations.",
    ),
    SourceRegistryEntry(
        id="src-007",
        name="NOAA Fisheries",
        homepage="https://www.fisheries.noaa.gov",
        allowed_paths=["/species"],
        disallowed_paths=["/regulations", "/management"],
        rate_limit_per_min=15,
        fetch_method="api",
        tags=["species-biology"],
    ),
    SourceRegistryEntry(
        id="src-008",
        name="Salt Water Sportsman - Seasonal Guides",
        homepage="https://www.saltwatersportsman.com",
        allowed_paths=["/fishing-tips", "/seasonal"],
        disallowed_paths=["/premium", "/subscription"],
        rate_limit_per_min=3,
        tags=["seasonal-patterns"],
    ),
    SourceRegistryEntry(
        id="src-009",
        name="Take Me Fishing - Techniques",
        homepage="https://www.takemefishing.org",
        allowed_paths=["/how-to-fish"],
        rate_limit_per_min=5,
        tags=["technique-guides"],
    ),
    SourceRegistryEntry(
        id="src-010",
        name="Fishing Education Resource",
        homepage="https://example.com",
        allowed_paths=["/guides", "/articles"],
        disallowed_paths=["/premium"],
        rate_limit_per_min=5,
        tags=["technique-guides", "species-biology"],
        notes="Placeholder until a real source replaces it.",
        status="paused",
    ),
]


def default_sources() -> list[SourceRegistryEntry]:
    return [entry.model_copy(deep=True) for entry in APPROVED_SOURCES]


def normalize_url(url: str) -> str:
    """Drop the fragment, tracking parameters and a trailing slash.

    Anything that does not parse as an absolute URL is returned unchanged.
    """
    try:
        parts = urlsplit(url)
    except ValueError:
        return url
    if not parts.scheme or not parts.netloc:
        return url

    query = urlencode(
        [(k, v) for k, v in parse_qsl(parts.query, keep_blank_values=True) if k not in TRACKING_PARAMS]
    )
    path = parts.path
    if len(path) > 1 and path.endswith("/"):
        path = path[:-1]
    return urlunsplit((parts.scheme, parts.netloc, path, query, ""))


def _hostname(url: str) -> str | None:
    try:
        return urlsplit(url).hostname
    except ValueError:
        return None


def is_url_allowed(url: str, source: SourceRegistryEntry) -> bool:
    """Same host as the source's homepage, no excluded path, and an allowed path if any are listed."""
    host = _hostname(url)
    if host is None or host != _hostname(source.homepage):
        return False

    path = urlsplit(url).path
    if any(disallowed in path for disallowed in source.disallowed_paths):
        return False
    if not source.allowed_paths:
        return True
    return any(allowed in path for allowed in source.allowed_paths)


def get_active_sources(sources: Iterable[SourceRegistryEntry]) -> list[SourceRegistryEntry]:
    return [s for s in sources if s.status == "active"]


def find_source(url: str, sources: Iterable[SourceRegistryEntry]) -> SourceRegistryEntry | None:
    """First active source whose homepage shares *url*'s host."""
    host = _hostname(url)
    if host is None:
        return None
    for source in get_active_sources(sources):
        if _hostname(source.homepage) == host:
            return source
    return None


class RateLimiter:
    """Per-source request counter over fixed one-minute windows."""

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._windows: dict[str, tuple[int, float]] = {}

    def acquire(self, source: SourceRegistryEntry) -> bool:
        """Count one request against *source*; False once its limit is spent."""
        now = self._clock()
        window = self._windows.get(source.id)
        if window is None or now >= window[1]:
            self._windows[source.id] = (1, now + RATE_WINDOW_SECONDS)
            return True

        count, reset_at = window
        if count >= source.rate_limit_per_min:
            logger.debug("Rate limit reached for %s until %.0f", source.id, reset_at)
            return False
        self._windows[source.id] = (count + 1, reset_at)
        return True

    def reset(self) -> None:
        self._windows.clear()


# Shared across fetches in one process
rate_limiter = RateLimiter()
