"""Unified configuration loaded from .tackle-pipeline.toml, env vars, and CLI flags.

Loading order: defaults → TOML file → env vars → CLI flags.
"""

from __future__ import annotations

import logging
import os
import tomllib
from pathlib import Path

from pydantic import BaseModel, Field

from tackle_pipeline.models import PageType, SourceRegistryEntry
from tackle_pipeline.source_registry import default_sources

logger = logging.getLogger(__name__)

CONFIG_FILENAME = ".tackle-pipeline.toml"
CONFIG_SEARCH_PATHS = [
    Path("."),
]
GLOBAL_CONFIG = Path.home() / ".config" / "tackle-pipeline" / "config.toml"

DEFAULT_DISCLAIMERS = [
    "Regulations change, so always verify with official sources.",
]

# Phrases that must never appear in a published page
FORBIDDEN_PHRASES = [
    "official regulation",
    "legal advice",
    "official guide",
    "guaranteed to",
    "always legal",
]

# Targets handed to writers in the brief; the validator floor lives in
# ValidationSectionConfig.min_word_counts.
TARGET_WORD_COUNTS: dict[str, int] = {
    PageType.BLOG: 900,
    PageType.SPECIES: 1200,
    PageType.HOW_TO: 1200,
    PageType.LOCATION: 1000,
}


class ContentSectionConfig(BaseModel):
    """[content] section."""

    directory: str = "content"
    system_dir: str = "_system"


class ScheduleSectionConfig(BaseModel):
    """[schedule] section."""

    daily_publish_cap: int = 20
    failure_stop_threshold: int = 3
    default_max_attempts: int = 3


class ValidationSectionConfig(BaseModel):
    """[validation] section."""

    min_word_counts: dict[str, int] = Field(
        default_factory=lambda: {
            PageType.BLOG.value: 300,
            PageType.SPECIES.value: 300,
            PageType.HOW_TO.value: 300,
            PageType.LOCATION.value: 300,
        }
    )
    min_h2_sections: int = 4
    min_faqs: int = 5
    max_faqs: int = 8
    min_internal_links: int = 3
    forbidden_phrases: list[str] = Field(default_factory=lambda: list(FORBIDDEN_PHRASES))

    def min_words_for(self, page_type: str) -> int:
        return self.min_word_counts.get(str(page_type), 300)


class RevalidationSectionConfig(BaseModel):
    """[revalidation] section."""

    enabled: bool = True
    site_url: str = "http://localhost:3000"
    endpoint: str = "/api/revalidate"
    secret: str = ""
    max_retries: int = 2
    retry_delay_seconds: float = 1.0
    timeout: int = 15

    @property
    def url(self) -> str:
        return f"{self.site_url.rstrip('/')}{self.endpoint}"

    @property
    def is_configured(self) -> bool:
        return self.enabled and bool(self.secret)


class ResearchSectionConfig(BaseModel):
    """[research] section."""

    perplexity_api_key: str = ""
    perplexity_model: str = "sonar"
    timeout: int = 60
    source_urls: list[str] = Field(default_factory=list)
    sources: list[SourceRegistryEntry] = Field(default_factory=default_sources)

    @property
    def is_configured(self) -> bool:
        return bool(self.perplexity_api_key)


class AuthorSectionConfig(BaseModel):
    """[author] section."""

    name: str = "Tackle Team"
    url: str = "/about"


class PipelineConfig(BaseModel):
    """Top-level configuration model for the content pipeline."""

    content: ContentSectionConfig = Field(default_factory=ContentSectionConfig)
    schedule: ScheduleSectionConfig = Field(default_factory=ScheduleSectionConfig)
    validation: ValidationSectionConfig = Field(default_factory=ValidationSectionConfig)
    revalidation: RevalidationSectionConfig = Field(default_factory=RevalidationSectionConfig)
    research: ResearchSectionConfig = Field(default_factory=ResearchSectionConfig)
    author: AuthorSectionConfig = Field(default_factory=AuthorSectionConfig)

    @property
    def content_dir(self) -> Path:
        return Path(self.content.directory)

    @property
    def system_dir(self) -> Path:
        return self.content_dir / self.content.system_dir


def load_config(path: str | Path | None = None) -> PipelineConfig:
    """Load configuration from a TOML file.

    Search order:
    1. Explicit path (if provided)
    2. .tackle-pipeline.toml in CWD
    3. ~/.config/tackle-pipeline/config.toml

    Then overlay environment variables.

    Args:
        path: Explicit path to a TOML file.

    Returns:
        Merged PipelineConfig.
    """
    data: dict[str, object] = {}

    if path is not None:
        toml_path = Path(path)
        if toml_path.exists():
            data = _load_toml(toml_path)
        else:
            logger.warning("Config file not found: %s", toml_path)
    else:
        for search_dir in CONFIG_SEARCH_PATHS:
            candidate = search_dir / CONFIG_FILENAME
            if candidate.exists():
                data = _load_toml(candidate)
                logger.info("Loaded config from %s", candidate)
                break
        if not data and GLOBAL_CONFIG.exists():
            data = _load_toml(GLOBAL_CONFIG)
            logger.info("Loaded config from %s", GLOBAL_CONFIG)

    config = PipelineConfig.model_validate(data) if data else PipelineConfig()

    return _apply_env_vars(config)


def merge_cli_overrides(config: PipelineConfig, **cli_kwargs: object) -> PipelineConfig:
    """Overlay explicitly-set CLI flags onto the config.

    Only overrides values where the CLI flag was explicitly provided
    (i.e., not None).
    """
    data = config.model_dump()

    mapping: dict[str, tuple[str, str]] = {
        "content_dir": ("content", "directory"),
    }

    for key, value in cli_kwargs.items():
        if value is None:
            continue
        if key in mapping:
            section, field = mapping[key]
            data[section][field] = str(value) if isinstance(value, Path) else value

    return PipelineConfig.model_validate(data)


def _load_toml(path: Path) -> dict[str, object]:
    """Load a TOML file and return the data dict."""
    try:
        with open(path, "rb") as f:
            return tomllib.load(f)
    except (tomllib.TOMLDecodeError, OSError) as exc:
        logger.warning("Failed to parse %s: %s", path, exc)
        return {}


def _apply_env_vars(config: PipelineConfig) -> PipelineConfig:
    """Apply environment variable overrides to config."""
    data = config.model_dump()

    env_mapping: dict[str, tuple[str, str]] = {
        "TACKLE_CONTENT_DIR": ("content", "directory"),
        "NEXT_PUBLIC_URL": ("revalidation", "site_url"),
        "PERPLEXITY_API_KEY": ("research", "perplexity_api_key"),
    }

    for env_var, (section, field) in env_mapping.items():
        value = os.environ.get(env_var)
        if value is not None:
            data[section][field] = value

    secret = os.environ.get("REVALIDATION_SECRET") or os.environ.get("REVALIDATE_SECRET")
    if secret:
        data["revalidation"]["secret"] = secret

    cap_raw = os.environ.get("TACKLE_DAILY_CAP")
    if cap_raw is not None:
        try:
            data["schedule"]["daily_publish_cap"] = int(cap_raw)
        except ValueError:
            logger.warning("Ignoring non-integer TACKLE_DAILY_CAP=%r", cap_raw)

    return PipelineConfig.model_validate(data)
