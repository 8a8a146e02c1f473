"""Shared fixtures: every test gets an isolated content tree and a clean environment."""

from __future__ import annotations

from pathlib import Path

import pytest

from tackle_pipeline import config as config_module
from tackle_pipeline.config import PipelineConfig
from tackle_pipeline.models import Fact, FactCategory, FactScope, Source
from tackle_pipeline.source_registry import rate_limiter
from tackle_pipeline.store import ContentPaths

_ENV_VARS = (
    "TACKLE_CONTENT_DIR",
    "TACKLE_DAILY_CAP",
    "REVALIDATION_SECRET",
    "REVALIDATE_SECRET",
    "NEXT_PUBLIC_URL",
    "PERPLEXITY_API_KEY",
)


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch, tmp_path):
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setattr(config_module, "GLOBAL_CONFIG", tmp_path / "no-global-config.toml")
    rate_limiter.reset()


@pytest.fixture
def content_dir(tmp_path: Path) -> Path:
    return tmp_path / "content"


@pytest.fixture
def pipeline_config(content_dir: Path) -> PipelineConfig:
    cfg = PipelineConfig()
    cfg.content.directory = str(content_dir)
    cfg.revalidation.retry_delay_seconds = 0
    return cfg


@pytest.fixture
def paths(content_dir: Path) -> ContentPaths:
    return ContentPaths(content_dir)


@pytest.fixture
def sample_facts() -> list[Fact]:
    return [
        Fact(claim="Snook typically hold near mangrove shorelines", confidence=0.9,
             category=FactCategory.HABITAT, entities=["snook", "florida"]),
        Fact(claim="Live pilchards are a common bait", confidence=0.75,
             category=FactCategory.TECHNIQUE),
        Fact(claim="Feeding picks up during winter cold fronts", confidence=0.6,
             category=FactCategory.SEASON, scope=FactScope.SEASONAL),
        Fact(claim="Adults usually measure 24 to 32 in long", confidence=0.65,
             category=FactCategory.SIZE),
    ]


@pytest.fixture
def sample_sources() -> list[Source]:
    return [Source(label="Field Notes", url="https://example.com/snook")]
