"""Tests for fact sourcing: page fetches and Perplexity research."""

from __future__ import annotations

import io
import json
import urllib.error
from unittest.mock import MagicMock, patch

import pytest

from tackle_pipeline.config import PipelineConfig, ResearchSectionConfig
from tackle_pipeline.errors import RateLimitExceededError, ResearchError, SourceNotAllowedError
from tackle_pipeline.models import SourceRegistryEntry
from tackle_pipeline.research import PERPLEXITY_API_URL, PerplexityClient
from tackle_pipeline.source_registry import RateLimiter
from tackle_pipeline.sources import (
    PLACEHOLDER_URL,
    USER_AGENT,
    fetch_url,
    gather_facts,
    placeholder_facts,
)

SNOOK_HTML = b"""
<html><body>
<h1>Snook Fishing in Florida</h1>
<p>Snook typically hold along mangrove shorelines when the tide is high.</p>
<ul><li>Live pilchards are the most reliable bait around bridges</li></ul>
</body></html>
"""


def _response(body: bytes) -> MagicMock:
    resp = MagicMock()
    resp.read.return_value = body
    resp.status = 200
    resp.__enter__ = lambda s: s
    resp.__exit__ = MagicMock(return_value=False)
    return resp


def _perplexity(answer: str, citations: list[str], model: str = "sonar") -> MagicMock:
    payload = {
        "model": model,
        "choices": [{"message": {"content": answer}}],
        "citations": citations,
    }
    return _response(json.dumps(payload).encode("utf-8"))


def _model_error() -> urllib.error.HTTPError:
    return urllib.error.HTTPError(
        PERPLEXITY_API_URL, 400, "Bad Request", {}, io.BytesIO(b"Invalid model 'sonar-huge'")
    )


@pytest.fixture
def research_config() -> ResearchSectionConfig:
    return ResearchSectionConfig(perplexity_api_key="pplx-test", perplexity_model="sonar-huge")


SNOOK_URL = "https://myfwc.com/wildlifehabitats/profiles/saltwater/snook"


class TestFetchUrl:
    def test_fetch(self):
        with patch("urllib.request.urlopen", return_value=_response(SNOOK_HTML)) as mock_urlopen:
            doc = fetch_url(SNOOK_URL)

        req = mock_urlopen.call_args[0][0]
        assert req.get_header("User-agent") == USER_AGENT
        assert doc.url == SNOOK_URL
        assert "<h1>" in doc.html
        assert "Snook Fishing in Florida" in doc.text
        assert doc.source_id == "src-006"
        assert doc.tags == ["species-biology"]

    def test_url_is_normalized_before_fetch(self):
        with patch("urllib.request.urlopen", return_value=_response(SNOOK_HTML)) as mock_urlopen:
            doc = fetch_url(f"{SNOOK_URL}/?utm_source=news&page=2#diet")

        assert mock_urlopen.call_args[0][0].full_url == f"{SNOOK_URL}?page=2"
        assert doc.url == f"{SNOOK_URL}?page=2"

    def test_errors_propagate(self):
        with patch("urllib.request.urlopen", side_effect=urllib.error.URLError("offline")):
            with pytest.raises(urllib.error.URLError):
                fetch_url(SNOOK_URL)

    @pytest.mark.parametrize(
        ("url", "message"),
        [
            ("https://myfwc.com/fishing/saltwater/regulations/snook", "URL not allowed"),
            ("https://myfwc.com/hunting/deer", "URL not allowed"),
            ("https://random-bait-blog.net/snook", "not from an approved source"),
            ("https://example.com/guides/snook", "not from an approved source"),
        ],
    )
    def test_rejected_urls_are_never_requested(self, url, message):
        with patch("urllib.request.urlopen") as mock_urlopen:
            with pytest.raises(SourceNotAllowedError, match=message):
                fetch_url(url)
        mock_urlopen.assert_not_called()

    def test_rate_limit(self):
        source = SourceRegistryEntry(
            id="src-test", name="Test Source", homepage="https://fish.test", rate_limit_per_min=2
        )
        limiter = RateLimiter(clock=lambda: 100.0)
        with patch("urllib.request.urlopen", return_value=_response(SNOOK_HTML)) as mock_urlopen:
            fetch_url("https://fish.test/a", [source], limiter=limiter)
            fetch_url("https://fish.test/b", [source], limiter=limiter)
            with pytest.raises(RateLimitExceededError, match="Test Source"):
                fetch_url("https://fish.test/c", [source], limiter=limiter)
        assert mock_urlopen.call_count == 2


class TestGatherFacts:
    def test_placeholder_without_sources(self):
        facts, sources = gather_facts("Snook Fishing Guide", PipelineConfig())
        expected = placeholder_facts()[0][0]
        assert len(facts) == 1
        assert facts[0].claim == expected.claim == "Sample fact extracted from source"
        assert facts[0].confidence == expected.confidence
        assert facts[0].category == expected.category
        assert facts[0].supporting_sources == [PLACEHOLDER_URL]
        assert [s.url for s in sources] == [PLACEHOLDER_URL]

    def test_facts_from_url(self):
        with patch("urllib.request.urlopen", return_value=_response(SNOOK_HTML)):
            facts, sources = gather_facts("Snook Fishing Guide", PipelineConfig(), [SNOOK_URL])

        claims = [f.claim for f in facts]
        assert "Live pilchards are the most reliable bait around bridges" in claims
        assert sources[0].url == SNOOK_URL
        assert sources[0].label == "Snook Fishing in Florida"
        assert sources[0].publisher == "myfwc.com"
        assert all("snook" in f.entities for f in facts)
        assert all("florida" in f.entities for f in facts)

    def test_failed_fetch_is_skipped(self, caplog):
        down = "https://myfwc.com/fishing/saltwater/recreational/tarpon"
        side_effect = [urllib.error.URLError("offline"), _response(SNOOK_HTML)]
        with patch("urllib.request.urlopen", side_effect=side_effect):
            facts, sources = gather_facts("Snook", PipelineConfig(), [down, SNOOK_URL])
        assert [s.url for s in sources] == [SNOOK_URL]
        assert facts
        assert f"Failed to fetch source: {down}" in caplog.text

    def test_disallowed_path_is_skipped(self, caplog):
        with patch("urllib.request.urlopen") as mock_urlopen:
            facts, sources = gather_facts(
                "Snook", PipelineConfig(), ["https://myfwc.com/fishing/saltwater/regulations/snook"]
            )
        mock_urlopen.assert_not_called()
        assert [s.url for s in sources] == [PLACEHOLDER_URL]
        assert facts[0].claim == "Sample fact extracted from source"
        assert "URL not allowed" in caplog.text

    def test_configured_registry_is_used(self):
        config = PipelineConfig()
        config.research.sources = [
            SourceRegistryEntry(id="src-100", name="Gulf Notes", homepage="https://gulf.test")
        ]
        with patch("urllib.request.urlopen", return_value=_response(SNOOK_HTML)) as mock_urlopen:
            _, sources = gather_facts("Snook", config, ["https://gulf.test/snook", SNOOK_URL])
        assert mock_urlopen.call_count == 1
        assert [s.url for s in sources] == ["https://gulf.test/snook"]

    def test_configured_source_urls(self):
        config = PipelineConfig()
        config.research.source_urls = [SNOOK_URL]
        with patch("urllib.request.urlopen", return_value=_response(SNOOK_HTML)) as mock_urlopen:
            facts, _ = gather_facts("Snook", config)
        assert mock_urlopen.call_count == 1
        assert facts[0].claim != "Sample fact extracted from source"

    def test_research_citations(self):
        config = PipelineConfig()
        config.research.perplexity_api_key = "pplx-test"
        answer = (
            "Snook usually feed at night around dock lights. "
            "They typically prefer water warmer than 60 degrees."
        )
        with patch(
            "urllib.request.urlopen",
            return_value=_perplexity(answer, ["https://myfwc.com/snook", "https://example.org/a"]),
        ):
            facts, sources = gather_facts("Snook Fishing Guide", config)

        assert [s.url for s in sources] == ["https://myfwc.com/snook", "https://example.org/a"]
        assert sources[0].label == "myfwc.com"
        assert facts
        assert all(f.supporting_sources == ["https://myfwc.com/snook", "https://example.org/a"] for f in facts)

    def test_research_failure_falls_back_to_placeholder(self):
        config = PipelineConfig()
        config.research.perplexity_api_key = "pplx-test"
        with patch("urllib.request.urlopen", side_effect=urllib.error.URLError("offline")):
            facts, _ = gather_facts("Snook", config)
        assert facts[0].claim == "Sample fact extracted from source"


class TestPerplexityClient:
    def test_requires_key(self):
        with pytest.raises(ResearchError, match="PERPLEXITY_API_KEY"):
            PerplexityClient(ResearchSectionConfig()).research("snook")

    def test_request_and_parse(self, research_config):
        answer = "Snook spawn in summer, see https://myfwc.com/snook."
        with patch(
            "urllib.request.urlopen",
            return_value=_perplexity(answer, ["https://example.org/a"], model="sonar-huge"),
        ) as mock_urlopen:
            result = PerplexityClient(research_config).research("When do snook spawn?")

        req = mock_urlopen.call_args[0][0]
        assert req.full_url == PERPLEXITY_API_URL
        assert req.get_header("Authorization") == "Bearer pplx-test"
        body = json.loads(req.data)
        assert body["model"] == "sonar-huge"
        assert body["messages"][-1] == {"role": "user", "content": "When do snook spawn?"}
        assert result.answer == answer
        assert result.citations == ["https://example.org/a", "https://myfwc.com/snook"]
        assert result.model == "sonar-huge"

    def test_invalid_model_falls_back(self, research_config):
        side_effect = [_model_error(), _perplexity("Snook like structure.", [], model="sonar-pro")]
        with patch("urllib.request.urlopen", side_effect=side_effect) as mock_urlopen:
            result = PerplexityClient(research_config).research("snook")

        assert mock_urlopen.call_count == 2
        second = json.loads(mock_urlopen.call_args_list[1][0][0].data)
        assert second["model"] == "sonar-pro"
        assert result.model == "sonar-pro"

    def test_all_models_rejected(self, research_config):
        with patch("urllib.request.urlopen", side_effect=[_model_error() for _ in range(3)]):
            with pytest.raises(ResearchError, match="All Perplexity models failed"):
                PerplexityClient(research_config).research("snook")

    def test_other_http_error_raises(self, research_config):
        error = urllib.error.HTTPError(
            PERPLEXITY_API_URL, 401, "Unauthorized", {}, io.BytesIO(b"bad key")
        )
        with patch("urllib.request.urlopen", side_effect=error):
            with pytest.raises(ResearchError, match="401"):
                PerplexityClient(research_config).research("snook")

    def test_network_error_raises(self, research_config):
        with patch("urllib.request.urlopen", side_effect=urllib.error.URLError("offline")):
            with pytest.raises(ResearchError, match="request failed"):
                PerplexityClient(research_config).research("snook")
