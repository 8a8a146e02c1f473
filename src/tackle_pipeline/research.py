"""Perplexity research client.

Used to gather up-to-date facts with citations for a brief. Requests go
through ``urllib.request``; an invalid-model 400 falls through to the next
model in :data:`FALLBACK_MODELS`.
"""

from __future__ import annotations

import json
import logging
import re
import urllib.error
import urllib.request

from pydantic import BaseModel, Field

from tackle_pipeline.config import ResearchSectionConfig
from tackle_pipeline.errors import ResearchError

logger = logging.getLogger(__name__)

PERPLEXITY_API_URL = "https://api.perplexity.ai/chat/completions"
FALLBACK_MODELS = ["sonar-pro", "sonar"]

SYSTEM_PROMPT = (
    "You are a helpful research assistant. Provide accurate, well-sourced "
    "information with citations. Focus on factual, verifiable information."
)

_URL_RE = re.compile(r"https?://[^\s)\]]+")


class ResearchResult(BaseModel):
    """An answer plus the URLs it cites."""

    answer: str
    citations: list[str] = Field(default_factory=list)
    model: str = ""


class PerplexityClient:
    """Thin wrapper around the Perplexity chat completions endpoint."""

    def __init__(self, config: ResearchSectionConfig) -> None:
        self.config = config

    def _models(self) -> list[str]:
        models = [self.config.perplexity_model, *FALLBACK_MODELS]
        return list(dict.fromkeys(m for m in models if m))

    def _request(self, model: str, query: str) -> dict:
        body = json.dumps(
            {
                "model": model,
                "messages": [
                    {"role": "system", "content": SYSTEM_PROMPT},
                    {"role": "user", "content": query},
                ],
                "temperature": 0.2,
                "max_tokens": 2000,
            }
        ).encode("utf-8")
        req = urllib.request.Request(
            PERPLEXITY_API_URL,
            data=body,
            method="POST",
            headers={
                "Authorization": f"Bearer {self.config.perplexity_api_key}",
                "Content-Type": "application/json",
            },
        )
        with urllib.request.urlopen(req, timeout=self.config.timeout) as resp:
            return json.loads(resp.read().decode("utf-8"))

    def research(self, query: str) -> ResearchResult:
        """Ask *query* and return the answer with deduplicated citations.

        Raises:
            ResearchError: No API key is configured or every model failed.
        """
        if not self.config.is_configured:
            raise ResearchError("PERPLEXITY_API_KEY is not set")

        logger.info("Researching topic with Perplexity: %s", query)
        last_error: Exception | None = None
        for model in self._models():
            try:
                data = self._request(model, query)
            except urllib.error.HTTPError as exc:
                detail = exc.read().decode("utf-8", errors="replace")
                last_error = exc
                if exc.code == 400 and "model" in detail.lower():
                    logger.debug("Perplexity model %s rejected, trying next", model)
                    continue
                raise ResearchError(f"Perplexity API error: {exc.code} - {detail}") from exc
            except (urllib.error.URLError, TimeoutError, json.JSONDecodeError) as exc:
                raise ResearchError(f"Perplexity request failed: {exc}") from exc

            return _parse_response(data, model)

        raise ResearchError(f"All Perplexity models failed: {last_error}")


def _parse_response(data: dict, model: str) -> ResearchResult:
    choices = data.get("choices") or [{}]
    answer = (choices[0].get("message") or {}).get("content", "") or ""

    citations: list[str] = [c for c in data.get("citations", []) if isinstance(c, str)]
    for match in _URL_RE.finditer(answer):
        citations.append(match.group(0).rstrip(".,;!?"))

    result = ResearchResult(
        answer=answer,
        citations=list(dict.fromkeys(citations)),
        model=data.get("model") or model,
    )
    logger.info("Perplexity research completed with %d citation(s)", len(result.citations))
    return result
