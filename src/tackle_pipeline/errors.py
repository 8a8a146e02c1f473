"""Exceptions raised at the pipeline's module seams.

Per-job errors are caught by the runner and stored on the Job record as
plain strings; only :class:`CircuitBreakerOpen` is allowed to end a run.
"""

from __future__ import annotations


class PipelineError(Exception):
    """Base error for the content pipeline."""


class JobNotFoundError(PipelineError, KeyError):
    """No job with the given id exists in the queue."""


class TopicExistsError(PipelineError):
    """The topic key has already been published."""


class ValidationFailedError(PipelineError):
    """A generated document did not pass the quality gate."""

    def __init__(self, errors: list[str]) -> None:
        self.errors = list(errors)
        super().__init__(f"Validation failed: {', '.join(self.errors)}")


class DuplicateContentError(PipelineError):
    """A document body is identical to one that is already published."""


class ResearchError(PipelineError):
    """An external research or fetch call failed."""


class CircuitBreakerOpen(PipelineError):
    """Too many consecutive job failures; the run must stop."""

    def __init__(self, failures: int, threshold: int) -> None:
        self.failures = failures
        self.threshold = threshold
        super().__init__(
            f"{failures} consecutive failures (threshold {threshold}) - stopping pipeline"
        )


class SourceNotAllowedError(PipelineError):
    """A URL is not covered by an active approved source, or its path is excluded."""


class RateLimitExceededError(PipelineError):
    """An approved source has used up its requests for the current minute."""
