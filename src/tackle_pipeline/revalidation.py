"""On-demand revalidation of the site's cached pages after a publish.

Revalidation is best effort: a failure is logged and reported as ``False``
but never fails the publish that triggered it.
"""

from __future__ import annotations

import json
import logging
import time
import urllib.error
import urllib.request

from tackle_pipeline.config import RevalidationSectionConfig

logger = logging.getLogger(__name__)


def _post(config: RevalidationSectionConfig, paths: list[str]) -> int:
    body = json.dumps({"paths": paths}).encode("utf-8")
    req = urllib.request.Request(
        config.url,
        data=body,
        method="POST",
        headers={
            "Authorization": f"Bearer {config.secret}",
            "Content-Type": "application/json",
        },
    )
    with urllib.request.urlopen(req, timeout=config.timeout) as resp:
        return resp.status


def trigger_revalidation(paths: list[str], config: RevalidationSectionConfig) -> bool:
    """POST *paths* to the revalidation endpoint, retrying up to ``max_retries`` times.

    Returns True on a 2xx response. Skipped (False) when no secret is set or
    revalidation is disabled.
    """
    if not paths:
        return True
    if not config.is_configured:
        logger.info("Revalidation not configured, skipping: %s", ", ".join(paths))
        return False

    attempts = config.max_retries + 1
    for attempt in range(1, attempts + 1):
        try:
            status = _post(config, paths)
            if 200 <= status < 300:
                logger.info("Revalidated paths: %s", ", ".join(paths))
                return True
            logger.warning("Revalidation returned HTTP %s (attempt %d/%d)", status, attempt, attempts)
        except (urllib.error.URLError, TimeoutError, OSError) as exc:
            logger.warning("Revalidation error (attempt %d/%d): %s", attempt, attempts, exc)
        if attempt < attempts and config.retry_delay_seconds > 0:
            time.sleep(config.retry_delay_seconds)

    logger.warning("Revalidation failed for paths: %s", ", ".join(paths))
    return False
