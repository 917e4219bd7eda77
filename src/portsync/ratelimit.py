"""Pre-flight check of GitHub API rate-limit headroom."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Optional

from .errors import RateLimitError
from .github_client import GitHubClient
from .models import RateLimitStatus

logger = logging.getLogger(__name__)


def check_rate_limit(github: GitHubClient, now: Optional[datetime] = None) -> RateLimitStatus:
    """Log the current rate-limit status and fail when no requests remain.

    Raises:
        RateLimitError: If the remaining request count is zero.
    """
    status = github.get_rate_limit_status()
    reference_time = now or datetime.now(timezone.utc)
    seconds_until_reset = max(0, int((status.reset_at - reference_time).total_seconds()))

    logger.info(
        "%d requests left, used %d/%d. Reset at %s (%ds)",
        status.remaining,
        status.used,
        status.limit,
        status.reset_at.isoformat(),
        seconds_until_reset,
    )

    if status.remaining <= 0:
        raise RateLimitError(
            f"GitHub rate limit exceeded; resets at {status.reset_at.isoformat()} "
            f"in {seconds_until_reset}s."
        )

    return status
