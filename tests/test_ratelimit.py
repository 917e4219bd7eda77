"""Tests for the rate-limit pre-flight check."""

import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path
from unittest.mock import Mock

import pytest

# Add src directory to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from portsync.errors import RateLimitError
from portsync.models import RateLimitStatus
from portsync.ratelimit import check_rate_limit

NOW = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)


def _github(remaining: int) -> Mock:
    github = Mock()
    github.get_rate_limit_status.return_value = RateLimitStatus(
        limit=5000,
        remaining=remaining,
        used=5000 - remaining,
        reset_at=NOW + timedelta(minutes=10),
    )
    return github


def test_check_rate_limit_with_headroom_returns_status(caplog):
    """Verify the status is logged and returned when requests remain."""
    with caplog.at_level("INFO", logger="portsync.ratelimit"):
        status = check_rate_limit(_github(remaining=120), now=NOW)

    assert status.remaining == 120
    assert "120 requests left, used 4880/5000" in caplog.text
    assert "(600s)" in caplog.text


def test_check_rate_limit_exhausted_raises():
    """Verify zero remaining requests is a fatal precondition."""
    with pytest.raises(RateLimitError):
        check_rate_limit(_github(remaining=0), now=NOW)
