"""Domain models for GitHub metric derivation and Port catalog updates.

Raw event dataclasses intentionally model only the subset of GitHub payload
fields that metric derivation needs. Derived records use ``None`` for absent
values; absent values are never written to the portal.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Optional


@dataclass(slots=True)
class Repository:
    """Represents a repository returned by the organization listing."""

    id: int
    name: str
    owner: str
    default_branch: str = "main"


@dataclass(slots=True)
class Commit:
    """Represents a commit authored by a developer."""

    sha: str
    author_login: str
    authored_at: Optional[datetime]


@dataclass(slots=True)
class PullRequest:
    """Represents pull request summary data from listings and searches."""

    id: int
    number: int
    title: str
    author_login: str
    created_at: Optional[datetime]
    closed_at: Optional[datetime] = None
    merged_at: Optional[datetime] = None


@dataclass(slots=True)
class PullRequestDetail:
    """Represents the per-pull-request detail payload used for size metrics."""

    id: int
    number: int
    created_at: Optional[datetime]
    closed_at: Optional[datetime]
    merged_at: Optional[datetime]
    additions: int = 0
    deletions: int = 0
    changed_files: int = 0
    comments: int = 0
    review_comments: int = 0


@dataclass(slots=True)
class Review:
    """Represents a single pull request review submission."""

    id: int
    reviewer_login: str
    state: str
    submitted_at: Optional[datetime]


@dataclass(slots=True)
class WorkflowRun:
    """Represents one GitHub Actions workflow run."""

    id: int
    workflow_id: int
    name: str
    conclusion: str
    run_number: int
    started_at: Optional[datetime]
    completed_at: Optional[datetime]
    event: str = ""


@dataclass(slots=True)
class MemberAddEvent:
    """Represents an ``org.add_member`` audit-log entry (the join date)."""

    user: str
    user_id: Optional[int]
    created_at: datetime


@dataclass(slots=True)
class RateLimitStatus:
    """Represents the core REST rate-limit bucket."""

    limit: int
    remaining: int
    used: int
    reset_at: datetime


@dataclass(slots=True)
class PortalEntity:
    """Represents a Port catalog entity.

    Only ``properties`` is ever rewritten; ``identifier``, ``title`` and
    ``relations`` are passed through unchanged on upsert.
    """

    identifier: str
    title: Optional[str] = None
    properties: Dict[str, Any] = field(default_factory=dict)
    relations: Dict[str, Any] = field(default_factory=dict)


@dataclass(slots=True)
class DeveloperOnboardingRecord:
    """Onboarding anchors and time-since-join durations (hours) for one login."""

    login: str
    join_date: datetime
    first_commit_date: Optional[datetime] = None
    tenth_commit_date: Optional[datetime] = None
    first_pr_date: Optional[datetime] = None
    tenth_pr_date: Optional[datetime] = None
    first_review_date: Optional[datetime] = None
    time_to_first_commit: Optional[float] = None
    time_to_10th_commit: Optional[float] = None
    time_to_first_pr: Optional[float] = None
    time_to_10th_pr: Optional[float] = None
    initial_review_response_time: Optional[float] = None

    def has_any_anchor(self) -> bool:
        """Return whether at least one anchor event was found."""
        return any(
            anchor is not None
            for anchor in (
                self.first_commit_date,
                self.tenth_commit_date,
                self.first_pr_date,
                self.tenth_pr_date,
                self.first_review_date,
            )
        )


@dataclass(slots=True)
class PullRequestMetrics:
    """Per-pull-request metrics; durations are in hours."""

    repository_name: str
    pull_request_id: int
    size: int
    lifetime: float
    pickup_time: float
    success: int
    review_participation: int
    additions: int
    deletions: int
    changed_files: int
    comments: int
    review_comments: int


@dataclass(slots=True)
class WindowStats:
    """Workflow statistics for one trailing window; durations are in seconds."""

    window_days: int
    total_runs: int
    total_failures: int
    median_duration: Optional[float] = None
    min_duration: Optional[float] = None
    max_duration: Optional[float] = None
    mean_duration: Optional[float] = None
    success_rate: Optional[float] = None


@dataclass(slots=True)
class WorkflowAggregate:
    """Windowed statistics for one workflow of one repository."""

    repository_name: str
    workflow_id: int
    workflow_name: str
    last_30_days: WindowStats
    last_90_days: WindowStats

    @property
    def identifier(self) -> str:
        """Port entity identifier of the workflow."""
        return f"{self.repository_name}{self.workflow_id}"


@dataclass(slots=True)
class SyncSummary:
    """Counts reported by a controller run."""

    processed: int = 0
    updated: int = 0
    skipped: int = 0
    failed: int = 0
