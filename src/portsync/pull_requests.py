"""Pull request metrics: per-PR derivation and full-refresh Port updates."""

from __future__ import annotations

import logging
from typing import Iterable, List, Optional, Sequence

from .errors import SyncError
from .github_client import GitHubClient
from .models import PullRequestDetail, PullRequestMetrics, Repository, Review, SyncSummary
from .port_client import PortClient
from .properties import pull_request_properties
from .stats import elapsed_hours, nth_earliest, success_fraction

logger = logging.getLogger(__name__)

PULL_REQUEST_BLUEPRINT = "githubPullRequest"


def derive_pull_request_metrics(
    repository_name: str,
    detail: PullRequestDetail,
    reviews: Sequence[Review],
) -> PullRequestMetrics:
    """Compute size, lifetime, pickup time and outcome for one closed pull request.

    Business logic:
    - Size is ``additions + deletions``.
    - Lifetime is ``closed_at - created_at`` in hours, ``0`` if either is missing.
    - Pickup time is the earliest review submission minus ``created_at`` in
      hours, ``0`` when there are no reviews or no submission timestamps.
    - Success is ``1`` when the pull request was merged, else ``0``.
    - Review participation is the number of reviews.
    """
    first_review_at = nth_earliest((review.submitted_at for review in reviews), 1)

    return PullRequestMetrics(
        repository_name=repository_name,
        pull_request_id=detail.id,
        size=detail.additions + detail.deletions,
        lifetime=elapsed_hours(detail.created_at, detail.closed_at) or 0.0,
        pickup_time=elapsed_hours(detail.created_at, first_review_at) or 0.0,
        success=1 if detail.merged_at is not None else 0,
        review_participation=len(reviews),
        additions=detail.additions,
        deletions=detail.deletions,
        changed_files=detail.changed_files,
        comments=detail.comments,
        review_comments=detail.review_comments,
    )


def pull_request_success_rate(records: Iterable[PullRequestMetrics]) -> Optional[float]:
    """Return merged / closed across a batch of pull requests, ``None`` when empty."""
    outcomes = [record.success for record in records]
    return success_fraction(sum(outcomes), len(outcomes))


def sync_pull_request_metrics(
    github: GitHubClient,
    port: PortClient,
    repositories: Sequence[Repository],
) -> SyncSummary:
    """Recompute and store metrics for every closed pull request.

    Every pull request is refreshed on every run. A pull request whose detail
    or reviews cannot be fetched, or whose write fails, is logged and
    skipped; a repository whose listing fails is logged and skipped.
    """
    summary = SyncSummary()

    for repository in repositories:
        try:
            pull_requests = github.list_closed_pull_requests(repository)
        except SyncError as exc:
            logger.warning(
                "Error listing closed pull requests for %s: %s",
                repository.name,
                exc,
                extra={"repository": repository.name},
            )
            continue

        repository_records: List[PullRequestMetrics] = []
        for pull_request in pull_requests:
            summary.processed += 1
            try:
                detail = github.get_pull_request(repository, pull_request.number)
                reviews = github.list_reviews(repository.owner, repository.name, pull_request.number)
            except SyncError as exc:
                logger.warning(
                    "Error fetching pull request %s#%s: %s",
                    repository.name,
                    pull_request.number,
                    exc,
                    extra={"repository": repository.name, "number": pull_request.number},
                )
                summary.failed += 1
                continue

            metrics = derive_pull_request_metrics(repository.name, detail, reviews)
            repository_records.append(metrics)
            identifier = f"{repository.name}{metrics.pull_request_id}"

            try:
                port.upsert_properties(PULL_REQUEST_BLUEPRINT, identifier, pull_request_properties(metrics))
            except SyncError as exc:
                logger.error(
                    "Failed to update pull request %s: %s",
                    identifier,
                    exc,
                    extra={"repository": repository.name, "number": pull_request.number},
                )
                summary.failed += 1
                continue

            summary.updated += 1

        logger.info(
            "Processed pull requests for %s",
            repository.name,
            extra={
                "repository": repository.name,
                "pull_requests": len(pull_requests),
                "success_rate": pull_request_success_rate(repository_records),
            },
        )

    return summary
