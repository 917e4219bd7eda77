"""Developer onboarding metrics: derivation and incremental Port updates.

Onboarding anchors are historical facts that stabilize once reached, so only
developers whose Port entity is missing at least one onboarding property are
recomputed. Durations are hours since the developer's org-join date.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Sequence

from .errors import SyncError
from .github_client import GitHubClient
from .models import (
    Commit,
    DeveloperOnboardingRecord,
    MemberAddEvent,
    PortalEntity,
    PullRequest,
    Repository,
    Review,
    SyncSummary,
)
from .port_client import PortClient
from .properties import REQUIRED_ONBOARDING_PROPERTIES, onboarding_properties
from .stats import elapsed_hours, nth_earliest

logger = logging.getLogger(__name__)

USER_BLUEPRINT = "githubUser"


def derive_onboarding_stats(
    login: str,
    join_date: datetime,
    commits: Iterable[Commit],
    pull_requests: Iterable[PullRequest],
    reviews: Iterable[Review],
) -> DeveloperOnboardingRecord:
    """Compute onboarding anchors and time-since-join durations for one developer.

    Business logic:
    - Commits are ordered by author date, pull requests by creation date.
    - The 1st anchor is the earliest event; the 10th exists only when at
      least ten events were found.
    - The first review is the earliest review submission; no reviews means
      no review anchor.
    - Each duration is ``anchor - join_date`` in hours and is ``None`` when
      its anchor is absent. Durations are not clamped.
    """
    commit_dates = [commit.authored_at for commit in commits]
    pr_dates = [pr.created_at for pr in pull_requests]
    review_dates = [review.submitted_at for review in reviews]

    first_commit = nth_earliest(commit_dates, 1)
    tenth_commit = nth_earliest(commit_dates, 10)
    first_pr = nth_earliest(pr_dates, 1)
    tenth_pr = nth_earliest(pr_dates, 10)
    first_review = nth_earliest(review_dates, 1)

    return DeveloperOnboardingRecord(
        login=login,
        join_date=join_date,
        first_commit_date=first_commit,
        tenth_commit_date=tenth_commit,
        first_pr_date=first_pr,
        tenth_pr_date=tenth_pr,
        first_review_date=first_review,
        time_to_first_commit=elapsed_hours(join_date, first_commit),
        time_to_10th_commit=elapsed_hours(join_date, tenth_commit),
        time_to_first_pr=elapsed_hours(join_date, first_pr),
        time_to_10th_pr=elapsed_hours(join_date, tenth_pr),
        initial_review_response_time=elapsed_hours(join_date, first_review),
    )


def has_complete_onboarding_metrics(entity: PortalEntity) -> bool:
    """Return whether every onboarding property is populated on the entity.

    ``None`` and empty strings count as missing; numeric zero is a value.
    """
    for name in REQUIRED_ONBOARDING_PROPERTIES:
        value = entity.properties.get(name)
        if value is None or value == "":
            return False
    return True


def build_join_dates(events: Iterable[MemberAddEvent]) -> Dict[str, datetime]:
    """Map each login to its earliest ``org.add_member`` timestamp.

    A user who left and rejoined keeps the first join as onboarding origin.
    """
    join_dates: Dict[str, datetime] = {}
    for event in events:
        current = join_dates.get(event.user)
        if current is None or event.created_at < current:
            join_dates[event.user] = event.created_at
    return join_dates


def collect_developer_stats(
    github: GitHubClient,
    organizations: Sequence[str],
    repositories: Sequence[Repository],
    login: str,
    join_date: datetime,
) -> DeveloperOnboardingRecord:
    """Fetch a developer's events across organizations and derive onboarding stats.

    A failing repository or organization query is logged and its events are
    left out; the remaining events still produce a (partial) record.
    """
    commits: List[Commit] = []
    pull_requests: List[PullRequest] = []
    reviews: List[Review] = []
    organization_names = {organization.lower() for organization in organizations}

    for repository in repositories:
        if repository.owner.lower() not in organization_names:
            continue
        try:
            commits.extend(github.list_commits(repository.owner, repository.name, login))
        except SyncError as exc:
            logger.warning(
                "Error fetching commits for %s: %s",
                repository.name,
                exc,
                extra={"login": login, "repository": repository.name},
            )

    for organization in organizations:
        try:
            pull_requests.extend(github.search_merged_pull_requests(organization, login))
        except SyncError as exc:
            logger.warning(
                "Error fetching merged pull requests for %s in %s: %s",
                login,
                organization,
                exc,
                extra={"login": login, "organization": organization},
            )

        try:
            reviews.extend(github.search_approved_reviews(organization, login))
        except SyncError as exc:
            logger.warning(
                "Error fetching approved reviews for %s in %s: %s",
                login,
                organization,
                exc,
                extra={"login": login, "organization": organization},
            )

    logger.debug(
        "Collected onboarding events",
        extra={
            "login": login,
            "commits": len(commits),
            "pull_requests": len(pull_requests),
            "reviews": len(reviews),
        },
    )
    return derive_onboarding_stats(login, join_date, commits, pull_requests, reviews)


def sync_onboarding_metrics(
    github: GitHubClient,
    port: PortClient,
    enterprise: str,
    organizations: Sequence[str],
    repositories: Optional[Sequence[Repository]] = None,
) -> SyncSummary:
    """Compute and store onboarding metrics for developers missing any of them.

    Users are processed one at a time. For each incomplete user:
    - No join date in the audit log: skipped.
    - No anchor event found at all: skipped without a write.
    - Otherwise the populated derived properties are merged over the stored
      properties and the entity is upserted with its title and relations.

    A failed write is logged and the next user is processed.
    """
    summary = SyncSummary()

    users = port.get_entities(USER_BLUEPRINT)
    join_dates = build_join_dates(github.list_audit_log_add_member_events(enterprise))
    if repositories is None:
        repositories = github.list_repositories(organizations)
    logger.info("Got %d repos", len(repositories))

    pending = [user for user in users if not has_complete_onboarding_metrics(user)]
    logger.info("Found %d users without complete onboarding metrics", len(pending))

    for user in pending:
        summary.processed += 1
        join_date = join_dates.get(user.identifier)
        if join_date is None:
            logger.info("No join date found for %s. Skipping...", user.identifier)
            summary.skipped += 1
            continue

        logger.info("Calculating stats for %s with join date %s", user.identifier, join_date.isoformat())
        record = collect_developer_stats(github, organizations, repositories, user.identifier, join_date)
        if not record.has_any_anchor():
            logger.info("No onboarding activity found for %s. Skipping...", user.identifier)
            summary.skipped += 1
            continue

        properties = dict(user.properties)
        properties.update(onboarding_properties(record))

        try:
            port.upsert_entity(USER_BLUEPRINT, user.identifier, user.title, properties, user.relations)
        except SyncError as exc:
            logger.error(
                "Failed to update user %s: %s",
                user.identifier,
                exc,
                extra={"login": user.identifier},
            )
            summary.failed += 1
            continue

        logger.info("Updated onboarding metrics for user %s", user.identifier)
        summary.updated += 1

    return summary
