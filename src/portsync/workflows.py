"""GitHub Actions workflow metrics over trailing 30 and 90 day windows."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Dict, Iterable, List, Optional, Sequence

from .errors import SyncError
from .github_client import GitHubClient
from .models import Repository, SyncSummary, WindowStats, WorkflowAggregate, WorkflowRun
from .port_client import PortClient
from .properties import workflow_properties
from .stats import elapsed_seconds, success_fraction, summarize_durations

logger = logging.getLogger(__name__)

WORKFLOW_BLUEPRINT = "githubWorkflow"
SUCCESS_CONCLUSION = "success"
WINDOWS_DAYS = (30, 90)
_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def run_duration_seconds(run: WorkflowRun) -> float:
    """Return ``completed_at - started_at`` in seconds, ``0`` if either is missing."""
    return elapsed_seconds(run.started_at, run.completed_at) or 0.0


def group_runs_by_workflow(runs: Iterable[WorkflowRun]) -> Dict[int, List[WorkflowRun]]:
    """Group runs by workflow id, each group sorted by start time.

    Runs without a start time sort last.
    """
    groups: Dict[int, List[WorkflowRun]] = {}
    for run in runs:
        groups.setdefault(run.workflow_id, []).append(run)

    for group in groups.values():
        group.sort(key=lambda run: (run.started_at is None, run.started_at or _EPOCH))
    return groups


def summarize_window(ordered_runs: Sequence[WorkflowRun], now: datetime, window_days: int) -> WindowStats:
    """Compute statistics for runs started within ``window_days`` before ``now``.

    Business logic:
    - A run is in the window when ``started_at > now - window_days``.
    - Totals count every run in the window; failures are runs whose
      conclusion is not ``success``.
    - Duration statistics use only successful runs. The median is the
      successful run at index ``n // 2`` in start-time order.
    - With no successful runs the duration statistics are ``None``; with no
      runs at all the success rate is ``None`` as well.
    """
    cutoff = now - timedelta(days=window_days)
    window_runs = [run for run in ordered_runs if run.started_at is not None and run.started_at > cutoff]
    success_runs = [run for run in window_runs if run.conclusion == SUCCESS_CONCLUSION]
    durations = summarize_durations([run_duration_seconds(run) for run in success_runs])

    return WindowStats(
        window_days=window_days,
        total_runs=len(window_runs),
        total_failures=len(window_runs) - len(success_runs),
        median_duration=durations["median"],
        min_duration=durations["min"],
        max_duration=durations["max"],
        mean_duration=durations["mean"],
        success_rate=success_fraction(len(success_runs), len(window_runs)),
    )


def derive_workflow_aggregates(
    repository_name: str,
    runs: Iterable[WorkflowRun],
    now: datetime,
) -> List[WorkflowAggregate]:
    """Compute 30 and 90 day aggregates for every workflow of a repository.

    ``now`` is the reference time of both windows; the same runs produce
    different aggregates once the windows roll forward.
    """
    aggregates: List[WorkflowAggregate] = []

    for workflow_id, ordered_runs in group_runs_by_workflow(runs).items():
        last_30_days, last_90_days = (summarize_window(ordered_runs, now, days) for days in WINDOWS_DAYS)
        aggregates.append(
            WorkflowAggregate(
                repository_name=repository_name,
                workflow_id=workflow_id,
                workflow_name=ordered_runs[0].name,
                last_30_days=last_30_days,
                last_90_days=last_90_days,
            )
        )

    return aggregates


def sync_workflow_metrics(
    github: GitHubClient,
    port: PortClient,
    repositories: Sequence[Repository],
    now: Optional[datetime] = None,
) -> SyncSummary:
    """Recompute and store windowed statistics for every workflow.

    Runs are read from each repository's default branch. A repository whose
    runs cannot be listed, or a workflow whose write fails, is logged and
    skipped.
    """
    summary = SyncSummary()
    reference_time = now or datetime.now(timezone.utc)

    for repository in repositories:
        try:
            runs = github.list_workflow_runs(repository, repository.default_branch)
        except SyncError as exc:
            logger.warning(
                "Error listing workflow runs for %s: %s",
                repository.name,
                exc,
                extra={"repository": repository.name},
            )
            continue

        for aggregate in derive_workflow_aggregates(repository.name, runs, reference_time):
            summary.processed += 1
            try:
                port.upsert_properties(WORKFLOW_BLUEPRINT, aggregate.identifier, workflow_properties(aggregate))
            except SyncError as exc:
                logger.error(
                    "Failed to update workflow %s: %s",
                    aggregate.identifier,
                    exc,
                    extra={"repository": repository.name, "workflow_id": aggregate.workflow_id},
                )
                summary.failed += 1
                continue

            logger.debug(
                "Updated workflow %s",
                aggregate.identifier,
                extra={
                    "workflow_name": aggregate.workflow_name,
                    "total_runs_30": aggregate.last_30_days.total_runs,
                    "total_runs_90": aggregate.last_90_days.total_runs,
                },
            )
            summary.updated += 1

    return summary
