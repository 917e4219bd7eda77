"""Tests for workflow window statistics and the refresh loop."""

import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path
from unittest.mock import Mock

import pytest

# Add src directory to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from portsync.errors import ApiError
from portsync.models import Repository, WorkflowRun
from portsync.workflows import (
    WORKFLOW_BLUEPRINT,
    derive_workflow_aggregates,
    group_runs_by_workflow,
    run_duration_seconds,
    summarize_window,
    sync_workflow_metrics,
)

NOW = datetime(2026, 6, 30, 12, 0, 0, tzinfo=timezone.utc)


def _run(
    days_ago: float,
    duration: float = 60,
    conclusion: str = "success",
    workflow_id: int = 11,
    run_id: int = 1,
) -> WorkflowRun:
    started_at = NOW - timedelta(days=days_ago)
    return WorkflowRun(
        id=run_id,
        workflow_id=workflow_id,
        name="CI",
        conclusion=conclusion,
        run_number=run_id,
        started_at=started_at,
        completed_at=started_at + timedelta(seconds=duration),
        event="push",
    )


def test_run_duration_seconds_and_missing_timestamps():
    """Verify run duration is completion minus start in seconds, zero when unknown."""
    run = _run(1, duration=95)
    incomplete = _run(1)
    incomplete.completed_at = None

    assert run_duration_seconds(run) == 95
    assert run_duration_seconds(incomplete) == 0


def test_group_runs_by_workflow_sorts_by_start_time():
    """Verify runs are grouped per workflow and ordered oldest first."""
    runs = [
        _run(1, workflow_id=1, run_id=3),
        _run(5, workflow_id=2, run_id=2),
        _run(3, workflow_id=1, run_id=1),
    ]

    groups = group_runs_by_workflow(runs)

    assert [run.id for run in groups[1]] == [1, 3]
    assert [run.id for run in groups[2]] == [2]


def test_summarize_window_thirty_day_scenario():
    """Verify 5 runs with 2 failures and successes of 10/20/30 seconds."""
    runs = [
        _run(20, duration=10, run_id=1),
        _run(15, conclusion="failure", run_id=2),
        _run(10, duration=20, run_id=3),
        _run(5, conclusion="cancelled", run_id=4),
        _run(1, duration=30, run_id=5),
    ]

    stats = summarize_window(runs, NOW, 30)

    assert stats.median_duration == 20
    assert stats.min_duration == 10
    assert stats.max_duration == 30
    assert stats.mean_duration == pytest.approx(20)
    assert stats.total_runs == 5
    assert stats.total_failures == 2
    assert stats.success_rate == 0.6


def test_summarize_window_even_count_median_takes_index_half():
    """Verify the median of successes [10, 20, 30, 40] is 30, not 25."""
    runs = [_run(4 - index, duration=duration, run_id=index) for index, duration in enumerate([10, 20, 30, 40])]

    assert summarize_window(runs, NOW, 30).median_duration == 30


def test_summarize_window_median_follows_start_order_not_duration():
    """Verify the median is picked from start-time order."""
    runs = [_run(3, duration=50, run_id=1), _run(2, duration=5, run_id=2), _run(1, duration=20, run_id=3)]

    assert summarize_window(runs, NOW, 30).median_duration == 5


def test_summarize_window_excludes_runs_on_or_before_cutoff():
    """Verify only runs started strictly after now minus the window are counted."""
    runs = [_run(30, run_id=1), _run(29.9, run_id=2), _run(45, run_id=3)]

    assert summarize_window(runs, NOW, 30).total_runs == 1
    assert summarize_window(runs, NOW, 90).total_runs == 3


def test_summarize_window_without_runs_does_not_raise():
    """Verify an empty window yields zero counts and absent statistics."""
    stats = summarize_window([_run(60)], NOW, 30)

    assert stats.total_runs == 0
    assert stats.total_failures == 0
    assert stats.success_rate is None
    assert stats.median_duration is None
    assert stats.mean_duration is None


def test_summarize_window_without_successes_has_absent_durations():
    """Verify a window of only failures has a zero success rate and no durations."""
    stats = summarize_window([_run(2, conclusion="failure"), _run(1, conclusion="timed_out")], NOW, 30)

    assert stats.total_runs == 2
    assert stats.total_failures == 2
    assert stats.success_rate == 0.0
    assert stats.median_duration is None
    assert stats.min_duration is None
    assert stats.max_duration is None


def test_summarize_window_ignores_runs_without_start_time():
    """Verify runs with no start timestamp never fall inside a window."""
    unstarted = _run(1)
    unstarted.started_at = None

    assert summarize_window([unstarted, _run(2)], NOW, 30).total_runs == 1


def test_derive_workflow_aggregates_computes_both_windows_per_workflow():
    """Verify each workflow gets independent 30 and 90 day windows."""
    runs = [
        _run(10, duration=100, workflow_id=1, run_id=1),
        _run(60, duration=300, workflow_id=1, run_id=2),
        _run(5, conclusion="failure", workflow_id=2, run_id=3),
    ]

    aggregates = derive_workflow_aggregates("api", runs, NOW)

    by_id = {aggregate.workflow_id: aggregate for aggregate in aggregates}
    assert by_id[1].identifier == "api1"
    assert by_id[1].last_30_days.total_runs == 1
    assert by_id[1].last_30_days.max_duration == 100
    assert by_id[1].last_90_days.total_runs == 2
    assert by_id[1].last_90_days.max_duration == 300
    assert by_id[2].last_30_days.success_rate == 0.0


def test_sync_workflow_metrics_patches_window_properties():
    """Verify workflow statistics are written under their windowed property names."""
    repository = Repository(id=1, name="api", owner="acme", default_branch="trunk")
    github = Mock()
    github.list_workflow_runs.return_value = [
        _run(10, duration=100, workflow_id=7, run_id=1),
        _run(50, conclusion="failure", workflow_id=7, run_id=2),
    ]
    port = Mock()

    summary = sync_workflow_metrics(github, port, [repository], now=NOW)

    github.list_workflow_runs.assert_called_once_with(repository, "trunk")
    port.upsert_properties.assert_called_once_with(
        WORKFLOW_BLUEPRINT,
        "api7",
        {
            "medianDuration_last_30_days": 100,
            "maxDuration_last_30_days": 100,
            "minDuration_last_30_days": 100,
            "meanDuration_last_30_days": 100,
            "totalRuns_last_30_days": 1,
            "totalFailures_last_30_days": 0,
            "successRate_last_30_days": 1.0,
            "medianDuration_last_90_days": 100,
            "maxDuration_last_90_days": 100,
            "minDuration_last_90_days": 100,
            "meanDuration_last_90_days": 100,
            "totalRuns_last_90_days": 2,
            "totalFailures_last_90_days": 1,
            "successRate_last_90_days": 0.5,
        },
    )
    assert summary.updated == 1


def test_sync_workflow_metrics_omits_absent_statistics():
    """Verify windows without successful runs only write their counts."""
    repository = Repository(id=1, name="api", owner="acme")
    github = Mock()
    github.list_workflow_runs.return_value = [_run(60, conclusion="failure", workflow_id=7)]
    port = Mock()

    sync_workflow_metrics(github, port, [repository], now=NOW)

    properties = port.upsert_properties.call_args.args[2]
    assert properties == {
        "totalRuns_last_30_days": 0,
        "totalFailures_last_30_days": 0,
        "totalRuns_last_90_days": 1,
        "totalFailures_last_90_days": 1,
        "successRate_last_90_days": 0.0,
    }


def test_sync_workflow_metrics_isolates_failures():
    """Verify listing and write failures are logged and the loop continues."""
    repositories = [Repository(id=1, name="broken", owner="acme"), Repository(id=2, name="api", owner="acme")]
    github = Mock()
    github.list_workflow_runs.side_effect = [
        ApiError("runs failed"),
        [_run(1, workflow_id=1, run_id=1), _run(1, workflow_id=2, run_id=2)],
    ]
    port = Mock()
    port.upsert_properties.side_effect = [ApiError("write failed"), None]

    summary = sync_workflow_metrics(github, port, repositories, now=NOW)

    assert port.upsert_properties.call_count == 2
    assert summary.processed == 2
    assert summary.failed == 1
    assert summary.updated == 1
