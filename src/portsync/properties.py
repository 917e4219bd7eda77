"""Translation of derived records into Port property mappings.

The tables below map in-memory field names to the property identifiers used
by the Port blueprints. Absent (``None``) values are dropped so a write never
nulls out a previously stored property, and datetimes are serialized as UTC
ISO8601 strings.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Mapping

from .http_client import format_datetime
from .models import DeveloperOnboardingRecord, PullRequestMetrics, WindowStats, WorkflowAggregate

ONBOARDING_PROPERTY_NAMES: Mapping[str, str] = {
    "first_commit_date": "first_commit",
    "tenth_commit_date": "tenth_commit",
    "first_pr_date": "first_pr",
    "tenth_pr_date": "tenth_pr",
    "time_to_first_commit": "time_to_first_commit",
    "time_to_first_pr": "time_to_first_pr",
    "time_to_10th_commit": "time_to_10th_commit",
    "time_to_10th_pr": "time_to_10th_pr",
    "initial_review_response_time": "initial_review_response_time",
}

# All nine must be populated for a developer to be skipped.
REQUIRED_ONBOARDING_PROPERTIES = tuple(ONBOARDING_PROPERTY_NAMES.values())

PULL_REQUEST_PROPERTY_NAMES: Mapping[str, str] = {
    "size": "prSize",
    "lifetime": "prLifetime",
    "pickup_time": "prPickupTime",
    "success": "prSuccessRate",
    "review_participation": "reviewParticipation",
    "additions": "prAdditions",
    "deletions": "prDeletions",
    "changed_files": "prFilesChanged",
    "comments": "comments",
    "review_comments": "reviewComments",
}

WINDOW_PROPERTY_NAMES: Mapping[str, str] = {
    "median_duration": "medianDuration",
    "max_duration": "maxDuration",
    "min_duration": "minDuration",
    "mean_duration": "meanDuration",
    "total_runs": "totalRuns",
    "total_failures": "totalFailures",
    "success_rate": "successRate",
}


def _serialize(value: Any) -> Any:
    if isinstance(value, datetime):
        return format_datetime(value)
    return value


def to_portal_properties(record: Any, names: Mapping[str, str], suffix: str = "") -> Dict[str, Any]:
    """Map the non-``None`` fields of ``record`` to portal property names.

    Args:
        record: Any object exposing the attributes named in ``names``.
        names: In-memory field name to portal property name.
        suffix: Appended to every portal property name.

    Returns:
        Property mapping without absent values.
    """
    properties: Dict[str, Any] = {}
    for field_name, property_name in names.items():
        value = getattr(record, field_name)
        if value is None:
            continue
        properties[f"{property_name}{suffix}"] = _serialize(value)
    return properties


def onboarding_properties(record: DeveloperOnboardingRecord) -> Dict[str, Any]:
    """Portal properties for the populated fields of an onboarding record."""
    return to_portal_properties(record, ONBOARDING_PROPERTY_NAMES)


def pull_request_properties(metrics: PullRequestMetrics) -> Dict[str, Any]:
    """Portal properties for one pull request's metrics."""
    return to_portal_properties(metrics, PULL_REQUEST_PROPERTY_NAMES)


def window_properties(stats: WindowStats) -> Dict[str, Any]:
    """Portal properties for one window, e.g. ``totalRuns_last_30_days``."""
    return to_portal_properties(stats, WINDOW_PROPERTY_NAMES, suffix=f"_last_{stats.window_days}_days")


def workflow_properties(aggregate: WorkflowAggregate) -> Dict[str, Any]:
    """Portal properties for both windows of a workflow aggregate."""
    properties = window_properties(aggregate.last_30_days)
    properties.update(window_properties(aggregate.last_90_days))
    return properties
