"""Statistics helpers shared by the metric derivations.

This module provides utilities for:
- Converting timestamp differences to hours or seconds.
- Picking the 1st/10th anchor from an event timeline.
- Summarizing duration samples (index-``n // 2`` median, min, max, mean).
- Computing success fractions without dividing by zero.
"""

from __future__ import annotations

from datetime import datetime
from typing import Dict, Iterable, List, Optional, Sequence

SECONDS_PER_HOUR = 3600.0


def elapsed_hours(start: Optional[datetime], end: Optional[datetime]) -> Optional[float]:
    """Return ``end - start`` in fractional hours, or ``None`` when either is missing.

    Negative values are returned as-is; callers decide whether to clamp.
    """
    if start is None or end is None:
        return None
    return (end - start).total_seconds() / SECONDS_PER_HOUR


def elapsed_seconds(start: Optional[datetime], end: Optional[datetime]) -> Optional[float]:
    """Return ``end - start`` in seconds, or ``None`` when either is missing."""
    if start is None or end is None:
        return None
    return (end - start).total_seconds()


def nth_earliest(timestamps: Iterable[Optional[datetime]], n: int) -> Optional[datetime]:
    """Return the ``n``-th (1-based) earliest timestamp, or ``None`` if there are fewer.

    Missing timestamps are ignored.

    Raises:
        ValueError: If ``n`` is less than 1.
    """
    if n < 1:
        raise ValueError("Anchor position 'n' must be at least 1.")

    ordered = sorted(value for value in timestamps if value is not None)
    if len(ordered) < n:
        return None
    return ordered[n - 1]


def middle_element(ordered_values: Sequence[float]) -> Optional[float]:
    """Return the element at index ``len // 2``, or ``None`` for empty input.

    For even-length input this picks the upper of the two middle elements
    rather than averaging them: ``[10, 20, 30, 40]`` yields ``30``. The input
    order is kept as given; it is not sorted by value.
    """
    if not ordered_values:
        return None
    return ordered_values[len(ordered_values) // 2]


def summarize_durations(ordered_values: Sequence[float]) -> Dict[str, Optional[float]]:
    """Compute median, min, max and mean for duration samples.

    Args:
        ordered_values: Durations in the order the median should be picked from.

    Returns:
        Dictionary with keys ``median``, ``min``, ``max`` and ``mean``. All
        values are ``None`` when no samples exist.
    """
    if not ordered_values:
        return {"median": None, "min": None, "max": None, "mean": None}

    values: List[float] = list(ordered_values)
    return {
        "median": middle_element(values),
        "min": min(values),
        "max": max(values),
        "mean": sum(values) / len(values),
    }


def success_fraction(successes: int, total: int) -> Optional[float]:
    """Return ``successes / total`` as a 0-1 fraction, or ``None`` when ``total`` is 0."""
    if total <= 0:
        return None
    return successes / total
