"""Command-line argument parsing for the GitHub to Port metrics sync."""

from __future__ import annotations

import argparse
from typing import Optional, Sequence

ONBOARDING_COMMAND = "onboarding-metrics"
PULL_REQUEST_COMMAND = "pr-metrics"
WORKFLOW_COMMAND = "workflow-metrics"

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")


def _positive_int(value: str) -> int:
    """Parse and validate a positive integer CLI value.

    Args:
        value: Raw command-line argument value.

    Returns:
        The validated positive integer.

    Raises:
        argparse.ArgumentTypeError: If value is not a positive integer.
    """
    try:
        parsed = int(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError("must be an integer") from exc

    if parsed <= 0:
        raise argparse.ArgumentTypeError("must be greater than 0")

    return parsed


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser with one subcommand per metric family."""
    parser = argparse.ArgumentParser(
        prog="github-port-sync",
        description="CLI to pull metrics from GitHub to Port.",
    )
    parser.add_argument(
        "--log-level",
        type=str.upper,
        choices=_LOG_LEVELS,
        default="INFO",
        help="Logging verbosity (default: INFO).",
    )
    parser.add_argument(
        "--timeout",
        type=_positive_int,
        default=30,
        help="Per-request HTTP timeout in seconds (default: 30).",
    )

    subparsers = parser.add_subparsers(dest="command", metavar="COMMAND")
    subparsers.required = True
    subparsers.add_parser(ONBOARDING_COMMAND, help="Send onboarding metrics to Port.")
    subparsers.add_parser(PULL_REQUEST_COMMAND, help="Send PR metrics to Port.")
    subparsers.add_parser(WORKFLOW_COMMAND, help="Send GitHub Workflow metrics to Port.")

    return parser


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    """Parse command-line arguments.

    Returns:
        Parsed arguments containing ``command``, ``log_level`` and ``timeout``.
    """
    return build_parser().parse_args(argv)
