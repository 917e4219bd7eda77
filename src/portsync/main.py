"""Entry point wiring the sync commands to the GitHub and Port gateways."""

from __future__ import annotations

import logging
from typing import Optional, Sequence

from .cli import ONBOARDING_COMMAND, PULL_REQUEST_COMMAND, WORKFLOW_COMMAND, parse_args
from .config import Config, load_config
from .errors import ApiError, AuthenticationError, ConfigurationError, RateLimitError, SyncError
from .github_client import GitHubClient
from .models import SyncSummary
from .onboarding import sync_onboarding_metrics
from .port_client import PortClient
from .pull_requests import sync_pull_request_metrics
from .ratelimit import check_rate_limit
from .workflows import sync_workflow_metrics

logger = logging.getLogger(__name__)

EXIT_SUCCESS = 0
EXIT_UNEXPECTED_ERROR = 1
EXIT_AUTHENTICATION_ERROR = 3
EXIT_API_ERROR = 4
EXIT_RATE_LIMIT_ERROR = 5

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def run_command(command: str, config: Config, github: GitHubClient, port: PortClient) -> SyncSummary:
    """Run one sync command after the rate-limit pre-flight check.

    Raises:
        RateLimitError: If no GitHub requests remain.
        ValueError: If ``command`` is unknown.
    """
    check_rate_limit(github)

    if command == ONBOARDING_COMMAND:
        logger.info("Calculating onboarding metrics...")
        return sync_onboarding_metrics(github, port, config.enterprise, config.organizations)

    if command == PULL_REQUEST_COMMAND:
        logger.info("Calculating PR metrics...")
        repositories = github.list_repositories(config.organizations)
        logger.info("Got %d repos", len(repositories))
        return sync_pull_request_metrics(github, port, repositories)

    if command == WORKFLOW_COMMAND:
        logger.info("Calculating Workflows metrics...")
        repositories = github.list_repositories(config.organizations)
        logger.info("Got %d repos", len(repositories))
        return sync_workflow_metrics(github, port, repositories)

    raise ValueError(f"Unknown command: {command}")


def orchestrate_sync(argv: Optional[Sequence[str]] = None) -> int:
    """Parse arguments, load configuration and run the selected command.

    Missing configuration is a no-op: it is logged and the process exits
    successfully without contacting either API.

    Returns:
        Process exit code.
    """
    args = parse_args(argv)
    logging.basicConfig(level=args.log_level, format=LOG_FORMAT)

    try:
        config = load_config()
    except ConfigurationError as exc:
        logger.error("%s", exc)
        return EXIT_SUCCESS

    github = GitHubClient(
        token=config.github_token,
        base_url=config.github_api_url,
        timeout_seconds=args.timeout,
    )
    port = PortClient(
        client_id=config.port_client_id,
        client_secret=config.port_client_secret,
        base_url=config.port_api_url,
        timeout_seconds=args.timeout,
    )

    try:
        summary = run_command(args.command, config, github, port)
    except RateLimitError as exc:
        logger.error("Rate limit exhausted: %s", exc)
        return EXIT_RATE_LIMIT_ERROR
    except AuthenticationError as exc:
        logger.error("Authentication failed: %s", exc)
        return EXIT_AUTHENTICATION_ERROR
    except ApiError as exc:
        logger.error("API request failed: %s", exc)
        return EXIT_API_ERROR
    except SyncError as exc:
        logger.error("Sync failed: %s", exc)
        return EXIT_UNEXPECTED_ERROR
    except Exception:
        logger.exception("Unexpected error while running %s", args.command)
        return EXIT_UNEXPECTED_ERROR

    logger.info(
        "Finished %s: %d processed, %d updated, %d skipped, %d failed",
        args.command,
        summary.processed,
        summary.updated,
        summary.skipped,
        summary.failed,
    )
    return EXIT_SUCCESS


def main() -> None:
    """Console-script entry point."""
    raise SystemExit(orchestrate_sync())


if __name__ == "__main__":
    main()
