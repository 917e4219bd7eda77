"""Configuration parsing and validation for the GitHub to Port metrics sync."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping, Optional, Tuple

from dotenv import load_dotenv

from .errors import ConfigurationError

DEFAULT_PORT_API_URL = "https://api.getport.io/v1"
DEFAULT_GITHUB_API_URL = "https://api.github.com"

_REQUIRED_VARIABLES = (
    "PORT_CLIENT_ID",
    "PORT_CLIENT_SECRET",
    "X_GITHUB_TOKEN",
    "X_GITHUB_ENTERPRISE",
    "X_GITHUB_ORGS",
)


@dataclass(frozen=True)
class Config:
    """Validated runtime settings used by every sync command."""

    port_client_id: str
    port_client_secret: str
    github_token: str
    enterprise: str
    organizations: Tuple[str, ...]
    port_api_url: str = DEFAULT_PORT_API_URL
    github_api_url: str = DEFAULT_GITHUB_API_URL


def parse_organizations(value: str) -> Tuple[str, ...]:
    """Split a comma-separated organization list, dropping blank entries."""
    return tuple(part.strip() for part in value.split(",") if part.strip())


def load_config(environ: Optional[Mapping[str, str]] = None) -> Config:
    """Build and validate application configuration from environment variables.

    Outside GitHub Actions a local ``.env`` file is loaded first so developers
    can keep credentials out of their shell profile. Values already present in
    the environment take precedence over the file.

    Args:
        environ: Mapping to read from. Defaults to ``os.environ``; when given,
            no ``.env`` file is loaded.

    Returns:
        A validated ``Config`` instance.

    Raises:
        ConfigurationError: If any required variable is missing or empty, or
            the organization list contains no names.
    """
    if environ is None:
        if os.getenv("GITHUB_ACTIONS") != "true":
            load_dotenv()
        environ = os.environ

    values = {name: environ.get(name, "").strip() for name in _REQUIRED_VARIABLES}
    organizations = parse_organizations(values["X_GITHUB_ORGS"])

    missing = [name for name, value in values.items() if not value]
    if not organizations and "X_GITHUB_ORGS" not in missing:
        missing.append("X_GITHUB_ORGS")

    if missing:
        raise ConfigurationError(
            "Missing required environment variables: "
            + ", ".join(missing)
            + ". Provide PORT_CLIENT_ID, PORT_CLIENT_SECRET, X_GITHUB_TOKEN, "
            "X_GITHUB_ENTERPRISE and X_GITHUB_ORGS."
        )

    return Config(
        port_client_id=values["PORT_CLIENT_ID"],
        port_client_secret=values["PORT_CLIENT_SECRET"],
        github_token=values["X_GITHUB_TOKEN"],
        enterprise=values["X_GITHUB_ENTERPRISE"],
        organizations=organizations,
        port_api_url=(environ.get("PORT_API_URL") or DEFAULT_PORT_API_URL).rstrip("/"),
        github_api_url=(environ.get("GITHUB_API_URL") or DEFAULT_GITHUB_API_URL).rstrip("/"),
    )
