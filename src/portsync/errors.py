"""Custom exception types for the GitHub to Port metrics sync."""


class SyncError(Exception):
    """Base exception for all recoverable sync errors."""


class ConfigurationError(SyncError):
    """Raised when runtime configuration values are missing or invalid."""


class AuthenticationError(SyncError):
    """Raised when GitHub or Port credentials are unavailable or rejected."""


class ApiError(SyncError):
    """Raised when a GitHub or Port API request fails or returns an unexpected response."""


class RateLimitError(ApiError):
    """Raised when the GitHub API rate limit has no remaining headroom."""


class DataValidationError(SyncError):
    """Raised when API payloads or derived metric data do not meet expected constraints."""
