"""Shared JSON-over-HTTP plumbing for the GitHub and Port gateways."""

from __future__ import annotations

import logging
import time
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import parse_qs, urlparse

import requests

from .errors import ApiError

logger = logging.getLogger(__name__)


def parse_datetime(value: Optional[str]) -> Optional[datetime]:
    """Parse ISO8601 API timestamps into timezone-aware UTC datetimes."""
    if not value:
        return None

    normalized = value[:-1] + "+00:00" if value.endswith("Z") else value
    parsed = datetime.fromisoformat(normalized)
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def format_datetime(value: datetime) -> str:
    """Format a datetime as UTC ISO8601 with a ``Z`` suffix."""
    utc_value = value.astimezone(timezone.utc)
    return utc_value.isoformat().replace("+00:00", "Z")


class JsonApiClient:
    """Session-backed JSON client with bounded retries for 429/5xx responses.

    Subclasses set ``_SERVICE_NAME`` for error messages and configure
    authentication on ``self._session``.
    """

    _SERVICE_NAME = "API"
    _MAX_RETRIES = 5
    _MAX_BACKOFF_SECONDS = 30

    def __init__(self, base_url: str, timeout_seconds: int = 30) -> None:
        """Initialize a client rooted at ``base_url``.

        Args:
            base_url: API root without a trailing slash.
            timeout_seconds: Per-request timeout in seconds.
        """
        self._base_url = base_url.rstrip("/")
        self._timeout_seconds = timeout_seconds
        self._session = requests.Session()
        self._session.headers.update({"Accept": "application/json"})

    def _build_url(self, path: str) -> str:
        """Build a fully qualified API URL from a path below the API root."""
        return f"{self._base_url}/{path.lstrip('/')}"

    def _extract_backoff_seconds(self, response: requests.Response, attempt: int) -> int:
        """Compute exponential backoff seconds, honoring Retry-After when available."""
        retry_after_header = response.headers.get("Retry-After")
        if retry_after_header:
            try:
                retry_after_seconds = int(retry_after_header)
                return min(self._MAX_BACKOFF_SECONDS, max(1, retry_after_seconds))
            except ValueError:
                pass

        return min(self._MAX_BACKOFF_SECONDS, 2 ** (attempt - 1))

    def _send(
        self,
        method: str,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        json: Optional[Dict[str, Any]] = None,
    ) -> requests.Response:
        """Execute a request with retry logic for 429/5xx responses.

        Raises:
            ApiError: If the request repeatedly fails or returns HTTP >= 400.
        """
        url = self._build_url(path)
        last_error: Optional[Exception] = None

        for attempt in range(1, self._MAX_RETRIES + 1):
            try:
                response = self._session.request(
                    method,
                    url,
                    params=params,
                    json=json,
                    timeout=self._timeout_seconds,
                )
            except requests.RequestException as exc:
                last_error = exc
                if attempt == self._MAX_RETRIES:
                    raise ApiError(
                        f"{self._SERVICE_NAME} request failed after retries: {method} {url}"
                    ) from exc
                time.sleep(min(self._MAX_BACKOFF_SECONDS, 2 ** (attempt - 1)))
                continue

            status_code = response.status_code
            is_retryable = status_code == 429 or 500 <= status_code <= 599

            if is_retryable and attempt < self._MAX_RETRIES:
                backoff = self._extract_backoff_seconds(response, attempt)
                logger.debug(
                    "Retrying %s %s after HTTP %s",
                    method,
                    url,
                    status_code,
                    extra={"attempt": attempt, "backoff_seconds": backoff},
                )
                time.sleep(backoff)
                continue

            if status_code >= 400:
                raise ApiError(
                    f"{self._SERVICE_NAME} request failed: "
                    f"{method} {url} returned {status_code} - {response.text}"
                )

            return response

        raise ApiError(
            f"{self._SERVICE_NAME} request failed after retries: {method} {url}"
        ) from last_error

    def _decode(self, method: str, path: str, response: requests.Response) -> Any:
        if response.status_code == 204 or not response.content:
            return None

        try:
            return response.json()
        except ValueError as exc:
            raise ApiError(
                f"{self._SERVICE_NAME} returned invalid JSON: {method} {self._build_url(path)}"
            ) from exc

    def _request_json(
        self,
        method: str,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        json: Optional[Dict[str, Any]] = None,
    ) -> Any:
        """Execute a request and return the decoded JSON body, or ``None`` for empty responses.

        Raises:
            ApiError: If the request repeatedly fails, returns HTTP >= 400,
                or does not return valid JSON.
        """
        response = self._send(method, path, params=params, json=json)
        return self._decode(method, path, response)

    def _get_json(self, path: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """GET a JSON object payload.

        Raises:
            ApiError: If the request fails or the payload is not a JSON object.
        """
        payload = self._request_json("GET", path, params=params)
        if not isinstance(payload, dict):
            raise ApiError(
                f"{self._SERVICE_NAME} returned unexpected payload shape: GET {self._build_url(path)}"
            )
        return payload

    def _get_json_list(self, path: str, params: Optional[Dict[str, Any]] = None) -> List[Any]:
        """GET a JSON array payload.

        Raises:
            ApiError: If the request fails or the payload is not a JSON array.
        """
        payload, _ = self._get_json_page(path, params=params)
        return payload

    def _get_json_page(
        self, path: str, params: Optional[Dict[str, Any]] = None
    ) -> Tuple[List[Any], Optional[int]]:
        """GET one page of a JSON array plus the last page number from the ``Link`` header.

        The last page number is ``None`` when the response is not paginated.

        Raises:
            ApiError: If the request fails or the payload is not a JSON array.
        """
        response = self._send("GET", path, params=params)
        payload = self._decode("GET", path, response)
        if not isinstance(payload, list):
            raise ApiError(
                f"{self._SERVICE_NAME} returned unexpected payload shape: GET {self._build_url(path)}"
            )
        return payload, self._last_page_number(response)

    @staticmethod
    def _last_page_number(response: requests.Response) -> Optional[int]:
        last_url = (response.links.get("last") or {}).get("url")
        if not last_url:
            return None

        page_values = parse_qs(urlparse(last_url).query).get("page")
        if not page_values:
            return None
        try:
            return int(page_values[0])
        except ValueError:
            return None
