"""Port developer-portal API client for reading and updating catalog entities."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from .errors import ApiError, AuthenticationError
from .http_client import JsonApiClient
from .models import PortalEntity

logger = logging.getLogger(__name__)


class PortClient(JsonApiClient):
    """Typed client for the Port entities API.

    The client id/secret pair is exchanged for an access token on first use;
    the token is reused for the lifetime of the client.
    """

    _SERVICE_NAME = "Port API"

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        base_url: str = "https://api.getport.io/v1",
        timeout_seconds: int = 30,
    ) -> None:
        """Initialize a Port API client.

        Args:
            client_id: Port API client id.
            client_secret: Port API client secret.
            base_url: Port API root including the version segment.
            timeout_seconds: Per-request timeout in seconds.
        """
        super().__init__(base_url=base_url, timeout_seconds=timeout_seconds)
        self._client_id = client_id
        self._client_secret = client_secret
        self._access_token: Optional[str] = None

    def _authenticate(self) -> None:
        """Exchange client credentials for an access token.

        Raises:
            AuthenticationError: If Port rejects the credentials or returns no token.
        """
        if self._access_token is not None:
            return

        try:
            payload = self._request_json(
                "POST",
                "auth/access_token",
                json={"clientId": self._client_id, "clientSecret": self._client_secret},
            )
        except ApiError as exc:
            raise AuthenticationError(f"Port rejected the client credentials: {exc}") from exc

        token = (payload or {}).get("accessToken") if isinstance(payload, dict) else None
        if not token:
            raise AuthenticationError("Port access token response did not include an accessToken.")

        self._access_token = str(token)
        self._session.headers.update({"Authorization": f"Bearer {self._access_token}"})
        logger.debug("Obtained Port access token")

    def get_entities(self, blueprint: str) -> List[PortalEntity]:
        """List every entity of a blueprint."""
        self._authenticate()
        payload = self._get_json(f"blueprints/{blueprint}/entities")
        entities: List[PortalEntity] = []

        for item in payload.get("entities", []):
            identifier = item.get("identifier")
            if not identifier:
                continue
            entities.append(
                PortalEntity(
                    identifier=str(identifier),
                    title=item.get("title"),
                    properties=dict(item.get("properties") or {}),
                    relations=dict(item.get("relations") or {}),
                )
            )

        return entities

    def upsert_entity(
        self,
        blueprint: str,
        identifier: str,
        title: Optional[str],
        properties: Dict[str, Any],
        relations: Dict[str, Any],
    ) -> PortalEntity:
        """Create or replace an entity, returning the stored entity."""
        self._authenticate()
        body: Dict[str, Any] = {
            "identifier": identifier,
            "properties": properties,
            "relations": relations,
        }
        if title is not None:
            body["title"] = title

        payload = self._request_json(
            "POST",
            f"blueprints/{blueprint}/entities",
            params={"upsert": "true", "merge": "true"},
            json=body,
        )
        stored = (payload or {}).get("entity") if isinstance(payload, dict) else None
        if not isinstance(stored, dict):
            return PortalEntity(identifier=identifier, title=title, properties=properties, relations=relations)

        return PortalEntity(
            identifier=str(stored.get("identifier") or identifier),
            title=stored.get("title", title),
            properties=dict(stored.get("properties") or {}),
            relations=dict(stored.get("relations") or {}),
        )

    def upsert_properties(self, blueprint: str, identifier: str, properties: Dict[str, Any]) -> None:
        """Patch only the given properties of an existing entity."""
        self._authenticate()
        self._request_json(
            "PATCH",
            f"blueprints/{blueprint}/entities/{identifier}",
            json={"properties": properties},
        )
