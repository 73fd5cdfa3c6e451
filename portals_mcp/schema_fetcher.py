"""
Fetch a Portal's published OpenAPI document.

A missing or broken document is an expected condition: the caller falls back to
a single synthesized tool, so every failure here is logged and mapped to
``None`` rather than raised.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import httpx

from portals_mcp.config import PortalsConfig, default_config

logger = logging.getLogger(__name__)

SCHEMA_FILENAME = "openapi.json"


def schema_url(base_url: str) -> str:
    """Return ``<base>/openapi.json``, tolerating a trailing slash on the base."""
    if base_url.endswith("/"):
        return f"{base_url}{SCHEMA_FILENAME}"
    return f"{base_url}/{SCHEMA_FILENAME}"


class SchemaFetcher:
    """Async fetcher for ``openapi.json`` documents with a short timeout."""

    def __init__(
        self,
        config: PortalsConfig | None = None,
        *,
        async_client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.config = config or default_config
        self._client: Optional[httpx.AsyncClient] = async_client
        self._owns_client = async_client is None

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.config.schema_timeout)
            self._owns_client = True
        return self._client

    async def aclose(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def fetch(self, base_url: str) -> Optional[Dict[str, Any]]:
        """
        Retrieve the OpenAPI document for a Portal.

        Args:
            base_url: Portal base URL as registered on chain.

        Returns:
            The decoded JSON object, or None when no usable document exists.
        """
        url = schema_url(base_url)
        client = await self._get_client()
        try:
            response = await client.get(url, timeout=self.config.schema_timeout)
        except httpx.TimeoutException:
            logger.warning("Schema fetch timed out for %s", url, extra={"error": "timeout"})
            return None
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            logger.warning("Schema fetch failed for %s: %s", url, exc, extra={"error": "unreachable"})
            return None

        if response.status_code >= 400:
            logger.warning(
                "Schema fetch for %s returned HTTP %s", url, response.status_code, extra={"error": "http_status"}
            )
            return None

        try:
            data = response.json()
        except ValueError:
            logger.warning("Schema at %s is not valid JSON", url, extra={"error": "invalid_json"})
            return None

        if not isinstance(data, dict):
            logger.warning("Schema at %s is not a JSON object", url, extra={"error": "invalid_document"})
            return None
        return data
