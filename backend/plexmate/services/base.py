"""Shared plumbing for the live-source HTTP clients."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from plexmate.errors import ConfigurationMissing, UpstreamUnavailable

logger = logging.getLogger(__name__)


class HttpService:
    """Base class for an upstream HTTP API.

    Owns one shared ``httpx.AsyncClient`` so TCP connections are reused
    across polling passes. Every transport error, non-2xx status or
    undecodable body is raised as :class:`UpstreamUnavailable` so callers
    only ever handle the dashboard error taxonomy.
    """

    name = "upstream"

    def __init__(self, base_url: str, *, http: httpx.AsyncClient | None = None):
        self.base_url = (base_url or "").rstrip("/")
        self._http = http or httpx.AsyncClient(timeout=10.0)

    @property
    def is_configured(self) -> bool:
        return bool(self.base_url)

    def _require_config(self, *values: str | None) -> None:
        if not self.base_url or not all(values):
            raise ConfigurationMissing(self.name)

    async def close(self) -> None:
        """Close the shared HTTP client. Call on bot shutdown."""
        await self._http.aclose()

    async def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        url = f"{self.base_url}{path}"
        try:
            response = await self._http.request(method, url, **kwargs)
        except httpx.HTTPError as e:
            logger.warning(f"{self.name} request failed: {type(e).__name__}: {e}")
            raise UpstreamUnavailable(self.name, f"{type(e).__name__}: {e}") from e

        if response.status_code >= 400:
            logger.warning(f"{self.name} returned HTTP {response.status_code} for {path}")
            raise UpstreamUnavailable(self.name, f"HTTP {response.status_code}")
        return response

    async def _get_json(self, path: str, **kwargs: Any) -> Any:
        response = await self._request("GET", path, **kwargs)
        try:
            return response.json()
        except ValueError as e:
            raise UpstreamUnavailable(self.name, "invalid JSON response") from e
