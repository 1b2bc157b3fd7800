from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, Optional
from urllib.parse import urljoin

import requests

logger = logging.getLogger(__name__)


class ApiError(RuntimeError):
    """Raised when the analytics backend answers outside the 2xx range."""


class RequestCancelled(Exception):
    """Raised when a request's cancel token fires before its result is used."""


class CancelToken:
    """Cooperative cancellation flag bound to a single request."""

    def __init__(self) -> None:
        self._cancelled = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        self._cancelled = True

    def raise_if_cancelled(self) -> None:
        if self._cancelled:
            raise RequestCancelled()


def unwrap_envelope(body: Any) -> Any:
    """Return the payload of a ``{success, data, meta}`` envelope.

    Bodies that are not a successful envelope carrying ``data`` are returned
    unchanged, so endpoints that answer with a bare payload keep working.
    """
    if isinstance(body, dict) and body.get("success") is True and "data" in body:
        return body["data"]
    return body


class AnalyticsClient:
    """Lightweight helper for querying the insurance analytics API."""

    def __init__(self, base_url: str, timeout: int = 30) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    def _build_url(self, resource: str) -> str:
        return urljoin(f"{self.base_url}/", resource.lstrip("/"))

    def get_json(self, resource: str, token: Optional[CancelToken] = None) -> Any:
        """Fetch ``resource`` (path plus query string) and return the decoded JSON body."""
        if token is not None:
            token.raise_if_cancelled()
        url = self._build_url(resource)
        logger.debug("GET %s", url)
        response = requests.get(url, timeout=self.timeout)
        if token is not None:
            token.raise_if_cancelled()
        if not response.ok:
            raise ApiError(f"HTTP {response.status_code}: {response.reason}")
        return response.json()

    async def fetch_json(self, resource: str, token: Optional[CancelToken] = None) -> Any:
        """Allow awaiting the blocking request from the event loop."""
        return await asyncio.to_thread(self.get_json, resource, token)

    def get_payload(self, resource: str, params: Optional[Dict[str, Any]] = None) -> Any:
        """Blocking fetch with explicit query parameters, envelope removed."""
        response = requests.get(self._build_url(resource), params=params, timeout=self.timeout)
        if not response.ok:
            raise ApiError(f"HTTP {response.status_code}: {response.reason}")
        return unwrap_envelope(response.json())


__all__ = ["AnalyticsClient", "ApiError", "CancelToken", "RequestCancelled", "unwrap_envelope"]
