"""GraphQL HTTP client used to send mutation documents to an endpoint."""

from __future__ import annotations

import asyncio
from typing import Any

import requests

from gqlload.helpers.console import truncate


class TransportError(Exception):
    """A request failed before a usable GraphQL response came back.

    ``response`` holds the decoded JSON body when the server sent one
    (e.g. a 400 with an ``errors`` list), ``status`` the HTTP status.
    """

    def __init__(
        self,
        message: str,
        *,
        status: int | None = None,
        response: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.status = status
        self.response = response


class GraphQLClient:
    """POSTs GraphQL documents to one endpoint.

    ``request`` is awaitable; the blocking HTTP call runs in a worker thread
    so callers can sequence batches with ``await``.
    """

    def __init__(
        self,
        url: str,
        *,
        headers: dict[str, str] | None = None,
        timeout: float | None = None,
    ):
        self.url = url
        self.timeout = timeout
        self._session = requests.Session()
        self._session.headers.update(headers or {})

    async def request(self, query: str) -> dict[str, Any]:
        """Send a document and return the decoded ``{data, errors}`` body."""
        return await asyncio.to_thread(self._post, query)

    def _post(self, query: str) -> dict[str, Any]:
        try:
            response = self._session.post(
                self.url, json={"query": query}, timeout=self.timeout
            )
        except requests.RequestException as e:
            raise TransportError(f"Request to {self.url} failed: {e}") from e

        try:
            data = response.json()
        except ValueError:
            data = None

        if response.status_code >= 400 or not isinstance(data, dict):
            raise TransportError(
                f"HTTP {response.status_code}: {truncate(response.text, 200)}",
                status=response.status_code,
                response=data if isinstance(data, dict) else None,
            )
        return data
