"""Remote artifact store for benchmark history.

This module provides an async HTTP storage backend that reads and publishes
history documents with GET/PUT, retrying transient failures with
exponential backoff.
"""

from __future__ import annotations

import asyncio
import logging
import os
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

import httpx

from benchtrack.benchmarks.models import HistoryDocument, dumps, loads
from benchtrack.core.exceptions import StoreIOError
from benchtrack.core.hashing import repo_slug

if TYPE_CHECKING:
    from collections.abc import AsyncIterator
    from types import TracebackType

logger = logging.getLogger(__name__)

# Default configuration
DEFAULT_TIMEOUT = 30.0
DEFAULT_MAX_RETRIES = 3
DEFAULT_BACKOFF = 0.5

# Status codes worth retrying
RETRYABLE_STATUS: frozenset[int] = frozenset({408, 425, 429, 500, 502, 503, 504})


class _RetryableError(Exception):
    """Transient failure of a single request attempt."""


class HTTPStore:
    """Async HTTP storage for benchmark history.

    Each repository's document lives at ``{base_url}/{slug}.json``. Load
    treats 404 as "no history yet". Connect errors, timeouts and retryable
    status codes are retried ``max_retries`` times with exponential backoff;
    exhausting the retries raises StoreIOError.

    Attributes:
        base_url: Base URL of the artifact store.
        timeout: Request timeout in seconds.
        max_retries: Retries after the first failed attempt.
        backoff: Delay before the first retry; doubled for each further retry.

    Example:
        Context manager (recommended for multiple calls):
            >>> async with HTTPStore("https://bench.example/history") as store:
            ...     document = await store.load(repo_url)

        Using environment variable for the bearer token:
            >>> # Set BENCHTRACK_REMOTE_TOKEN in environment
            >>> store = HTTPStore("https://bench.example/history")
    """

    def __init__(
        self,
        base_url: str,
        token: str | None = None,
        timeout: float = DEFAULT_TIMEOUT,
        max_retries: int = DEFAULT_MAX_RETRIES,
        backoff: float = DEFAULT_BACKOFF,
    ) -> None:
        """Initialize HTTPStore client.

        Args:
            base_url: Base URL of the artifact store.
            token: Bearer token. If not provided, reads BENCHTRACK_REMOTE_TOKEN.
            timeout: Request timeout in seconds. Defaults to 30.0.
            max_retries: Retries after the first failed attempt. Defaults to 3.
            backoff: Initial backoff in seconds. Defaults to 0.5.
        """
        self.base_url = base_url.rstrip("/")
        self.token = token or os.environ.get("BENCHTRACK_REMOTE_TOKEN")
        self.timeout = timeout
        self.max_retries = max_retries
        self.backoff = backoff
        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self) -> HTTPStore:
        """Enter async context manager, creating a reusable HTTP client."""
        self._client = httpx.AsyncClient(timeout=self.timeout)
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        """Exit async context manager, closing the HTTP client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    def url_for(self, repo_url: str) -> str:
        """Return the URL of a repository's history document."""
        return f"{self.base_url}/{repo_slug(repo_url)}.json"

    def _get_headers(self) -> dict[str, str]:
        """Get headers for API requests."""
        headers = {"Content-Type": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    @asynccontextmanager
    async def _get_client(self) -> AsyncIterator[httpx.AsyncClient]:
        """Get an HTTP client for making requests."""
        if self._client is not None:
            yield self._client
        else:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                yield client

    async def _send(self, method: str, url: str, content: str | None = None) -> httpx.Response:
        """Send a request, retrying transient failures.

        Returns:
            The first non-retryable response (including 4xx responses).

        Raises:
            StoreIOError: If every attempt failed transiently.
        """
        last_error: Exception | None = None
        attempts = self.max_retries + 1  # Total attempts = retries + 1

        for attempt in range(attempts):
            try:
                async with self._get_client() as client:
                    response = await client.request(method, url, content=content, headers=self._get_headers())
                if response.status_code in RETRYABLE_STATUS:
                    raise _RetryableError(f"{response.status_code} - {response.text}")
                return response
            except httpx.ConnectError as e:
                last_error = e
            except httpx.TimeoutException as e:
                last_error = e
            except _RetryableError as e:
                last_error = e
            except httpx.HTTPError as e:
                msg = f"{method} {url} failed: {e}"
                raise StoreIOError(msg) from e

            # If we have more attempts, wait before retrying
            if attempt < attempts - 1:
                delay = self.backoff * (2**attempt)
                logger.warning(
                    f"{method} {url} failed ({last_error}); retrying in {delay:.2f}s "
                    f"(attempt {attempt + 1}/{attempts})"
                )
                await asyncio.sleep(delay)

        msg = f"{method} {url} failed after {attempts} attempts: {last_error}"
        raise StoreIOError(msg) from last_error

    async def load(self, repo_url: str) -> HistoryDocument | None:
        """Fetch the history document of a repository.

        Args:
            repo_url: Repository URL.

        Returns:
            The stored document, or None if the store answers 404.

        Raises:
            StoreIOError: If the request fails or the document is malformed.
        """
        url = self.url_for(repo_url)
        response = await self._send("GET", url)
        if response.status_code == 404:
            return None
        if response.status_code >= 400:
            msg = f"Remote store error: GET {url}: {response.status_code} - {response.text}"
            raise StoreIOError(msg)
        return loads(response.text)

    async def save(self, document: HistoryDocument) -> None:
        """Publish a history document.

        Args:
            document: The document to publish.

        Raises:
            StoreIOError: If publishing fails after all retries.
        """
        url = self.url_for(document.repo_url)
        response = await self._send("PUT", url, content=dumps(document))
        if response.status_code >= 400:
            msg = f"Remote store error: PUT {url}: {response.status_code} - {response.text}"
            raise StoreIOError(msg)
        logger.info(f"Published benchmark history of {document.repo_url} to {url}")
