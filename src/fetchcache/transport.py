"""Outbound HTTP transport.

The cache layer talks to the network through :class:`Transport`, a single
``fetch(url)`` call that follows redirects and reports the final URL.
:class:`HttpTransport` implements it on :class:`httpx.Client` and layers on:

- **Redirects** -- followed transparently; the post-redirect URL is returned.
- **Retry with backoff** -- connection and timeout errors are retried
  ``max_retries`` times with exponential delay (1 s, 2 s, 4 s, ...).
- **Error mapping** -- every httpx failure becomes a
  :class:`~fetchcache.exceptions.FetchError`. HTTP error statuses are only
  errors when ``raise_for_status`` is enabled.

Timeouts are configured here and nowhere else; the cache layer never
interrupts an in-flight fetch.
"""

from __future__ import annotations

import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

import httpx

from fetchcache.exceptions import FetchError
from fetchcache.models import RequestConfig

logger = logging.getLogger(__name__)

_RETRYABLE = (httpx.ConnectError, httpx.TimeoutException, httpx.NetworkError)


@dataclass
class FetchedResponse:
    """Body and provenance of a completed fetch.

    Attributes:
        body: The full response body.
        final_url: The URL after following redirects.
        status_code: The HTTP status of the final response.
    """

    body: bytes
    final_url: str
    status_code: int = 200


class Transport(ABC):
    """Fetches a URL, following redirects."""

    @abstractmethod
    def fetch(self, url: str) -> FetchedResponse:
        """Fetch *url*.

        Raises:
            FetchError: If the fetch fails.
        """

    def close(self) -> None:
        """Release network resources."""


class HttpTransport(Transport):
    """:class:`Transport` backed by :class:`httpx.Client`.

    Args:
        config: Timeout, SSL, retry, User-Agent and status settings.
        client: Pre-built client to use instead of creating one. A supplied
            client is not closed by :meth:`close`.

    Example::

        transport = HttpTransport(RequestConfig(timeout=10, max_retries=2))
        response = transport.fetch("https://example.com/")
        transport.close()
    """

    def __init__(
        self,
        config: Optional[RequestConfig] = None,
        client: Optional[httpx.Client] = None,
    ) -> None:
        self._config = config or RequestConfig()
        self._owns_client = client is None
        self._client = client or httpx.Client(
            timeout=self._config.timeout,
            verify=self._config.verify_ssl,
            follow_redirects=True,
            headers={"User-Agent": self._config.user_agent},
        )

    def fetch(self, url: str) -> FetchedResponse:
        max_retries = self._config.max_retries
        attempt = 0
        while True:
            try:
                response = self._client.get(url)
                break
            except _RETRYABLE as exc:
                if attempt >= max_retries:
                    raise FetchError(
                        f"Connection failed after {attempt + 1} attempts: {exc}",
                        url=url,
                    ) from exc
                delay = 2 ** attempt
                attempt += 1
                logger.debug(
                    "Connection error fetching %s: %s, retrying in %ds (attempt %d/%d)",
                    url, exc, delay, attempt, max_retries,
                )
                time.sleep(delay)
            except (httpx.HTTPError, httpx.InvalidURL) as exc:
                raise FetchError(f"Fetch of {url} failed: {exc}", url=url) from exc

        final_url = str(response.url)
        if self._config.raise_for_status and response.status_code >= 400:
            raise FetchError(
                f"HTTP {response.status_code} fetching {url}",
                url=url,
                final_url=final_url,
                status_code=response.status_code,
            )
        return FetchedResponse(
            body=response.content,
            final_url=final_url,
            status_code=response.status_code,
        )

    def close(self) -> None:
        """Close the underlying client if this transport created it."""
        if self._owns_client:
            self._client.close()
