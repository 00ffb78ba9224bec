"""HTTP client used to perform ``fetch`` effects."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Protocol

import httpx

from forkio import __version__
from forkio.errors import NetworkError

logger = logging.getLogger(__name__)

DEFAULT_USER_AGENT = f"forkio/{__version__}"


class Fetcher(Protocol):
    async def fetch(self, url: str) -> str: ...

    async def aclose(self) -> None: ...


@dataclass
class HttpFetcher:
    """Thin wrapper around a shared :class:`httpx.AsyncClient`.

    The client is created lazily on the first fetch so a run that never
    fetches never opens a connection pool.
    """

    timeout: float | None = 30.0
    follow_redirects: bool = True
    user_agent: str = DEFAULT_USER_AGENT
    default_headers: dict[str, str] | None = None
    transport: httpx.AsyncBaseTransport | None = field(default=None, repr=False)
    _client: httpx.AsyncClient | None = field(default=None, init=False, repr=False)

    def build_headers(self, extra: Mapping[str, str] | None = None) -> dict[str, str]:
        """Merge the user agent and default headers."""
        headers: dict[str, str] = {"User-Agent": self.user_agent}
        if self.default_headers:
            headers.update(self.default_headers)
        if extra:
            headers.update(dict(extra))
        return headers

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=self.timeout,
                follow_redirects=self.follow_redirects,
                headers=self.build_headers(),
                transport=self.transport,
            )
        return self._client

    async def fetch(self, url: str) -> str:
        """GET ``url`` and return the whole body as text.

        Any HTTP status is returned as-is. A request httpx cannot send or a body
        it cannot decode raises :class:`NetworkError`.
        """
        client = self._get_client()
        try:
            response = await client.get(url)
            body = response.text
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            raise NetworkError(url, exc) from exc
        except UnicodeDecodeError as exc:
            raise NetworkError(url, exc) from exc
        logger.debug(
            "fetched %s: HTTP %d, %d characters", url, response.status_code, len(body)
        )
        return body

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None


__all__ = ["DEFAULT_USER_AGENT", "Fetcher", "HttpFetcher"]
