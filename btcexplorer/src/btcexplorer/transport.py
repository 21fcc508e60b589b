"""
HTTP transport shared by all explorer backends.
"""

from __future__ import annotations

from typing import Any

import httpx
from loguru import logger

from btcexplorer.exceptions import TransportError
from btcexplorer.rate_limiter import RateLimiter

DEFAULT_TIMEOUT = 30.0


class HTTPTransport:
    """
    Issues GET/POST requests relative to a base URL and returns body text.

    When a RateLimiter is given, a token is acquired before every request;
    if acquisition fails the request is never sent.
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = DEFAULT_TIMEOUT,
        limiter: RateLimiter | None = None,
        client: httpx.AsyncClient | None = None,
    ):
        self.base_url = base_url.rstrip("/") + "/"
        self.timeout = timeout
        self.limiter = limiter
        self.client = client or httpx.AsyncClient(timeout=timeout)

    def url_for(self, path: str) -> str:
        return self.base_url + path.lstrip("/")

    async def get(self, path: str, params: dict[str, Any] | None = None) -> str:
        return await self._request("GET", path, params=params)

    async def post(self, path: str, data: dict[str, str]) -> str:
        """POST a form-encoded body."""
        return await self._request("POST", path, data=data)

    async def _request(
        self,
        method: str,
        path: str,
        params: dict[str, Any] | None = None,
        data: dict[str, str] | None = None,
    ) -> str:
        url = self.url_for(path)

        if self.limiter is not None:
            await self.limiter.acquire()

        logger.debug(f"{method} {url} params={params}")
        try:
            if method == "GET":
                response = await self.client.get(url, params=params)
            elif method == "POST":
                response = await self.client.post(url, data=data)
            else:
                raise ValueError(f"Unsupported HTTP method: {method}")

            response.raise_for_status()
            return response.text

        except httpx.HTTPStatusError as e:
            logger.error(f"{method} {url} returned HTTP {e.response.status_code}")
            raise TransportError(
                f"HTTP {e.response.status_code} from {url}",
                url=url,
                status_code=e.response.status_code,
            ) from e
        except httpx.TimeoutException as e:
            logger.error(f"{method} {url} timed out: {e}")
            raise TransportError(f"Timed out requesting {url}", url=url) from e
        except httpx.HTTPError as e:
            logger.error(f"{method} {url} failed: {e}")
            raise TransportError(f"Request to {url} failed: {e}", url=url) from e

    async def close(self) -> None:
        await self.client.aclose()
