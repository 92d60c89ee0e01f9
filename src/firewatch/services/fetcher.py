"""Upstream fetcher - bounded-timeout parallel GETs against the data feeds."""

from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import dataclass
from typing import Any

import httpx

from firewatch.exceptions import UpstreamHttpError, UpstreamParseError, UpstreamTimeoutError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FetchResult:
    url: str
    body: str


class UpstreamFetcher:
    """Fetches raw feed bodies over a shared httpx.AsyncClient.

    A call to ``fetch_all`` is all-or-nothing: the first failing URL fails the call,
    and the caller's refresh for that domain is abandoned.
    """

    def __init__(
        self,
        timeout: float = 30.0,
        max_concurrent: int = 4,
        client: httpx.AsyncClient | None = None,
    ):
        self.timeout = timeout
        self.max_concurrent = max(1, max_concurrent)
        self._client = client or httpx.AsyncClient(
            timeout=timeout,
            follow_redirects=True,
            headers={"User-Agent": "firewatch/0.1"},
        )

    async def fetch(self, url: str) -> FetchResult:
        """GET one URL; ``timeout`` bounds the whole request, body included."""
        try:
            response = await asyncio.wait_for(
                self._client.get(url, timeout=self.timeout), self.timeout
            )
        except (asyncio.TimeoutError, httpx.TimeoutException) as e:
            raise UpstreamTimeoutError(url, self.timeout) from e
        except httpx.HTTPError as e:
            raise UpstreamHttpError(url, None, str(e)) from e

        if response.status_code != 200:
            raise UpstreamHttpError(url, response.status_code)
        logger.debug("Fetched %s (%d bytes)", url, len(response.content))
        return FetchResult(url=url, body=response.text)

    async def fetch_all(self, urls: list[str]) -> list[FetchResult]:
        """Fetch every URL concurrently; results come back in input order."""
        semaphore = asyncio.Semaphore(self.max_concurrent)

        async def _bounded(url: str) -> FetchResult:
            async with semaphore:
                return await self.fetch(url)

        tasks = [asyncio.ensure_future(_bounded(url)) for url in urls]
        try:
            return list(await asyncio.gather(*tasks))
        except BaseException:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise

    async def fetch_json(self, urls: list[str]) -> list[Any]:
        results = await self.fetch_all(urls)
        return [decode_json(result) for result in results]

    async def close(self):
        """Close the HTTP client."""
        await self._client.aclose()


def decode_json(result: FetchResult) -> Any:
    try:
        return json.loads(result.body)
    except ValueError as e:
        raise UpstreamParseError(result.url, str(e)) from e
