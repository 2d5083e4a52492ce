"""HTTP JSON fetching used by the default health poller."""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Protocol

import aiohttp

from dashstate.exceptions import DashstateTransportError

_logger = logging.getLogger(__name__)


class JsonFetcher(Protocol):
    """Structural fetcher interface.

    Any zero-argument coroutine function returning a decoded JSON payload
    qualifies, which keeps test doubles trivial.
    """

    async def __call__(self) -> Any:
        ...


async def fetch_json(session: aiohttp.ClientSession, url: str, *, timeout: float) -> Any:
    """GET *url* and decode its JSON body.

    Raises
    ------
    DashstateTransportError
        On network failure, timeout, non-200 status or an undecodable body.
    """
    _logger.debug("GET %s", url)
    try:
        async with session.get(
            url,
            headers={"accept": "application/json"},
            timeout=aiohttp.ClientTimeout(total=timeout),
        ) as resp:
            text = await resp.text()
            if resp.status != 200:
                raise DashstateTransportError(
                    f"HTTP {resp.status} from {url}: {text[:200]}",
                    status_code=resp.status,
                    url=url,
                )
    except DashstateTransportError:
        raise
    except asyncio.TimeoutError as exc:
        raise DashstateTransportError(f"Request to {url} timed out after {timeout}s", url=url) from exc
    except aiohttp.ClientError as exc:
        raise DashstateTransportError(f"Request to {url} failed: {exc}", url=url) from exc

    try:
        return json.loads(text)
    except json.JSONDecodeError as exc:
        raise DashstateTransportError(f"Invalid JSON from {url}: {text[:200]}", status_code=200, url=url) from exc


class HttpJsonFetcher:
    """Fetch one URL as JSON; usable as a :class:`JsonFetcher`.

    An externally supplied session is left open; otherwise one is created on
    first use and closed by :meth:`close`.
    """

    def __init__(
        self,
        url: str,
        *,
        timeout: float,
        session: aiohttp.ClientSession | None = None,
    ) -> None:
        self._url = url
        self._timeout = timeout
        self._external_session = session is not None
        self._session = session

    @property
    def url(self) -> str:
        return self._url

    async def __call__(self) -> Any:
        if self._session is None:
            self._session = aiohttp.ClientSession()
        return await fetch_json(self._session, self._url, timeout=self._timeout)

    async def close(self) -> None:
        if not self._external_session and self._session is not None:
            await self._session.close()
        self._session = None
