"""Upstream client for querying dependency metadata from real gem repositories."""

from __future__ import annotations

import asyncio
import logging
from typing import Dict, List, Optional, Sequence

import aiohttp

from common.logging_utils import Timer, extra_context, is_debug_enabled, safe_url
from constants import Constants

from .codec import decode_dependencies
from .errors import TransportError
from .models import PackageRecord, Repository

logger = logging.getLogger(__name__)


class UpstreamClient:
    """Client for the dependency API of upstream gem repositories."""

    def __init__(self, timeout: int = Constants.REQUEST_TIMEOUT):
        """Initialize the upstream client.

        Args:
            timeout: Total request timeout in seconds.
        """
        self._timeout = aiohttp.ClientTimeout(total=timeout)
        self._session: Optional[aiohttp.ClientSession] = None

    async def start(self) -> None:
        """Start the HTTP session."""
        if self._session is None:
            connector = aiohttp.TCPConnector(limit=100)
            self._session = aiohttp.ClientSession(
                timeout=self._timeout,
                connector=connector,
                headers=self._default_headers(),
            )

    async def stop(self) -> None:
        """Stop the HTTP session."""
        if self._session:
            await self._session.close()
            self._session = None

    def _default_headers(self) -> Dict[str, str]:
        return {
            "User-Agent": Constants.USER_AGENT,
            "Accept": "application/json",
        }

    async def fetch_dependencies(
        self, names: Sequence[str], repository: Repository
    ) -> List[PackageRecord]:
        """Query one repository for the dependency metadata of names.

        Args:
            names: Gem names to ask for; must not be empty.
            repository: Repository to query.

        Returns:
            Records decoded from the response, tagged with repository.

        Raises:
            TransportError: Connection failure, timeout or non-2xx status.
            DecodeError: Body does not match the dependency schema.
        """
        if self._session is None:
            await self.start()
        assert self._session is not None

        url = repository.dependencies_url
        params = {"gems": ",".join(names)}
        target = safe_url(url)

        with Timer() as t:
            try:
                async with self._session.get(url, params=params) as response:
                    body = await response.read()
                    status = response.status
            except asyncio.TimeoutError as exc:
                logger.error(
                    "Upstream %s timed out after %ss", target, self._timeout.total
                )
                raise TransportError(repository, "request timed out") from exc
            except aiohttp.ClientError as exc:
                logger.error("Upstream %s connection error: %s", target, exc)
                raise TransportError(repository, f"connection error: {exc}") from exc

        if is_debug_enabled(logger):
            logger.debug(
                "Upstream response",
                extra=extra_context(
                    event="http_response",
                    component="upstream",
                    target=target,
                    status_code=status,
                    duration_ms=t.duration_ms(),
                    gems=len(names),
                ),
            )

        if not 200 <= status < 300:
            logger.warning("Upstream %s returned HTTP %s", target, status)
            raise TransportError(repository, f"HTTP {status}", status=status)

        return decode_dependencies(body, repository)

    async def __aenter__(self) -> "UpstreamClient":
        """Async context manager entry."""
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Async context manager exit."""
        await self.stop()
