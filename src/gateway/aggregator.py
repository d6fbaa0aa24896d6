"""Fan a dependency query out to every repository and merge the answers."""

from __future__ import annotations

import asyncio
import logging
from typing import List, Optional, Sequence, Set

from .directory import GemDirectory
from .errors import GatewayError
from .models import PackageIdentity, PackageRecord, Repository
from .upstream import UpstreamClient

logger = logging.getLogger(__name__)


def merge_dependencies(slots: Sequence[Sequence[PackageRecord]]) -> List[PackageRecord]:
    """Merge per-repository results in priority order.

    The first record seen for an identity wins; later duplicates from
    lower-priority repositories are dropped.

    Args:
        slots: One result list per repository, indexed by priority.

    Returns:
        Deduplicated records, highest-priority repository first.
    """
    merged: List[PackageRecord] = []
    seen: Set[PackageIdentity] = set()

    for records in slots:
        for record in records:
            identity = record.identity
            if identity in seen:
                continue
            seen.add(identity)
            merged.append(record)

    return merged


class Aggregator:
    """Queries all configured repositories and merges the results.

    Every successful query also refreshes the gem directory so the
    download path can redirect to the repository that supplied each gem.
    """

    def __init__(
        self,
        repositories: Sequence[Repository],
        upstream: UpstreamClient,
        directory: GemDirectory,
    ):
        """Initialize the aggregator.

        Args:
            repositories: Repositories in priority order, highest first.
            upstream: Client used for the per-repository queries.
            directory: Directory updated after each successful merge.
        """
        self._repositories = tuple(repositories)
        self._upstream = upstream
        self._directory = directory

    @property
    def repositories(self) -> Sequence[Repository]:
        return self._repositories

    async def query(self, names: Sequence[str]) -> List[PackageRecord]:
        """Return the merged dependency metadata for names.

        All repositories are queried concurrently and every query is awaited,
        even after one has failed. Any failure aborts the whole call without
        touching the directory.

        Raises:
            TransportError: If any repository could not be reached.
            DecodeError: If any repository sent a malformed response.
        """
        if not names:
            return []

        results = await asyncio.gather(
            *(self._upstream.fetch_dependencies(names, repo) for repo in self._repositories),
            return_exceptions=True,
        )

        slots: List[List[PackageRecord]] = [[] for _ in self._repositories]
        failure: Optional[BaseException] = None
        for index, result in enumerate(results):
            if isinstance(result, BaseException):
                if failure is None:
                    failure = result
                continue
            slots[index] = result

        if failure is not None:
            if not isinstance(failure, GatewayError):
                logger.error("Unexpected failure during dependency query", exc_info=failure)
            raise failure

        merged = merge_dependencies(slots)
        self._directory.update(merged)
        logger.debug(
            "Merged %d records for %d gems from %d repositories",
            len(merged), len(names), len(self._repositories),
        )
        return merged
